"""
Unit tests for ConfigManager.
"""

import pytest

from mcotp.config_manager import CONFIG_GROUPS, CONFIG_SCHEMA, SNAPSHOT_KEY, ConfigManager


@pytest.fixture
def config_manager(temp_db):
    """Create a ConfigManager instance for testing."""
    return ConfigManager(temp_db)


def test_get_default(config_manager):
    """Test getting default configuration values."""
    assert config_manager.get("web_host") == "0.0.0.0"
    assert config_manager.get("web_port") == "8000"
    assert config_manager.get("restore_on_startup") == "true"
    assert config_manager.get(SNAPSHOT_KEY) is None


def test_set_and_get(config_manager):
    """Test setting and getting configuration values."""
    config_manager.set("web_port", "9000")
    assert config_manager.get("web_port") == "9000"

    config_manager.set("test_key", "test_value")
    assert config_manager.get("test_key") == "test_value"


def test_get_int(config_manager):
    """Test getting integer configuration values."""
    assert config_manager.get_int("web_port") == 8000

    config_manager.set("test_int", "42")
    assert config_manager.get_int("test_int", default=0) == 42

    # Test with default
    assert config_manager.get_int("nonexistent", default=10) == 10

    # Test with invalid value
    config_manager.set("invalid_int", "not_a_number")
    assert config_manager.get_int("invalid_int", default=0) == 0


def test_get_float(config_manager):
    """Test getting float configuration values."""
    assert config_manager.get_float("fetch_timeout_seconds") == 10.0
    assert config_manager.get_float("nonexistent", default=1.0) == 1.0

    config_manager.set("invalid_float", "not_a_number")
    assert config_manager.get_float("invalid_float", default=0.0) == 0.0


def test_get_bool(config_manager):
    """Test getting boolean configuration values."""
    assert config_manager.get_bool("autosave_snapshot") is True

    config_manager.set("test_bool", "false")
    assert config_manager.get_bool("test_bool") is False

    config_manager.set("test_bool", "1")
    assert config_manager.get_bool("test_bool") is True

    assert config_manager.get_bool("nonexistent", default=True) is True


def test_get_all_hides_snapshot(config_manager):
    config_manager.set(SNAPSHOT_KEY, '{"provider": {}}')
    config_manager.set("custom_key", "custom_value")

    all_config = config_manager.get_all()
    assert SNAPSHOT_KEY not in all_config
    assert all_config["custom_key"] == "custom_value"
    assert all_config["web_host"] == "0.0.0.0"


def test_full_config(config_manager):
    full = config_manager.get_full_config()
    assert set(full["schema"]) == set(CONFIG_SCHEMA)
    assert full["groups"] == CONFIG_GROUPS
    assert all(entry["group"] in CONFIG_GROUPS for entry in CONFIG_SCHEMA.values())


def test_config_persistence(temp_db):
    """Test that configuration persists across ConfigManager instances."""
    cm1 = ConfigManager(temp_db)
    cm1.set("web_port", "7777")

    cm2 = ConfigManager(temp_db)
    assert cm2.get("web_port") == "7777"
