"""
Main entry point for mcotp.

Initializes all components and starts the server. The main thread is the
control thread: it drains the Dispatcher while uvicorn serves the command API
from a background thread.
"""

import logging
import threading

import uvicorn

from .background import BackgroundRunner, Dispatcher
from .catalog import CatalogService
from .commands import QueueCommands
from .config_manager import ConfigManager
from .database import Database
from .library import LibraryBrowser
from .player import PlaylistPlayer
from .queue import QueueEngine
from .restart import RestartStore
from .web.server import create_app

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


class MusicServer:
    """Main server class that orchestrates all components."""

    def __init__(self, db_path=None):
        """
        Initialize all components.

        Args:
            db_path: Path to the catalog database (defaults to ~/.mcotp/mcotp.db)
        """
        logger.info("Initializing mcotp server...")

        self.database = Database(db_path)
        self.config_manager = ConfigManager(self.database)
        self.catalog = CatalogService(self.database)

        # Catalog work runs on one worker; results come back to the control thread
        self.dispatcher = Dispatcher()
        self.runner = BackgroundRunner(self.dispatcher)

        self.player = PlaylistPlayer()
        self.restart_store = RestartStore(self.config_manager)

        snapshot = None
        if self.config_manager.get_bool("restore_on_startup", True):
            snapshot = self.restart_store.load()
            if snapshot:
                logger.info("Resuming saved queue")
        else:
            logger.info("Resume disabled, discarding saved queue")
            self.restart_store.clear()

        self.engine = QueueEngine(self.catalog, self.player, self.runner, snapshot)
        self.commands = QueueCommands(self.engine)
        self.browser = LibraryBrowser(self.catalog)

        if self.config_manager.get_bool("autosave_snapshot", True):
            self.player.add_listener(self._autosave)

        self.web_app = create_app(
            self.engine,
            self.commands,
            self.dispatcher,
            self.browser,
            self.config_manager,
        )

        # Uvicorn server instance (will be created in run())
        self.uvicorn_server = None
        self.server_thread = None

        logger.info("mcotp server initialized")

    def _autosave(self, item):
        if item is None:
            return
        snapshot = self.engine.snapshot()
        self.runner.submit(lambda: self.restart_store.write(snapshot))

    def run(self):
        """Start the server and run the control loop until interrupted."""
        logger.info("Starting mcotp server...")

        self.engine.start()
        timeout = self.config_manager.get_float("fetch_timeout_seconds", 10.0)
        if not self.engine.wait_until_idle(timeout=timeout):
            logger.warning("First batch not ready after %.0f seconds", timeout)

        host = self.config_manager.get("web_host")
        port = self.config_manager.get_int("web_port", 8000)

        logger.info("=" * 60)
        logger.info("mcotp is running!")
        logger.info("API: http://%s:%s/api", host, port)
        logger.info("=" * 60)

        config = uvicorn.Config(self.web_app, host=host, port=port, log_level="info")
        self.uvicorn_server = uvicorn.Server(config)

        def run_server():
            try:
                self.uvicorn_server.run()
            finally:
                self.dispatcher.stop()

        self.server_thread = threading.Thread(
            target=run_server, daemon=False, name="UvicornServer"
        )
        self.server_thread.start()

        self.dispatcher.run_forever()

    def stop(self):
        """Stop all components."""
        logger.info("Stopping mcotp server...")

        if self.uvicorn_server:
            self.uvicorn_server.should_exit = True

        if self.server_thread and self.server_thread.is_alive():
            self.server_thread.join(timeout=2.0)

        if self.engine:
            self.engine.shutdown()

        # Pending autosaves must not land after the final save
        if self.runner:
            self.runner.shutdown()

        if self.engine:
            self.restart_store.save(self.engine)

        if self.database:
            self.database.close()

        logger.info("mcotp server stopped")


def main():
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="mcotp - Music catalog playback server")
    parser.add_argument("--db", dest="db_path", help="Path to the catalog database")
    args = parser.parse_args()

    server = MusicServer(db_path=args.db_path)
    try:
        server.run()
    except KeyboardInterrupt:
        pass
    finally:
        server.stop()


if __name__ == "__main__":
    main()
