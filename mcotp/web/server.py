"""
FastAPI web server for mcotp.

Provides the REST API for mode changes, player transport, queue status, and
library browsing. Anything that touches the queue engine is run on the
control thread through the Dispatcher.
"""

import asyncio
import logging
from concurrent.futures import Future
from typing import List

from fastapi import Depends, FastAPI, HTTPException, Request
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from ..background import Dispatcher
from ..commands import QueueCommands
from ..config_manager import CONFIG_SCHEMA, ConfigManager
from ..ids import InvalidExternalId
from ..library import ROOT_ID, LibraryBrowser, NavigationTask, UnknownLibraryItem
from ..queue import QueueEngine

logger = logging.getLogger(__name__)


# Request models
class PlayItemRequest(BaseModel):
    id: str  # External id like "band:12" or "song:40"


class NavigateRequest(BaseModel):
    parent_ids: List[str]
    focus_id: str


class ConfigUpdateRequest(BaseModel):
    key: str
    value: str


# Dependencies to get components
def get_engine(request: Request) -> QueueEngine:
    """Get QueueEngine from app state."""
    return request.app.state.engine


def get_commands(request: Request) -> QueueCommands:
    """Get QueueCommands from app state."""
    return request.app.state.commands


def get_dispatcher(request: Request) -> Dispatcher:
    """Get the control-thread Dispatcher from app state."""
    return request.app.state.dispatcher


def get_browser(request: Request) -> LibraryBrowser:
    """Get LibraryBrowser from app state."""
    return request.app.state.browser


def get_config_manager(request: Request) -> ConfigManager:
    """Get ConfigManager from app state."""
    return request.app.state.config_manager


async def on_control_thread(dispatcher: Dispatcher, func, *args):
    """Run func on the control thread and await its result."""
    return await asyncio.wrap_future(dispatcher.call(func, *args))


def create_app(
    engine: QueueEngine,
    commands: QueueCommands,
    dispatcher: Dispatcher,
    browser: LibraryBrowser,
    config_manager: ConfigManager,
) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        engine: QueueEngine instance
        commands: QueueCommands bound to the engine
        dispatcher: Dispatcher drained by the engine's control thread
        browser: LibraryBrowser instance
        config_manager: ConfigManager instance

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(title="mcotp", version="1.0.0")

    app.state.engine = engine
    app.state.commands = commands
    app.state.dispatcher = dispatcher
    app.state.browser = browser
    app.state.config_manager = config_manager

    # Status endpoints
    @app.get("/api/status")
    async def get_status(
        engine: QueueEngine = Depends(get_engine),
        dispatcher: Dispatcher = Depends(get_dispatcher),
    ):
        """Get play mode, current item, and upcoming items."""
        return await on_control_thread(dispatcher, engine.get_status)

    @app.get("/api/snapshot")
    async def get_snapshot(
        engine: QueueEngine = Depends(get_engine),
        dispatcher: Dispatcher = Depends(get_dispatcher),
    ):
        """Get the resumable snapshot document."""
        snapshot = await on_control_thread(dispatcher, engine.snapshot)
        return snapshot.to_dict()

    # Mode-change commands
    async def run_command(dispatcher: Dispatcher, engine: QueueEngine, func, *args):
        try:
            await on_control_thread(dispatcher, func, *args)
            return await on_control_thread(dispatcher, engine.get_status)
        except Exception as e:
            logger.error("Error running command %s: %s", func.__name__, e, exc_info=True)
            raise HTTPException(status_code=500, detail=str(e))

    @app.post("/api/commands/band")
    async def band_lock(
        commands: QueueCommands = Depends(get_commands),
        engine: QueueEngine = Depends(get_engine),
        dispatcher: Dispatcher = Depends(get_dispatcher),
    ):
        """Toggle locking onto the playing song's band."""
        return await run_command(dispatcher, engine, commands.change_band_lock)

    @app.post("/api/commands/album")
    async def album_lock(
        commands: QueueCommands = Depends(get_commands),
        engine: QueueEngine = Depends(get_engine),
        dispatcher: Dispatcher = Depends(get_dispatcher),
    ):
        """Toggle playing through the playing song's album."""
        return await run_command(dispatcher, engine, commands.change_album_lock)

    @app.post("/api/commands/year")
    async def year_lock(
        commands: QueueCommands = Depends(get_commands),
        engine: QueueEngine = Depends(get_engine),
        dispatcher: Dispatcher = Depends(get_dispatcher),
    ):
        """Toggle locking onto the playing song's year."""
        return await run_command(dispatcher, engine, commands.change_year_lock)

    @app.post("/api/commands/submode")
    async def sub_mode(
        commands: QueueCommands = Depends(get_commands),
        engine: QueueEngine = Depends(get_engine),
        dispatcher: Dispatcher = Depends(get_dispatcher),
    ):
        """Cycle the sub-mode of the current mode."""
        return await run_command(dispatcher, engine, commands.change_sub_mode)

    @app.post("/api/play-item")
    async def play_item(
        request_data: PlayItemRequest,
        commands: QueueCommands = Depends(get_commands),
        engine: QueueEngine = Depends(get_engine),
        dispatcher: Dispatcher = Depends(get_dispatcher),
    ):
        """Play a band, album, decade, year, location, or song picked from the library."""
        try:
            await on_control_thread(dispatcher, commands.force_play_item, request_data.id)
        except InvalidExternalId as e:
            raise HTTPException(status_code=400, detail=str(e))
        except Exception as e:
            logger.error("Error playing item %s: %s", request_data.id, e, exc_info=True)
            raise HTTPException(status_code=500, detail=str(e))
        return await on_control_thread(dispatcher, engine.get_status)

    # Player transport
    @app.post("/api/player/next")
    async def next_item(
        engine: QueueEngine = Depends(get_engine),
        dispatcher: Dispatcher = Depends(get_dispatcher),
    ):
        """Advance the player to the next queued item."""
        advanced = await on_control_thread(dispatcher, engine.player.advance)
        status = await on_control_thread(dispatcher, engine.get_status)
        status["advanced"] = advanced
        return status

    # Library endpoints
    @app.get("/api/library")
    async def get_library_root(browser: LibraryBrowser = Depends(get_browser)):
        """List the top-level browse categories."""
        children = await run_in_threadpool(browser.get_children, ROOT_ID)
        return {"parent_id": ROOT_ID, "children": [c.to_dict() for c in children]}

    @app.get("/api/library/{parent_id}")
    async def get_library_children(
        parent_id: str,
        browser: LibraryBrowser = Depends(get_browser),
    ):
        """List the children of a browse node."""
        try:
            children = await run_in_threadpool(browser.get_children, parent_id)
        except UnknownLibraryItem:
            raise HTTPException(status_code=404, detail=f"Unknown library item: {parent_id}")
        return {"parent_id": parent_id, "children": [c.to_dict() for c in children]}

    @app.post("/api/library/navigate")
    async def navigate(
        request_data: NavigateRequest,
        browser: LibraryBrowser = Depends(get_browser),
        engine: QueueEngine = Depends(get_engine),
        dispatcher: Dispatcher = Depends(get_dispatcher),
    ):
        """Walk down a path of parents and locate a focus item in the final listing."""
        task = NavigationTask(browser, list(request_data.parent_ids), request_data.focus_id)
        done: Future = Future()
        try:
            await on_control_thread(
                dispatcher, task.run_async, engine.runner, done.set_result, done.set_exception
            )
            result = await asyncio.wrap_future(done)
        except Exception as e:
            logger.error("Error navigating to %s: %s", request_data.parent_ids, e, exc_info=True)
            raise HTTPException(status_code=500, detail=str(e))
        return result.to_dict()

    # Configuration endpoints
    @app.get("/api/config")
    async def get_config(config_mgr: ConfigManager = Depends(get_config_manager)):
        """Get configuration values, schema, and groups."""
        return config_mgr.get_full_config()

    @app.patch("/api/config")
    async def update_config(
        request_data: ConfigUpdateRequest,
        config_mgr: ConfigManager = Depends(get_config_manager),
    ):
        """Update an editable configuration value."""
        if request_data.key not in CONFIG_SCHEMA:
            raise HTTPException(
                status_code=400, detail=f"Unknown config key: {request_data.key}"
            )
        if not config_mgr.set(request_data.key, request_data.value):
            raise HTTPException(status_code=500, detail="Failed to save configuration")
        return {"status": "updated", "key": request_data.key}

    return app
