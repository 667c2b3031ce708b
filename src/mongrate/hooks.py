"""
Startup hooks for hosting frameworks.

    app = web.Application()
    install_startup_hook(app, MigrationRunner(config))

The hook runs the migrations in a worker thread so the event loop is not
blocked while the runner talks to MongoDB.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from mongrate.core.runner import MigrationRunner
from mongrate.core.types import RunReport


def startup_hook(runner: MigrationRunner) -> Callable[[Any], Awaitable[RunReport]]:
    """Build an ``on_startup`` coroutine function for ``runner``."""

    async def _run_migrations(app: Any) -> RunReport:
        return await asyncio.to_thread(runner.on_startup)

    return _run_migrations


def install_startup_hook(app: Any, runner: MigrationRunner) -> None:
    """
    Register ``runner`` on an aiohttp-style application.

    Args:
        app: Object exposing an ``on_startup`` list of coroutine functions
        runner: Runner to execute when the application starts
    """
    app.on_startup.append(startup_hook(runner))
