"""
Tests for the application startup hook.
"""

import asyncio

from aiohttp import web

from changelog_calls import CALLS
from mongrate.config.settings import MigrationConfig
from mongrate.core.runner import MigrationRunner
from mongrate.core.types import RunState
from mongrate.hooks import install_startup_hook, startup_hook


class TestStartupHook:
    def test_hook_runs_migrations(self, database):
        runner = MigrationRunner(MigrationConfig(scan="example_changelogs"), database=database)
        hook = startup_hook(runner)

        report = asyncio.run(hook(None))

        assert report.state == RunState.DONE
        assert CALLS == ["A", "B"]

    def test_install_on_aiohttp_app(self, database):
        app = web.Application()
        runner = MigrationRunner(MigrationConfig(scan="example_changelogs"), database=database)

        install_startup_hook(app, runner)
        asyncio.run(app.on_startup[-1](app))

        assert database["dbchangelog"].count_documents({}) == 2

    def test_disabled_runner_hook(self, database):
        runner = MigrationRunner(MigrationConfig(enabled=False), database=database)
        report = asyncio.run(startup_hook(runner)(None))
        assert report.state == RunState.DISABLED
        assert CALLS == []
