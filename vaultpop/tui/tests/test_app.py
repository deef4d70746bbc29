"""Tests for VaultApp: Textual pilot tests."""

from __future__ import annotations

import pytest
from textual.widgets import Input

from vaultpop.core.keymap import Mode
from vaultpop.core.session import BW_NOT_FOUND
from vaultpop.tui.app import VaultApp
from vaultpop.tui.widgets import DetailPanel, NoticePanel, ResultsList, StatusBar


async def _settle(pilot, times: int = 3) -> None:
    for _ in range(times):
        await pilot.pause()


async def _unlock(app, pilot) -> None:
    await _settle(pilot)
    assert app.engine.mode is Mode.PASSWORD
    await pilot.press("s", "e", "c", "r", "e", "t")
    await pilot.press("enter")
    await _settle(pilot)
    assert app.engine.mode is Mode.SEARCH


class TestAppInit:
    def test_builds_engine(self, mock_agent):
        """The engine shares the app's agent and coordinator."""
        app = VaultApp(agent=mock_agent)
        assert app.engine.agent is mock_agent
        assert app.engine.coordinator is app.coordinator
        assert app.engine.on_exit == app.exit


class TestAppPilot:
    @pytest.mark.asyncio
    async def test_password_prompt(self, app):
        """Startup checks the CLI, then asks for the master password."""
        async with app.run_test() as pilot:
            await _settle(pilot)
            assert app.engine.mode is Mode.PASSWORD
            password = app.query_one("#password", Input)
            assert password.display
            assert password.has_focus
            assert "me@example.com" in app.query_one("#notice", NoticePanel)._format()

    @pytest.mark.asyncio
    async def test_missing_cli_shows_error(self, app, mock_agent):
        """A missing bw binary leaves the app on the error notice."""
        mock_agent.check_installed.return_value = False
        async with app.run_test() as pilot:
            await _settle(pilot)
            assert app.engine.mode is Mode.ERROR
            assert "bw" in app.query_one("#notice", NoticePanel)._format()
            assert app.engine.state.error == BW_NOT_FOUND

    @pytest.mark.asyncio
    async def test_unlock_lists_items(self, app, mock_agent):
        """Submitting the password unlocks and shows every item."""
        async with app.run_test() as pilot:
            await _unlock(app, pilot)
            mock_agent.unlock.assert_called_once_with("secret")
            assert app.query_one("#password", Input).value == ""
            assert app.query_one("#search", Input).has_focus
            text = app.query_one("#results", ResultsList)._format()
            assert "Amazon Shopping" in text
            assert "Showing 1-4 of 4" in text

    @pytest.mark.asyncio
    async def test_typing_filters(self, app):
        """Typing in the search box narrows the results."""
        async with app.run_test() as pilot:
            await _unlock(app, pilot)
            await pilot.press("g", "i", "t")
            await _settle(pilot)
            assert app.engine.state.query == "git"
            text = app.query_one("#results", ResultsList)._format()
            assert "GitHub Personal" in text
            assert "Zebra Mail" not in text

    @pytest.mark.asyncio
    async def test_navigation_and_detail(self, app):
        """Arrow keys move the selection and Enter opens the detail view."""
        async with app.run_test() as pilot:
            await _unlock(app, pilot)
            await pilot.press("down")
            await pilot.press("enter")
            await _settle(pilot)
            assert app.engine.mode is Mode.DETAIL
            detail = app.query_one("#detail", DetailPanel)
            assert detail.display
            assert "AWS Console" in detail._format()

            await pilot.press("escape")
            await _settle(pilot)
            assert app.engine.mode is Mode.SEARCH

    @pytest.mark.asyncio
    async def test_copy_shows_message(self, app):
        """Ctrl+U copies the username even while the search box has focus."""
        async with app.run_test() as pilot:
            await _unlock(app, pilot)
            await pilot.press("ctrl+u")
            await _settle(pilot)
            app.engine.channel.clipboard.copy.assert_called_once_with("user@example.com")
            assert "Username copied!" in app.query_one("#status-bar", StatusBar)._format()

    @pytest.mark.asyncio
    async def test_delete_prompt_cancelled(self, app, mock_agent):
        """Delete asks for confirmation; any key but y cancels."""
        async with app.run_test() as pilot:
            await _unlock(app, pilot)
            await pilot.press("enter")
            await _settle(pilot)
            await pilot.press("delete")
            await _settle(pilot)
            assert app.engine.mode is Mode.CONFIRM_DELETE
            assert "(y/N)" in app.query_one("#detail", DetailPanel)._format()

            await pilot.press("n")
            await _settle(pilot)
            assert app.engine.mode is Mode.DETAIL
            mock_agent.delete_item.assert_not_called()

    @pytest.mark.asyncio
    async def test_quit_locks_vault(self, app, mock_agent):
        """Ctrl+C shows the locking notice, locks once, then exits."""
        async with app.run_test() as pilot:
            await _unlock(app, pilot)
            await pilot.press("ctrl+c")
            assert app.engine.mode is Mode.EXITING
            await pilot.pause(0.3)
        mock_agent.lock.assert_called_once_with("tok")
        assert app.coordinator.locked
