"""Test fixtures for the vaultpop TUI."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from vaultpop.agent.client import AgentResult, AgentStatus, VaultAgent
from vaultpop.config import Config
from vaultpop.tui.app import VaultApp
from vaultpop.utils.clipboard import Clipboard, ClipboardResult
from vaultpop.utils.editor import EditorResult, ExternalEditor


@pytest.fixture
def mock_agent(sample_items):
    """A mocked VaultAgent with a locked vault holding the sample logins."""
    agent = MagicMock(spec=VaultAgent)
    agent.check_installed.return_value = True
    agent.get_status.return_value = AgentStatus(status="locked", user_email="me@example.com")
    agent.unlock.return_value = AgentResult(success=True, session="tok")
    agent.list_items.return_value = list(sample_items)
    agent.lock.return_value = AgentResult(success=True)
    agent.sync.return_value = AgentResult(success=True)
    agent.get_totp.return_value = None
    return agent


@pytest.fixture
def app(mock_agent):
    """VaultApp with the clipboard and editor replaced by mocks."""
    app = VaultApp(agent=mock_agent, config=Config())
    app.engine.channel.clipboard = MagicMock(spec=Clipboard)
    app.engine.channel.clipboard.copy.return_value = ClipboardResult(success=True)
    app.engine.channel.editor = MagicMock(spec=ExternalEditor)
    app.engine.channel.editor.open.return_value = EditorResult(success=True, cancelled=True)
    return app
