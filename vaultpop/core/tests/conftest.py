"""Fixtures for the session engine tests: mocked agent, clipboard and editor."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from vaultpop.agent.client import AgentResult, AgentStatus, VaultAgent
from vaultpop.config import Config, Shortcut
from vaultpop.core.channel import SecretChannel
from vaultpop.core.clock import SessionClock
from vaultpop.core.keymap import Mode
from vaultpop.core.session import SessionEngine
from vaultpop.utils.clipboard import Clipboard, ClipboardResult
from vaultpop.utils.editor import EditorResult, ExternalEditor


@pytest.fixture
def agent(sample_items):
    mock = MagicMock(spec=VaultAgent)
    mock.check_installed.return_value = True
    mock.get_status.return_value = AgentStatus(status="locked", user_email="me@example.com")
    mock.unlock.return_value = AgentResult(success=True, session="tok")
    mock.list_items.return_value = list(sample_items)
    mock.lock.return_value = AgentResult(success=True)
    mock.sync.return_value = AgentResult(success=True)
    mock.create_item.return_value = AgentResult(success=True)
    mock.edit_item.return_value = AgentResult(success=True)
    mock.delete_item.return_value = AgentResult(success=True)
    mock.get_totp.return_value = None
    return mock


@pytest.fixture
def clipboard():
    mock = MagicMock(spec=Clipboard)
    mock.copy.return_value = ClipboardResult(success=True)
    mock.clear.return_value = ClipboardResult(success=True)
    return mock


@pytest.fixture
def editor():
    mock = MagicMock(spec=ExternalEditor)
    mock.open.return_value = EditorResult(success=True, cancelled=True)
    return mock


@pytest.fixture
def config():
    return Config(
        shortcuts=(Shortcut(key="g", search="github", description="GitHub"), Shortcut(key="A", search="amazon")),
    )


@pytest.fixture
def exits():
    """Records every on_exit call."""
    return []


@pytest.fixture
def make_engine(agent, scheduler, clipboard, editor, config, wall_clock, isolated_config, exits):
    """Factory so tests can vary the config before the engine is built."""

    def _make(cfg: Config | None = None) -> SessionEngine:
        cfg = cfg or config
        channel = SecretChannel(
            scheduler, clipboard=clipboard, editor=editor, clear_seconds=cfg.clipboard_clear_seconds
        )
        engine = SessionEngine(
            agent,
            scheduler,
            config=cfg,
            channel=channel,
            clock=SessionClock(cfg.idle_threshold_seconds, now=wall_clock),
            config_path=isolated_config / "config.yaml",
            on_exit=lambda: exits.append(True),
        )
        return engine

    return _make


@pytest.fixture
def engine(make_engine):
    return make_engine()


@pytest.fixture
def unlock(scheduler):
    """Drive an engine from start() to SEARCH."""

    def _unlock(engine, password: str = "master") -> None:
        engine.start()
        scheduler.run_deferred()
        engine.submit_password(password)
        scheduler.run_deferred()

    return _unlock


@pytest.fixture
def unlocked(engine, unlock):
    unlock(engine)
    assert engine.mode is Mode.SEARCH
    return engine
