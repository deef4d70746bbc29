"""
Root-level shared test fixtures.

Inherited by the agent, core, utils and tui suites and by the root tests/
directory. Nothing here touches the real `bw` binary, the real clipboard or
the user's config directory.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from vaultpop.agent.models import Item
from vaultpop.config import reset_config


class FakeTimerHandle:
    def __init__(self, due: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Deterministic Scheduler: timers fire only from `advance()`."""

    def __init__(self) -> None:
        self.now = 0.0
        self.handles: list[FakeTimerHandle] = []
        self.deferred: list[Callable[[], None]] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> FakeTimerHandle:
        handle = FakeTimerHandle(self.now + delay, callback)
        self.handles.append(handle)
        return handle

    def defer(self, callback: Callable[[], None]) -> None:
        self.deferred.append(callback)

    @property
    def pending(self) -> list[FakeTimerHandle]:
        return [h for h in self.handles if not h.cancelled and not h.fired]

    def run_deferred(self) -> None:
        while self.deferred:
            self.deferred.pop(0)()

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [h for h in self.pending if h.due <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.due)
            self.now = handle.due
            handle.fired = True
            handle.callback()
            self.run_deferred()
        self.now = target


class FakeWallClock:
    """Callable wall clock; `jump()` simulates a suspend/resume gap."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.time = start

    def __call__(self) -> float:
        return self.time

    def jump(self, seconds: float) -> None:
        self.time += seconds


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def wall_clock():
    return FakeWallClock()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the config directory at tmp_path and drop the singleton."""
    config_dir = tmp_path / "config"
    monkeypatch.setenv("VAULTPOP_CONFIG_DIR", str(config_dir))
    monkeypatch.delenv("VAULTPOP_BW_BIN", raising=False)
    reset_config()
    yield config_dir
    reset_config()


def login_json(
    name: str,
    item_id: str | None = None,
    username: str | None = "user@example.com",
    password: str | None = "hunter2",
    totp: str | None = None,
    uris: list[str] | None = None,
    revision_date: str | None = None,
    **extra: Any,
) -> dict[str, Any]:
    data = {
        "id": item_id or f"id-{name.lower().replace(' ', '-')}",
        "type": 1,
        "name": name,
        "notes": None,
        "favorite": False,
        "reprompt": 0,
        "revisionDate": revision_date,
        "organizationId": None,
        "folderId": None,
        "login": {
            "username": username,
            "password": password,
            "totp": totp,
            "uris": [{"match": None, "uri": u} for u in (uris or [])],
        },
    }
    data.update(extra)
    return data


@pytest.fixture
def make_login():
    """Factory: Item for a login, built through the agent's JSON decoder."""

    def _make(name: str, **kwargs: Any) -> Item:
        return Item.from_dict(login_json(name, **kwargs))

    return _make


@pytest.fixture
def card_item():
    return Item.from_dict(
        {
            "id": "id-card",
            "type": 3,
            "name": "Visa Card",
            "card": {
                "cardholderName": "Jane Doe",
                "brand": "Visa",
                "number": "4111111111111111",
                "expMonth": "12",
                "expYear": "2030",
                "code": "123",
            },
        }
    )


@pytest.fixture
def identity_item():
    return Item.from_dict(
        {
            "id": "id-identity",
            "type": 4,
            "name": "Passport",
            "identity": {"firstName": "Jane", "lastName": "Doe", "email": "jane@example.com"},
        }
    )


@pytest.fixture
def note_item():
    return Item.from_dict(
        {"id": "id-note", "type": 2, "name": "Wifi", "notes": "network: home\npassword: abc", "secureNote": {"type": 0}}
    )


@pytest.fixture
def sample_items(make_login):
    """The four logins used throughout the search scenarios."""
    return [
        make_login("Zebra Mail", revision_date="2024-01-03T10:00:00.000Z", uris=["https://mail.zebra.com"]),
        make_login("GitHub Personal", revision_date="2024-05-01T08:00:00.000Z", uris=["https://github.com"]),
        make_login("AWS Console", revision_date=None, uris=["https://console.aws.amazon.com"]),
        make_login("Amazon Shopping", revision_date="2023-11-20T12:00:00.000Z", uris=["https://amazon.com"]),
    ]
