"""
Interactive session engine.

Public API:
    SessionEngine          → mode state machine driving one vaultpop session
    Mode                   → closed set of UI modes
    SearchIndex, SortMode  → fuzzy ranking over the item store
    ShutdownCoordinator    → lock-exactly-once on every exit path
"""

from __future__ import annotations

from vaultpop.core.keymap import Mode
from vaultpop.core.search import SearchIndex, SearchResult, SortMode
from vaultpop.core.session import SessionEngine, SessionState
from vaultpop.core.shutdown import ShutdownCoordinator, TokenHolder

__all__ = [
    "Mode",
    "SearchIndex",
    "SearchResult",
    "SessionEngine",
    "SessionState",
    "ShutdownCoordinator",
    "SortMode",
    "TokenHolder",
]
