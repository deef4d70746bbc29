"""
Vault agent boundary: everything vaultpop knows about the `bw` CLI.

Public API:
    VaultAgent            → subprocess wrapper around `bw`
    Item, CipherType      → decoded vault entries
    AgentError, ...       → error taxonomy shared by the whole package
"""

from __future__ import annotations

from vaultpop.agent.client import AgentResult, AgentStatus, VaultAgent
from vaultpop.agent.errors import (
    AgentError,
    EditorError,
    ParseError,
    UnavailableError,
    ValidationError,
    VaultpopError,
)
from vaultpop.agent.models import CipherType, CustomField, Item, LoginData, Uri

__all__ = [
    "AgentError",
    "AgentResult",
    "AgentStatus",
    "CipherType",
    "CustomField",
    "EditorError",
    "Item",
    "LoginData",
    "ParseError",
    "UnavailableError",
    "Uri",
    "ValidationError",
    "VaultAgent",
    "VaultpopError",
]
