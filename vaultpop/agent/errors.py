"""Error taxonomy for vaultpop.

Every collaborator failure is caught at the operation boundary in
`vaultpop.core.session` and turned into a transient message. These classes
exist so the boundary can tell them apart.
"""

from __future__ import annotations


class VaultpopError(Exception):
    pass


class AgentError(VaultpopError):
    """The vault agent exited non-zero (or could not be started)."""


class ParseError(VaultpopError):
    """Malformed JSON from the agent or malformed YAML from the user."""


class ValidationError(VaultpopError):
    """Edited content rejected before any mutating call was made."""


class EditorError(VaultpopError):
    """Editor exited non-zero or the temp-file round trip failed."""


class UnavailableError(VaultpopError):
    """The requested field does not exist on the active item."""

    def __init__(self, field_name: str) -> None:
        self.field_name = field_name
        super().__init__(f"No {field_name} available")
