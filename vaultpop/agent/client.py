"""Vault agent client: every call vaultpop makes to the Bitwarden CLI.

Each operation runs `bw` synchronously. Command-style calls return an
`AgentResult`; `list_items` raises `AgentError` / `ParseError` because its
callers need to tell "agent refused" from "agent answered garbage".
"""

from __future__ import annotations

import base64
import json
import logging
import os
import subprocess
from dataclasses import dataclass
from typing import Any

from vaultpop.agent.errors import AgentError, ParseError
from vaultpop.agent.models import Item

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30
SYNC_TIMEOUT = 60


@dataclass
class CommandResult:
    stdout: str
    stderr: str
    exit_code: int

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


@dataclass
class AgentResult:
    success: bool
    session: str | None = None
    item: Item | None = None
    error: str | None = None


@dataclass
class AgentStatus:
    status: str  # locked, unlocked, unauthenticated
    user_email: str | None = None
    user_id: str | None = None


class VaultAgent:
    """Synchronous wrapper around the `bw` binary."""

    def __init__(self, binary: str | None = None, timeout: int = DEFAULT_TIMEOUT) -> None:
        self.binary = binary or os.environ.get("VAULTPOP_BW_BIN", "bw")
        self.timeout = timeout

    def _run(
        self,
        args: list[str],
        session: str | None = None,
        stdin: str | None = None,
        timeout: int | None = None,
        extra_env: dict[str, str] | None = None,
    ) -> CommandResult:
        env = os.environ.copy()
        if session:
            env["BW_SESSION"] = session
        if extra_env:
            env.update(extra_env)
        try:
            proc = subprocess.run(
                [self.binary, *args],
                input=stdin,
                capture_output=True,
                text=True,
                env=env,
                timeout=timeout or self.timeout,
            )
        except FileNotFoundError:
            return CommandResult("", f"{self.binary}: command not found", 127)
        except subprocess.TimeoutExpired:
            logger.warning("bw %s timed out", args[0] if args else "")
            return CommandResult("", f"{self.binary} {args[0]} timed out", 124)
        except OSError as e:
            return CommandResult("", str(e), 1)
        return CommandResult(proc.stdout or "", proc.stderr or "", proc.returncode)

    def check_installed(self) -> bool:
        return self._run(["--version"]).ok

    def get_status(self) -> AgentStatus:
        result = self._run(["status"])
        if not result.ok:
            return AgentStatus(status="unauthenticated")
        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError:
            return AgentStatus(status="unauthenticated")
        if not isinstance(data, dict) or data.get("status") not in ("locked", "unlocked", "unauthenticated"):
            return AgentStatus(status="unauthenticated")
        return AgentStatus(
            status=data["status"],
            user_email=data.get("userEmail"),
            user_id=data.get("userId"),
        )

    def unlock(self, password: str) -> AgentResult:
        # Password travels via the environment so it never shows up in argv
        result = self._run(
            ["unlock", "--raw", "--passwordenv", "BW_PASSWORD"],
            extra_env={"BW_PASSWORD": password},
        )
        if not result.ok:
            return AgentResult(success=False, error=result.stderr.strip() or "Failed to unlock vault")
        session = result.stdout.strip()
        if not session:
            return AgentResult(success=False, error="Vault agent returned an empty session")
        return AgentResult(success=True, session=session)

    def lock(self, session: str | None = None) -> AgentResult:
        result = self._run(["lock"], session=session)
        if not result.ok:
            error = result.stderr.strip() or "Failed to lock vault"
            logger.warning("Vault lock failed: %s", error)
            return AgentResult(success=False, error=error)
        return AgentResult(success=True)

    def sync(self, session: str) -> AgentResult:
        result = self._run(["sync"], session=session, timeout=SYNC_TIMEOUT)
        if not result.ok:
            return AgentResult(success=False, error=result.stderr.strip() or "Sync failed")
        return AgentResult(success=True)

    def list_items(self, session: str) -> list[Item]:
        """Return every decodable item. Raises AgentError / ParseError."""
        result = self._run(["list", "items"], session=session)
        if not result.ok:
            raise AgentError(result.stderr.strip() or f"bw list items exited with code {result.exit_code}")
        try:
            parsed = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise ParseError(f"Malformed item list: {e}") from e
        if not isinstance(parsed, list):
            raise ParseError("Malformed item list: response is not an array")

        items: list[Item] = []
        for entry in parsed:
            try:
                items.append(Item.from_dict(entry))
            except ParseError as e:
                logger.warning("Skipping vault item: %s", e)
        return items

    def create_item(self, session: str, item: dict[str, Any]) -> AgentResult:
        result = self._run(["create", "item", _encode(item)], session=session)
        if not result.ok:
            return AgentResult(success=False, error=result.stderr.strip() or "Failed to create item")
        created: Item | None = None
        try:
            created = Item.from_dict(json.loads(result.stdout))
        except (json.JSONDecodeError, ParseError) as e:
            logger.debug("Created item not decodable: %s", e)
        return AgentResult(success=True, item=created)

    def edit_item(self, session: str, item_id: str, item: dict[str, Any]) -> AgentResult:
        """Replace an item. `item` must already be merged onto the original."""
        result = self._run(["edit", "item", item_id, _encode(item)], session=session)
        if not result.ok:
            return AgentResult(success=False, error=result.stderr.strip() or "Failed to edit item")
        return AgentResult(success=True)

    def delete_item(self, session: str, item_id: str) -> AgentResult:
        result = self._run(["delete", "item", item_id], session=session)
        if not result.ok:
            return AgentResult(success=False, error=result.stderr.strip() or "Failed to delete item")
        return AgentResult(success=True)

    def get_totp(self, item_id: str, session: str) -> str | None:
        result = self._run(["get", "totp", item_id], session=session)
        if not result.ok:
            return None
        return result.stdout.strip() or None


def _encode(item: dict[str, Any]) -> str:
    """Same encoding as `bw encode`: base64 of the JSON document."""
    return base64.b64encode(json.dumps(item).encode("utf-8")).decode("ascii")
