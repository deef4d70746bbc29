"""
vaultpop: a popup terminal client for a Bitwarden vault.

The vault itself (encryption, sync, storage) belongs to the Bitwarden CLI.
vaultpop keeps an in-memory view of the unlocked vault, ranks it as you type,
and re-locks the vault on every exit path.
"""

from __future__ import annotations

import logging

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())
