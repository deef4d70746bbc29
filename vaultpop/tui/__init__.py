"""
vaultpop TUI: the Textual front end of the session engine.
"""

from __future__ import annotations


def check_textual() -> bool:
    """Check if Textual is installed and available."""
    try:
        import textual  # noqa: F401

        return True
    except ImportError:
        return False
