"""TOTP codes from a login's stored seed (otpauth:// URI or base32 secret)."""

from __future__ import annotations

import logging
import time

import pyotp

logger = logging.getLogger(__name__)

DEFAULT_PERIOD = 30


def _build(seed: str) -> pyotp.TOTP | None:
    if seed.startswith("otpauth://"):
        otp = pyotp.parse_uri(seed)
        return otp if isinstance(otp, pyotp.TOTP) else None
    if seed.startswith("steam://"):
        # Steam Guard uses its own alphabet; left to the agent
        return None
    secret = seed.replace(" ", "").upper()
    return pyotp.TOTP(secret, digits=6, interval=DEFAULT_PERIOD)


def generate_totp(seed: str | None, now: float | None = None) -> str | None:
    """Return the current code, or None when the seed cannot be used locally."""
    if not seed:
        return None
    try:
        otp = _build(seed)
        if otp is None:
            return None
        return otp.at(now if now is not None else time.time())
    except Exception as e:
        logger.debug("Local TOTP generation failed: %s", type(e).__name__)
        return None


def seconds_remaining(seed: str | None = None, now: float | None = None) -> int:
    """Seconds until the current code rolls over."""
    try:
        otp = _build(seed) if seed else None
    except ValueError:
        otp = None
    period = otp.interval if otp is not None else DEFAULT_PERIOD
    now = now if now is not None else time.time()
    return int(period - (now % period))
