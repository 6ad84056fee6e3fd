"""
Environment configuration.

    BLOCKPRINT_ENV             deployment label (default "development")
    BLOCKPRINT_MAX_BLOCKS      output cap per blueprint (default 200)
    BLOCKPRINT_MAX_CALL_DEPTH  nested for/call ceiling (default 24)
    BLOCKPRINT_MAX_STEPS       executed step ceiling (default 50000)
    BLOCKPRINT_MAX_CALLS       call step ceiling (default 500)
    BLOCKPRINT_CATALOG_FILE    JSON block catalog loaded at startup
    ALLOWED_ORIGINS            comma-separated CORS origins (default "*")
"""

from __future__ import annotations
import os

from .engine_core.interpreter import ExpansionLimits


BLOCKPRINT_ENV = os.getenv("BLOCKPRINT_ENV", "development")
BLOCKPRINT_CATALOG_FILE = os.getenv("BLOCKPRINT_CATALOG_FILE", None)
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def load_limits() -> ExpansionLimits:
    """Build expansion limits from the environment."""
    defaults = ExpansionLimits()
    return ExpansionLimits(
        max_blocks=_int_env("BLOCKPRINT_MAX_BLOCKS", defaults.max_blocks),
        max_call_depth=_int_env("BLOCKPRINT_MAX_CALL_DEPTH", defaults.max_call_depth),
        max_steps=_int_env("BLOCKPRINT_MAX_STEPS", defaults.max_steps),
        max_calls=_int_env("BLOCKPRINT_MAX_CALLS", defaults.max_calls),
    )
