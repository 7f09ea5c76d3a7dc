"""Configuration constants, environment overrides, and .env loading.

WHY: Chunk sizes, default charsets, capability switches, and service
settings are plain data that operators tune per deployment. Keeping
them in one module makes them easy to find and override without
touching conversion logic.

HOW: python-dotenv loads the .env file on import. Constants are
module-level values read from the environment with sensible defaults.
The library default chunk size (98304) lives in core.options; the
values here are what the CLI and HTTP service pass in.

RULES:
- All values can be overridden via environment variables
- Boolean flags accept "true"/"false" (case-insensitive)
- Capability flags are only read by probe_capabilities(), once per process
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

# Load .env from the project root (where the process is started)
load_dotenv()


def _env_flag(name: str, default: bool) -> bool:
    """Read a boolean flag from the environment."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# ---------------------------------------------------------------------------
# Conversion defaults (CLI and HTTP service)
# ---------------------------------------------------------------------------

CHUNK_SIZE = int(os.getenv("CONVERTER_CHUNK_SIZE", str(96 * 1024)))
INPUT_CHARSET = os.getenv("CONVERTER_INPUT_CHARSET", "utf8")
OUTPUT_CHARSET = os.getenv("CONVERTER_OUTPUT_CHARSET", "utf8")

# ---------------------------------------------------------------------------
# Capability probe inputs
# ---------------------------------------------------------------------------

ENABLE_DEFERRED = _env_flag("CONVERTER_ENABLE_DEFERRED", True)
ENABLE_PUSH_STREAM = _env_flag("CONVERTER_ENABLE_PUSH_STREAM", True)
ENABLE_PULL_STREAM = _env_flag("CONVERTER_ENABLE_PULL_STREAM", True)

# ---------------------------------------------------------------------------
# Streams and remote objects
# ---------------------------------------------------------------------------

PUSH_HIGH_WATER_MARK = int(os.getenv("CONVERTER_PUSH_HIGH_WATER_MARK", "4"))
"""Chunks a push producer may run ahead of its subscriber before pausing."""

HTTP_TIMEOUT_S = float(os.getenv("CONVERTER_HTTP_TIMEOUT_S", "60"))

# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

LOG_LEVEL = os.getenv("CONVERTER_LOG_LEVEL", "INFO").upper()
SERVER_HOST = os.getenv("CONVERTER_HOST", "0.0.0.0")
SERVER_PORT = int(os.getenv("CONVERTER_PORT", "8000"))
