# -*- coding: utf-8 -*-
import os
import logging
from dotenv import load_dotenv

# --- Load Environment Variables ---
load_dotenv()
logger = logging.getLogger(__name__) # Module logger for early config warnings


def _int_from_env(name: str, default: int) -> int:
    """Reads an integer from the environment, accepting hex (0x..) or decimal."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip(), 0)
    except ValueError:
        logger.warning(f"WARNING: {name}={raw!r} is not an integer. Using default {default:#x}.")
        return default


# --- Multicodec Defaults ---
# Codecs are opaque integers forwarded as-is; these only seed the CLI and helpers.
DEFAULT_CONTENT_CODEC = 0x55 # raw
DEFAULT_CAR_CID_CODEC = 0x0202 # car
CAR_CONTENT_CODEC = _int_from_env("CAR_CONTENT_CODEC", DEFAULT_CONTENT_CODEC)
CAR_CID_CODEC = _int_from_env("CAR_CID_CODEC", DEFAULT_CAR_CID_CODEC)

# --- CAR Header Encoding ---
HEADER_ENCODINGS = ("dag-cbor", "cbor-bytes", "json")
DEFAULT_HEADER_ENCODING = "dag-cbor"
CAR_HEADER_ENCODING = os.getenv("CAR_HEADER_ENCODING", DEFAULT_HEADER_ENCODING).strip().lower()

# --- Streaming ---
DEFAULT_BUFFER_SIZE = 8 * 1024
CAR_BUFFER_SIZE = _int_from_env("CAR_BUFFER_SIZE", DEFAULT_BUFFER_SIZE)

# --- Logging ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper()

# --- Sanity Checks ---
if CAR_HEADER_ENCODING not in HEADER_ENCODINGS:
    logger.warning(f"WARNING: Unknown CAR_HEADER_ENCODING {CAR_HEADER_ENCODING!r}. Falling back to {DEFAULT_HEADER_ENCODING!r}.")
    CAR_HEADER_ENCODING = DEFAULT_HEADER_ENCODING
if CAR_CONTENT_CODEC < 0 or CAR_CID_CODEC < 0:
    logger.warning("WARNING: Negative codec values are not valid multicodecs. Falling back to defaults.")
    CAR_CONTENT_CODEC = DEFAULT_CONTENT_CODEC
    CAR_CID_CODEC = DEFAULT_CAR_CID_CODEC
if CAR_BUFFER_SIZE <= 0:
    logger.warning(f"WARNING: CAR_BUFFER_SIZE must be positive. Using {DEFAULT_BUFFER_SIZE}.")
    CAR_BUFFER_SIZE = DEFAULT_BUFFER_SIZE
if LOG_LEVEL not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
    logger.warning(f"WARNING: Unknown LOG_LEVEL {LOG_LEVEL!r}. Using INFO.")
    LOG_LEVEL = "INFO"
