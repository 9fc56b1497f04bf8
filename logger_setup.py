# -*- coding: utf-8 -*-
import logging
import sys

import config

def setup_logging():
    """Configures the application's logger."""
    logger = logging.getLogger("IpfsCar") # Use a specific name for the library's logger
    if not logger.handlers: # Avoid adding handlers multiple times
        logger.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))
        stream_handler = logging.StreamHandler(sys.stdout) # Use stdout
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s [%(threadName)s] %(levelname)s - %(message)s'
        )
        stream_handler.setFormatter(formatter)
        logger.addHandler(stream_handler)
        logger.propagate = False # Prevent duplication if root logger also has handlers
        logger.debug("--- IpfsCar Logger Initialized ---")
    return logger

def set_log_level(level: str | int):
    """Changes the level of the IpfsCar logger at runtime (e.g. from --verbose)."""
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    logging.getLogger("IpfsCar").setLevel(level)

def set_log_stream(stream):
    """Points the IpfsCar handler at another stream; returns the previous one."""
    previous = None
    for handler in logging.getLogger("IpfsCar").handlers:
        if isinstance(handler, logging.StreamHandler):
            previous = handler.setStream(stream) or previous
    return previous

def get_log_prefix(job_id: str | None = None, component: str | None = None) -> str:
    """Creates a standardized log prefix string."""
    parts = []
    if job_id:
        parts.append(f"Job:{job_id[:6]}")
    if component:
        parts.append(component)

    if not parts:
        return "[System]"
    else:
        return f"[{'|'.join(parts)}]"

# Initialize logger when module is loaded
logger = setup_logging()
