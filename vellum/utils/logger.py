"""
Shared loguru setup for vellum sessions.

Each render or extraction gets its own log directory holding one
<context>.log file at DEBUG level, while the console shows INFO and above.
Context-specific wrappers live in contexts/{context}/logger.py.
"""

import os
import platform
import sys
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

import vellum

load_dotenv()

CONSOLE_LEVEL = os.getenv("VELLUM_CONSOLE_LOG_LEVEL", "INFO")

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <7} | {message}"
CONSOLE_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <7}</level> | <level>{message}</level>"

LEVEL_COLORS = {
    "WARNING": "<yellow>",
    "ERROR": "<red>",
    "CRITICAL": "<bold><red>",
}


def setup_logger(
    context_name: str,
    log_dir: Path,
    extra_provenance: dict = None,
    console_level: str = None,
) -> Path:
    """
    Point loguru at a fresh session directory.

    Replaces any sinks from an earlier session, so consecutive renders in one
    process each get their own log file.

    Args:
        context_name: Context identifier ("template", "intake"), used as the file name
        log_dir: Directory for this session (created if missing)
        extra_provenance: Additional key-value pairs for the header
        console_level: Minimum console level (defaults to VELLUM_CONSOLE_LOG_LEVEL or INFO)

    Returns:
        Path to log file

    Example:
        from vellum.utils.logger import setup_logger

        log_file = setup_logger(
            context_name="template",
            log_dir=Path("outs/logs/render_20261018_101500"),
            extra_provenance={"Template": "modern.docx"},
        )
    """
    log_dir.mkdir(exist_ok=True, parents=True)
    log_file = log_dir / f"{context_name}.log"

    logger.remove()
    for level_name, color in LEVEL_COLORS.items():
        logger.level(level_name, color=color)

    logger.add(log_file, format=FILE_FORMAT, level="DEBUG", encoding="utf-8")
    logger.add(
        sys.stdout,
        format=CONSOLE_FORMAT,
        level=(console_level or CONSOLE_LEVEL).upper(),
        colorize=True,
    )

    _log_session_header(extra_provenance)
    return log_file


def _log_session_header(extra_context: dict = None) -> None:
    """Write who ran what, where, with which versions."""
    logger.debug("=" * 80)
    logger.debug(f"vellum {vellum.__version__} on Python {platform.python_version()}")
    logger.debug(f"Command: {' '.join(sys.argv)}")
    logger.debug(f"Working directory: {Path.cwd()}")

    for key, value in (extra_context or {}).items():
        logger.debug(f"{key}: {value}")

    logger.debug("=" * 80)
