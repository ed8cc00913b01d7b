"""
Templating context logger.

Every message carries a [template] prefix. Engine and interpreter code logs
through these helpers rather than through utils.logger, and keeps per-scope
detail at DEBUG so it only reaches the session file.
"""

from pathlib import Path

from loguru import logger

from vellum.utils.logger import setup_logger as _setup_logger

CONTEXT_PREFIX = "[template]"


def setup_templating_logger(log_dir: Path, template_name: str = "") -> Path:
    """
    Setup logger for templating context.

    Configures loguru with provenance tracking and templating-specific context.

    Args:
        log_dir: Directory for this templating session
        template_name: Template file name for provenance

    Returns:
        Path to log file

    Example:
        from vellum.contexts.templating.logger import setup_templating_logger, _log_info

        log_file = setup_templating_logger(log_dir, template_name="modern.docx")
        _log_info("Starting render...")
    """
    return _setup_logger(
        context_name="template",
        log_dir=log_dir,
        extra_provenance={"Template": template_name} if template_name else None,
    )


# Wrapper functions with automatic [template] prefix


def _log_info(message: str) -> None:
    """Log info message with [template] prefix."""
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_success(message: str) -> None:
    """Log success message with [template] prefix."""
    logger.success(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    """Log error message with [template] prefix."""
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    """Log warning message with [template] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [template] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


# High-level templating-specific logging helpers


def log_render_start(template_name: str, data_path: Path, log_file: Path) -> None:
    """Log start of a render with context."""
    _log_info(f"Starting to render {template_name}")
    _log_info(f"Log file: {log_file}")
    _log_debug(f"Data: {data_path}")


def log_render_result(
    template_name: str,
    result,  # RenderResult
    elapsed_time: float,
) -> None:
    """
    Log render result with part details.

    Args:
        template_name: Template identifier
        result: RenderResult from render_template_file()
        elapsed_time: Time taken
    """
    if result.success:
        _log_success(f"{template_name}: render succeeded ({elapsed_time:.2f}s)")
        if result.parts_processed:
            _log_info(f"  Parts: {', '.join(result.parts_processed)}")
        if result.output_path:
            _log_info(f"  Output: {result.output_path}")
        if result.used_sample_fallback:
            _log_warning("  Rendered with the sample fallback record")
    else:
        _log_error(f"Failed to render {template_name} ({elapsed_time:.2f}s)")
        if result.error:
            _log_error(f"  Error: {result.error}")


def log_dropped_tag(kind: str, name: str, reason: str, warn: bool = False) -> None:
    """Record an unbalanced loop/conditional tag that was removed."""
    log = _log_warning if warn else _log_debug
    log(f"{reason}; dropped {kind} '{name}'")


def log_part_rendered(part_name: str, rewritten: int, scopes: int) -> None:
    """Summarize one XML part after interpretation."""
    if rewritten:
        _log_debug(f"{part_name}: rewrote {rewritten} of {scopes} scope(s)")
    else:
        _log_debug(f"{part_name}: no directives resolved, part kept byte-for-byte")
