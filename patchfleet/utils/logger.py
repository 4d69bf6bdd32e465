"""Secure logging utilities for patchfleet.

Provides sanitized logging that removes sensitive information like tokens,
emails, and API keys before outputting to logs.
"""
import json
import logging
import re
from typing import Any, Dict, Optional

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format=DEFAULT_FORMAT,
    datefmt='%Y-%m-%d %H:%M:%S'
)

logger = logging.getLogger('patchfleet')


def configure_logging(level: str = "INFO", fmt: Optional[str] = None) -> None:
    """Apply the configured level (``--debug`` switches to DEBUG) and format."""
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    if fmt:
        formatter = logging.Formatter(fmt, datefmt='%Y-%m-%d %H:%M:%S')
        for handler in logging.getLogger().handlers:
            handler.setFormatter(formatter)


def sanitize_text(text: str) -> str:
    """Remove sensitive information from text.

    Args:
        text: Input text that may contain sensitive data

    Returns:
        Sanitized text with sensitive patterns replaced
    """
    if not text:
        return text

    # Email addresses
    text = re.sub(r'[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}', '<email>', text)

    # GitHub tokens (classic, fine-grained, OAuth, app)
    text = re.sub(r'github_pat_[a-zA-Z0-9_]{20,}', '<github-token>', text)
    text = re.sub(r'gh[pousr]_[a-zA-Z0-9]{20,}', '<github-token>', text)

    # Authorization header values
    text = re.sub(r'(Bearer|token)\s+[^\s"\']+', r'\1 <token>', text)

    # Long hex strings (likely hashes or tokens)
    text = re.sub(r'\b[0-9a-f]{40,}\b', '<hash>', text, flags=re.IGNORECASE)

    # Other long opaque strings
    text = re.sub(r'[a-zA-Z0-9]{48,}', '<token>', text)

    return text


def safe_json(obj: Any, max_length: int = 1000) -> str:
    """Safely serialize object to JSON with sensitive data sanitized.

    Args:
        obj: Object to serialize
        max_length: Maximum length of output string

    Returns:
        Sanitized JSON string
    """
    try:
        json_str = json.dumps(obj, ensure_ascii=False, default=str)
        sanitized = sanitize_text(json_str)

        if len(sanitized) > max_length:
            sanitized = sanitized[:max_length] + "... [truncated]"

        return sanitized
    except Exception:
        return "<unable to serialize>"


def log_info(message: str, **kwargs) -> None:
    """Log info message with optional sanitized context."""
    if kwargs:
        context = safe_json(kwargs)
        logger.info(f"{message} | Context: {context}")
    else:
        logger.info(message)


def log_warning(message: str, **kwargs) -> None:
    """Log warning message with optional sanitized context."""
    if kwargs:
        context = safe_json(kwargs)
        logger.warning(f"{message} | Context: {context}")
    else:
        logger.warning(message)


def log_error(message: str, **kwargs) -> None:
    """Log error message with optional sanitized context."""
    if kwargs:
        context = safe_json(kwargs)
        logger.error(f"{message} | Context: {context}")
    else:
        logger.error(message)


def log_debug(message: str, **kwargs) -> None:
    """Log debug message with optional sanitized context."""
    if not logger.isEnabledFor(logging.DEBUG):
        return
    if kwargs:
        context = safe_json(kwargs)
        logger.debug(f"{message} | Context: {context}")
    else:
        logger.debug(message)


def log_api_response(operation: str, status_code: int, response_data: Optional[Dict] = None) -> None:
    """Log API response at debug level with sanitized data.

    Args:
        operation: Description of the API operation
        status_code: HTTP status code
        response_data: Optional response data to log (will be sanitized)
    """
    if response_data:
        log_debug(f"API {operation} completed",
                  status_code=status_code,
                  response_preview=safe_json(response_data, max_length=500))
    else:
        log_debug(f"API {operation} completed", status_code=status_code)


def log_repository_progress(repository: str, stage: str, **kwargs) -> None:
    """Log a repository pipeline moving through a stage.

    Args:
        repository: ``owner/name`` of the repository
        stage: Current stage of processing
        **kwargs: Additional context
    """
    log_info(f"Repository progress: {stage}", repository=repository, **kwargs)
