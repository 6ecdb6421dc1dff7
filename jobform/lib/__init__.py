"""Shared helpers for the job form engine: errors and logging."""

from jobform.lib.errors import (
    CatalogError,
    ConfigurationError,
    FormError,
    LookupFailedError,
    ValidationError,
)
from jobform.lib.logging import FormLogger, JSONFormatter, get_form_logger, setup_logging

__all__ = [
    "CatalogError",
    "ConfigurationError",
    "FormError",
    "LookupFailedError",
    "ValidationError",
    "FormLogger",
    "JSONFormatter",
    "get_form_logger",
    "setup_logging",
]
