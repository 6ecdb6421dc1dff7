"""Structured exception hierarchy for job forms.

Provides specific exception types for the failure modes of the form
engine, with rich context for debugging and troubleshooting.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

__all__ = [
    "FormError",
    "ConfigurationError",
    "LookupFailedError",
    "CatalogError",
    "ValidationError",
]


def _describe_cause(cause: Optional[BaseException]) -> Dict[str, str]:
    if cause is None:
        return {}
    return {"cause": str(cause), "cause_type": type(cause).__name__}


class FormError(Exception):
    """Base exception for all job form errors.

    Provides structured error information for debugging.
    """

    def __init__(
        self,
        message: str,
        *,
        key: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        self.message = message
        self.key = key
        self.details = details or {}
        self.suggestion = suggestion
        super().__init__(self._render())

    def _render(self) -> str:
        head = f"[{self.key}] {self.message}" if self.key else self.message
        lines = [head]
        if self.details:
            lines.append("Details:")
            lines.extend(f"  {k}: {v}" for k, v in self.details.items())
        if self.suggestion:
            lines.append(f"Suggestion: {self.suggestion}")
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for structured logging."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
            "key": self.key,
            "details": self.details,
            "suggestion": self.suggestion,
        }


class ConfigurationError(FormError):
    """Error in the descriptor table of a form.

    Raised when a descriptor reads a key it does not declare, declares a
    key the model does not hold, or two descriptors share a key.
    """

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        value: Any = None,
        **kwargs: Any,
    ) -> None:
        self.field = field
        self.value = value

        details = kwargs.pop("details", {})
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)

        super().__init__(message, details=details, **kwargs)


class CatalogError(FormError):
    """Error talking to the datasource catalog.

    Raised by catalog implementations when the transport fails or the
    response payload cannot be parsed.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: Optional[str] = None,
        status_code: Optional[int] = None,
        cause: Optional[Exception] = None,
        **kwargs: Any,
    ) -> None:
        self.operation = operation
        self.status_code = status_code
        self.cause = cause

        details = kwargs.pop("details", {})
        if operation:
            details["operation"] = operation
        if status_code is not None:
            details["status_code"] = status_code
        details.update(_describe_cause(cause))

        suggestion = kwargs.pop("suggestion", None)
        if not suggestion:
            suggestion = (
                "Check that the scheduler API is reachable and the token is valid."
            )

        super().__init__(message, details=details, suggestion=suggestion, **kwargs)


class LookupFailedError(FormError):
    """A remote lookup issued for a trigger key failed.

    The keys the lookup would have populated are left cleared. There is no
    automatic retry: the user re-triggers by selecting the value again.
    """

    def __init__(
        self,
        message: str,
        *,
        trigger: str,
        value: Any = None,
        cause: Optional[Exception] = None,
        **kwargs: Any,
    ) -> None:
        self.trigger = trigger
        self.value = value
        self.cause = cause

        details = kwargs.pop("details", {})
        details["value"] = repr(value)
        details.update(_describe_cause(cause))

        suggestion = kwargs.pop("suggestion", None)
        if not suggestion:
            suggestion = "Select the value again to retry the lookup."

        super().__init__(
            message, key=trigger, details=details, suggestion=suggestion, **kwargs
        )


class ValidationError(FormError):
    """Validation errors that block submission of a form.

    Raised by JobForm.to_params(strict=True) when validate() finds issues.
    """

    def __init__(
        self,
        message: str,
        *,
        issues: Optional[List[str]] = None,
        **kwargs: Any,
    ) -> None:
        self.issues = issues or []

        details = kwargs.pop("details", {})
        if issues:
            details["issue_count"] = len(issues)

        if issues:
            issue_lines = "\n".join(f"  - {issue}" for issue in issues)
            message = f"{message}\n\nIssues found:\n{issue_lines}"

        super().__init__(message, details=details, **kwargs)
