"""
Exception hierarchy and error severity classification.
"""

from typing import Any, Dict, List, Optional, Union

from resonance_touch.constants import ErrorCode
from resonance_touch.models import ErrorEvent

CRITICAL_ERROR_CODES = frozenset(
    {
        ErrorCode.HARDWARE_NOT_SUPPORTED.value,
        ErrorCode.EMOTION_DECODER_ERROR.value,
        ErrorCode.RESONANCE_ENGINE_ERROR.value,
    }
)

HIGH_ERROR_CODES = frozenset(
    {
        ErrorCode.SENSOR_DISCONNECTED.value,
        ErrorCode.LATENCY_EXCEEDED.value,
        ErrorCode.MEMORY_LIMIT_EXCEEDED.value,
    }
)


class RTIError(Exception):
    """Base class for all resonance touch errors."""

    default_code = ErrorCode.INVALID_CONFIG

    def __init__(
        self,
        message: str,
        code: Optional[Union[ErrorCode, str]] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        code = code if code is not None else self.default_code
        self.code = code.value if isinstance(code, ErrorCode) else code
        self.context = context or {}


class ConfigurationError(RTIError):
    default_code = ErrorCode.INVALID_CONFIG


class ConfigValidationError(ConfigurationError):
    """Raised with the complete list of configuration violations."""

    def __init__(self, errors: List[str]) -> None:
        super().__init__(
            f"Invalid configuration: {'; '.join(errors)}",
            context={"errors": list(errors)},
        )
        self.errors = list(errors)


class PrivacyError(RTIError):
    default_code = ErrorCode.PRIVACY_VIOLATION


class SampleRejectedError(RTIError):
    """Raised when a sample arrives while admission is halted."""

    default_code = ErrorCode.SAMPLE_REJECTED


def determine_severity(code: str) -> str:
    """Classify an error code as critical, high, medium or low."""
    if code in CRITICAL_ERROR_CODES:
        return "critical"
    if code in HIGH_ERROR_CODES:
        return "high"
    if "PERFORMANCE" in code:
        return "medium"
    return "low"


def normalize_error(
    code: Union[ErrorCode, str],
    message: str,
    error: Optional[BaseException] = None,
    context: Optional[Dict[str, Any]] = None,
) -> ErrorEvent:
    """Build an ErrorEvent from a code, a message and an optional exception."""
    code = code.value if isinstance(code, ErrorCode) else code
    details: Dict[str, Any] = dict(context or {})
    if error is not None:
        details["exception"] = type(error).__name__
        details["detail"] = str(error)
        if isinstance(error, RTIError):
            details.update(error.context)
    return ErrorEvent(
        code=code,
        message=message,
        severity=determine_severity(code),
        context=details,
    )
