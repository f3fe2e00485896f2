"""
Exceptions for edurender.
"""

from typing import Optional, Dict, Any


class EduRenderError(Exception):
    """Base exception for edurender."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class MathRenderError(EduRenderError):
    """The math typesetter rejected an expression."""

    def __init__(self, expression: str, display_mode: bool = False, reason: str = "invalid expression"):
        self.expression = expression
        self.display_mode = display_mode
        self.reason = reason
        super().__init__(
            f"Cannot typeset {'display' if display_mode else 'inline'} math: {reason}",
            details={"expression": expression, "display_mode": display_mode},
        )


class EnvelopeError(EduRenderError):
    """Input is not a valid JSON envelope with a `formatted` field."""
    pass


class ConfigError(EduRenderError):
    """Invalid configuration value."""
    pass
