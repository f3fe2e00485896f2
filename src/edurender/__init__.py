"""
edurender.

Renders AI tool output (Markdown subset, LaTeX math, note cards and
passthrough HTML) to HTML fragments.
"""

__version__ = "1.0.0"

from edurender.renderer import (
    StructuredTextRenderer,
    render,
    render_document,
    format_inline,
    wrap_document,
)
from edurender.typeset import MathRenderer, UnicodeMathRenderer, latex_to_unicode
from edurender.notes import parse_notes, parse_card
from edurender.models import (
    FormattedEnvelope,
    Note,
    RenderStyles,
    RendererConfig,
    unwrap_envelope,
)
from edurender.exceptions import (
    EduRenderError,
    MathRenderError,
    EnvelopeError,
    ConfigError,
)

__all__ = [
    # Rendering
    "StructuredTextRenderer",
    "render",
    "render_document",
    "format_inline",
    "wrap_document",
    # Math
    "MathRenderer",
    "UnicodeMathRenderer",
    "latex_to_unicode",
    # Notes
    "parse_notes",
    "parse_card",
    # Models
    "FormattedEnvelope",
    "Note",
    "RenderStyles",
    "RendererConfig",
    "unwrap_envelope",
    # Exceptions
    "EduRenderError",
    "MathRenderError",
    "EnvelopeError",
    "ConfigError",
]
