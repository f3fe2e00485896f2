"""
Pydantic models for edurender.

Envelope, styling, note-card and local configuration models.
"""

import json
import logging
from typing import Optional, List, Dict, Any, Tuple, Literal

from pydantic import BaseModel, Field, ValidationError

from edurender.exceptions import EnvelopeError

logger = logging.getLogger(__name__)


# ===== ENVELOPE MODELS =====

class FormattedEnvelope(BaseModel):
    """Structured tool output: renderable text plus the raw data it came from."""
    formatted: str
    raw: Optional[Dict[str, Any]] = None

    @classmethod
    def parse(cls, text: str) -> "FormattedEnvelope":
        """
        Parse a JSON envelope.

        Args:
            text: JSON document with a string `formatted` field

        Returns:
            FormattedEnvelope

        Raises:
            EnvelopeError: text is not JSON or lacks a string `formatted` field
        """
        try:
            data = json.loads(text)
        except (json.JSONDecodeError, TypeError) as e:
            raise EnvelopeError("Envelope is not valid JSON", details={"error": str(e)})

        if not isinstance(data, dict) or not isinstance(data.get("formatted"), str):
            raise EnvelopeError("Envelope has no string 'formatted' field")

        raw = data.get("raw")
        try:
            return cls(formatted=data["formatted"], raw=raw if isinstance(raw, dict) else None)
        except ValidationError as e:
            raise EnvelopeError("Envelope failed validation", details={"error": str(e)})


def looks_like_envelope(text: str) -> bool:
    """Cheap check before attempting a JSON parse."""
    return text.strip().startswith("{") and '"formatted"' in text


def unwrap_envelope(text: str) -> Tuple[str, Optional[FormattedEnvelope]]:
    """
    Extract the renderable text from a possible JSON envelope.

    Malformed envelopes fall back to the original text.

    Returns:
        (text to render, envelope or None)
    """
    if not looks_like_envelope(text):
        return text, None

    try:
        envelope = FormattedEnvelope.parse(text)
    except EnvelopeError as e:
        logger.debug(f"Treating input as plain text: {e.message}")
        return text, None

    return envelope.formatted, envelope


# ===== STYLE MODELS =====

class RenderStyles(BaseModel):
    """CSS classes attached to the generated elements."""
    h1: str = "text-2xl font-bold text-gray-900 mt-8 mb-4"
    h2: str = "text-xl font-bold text-gray-900 mt-8 mb-4 border-b border-gray-200 pb-2"
    h3: str = "text-lg font-bold text-gray-900 mt-6 mb-3"
    h4: str = "text-base font-bold text-gray-900 mt-4 mb-2"
    paragraph: str = "mb-4 text-gray-700 leading-relaxed"
    ordered_list: str = "list-decimal ml-6 mb-4 space-y-1"
    unordered_list: str = "list-disc ml-6 mb-4 space-y-1"
    list_item: str = "mb-1"
    math_block: str = "my-4 overflow-x-auto"
    math_error_block: str = "my-4 p-2 bg-red-50 border border-red-200 rounded text-red-800 text-sm"
    math_error_inline: str = "text-red-600 text-sm"
    pre: str = "bg-gray-100 p-4 rounded-lg overflow-x-auto mb-2 text-sm font-mono"
    code: str = "bg-gray-100 px-2 py-1 rounded text-sm font-mono text-gray-800"
    strong: str = "font-semibold text-gray-900"
    em: str = "italic"


# ===== NOTE MODELS =====

class Note(BaseModel):
    """A single short-notes card."""
    concept_name: str
    summary: Optional[str] = None
    importance: Optional[str] = None
    quick_facts: Optional[List[str]] = None


# ===== LOCAL CONFIG MODELS =====

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class RendererConfig(BaseModel):
    """Local renderer configuration."""
    strict_math: bool = Field(
        default=False,
        description="Ask the typesetter to raise on bad LaTeX so it shows up as a Math Error box"
    )
    document_title: str = Field(default="Generated content", description="Title of standalone pages")
    log_level: LogLevel = "WARNING"
    styles: RenderStyles = Field(default_factory=RenderStyles)
