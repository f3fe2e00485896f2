"""
Short-notes card extraction.

The notes tool emits one HTML card per concept between
__NOTE_CARD_START__ / __NOTE_CARD_END__ lines, optionally inside a JSON
envelope whose `raw.notes` carries the same data in structured form.
"""

import logging
import re
from typing import List, Optional

from pydantic import ValidationError

from edurender.models import Note, unwrap_envelope
from edurender.text import NOTE_CARD_RE, html_to_text

logger = logging.getLogger(__name__)

_CONCEPT_HEADING_RE = re.compile(r'<h2[^>]*>🎯\s*(.*?)</h2>', re.DOTALL)
_CONCEPT_TEXT_RE = re.compile(r'🎯\s*([^<]+)')
_FACTS_RE = re.compile(r'<h3[^>]*>Quick Facts</h3>.*?<ul[^>]*>(.*?)</ul>', re.DOTALL)
_LIST_ITEM_RE = re.compile(r'<li[^>]*>(.*?)</li>', re.DOTALL)
_SPAN_RE = re.compile(r'<span[^>]*>(.*?)</span>', re.DOTALL)


def _section_paragraph(card: str, heading: str) -> Optional[str]:
    """Text of the first <p> following an <h3>heading</h3>."""
    pattern = r'<h3[^>]*>%s</h3>.*?<p[^>]*>(.*?)</p>' % re.escape(heading)
    m = re.search(pattern, card, re.DOTALL)
    if not m:
        return None
    return html_to_text(m.group(1)) or None


def parse_card(card: str) -> Optional[Note]:
    """
    Build a Note from one card's HTML.

    Returns:
        Note, or None when no concept name can be found
    """
    m = _CONCEPT_HEADING_RE.search(card) or _CONCEPT_TEXT_RE.search(card)
    concept_name = html_to_text(m.group(1)) if m else ''
    if not concept_name:
        return None

    quick_facts: List[str] = []
    facts = _FACTS_RE.search(card)
    if facts:
        for item in _LIST_ITEM_RE.finditer(facts.group(1)):
            # numbered badges are spans too
            candidates = [html_to_text(s) for s in _SPAN_RE.findall(item.group(1))]
            candidates = [c for c in candidates if c and not c.isdigit()]
            fact = candidates[0] if candidates else html_to_text(item.group(1))
            if fact and not fact.isdigit():
                quick_facts.append(fact)

    return Note(
        concept_name=concept_name,
        summary=_section_paragraph(card, 'Summary'),
        importance=_section_paragraph(card, 'Importance'),
        quick_facts=quick_facts or None,
    )


def _notes_from_raw(raw: dict) -> Optional[List[Note]]:
    items = raw.get('notes')
    if not isinstance(items, list):
        return None

    notes: List[Note] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        try:
            notes.append(Note(**{**item, 'concept_name': item.get('concept_name') or ''}))
        except ValidationError as e:
            logger.debug(f"Skipping malformed raw note: {e}")
    return notes


def parse_notes(content: str) -> List[Note]:
    """
    Extract note cards from tool output.

    Structured `raw.notes` data wins over HTML scraping when present.

    Args:
        content: plain text with card blocks, or a JSON envelope

    Returns:
        Notes in document order
    """
    if not content:
        return []

    text, envelope = unwrap_envelope(content)
    if envelope is not None and envelope.raw:
        notes = _notes_from_raw(envelope.raw)
        if notes is not None:
            return notes

    notes = []
    for m in NOTE_CARD_RE.finditer(text.replace('\r\n', '\n')):
        note = parse_card(m.group(1))
        if note is not None:
            notes.append(note)
    return notes
