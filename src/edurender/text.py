"""
Small HTML text helpers shared by the renderer and the note parser.
"""

import re


_TAG_RE = re.compile(r'<[^>]+>')
_BR_RE = re.compile(r'<br\s*/?>', re.IGNORECASE)

NOTE_CARD_RE = re.compile(r"__NOTE_CARD_START__\n(.*?)\n__NOTE_CARD_END__", re.DOTALL)

# &amp; last so that "&amp;lt;" decodes to "&lt;" and not "<"
_ENTITIES = (
    ('&nbsp;', ' '),
    ('&lt;', '<'),
    ('&gt;', '>'),
    ('&quot;', '"'),
    ('&#39;', "'"),
    ('&amp;', '&'),
)


def escape_html(text: str) -> str:
    """Escape &, < and > (in that order)."""
    return text.replace('&', '&amp;').replace('<', '&lt;').replace('>', '&gt;')


def escape_attr(text: str) -> str:
    return escape_html(text).replace('"', '&quot;')


def unescape_html(text: str) -> str:
    """Undo escape_html plus the few entities upstream formatters emit."""
    for entity, char in _ENTITIES:
        text = text.replace(entity, char)
    return text


def html_to_text(fragment: str) -> str:
    """
    Reduce an HTML fragment to plain text.

    <br> becomes a newline, other tags are dropped, basic entities decoded.
    """
    text = _BR_RE.sub('\n', fragment)
    text = _TAG_RE.sub('', text)
    return unescape_html(text).strip()
