"""
Structured text → HTML renderer.

Turns AI tool output (a Markdown subset with LaTeX math, raw HTML lines
and note-card blocks) into an HTML fragment ready for display.

Pipeline:
    1. JSON envelope unwrap ({"formatted": "..."})
    2. $$...$$ block math → protected span
    3. __NOTE_CARD_START__ / __NOTE_CARD_END__ cards → protected span
    4. line-by-line block scan (headings, lists, paragraphs, passthrough)
    5. inline formatting (escape, $...$ math, code, bold, italic)

Protected spans live out of band and are referenced from the working text
by NUL-delimited tokens. NUL is removed from the input first, so no user
text can forge or break a token.
"""

import logging
import re
from typing import List, Optional, Tuple

from edurender.models import RenderStyles, RendererConfig, unwrap_envelope
from edurender.text import NOTE_CARD_RE, escape_html, unescape_html
from edurender.typeset import MathRenderer, default_math_renderer

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protected spans
# ---------------------------------------------------------------------------

MATH_BLOCK = 'MATHBLOCK'
MATH_ERROR = 'MATHERROR'
CARD = 'CARD'
INLINE_MATH = 'INLINEMATH'
CODE = 'CODE'

_PLACEHOLDER = '\x00%s_%d\x00'
_PLACEHOLDER_RE = re.compile('\x00([A-Z]+)_(\\d+)\x00')


class _ProtectedSpans:
    """HTML fragments that later stages must not re-parse."""

    def __init__(self):
        self._spans: List[Tuple[str, str]] = []

    def add(self, kind: str, html: str) -> str:
        idx = len(self._spans)
        self._spans.append((kind, html))
        return _PLACEHOLDER % (kind, idx)

    def kinds_in(self, text: str) -> set:
        return {m.group(1) for m in _PLACEHOLDER_RE.finditer(text)}

    def restore(self, text: str) -> str:
        # Spans may wrap earlier tokens (math inside code or a card)
        for _ in range(len(self._spans) + 1):
            restored = _PLACEHOLDER_RE.sub(lambda m: self._spans[int(m.group(2))][1], text)
            if restored == text:
                break
            text = restored
        return text


# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

_BLOCK_MATH_RE = re.compile(r'\$\$(.*?)\$\$', re.DOTALL)

# Closed list of tags emitted by the upstream formatters; anything else is escaped
RAW_HTML_TAGS = ('div', 'h1', 'h2', 'h3', 'p', 'span', 'strong', 'ul', 'li')
_RAW_HTML_RE = re.compile(r'</?(?:%s)(?=[\s>/])|style=' % '|'.join(RAW_HTML_TAGS))

_ORDERED_RE = re.compile(r'^\d+\.\s+')
_UNORDERED_RE = re.compile(r'^[-*]\s+')

_BLOCK_END_TAGS = ('</p>', '</h1>', '</h2>', '</h3>', '</h4>', '</div>')

_INLINE_MATH_RE = re.compile(r'(?<!\$)\$(?!\$)([^$\n]+?)(?<!\$)\$(?!\$)')
_FENCED_CODE_RE = re.compile(r'```(.*?)```', re.DOTALL)
_INLINE_CODE_RE = re.compile(r'`([^`]+)`')
_BOLD_RE = re.compile(r'\*\*(.*?)\*\*')
_ITALIC_RE = re.compile(r'(?<!\*)\*(?!\*)([^*\n]+?)(?<!\*)\*(?!\*)')


def _clean_math(expression: str) -> str:
    """Trim and undo transport escaping of backslashes."""
    return expression.strip().replace('\\\\', '\\')


def looks_like_raw_html(line: str) -> bool:
    return bool(_RAW_HTML_RE.search(line))


# ---------------------------------------------------------------------------
# Block scan state
# ---------------------------------------------------------------------------

class _BlockState:
    """Output accumulator plus the kind of the currently open list."""

    def __init__(self, styles: RenderStyles):
        self.styles = styles
        self.parts: List[str] = []
        self.list_kind: Optional[str] = None

    def emit(self, html: str) -> None:
        self.parts.append(html)

    def open_list(self, kind: str) -> None:
        if self.list_kind == kind:
            return
        self.close_list()
        css = self.styles.ordered_list if kind == 'ol' else self.styles.unordered_list
        self.emit(f'<{kind} class="{css}">')
        self.list_kind = kind

    def close_list(self) -> None:
        if self.list_kind is not None:
            self.emit(f'</{self.list_kind}>')
            self.list_kind = None

    def ends_with_block(self) -> bool:
        output = self.html().rstrip('\n')
        if not output:
            return True
        return output.endswith(_BLOCK_END_TAGS)

    def html(self) -> str:
        return ''.join(self.parts)


# ---------------------------------------------------------------------------
# Renderer
# ---------------------------------------------------------------------------

class StructuredTextRenderer:
    """
    Markdown + LaTeX + passthrough HTML renderer.

    Stateless between calls: every render() works on its own locals, so one
    instance can be shared.
    """

    def __init__(
        self,
        math_renderer: Optional[MathRenderer] = None,
        styles: Optional[RenderStyles] = None,
        strict_math: bool = False,
    ):
        """
        Args:
            math_renderer: LaTeX typesetter, UnicodeMathRenderer by default
            styles: CSS classes for generated elements
            strict_math: ask the typesetter to raise on bad LaTeX, which
                         surfaces as a "Math Error" box instead of lenient markup
        """
        self.math_renderer = math_renderer or default_math_renderer
        self.styles = styles or RenderStyles()
        self.strict_math = strict_math

    @classmethod
    def from_config(cls, config: RendererConfig, math_renderer: Optional[MathRenderer] = None) -> "StructuredTextRenderer":
        return cls(math_renderer=math_renderer, styles=config.styles, strict_math=config.strict_math)

    # ----- math -----

    def _typeset(self, expression: str, display_mode: bool) -> str:
        return self.math_renderer(expression, display_mode=display_mode, throw_on_error=self.strict_math)

    def _extract_block_math(self, text: str, spans: _ProtectedSpans) -> str:
        def _replacer(m):
            content = m.group(1)
            try:
                rendered = self._typeset(_clean_math(content), display_mode=True)
            except Exception as e:
                logger.debug(f"Block math failed: {e}")
                return spans.add(
                    MATH_ERROR,
                    f'<div class="{self.styles.math_error_block}">Math Error: {escape_html(content)}</div>'
                )
            return spans.add(MATH_BLOCK, f'<div class="{self.styles.math_block}">{rendered}</div>')

        return _BLOCK_MATH_RE.sub(_replacer, text)

    def _extract_cards(self, text: str, spans: _ProtectedSpans) -> str:
        return NOTE_CARD_RE.sub(lambda m: spans.add(CARD, m.group(1).strip()), text)

    # ----- blocks -----

    def _render_blocks(self, text: str, spans: _ProtectedSpans) -> str:
        styles = self.styles
        state = _BlockState(styles)

        for line in text.split('\n'):
            trimmed = line.strip()
            kinds = spans.kinds_in(line)

            if MATH_BLOCK in kinds or MATH_ERROR in kinds:
                state.close_list()
                state.emit(spans.restore(line))
            elif CARD in kinds:
                state.close_list()
                state.emit(spans.restore(line) + '\n')
            elif looks_like_raw_html(trimmed):
                state.close_list()
                state.emit(line + '\n')
            elif trimmed.startswith('#### '):
                state.close_list()
                state.emit(f'<h4 class="{styles.h4}">{self.format_inline(trimmed[5:])}</h4>')
            elif trimmed.startswith('### '):
                state.close_list()
                state.emit(f'<h3 class="{styles.h3}">{self.format_inline(trimmed[4:])}</h3>')
            elif trimmed.startswith('## '):
                state.close_list()
                state.emit(f'<h2 class="{styles.h2}">{self.format_inline(trimmed[3:])}</h2>')
            elif trimmed.startswith('# '):
                state.close_list()
                state.emit(f'<h1 class="{styles.h1}">{self.format_inline(trimmed[2:])}</h1>')
            elif _ORDERED_RE.match(trimmed):
                state.open_list('ol')
                content = _ORDERED_RE.sub('', trimmed)
                state.emit(f'<li class="{styles.list_item}">{self.format_inline(content)}</li>')
            elif _UNORDERED_RE.match(trimmed):
                state.open_list('ul')
                content = _UNORDERED_RE.sub('', trimmed)
                state.emit(f'<li class="{styles.list_item}">{self.format_inline(content)}</li>')
            elif not trimmed:
                state.close_list()
                if not state.ends_with_block():
                    state.emit('<br>')
            else:
                state.close_list()
                state.emit(f'<p class="{styles.paragraph}">{self.format_inline(line)}</p>')

        state.close_list()
        return state.html()

    # ----- inline -----

    def format_inline(self, text: str) -> str:
        """
        Apply inline Markdown to one heading, list item or paragraph.

        Escapes HTML, then handles $...$ math, ``` fences, `code`,
        **bold** and *italic*.
        """
        # Tokens are ours alone
        text = text.replace('\x00', '')

        styles = self.styles
        spans = _ProtectedSpans()
        formatted = escape_html(text)

        def _math(m):
            content = m.group(1)
            try:
                rendered = self._typeset(unescape_html(_clean_math(content)), display_mode=False)
            except Exception as e:
                logger.debug(f"Inline math failed: {e}")
                rendered = f'<span class="{styles.math_error_inline}">Math Error: {content}</span>'
            return spans.add(INLINE_MATH, rendered)

        formatted = _INLINE_MATH_RE.sub(_math, formatted)

        formatted = _FENCED_CODE_RE.sub(
            lambda m: spans.add(CODE, f'<pre class="{styles.pre}"><code>{m.group(1)}</code></pre>'),
            formatted
        )

        def _code(m):
            # Backticks left around a stray $ are not code
            if '$' in m.group(0):
                return m.group(0)
            return spans.add(CODE, f'<code class="{styles.code}">{m.group(1)}</code>')

        formatted = _INLINE_CODE_RE.sub(_code, formatted)

        formatted = _BOLD_RE.sub(rf'<strong class="{styles.strong}">\1</strong>', formatted)
        formatted = _ITALIC_RE.sub(rf'<em class="{styles.em}">\1</em>', formatted)

        return spans.restore(formatted)

    # ----- entry points -----

    def render(self, text: str) -> str:
        """
        Convert structured text to an HTML fragment.

        Never raises: bad LaTeX becomes a "Math Error" marker, a broken JSON
        envelope is rendered as plain text.

        Args:
            text: raw tool output, optionally a {"formatted": ...} envelope

        Returns:
            HTML string ('' for empty input)
        """
        if not text:
            return ''

        text, envelope = unwrap_envelope(text)
        if envelope is not None:
            logger.debug("Unwrapped JSON envelope")

        text = text.replace('\x00', '').replace('\r\n', '\n')
        if not text:
            return ''

        spans = _ProtectedSpans()
        text = self._extract_block_math(text, spans)
        text = self._extract_cards(text, spans)
        return self._render_blocks(text, spans)

    def render_document(self, text: str, title: str = "Generated content") -> str:
        """Render text into a standalone HTML5 page."""
        return wrap_document(self.render(text), title=title)


# ---------------------------------------------------------------------------
# Standalone pages
# ---------------------------------------------------------------------------

_DOCUMENT_CSS = """
      body { font-family: 'Segoe UI', system-ui, sans-serif; max-width: 860px; margin: 0 auto; padding: 2rem 1rem; color: #374151; line-height: 1.6; }
      h1, h2, h3, h4 { color: #111827; }
      h2 { border-bottom: 1px solid #e5e7eb; padding-bottom: .5rem; }
      pre { background: #f3f4f6; padding: 1rem; border-radius: .5rem; overflow-x: auto; }
      code { background: #f3f4f6; padding: .1rem .4rem; border-radius: .25rem; font-family: Consolas, 'Courier New', monospace; }
      .math { font-family: 'Cambria Math', 'Times New Roman', serif; color: #1a5276; }
      .math-display { display: block; text-align: center; margin: 1rem 0; font-size: 1.15em; }
      .math-error { color: #b91c1c; border-bottom: 1px dotted #b91c1c; }
      .bg-red-50 { background: #fef2f2; border: 1px solid #fecaca; border-radius: .25rem; padding: .5rem; color: #991b1b; }
      .text-red-600 { color: #dc2626; }
"""


def wrap_document(body_html: str, title: str = "Generated content") -> str:
    """Wrap a rendered fragment inside a minimal HTML document."""
    return f"""<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <title>{escape_html(title)}</title>
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <style>{_DOCUMENT_CSS}    </style>
  </head>
  <body>
    <article class="edurender">
{body_html}
    </article>
  </body>
</html>
"""


# ---------------------------------------------------------------------------
# Module-level helpers
# ---------------------------------------------------------------------------

def render(
    text: str,
    math_renderer: Optional[MathRenderer] = None,
    styles: Optional[RenderStyles] = None,
    strict_math: bool = False,
) -> str:
    """Render structured text to HTML with a throwaway renderer."""
    return StructuredTextRenderer(math_renderer, styles, strict_math).render(text)


def format_inline(text: str, math_renderer: Optional[MathRenderer] = None, styles: Optional[RenderStyles] = None) -> str:
    return StructuredTextRenderer(math_renderer, styles).format_inline(text)


def render_document(
    text: str,
    title: str = "Generated content",
    math_renderer: Optional[MathRenderer] = None,
    styles: Optional[RenderStyles] = None,
    strict_math: bool = False,
) -> str:
    return StructuredTextRenderer(math_renderer, styles, strict_math).render_document(text, title=title)
