"""
LaTeX math typesetting.

The renderer talks to a typesetter through the MathRenderer protocol. The
bundled UnicodeMathRenderer approximates LaTeX with Unicode symbols and
wraps the result in HTML, so documents render without a JavaScript math
engine. Embedders with a real typesetter can pass their own callable.
"""

import logging
import re
from typing import Optional, Protocol

from edurender.exceptions import MathRenderError
from edurender.text import escape_attr, escape_html

logger = logging.getLogger(__name__)


class MathRenderer(Protocol):
    """Callable turning a LaTeX expression into an HTML fragment."""

    def __call__(self, expression: str, display_mode: bool = False, throw_on_error: bool = False) -> str:
        ...


# ---------------------------------------------------------------------------
# LaTeX → Unicode mappings
# ---------------------------------------------------------------------------

_GREEK_LETTERS = {
    r'\alpha': 'α', r'\beta': 'β', r'\gamma': 'γ', r'\delta': 'δ',
    r'\epsilon': 'ε', r'\varepsilon': 'ε', r'\zeta': 'ζ', r'\eta': 'η',
    r'\theta': 'θ', r'\vartheta': 'ϑ', r'\iota': 'ι', r'\kappa': 'κ',
    r'\lambda': 'λ', r'\mu': 'μ', r'\nu': 'ν', r'\xi': 'ξ',
    r'\pi': 'π', r'\rho': 'ρ', r'\sigma': 'σ', r'\tau': 'τ',
    r'\upsilon': 'υ', r'\phi': 'φ', r'\varphi': 'ϕ', r'\chi': 'χ',
    r'\psi': 'ψ', r'\omega': 'ω',
    r'\Gamma': 'Γ', r'\Delta': 'Δ', r'\Theta': 'Θ', r'\Lambda': 'Λ',
    r'\Xi': 'Ξ', r'\Pi': 'Π', r'\Sigma': 'Σ', r'\Phi': 'Φ',
    r'\Psi': 'Ψ', r'\Omega': 'Ω',
}

_OPERATORS = {
    r'\times': '×', r'\cdot': '·', r'\div': '÷', r'\pm': '±', r'\mp': '∓',
    r'\leq': '≤', r'\le': '≤', r'\geq': '≥', r'\ge': '≥', r'\neq': '≠', r'\ne': '≠',
    r'\approx': '≈', r'\equiv': '≡', r'\sim': '∼', r'\propto': '∝',
    r'\in': '∈', r'\notin': '∉', r'\subset': '⊂', r'\subseteq': '⊆',
    r'\cup': '∪', r'\cap': '∩', r'\forall': '∀', r'\exists': '∃',
    r'\partial': '∂', r'\nabla': '∇', r'\infty': '∞', r'\angle': '∠',
    r'\perp': '⊥', r'\parallel': '∥', r'\circ': '∘', r'\degree': '°',
    r'\therefore': '∴', r'\because': '∵',
    r'\dots': '…', r'\ldots': '…', r'\cdots': '⋯',
}

_ARROWS = {
    r'\rightarrow': '→', r'\to': '→', r'\leftarrow': '←',
    r'\Rightarrow': '⇒', r'\Leftarrow': '⇐', r'\implies': '⇒',
    r'\leftrightarrow': '↔', r'\Leftrightarrow': '⇔', r'\iff': '⇔',
    r'\rightleftharpoons': '⇌', r'\uparrow': '↑', r'\downarrow': '↓',
}

_BIG_OPERATORS = {
    r'\sum': '∑', r'\prod': '∏', r'\int': '∫', r'\iint': '∬', r'\oint': '∮',
}

_FUNCTION_NAMES = {
    r'\lim': 'lim', r'\sin': 'sin', r'\cos': 'cos', r'\tan': 'tan',
    r'\cot': 'cot', r'\sec': 'sec', r'\csc': 'csc',
    r'\arcsin': 'arcsin', r'\arccos': 'arccos', r'\arctan': 'arctan',
    r'\log': 'log', r'\ln': 'ln', r'\exp': 'exp', r'\det': 'det',
    r'\min': 'min', r'\max': 'max', r'\sup': 'sup', r'\inf': 'inf',
    r'\gcd': 'gcd', r'\mod': 'mod',
}

_MISC_SYMBOLS = {
    r'\hbar': 'ℏ', r'\ell': 'ℓ', r'\emptyset': '∅', r'\triangle': '△',
    r'\prime': '′', r'\langle': '⟨', r'\rangle': '⟩',
    r'\quad': '  ', r'\qquad': '    ',
}

_SYMBOLS = {}
for _table in (_GREEK_LETTERS, _OPERATORS, _ARROWS, _BIG_OPERATORS, _FUNCTION_NAMES, _MISC_SYMBOLS):
    _SYMBOLS.update(_table)

_SPACING = {r'\,': ' ', r'\;': ' ', r'\:': ' ', r'\!': '', r'\ ': ' '}

_SUPERSCRIPT_MAP = str.maketrans(
    '0123456789+-=()nixyT',
    '⁰¹²³⁴⁵⁶⁷⁸⁹⁺⁻⁼⁽⁾ⁿⁱˣʸᵀ',
)
_SUBSCRIPT_MAP = str.maketrans(
    '0123456789+-=()aeijkmnox',
    '₀₁₂₃₄₅₆₇₈₉₊₋₌₍₎ₐₑᵢⱼₖₘₙₒₓ',
)

# {...} with one level of nested braces
_GROUP = r'\{([^{}]*(?:\{[^{}]*\}[^{}]*)*)\}'

_LBRACE = '\x01'
_RBRACE = '\x02'


def _script(content: str, table: dict, marker: str) -> str:
    """Map to super/subscript characters, or keep a caret/underscore form."""
    mapped = content.translate(table)
    if all(c != o or c == ' ' for c, o in zip(mapped, content)):
        return mapped
    return f'{marker}({content})' if len(content) > 1 else f'{marker}{content}'


def latex_to_unicode(latex: str) -> str:
    """Convert a LaTeX math expression to a Unicode approximation."""
    text = latex.strip()

    text = text.replace(r'\{', _LBRACE).replace(r'\}', _RBRACE)
    text = re.sub(r'\\(?:display|text|script)style\b', '', text)

    # \text{...}, \mathrm{...}, \operatorname{...} → content
    text = re.sub(r'\\(?:text|textbf|textit|mathrm|mathbf|mathit|mathsf|mathcal|mathbb|operatorname|boldsymbol)\{([^}]*)\}', r'\1', text)

    text = re.sub(r'\\(?:left|right)(?![a-zA-Z])', '', text)

    def _frac(m):
        num = latex_to_unicode(m.group(1))
        den = latex_to_unicode(m.group(2))
        if len(num) == 1 and len(den) == 1:
            return f'{num}⁄{den}'
        return f'({num})/({den})'

    text = re.sub(r'\\[dt]?frac' + _GROUP + _GROUP, _frac, text)

    def _root(m):
        degree = (m.group(1) or '').translate(_SUPERSCRIPT_MAP)
        body = latex_to_unicode(m.group(2))
        if len(body) <= 2:
            return f'{degree}√{body}'
        return f'{degree}√({body})'

    text = re.sub(r'\\sqrt(?:\[([^\]]+)\])?' + _GROUP, _root, text)

    text = re.sub(r'\^' + _GROUP, lambda m: _script(latex_to_unicode(m.group(1)), _SUPERSCRIPT_MAP, '^'), text)
    text = re.sub(r'\^([a-zA-Z0-9+\-])', lambda m: _script(m.group(1), _SUPERSCRIPT_MAP, '^'), text)
    text = re.sub(r'_' + _GROUP, lambda m: _script(latex_to_unicode(m.group(1)), _SUBSCRIPT_MAP, '_'), text)
    text = re.sub(r'_([a-zA-Z0-9])', lambda m: _script(m.group(1), _SUBSCRIPT_MAP, '_'), text)

    # One pass over command names so that \in never eats \infty or \inf
    text = re.sub(r'\\[A-Za-z]+', lambda m: _SYMBOLS.get(m.group(0), m.group(0)), text)
    for cmd, sym in _SPACING.items():
        text = text.replace(cmd, sym)

    text = text.replace('{', '').replace('}', '')
    text = text.replace(_LBRACE, '{').replace(_RBRACE, '}')

    return re.sub(r'  +', ' ', text).strip()


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def find_problem(expression: str) -> Optional[str]:
    """
    Look for structural errors a typesetter would reject.

    Returns:
        Human-readable reason, or None if the expression looks well-formed
    """
    if not expression.strip():
        return "empty expression"

    depth = 0
    i = 0
    while i < len(expression):
        ch = expression[i]
        if ch == '\\':
            if i + 1 >= len(expression):
                return "dangling backslash"
            i += 2
            continue
        if ch == '{':
            depth += 1
        elif ch == '}':
            depth -= 1
            if depth < 0:
                return "unexpected '}'"
        i += 1

    if depth:
        return "missing '}'"

    lefts = len(re.findall(r'\\left(?![a-zA-Z])', expression))
    rights = len(re.findall(r'\\right(?![a-zA-Z])', expression))
    if lefts != rights:
        return r"unmatched \left / \right"

    return None


# ---------------------------------------------------------------------------
# Renderer
# ---------------------------------------------------------------------------

class UnicodeMathRenderer:
    """Typeset LaTeX as Unicode text inside HTML wrappers."""

    def __init__(
        self,
        inline_class: str = "math math-inline",
        display_class: str = "math math-display",
        error_class: str = "math-error",
    ):
        self.inline_class = inline_class
        self.display_class = display_class
        self.error_class = error_class

    def __call__(self, expression: str, display_mode: bool = False, throw_on_error: bool = False) -> str:
        problem = find_problem(expression)
        if problem:
            if throw_on_error:
                raise MathRenderError(expression, display_mode, problem)
            logger.debug(f"Lenient math error ({problem}): {expression!r}")
            return (
                f'<span class="{self.error_class}" title="{escape_attr(problem)}">'
                f'{escape_html(expression)}</span>'
            )

        rendered = escape_html(latex_to_unicode(expression))
        if display_mode:
            return f'<div class="{self.display_class}">{rendered}</div>'
        return f'<span class="{self.inline_class}">{rendered}</span>'


default_math_renderer = UnicodeMathRenderer()
