import json

import pytest

from edurender.models import RenderStyles
from edurender.renderer import StructuredTextRenderer, format_inline, render, render_document
from edurender.text import html_to_text

P = '<p class="mb-4 text-gray-700 leading-relaxed">'
UL = '<ul class="list-disc ml-6 mb-4 space-y-1">'
OL = '<ol class="list-decimal ml-6 mb-4 space-y-1">'
LI = '<li class="mb-1">'
MATH_DIV = '<div class="my-4 overflow-x-auto">'


def test_empty_input_renders_nothing() -> None:
    assert render("") == ""
    assert render(None) == ""


def test_plain_line_is_single_paragraph() -> None:
    html = render("hello world")
    assert html == f"{P}hello world</p>"
    assert html_to_text(html) == "hello world"


def test_unknown_tags_are_escaped() -> None:
    html = render("<script>alert(1)</script>")
    assert "&lt;script&gt;alert(1)&lt;/script&gt;" in html
    assert "<script>" not in html
    assert html.startswith(P)


def test_pre_tag_is_not_mistaken_for_paragraph_tag() -> None:
    assert render("<pre>x</pre>") == f"{P}&lt;pre&gt;x&lt;/pre&gt;</p>"


def test_list_closed_before_blank_line() -> None:
    html = render("- a\n- b\n\nplain")
    assert html == f"{UL}{LI}a</li>{LI}b</li></ul><br>{P}plain</p>"
    assert html.count("<ul") == 1


def test_switching_list_kind_closes_previous_list() -> None:
    html = render("1. one\n2. two\n- x")
    assert html == f"{OL}{LI}one</li>{LI}two</li></ol>{UL}{LI}x</li></ul>"


def test_open_list_closed_at_end_of_input() -> None:
    assert render("* a").endswith("</ul>")


def test_heading_closes_list() -> None:
    html = render("- a\n# Title")
    assert html.index("</ul>") < html.index("<h1")


def test_headings_by_level() -> None:
    assert render("# One") == '<h1 class="text-2xl font-bold text-gray-900 mt-8 mb-4">One</h1>'
    assert render("## Two").startswith('<h2 class="text-xl font-bold text-gray-900 mt-8 mb-4 border-b')
    assert render("### Three").startswith("<h3 ")
    assert render("#### Four").startswith("<h4 ")
    assert render("#NoSpace") == f"{P}#NoSpace</p>"


def test_decimal_number_is_not_a_list_item() -> None:
    assert render("3.14 is pi") == f"{P}3.14 is pi</p>"


def test_blank_line_after_paragraph_adds_no_break() -> None:
    assert render("para\n\nnext") == f"{P}para</p>{P}next</p>"
    assert render("\nhello") == f"{P}hello</p>"


def test_raw_html_line_passes_through() -> None:
    line = '<div style="color:red">Hi **there**</div>'
    html = render(f"- a\n{line}")
    assert html == f"{UL}{LI}a</li></ul>{line}\n"


def test_block_math_uses_display_mode(math) -> None:
    html = render("$$x^2$$", math_renderer=math)
    assert math.calls == [("x^2", True, False)]
    assert html == f'{MATH_DIV}<span class="tex">x^2</span></div>'


def test_block_math_spanning_lines_is_trimmed(math) -> None:
    render("$$\na+b\n$$", math_renderer=math)
    assert math.calls == [("a+b", True, False)]


def test_block_math_unescapes_double_backslashes(math) -> None:
    render("$$\\\\frac{1}{2}$$", math_renderer=math)
    assert math.calls[0][0] == "\\frac{1}{2}"


def test_block_math_failure_becomes_error_box(broken_math) -> None:
    html = render("$$x^2$$", math_renderer=broken_math)
    assert "Math Error" in html
    assert "x^2" in html
    assert "bg-red-50" in html


def test_block_math_closes_list(math) -> None:
    html = render("- a\n$$y$$", math_renderer=math)
    assert html == f'{UL}{LI}a</li></ul>{MATH_DIV}<span class="tex">y</span></div>'


def test_unterminated_block_math_stays_literal(math) -> None:
    assert render("$$x", math_renderer=math) == f"{P}$$x</p>"
    assert math.calls == []


def test_strict_math_is_forwarded(math) -> None:
    render("$$x$$ and", math_renderer=math, strict_math=True)
    assert math.calls == [("x", True, True)]


def test_card_passes_through_unescaped() -> None:
    text = "Intro\n__NOTE_CARD_START__\n<div>X</div>\n__NOTE_CARD_END__\nOutro"
    assert render(text) == f"{P}Intro</p><div>X</div>\n{P}Outro</p>"


def test_multiline_card_is_not_reparsed() -> None:
    text = "__NOTE_CARD_START__\n<section>\n- item\n# not a heading\n</section>\n__NOTE_CARD_END__"
    html = render(text)
    assert html == "<section>\n- item\n# not a heading\n</section>\n"


def test_card_html_is_kept_verbatim(note_card) -> None:
    html = render(note_card)
    assert '<h2 class="title">🎯 Photosynthesis</h2>' in html
    assert "&amp;lt;" not in html
    assert P not in html


def test_unterminated_card_is_plain_text() -> None:
    html = render("__NOTE_CARD_START__\n<b>x</b>")
    assert html == f"{P}__NOTE_CARD_START__</p>{P}&lt;b&gt;x&lt;/b&gt;</p>"


def test_marker_words_in_user_text_are_harmless() -> None:
    assert render("__MATH_BLOCK__ is a word") == f"{P}__MATH_BLOCK__ is a word</p>"
    assert render("a __HTML_CARD__ b") == f"{P}a __HTML_CARD__ b</p>"


def test_nul_characters_are_dropped() -> None:
    assert render("a\x00b") == f"{P}ab</p>"


def test_mixed_inline_formatting(math) -> None:
    html = render("**bold** and *italic* and $x+1$", math_renderer=math)
    assert html == (
        f'{P}<strong class="font-semibold text-gray-900">bold</strong> and '
        '<em class="italic">italic</em> and <span class="tex">x+1</span></p>'
    )
    assert math.calls == [("x+1", False, False)]


def test_inline_math_sees_unescaped_source(math) -> None:
    render("$a<b$", math_renderer=math)
    assert math.calls == [("a<b", False, False)]


def test_inline_math_failure_becomes_error_span(broken_math) -> None:
    html = render("cost $a$ end", math_renderer=broken_math)
    assert '<span class="text-red-600 text-sm">Math Error: a</span>' in html


def test_inline_code_and_fences() -> None:
    code = '<code class="bg-gray-100 px-2 py-1 rounded text-sm font-mono text-gray-800">'
    assert format_inline("use `pip install`") == f"use {code}pip install</code>"
    assert format_inline("```print(1)```") == (
        '<pre class="bg-gray-100 p-4 rounded-lg overflow-x-auto mb-2 text-sm font-mono">'
        "<code>print(1)</code></pre>"
    )
    assert format_inline("`**x**`") == f"{code}**x**</code>"


def test_backticks_around_dollar_are_left_alone() -> None:
    assert format_inline("price `$5` here") == "price `$5` here"


def test_format_inline_escapes_ampersand_once() -> None:
    assert format_inline("a & b <c>") == "a &amp; b &lt;c&gt;"


def test_json_envelope_renders_like_its_text() -> None:
    assert render('{"formatted": "# Title"}') == render("# Title")
    assert render('{"formatted": "# Title"}').startswith("<h1")


def test_json_envelope_with_raw_payload() -> None:
    text = json.dumps({"formatted": "- a", "raw": {"notes": []}})
    assert render(text) == f"{UL}{LI}a</li></ul>"


@pytest.mark.parametrize("text", ['{"formatted": "x"', '{"formatted": 5}'])
def test_broken_envelope_is_plain_text(text) -> None:
    assert render(text) == f"{P}{text}</p>"


def test_default_typesetter_renders_unicode() -> None:
    assert '<span class="math math-inline">x²</span>' in render("$x^2$")
    assert '<div class="math math-display">α</div>' in render("$$\\alpha$$")


def test_default_typesetter_lenient_and_strict() -> None:
    lenient = render("$$\\frac{1}{$$")
    assert 'class="math-error"' in lenient
    assert "Math Error" not in lenient

    strict = render("$$\\frac{1}{$$", strict_math=True)
    assert "Math Error: \\frac{1}{" in strict


@pytest.mark.parametrize(
    "text",
    ["$", "$$", "$$$", "$$$$", "**", "*", "`", "```", "{", "\n\n\n", "- \n1. ", "# ", "<div"],
)
def test_render_is_total(text) -> None:
    assert isinstance(render(text), str)


def test_custom_styles() -> None:
    renderer = StructuredTextRenderer(styles=RenderStyles(paragraph="prose", h1="title"))
    assert renderer.render("x") == '<p class="prose">x</p>'
    assert renderer.render("# T") == '<h1 class="title">T</h1>'


def test_render_document_wraps_fragment() -> None:
    page = render_document("# Hello", title="A & B")
    assert page.startswith("<!doctype html>")
    assert "<title>A &amp; B</title>" in page
    assert "Hello</h1>" in page


def test_inline_math_inside_code_is_resolved(math) -> None:
    html = render("see `a $x$ b` here", math_renderer=math)
    assert "\x00" not in html
    assert '<span class="tex">x</span> b</code>' in html
    assert math.calls == [("x", False, False)]


def test_inline_math_inside_fence_is_resolved(math) -> None:
    html = render("```a $x$ b```", math_renderer=math)
    assert "\x00" not in html
    assert '<code>a <span class="tex">x</span> b</code></pre>' in html


def test_block_math_inside_card_is_resolved(math) -> None:
    html = render("__NOTE_CARD_START__\n<div>$$E=mc^2$$</div>\n__NOTE_CARD_END__", math_renderer=math)
    assert html == f'<div>{MATH_DIV}<span class="tex">E=mc^2</span></div></div>\n'


def test_format_inline_drops_nul_and_still_escapes() -> None:
    assert format_inline("<script>\x00") == "&lt;script&gt;"


def test_empty_card_after_block_adds_no_break() -> None:
    html = render("<div>x</div>\n__NOTE_CARD_START__\n\n__NOTE_CARD_END__\n")
    assert html == "<div>x</div>\n\n"
    assert "<br>" not in html
