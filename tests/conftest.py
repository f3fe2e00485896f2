"""
Shared fixtures: a recording stand-in for the math typesetter and a sample
short-notes card.
"""
import pytest


class RecordingMath:
    """Typesetter that records every call and optionally fails."""

    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def __call__(self, expression, display_mode=False, throw_on_error=False):
        self.calls.append((expression, display_mode, throw_on_error))
        if self.fail:
            raise ValueError(f"cannot typeset {expression}")
        return f'<span class="tex">{expression}</span>'


@pytest.fixture
def math():
    return RecordingMath()


@pytest.fixture
def broken_math():
    return RecordingMath(fail=True)


NOTE_CARD = (
    "__NOTE_CARD_START__\n"
    '<div class="note-card">\n'
    '<h2 class="title">🎯 Photosynthesis</h2>\n'
    "<h3>Summary</h3>\n"
    "<p>Plants turn light into <strong>sugar</strong>.<br>Oxygen is released.</p>\n"
    "<h3>Importance</h3>\n"
    "<p>Basis of food chains &amp; breathable air.</p>\n"
    "<h3>Quick Facts</h3>\n"
    "<ul>\n"
    '<li><span class="badge">1</span><span>Happens in chloroplasts</span></li>\n'
    '<li><span class="badge">2</span><span>Needs water and carbon dioxide</span></li>\n'
    "</ul>\n"
    "</div>\n"
    "__NOTE_CARD_END__"
)


@pytest.fixture
def note_card():
    return NOTE_CARD
