"""
Tests for free-text sanitization.
"""

from sitereport.export.content import safe_text
from sitereport.export.content.sanitize import COERCION_PLACEHOLDER


class ClickEvent:
    """Stands in for a UI event object passed by mistake."""


class TestSafeText:
    def test_none_becomes_empty(self):
        assert safe_text(None) == ""

    def test_numbers_are_stringified(self):
        assert safe_text(42) == "42"

    def test_markup_is_stripped_and_entities_decoded(self):
        assert safe_text("<b>Culvert</b> &amp; ditch") == "Culvert & ditch"

    def test_script_tags_never_survive(self):
        text = safe_text('<img src=x onerror="alert(1)">Pond<script>x()</script>')

        assert "<" not in text
        assert "Pond" in text

    def test_line_breaks_are_kept(self):
        assert safe_text("one<br>two") == "one\ntwo"

    def test_event_object_is_replaced(self):
        assert safe_text(ClickEvent()) == COERCION_PLACEHOLDER

    def test_stringified_event_is_replaced(self):
        assert safe_text("[object Event]") == COERCION_PLACEHOLDER

    def test_default_object_repr_is_replaced(self):
        assert safe_text(object()) == COERCION_PLACEHOLDER

    def test_whitespace_is_collapsed(self):
        assert safe_text("  a \t  b  ") == "a b"
