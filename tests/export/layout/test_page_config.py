"""
Tests for physical page sizes and the content budget.
"""

import pytest

from sitereport.export.layout import (
    A4_PORTRAIT,
    LEDGER_LANDSCAPE,
    PageSize,
    category_header,
    max_content_height,
    mm_to_px,
)


class TestPageSize:
    def test_a4_portrait_pixels(self):
        assert (A4_PORTRAIT.width_px, A4_PORTRAIT.height_px) == (794, 1123)
        assert A4_PORTRAIT.orientation == "portrait"

    def test_ledger_landscape(self):
        assert LEDGER_LANDSCAPE.orientation == "landscape"
        assert LEDGER_LANDSCAPE.width_px == mm_to_px(431.8)

    def test_when_dimension_not_positive_then_raises(self):
        with pytest.raises(ValueError):
            PageSize(0, 297)


class TestContentBudget:
    def test_default_budget(self):
        # 297 mm - 2.5 x 15 mm = 259.5 mm
        assert max_content_height() == 981

    def test_zero_padding_uses_full_height(self):
        assert max_content_height(A4_PORTRAIT, 0) == 1123

    def test_when_padding_consumes_page_then_raises(self):
        with pytest.raises(ValueError):
            max_content_height(A4_PORTRAIT, 200)


class TestCategoryHeader:
    def test_first_page(self):
        assert category_header("Erosion") == "Feature Details: Erosion"

    def test_continuation(self):
        assert category_header("Erosion", continued=True) == "Feature Details: Erosion (continued)"
