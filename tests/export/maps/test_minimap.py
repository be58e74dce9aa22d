"""
Tests for feature snapshot maps.
"""

from unittest.mock import MagicMock

import pytest

from sitereport.core.models import CategoryStyle, CategoryStyles, Feature
from sitereport.export.layout import MapSlot
from sitereport.export.maps import (
    MISSING_ELEMENTS_MESSAGE,
    RENDER_ERROR_MESSAGE,
    draw_feature_snapshot,
    fallback_map_display,
    render_mini_map,
)


@pytest.fixture
def slot(feature_factory):
    feature = feature_factory()
    return MapSlot((0, 0, 300, 250), "feature-snapshot-culvert-a", feature)


class TestDrawFeatureSnapshot:
    def test_polygon_is_filled_with_category_color(self, feature_factory):
        style = CategoryStyle(fill_color="#ff0000", fill_opacity=1.0)

        image = draw_feature_snapshot(feature_factory(), style, (200, 150))

        assert image.size == (200, 150)
        assert image.getpixel((100, 75)) == (255, 0, 0)

    def test_scale_multiplies_resolution(self, feature_factory):
        image = draw_feature_snapshot(feature_factory(), CategoryStyle(), (200, 150), scale=2)

        assert image.size == (400, 300)

    def test_point_and_line_geometries_render(self, feature_factory):
        point = feature_factory(geometry={"type": "Point", "coordinates": [0.12, 52.2]})
        line = feature_factory(geometry={"type": "MultiLineString", "coordinates": [[[0, 0], [0.01, 0.01]]]})

        assert draw_feature_snapshot(point, CategoryStyle(), (50, 50)).size == (50, 50)
        assert draw_feature_snapshot(line, CategoryStyle(), (50, 50)).size == (50, 50)

    def test_missing_geometry_raises(self):
        with pytest.raises(ValueError):
            draw_feature_snapshot(Feature(geometry=None, properties={}), CategoryStyle(), (50, 50))


class TestRenderMiniMap:
    @pytest.mark.asyncio
    async def test_renders_into_slot(self, slot):
        await render_mini_map(slot, slot.feature, CategoryStyles().get_category_style_for_feature,
                              settle_delay=0)

        assert slot.image.size == (300, 250)
        assert not slot.is_fallback
        assert slot.attempts == 1

    @pytest.mark.asyncio
    async def test_when_slot_missing_then_returns_normally(self, feature_factory):
        await render_mini_map(None, feature_factory(), CategoryStyles().get_category_style_for_feature)

    @pytest.mark.asyncio
    async def test_when_geometry_missing_then_missing_elements_message(self, slot):
        feature = Feature(geometry=None, properties={"Name": "Ghost"})

        await render_mini_map(slot, feature, CategoryStyles().get_category_style_for_feature, settle_delay=0)

        assert slot.message == MISSING_ELEMENTS_MESSAGE
        assert slot.attempts == 0

    @pytest.mark.asyncio
    async def test_when_style_lookup_fails_then_render_error_message(self, slot):
        style_for = MagicMock(side_effect=KeyError("no style"))

        await render_mini_map(slot, slot.feature, style_for, settle_delay=0)

        assert slot.message == RENDER_ERROR_MESSAGE
        assert slot.image is None

    @pytest.mark.asyncio
    async def test_when_geometry_invalid_then_render_error_message(self, slot):
        feature = Feature(geometry={"type": "Polygon", "coordinates": "bad"}, properties={})

        await render_mini_map(slot, feature, CategoryStyles().get_category_style_for_feature, settle_delay=0)

        assert slot.message == RENDER_ERROR_MESSAGE


class TestFallbackMapDisplay:
    def test_default_message(self, slot):
        fallback_map_display(slot)

        assert slot.message == "Map unavailable"

    def test_missing_container_is_ignored(self):
        fallback_map_display(None, "anything")
