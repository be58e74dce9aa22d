"""
Unit tests for the page compositor.
"""

import pytest
from PIL import Image

from sitereport.core.models import Contributor, ReportMetadata
from sitereport.export.content import (
    ErrorBlock,
    ImageRef,
    OverviewMapBlock,
    PageContent,
    TitleBlock,
    build_feature_detail_block,
    build_legend_block,
    build_team_block,
)
from sitereport.export.layout import (
    PageOptions,
    PagePlan,
    SlotState,
    build_page,
    compose_plan,
)
from sitereport.export.layout.compositor import wrap_text
from sitereport.export.layout.stylesheet import DEFAULT_STYLESHEET


@pytest.fixture
def options(region):
    return PageOptions(region=region)


class TestPageElementLifecycle:
    def test_a4_page_has_nominal_pixel_size(self, options):
        element = build_page(PageContent.single(TitleBlock("Survey")), 210, 297, options)

        assert (element.width_px, element.height_px) == (794, 1123)
        element.remove()

    def test_element_is_registered_until_removed(self, options, region):
        # Arrange
        element = build_page(PageContent.single(TitleBlock("Survey")), 210, 297, options)
        assert element in region

        # Act
        element.remove()
        element.remove()

        # Assert
        assert element not in region
        assert len(region) == 0
        assert not element.is_attached

    def test_render_after_remove_raises(self, options):
        element = build_page(PageContent.single(TitleBlock("Survey")), 210, 297, options)
        element.remove()

        with pytest.raises(RuntimeError, match="removed"):
            element.render()

    def test_render_scales_bitmap(self, options):
        element = build_page(PageContent.single(TitleBlock("Survey")), 210, 297, options)
        try:
            bitmap = element.render(scale=2)
        finally:
            element.remove()

        assert bitmap.size == (1588, 2246)
        assert bitmap.mode == "RGB"

    def test_when_layout_fails_then_element_removed(self, options, region):
        with pytest.raises(KeyError):
            build_page(PageContent(blocks=(object(),)), 210, 297, options)

        assert len(region) == 0

    def test_content_area_excludes_padding_and_footer(self, options):
        element = build_page(PageContent(), 210, 297, options)

        assert element.content_width == 794 - 2 * 57
        assert element.available_height == 1123 - 2 * 57 - 20
        element.remove()


class TestFrontMatterPages:
    def test_title_logo_becomes_pending_image_slot(self, options):
        block = TitleBlock("Survey", logo=ImageRef("logo.png"))
        element = build_page(PageContent.single(block), 210, 297, options)

        assert [s.state for s in element.image_slots] == [SlotState.PENDING]
        element.remove()

    def test_contributor_without_photo_draws_placeholder(self, options):
        metadata = ReportMetadata(contributors=(Contributor(name="Sam"),))
        element = build_page(PageContent.single(build_team_block(metadata)), 210, 297, options)

        slot = element.image_slots[0]
        assert slot.state is SlotState.FAILED
        assert slot.placeholder_text == "NA"
        element.remove()

    def test_legend_measures_content(self, options, sample_features):
        element = build_page(PageContent.single(build_legend_block(sample_features)), 210, 297, options)

        assert element.content_height > 0
        element.remove()


class TestFeaturePages:
    def test_feature_page_has_map_and_image_slots(self, options, feature_factory):
        # Arrange
        feature = feature_factory("Culvert A", observations=[
            {"observationType": "Blockage", "severity": "High", "recommendation": "Clear",
             "images": [{"src": "a.png"}, {"src": "b.png"}]},
        ])
        block = build_feature_detail_block(feature, geodata=lambda f: [])
        plan = PagePlan(index=0, category="Drainage", blocks=(block,))

        # Act
        element = compose_plan(plan, options)

        # Assert
        assert [s.snapshot_id for s in element.map_slots] == [block.snapshot_id]
        assert element.map_slots[0].feature is feature
        assert [s.ref.src for s in element.image_slots] == ["a.png", "b.png"]
        assert all(s.state is SlotState.PENDING for s in element.image_slots)
        element.remove()

    def test_header_counts_toward_height(self, options, feature_factory):
        block = build_feature_detail_block(feature_factory(), geodata=lambda f: [])

        with_header = build_page(PageContent((block,), header="Feature Details: Drainage"), 210, 297, options)
        without = build_page(PageContent((block,)), 210, 297, options)

        assert with_header.content_height > without.content_height
        with_header.remove()
        without.remove()

    def test_more_blocks_measure_taller(self, options, feature_factory):
        a = build_feature_detail_block(feature_factory("A"), geodata=lambda f: [])
        b = build_feature_detail_block(feature_factory("B"), geodata=lambda f: [])

        one = compose_plan(PagePlan(0, "Drainage", (a,)), options)
        two = compose_plan(PagePlan(0, "Drainage", (a, b)), options)

        assert two.content_height > one.content_height
        one.remove()
        two.remove()

    def test_error_block_has_no_map_slot(self, options):
        element = build_page(PageContent.single(ErrorBlock("Invalid Feature Data", "Missing")), 210, 297, options)

        assert element.map_slots == []
        element.remove()


class TestOverviewPage:
    def test_overview_fills_page_with_screenshot(self, region):
        screenshot = Image.new("RGB", (400, 300), "green")
        block = OverviewMapBlock("Site Features Overview", screenshot)

        element = build_page(PageContent.single(block), 431.8, 279.4, PageOptions(padding_mm=0, region=region))

        assert element.padding_px == 0
        assert element.content_height == element.height_px
        assert element.image_slots[0].state is SlotState.LOADED
        bitmap = element.render()
        element.remove()
        assert bitmap.getpixel((5, element.height_px - 5)) == (0, 128, 0)


class TestWrapText:
    def test_short_text_single_line(self):
        assert wrap_text("a b", DEFAULT_STYLESHEET.body, 1000) == ["a b"]

    def test_long_text_wraps_within_width(self):
        text = "word " * 60

        lines = wrap_text(text, DEFAULT_STYLESHEET.body, 200)

        assert len(lines) > 1
        assert " ".join(lines).split() == text.split()

    def test_empty_text_is_one_empty_line(self):
        assert wrap_text("", DEFAULT_STYLESHEET.body, 100) == [""]
