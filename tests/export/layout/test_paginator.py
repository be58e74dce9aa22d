"""
Unit tests for the pagination algorithm.

Heights are injected through the measure function so page breaks are
exact; one test class uses the real compositor measurement.
"""

import math

import pytest

from sitereport.core.models import Feature
from sitereport.export.content import build_feature_detail_block
from sitereport.export.layout import (
    PageOptions,
    group_by_category,
    iter_document_pages,
    paginate,
)


def _no_geodata(feature):
    return []


def _build(feature):
    return build_feature_detail_block(feature, geodata=_no_geodata)


@pytest.fixture
def measure_by_height():
    """Measure function summing per-feature heights (header ignored)."""
    def _create(heights: dict[str, float]):
        calls = []

        def measure(plan):
            calls.append(plan)
            return sum(heights[f.name] for f in plan.features)

        measure.calls = calls
        return measure
    return _create


def _names(page):
    return [f.name for f in page.features]


class TestErosionScenario:
    def test_when_two_fit_then_third_continues_on_next_page(self, feature_factory, measure_by_height):
        # Arrange
        features = [feature_factory(f"Rill {i}", "Erosion") for i in (1, 2, 3)]
        measure = measure_by_height({"Rill 1": 1500, "Rill 2": 1500, "Rill 3": 1500})

        # Act
        result = paginate(features, measure=measure, budget=3500, build_block=_build)

        # Assert
        assert [_names(p) for p in result.pages] == [["Rill 1", "Rill 2"], ["Rill 3"]]
        assert result.pages[0].header == "Feature Details: Erosion"
        assert result.pages[1].header == "Feature Details: Erosion (continued)"
        assert result.warnings == []

    def test_when_cumulative_exceeds_budget_then_at_least_ceiling_pages(self, feature_factory, measure_by_height):
        # 3 x 2000 px against 3500 px: no two blocks fit together
        features = [feature_factory(f"Rill {i}", "Erosion") for i in (1, 2, 3)]
        measure = measure_by_height({"Rill 1": 2000, "Rill 2": 2000, "Rill 3": 2000})

        result = paginate(features, measure=measure, budget=3500, build_block=_build)

        assert result.page_count >= math.ceil(6000 / 3500)
        assert [_names(p) for p in result.pages] == [["Rill 1"], ["Rill 2"], ["Rill 3"]]
        assert [p.is_continuation for p in result.pages] == [False, True, True]


class TestDrainageScenario:
    def test_when_single_block_exceeds_budget_then_one_page_and_warning(self, feature_factory, measure_by_height):
        # Arrange
        features = [feature_factory("Main Drain", "Drainage")]
        measure = measure_by_height({"Main Drain": 9000})

        # Act
        result = paginate(features, measure=measure, budget=3500, build_block=_build)

        # Assert
        assert result.page_count == 1
        assert _names(result.pages[0]) == ["Main Drain"]
        assert not result.pages[0].is_continuation
        assert len(result.warnings) == 1
        assert "9000px" in result.warnings[0]

    def test_oversized_block_after_others_gets_its_own_page(self, feature_factory, measure_by_height):
        features = [feature_factory(n, "Drainage") for n in ("A", "B", "C")]
        measure = measure_by_height({"A": 500, "B": 9000, "C": 500})

        result = paginate(features, measure=measure, budget=3500, build_block=_build)

        assert [_names(p) for p in result.pages] == [["A"], ["B"], ["C"]]
        assert len(result.warnings) == 1


class TestPlacementInvariants:
    def test_every_feature_placed_exactly_once(self, feature_factory, measure_by_height):
        # Arrange
        names = [f"F{i:02d}" for i in range(25)]
        features = [feature_factory(n, "Erosion" if i % 2 else "Drainage") for i, n in enumerate(names)]
        heights = {n: 300 + (i * 137) % 900 for i, n in enumerate(names)}

        # Act
        result = paginate(features, measure=measure_by_height(heights), budget=1500, build_block=_build)

        # Assert
        placed = [f.internal_id for p in result.pages for f in p.features]
        assert sorted(placed) == sorted(f.internal_id for f in features)
        assert all(len(pages) == 1 for pages in result.feature_page_map.values())
        assert result.total_blocks == len(features)

    def test_pages_within_budget_unless_single_block(self, feature_factory, measure_by_height):
        names = [f"F{i}" for i in range(10)]
        heights = {n: 400 + 100 * i for i, n in enumerate(names)}
        features = [feature_factory(n, "Erosion") for n in names]

        result = paginate(features, measure=measure_by_height(heights), budget=1200, build_block=_build)

        for page in result.pages:
            total = sum(heights[f.name] for f in page.features)
            assert total <= 1200 or page.block_count == 1

    def test_no_empty_pages(self, feature_factory, measure_by_height):
        features = [feature_factory(n, "Erosion") for n in ("A", "B")]

        result = paginate(features, measure=measure_by_height({"A": 5000, "B": 5000}), budget=1000,
                          build_block=_build)

        assert all(not p.is_empty for p in result.pages)
        assert result.page_count == 2

    def test_only_first_page_of_each_category_is_unmarked(self, feature_factory, measure_by_height):
        features = [feature_factory(n, c) for n, c in
                    (("A", "Drainage"), ("B", "Drainage"), ("C", "Erosion"), ("D", "Erosion"))]

        result = paginate(features, measure=measure_by_height(dict.fromkeys("ABCD", 800)), budget=1000,
                          build_block=_build)

        assert [(p.category, p.is_continuation) for p in result.pages] == [
            ("Drainage", False), ("Drainage", True), ("Erosion", False), ("Erosion", True),
        ]
        assert [p.index for p in result.pages] == [0, 1, 2, 3]

    def test_measure_count_is_linear(self, feature_factory, measure_by_height):
        features = [feature_factory(f"F{i}", "Erosion") for i in range(12)]
        measure = measure_by_height({f"F{i}": 700 for i in range(12)})

        paginate(features, measure=measure, budget=1000, build_block=_build)

        # One measure per appended block plus one per page break
        assert len(measure.calls) <= 2 * len(features)


class TestGrouping:
    def test_categories_sorted_and_features_sorted_by_name(self, sample_features):
        groups = group_by_category(sample_features)

        assert [(c, [f.name for f in fs]) for c, fs in groups] == [
            ("Drainage", ["Culvert A", "Culvert B"]),
            ("Erosion", ["Rill 1", "Rill 2"]),
        ]

    def test_missing_category_groups_as_uncategorized(self):
        groups = group_by_category([Feature(geometry=None, properties={"Name": "Loose"})])

        assert groups[0][0] == "Uncategorized"

    def test_invalid_feature_still_gets_a_block(self):
        feature = Feature(geometry=None, properties=None, id="bad")

        pages = list(iter_document_pages([feature], measure=lambda plan: 10, budget=100))

        assert pages[0].blocks[0].title == "Invalid Feature Data"


class TestCompositorMeasurement:
    def test_small_features_share_a_page_and_leave_no_elements(self, feature_factory, region):
        features = [feature_factory(n, "Drainage") for n in ("A", "B")]

        result = paginate(features, build_block=_build, options=PageOptions(region=region))

        assert result.page_count == 1
        assert result.pages[0].height_used > 0
        assert len(region) == 0

    def test_many_features_spill_onto_continuation_pages(self, feature_factory, region):
        features = [feature_factory(f"Pipe {i:02d}", "Drainage") for i in range(8)]

        result = paginate(features, build_block=_build, options=PageOptions(region=region))

        assert result.page_count > 1
        assert all(p.is_continuation for p in result.pages[1:])
        assert result.total_blocks == 8
        assert len(region) == 0
