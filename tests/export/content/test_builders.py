"""
Tests for content block builders.
"""

from sitereport.core.geodata import GeoDatum
from sitereport.core.models import (
    CategoryStyle,
    CategoryStyles,
    Contributor,
    Feature,
    ReportMetadata,
    Severity,
)
from sitereport.export.content import (
    ErrorBlock,
    FeatureDetailBlock,
    build_feature_detail_block,
    build_legend_block,
    build_team_block,
    build_title_block,
    is_feature_block,
    snapshot_id_for,
)


class TestTitleAndTeamBlocks:
    def test_title_block_skips_placeholder_logo(self):
        block = build_title_block(ReportMetadata(title="Survey", logo="https://placehold.co/100"))

        assert block.logo is None
        assert block.title == "Survey"

    def test_title_block_keeps_real_logo(self):
        block = build_title_block(ReportMetadata(logo="data:image/png;base64,AAAA"))

        assert block.logo.src.startswith("data:")

    def test_empty_title_uses_default(self):
        assert build_title_block(ReportMetadata(title="")).title == "Site Analysis Report"

    def test_team_block_lists_details_and_contributors(self):
        # Arrange
        metadata = ReportMetadata(
            client_name="<i>Acme</i>",
            contributors=(Contributor(name="Sam", role="Ecologist", bio="Bats"),),
        )

        # Act
        block = build_team_block(metadata)

        # Assert
        details = dict(block.details)
        assert details["Client Name"] == "Acme"
        assert details["Project ID"] == ""
        assert block.contributors[0].name == "Sam"
        assert block.contributors[0].image is None


class TestLegendBlock:
    def test_configured_categories_come_first(self, sample_features, feature_factory):
        styles = CategoryStyles({"Erosion": CategoryStyle(), "Unused": CategoryStyle()})
        features = sample_features + [feature_factory("Pond", "Water")]

        block = build_legend_block(features, styles)

        assert [c.name for c in block.categories] == ["Erosion", "Drainage", "Water"]

    def test_entry_carries_highest_severity(self, sample_features):
        block = build_legend_block(sample_features)

        erosion = next(c for c in block.categories if c.name == "Erosion")
        severities = {e.name: e.severity for e in erosion.entries}
        assert severities == {"Rill 2": None, "Rill 1": Severity.HIGH}

    def test_long_names_are_truncated(self, feature_factory):
        block = build_legend_block([feature_factory("x" * 60, "Erosion")])

        assert len(block.categories[0].entries[0].name) == 35


class TestFeatureDetailBlock:
    def test_builds_detail_for_valid_feature(self, feature_factory):
        # Arrange
        feature = feature_factory("Culvert A", observations=[
            {"observationType": "Blockage", "severity": "Critical", "recommendation": "Clear debris",
             "images": [{"src": "a.png", "caption": "Inlet"}, {"src": ""}]},
        ])

        # Act
        block = build_feature_detail_block(feature)

        # Assert
        assert isinstance(block, FeatureDetailBlock)
        assert block.name == "Culvert A"
        assert block.snapshot_id == "feature-snapshot-culvert-a"
        assert block.observations[0].severity is Severity.CRITICAL
        assert [i.src for i in block.images] == ["a.png"]
        assert is_feature_block(block)

    def test_missing_properties_gives_invalid_data_block(self):
        feature = Feature(geometry=None, properties=None, id="bad")

        block = build_feature_detail_block(feature)

        assert isinstance(block, ErrorBlock)
        assert block.title == "Invalid Feature Data"
        assert block.owning_feature is feature

    def test_geodata_failure_degrades_to_placeholder_row(self, feature_factory):
        def broken(feature):
            raise RuntimeError("projection failed")

        block = build_feature_detail_block(feature_factory(), geodata=broken)

        assert isinstance(block, FeatureDetailBlock)
        assert block.geo_rows == (GeoDatum("", "No geometry stats"),)

    def test_malformed_observation_is_skipped(self, feature_factory):
        feature = feature_factory(observations=["junk", {"observationType": "Scour", "severity": "Low"}])

        block = build_feature_detail_block(feature)

        assert [o.observation_type for o in block.observations] == ["Scour"]

    def test_unexpected_failure_gives_error_block(self, feature_factory):
        def geodata(feature):
            return [GeoDatum("Area", "1 m²")]

        class Exploding(Feature):
            @property
            def raw_observations(self):
                raise RuntimeError("boom")

        feature = Exploding(geometry=None, properties={"Name": "Weir"})

        block = build_feature_detail_block(feature, geodata=geodata)

        assert isinstance(block, ErrorBlock)
        assert block.title == "Error Rendering Feature"
        assert block.message == "Weir"

    def test_defaults_for_missing_text(self):
        block = build_feature_detail_block(Feature(geometry=None, properties={}))

        assert block.name == "Unnamed Feature"
        assert block.description == "N/A"
        assert block.category == "Uncategorized"

    def test_snapshot_id_strips_unsafe_characters(self, feature_factory):
        feature = feature_factory(internal_id="a b/c#1")

        assert snapshot_id_for(feature) == "feature-snapshot-abc1"
