"""
Tests for GeoJSON and report JSON loading.
"""

import json

import pytest

from sitereport.core.utils import (
    SchemaError,
    deserialize_feature_collection,
    load_category_styles,
    load_feature_collection,
    load_report_metadata,
    serialize_feature_collection,
)


def _collection(*features):
    return {"type": "FeatureCollection", "features": list(features)}


class TestDeserializeFeatureCollection:
    def test_when_not_feature_collection_then_raises(self):
        with pytest.raises(SchemaError, match="FeatureCollection"):
            deserialize_feature_collection({"type": "Feature"})

    def test_when_features_not_list_then_raises(self):
        with pytest.raises(SchemaError):
            deserialize_feature_collection({"type": "FeatureCollection", "features": {}})

    def test_features_without_id_get_positional_internal_id(self):
        # Arrange
        data = _collection(
            {"type": "Feature", "geometry": None, "properties": {"Name": "A"}},
            {"type": "Feature", "geometry": None, "properties": {"Name": "B"}, "id": "x"},
        )

        # Act
        collection = deserialize_feature_collection(data)

        # Assert
        ids = [f.internal_id for f in collection]
        assert ids == ["feature-0", "x"]

    def test_non_object_features_are_skipped(self):
        collection = deserialize_feature_collection(_collection("junk", {"properties": {}}))

        assert len(collection) == 1

    def test_malformed_properties_survive_loading(self):
        collection = deserialize_feature_collection(_collection({"geometry": None, "properties": None}))

        assert collection.features[0].properties is None

    def test_serialize_round_trip_keeps_names(self):
        data = _collection({"type": "Feature", "geometry": None, "properties": {"Name": "Pond"}})

        again = deserialize_feature_collection(serialize_feature_collection(deserialize_feature_collection(data)))

        assert [f.name for f in again] == ["Pond"]


class TestLoaders:
    def test_load_feature_collection_from_path(self, tmp_path):
        path = tmp_path / "features.geojson"
        path.write_text(json.dumps(_collection({"properties": {"Name": "Pond", "category": "Water"}})))

        collection = load_feature_collection(path)

        assert collection.categories == ["Water"]

    def test_invalid_json_raises_schema_error(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")

        with pytest.raises(SchemaError, match="Invalid JSON"):
            load_feature_collection(path)

    def test_metadata_must_be_object(self):
        with pytest.raises(SchemaError):
            load_report_metadata([1, 2])

    def test_load_report_metadata_from_mapping(self):
        assert load_report_metadata({"title": "Survey"}).title == "Survey"

    def test_load_category_styles(self):
        styles = load_category_styles({"Erosion": {"fillColor": "#a0522d"}})

        assert styles.get("Erosion").fill_color == "#a0522d"
