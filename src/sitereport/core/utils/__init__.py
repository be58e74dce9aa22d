from .serialization import (
    SchemaError,
    deserialize_feature_collection,
    serialize_feature_collection,
    load_feature_collection,
    load_report_metadata,
    load_category_styles,
)

__all__ = [
    "SchemaError",
    "deserialize_feature_collection",
    "serialize_feature_collection",
    "load_feature_collection",
    "load_report_metadata",
    "load_category_styles",
]
