"""Messaging primitives for topic schema administration."""

from .bundle_loader import (
    BundleLoadError,
    BundleNotFoundError,
    ClassNotFoundInBundleError,
    load_class,
)
from .schema_extractor import (
    SchemaExtractionError,
    build_record_schema,
    derive_avro_schema,
    derive_json_schema,
)
from .schema_payload import (
    PostSchemaPayload,
    SchemaInfo,
    SchemaInfoWithVersion,
    SchemaPayloadError,
    SchemaType,
    load_payload_file,
)
from .topic_name import InvalidTopicNameError, TopicDomain, TopicName, validate_topic_name

__all__ = [
    "BundleLoadError",
    "BundleNotFoundError",
    "ClassNotFoundInBundleError",
    "InvalidTopicNameError",
    "PostSchemaPayload",
    "SchemaExtractionError",
    "SchemaInfo",
    "SchemaInfoWithVersion",
    "SchemaPayloadError",
    "SchemaType",
    "TopicDomain",
    "TopicName",
    "build_record_schema",
    "derive_avro_schema",
    "derive_json_schema",
    "load_class",
    "load_payload_file",
    "validate_topic_name",
]
