from schema_serde.core.types._serde_types import (
    CONCURRENT_REQUESTS,
    LATEST_VERSION,
    MAGIC_BYTE,
    MAGIC_PREFIX_SIZE,
    MAX_SCHEMA_ID,
    Element,
    SchemaFormat,
    SubjectNameStrategy,
)

__all__ = [
    "CONCURRENT_REQUESTS",
    "LATEST_VERSION",
    "MAGIC_BYTE",
    "MAGIC_PREFIX_SIZE",
    "MAX_SCHEMA_ID",
    "Element",
    "SchemaFormat",
    "SubjectNameStrategy",
]
