from schema_serde.config.settings import (
    SchemaRegistrySettings,
    SerdeSettings,
    schema_registry_settings,
    serde_settings,
)

__all__ = [
    "SchemaRegistrySettings",
    "SerdeSettings",
    "schema_registry_settings",
    "serde_settings",
]
