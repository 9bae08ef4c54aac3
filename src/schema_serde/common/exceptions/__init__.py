from schema_serde.common.exceptions.serde_errors import (
    INFORMATIONAL_CODES,
    SerdeError,
    SerdeErrorCode,
)

__all__ = ["INFORMATIONAL_CODES", "SerdeError", "SerdeErrorCode"]
