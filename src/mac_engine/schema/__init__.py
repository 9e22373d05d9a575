"""Schema AST used for tool and resource contracts.

Schemas are plain dataclass trees: they validate model-chosen values and
render themselves as JSON Schema for the prompt.
"""

from mac_engine.schema.nodes import (
    AnySchema,
    ArraySchema,
    BooleanSchema,
    EnumSchema,
    IntegerSchema,
    JsonSchema,
    NullSchema,
    NumberSchema,
    ObjectSchema,
    Schema,
    StringSchema,
    UnionSchema,
    ValidationResult,
    object_schema,
)

__all__ = [
    "Schema",
    "ValidationResult",
    # Nodes
    "AnySchema",
    "ArraySchema",
    "BooleanSchema",
    "EnumSchema",
    "IntegerSchema",
    "JsonSchema",
    "NullSchema",
    "NumberSchema",
    "ObjectSchema",
    "StringSchema",
    "UnionSchema",
    # Helpers
    "object_schema",
]
