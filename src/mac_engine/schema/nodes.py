"""Tagged-variant schema nodes.

Each node validates plain Python values (the result of ``json.loads``) and
renders itself as a JSON Schema document so it can be shown to the model.
Validation never raises; it returns a ValidationResult carrying every
diagnostic found, each prefixed with the path of the offending value.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar

from jsonschema import Draft202012Validator


@dataclass
class ValidationResult:
    """Outcome of validating a value against a schema.

    Attributes:
        valid: True if no errors were found
        value: The validated value (only meaningful when valid)
        errors: Diagnostics in the form "$.path: message"
    """

    valid: bool
    value: Any = None
    errors: list[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.valid

    @property
    def message(self) -> str:
        """All diagnostics joined into a single line."""
        return "; ".join(self.errors)


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


@dataclass
class Schema(ABC):
    """Base class for all schema nodes."""

    kind: ClassVar[str] = "any"

    description: str | None = field(default=None, kw_only=True)

    def validate(self, value: Any) -> ValidationResult:
        """Validate a value against this schema.

        Args:
            value: The value to check

        Returns:
            ValidationResult with the checked value or the list of errors
        """
        errors: list[str] = []
        checked = self._check(value, "$", errors)
        if errors:
            return ValidationResult(valid=False, errors=errors)
        return ValidationResult(valid=True, value=checked)

    def to_json_schema(self) -> dict[str, Any]:
        """Render this node as a JSON Schema document."""
        document = self._json_schema()
        if self.description:
            document["description"] = self.description
        return document

    @abstractmethod
    def _check(self, value: Any, path: str, errors: list[str]) -> Any:
        """Return the checked value, appending one message per violation."""

    @abstractmethod
    def _json_schema(self) -> dict[str, Any]:
        """Render the node without its description."""


@dataclass
class AnySchema(Schema):
    """Accepts every value."""

    def _check(self, value: Any, path: str, errors: list[str]) -> Any:
        return value

    def _json_schema(self) -> dict[str, Any]:
        return {}


@dataclass
class NullSchema(Schema):
    kind: ClassVar[str] = "null"

    def _check(self, value: Any, path: str, errors: list[str]) -> Any:
        if value is not None:
            errors.append(f"{path}: expected null, got {_type_name(value)}")
        return value

    def _json_schema(self) -> dict[str, Any]:
        return {"type": "null"}


@dataclass
class BooleanSchema(Schema):
    kind: ClassVar[str] = "boolean"

    def _check(self, value: Any, path: str, errors: list[str]) -> Any:
        if not isinstance(value, bool):
            errors.append(f"{path}: expected boolean, got {_type_name(value)}")
        return value

    def _json_schema(self) -> dict[str, Any]:
        return {"type": "boolean"}


@dataclass
class StringSchema(Schema):
    kind: ClassVar[str] = "string"

    min_length: int | None = None
    max_length: int | None = None
    pattern: str | None = None

    def _check(self, value: Any, path: str, errors: list[str]) -> Any:
        if not isinstance(value, str):
            errors.append(f"{path}: expected string, got {_type_name(value)}")
            return value
        if self.min_length is not None and len(value) < self.min_length:
            errors.append(
                f"{path}: string shorter than {self.min_length} characters"
            )
        if self.max_length is not None and len(value) > self.max_length:
            errors.append(f"{path}: string longer than {self.max_length} characters")
        if self.pattern is not None and re.search(self.pattern, value) is None:
            errors.append(f"{path}: string does not match pattern {self.pattern!r}")
        return value

    def _json_schema(self) -> dict[str, Any]:
        document: dict[str, Any] = {"type": "string"}
        if self.min_length is not None:
            document["minLength"] = self.min_length
        if self.max_length is not None:
            document["maxLength"] = self.max_length
        if self.pattern is not None:
            document["pattern"] = self.pattern
        return document


@dataclass
class NumberSchema(Schema):
    """Any JSON number. Booleans are rejected even though Python treats
    them as integers."""

    kind: ClassVar[str] = "number"

    minimum: float | None = None
    maximum: float | None = None

    def _accepts(self, value: Any) -> bool:
        return isinstance(value, (int, float)) and not isinstance(value, bool)

    def _check(self, value: Any, path: str, errors: list[str]) -> Any:
        if not self._accepts(value):
            errors.append(f"{path}: expected {self.kind}, got {_type_name(value)}")
            return value
        if self.minimum is not None and value < self.minimum:
            errors.append(f"{path}: {value} is less than minimum {self.minimum}")
        if self.maximum is not None and value > self.maximum:
            errors.append(f"{path}: {value} is greater than maximum {self.maximum}")
        return value

    def _json_schema(self) -> dict[str, Any]:
        document: dict[str, Any] = {"type": self.kind}
        if self.minimum is not None:
            document["minimum"] = self.minimum
        if self.maximum is not None:
            document["maximum"] = self.maximum
        return document


@dataclass
class IntegerSchema(NumberSchema):
    kind: ClassVar[str] = "integer"

    def _accepts(self, value: Any) -> bool:
        if isinstance(value, float):
            return value.is_integer()
        return isinstance(value, int) and not isinstance(value, bool)


@dataclass
class EnumSchema(Schema):
    kind: ClassVar[str] = "enum"

    values: list[Any] = field(default_factory=list)

    def _check(self, value: Any, path: str, errors: list[str]) -> Any:
        # 1 == True in Python, so compare types as well as values
        for allowed in self.values:
            if allowed == value and type(allowed) is type(value):
                return value
        errors.append(f"{path}: {value!r} is not one of {self.values!r}")
        return value

    def _json_schema(self) -> dict[str, Any]:
        return {"enum": list(self.values)}


@dataclass
class ArraySchema(Schema):
    kind: ClassVar[str] = "array"

    items: Schema = field(default_factory=AnySchema)
    min_items: int | None = None
    max_items: int | None = None

    def _check(self, value: Any, path: str, errors: list[str]) -> Any:
        if not isinstance(value, list):
            errors.append(f"{path}: expected array, got {_type_name(value)}")
            return value
        if self.min_items is not None and len(value) < self.min_items:
            errors.append(f"{path}: expected at least {self.min_items} items")
        if self.max_items is not None and len(value) > self.max_items:
            errors.append(f"{path}: expected at most {self.max_items} items")
        return [
            self.items._check(item, f"{path}[{index}]", errors)
            for index, item in enumerate(value)
        ]

    def _json_schema(self) -> dict[str, Any]:
        document: dict[str, Any] = {
            "type": "array",
            "items": self.items.to_json_schema(),
        }
        if self.min_items is not None:
            document["minItems"] = self.min_items
        if self.max_items is not None:
            document["maxItems"] = self.max_items
        return document


@dataclass
class ObjectSchema(Schema):
    """An object with named properties.

    Attributes:
        properties: Property name to schema
        required: Names that must be present; None means all properties
        additional_properties: Whether undeclared keys are accepted (and kept)
    """

    kind: ClassVar[str] = "object"

    properties: dict[str, Schema] = field(default_factory=dict)
    required: list[str] | None = None
    additional_properties: bool = True

    @property
    def required_names(self) -> list[str]:
        if self.required is None:
            return list(self.properties)
        return list(self.required)

    def _check(self, value: Any, path: str, errors: list[str]) -> Any:
        if not isinstance(value, dict):
            errors.append(f"{path}: expected object, got {_type_name(value)}")
            return value

        for name in self.required_names:
            if name not in value:
                errors.append(f"{path}.{name}: required property is missing")

        checked: dict[str, Any] = {}
        for key, item in value.items():
            prop = self.properties.get(key)
            if prop is not None:
                checked[key] = prop._check(item, f"{path}.{key}", errors)
            elif self.additional_properties:
                checked[key] = item
            else:
                errors.append(f"{path}.{key}: unexpected property")
        return checked

    def _json_schema(self) -> dict[str, Any]:
        document: dict[str, Any] = {
            "type": "object",
            "properties": {
                name: prop.to_json_schema() for name, prop in self.properties.items()
            },
        }
        required = self.required_names
        if required:
            document["required"] = required
        if not self.additional_properties:
            document["additionalProperties"] = False
        return document


@dataclass
class UnionSchema(Schema):
    """Matches if any option matches; the first matching option wins."""

    kind: ClassVar[str] = "union"

    options: list[Schema] = field(default_factory=list)

    def _check(self, value: Any, path: str, errors: list[str]) -> Any:
        option_errors: list[str] = []
        for option in self.options:
            attempt: list[str] = []
            checked = option._check(value, path, attempt)
            if not attempt:
                return checked
            option_errors.extend(attempt)
        errors.append(
            f"{path}: value matches none of the union options "
            f"({'; '.join(option_errors)})"
        )
        return value

    def _json_schema(self) -> dict[str, Any]:
        return {"anyOf": [option.to_json_schema() for option in self.options]}


@dataclass
class JsonSchema(Schema):
    """A raw JSON Schema document, validated with the jsonschema library.

    Useful when a tool already ships a JSON Schema and rebuilding it from
    nodes would only duplicate it.
    """

    kind: ClassVar[str] = "json-schema"

    document: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        Draft202012Validator.check_schema(self.document)
        self._validator = Draft202012Validator(self.document)

    def _check(self, value: Any, path: str, errors: list[str]) -> Any:
        for error in sorted(self._validator.iter_errors(value), key=str):
            location = "".join(
                f"[{part}]" if isinstance(part, int) else f".{part}"
                for part in error.absolute_path
            )
            errors.append(f"{path}{location}: {error.message}")
        return value

    def _json_schema(self) -> dict[str, Any]:
        return dict(self.document)


def object_schema(
    description: str | None = None, **properties: Schema
) -> ObjectSchema:
    """Build an object schema where every given property is required.

    Example:
        >>> object_schema(city=StringSchema(), state=StringSchema())
    """
    return ObjectSchema(properties=properties, description=description)
