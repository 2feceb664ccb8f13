"""
Schema description models.

Pydantic models for the data-literal form of a schema. A description is what
application code (or a YAML file) hands to the ``SchemaBuilder``; the builder
turns it into an immutable ``Entity``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Mode(str, Enum):
    """How the checks of one field combine."""

    ALL = "all"
    ANY = "any"


class CheckKind(str, Enum):
    """Primitive check kinds."""

    LENGTH = "length"
    RANGE = "range"
    COLLECTION_SIZE = "collection_size"
    NO_WHITESPACE = "no_whitespace"
    NOT_EMPTY = "not_empty"
    NOT_BLANK = "not_blank"
    CUSTOM_FUNCTION = "custom_function"
    REGEX = "regex"
    ENUM_MEMBERSHIP = "enum_membership"
    REQUIRED = "required"
    EXCLUDE = "exclude"


class NestedKind(str, Enum):
    """Shape of a nested field."""

    SINGLE = "single"
    COLLECTION = "collection"


class FieldType(str, Enum):
    """Declared value type of a field, used for applicability checks."""

    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    NUMBER = "number"
    BOOLEAN = "boolean"
    COLLECTION = "collection"
    MAPPING = "mapping"
    ENTITY = "entity"
    ANY = "any"


# Short names accepted for check kinds
KIND_ALIASES = {
    "len": CheckKind.LENGTH,
    "size": CheckKind.COLLECTION_SIZE,
    "no_space": CheckKind.NO_WHITESPACE,
    "func": CheckKind.CUSTOM_FUNCTION,
    "enums": CheckKind.ENUM_MEMBERSHIP,
    "within": CheckKind.ENUM_MEMBERSHIP,
    "require": CheckKind.REQUIRED,
}

# Parameters each kind accepts (besides ``message``)
KIND_PARAMS: Dict[CheckKind, Set[str]] = {
    CheckKind.LENGTH: {"min", "max"},
    CheckKind.RANGE: {"min", "max"},
    CheckKind.COLLECTION_SIZE: {"min", "max"},
    CheckKind.NO_WHITESPACE: set(),
    CheckKind.NOT_EMPTY: set(),
    CheckKind.NOT_BLANK: set(),
    CheckKind.CUSTOM_FUNCTION: {"ident"},
    CheckKind.REGEX: {"pattern", "format"},
    CheckKind.ENUM_MEMBERSHIP: {"converter", "allowed", "tag_set"},
    CheckKind.REQUIRED: set(),
    CheckKind.EXCLUDE: {"values"},
}

PARAM_NAMES = ("min", "max", "pattern", "format", "ident", "converter", "allowed", "tag_set", "values")

IDENTIFIER_PATTERN = r"^[A-Za-z_][A-Za-z0-9_]*$"


class CheckSpec(BaseModel):
    """One check in a field description."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: CheckKind
    message: Optional[str] = None
    min: Optional[int] = None
    max: Optional[int] = None
    pattern: Optional[str] = None
    format: Optional[str] = None
    ident: Optional[str] = None
    converter: Optional[str] = None
    allowed: Optional[List[Any]] = None
    tag_set: Optional[str] = None
    values: Optional[List[Any]] = None

    @field_validator("kind", mode="before")
    @classmethod
    def resolve_alias(cls, v: Any) -> Any:
        if isinstance(v, str) and not isinstance(v, CheckKind):
            return KIND_ALIASES.get(v.lower(), v.lower())
        return v

    @model_validator(mode="after")
    def check_params(self) -> "CheckSpec":
        allowed_params = KIND_PARAMS[self.kind]
        unexpected = [p for p in PARAM_NAMES if getattr(self, p) is not None and p not in allowed_params]
        if unexpected:
            raise ValueError(
                f"{self.kind.value} check does not accept: {', '.join(unexpected)}"
            )

        if self.kind in (CheckKind.LENGTH, CheckKind.COLLECTION_SIZE):
            for bound in (self.min, self.max):
                if bound is not None and bound < 0:
                    raise ValueError(f"{self.kind.value} bounds must be non-negative")
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError(f"min ({self.min}) cannot be greater than max ({self.max})")

        if self.kind == CheckKind.REGEX and (self.pattern is None) == (self.format is None):
            raise ValueError("regex check needs exactly one of pattern or format")
        if self.kind == CheckKind.CUSTOM_FUNCTION and not self.ident:
            raise ValueError("custom_function check needs an ident")
        if self.kind == CheckKind.ENUM_MEMBERSHIP:
            if (self.converter is None) == (self.allowed is None):
                raise ValueError("enum_membership check needs exactly one of converter or allowed")
            if self.allowed is not None and len(self.allowed) == 0:
                raise ValueError("allowed must have at least one value")
            if self.tag_set is not None and self.allowed is None:
                raise ValueError("tag_set is only meaningful with allowed")
        if self.kind == CheckKind.EXCLUDE and not self.values:
            raise ValueError("exclude check needs at least one value")
        return self

    def params(self) -> Dict[str, Any]:
        """Parameters that are set, without the message."""
        return {p: getattr(self, p) for p in PARAM_NAMES if getattr(self, p) is not None}


class FieldDescription(BaseModel):
    """One field of an entity description."""

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    name: str = Field(..., pattern=IDENTIFIER_PATTERN)
    attribute: Optional[str] = None
    accessor: Optional[Any] = None
    type: Optional[FieldType] = None
    mode: Optional[Mode] = None
    message: Optional[str] = None
    checks: List[CheckSpec] = Field(default_factory=list)
    groups: List[Any] = Field(default_factory=list)
    optional: bool = False
    nested: Optional[NestedKind] = None
    entity: Optional[Any] = None

    @field_validator("accessor")
    @classmethod
    def accessor_is_callable(cls, v: Any) -> Any:
        if v is not None and not callable(v):
            raise ValueError("accessor must be callable")
        return v

    @model_validator(mode="after")
    def check_nested(self) -> "FieldDescription":
        if self.nested is not None and self.entity is None:
            raise ValueError(f"field '{self.name}' is nested but names no entity")
        if self.entity is not None and self.nested is None:
            self.nested = NestedKind.SINGLE
        if self.accessor is not None and self.attribute is not None:
            raise ValueError(f"field '{self.name}' sets both accessor and attribute")
        return self


class EntityDescription(BaseModel):
    """Description of one composite type."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    fields: List[FieldDescription] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_unique_fields(self) -> "EntityDescription":
        seen: Set[str] = set()
        for field_desc in self.fields:
            if field_desc.name in seen:
                raise ValueError(f"duplicate field '{field_desc.name}' in entity '{self.name}'")
            seen.add(field_desc.name)
        return self
