"""
Runtime schema graph.

Entities, field specs, check groups and checks are frozen once the
``SchemaBuilder`` has produced them. They hold no per-call state, so one
entity can be shared by any number of concurrent validations.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Hashable, Mapping, Optional, Tuple, Union

from .exceptions import ValidationError
from .models import CheckKind, Mode, NestedKind

# Attribute through which a class advertises its own entity
VALIDATABLE_ATTRIBUTE = "__validation_entity__"


class _Missing:
    """Marker for a field the accessor could not find."""

    _instance: Optional["_Missing"] = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


def is_absent(value: Any) -> bool:
    """True when a field holds no value."""
    return value is None or value is MISSING


def normalize_tag(tag: Hashable) -> Hashable:
    """Enum members compare by value, so ``Role.ADMIN`` and ``"admin"`` match."""
    if isinstance(tag, Enum):
        return tag.value
    return tag


def default_accessor(key: str) -> Callable[[Any], Any]:
    """Read ``key`` from a mapping, or the attribute ``key`` from an object."""

    def access(instance: Any) -> Any:
        if isinstance(instance, Mapping):
            return instance.get(key, MISSING)
        return getattr(instance, key, MISSING)

    access.__name__ = f"access_{key}"
    return access


class CompiledPattern:
    """A regex compiled at build time. Only ``matches`` is used at call time."""

    __slots__ = ("source", "_regex", "_whole")

    def __init__(self, source: str, regex: Any, whole: bool = True):
        self.source = source
        self._regex = regex
        self._whole = whole

    def matches(self, value: str) -> bool:
        if self._whole:
            return self._regex.fullmatch(value) is not None
        return self._regex.search(value) is not None

    def __repr__(self) -> str:
        return f"CompiledPattern({self.source!r})"


@dataclass(frozen=True)
class Check:
    """One primitive rule, with everything it needs already resolved."""

    kind: CheckKind
    message: Optional[str] = None
    min: Optional[int] = None
    max: Optional[int] = None
    pattern: Optional[CompiledPattern] = None
    function: Optional[Callable[[Any], Any]] = None
    values: Tuple[Any, ...] = ()
    ident: Optional[str] = None


@dataclass(frozen=True)
class CheckGroup:
    """Ordered checks combined under one mode."""

    mode: Mode
    checks: Tuple[Check, ...]
    outer_message: Optional[str] = None

    @property
    def has_required(self) -> bool:
        return any(c.kind == CheckKind.REQUIRED for c in self.checks)

    @property
    def required_checks(self) -> Tuple[Check, ...]:
        return tuple(c for c in self.checks if c.kind == CheckKind.REQUIRED)

    @property
    def value_checks(self) -> Tuple[Check, ...]:
        """Checks run against a value that is present."""
        return tuple(c for c in self.checks if c.kind != CheckKind.REQUIRED)


@dataclass(frozen=True)
class NestedSpec:
    """
    Recursive validation of a field.

    ``target`` is either an ``Entity`` or the name of one held in
    ``catalog``. Names are resolved on access so entities may refer to each
    other (or themselves); the builder guarantees the name exists.
    """

    kind: NestedKind
    target: Union["Entity", str]
    catalog: Mapping[str, "Entity"] = field(default_factory=dict, repr=False, compare=False)

    @property
    def entity(self) -> "Entity":
        if isinstance(self.target, Entity):
            return self.target
        return self.catalog[self.target]

    @property
    def entity_name(self) -> str:
        if isinstance(self.target, Entity):
            return self.target.name
        return self.target


@dataclass(frozen=True)
class FieldSpec:
    """One field of an entity."""

    name: str
    accessor: Callable[[Any], Any] = field(repr=False, compare=False)
    check_group: Optional[CheckGroup] = None
    groups: FrozenSet[Hashable] = frozenset()
    nested: Optional[NestedSpec] = None
    optional: bool = False

    def value_of(self, instance: Any) -> Any:
        return self.accessor(instance)

    def in_group(self, tag: Hashable) -> bool:
        return normalize_tag(tag) in self.groups


@dataclass(frozen=True)
class CheckResult:
    """
    Outcome of one validation call.

    ``valid`` is True only for a call that ran and passed; a failed call
    carries exactly one author-supplied message.
    """

    valid: bool
    message: Optional[str] = None

    @classmethod
    def ok(cls) -> "CheckResult":
        return _OK

    @classmethod
    def fail(cls, message: str) -> "CheckResult":
        return cls(valid=False, message=message)

    def raise_for_error(self, entity: Optional[str] = None) -> None:
        """Raise ``ValidationError`` if the call failed."""
        if not self.valid:
            raise ValidationError(self.message or "", entity=entity)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {"valid": self.valid, "message": self.message}


_OK = CheckResult(valid=True)


@dataclass(frozen=True)
class Entity:
    """Validation schema for one composite type: fields in evaluation order."""

    name: str
    fields: Tuple[FieldSpec, ...] = ()
    description: Optional[str] = field(default=None, compare=False)

    def validate(self, value: Any) -> CheckResult:
        """Validate every field of ``value``, ignoring groups."""
        from .evaluator import Evaluator
        return Evaluator().check(self, value)

    def validate_group(self, value: Any, tag: Hashable) -> CheckResult:
        """Validate only the fields tagged with ``tag``."""
        from .evaluator import Evaluator
        return Evaluator().check_group(self, value, tag)

    def assert_valid(self, value: Any, group: Optional[Hashable] = None) -> None:
        """
        Validate and raise on failure.

        Raises:
            ValidationError: Carrying the failing check's message.
        """
        if group is None:
            result = self.validate(value)
        else:
            result = self.validate_group(value, group)
        result.raise_for_error(entity=self.name)

    def get_field(self, name: str) -> FieldSpec:
        for spec in self.fields:
            if spec.name == name:
                return spec
        raise KeyError(name)

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(spec.name for spec in self.fields)

    @property
    def group_tags(self) -> FrozenSet[Hashable]:
        """Every tag used by this entity's own fields."""
        tags: set = set()
        for spec in self.fields:
            tags.update(spec.groups)
        return frozenset(tags)


def validatable_entity(obj: Any) -> Optional[Entity]:
    """Entity advertised by a Validatable class or instance, if any."""
    entity = getattr(obj, VALIDATABLE_ATTRIBUTE, None)
    if callable(entity) and not isinstance(entity, Entity):
        entity = entity()
    if isinstance(entity, Entity):
        return entity
    return None


def validatable(entity: Entity) -> Callable[[type], type]:
    """Class decorator attaching ``entity`` so the class can be nested by type."""

    def decorator(cls: type) -> type:
        setattr(cls, VALIDATABLE_ATTRIBUTE, entity)
        return cls

    return decorator
