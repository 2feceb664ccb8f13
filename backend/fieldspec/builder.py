"""
Schema Builder.

Turns entity descriptions into immutable entities. Every consistency rule the
evaluator relies on is enforced here, so a description that builds can never
validate incorrectly:
- all-mode checks carry their own message, any-mode groups an outer message
- custom_function identifiers and enum converters resolve
- regex patterns compile (or name a known format)
- enum allowed-lists only use tags of the referenced tag set
- nested references resolve to an entity
- required is only used on optional fields
- declared field types admit the checks applied to them
"""

from __future__ import annotations

import logging
from collections.abc import Hashable
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Union

from pydantic import ValidationError as DescriptionError

from .checks import FORMAT_PATTERNS
from .exceptions import SchemaError, SchemaIssue
from .models import CheckKind, CheckSpec, EntityDescription, FieldDescription, FieldType, Mode
from .registry import (
    ConverterRegistry,
    PatternCompiler,
    PredicateRegistry,
    TagSetRegistry,
    accepts_one_argument,
)
from .schema import (
    Check,
    CheckGroup,
    Entity,
    FieldSpec,
    NestedSpec,
    default_accessor,
    normalize_tag,
    validatable_entity,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: Dict[str, Any] = {
    "regex_match": "full",
    "regex_flags": [],
    "infer_mode": True,
    "check_types": True,
}

_ALWAYS = {CheckKind.CUSTOM_FUNCTION, CheckKind.REQUIRED}
_SCALAR = _ALWAYS | {CheckKind.ENUM_MEMBERSHIP, CheckKind.EXCLUDE}
_SIZED = _ALWAYS | {CheckKind.COLLECTION_SIZE, CheckKind.NOT_EMPTY}

# Check kinds that can apply to each declared field type
APPLICABLE_KINDS: Dict[FieldType, Set[CheckKind]] = {
    FieldType.STRING: _SCALAR | {
        CheckKind.LENGTH,
        CheckKind.NO_WHITESPACE,
        CheckKind.NOT_EMPTY,
        CheckKind.NOT_BLANK,
        CheckKind.REGEX,
    },
    FieldType.INTEGER: _SCALAR | {CheckKind.RANGE},
    FieldType.FLOAT: _SCALAR | {CheckKind.RANGE},
    FieldType.NUMBER: _SCALAR | {CheckKind.RANGE},
    FieldType.BOOLEAN: _SCALAR,
    FieldType.COLLECTION: _SIZED,
    FieldType.MAPPING: _SIZED,
    FieldType.ENTITY: _ALWAYS,
    FieldType.ANY: set(CheckKind),
}

DescriptionLike = Union[EntityDescription, Mapping[str, Any]]


class _IssueCollector:
    """Issues found while building one batch of descriptions."""

    def __init__(self) -> None:
        self.issues: List[SchemaIssue] = []

    def add_issue(self, category: str, path: str, description: str) -> None:
        self.issues.append(SchemaIssue(category=category, path=path, description=description))

    def __bool__(self) -> bool:
        return bool(self.issues)


class SchemaBuilder:
    """
    Builds immutable entities from descriptions.

    Built entities are kept by name, so later descriptions can nest them by
    name and ``get`` can hand them out again.
    """

    def __init__(
        self,
        predicates: Optional[Union[PredicateRegistry, Dict[str, Any]]] = None,
        converters: Optional[Union[ConverterRegistry, Dict[str, Any]]] = None,
        tag_sets: Optional[Union[TagSetRegistry, Dict[str, Any]]] = None,
        config: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize the builder.

        Args:
            predicates: Registry (or name -> callable dict) for custom_function checks.
            converters: Registry (or name -> converter/Enum dict) for enum converters.
            tag_sets: Registry (or name -> tags/Enum dict) of closed tag sets.
            config: Overrides for DEFAULT_CONFIG.
        """
        self.predicates = predicates if isinstance(predicates, PredicateRegistry) else PredicateRegistry(predicates)
        self.converters = converters if isinstance(converters, ConverterRegistry) else ConverterRegistry(converters)
        self.tag_sets = tag_sets if isinstance(tag_sets, TagSetRegistry) else TagSetRegistry(tag_sets)

        self.config = dict(DEFAULT_CONFIG)
        self.config.update(config or {})
        regex_match = self.config.get("regex_match", "full")
        if regex_match not in ("full", "search"):
            raise ValueError(f"regex_match must be 'full' or 'search', got {regex_match!r}")
        self.pattern_compiler = PatternCompiler(
            whole_match=regex_match == "full",
            flags=self.config.get("regex_flags") or [],
        )

        self._entities: Dict[str, Entity] = {}
        self._catalog: Mapping[str, Entity] = MappingProxyType(self._entities)

    @property
    def entities(self) -> Mapping[str, Entity]:
        """Read-only view of every entity built so far."""
        return self._catalog

    def get(self, name: str) -> Entity:
        return self._entities[name]

    def build(self, description: DescriptionLike) -> Entity:
        """
        Build a single entity.

        Raises:
            SchemaError: If the description has any defect.
        """
        return self.build_all([description])[0]

    def build_all(self, descriptions: Iterable[DescriptionLike]) -> List[Entity]:
        """
        Build a batch of entities that may reference each other by name.

        Nothing is registered unless the whole batch builds.

        Raises:
            SchemaError: Listing every defect found in the batch.
        """
        collector = _IssueCollector()
        parsed = [self._parse(d, collector) for d in descriptions]
        parsed = [p for p in parsed if p is not None]

        pending: Set[str] = set()
        for desc in parsed:
            if desc.name in self._entities or desc.name in pending:
                collector.add_issue("duplicate", desc.name, f"entity '{desc.name}' is already defined")
            pending.add(desc.name)

        entities = [self._build_entity(desc, pending, collector) for desc in parsed]

        if collector:
            logger.warning(
                "Rejected schema for %s: %d issue(s)",
                ", ".join(sorted(pending)) or "<unparsed>",
                len(collector.issues),
            )
            raise SchemaError(collector.issues)

        for entity in entities:
            self._entities[entity.name] = entity
            logger.debug("Built entity %s with %d field(s)", entity.name, len(entity.fields))
        return entities

    def _parse(self, description: DescriptionLike, collector: _IssueCollector) -> Optional[EntityDescription]:
        if isinstance(description, EntityDescription):
            return description
        if not isinstance(description, Mapping):
            collector.add_issue(
                "description", "<root>",
                f"expected a mapping or EntityDescription, got {type(description).__name__}",
            )
            return None
        try:
            return EntityDescription.model_validate(dict(description))
        except DescriptionError as e:
            name = description.get("name", "<unnamed>")
            for err in e.errors():
                loc = ".".join(str(part) for part in err.get("loc", ()))
                collector.add_issue("description", f"{name}.{loc}" if loc else str(name), err.get("msg", ""))
            return None

    def _build_entity(
        self,
        desc: EntityDescription,
        pending: Set[str],
        collector: _IssueCollector,
    ) -> Entity:
        fields = []
        for field_desc in desc.fields:
            path = f"{desc.name}.{field_desc.name}"
            fields.append(FieldSpec(
                name=field_desc.name,
                accessor=field_desc.accessor or default_accessor(field_desc.attribute or field_desc.name),
                check_group=self._build_check_group(field_desc, path, collector),
                groups=self._build_groups(field_desc, path, collector),
                nested=self._build_nested(field_desc, path, pending, collector),
                optional=field_desc.optional,
            ))
            self._check_field_rules(field_desc, path, collector)
        return Entity(name=desc.name, fields=tuple(fields), description=desc.description)

    def _build_check_group(
        self,
        field_desc: FieldDescription,
        path: str,
        collector: _IssueCollector,
    ) -> Optional[CheckGroup]:
        if not field_desc.checks:
            if field_desc.message:
                collector.add_issue("message", path, "outer message given but the field has no checks")
            return None

        mode = field_desc.mode
        if mode is None:
            if field_desc.message and self.config.get("infer_mode", True):
                mode = Mode.ANY
            else:
                mode = Mode.ALL

        if mode == Mode.ANY and not (field_desc.message and field_desc.message.strip()):
            collector.add_issue("message", path, "any-mode group needs a non-empty outer message")

        checks = []
        for idx, spec in enumerate(field_desc.checks):
            check_path = f"{path}.checks[{idx}]"
            if mode == Mode.ALL and not (spec.message and spec.message.strip()):
                collector.add_issue(
                    "message", check_path,
                    f"{spec.kind.value} check in an all-mode group needs a message",
                )
            check = self._build_check(spec, check_path, collector)
            if check is not None:
                checks.append(check)

        return CheckGroup(mode=mode, checks=tuple(checks), outer_message=field_desc.message)

    def _build_check(self, spec: CheckSpec, path: str, collector: _IssueCollector) -> Optional[Check]:
        kind = spec.kind

        if kind == CheckKind.REGEX:
            source = spec.pattern
            if source is None:
                source = FORMAT_PATTERNS.get(spec.format)
                if source is None:
                    collector.add_issue(
                        "regex", path,
                        f"Unknown format: {spec.format} (known: {', '.join(sorted(FORMAT_PATTERNS))})",
                    )
                    return None
            try:
                compiled = self.pattern_compiler.compile(source)
            except SchemaError as e:
                collector.add_issue("regex", path, e.issues[0].description)
                return None
            return Check(kind=kind, message=spec.message, pattern=compiled, ident=spec.format or spec.pattern)

        if kind == CheckKind.CUSTOM_FUNCTION:
            func = self.predicates.resolve(spec.ident)
            if func is None:
                collector.add_issue("custom_function", path, f"no predicate registered as '{spec.ident}'")
                return None
            if not accepts_one_argument(func):
                collector.add_issue(
                    "custom_function", path,
                    f"predicate '{spec.ident}' must accept exactly one argument",
                )
                return None
            return Check(kind=kind, message=spec.message, function=func, ident=spec.ident)

        if kind == CheckKind.ENUM_MEMBERSHIP:
            if spec.converter is not None:
                converter = self.converters.resolve(spec.converter)
                if converter is None:
                    collector.add_issue("enum", path, f"no converter registered as '{spec.converter}'")
                    return None
                return Check(kind=kind, message=spec.message, function=converter, ident=spec.converter)

            if spec.tag_set is not None:
                known = self.tag_sets.resolve(spec.tag_set)
                if known is None:
                    collector.add_issue("enum", path, f"unknown tag set '{spec.tag_set}'")
                    return None
                for value in spec.allowed:
                    if normalize_tag(value) not in known:
                        collector.add_issue("enum", path, f"'{value}' is not a tag of '{spec.tag_set}'")
            return Check(kind=kind, message=spec.message, values=tuple(spec.allowed), ident=spec.tag_set)

        if kind == CheckKind.EXCLUDE:
            return Check(kind=kind, message=spec.message, values=tuple(spec.values))

        return Check(kind=kind, message=spec.message, min=spec.min, max=spec.max)

    def _build_groups(self, field_desc: FieldDescription, path: str, collector: _IssueCollector) -> frozenset:
        tags = set()
        for tag in field_desc.groups:
            tag = normalize_tag(tag)
            if not isinstance(tag, Hashable):
                collector.add_issue("group", path, f"group tag {tag!r} is not hashable")
                continue
            tags.add(tag)
        return frozenset(tags)

    def _build_nested(
        self,
        field_desc: FieldDescription,
        path: str,
        pending: Set[str],
        collector: _IssueCollector,
    ) -> Optional[NestedSpec]:
        target = field_desc.entity
        if target is None:
            return None

        if isinstance(target, Entity):
            return NestedSpec(kind=field_desc.nested, target=target)

        if isinstance(target, str):
            if target in self._entities or target in pending:
                return NestedSpec(kind=field_desc.nested, target=target, catalog=self._catalog)
            collector.add_issue("nested", path, f"unknown entity '{target}'")
            return None

        entity = validatable_entity(target)
        if entity is None:
            collector.add_issue(
                "nested", path,
                f"{getattr(target, '__name__', repr(target))} is not Validatable (no entity attached)",
            )
            return None
        return NestedSpec(kind=field_desc.nested, target=entity)

    def _check_field_rules(self, field_desc: FieldDescription, path: str, collector: _IssueCollector) -> None:
        kinds = [spec.kind for spec in field_desc.checks]

        if CheckKind.REQUIRED in kinds and not field_desc.optional:
            collector.add_issue("required", path, "required check can only be applied to optional fields")

        if field_desc.type is None or not self.config.get("check_types", True):
            return

        applicable = APPLICABLE_KINDS[field_desc.type]
        for kind in kinds:
            if kind not in applicable:
                collector.add_issue(
                    "type", path,
                    f"{kind.value} check cannot be applied to a {field_desc.type.value} field",
                )

        if field_desc.nested is not None and field_desc.type not in (
            FieldType.ENTITY, FieldType.COLLECTION, FieldType.ANY,
        ):
            collector.add_issue(
                "type", path,
                f"nested validation needs an entity or collection field, not {field_desc.type.value}",
            )
