"""
Entity Evaluator.

Walks an entity against a value and returns the first failure in
declaration order. Evaluation is read-only: the evaluator keeps no state
between calls and never mutates the value.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Hashable, Iterable, Optional, Sequence

from .checks import is_sized_collection, run_check
from .models import Mode, NestedKind
from .schema import Check, CheckGroup, CheckResult, Entity, FieldSpec, NestedSpec, is_absent

logger = logging.getLogger(__name__)


class Evaluator:
    """
    Evaluator for entities.

    - all mode: checks run in order, the first failing check's message wins
    - any mode: the first passing check validates the field, the outer
      message is returned only when every check fails
    - optional fields holding no value are skipped unless a required check
      is present
    - nested values are validated after the field's own checks pass
    """

    def check(self, entity: Entity, value: Any) -> CheckResult:
        """Validate every field of ``value``."""
        message = self._check_fields(entity, value, entity.fields)
        if message is None:
            return CheckResult.ok()
        return CheckResult.fail(message)

    def check_group(self, entity: Entity, value: Any, tag: Hashable) -> CheckResult:
        """
        Validate only the fields tagged with ``tag``.

        Nested entities reached from a selected field are validated in full.
        """
        selected = [spec for spec in entity.fields if spec.in_group(tag)]
        message = self._check_fields(entity, value, selected)
        if message is None:
            return CheckResult.ok()
        return CheckResult.fail(message)

    def _check_fields(self, entity: Entity, value: Any, fields: Iterable[FieldSpec]) -> Optional[str]:
        for spec in fields:
            message = self._check_field(spec, value)
            if message is not None:
                logger.debug("%s.%s failed: %s", entity.name, spec.name, message)
                return message
        return None

    def _check_field(self, spec: FieldSpec, instance: Any) -> Optional[str]:
        value = spec.value_of(instance)
        group = spec.check_group

        if spec.optional and is_absent(value):
            if group is None or not group.has_required:
                return None
            return self._eval_group(group, group.required_checks, value)

        if group is not None and group.value_checks:
            message = self._eval_group(group, group.value_checks, value)
            if message is not None:
                return message

        if spec.nested is not None and not is_absent(value):
            return self._eval_nested(spec.nested, value)
        return None

    def _eval_group(self, group: CheckGroup, checks: Sequence[Check], value: Any) -> Optional[str]:
        if group.mode == Mode.ALL:
            return self._eval_all(checks, value)
        return self._eval_any(checks, value, group.outer_message)

    def _eval_all(self, checks: Sequence[Check], value: Any) -> Optional[str]:
        """Every check must pass; return the first failing check's message."""
        for check in checks:
            if not run_check(check, value):
                return check.message
        return None

    def _eval_any(self, checks: Sequence[Check], value: Any, outer_message: Optional[str]) -> Optional[str]:
        """One passing check suffices; later checks are not run."""
        for check in checks:
            if run_check(check, value):
                return None
        return outer_message

    def _eval_nested(self, nested: NestedSpec, value: Any) -> Optional[str]:
        entity = nested.entity

        if nested.kind == NestedKind.SINGLE:
            return self._check_fields(entity, value, entity.fields)

        if not is_sized_collection(value):
            # nothing to recurse into; collection_size covers the shape
            return None
        items = value.values() if isinstance(value, Mapping) else value
        for item in items:
            message = self._check_fields(entity, item, entity.fields)
            if message is not None:
                return message
        return None
