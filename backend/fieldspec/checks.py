"""
Check Registry.

Pass conditions for every primitive check kind:
- length / collection_size (inclusive bounds, missing bound = unbounded)
- range (numeric, inclusive)
- no_whitespace / not_empty / not_blank
- regex (precompiled, predefined formats like email, url, etc.)
- custom_function / enum_membership (resolved collaborators)
- required / exclude

A value of the wrong shape for a kind fails the check instead of raising,
so the author's message is what the caller sees.
"""

from __future__ import annotations

from collections.abc import Collection
from decimal import Decimal
from typing import Any, Callable, Dict, Optional

from .models import CheckKind
from .schema import Check, is_absent, normalize_tag

# Predefined formats usable by regex checks in place of a pattern
FORMAT_PATTERNS = {
    "email": r'[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}',
    "url": r'https?://[^\s/$.?#].[^\s]*',
    "uri": r'[a-zA-Z][a-zA-Z0-9+.-]*://[^\s]*',
    "uuid": r'[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}',
    "date": r'\d{4}-\d{2}-\d{2}',
    "datetime": r'\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?(Z|[+-]\d{2}:\d{2})?',
    "time": r'\d{2}:\d{2}:\d{2}',
    "ipv4": r'(\d{1,3}\.){3}\d{1,3}',
    "ipv6": r'([0-9a-fA-F]{1,4}:){7}[0-9a-fA-F]{1,4}',
    "hostname": r'[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?(\.[a-zA-Z]{2,})+',
    "semver": r'v?\d+\.\d+\.\d+(-[a-zA-Z0-9.]+)?(\+[a-zA-Z0-9.]+)?',
    "slug": r'[a-z0-9]+(-[a-z0-9]+)*',
    "kebab-case": r'[a-z0-9]+(-[a-z0-9]+)*',
    "snake_case": r'[a-z0-9]+(_[a-z0-9]+)*',
    "PascalCase": r'[A-Z][a-zA-Z0-9]*',
    "camelCase": r'[a-z][a-zA-Z0-9]*',
    "json-path": r'\$(\.[a-zA-Z_][a-zA-Z0-9_]*|\[\d+\])*',
    "file-path": r'[a-zA-Z0-9_./-]+',
}


def within_bounds(size: Any, min_value: Optional[int], max_value: Optional[int]) -> bool:
    """Inclusive bound test; a missing bound is unbounded."""
    if min_value is not None and size < min_value:
        return False
    if max_value is not None and size > max_value:
        return False
    return True


def is_number(value: Any) -> bool:
    # bool is an int subclass but never a number here
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def is_sized_collection(value: Any) -> bool:
    return isinstance(value, Collection) and not isinstance(value, (str, bytes))


def check_length(check: Check, value: Any) -> bool:
    if not isinstance(value, str):
        return False
    # len() of a str counts code points, not bytes
    return within_bounds(len(value), check.min, check.max)


def check_range(check: Check, value: Any) -> bool:
    if not is_number(value):
        return False
    if isinstance(value, float) and value != value:
        return False  # NaN is outside every range
    if isinstance(value, Decimal) and value.is_nan():
        return False
    return within_bounds(value, check.min, check.max)


def check_collection_size(check: Check, value: Any) -> bool:
    if not is_sized_collection(value):
        return False
    return within_bounds(len(value), check.min, check.max)


def check_no_whitespace(check: Check, value: Any) -> bool:
    if not isinstance(value, str):
        return False
    return not any(c.isspace() for c in value)


def check_not_empty(check: Check, value: Any) -> bool:
    if isinstance(value, (str, bytes)) or is_sized_collection(value):
        return len(value) > 0
    return False


def check_not_blank(check: Check, value: Any) -> bool:
    if not isinstance(value, str):
        return False
    return len(value.strip()) > 0


def check_custom_function(check: Check, value: Any) -> bool:
    return bool(check.function(value))


def check_regex(check: Check, value: Any) -> bool:
    if not isinstance(value, str):
        return False
    return check.pattern.matches(value)


def check_enum_membership(check: Check, value: Any) -> bool:
    if check.function is not None:
        return check.function(value) is not None
    return _contains(check.values, value)


def check_required(check: Check, value: Any) -> bool:
    return not is_absent(value)


def check_exclude(check: Check, value: Any) -> bool:
    return not _contains(check.values, value)


def _contains(values: Any, value: Any) -> bool:
    normalized = normalize_tag(value)
    for candidate in values:
        # True == 1 in Python, but a flag is never a number tag
        if isinstance(normalize_tag(candidate), bool) != isinstance(normalized, bool):
            continue
        if candidate == value or normalize_tag(candidate) == normalized:
            return True
    return False


CHECK_FUNCTIONS: Dict[CheckKind, Callable[[Check, Any], bool]] = {
    CheckKind.LENGTH: check_length,
    CheckKind.RANGE: check_range,
    CheckKind.COLLECTION_SIZE: check_collection_size,
    CheckKind.NO_WHITESPACE: check_no_whitespace,
    CheckKind.NOT_EMPTY: check_not_empty,
    CheckKind.NOT_BLANK: check_not_blank,
    CheckKind.CUSTOM_FUNCTION: check_custom_function,
    CheckKind.REGEX: check_regex,
    CheckKind.ENUM_MEMBERSHIP: check_enum_membership,
    CheckKind.REQUIRED: check_required,
    CheckKind.EXCLUDE: check_exclude,
}


def run_check(check: Check, value: Any) -> bool:
    """Evaluate one check against a field value."""
    return CHECK_FUNCTIONS[check.kind](check, value)


def list_formats() -> list:
    """List all predefined format names."""
    return sorted(FORMAT_PATTERNS.keys())
