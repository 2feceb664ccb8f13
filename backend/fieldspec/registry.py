"""
Collaborator registries consulted by the SchemaBuilder.

- PredicateRegistry: custom_function identifiers -> callables
- ConverterRegistry: enum converter names -> convert(raw) -> tag | None
- TagSetRegistry: closed tag sets referenced by enum allowed-lists
- PatternCompiler: regex source -> CompiledPattern

Registries are filled during program initialisation and only read once
entities have been built.
"""

from __future__ import annotations

import inspect
import re
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Hashable, Iterable, List, Optional, Type, Union

from .exceptions import SchemaError
from .schema import CompiledPattern, normalize_tag

Predicate = Callable[[Any], Any]
Converter = Callable[[Any], Optional[Hashable]]


def accepts_one_argument(func: Callable[..., Any]) -> bool:
    """True if ``func`` can be called with exactly one positional argument."""
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        # Builtins without a signature are given the benefit of the doubt
        return True
    try:
        signature.bind(object())
    except TypeError:
        return False
    return True


class PredicateRegistry:
    """Named predicates for custom_function checks."""

    def __init__(self, predicates: Optional[Dict[str, Predicate]] = None):
        self._predicates: Dict[str, Predicate] = {}
        for name, func in (predicates or {}).items():
            self.register(name, func)

    def register(self, name: str, func: Optional[Predicate] = None) -> Any:
        """
        Register a predicate.

        Usable directly, ``registry.register("is_even", is_even)``, or as a
        decorator, ``@registry.register("is_even")``.
        """
        if func is None:
            def decorator(f: Predicate) -> Predicate:
                self.register(name, f)
                return f
            return decorator

        if not callable(func):
            raise TypeError(f"predicate '{name}' is not callable")
        self._predicates[name] = func
        return func

    def resolve(self, name: str) -> Optional[Predicate]:
        return self._predicates.get(name)

    def names(self) -> List[str]:
        return sorted(self._predicates.keys())

    def __contains__(self, name: str) -> bool:
        return name in self._predicates


class ConverterRegistry:
    """Named converters for the converter form of enum_membership checks."""

    def __init__(self, converters: Optional[Dict[str, Union[Converter, Type[Enum]]]] = None):
        self._converters: Dict[str, Converter] = {}
        for name, conv in (converters or {}).items():
            self.register(name, conv)

    def register(self, name: str, converter: Union[Converter, Type[Enum]]) -> None:
        """Register a converter function, or an Enum class (wrapped by ``enum_converter``)."""
        if isinstance(converter, type) and issubclass(converter, Enum):
            converter = enum_converter(converter)
        if not callable(converter):
            raise TypeError(f"converter '{name}' is not callable")
        self._converters[name] = converter

    def resolve(self, name: str) -> Optional[Converter]:
        return self._converters.get(name)

    def names(self) -> List[str]:
        return sorted(self._converters.keys())


def enum_converter(enum_cls: Type[Enum]) -> Converter:
    """Converter mapping a raw value to a member of ``enum_cls``, or None."""

    def convert(raw: Any) -> Optional[Enum]:
        if isinstance(raw, enum_cls):
            return raw
        try:
            return enum_cls(raw)
        except (ValueError, TypeError):
            return None

    convert.__name__ = f"convert_{enum_cls.__name__}"
    return convert


class TagSetRegistry:
    """Closed tag sets an enum allowed-list may be checked against."""

    def __init__(self, tag_sets: Optional[Dict[str, Union[Iterable[Hashable], Type[Enum]]]] = None):
        self._tag_sets: Dict[str, FrozenSet[Hashable]] = {}
        for name, tags in (tag_sets or {}).items():
            self.register(name, tags)

    def register(self, name: str, tags: Union[Iterable[Hashable], Type[Enum]]) -> None:
        if isinstance(tags, type) and issubclass(tags, Enum):
            tags = [member.value for member in tags]
        self._tag_sets[name] = frozenset(normalize_tag(t) for t in tags)

    def resolve(self, name: str) -> Optional[FrozenSet[Hashable]]:
        return self._tag_sets.get(name)


REGEX_FLAGS = {
    "IGNORECASE": re.IGNORECASE,
    "MULTILINE": re.MULTILINE,
    "DOTALL": re.DOTALL,
    "VERBOSE": re.VERBOSE,
    "ASCII": re.ASCII,
}


class PatternCompiler:
    """Compiles and caches regex patterns for regex checks."""

    def __init__(self, whole_match: bool = True, flags: Iterable[str] = ()):
        self.whole_match = whole_match
        self.flags = 0
        for flag in flags:
            if flag not in REGEX_FLAGS:
                raise ValueError(f"Unknown regex flag: {flag}")
            self.flags |= REGEX_FLAGS[flag]
        self._cache: Dict[str, CompiledPattern] = {}

    def compile(self, pattern: str) -> CompiledPattern:
        """
        Compile ``pattern``, reusing an earlier compilation of the same source.

        Raises:
            SchemaError: If the pattern is not a valid regex.
        """
        cached = self._cache.get(pattern)
        if cached is not None:
            return cached
        try:
            regex = re.compile(pattern, self.flags)
        except re.error as e:
            raise SchemaError.single("regex", pattern, f"Invalid regex pattern: {e}")
        compiled = CompiledPattern(pattern, regex, whole=self.whole_match)
        self._cache[pattern] = compiled
        return compiled
