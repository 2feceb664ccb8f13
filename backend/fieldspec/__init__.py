"""
Field-Spec: declarative structural validation.

Describe the fields of a composite type once, build the description into an
immutable entity, then validate values against it. A failed validation
returns exactly one message, written by the schema author.
"""

from .models import (
    CheckKind,
    CheckSpec,
    EntityDescription,
    FieldDescription,
    FieldType,
    Mode,
    NestedKind,
)
from .exceptions import FieldSpecError, SchemaError, SchemaIssue, ValidationError
from .schema import (
    MISSING,
    Check,
    CheckGroup,
    CheckResult,
    CompiledPattern,
    Entity,
    FieldSpec,
    NestedSpec,
    validatable,
)
from .registry import (
    ConverterRegistry,
    PatternCompiler,
    PredicateRegistry,
    TagSetRegistry,
    enum_converter,
)
from .builder import SchemaBuilder
from .evaluator import Evaluator
from .loader import (
    descriptions_from_yaml,
    load_descriptions,
    load_descriptions_from_dir,
    load_schema,
    validate_value,
)

__version__ = "1.0.0"
__all__ = [
    # Descriptions
    "CheckKind",
    "CheckSpec",
    "EntityDescription",
    "FieldDescription",
    "FieldType",
    "Mode",
    "NestedKind",
    # Errors
    "FieldSpecError",
    "SchemaError",
    "SchemaIssue",
    "ValidationError",
    # Runtime schema
    "MISSING",
    "Check",
    "CheckGroup",
    "CheckResult",
    "CompiledPattern",
    "Entity",
    "FieldSpec",
    "NestedSpec",
    "validatable",
    # Collaborators
    "ConverterRegistry",
    "PatternCompiler",
    "PredicateRegistry",
    "TagSetRegistry",
    "enum_converter",
    # Build and evaluate
    "SchemaBuilder",
    "Evaluator",
    # YAML
    "descriptions_from_yaml",
    "load_descriptions",
    "load_descriptions_from_dir",
    "load_schema",
    "validate_value",
]
