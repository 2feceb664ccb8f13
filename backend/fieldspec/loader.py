"""
YAML schema loading.

A schema file holds either a single entity description, a list of them, or
a mapping with an ``entities`` list:

    entities:
      - name: User
        fields:
          - name: username
            checks:
              - {kind: length, max: 20, message: too long}
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Hashable, List, Optional, Union

import yaml

from .builder import SchemaBuilder
from .exceptions import SchemaError
from .schema import CheckResult, Entity

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def descriptions_from_yaml(content: str, source: str = "<string>") -> List[Dict[str, Any]]:
    """
    Parse entity descriptions from YAML content.

    Raises:
        SchemaError: If the content is not valid YAML or has the wrong shape.
    """
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise SchemaError.single("yaml", source, f"YAML parse error: {e}")

    if data is None:
        raise SchemaError.single("yaml", source, "File is empty")

    if isinstance(data, dict) and "entities" in data:
        data = data["entities"]
    elif isinstance(data, dict):
        data = [data]

    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        raise SchemaError.single("yaml", source, "expected an entity mapping or a list of them")
    return data


def load_descriptions(path: PathLike) -> List[Dict[str, Any]]:
    """Load entity descriptions from a YAML file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Schema file not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        return descriptions_from_yaml(f.read(), source=str(path))


def load_descriptions_from_dir(directory: PathLike) -> List[Dict[str, Any]]:
    """Load descriptions from every ``*.yaml`` / ``*.yml`` file in a directory, in name order."""
    directory = Path(directory)
    if not directory.is_dir():
        raise FileNotFoundError(f"Schema directory not found: {directory}")

    descriptions: List[Dict[str, Any]] = []
    files = sorted(list(directory.glob("*.yaml")) + list(directory.glob("*.yml")))
    for file_path in files:
        loaded = load_descriptions(file_path)
        logger.debug("Loaded %d description(s) from %s", len(loaded), file_path)
        descriptions.extend(loaded)
    return descriptions


def load_schema(path: PathLike, builder: Optional[SchemaBuilder] = None) -> Dict[str, Entity]:
    """
    Build every entity described in a YAML file or directory.

    Args:
        path: A schema file, or a directory of schema files.
        builder: Builder holding the registries to resolve against.

    Returns:
        Built entities keyed by name.
    """
    builder = builder or SchemaBuilder()
    path = Path(path)
    if path.is_dir():
        descriptions = load_descriptions_from_dir(path)
    else:
        descriptions = load_descriptions(path)
    entities = builder.build_all(descriptions)
    return {entity.name: entity for entity in entities}


def validate_value(
    path: PathLike,
    entity_name: str,
    value: Any,
    group: Optional[Hashable] = None,
    builder: Optional[SchemaBuilder] = None,
) -> CheckResult:
    """
    Convenience function to validate one value against a schema file.

    Args:
        path: Schema file or directory.
        entity_name: Entity to validate against.
        value: The value to validate.
        group: Optional group tag restricting the fields checked.
        builder: Builder holding the registries to resolve against.

    Returns:
        CheckResult of the validation.
    """
    entities = load_schema(path, builder=builder)
    if entity_name not in entities:
        raise KeyError(f"Entity '{entity_name}' not defined in {path}")
    entity = entities[entity_name]
    if group is None:
        return entity.validate(value)
    return entity.validate_group(value, group)
