"""Exceptions raised by Field-Spec."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional


class FieldSpecError(Exception):
    """Base exception for Field-Spec errors."""
    pass


@dataclass
class SchemaIssue:
    """A single defect found while building an entity."""

    category: str
    path: str
    description: str

    def __str__(self) -> str:
        return f"{self.category}: {self.path}: {self.description}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "category": self.category,
            "path": self.path,
            "description": self.description,
        }


class SchemaError(FieldSpecError):
    """
    Raised when a schema description cannot be built into an entity.

    Carries every issue found in the description, not only the first one.
    """

    def __init__(self, issues: List[SchemaIssue]):
        self.issues = list(issues)
        if len(self.issues) == 1:
            text = str(self.issues[0])
        else:
            text = f"{len(self.issues)} schema issues:\n" + "\n".join(
                f"  - {issue}" for issue in self.issues
            )
        super().__init__(text)

    @classmethod
    def single(cls, category: str, path: str, description: str) -> "SchemaError":
        return cls([SchemaIssue(category=category, path=path, description=description)])

    @property
    def categories(self) -> List[str]:
        """Issue categories, in the order they were found."""
        return [issue.category for issue in self.issues]


class ValidationError(FieldSpecError):
    """Raised by ``assert_valid`` when a value fails validation."""

    def __init__(self, message: str, entity: Optional[str] = None):
        self.message = message
        self.entity = entity
        super().__init__(message)
