"""
Tests for Field-Spec Pydantic description models.
"""

import pytest
from pydantic import ValidationError

from backend.fieldspec.models import (
    CheckKind,
    CheckSpec,
    EntityDescription,
    FieldDescription,
    FieldType,
    Mode,
    NestedKind,
)


class TestCheckSpec:
    """Tests for CheckSpec model."""

    def test_valid_length_check(self):
        """Test valid length check."""
        check = CheckSpec(kind=CheckKind.LENGTH, min=1, max=20, message="too long")
        assert check.kind == CheckKind.LENGTH
        assert check.params() == {"min": 1, "max": 20}

    def test_kind_from_string(self):
        """Test kind given as a plain string."""
        check = CheckSpec(kind="not_blank", message="blank")
        assert check.kind == CheckKind.NOT_BLANK

    def test_kind_aliases(self):
        """Test short kind names."""
        assert CheckSpec(kind="len", max=3).kind == CheckKind.LENGTH
        assert CheckSpec(kind="size", max=3).kind == CheckKind.COLLECTION_SIZE
        assert CheckSpec(kind="func", ident="is_even").kind == CheckKind.CUSTOM_FUNCTION
        assert CheckSpec(kind="require").kind == CheckKind.REQUIRED
        assert CheckSpec(kind="within", allowed=["a"]).kind == CheckKind.ENUM_MEMBERSHIP

    def test_unknown_kind(self):
        """Test unknown check kind."""
        with pytest.raises(ValidationError):
            CheckSpec(kind="palindrome")

    def test_min_greater_than_max(self):
        """Test detection of min > max."""
        with pytest.raises(ValidationError) as exc_info:
            CheckSpec(kind="range", min=10, max=5)
        assert "cannot be greater than max" in str(exc_info.value)

    def test_negative_length_bound(self):
        """Test negative length bound."""
        with pytest.raises(ValidationError):
            CheckSpec(kind="length", min=-1)

    def test_negative_range_bound_allowed(self):
        """Test range bounds may be negative."""
        check = CheckSpec(kind="range", min=-100, max=-1)
        assert check.min == -100

    def test_param_not_accepted_by_kind(self):
        """Test parameters that do not belong to the kind."""
        with pytest.raises(ValidationError) as exc_info:
            CheckSpec(kind="not_blank", max=3)
        assert "does not accept" in str(exc_info.value)

    def test_regex_needs_pattern_or_format(self):
        """Test regex without pattern or format."""
        with pytest.raises(ValidationError):
            CheckSpec(kind="regex")
        with pytest.raises(ValidationError):
            CheckSpec(kind="regex", pattern="a+", format="email")

    def test_custom_function_needs_ident(self):
        """Test custom_function without ident."""
        with pytest.raises(ValidationError):
            CheckSpec(kind="custom_function")

    def test_enum_needs_exactly_one_form(self):
        """Test enum_membership needs converter or allowed, not both."""
        with pytest.raises(ValidationError):
            CheckSpec(kind="enum_membership")
        with pytest.raises(ValidationError):
            CheckSpec(kind="enum_membership", converter="role", allowed=["a"])

    def test_enum_empty_allowed(self):
        """Test empty allowed list."""
        with pytest.raises(ValidationError):
            CheckSpec(kind="enum_membership", allowed=[])

    def test_tag_set_only_with_allowed(self):
        """Test tag_set without allowed."""
        with pytest.raises(ValidationError):
            CheckSpec(kind="enum_membership", converter="role", tag_set="roles")

    def test_exclude_needs_values(self):
        """Test exclude without values."""
        with pytest.raises(ValidationError):
            CheckSpec(kind="exclude")

    def test_extra_keys_rejected(self):
        """Test unknown keys are rejected."""
        with pytest.raises(ValidationError):
            CheckSpec(kind="not_empty", msg="typo")


class TestFieldDescription:
    """Tests for FieldDescription model."""

    def test_valid_field(self):
        """Test valid field description."""
        field = FieldDescription(
            name="username",
            type=FieldType.STRING,
            checks=[CheckSpec(kind="length", max=20, message="too long")],
            groups=["create"],
        )
        assert field.name == "username"
        assert field.mode is None
        assert len(field.checks) == 1

    def test_invalid_name(self):
        """Test invalid field name."""
        with pytest.raises(ValidationError):
            FieldDescription(name="user-name")

    def test_entity_defaults_to_single(self):
        """Test nested kind defaults to single when an entity is named."""
        field = FieldDescription(name="address", entity="Address")
        assert field.nested == NestedKind.SINGLE

    def test_nested_without_entity(self):
        """Test nested without an entity."""
        with pytest.raises(ValidationError) as exc_info:
            FieldDescription(name="items", nested="collection")
        assert "names no entity" in str(exc_info.value)

    def test_accessor_must_be_callable(self):
        """Test non-callable accessor."""
        with pytest.raises(ValidationError):
            FieldDescription(name="x", accessor="not callable")

    def test_accessor_and_attribute_exclusive(self):
        """Test accessor and attribute together."""
        with pytest.raises(ValidationError):
            FieldDescription(name="x", accessor=lambda v: v, attribute="y")

    def test_mode_from_string(self):
        """Test mode given as a plain string."""
        field = FieldDescription(name="x", mode="any", message="bad")
        assert field.mode == Mode.ANY


class TestEntityDescription:
    """Tests for EntityDescription root model."""

    def test_minimal_entity(self):
        """Test minimal entity description."""
        entity = EntityDescription(
            name="User",
            fields=[
                FieldDescription(
                    name="username",
                    checks=[CheckSpec(kind="not_blank", message="username required")],
                )
            ],
        )
        assert entity.name == "User"
        assert len(entity.fields) == 1

    def test_from_dict(self):
        """Test building from a plain dict."""
        entity = EntityDescription.model_validate({
            "name": "User",
            "fields": [
                {"name": "age", "checks": [{"kind": "range", "min": 0, "message": "bad age"}]},
            ],
        })
        assert entity.fields[0].checks[0].kind == CheckKind.RANGE

    def test_duplicate_fields(self):
        """Test duplicate field names."""
        with pytest.raises(ValidationError) as exc_info:
            EntityDescription(
                name="User",
                fields=[FieldDescription(name="a"), FieldDescription(name="a")],
            )
        assert "duplicate field" in str(exc_info.value)

    def test_empty_name(self):
        """Test empty entity name."""
        with pytest.raises(ValidationError):
            EntityDescription(name="")
