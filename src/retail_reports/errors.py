"""Errors raised when a row is rejected by the store."""

from enum import Enum
from typing import (
    Any,
    Optional,
)


class ViolationRule(str, Enum):
    """Reason a candidate row was rejected."""

    NOT_NULL = "not_null"
    POSITIVE = "positive"
    FOREIGN_KEY_MISSING = "foreign_key_missing"
    UNIQUE_CONFLICT = "unique_conflict"
    DUPLICATE_KEY = "duplicate_key"
    DERIVED_FIELD = "derived_field"
    INVALID_VALUE = "invalid_value"


class ConstraintViolation(ValueError):
    """Base class for rejected inserts and updates.

    Attributes:
        entity: Name of the entity the row was meant for.
        field: Field that violated the rule.
        rule: The violated rule.
        value: Offending value, if any.
    """

    rule: ViolationRule = ViolationRule.INVALID_VALUE

    def __init__(self, entity: str, field: str, message: Optional[str] = None, value: Any = None) -> None:
        self.entity = entity
        self.field = field
        self.value = value
        super().__init__(message or f"{entity}.{field} violates {self.rule.value}")

    def __reduce__(self) -> Any:
        return (self.__class__, (self.entity, self.field, str(self), self.value))


class MissingRequiredField(ConstraintViolation):
    """A required field is absent and has no default."""

    rule = ViolationRule.NOT_NULL


class NotPositive(ConstraintViolation):
    """A value that must be strictly positive is not."""

    rule = ViolationRule.POSITIVE


class ForeignKeyMissing(ConstraintViolation):
    """A referenced id does not exist in the target table."""

    rule = ViolationRule.FOREIGN_KEY_MISSING


class UniqueConflict(ConstraintViolation):
    """A non-null unique value already exists in another row."""

    rule = ViolationRule.UNIQUE_CONFLICT


class DuplicateKey(ConstraintViolation):
    """An explicit primary key is already in use."""

    rule = ViolationRule.DUPLICATE_KEY


class DerivedFieldAssignment(ConstraintViolation):
    """The caller tried to set a derived field directly."""

    rule = ViolationRule.DERIVED_FIELD


class InvalidValue(ConstraintViolation):
    """Any other type or range failure."""

    rule = ViolationRule.INVALID_VALUE


class UnknownEntity(KeyError):
    """Entity name is not registered in the schema."""


class RowNotFound(KeyError):
    """No row with the given id exists."""
