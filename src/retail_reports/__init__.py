"""In-memory retail sales store with constraint enforcement and fixed sales reports."""

from .clock import (
    Clock,
    FixedClock,
    SystemClock,
)
from .config import ReportingSettings
from .entities import (
    Category,
    Customer,
    Entity,
    Location,
    Product,
    Row,
    Sale,
)
from .errors import (
    ConstraintViolation,
    DerivedFieldAssignment,
    DuplicateKey,
    ForeignKeyMissing,
    InvalidValue,
    MissingRequiredField,
    NotPositive,
    RowNotFound,
    UniqueConflict,
    UnknownEntity,
    ViolationRule,
)
from .reports import ReportEngine
from .sample_data import (
    create_sample_store,
    load_sample_data,
)
from .schema import (
    EntitySchema,
    SchemaRegistry,
)
from .store import TableStore


__all__ = [
    "Category",
    "Clock",
    "ConstraintViolation",
    "Customer",
    "DerivedFieldAssignment",
    "DuplicateKey",
    "Entity",
    "EntitySchema",
    "FixedClock",
    "ForeignKeyMissing",
    "InvalidValue",
    "Location",
    "MissingRequiredField",
    "NotPositive",
    "Product",
    "ReportEngine",
    "ReportingSettings",
    "Row",
    "RowNotFound",
    "Sale",
    "SchemaRegistry",
    "SystemClock",
    "TableStore",
    "UniqueConflict",
    "UnknownEntity",
    "ViolationRule",
    "create_sample_store",
    "load_sample_data",
]
