"""Schema registry: entity shapes and the constraints checked on every write.

Field types, required fields and range checks live on the pydantic row models in
:mod:`retail_reports.entities`. The registry adds the relational constraints that a
single row cannot check on its own (foreign keys and uniqueness) and translates
pydantic validation errors into :class:`~retail_reports.errors.ConstraintViolation`.
"""

import typing
from typing import (
    Any,
    Dict,
    List,
    Mapping,
    Optional,
    Tuple,
    Type,
    Union,
)

from pydantic import (
    BaseModel,
    ConfigDict,
    ValidationError,
)

from .derived import (
    SALE_TOTAL_AMOUNT,
    DerivedColumn,
)
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
    ForeignKeyMissing,
    InvalidValue,
    MissingRequiredField,
    NotPositive,
    UniqueConflict,
    UnknownEntity,
)


Tables = Mapping[Entity, Mapping[int, Row]]


class EntitySchema(BaseModel):
    """Schema of one entity.

    Attributes:
        entity: Entity name.
        model: Row model validating field types, required fields and value ranges.
        foreign_keys: Field name -> referenced entity. ``None`` values are allowed unless the model requires the field.
        unique: Fields whose non-null values must be unique in the table.
        current_date_defaults: Date fields defaulting to the clock's current date when absent.
        derived: Columns computed from other fields; never accepted as input.
    """

    model_config = ConfigDict(frozen=True)

    entity: Entity
    model: Type[Row]
    foreign_keys: Dict[str, Entity] = {}
    unique: Tuple[str, ...] = ()
    current_date_defaults: Tuple[str, ...] = ()
    derived: Tuple[DerivedColumn, ...] = ()

    @property
    def derived_names(self) -> Tuple[str, ...]:
        return tuple(column.name for column in self.derived)


class SchemaRegistry:
    """Registry of entity schemas with row validation."""

    def __init__(self, schemas: List[EntitySchema]) -> None:
        self._schemas: Dict[Entity, EntitySchema] = {schema.entity: schema for schema in schemas}

    @classmethod
    def default(cls) -> "SchemaRegistry":
        """Create the registry for the retail sales dataset."""
        return cls(
            [
                EntitySchema(entity=Entity.CATEGORY, model=Category),
                EntitySchema(entity=Entity.LOCATION, model=Location),
                EntitySchema(
                    entity=Entity.CUSTOMER,
                    model=Customer,
                    foreign_keys={"location_id": Entity.LOCATION},
                    unique=("email",),
                    current_date_defaults=("join_date",),
                ),
                EntitySchema(
                    entity=Entity.PRODUCT,
                    model=Product,
                    foreign_keys={"category_id": Entity.CATEGORY},
                ),
                EntitySchema(
                    entity=Entity.SALE,
                    model=Sale,
                    foreign_keys={"customer_id": Entity.CUSTOMER, "product_id": Entity.PRODUCT},
                    current_date_defaults=("sale_date",),
                    derived=(SALE_TOTAL_AMOUNT,),
                ),
            ]
        )

    def entities(self) -> List[Entity]:
        """List registered entities in registration (dependency) order."""
        return list(self._schemas)

    def schema_for(self, entity: Union[Entity, str]) -> EntitySchema:
        """Get the schema of an entity.

        Raises:
            UnknownEntity: If the entity is not registered.
        """
        try:
            return self._schemas[Entity(entity)]
        except (KeyError, ValueError) as e:
            raise UnknownEntity(f"Unknown entity '{entity}'") from e

    def validate(
        self,
        entity: Union[Entity, str],
        candidate: Mapping[str, Any],
        tables: Tables,
        exclude_id: Optional[int] = None,
    ) -> Row:
        """Validate a candidate row against the schema and the current table contents.

        Pure function: nothing is written. An explicit None for a field with a model default
        (e.g. ``stock_quantity``) takes that default. Date defaults and derived columns are
        applied by the caller.

        Args:
            entity: Target entity.
            candidate: Field values of the row, including its ``id``.
            tables: Current rows per entity, used for foreign key and uniqueness checks.
            exclude_id: Row id ignored by the uniqueness check (the row being updated).

        Returns:
            The validated row model instance.

        Raises:
            UnknownEntity: If the entity is not registered.
            ConstraintViolation: If any constraint is violated.
        """
        schema = self.schema_for(entity)
        name = schema.entity.value

        for field in schema.derived_names:
            if field in candidate:
                raise DerivedFieldAssignment(
                    name, field, f"{name}.{field} is derived and cannot be assigned", candidate[field]
                )

        try:
            row = schema.model.model_validate(_drop_defaulted_nulls(schema.model, candidate))
        except ValidationError as e:
            raise _translate_error(name, candidate, e) from e

        self._check_foreign_keys(schema, row, tables)
        self._check_unique(schema, row, tables.get(schema.entity, {}), exclude_id)
        return row

    @staticmethod
    def _check_foreign_keys(schema: EntitySchema, row: Row, tables: Tables) -> None:
        for field, target in schema.foreign_keys.items():
            value = getattr(row, field)
            if value is not None and value not in tables.get(target, {}):
                raise ForeignKeyMissing(
                    schema.entity.value,
                    field,
                    f"{schema.entity.value}.{field}={value} references a missing {target.value}",
                    value,
                )

    @staticmethod
    def _check_unique(schema: EntitySchema, row: Row, existing: Mapping[int, Row], exclude_id: Optional[int]) -> None:
        for field in schema.unique:
            value = getattr(row, field)
            if value is None:
                continue
            for other in existing.values():
                if other.id != exclude_id and getattr(other, field) == value:
                    raise UniqueConflict(
                        schema.entity.value,
                        field,
                        f"{schema.entity.value}.{field}='{value}' already exists (id {other.id})",
                        value,
                    )

    def describe(self) -> Dict[str, Any]:
        """Describe entities, field types and relationships.

        Returns:
            Dictionary with ``entities`` (entity -> field -> type description) and ``relationships``.
        """
        entities: Dict[str, Dict[str, str]] = {}
        relationships: List[Dict[str, str]] = []

        for entity, schema in self._schemas.items():
            fields: Dict[str, str] = {}
            for field, info in schema.model.model_fields.items():
                description = _type_name(info.annotation)
                if field == "id":
                    description += " (Primary Key)"
                elif field in schema.foreign_keys:
                    description += f" (Foreign Key → {schema.foreign_keys[field].value}.id)"
                elif field in schema.derived_names:
                    description += " (Derived)"
                if field in schema.unique:
                    description += " (Unique)"
                if field in schema.current_date_defaults:
                    description += " (Default: current date)"
                fields[field] = description
            entities[entity.value] = fields

            for field, target in schema.foreign_keys.items():
                relationships.append(
                    {
                        "from": entity.value,
                        "to": target.value,
                        "type": "Many-to-One",
                        "foreign_key": f"{field} → {target.value}.id",
                    }
                )

        return {"entities": entities, "relationships": relationships}


def _drop_defaulted_nulls(model: Type[Row], candidate: Mapping[str, Any]) -> Dict[str, Any]:
    """Remove None values of fields that have a default, so the model default applies."""
    return {
        field: value
        for field, value in candidate.items()
        if value is not None or field not in model.model_fields or model.model_fields[field].is_required()
    }


def _translate_error(entity: str, candidate: Mapping[str, Any], error: ValidationError) -> ConstraintViolation:
    """Map the first pydantic error onto the violation taxonomy."""
    details = error.errors()[0]
    loc = details.get("loc") or ("__root__",)
    field = str(loc[0])
    error_type = details["type"]
    value = candidate.get(field)
    message = f"{entity}.{field}: {details['msg']}"

    if error_type == "missing" or (error_type != "extra_forbidden" and field in candidate and value is None):
        return MissingRequiredField(entity, field, f"{entity}.{field} is required", value)
    if error_type == "greater_than" and details.get("ctx", {}).get("gt") == 0:
        return NotPositive(entity, field, f"{entity}.{field} must be greater than 0", value)
    return InvalidValue(entity, field, message, value)


def _type_name(annotation: Any) -> str:
    if typing.get_origin(annotation) is Union:
        args = [arg for arg in typing.get_args(annotation) if arg is not type(None)]
        return f"Optional[{_type_name(args[0])}]"
    return getattr(annotation, "__name__", str(annotation))
