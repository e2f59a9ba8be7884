"""In-memory table store with constraint enforcement on write."""

import logging
import threading
from typing import (
    Any,
    Dict,
    Iterator,
    List,
    Mapping,
    Optional,
    Tuple,
    Union,
)

from .clock import (
    Clock,
    SystemClock,
)
from .derived import derive
from .entities import (
    Entity,
    Row,
)
from .errors import (
    ConstraintViolation,
    DuplicateKey,
    InvalidValue,
    RowNotFound,
)
from .schema import (
    EntitySchema,
    SchemaRegistry,
)


logger = logging.getLogger(__name__)

JOIN_TYPES = ("inner", "left")


class TableStore:
    """Ordered in-memory tables keyed by primary id.

    Every write goes through the schema registry: defaults are applied, the row is validated
    (types, ranges, foreign keys, uniqueness), derived columns are computed and only then is
    the row published. A rejected write leaves the table exactly as it was.

    Tables are replaced copy-on-write, so a reader holding a table snapshot never observes a
    partially applied write. Writers are serialized on a lock.

    Usage:
        store = TableStore(clock=FixedClock(date(2024, 1, 15)))
        category_id = store.insert(Entity.CATEGORY, {"name": "Books"})
        for row in store.scan_all(Entity.CATEGORY):
            ...
    """

    def __init__(self, registry: Optional[SchemaRegistry] = None, clock: Optional[Clock] = None) -> None:
        """Initialize an empty store.

        Args:
            registry: Schema registry. Defaults to the retail sales schema.
            clock: Clock used for current-date defaults. Defaults to the system clock.
        """
        self.registry = registry or SchemaRegistry.default()
        self.clock: Clock = clock or SystemClock()
        self._tables: Dict[Entity, Dict[int, Row]] = {entity: {} for entity in self.registry.entities()}
        self._next_ids: Dict[Entity, int] = {entity: 1 for entity in self.registry.entities()}
        self._write_lock = threading.Lock()

    # ==============================================================================
    # Write Methods
    # ==============================================================================

    def insert(self, entity: Union[Entity, str], row: Mapping[str, Any]) -> int:
        """Validate and store a new row.

        Args:
            entity: Target entity.
            row: Field values. ``id`` is assigned when absent; date fields with a current-date
                default take the clock's date when absent.

        Returns:
            Id of the stored row.

        Raises:
            UnknownEntity: If the entity is not registered.
            ConstraintViolation: If the row violates any constraint. Nothing is stored.
        """
        schema = self.registry.schema_for(entity)

        with self._write_lock:
            candidate = dict(row)
            if candidate.get("id") is None:
                candidate["id"] = self._next_ids[schema.entity]
            for field in schema.current_date_defaults:
                if candidate.get(field) is None:
                    candidate[field] = self.clock.today()

            try:
                validated = self.registry.validate(schema.entity, candidate, self._tables)
                if validated.id in self._tables[schema.entity]:
                    message = f"{schema.entity.value} id {validated.id} already exists"
                    raise DuplicateKey(schema.entity.value, "id", message, validated.id)
            except ConstraintViolation as e:
                logger.debug("Rejected %s row: %s", schema.entity.value, e)
                raise

            stored = derive(validated, schema.derived)
            self._publish(schema, stored)

        logger.debug("Inserted %s id=%s", schema.entity.value, stored.id)
        return stored.id

    def update(self, entity: Union[Entity, str], row_id: int, **changes: Any) -> Row:
        """Replace fields of an existing row.

        The merged row is validated as a whole and derived columns are recomputed.
        The primary key and derived columns cannot be changed.

        Args:
            entity: Target entity.
            row_id: Id of the row to update.
            **changes: Field values to change.

        Returns:
            The stored row after the update.

        Raises:
            UnknownEntity: If the entity is not registered.
            RowNotFound: If no row has the given id.
            ConstraintViolation: If the updated row violates any constraint. Nothing is changed.

        Example:
            store.update(Entity.PRODUCT, 1, stock_quantity=5)
        """
        schema = self.registry.schema_for(entity)

        with self._write_lock:
            existing = self._tables[schema.entity].get(row_id)
            if existing is None:
                raise RowNotFound(f"{schema.entity.value} id {row_id} does not exist")

            try:
                if changes.get("id", row_id) != row_id:
                    raise InvalidValue(schema.entity.value, "id", "Primary key cannot be changed", changes["id"])
                candidate = existing.model_dump(exclude=set(schema.derived_names))
                candidate.update(changes)
                validated = self.registry.validate(schema.entity, candidate, self._tables, exclude_id=row_id)
            except ConstraintViolation as e:
                logger.debug("Rejected update of %s id=%s: %s", schema.entity.value, row_id, e)
                raise

            stored = derive(validated, schema.derived)
            self._publish(schema, stored)

        logger.debug("Updated %s id=%s fields=%s", schema.entity.value, row_id, sorted(changes))
        return stored

    def _publish(self, schema: EntitySchema, row: Row) -> None:
        """Swap in a new table containing ``row``. Caller holds the write lock."""
        table = dict(self._tables[schema.entity])
        table[row.id] = row
        self._tables[schema.entity] = table
        self._next_ids[schema.entity] = max(self._next_ids[schema.entity], row.id + 1)

    # ==============================================================================
    # Read Methods
    # ==============================================================================

    def _table(self, entity: Union[Entity, str]) -> Dict[int, Row]:
        return self._tables[self.registry.schema_for(entity).entity]

    def get(self, entity: Union[Entity, str], row_id: int) -> Optional[Row]:
        """Get a row by id, or None if it does not exist."""
        return self._table(entity).get(row_id)

    def scan_all(self, entity: Union[Entity, str]) -> Iterator[Row]:
        """Iterate rows of an entity in insertion order.

        The iterator walks the table snapshot current at call time; later writes are not seen.
        Call again to start over.
        """
        return iter(self._table(entity).values())

    def count(self, entity: Union[Entity, str]) -> int:
        """Number of rows stored for an entity."""
        return len(self._table(entity))

    def snapshot(self) -> Dict[Entity, Mapping[int, Row]]:
        """Current tables of all entities. The returned tables are never modified by the store."""
        return dict(self._tables)

    def join(
        self,
        left: Union[Entity, str],
        right: Union[Entity, str],
        left_key: str,
        right_key: str = "id",
        how: str = "inner",
    ) -> Iterator[Tuple[Row, Optional[Row]]]:
        """Equality join of two tables.

        Output follows the left table's insertion order, and the right table's insertion order
        among matches for the same left row. ``None`` keys never match.

        Args:
            left: Left entity.
            right: Right entity.
            left_key: Field of the left rows.
            right_key: Field of the right rows (defaults to the primary key).
            how: "inner" drops unmatched left rows; "left" pairs them with None.

        Returns:
            Iterator of (left_row, right_row) pairs.

        Raises:
            ValueError: If the join type or a key field is unknown.
        """
        if how not in JOIN_TYPES:
            raise ValueError(f"Unsupported join type '{how}', expected one of {JOIN_TYPES}")
        left_schema = self.registry.schema_for(left)
        right_schema = self.registry.schema_for(right)
        if left_key not in left_schema.model.model_fields:
            raise ValueError(f"{left_schema.entity.value} has no field '{left_key}'")
        if right_key not in right_schema.model.model_fields:
            raise ValueError(f"{right_schema.entity.value} has no field '{right_key}'")

        return self._hash_join(
            self._tables[left_schema.entity], self._tables[right_schema.entity], left_key, right_key, how
        )

    @staticmethod
    def _hash_join(
        left_rows: Mapping[int, Row],
        right_rows: Mapping[int, Row],
        left_key: str,
        right_key: str,
        how: str,
    ) -> Iterator[Tuple[Row, Optional[Row]]]:
        index: Dict[Any, List[Row]] = {}
        for right_row in right_rows.values():
            key = getattr(right_row, right_key)
            if key is not None:
                index.setdefault(key, []).append(right_row)

        for left_row in left_rows.values():
            key = getattr(left_row, left_key)
            matches = index.get(key, []) if key is not None else []
            if matches:
                for right_row in matches:
                    yield left_row, right_row
            elif how == "left":
                yield left_row, None
