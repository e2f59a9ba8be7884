"""Derived-column evaluation.

A derived column is computed from other fields of the same row and is never accepted as input.
"""

from decimal import Decimal
from typing import (
    Any,
    Callable,
    Sequence,
    Tuple,
    TypeVar,
)

from pydantic import (
    BaseModel,
    ConfigDict,
)

from .entities import (
    Row,
    Sale,
)


RowT = TypeVar("RowT", bound=Row)

CENTS = Decimal("0.01")


class DerivedColumn(BaseModel):
    """Definition of a column computed at write time.

    Attributes:
        name: Field on the row model that receives the computed value.
        depends_on: Fields the value is computed from. Writes touching any of them recompute the column.
        compute: Function returning the value for a validated row.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    depends_on: Tuple[str, ...]
    compute: Callable[[Any], Any]


def line_total(sale: Sale) -> Decimal:
    """Return ``quantity * unit_price`` as an exact two-place decimal."""
    return (Decimal(sale.quantity) * sale.unit_price).quantize(CENTS)


SALE_TOTAL_AMOUNT = DerivedColumn(
    name="total_amount",
    depends_on=("quantity", "unit_price"),
    compute=line_total,
)


def derive(row: RowT, columns: Sequence[DerivedColumn]) -> RowT:
    """Return a copy of ``row`` with every derived column computed.

    Args:
        row: Validated row.
        columns: Derived columns declared for the row's entity.

    Returns:
        The same row when no columns are declared, otherwise a new row instance.
    """
    if not columns:
        return row
    return row.model_copy(update={column.name: column.compute(row) for column in columns})
