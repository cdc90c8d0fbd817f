"""Rows and the factory that builds them from result tuples."""
import logging
import weakref
from collections.abc import Callable, Iterable, Mapping
from typing import TYPE_CHECKING, Any

from dbtable.exceptions import ConfigurationError
from dbtable.utils import rstrip_value

if TYPE_CHECKING:
    from dbtable.table import Table

logger = logging.getLogger(__name__)

RowConstructor = Callable[['Table', Mapping[str, Any]], 'Row']


class Row:
    """One record of a table: current column values plus a dirty set.

    A row refers to its table weakly; the database that registered the
    table owns it. Values set through `set_column` (or item assignment) mark
    the column modified until the row is next saved.
    """

    def __init__(self, table: 'Table', values: Mapping[str, Any] | None = None) -> None:
        self._table_ref = weakref.ref(table)
        self._values: dict[str, Any] = dict.fromkeys(table.column_list())
        self._modified: set[str] = set()
        for name, value in (values or {}).items():
            self._values[self._check(name, table)] = value

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self._values!r})'

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Row):
            return NotImplemented
        return self.table is other.table and self._values == other._values

    __hash__ = None

    @property
    def table(self) -> 'Table':
        table = self._table_ref()
        if table is None:
            raise ConfigurationError('Row outlived its table')
        return table

    @staticmethod
    def _check(name: str, table: 'Table') -> str:
        name = name.upper()
        if not table.registry.has_column(name):
            raise ConfigurationError(f'{table.full_table_name} has no column {name}')
        return name

    def column(self, name: str) -> Any:
        return self._values[self._check(name, self.table)]

    def set_column(self, name: str, value: Any) -> None:
        name = self._check(name, self.table)
        self._values[name] = value
        self._modified.add(name)

    __getitem__ = column
    __setitem__ = set_column

    def modified_columns(self) -> frozenset[str]:
        return frozenset(self._modified)

    def is_modified(self, name: str | None = None) -> bool:
        if name is None:
            return bool(self._modified)
        return name.upper() in self._modified

    def mark_clean(self) -> None:
        """Forget modifications; called once the row has been written."""
        self._modified.clear()

    def primary_column(self) -> str | None:
        return self.table.primary_column()

    def primary_column_value(self) -> Any:
        primary = self.primary_column()
        if primary is None:
            return None
        return self._values[primary]

    def as_dict(self) -> dict[str, Any]:
        return dict(self._values)

    def save(self) -> int | None:
        return self.table.save(self)

    def delete(self) -> int | None:
        return self.table.delete(self)


class RowFactory:
    """Builds rows of a table, from result tuples or from column defaults.

    `constructor` is the row type (or any callable taking the table and a
    value mapping) registered for the table.
    """

    def __init__(self, table: 'Table', constructor: RowConstructor = Row) -> None:
        self.table = table
        self.constructor = constructor

    def from_values(self, values: Iterable[Any]) -> Row:
        """Row from values given positionally in declaration order.

        Trailing whitespace is stripped from strings; None values are left unset.
        """
        params = {
            column: rstrip_value(value)
            for column, value in zip(self.table.column_list(), values)
            if value is not None
            }
        return self.constructor(self.table, params)

    def from_result(self, result: Iterable[Iterable[Any]] | None) -> list[Row]:
        return [self.from_values(raw) for raw in result or []]

    def with_defaults(self) -> Row:
        return self.from_values(self.table.get_column(name, 'DEFAULT')
                                for name in self.table.column_list())


def shape_result(rows: list[Row], single: bool = False) -> list[Row] | Row | None:
    """Shape a find result for its caller.

    Sequence callers always get the list. Single-value callers get None for
    no match, the row itself for one match, and the list for several.
    """
    if not single:
        return rows
    if not rows:
        return None
    if len(rows) == 1:
        return rows[0]
    return rows
