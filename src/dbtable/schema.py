"""
Column declarations and the per-table schema registry.

A table declares its columns once, as an ordered list of `ColumnSchema`
objects (or the equivalent dicts with upper-case keys). `SchemaRegistry`
derives everything else from that list on first use and caches it:

- the column names, in declaration order
- a name -> descriptor lookup
- the primary column: the first one flagged primary, else the last column
- the identity column: the first one with a generated-identity directive or
  `GENERATED ALWAYS AS IDENTITY` in its options

Order matters: it is the order of the SELECT list, and therefore the
positional order used to build rows out of result tuples.
"""
import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field, fields
from typing import Any

from dbtable.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

IDENTITY_MARKER = 'GENERATED ALWAYS AS IDENTITY'

# legacy upper-case declaration keys -> ColumnSchema attribute
FIELD_ALIASES = {
    'COLUMN': 'name',
    'TYPE': 'sql_type',
    'LENGTH': 'length',
    'OPTS': 'options',
    'DEFAULT': 'default',
    'PRIMARY': 'primary',
    'CONSTRAINT': 'constraint',
    'FOREIGNKEY': 'foreign_key',
    'GENERATEDIDENTITY': 'generated_identity',
    'NOCREATE': 'no_create',
    }


@dataclass(frozen=True)
class ColumnSchema:
    """Static description of one table column.

    `generated_identity` is None when the column is not an identity column,
    True (or the flag 1, or the word 'default') for the default identity
    directive, and any other string for an explicit directive such as
    '(START WITH 100, INCREMENT BY 1)'.

    `extra` keeps declaration keys this package does not interpret, for use
    by table subclasses.
    """
    name: str
    sql_type: str
    length: str | int | None = None
    options: str | None = None
    default: Any = None
    primary: bool = False
    constraint: str | tuple[str, ...] | None = None
    foreign_key: str | tuple[str, ...] | None = None
    generated_identity: bool | str | None = None
    no_create: bool = False
    extra: Mapping[str, Any] = field(default_factory=dict, hash=False, compare=False)

    def __post_init__(self):
        if not self.name:
            raise ConfigurationError('Column declared without a name')
        if not self.sql_type:
            raise ConfigurationError(f'Column {self.name} declared without a type')
        object.__setattr__(self, 'name', self.name.upper())
        identity = self.generated_identity
        if identity is not None and not isinstance(identity, str):
            if identity is False or identity == 0:
                object.__setattr__(self, 'generated_identity', None)
            elif identity is True or identity == 1:
                object.__setattr__(self, 'generated_identity', True)
            else:
                raise ConfigurationError(
                    f'Column {self.name}: GENERATEDIDENTITY must be a directive string '
                    f'or a flag, not {identity!r}')
        for attr in ('constraint', 'foreign_key'):
            value = getattr(self, attr)
            if isinstance(value, list):
                object.__setattr__(self, attr, tuple(value))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'ColumnSchema':
        """Build a column from a declaration dict.

        Accepts the legacy upper-case keys (COLUMN, TYPE, LENGTH, OPTS, ...)
        as well as the attribute names. A GENERATEDIDENTITY key that is
        present with a None value selects the default identity directive.
        """
        names = {f.name for f in fields(cls)} - {'extra'}
        kwargs: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in data.items():
            attr = FIELD_ALIASES.get(key.upper(), key if key in names else None)
            if attr is None:
                extra[key.upper()] = value
                continue
            if attr == 'generated_identity' and value is None:
                value = True
            kwargs[attr] = value
        if 'name' not in kwargs or 'sql_type' not in kwargs:
            raise ConfigurationError(f'Column declaration needs COLUMN and TYPE: {dict(data)}')
        return cls(**kwargs, extra=extra)

    @property
    def is_identity(self) -> bool:
        if self.generated_identity is not None and self.generated_identity is not False:
            return True
        return bool(self.options) and IDENTITY_MARKER in self.options.upper()

    @property
    def is_bool(self) -> bool:
        return self.sql_type.upper() == 'BOOL'

    def get(self, key: str) -> Any:
        """Value of a descriptor field by attribute name or legacy key; None if unset.
        """
        attr = FIELD_ALIASES.get(key.upper(), key.lower())
        if attr in {f.name for f in fields(self)} and attr != 'extra':
            return getattr(self, attr)
        return self.extra.get(key.upper())


def as_column(column: 'ColumnSchema | Mapping[str, Any]') -> ColumnSchema:
    if isinstance(column, ColumnSchema):
        return column
    return ColumnSchema.from_dict(column)


class SchemaRegistry:
    """Derived, cached view of a table's column declarations.

    `loader` is called at most once (until `reset`) to obtain the ordered
    declarations.
    """

    def __init__(self, loader: Callable[[], Iterable[ColumnSchema | Mapping[str, Any]]]) -> None:
        self._loader = loader
        self.reset()

    def reset(self) -> None:
        """Drop every derived value; the next access reloads the declarations.
        """
        self._data_order: list[ColumnSchema] | None = None
        self._column_list: tuple[str, ...] | None = None
        self._all_data: dict[str, ColumnSchema] | None = None
        self._primary: str | None = None
        self._primary_known = False
        self._identity: str | None = None
        self._identity_known = False

    def data_order(self) -> list[ColumnSchema]:
        if self._data_order is None:
            columns = [as_column(c) for c in self._loader()]
            seen = set()
            for column in columns:
                if column.name in seen:
                    raise ConfigurationError(f'Column {column.name} declared twice')
                seen.add(column.name)
            self._data_order = columns
        return self._data_order

    def column_list(self) -> tuple[str, ...]:
        """All column names, in declaration order."""
        if self._column_list is None:
            self._column_list = tuple(c.name for c in self.data_order())
        return self._column_list

    def all_data(self) -> dict[str, ColumnSchema]:
        """Name -> descriptor for every column."""
        if self._all_data is None:
            self._all_data = {c.name: c for c in self.data_order()}
        return self._all_data

    def has_column(self, name: str) -> bool:
        return name.upper() in self.all_data()

    def get_column(self, name: str, key: str | None = None) -> Any:
        """Descriptor for `name`, or the value of one of its fields.

        Lookup is case-insensitive. Returns None when the column (or the
        requested field) does not exist.
        """
        column = self.all_data().get(name.upper())
        if column is None or key is None:
            return column
        return column.get(key)

    def primary_column(self) -> str | None:
        """First column flagged primary; the last column when none is flagged.
        """
        if not self._primary_known:
            order = self.data_order()
            primary = next((c.name for c in order if c.primary), None)
            if primary is None and order:
                primary = order[-1].name
            self._primary = primary
            self._primary_known = True
        return self._primary

    def identity_column(self) -> str | None:
        """First column generated by the database as an identity, if any.
        """
        if not self._identity_known:
            self._identity = next((c.name for c in self.data_order() if c.is_identity), None)
            self._identity_known = True
        return self._identity

    def insertable_columns(self) -> list[str]:
        """Columns an INSERT supplies: everything but NOCREATE and identity columns.
        """
        identity = self.identity_column()
        return [c.name for c in self.data_order()
                if not c.no_create and c.name != identity]

    def defaults(self) -> dict[str, Any]:
        return {c.name: c.default for c in self.data_order()}
