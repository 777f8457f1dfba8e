"""SQLite storage and generic record repositories.

A model is a dataclass with a ``table_name`` class variable and an ``id``
field.  A field typed as another model is stored as a foreign key to that
model's table; fields whose metadata carries ``persist=False`` are not stored.
"""

from __future__ import annotations

import dataclasses
import inspect
import sqlite3
import types
import typing
from collections.abc import Iterable
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime
from functools import cache
from typing import Any, Generic, Iterator, Mapping, Sequence, TypeVar

from .querying import Lookup, QueryError, filter_key, parse_filter, sort_fields

DEFAULT_ROWS_LIMIT = 1000
RELATED_DEPTH = 5

M = TypeVar("M")


class RecordNotFound(LookupError):
    """Raised when no row has the requested id."""

    def __init__(self, table: str, record_id: int) -> None:
        super().__init__(f"no row found in {table} with id {record_id}")
        self.table = table
        self.record_id = record_id


@dataclass
class Deleted:
    """Body returned after a record is deleted."""

    id: int


@dataclass(frozen=True)
class _Column:
    name: str
    kind: Any
    nullable: bool

    @property
    def related(self) -> bool:
        return _is_model(self.kind)


def _is_model(kind: Any) -> bool:
    return isinstance(kind, type) and dataclasses.is_dataclass(kind) and hasattr(kind, "table_name")


def _unwrap(hint: Any) -> tuple[Any, bool]:
    if typing.get_origin(hint) in (typing.Union, types.UnionType):
        args = typing.get_args(hint)
        concrete = [arg for arg in args if arg is not type(None)]
        if len(concrete) != 1:
            raise TypeError(f"unsupported field type {hint!r}")
        return concrete[0], len(concrete) < len(args)
    return hint, False


_KNOWN_TYPES: dict[str, Any] = {
    "int": int,
    "str": str,
    "bool": bool,
    "float": float,
    "bytes": bytes,
    "datetime": datetime,
    "date": date,
    "None": type(None),
    "NoneType": type(None),
}


def _split_top(text: str, separator: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    current = []
    for char in text:
        if char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
        if char == separator and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    parts.append("".join(current))
    return [part.strip() for part in parts]


def _lookup_name(name: str, namespace: Mapping[str, Any]) -> Any:
    head, *rest = name.split(".")
    if head in namespace:
        obj = namespace[head]
    elif head in _KNOWN_TYPES:
        obj = _KNOWN_TYPES[head]
    else:
        raise TypeError(f"cannot resolve field type {name!r}")
    for part in rest:
        obj = getattr(obj, part)
    return obj


def _parse_hint(text: str, namespace: Mapping[str, Any]) -> tuple[Any, bool]:
    text = text.strip().strip("'\"").strip()
    for prefix in ("typing.Optional[", "Optional["):
        if text.startswith(prefix) and text.endswith("]"):
            kind, _ = _parse_hint(text[len(prefix) : -1], namespace)
            return kind, True
    options: list[str] | None = None
    for prefix in ("typing.Union[", "Union["):
        if text.startswith(prefix) and text.endswith("]"):
            options = _split_top(text[len(prefix) : -1], ",")
    if options is None:
        options = _split_top(text, "|")
    names = [option.strip("'\"").strip() for option in options]
    concrete = [name for name in names if name not in ("None", "NoneType")]
    if len(concrete) != 1:
        raise TypeError(f"unsupported field type {text!r}")
    return _lookup_name(concrete[0], namespace), len(concrete) < len(names)


def _field_type(model: type, field: dataclasses.Field) -> tuple[Any, bool]:
    if not isinstance(field.type, str):
        return _unwrap(field.type)
    module = inspect.getmodule(model)
    namespace: dict[str, Any] = dict(vars(module)) if module is not None else {}
    namespace.setdefault(model.__name__, model)
    return _parse_hint(field.type, namespace)


@cache
def _columns(model: type) -> tuple[_Column, ...]:
    columns = []
    for field in dataclasses.fields(model):
        if not field.metadata.get("persist", True):
            continue
        kind, nullable = _field_type(model, field)
        columns.append(_Column(field.name, kind, nullable))
    if not any(column.name == "id" for column in columns):
        raise TypeError(f"{model.__name__} has no id field")
    return tuple(columns)


@cache
def _column_map(model: type) -> dict[str, _Column]:
    return {column.name: column for column in _columns(model)}


def _sql_type(column: _Column) -> str:
    if column.name == "id":
        return "INTEGER PRIMARY KEY AUTOINCREMENT"
    if column.related:
        return f'INTEGER REFERENCES "{column.kind.table_name}"(id)'
    if column.kind in (bool, int):
        return "INTEGER"
    if column.kind is float:
        return "REAL"
    return "TEXT"


def _create_sql(model: type) -> str:
    body = ", ".join(f'"{column.name}" {_sql_type(column)}' for column in _columns(model))
    return f'CREATE TABLE IF NOT EXISTS "{model.table_name}" ({body})'


def _to_db(value: Any, column: _Column) -> Any:
    if value is None:
        return None
    if column.related:
        return value.id
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


_ZERO = {str: "", int: 0, bool: False, float: 0.0}


def _from_db(raw: Any, column: _Column) -> Any:
    if raw is None:
        return None if column.nullable else _ZERO.get(column.kind)
    if column.kind is bool:
        return bool(raw)
    if column.kind in (datetime, date):
        return column.kind.fromisoformat(raw)
    return raw


_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value)
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise QueryError(f"Error: invalid boolean {value!r}")


def _coerce(value: Any, kind: Any) -> Any:
    if value is None:
        return None
    if kind is bool:
        return _parse_bool(value)
    if isinstance(value, kind) and not (kind is int and isinstance(value, bool)):
        return value
    try:
        if kind in (datetime, date):
            return kind.fromisoformat(str(value))
        return kind(value)
    except (TypeError, ValueError) as exc:
        raise QueryError(f"Error: invalid value {value!r}") from exc


_TEXT_TESTS = {
    "contains": lambda actual, expected: expected in actual,
    "startswith": str.startswith,
    "endswith": str.endswith,
}

_ORDER_TESTS = {
    "exact": lambda actual, expected: actual == expected,
    "gt": lambda actual, expected: actual > expected,
    "gte": lambda actual, expected: actual >= expected,
    "lt": lambda actual, expected: actual < expected,
    "lte": lambda actual, expected: actual <= expected,
}


def _test(lookup: Lookup, actual: Any, kind: Any) -> bool:
    operator, value = lookup.operator, lookup.value
    if operator == "isnull":
        return (actual is None) == _parse_bool(value)
    if operator == "in":
        if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
            value = [value]
        return actual in [_coerce(option, kind) for option in value]
    if actual is None:
        return value is None and operator == "exact"
    if operator == "iexact":
        return str(actual).lower() == str(value).lower()
    if operator in _TEXT_TESTS:
        return _TEXT_TESTS[operator](str(actual), str(value))
    if operator.startswith("i") and operator[1:] in _TEXT_TESTS:
        return _TEXT_TESTS[operator[1:]](str(actual).lower(), str(value).lower())
    try:
        return _ORDER_TESTS[operator](actual, _coerce(value, kind))
    except TypeError as exc:
        raise QueryError(f"Error: cannot compare {actual!r} with {value!r}") from exc


def _value_at(record: Any, path: tuple[str, ...]) -> Any:
    for part in path:
        if record is None:
            return None
        record = getattr(record, part)
    return record


def _sort_key(value: Any) -> tuple[bool, Any]:
    return (value is None, value)


class Database:
    """A SQLite database holding the model tables."""

    def __init__(self, path: str = ":memory:") -> None:
        self.connection = sqlite3.connect(path, isolation_level=None)
        self.connection.row_factory = sqlite3.Row
        self.connection.execute("PRAGMA foreign_keys = ON")
        self._depth = 0

    def create_tables(self, *models: type) -> None:
        """Create the table of every model that does not have one yet."""
        with self.transaction():
            for model in models:
                self.connection.execute(_create_sql(model))

    @contextmanager
    def transaction(self) -> Iterator[Database]:
        """Run a block atomically; nested blocks use savepoints."""
        if self._depth == 0:
            begin, commit, rollback = "BEGIN", ["COMMIT"], ["ROLLBACK"]
        else:
            name = f"sp{self._depth}"
            begin = f"SAVEPOINT {name}"
            commit = [f"RELEASE {name}"]
            rollback = [f"ROLLBACK TO {name}", f"RELEASE {name}"]
        self.connection.execute(begin)
        self._depth += 1
        try:
            yield self
        except BaseException:
            self._depth -= 1
            for statement in rollback:
                self.connection.execute(statement)
            raise
        self._depth -= 1
        for statement in commit:
            self.connection.execute(statement)

    def close(self) -> None:
        """Close the underlying connection."""
        self.connection.close()

    def __enter__(self) -> Database:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class Repository(Generic[M]):
    """Create, read, list, update and delete the records of one model."""

    related_depth = RELATED_DEPTH

    def __init__(self, db: Database, model: type[M]) -> None:
        if not _is_model(model):
            raise TypeError(f"{model!r} is not a model")
        self.db = db
        self.model = model
        self._table = model.table_name
        self._columns = _columns(model)

    def add(self, record: M) -> int:
        """Insert a record, set its id and return the id."""
        columns = [column for column in self._columns if column.name != "id"]
        if columns:
            names = ", ".join(f'"{column.name}"' for column in columns)
            marks = ", ".join("?" for _ in columns)
            sql = f'INSERT INTO "{self._table}" ({names}) VALUES ({marks})'
        else:
            sql = f'INSERT INTO "{self._table}" DEFAULT VALUES'
        values = [_to_db(getattr(record, column.name), column) for column in columns]
        with self.db.transaction():
            cursor = self.db.connection.execute(sql, values)
        record.id = cursor.lastrowid
        return record.id

    def get(self, record_id: int) -> M:
        """Read one record; related records carry only their id."""
        row = self._fetch(self.model, record_id)
        if row is None:
            raise RecordNotFound(self._table, record_id)
        return self._build(self.model, row, 0)

    def get_all(
        self,
        query: Mapping[str, Any] | None = None,
        fields: Sequence[str] | None = None,
        sortby: Sequence[str] | None = None,
        order: Sequence[str] | None = None,
        offset: int = 0,
        limit: int = 0,
    ) -> list[Any]:
        """List records matching ``query``, sorted, paged and optionally trimmed to ``fields``."""
        lookups = [parse_filter(key, value) for key, value in (query or {}).items()]
        resolved = [(lookup, *self._resolve(lookup.path)) for lookup in lookups]
        ordering = [
            (key.startswith("-"), self._resolve(tuple(filter_key(key.lstrip("-")).split("__")))[0])
            for key in sort_fields(sortby, order)
        ]
        wanted = [(name, self._field(name)) for name in fields or []]

        rows = self.db.connection.execute(f'SELECT * FROM "{self._table}" ORDER BY id').fetchall()
        records = [self._build(self.model, row, self.related_depth) for row in rows]
        records = [
            record
            for record in records
            if all(_test(lookup, _value_at(record, path), kind) for lookup, path, kind in resolved)
        ]
        for descending, path in reversed(ordering):
            records.sort(key=lambda record, p=path: _sort_key(_value_at(record, p)), reverse=descending)

        offset = max(offset, 0)
        if limit == 0:
            limit = DEFAULT_ROWS_LIMIT
        window = records[offset:] if limit < 0 else records[offset : offset + limit]
        if not wanted:
            return window
        return [{name: getattr(record, attr) for name, attr in wanted} for record in window]

    def update(self, record: M) -> int:
        """Overwrite a stored record; return the number of rows updated."""
        columns = [column for column in self._columns if column.name != "id"]
        assignments = ", ".join(f'"{column.name}" = ?' for column in columns)
        values = [_to_db(getattr(record, column.name), column) for column in columns]
        with self.db.transaction():
            self._require(record.id)
            if not columns:
                return 1
            cursor = self.db.connection.execute(
                f'UPDATE "{self._table}" SET {assignments} WHERE id = ?', [*values, record.id]
            )
        return cursor.rowcount

    def delete(self, record_id: int) -> int:
        """Delete a stored record; return the number of rows deleted."""
        with self.db.transaction():
            self._require(record_id)
            cursor = self.db.connection.execute(f'DELETE FROM "{self._table}" WHERE id = ?', [record_id])
        return cursor.rowcount

    def _require(self, record_id: int) -> None:
        if self._fetch(self.model, record_id) is None:
            raise RecordNotFound(self._table, record_id)

    def _fetch(self, model: type, record_id: int) -> sqlite3.Row | None:
        return self.db.connection.execute(
            f'SELECT * FROM "{model.table_name}" WHERE id = ?', [record_id]
        ).fetchone()

    def _build(self, model: type, row: sqlite3.Row, depth: int) -> Any:
        values = {}
        for column in _columns(model):
            raw = row[column.name]
            if not column.related:
                values[column.name] = _from_db(raw, column)
            elif raw is None:
                values[column.name] = None
            else:
                related_row = self._fetch(column.kind, raw) if depth > 0 else None
                if related_row is None:
                    values[column.name] = column.kind(id=raw)
                else:
                    values[column.name] = self._build(column.kind, related_row, depth - 1)
        return model(**values)

    def _resolve(self, path: tuple[str, ...]) -> tuple[tuple[str, ...], Any]:
        model: type | None = self.model
        kind: Any = None
        for part in path:
            column = _column_map(model).get(part) if model is not None else None
            if column is None:
                raise QueryError(f"Error: unknown field {'.'.join(path)!r}")
            kind = column.kind
            model = kind if column.related else None
        if model is not None:
            return (*path, "id"), int
        return path, kind

    def _field(self, name: str) -> str:
        attr = filter_key(name)
        if attr not in {field.name for field in dataclasses.fields(self.model)}:
            raise QueryError(f"Error: unknown field {name!r}")
        return attr