"""Generic keyed record storage with in-memory and SQLite backends.

Every entity type is a frozen, keyword-only dataclass carrying an ``id`` and a
``created_at`` stamp (and optionally ``updated_at``).  :class:`EntitySchema`
derives the required fields, defaults and value coercions from the dataclass
so that both backends honour the same contract:

* ids come from a per-type counter starting at 1 and are never reused,
* ``get``/``update`` report a missing id by returning ``None``,
* ``delete`` is idempotent and reports whether a record was removed,
* ``update`` only touches the supplied fields plus ``updated_at``.
"""

from __future__ import annotations

import dataclasses
import sqlite3
import threading
import types
from contextlib import AbstractContextManager, contextmanager
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from pathlib import Path
from typing import (
    Any,
    Callable,
    Dict,
    Generic,
    Iterator,
    List,
    Mapping,
    Optional,
    Protocol,
    Tuple,
    Type,
    TypeVar,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)

T = TypeVar("T")

Clock = Callable[[], datetime]
Predicate = Callable[[T], bool]

MANAGED_FIELDS = frozenset({"id", "created_at", "updated_at"})


class ValidationError(ValueError):
    """Raised when a create or update payload does not fit the entity schema."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _unwrap_optional(hint: Any) -> Tuple[bool, Any]:
    origin = get_origin(hint)
    if origin is Union or origin is types.UnionType:
        args = [arg for arg in get_args(hint) if arg is not type(None)]
        if len(args) == 1:
            return True, args[0]
    return False, hint


def _parse_datetime(value: str) -> datetime:
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _convert(base: Any, value: Any) -> Any:
    if isinstance(base, type) and issubclass(base, Enum):
        return base(value)
    if base is bool:
        if not isinstance(value, bool):
            raise TypeError("expected a boolean")
        return value
    if base is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError("expected an integer")
        return value
    if base is str:
        if not isinstance(value, str):
            raise TypeError("expected a string")
        return value
    if base is Decimal:
        if isinstance(value, bool):
            raise TypeError("expected a decimal amount")
        if isinstance(value, Decimal):
            amount = value
        elif isinstance(value, (int, float, str)):
            amount = Decimal(str(value).strip())
        else:
            raise TypeError("expected a decimal amount")
        if not amount.is_finite():
            raise ValueError("amount must be finite")
        return amount
    if base is datetime:
        if isinstance(value, datetime):
            return _as_utc(value)
        if isinstance(value, str):
            return _as_utc(_parse_datetime(value))
        raise TypeError("expected a datetime")
    return value


def _encode(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, bool):
        return int(value)
    return value


def _decode(base: Any, raw: Any) -> Any:
    if raw is None:
        return None
    if isinstance(base, type) and issubclass(base, Enum):
        return base(raw)
    if base is bool:
        return bool(raw)
    if base is int:
        return int(raw)
    if base is Decimal:
        return Decimal(str(raw))
    if base is datetime:
        return _as_utc(_parse_datetime(str(raw)))
    if base is str:
        return str(raw)
    return raw


class EntitySchema(Generic[T]):
    """Field metadata for one entity dataclass."""

    def __init__(self, entity: Type[T], *, table: str | None = None) -> None:
        if not dataclasses.is_dataclass(entity):
            raise TypeError(f"{entity!r} is not a dataclass")
        self.entity = entity
        self.name = entity.__name__
        self.table = table or f"{entity.__name__.lower()}s"

        hints = get_type_hints(entity)
        self._fields: Dict[str, dataclasses.Field] = {
            field.name: field for field in dataclasses.fields(entity)
        }
        if "id" not in self._fields or "created_at" not in self._fields:
            raise TypeError(f"{self.name} must declare 'id' and 'created_at' fields")

        self._types: Dict[str, Tuple[bool, Any]] = {
            name: _unwrap_optional(hints[name]) for name in self._fields
        }
        self.tracks_updates = "updated_at" in self._fields
        self.writable: Tuple[str, ...] = tuple(
            name for name in self._fields if name not in MANAGED_FIELDS
        )
        self.required: Tuple[str, ...] = tuple(
            name
            for name in self.writable
            if self._fields[name].default is dataclasses.MISSING
            and self._fields[name].default_factory is dataclasses.MISSING
        )

    @property
    def columns(self) -> Tuple[str, ...]:
        return tuple(self._fields)

    def column_definitions(self) -> List[str]:
        definitions = ["id INTEGER PRIMARY KEY AUTOINCREMENT"]
        for name in self.columns:
            if name == "id":
                continue
            optional, base = self._types[name]
            affinity = "INTEGER" if base in (int, bool) else "TEXT"
            constraint = "" if optional else " NOT NULL"
            definitions.append(f"{name} {affinity}{constraint}")
        return definitions

    def prepare(self, payload: Mapping[str, Any], now: datetime) -> Dict[str, Any]:
        """Validate a creation payload and return every non-id field value."""

        self._reject_unknown(payload)
        missing = [name for name in self.required if payload.get(name) is None]
        if missing:
            raise ValidationError(
                f"Missing required {self.name} fields: {', '.join(missing)}",
                field=missing[0],
            )

        values: Dict[str, Any] = {}
        for name in self.writable:
            if name in payload:
                values[name] = self.coerce(name, payload[name])
                continue
            field = self._fields[name]
            if field.default_factory is not dataclasses.MISSING:
                values[name] = field.default_factory()
            else:
                values[name] = field.default
        values["created_at"] = now
        if self.tracks_updates:
            values["updated_at"] = now
        return values

    def merge(self, changes: Mapping[str, Any], now: datetime) -> Dict[str, Any]:
        """Validate a partial update and return the field values to replace."""

        self._reject_unknown(changes)
        updates = {name: self.coerce(name, value) for name, value in changes.items()}
        if self.tracks_updates:
            updates["updated_at"] = now
        return updates

    def coerce(self, name: str, value: Any) -> Any:
        optional, base = self._types[name]
        if value is None:
            if optional:
                return None
            raise ValidationError(f"{self.name}.{name} must not be null", field=name)
        try:
            return _convert(base, value)
        except (TypeError, ValueError, InvalidOperation) as exc:
            raise ValidationError(
                f"Invalid value for {self.name}.{name}: {value!r}",
                field=name,
            ) from exc

    def build(self, entity_id: int, values: Mapping[str, Any]) -> T:
        return self.entity(id=entity_id, **values)

    def to_row(self, values: Mapping[str, Any]) -> Dict[str, Any]:
        return {name: _encode(value) for name, value in values.items()}

    def from_row(self, row: Mapping[str, Any]) -> T:
        kwargs = {name: _decode(self._types[name][1], row[name]) for name in self.columns}
        return self.entity(**kwargs)

    def _reject_unknown(self, payload: Mapping[str, Any]) -> None:
        managed = sorted(MANAGED_FIELDS.intersection(payload))
        if managed:
            raise ValidationError(
                f"{self.name} fields are managed by the store: {', '.join(managed)}",
                field=managed[0],
            )
        unknown = sorted(set(payload) - set(self.writable))
        if unknown:
            raise ValidationError(
                f"Unknown {self.name} fields: {', '.join(unknown)}",
                field=unknown[0],
            )


class EntityStore(Protocol[T]):
    """CRUD contract every backend implements for a single entity type."""

    schema: EntitySchema[T]

    def initialize(self) -> None: ...

    def get(self, entity_id: int) -> Optional[T]: ...

    def find_all(self, predicate: Optional[Predicate[T]] = None) -> List[T]: ...

    def create(self, payload: Mapping[str, Any]) -> T: ...

    def update(self, entity_id: int, changes: Mapping[str, Any]) -> Optional[T]: ...

    def delete(self, entity_id: int) -> bool: ...


class MemoryEntityStore(Generic[T]):
    """Dictionary-backed store; records are kept in id order."""

    def __init__(
        self,
        entity: Type[T],
        *,
        table: str | None = None,
        lock: AbstractContextManager[Any] | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.schema: EntitySchema[T] = EntitySchema(entity, table=table)
        self._records: Dict[int, T] = {}
        self._next_id = 1
        self._lock = lock or threading.RLock()
        self._clock = clock or _utcnow

    def initialize(self) -> None:
        return None

    def get(self, entity_id: int) -> Optional[T]:
        with self._lock:
            return self._records.get(entity_id)

    def find_all(self, predicate: Optional[Predicate[T]] = None) -> List[T]:
        with self._lock:
            records = list(self._records.values())
        if predicate is None:
            return records
        return [record for record in records if predicate(record)]

    def create(self, payload: Mapping[str, Any]) -> T:
        with self._lock:
            values = self.schema.prepare(payload, self._clock())
            record = self.schema.build(self._next_id, values)
            self._records[self._next_id] = record
            self._next_id += 1
            return record

    def update(self, entity_id: int, changes: Mapping[str, Any]) -> Optional[T]:
        with self._lock:
            current = self._records.get(entity_id)
            if current is None:
                return None
            updates = self.schema.merge(changes, self._clock())
            record = dataclasses.replace(current, **updates)
            self._records[entity_id] = record
            return record

    def delete(self, entity_id: int) -> bool:
        with self._lock:
            return self._records.pop(entity_id, None) is not None


class SQLiteEntityStore(Generic[T]):
    """One SQLite table per entity type; ``AUTOINCREMENT`` keeps ids unique."""

    def __init__(
        self,
        entity: Type[T],
        path: Path,
        *,
        table: str | None = None,
        lock: AbstractContextManager[Any] | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.schema: EntitySchema[T] = EntitySchema(entity, table=table)
        self._path = path
        self._lock = lock or threading.RLock()
        self._clock = clock or _utcnow

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self._path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def initialize(self) -> None:
        columns = ",\n    ".join(self.schema.column_definitions())
        with self._lock, self._connect() as conn:
            conn.execute(f"CREATE TABLE IF NOT EXISTS {self.schema.table} (\n    {columns}\n)")

    def get(self, entity_id: int) -> Optional[T]:
        with self._lock, self._connect() as conn:
            row = conn.execute(
                f"SELECT * FROM {self.schema.table} WHERE id = ?",
                (entity_id,),
            ).fetchone()
        if row is None:
            return None
        return self.schema.from_row(row)

    def find_all(self, predicate: Optional[Predicate[T]] = None) -> List[T]:
        with self._lock, self._connect() as conn:
            rows = conn.execute(f"SELECT * FROM {self.schema.table} ORDER BY id").fetchall()
        records = [self.schema.from_row(row) for row in rows]
        if predicate is None:
            return records
        return [record for record in records if predicate(record)]

    def create(self, payload: Mapping[str, Any]) -> T:
        with self._lock:
            values = self.schema.prepare(payload, self._clock())
            row = self.schema.to_row(values)
            names = list(row)
            placeholders = ", ".join("?" for _ in names)
            with self._connect() as conn:
                cursor = conn.execute(
                    f"INSERT INTO {self.schema.table} ({', '.join(names)}) VALUES ({placeholders})",
                    [row[name] for name in names],
                )
                entity_id = int(cursor.lastrowid)
            return self.schema.build(entity_id, values)

    def update(self, entity_id: int, changes: Mapping[str, Any]) -> Optional[T]:
        with self._lock:
            current = self.get(entity_id)
            if current is None:
                return None
            updates = self.schema.merge(changes, self._clock())
            if updates:
                row = self.schema.to_row(updates)
                assignments = ", ".join(f"{name} = ?" for name in row)
                with self._connect() as conn:
                    conn.execute(
                        f"UPDATE {self.schema.table} SET {assignments} WHERE id = ?",
                        [*row.values(), entity_id],
                    )
            return dataclasses.replace(current, **updates)

    def delete(self, entity_id: int) -> bool:
        with self._lock, self._connect() as conn:
            cursor = conn.execute(
                f"DELETE FROM {self.schema.table} WHERE id = ?",
                (entity_id,),
            )
            return cursor.rowcount > 0


__all__ = [
    "EntitySchema",
    "EntityStore",
    "MemoryEntityStore",
    "SQLiteEntityStore",
    "ValidationError",
]
