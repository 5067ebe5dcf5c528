"""Entity <-> cache payload conversion.

Cached entities are plain dicts of column values so any JSON store can
hold them. Types JSON cannot carry are written as text and parsed back
using the column's SQLAlchemy type.
"""

from __future__ import annotations

import datetime as dt
import uuid
from decimal import Decimal
from typing import Any

from sqlalchemy import Date, DateTime, Numeric, Time, Uuid
from sqlalchemy import inspect as sa_inspect


class EntitySerializer:
    """Serialize mapped column attributes of an ORM instance."""

    def to_cache(self, entity: Any) -> dict[str, Any]:
        mapper = sa_inspect(type(entity))
        data: dict[str, Any] = {}
        for attr in mapper.column_attrs:
            data[attr.key] = self.dump_value(getattr(entity, attr.key))
        return data

    def from_cache(self, model: type, data: dict[str, Any]) -> Any:
        """Build a transient instance of model from a cached dict.

        Keys that are not column attributes of model are ignored.
        """
        mapper = sa_inspect(model)
        values: dict[str, Any] = {}
        for attr in mapper.column_attrs:
            if attr.key in data:
                values[attr.key] = self.load_value(attr.columns[0].type, data[attr.key])
        return model(**values)

    @staticmethod
    def dump_value(value: Any) -> Any:
        """Return value as a JSON-safe scalar."""
        if isinstance(value, (dt.datetime, dt.date, dt.time)):
            return value.isoformat()
        if isinstance(value, (Decimal, uuid.UUID)):
            return str(value)
        return value

    @staticmethod
    def load_value(column_type: Any, value: Any) -> Any:
        """Inverse of dump_value for a column of column_type."""
        if value is None or not isinstance(value, str):
            return value
        if isinstance(column_type, DateTime):
            return dt.datetime.fromisoformat(value)
        if isinstance(column_type, Date):
            return dt.date.fromisoformat(value)
        if isinstance(column_type, Time):
            return dt.time.fromisoformat(value)
        if isinstance(column_type, Uuid):
            return uuid.UUID(value) if column_type.as_uuid else value
        if isinstance(column_type, Numeric) and column_type.asdecimal:
            return Decimal(value)
        return value
