from __future__ import annotations

import enum
from collections.abc import Iterable
from typing import Any

from sqlalchemy.orm import DeclarativeBase, declared_attr


class Base(DeclarativeBase):
    @declared_attr.directive
    def __tablename__(cls) -> str:  # type: ignore
        return cls.__name__.lower()

    def dict(self, exclude: Iterable[str] = ()) -> dict[str, Any]:
        """Column values keyed by attribute name; enums are flattened to their values."""
        skip = set(exclude)
        out: dict[str, Any] = {}
        for column in self.__table__.columns:
            if column.key in skip:
                continue
            value = getattr(self, column.key)
            out[column.key] = value.value if isinstance(value, enum.Enum) else value
        return out
