from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Optional, Protocol, TypeVar

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

M = TypeVar("M")


@dataclass
class UpsertResult:
    row: Any
    created: bool


class ContentStore(Protocol):
    """Find/insert/update/delete primitives the seeders write through.

    Keys and criteria are plain column equality filters, e.g.
    ``find_by_key(Course, slug="python-desde-cero")``.
    """

    def find_by_key(self, model: type[M], **key: Any) -> Optional[M]: ...

    def find_all(self, model: type[M], order_by: Optional[str] = None, **criteria: Any) -> list[M]: ...

    def insert(self, model: type[M], **values: Any) -> M: ...

    def update(self, row: M, **values: Any) -> M: ...

    def upsert(
        self,
        model: type[M],
        key: dict[str, Any],
        values: dict[str, Any],
        create_values: Optional[dict[str, Any]] = None,
    ) -> UpsertResult: ...

    def delete_children_of(self, model: type, **parent_key: Any) -> int: ...

    def count(self, model: type, **criteria: Any) -> int: ...

    def attach(self, row: Any, relation: str, items: Iterable[Any]) -> int: ...


def _where(model: type, criteria: dict[str, Any]) -> list:
    return [getattr(model, column) == value for column, value in criteria.items()]


class SqlAlchemyStore:
    """ContentStore backed by a SQLAlchemy session.

    Writes are flushed but never committed; the caller owns the transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    def find_by_key(self, model: type[M], **key: Any) -> Optional[M]:
        """Get the single row matching the natural key, or None."""
        return self.db.execute(select(model).where(*_where(model, key))).scalar_one_or_none()

    def find_all(self, model: type[M], order_by: Optional[str] = None, **criteria: Any) -> list[M]:
        """List rows matching the criteria, optionally ordered by one column."""
        query = select(model).where(*_where(model, criteria))
        if order_by:
            query = query.order_by(getattr(model, order_by).asc())
        return list(self.db.execute(query).scalars().all())

    def insert(self, model: type[M], **values: Any) -> M:
        """Create a new row."""
        row = model(**values)
        self.db.add(row)
        self.db.flush()
        return row

    def update(self, row: M, **values: Any) -> M:
        """Update row fields in place.

        Raises AttributeError for a name the model does not map.
        """
        for key, value in values.items():
            if not hasattr(type(row), key):
                raise AttributeError(f"{type(row).__name__} has no attribute '{key}'")
            setattr(row, key, value)
        self.db.flush()
        return row

    def upsert(
        self,
        model: type[M],
        key: dict[str, Any],
        values: dict[str, Any],
        create_values: Optional[dict[str, Any]] = None,
    ) -> UpsertResult:
        """Update the row matching ``key`` or insert it.

        ``create_values`` are written only on insert.
        """
        row = self.find_by_key(model, **key)
        if row is not None:
            return UpsertResult(self.update(row, **values), created=False)
        return UpsertResult(
            self.insert(model, **key, **values, **(create_values or {})),
            created=True,
        )

    def delete_children_of(self, model: type, **parent_key: Any) -> int:
        """Delete every row of ``model`` that belongs to the given parent."""
        result = self.db.execute(
            delete(model)
            .where(*_where(model, parent_key))
            .execution_options(synchronize_session="fetch")
        )
        self.db.flush()
        return result.rowcount or 0

    def count(self, model: type, **criteria: Any) -> int:
        """Count rows matching the criteria."""
        query = select(func.count()).select_from(model).where(*_where(model, criteria))
        return self.db.execute(query).scalar_one()

    def attach(self, row: Any, relation: str, items: Iterable[Any]) -> int:
        """Add items to a many-to-many relation without detaching existing ones."""
        collection = getattr(row, relation)
        attached = 0
        for item in items:
            if item not in collection:
                collection.append(item)
                attached += 1
        self.db.flush()
        return attached
