"""Base repository shared by every table-specific repository."""

from typing import Any, Generic, TypeVar

from sqlalchemy.orm import Query, Session

from badge_core.db import Base

T = TypeVar("T", bound=Base)


class BaseRepository(Generic[T]):
    """
    Thin wrapper over a session for one mapped class.

    Repositories flush but never commit; the caller owns the transaction.

    Usage:
        class BadgeRepository(BaseRepository[Badge]):
            model = Badge

        badge = BadgeRepository(session).get_by_id(1)
    """

    model: type[T]

    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, id: int) -> T | None:
        return self.session.get(self.model, id)

    def create(self, **fields: Any) -> T:
        """Add a row and flush so its primary key is assigned."""
        instance = self.model(**fields)
        self.session.add(instance)
        self.session.flush()
        return instance

    def exists_where(self, **filters: Any) -> bool:
        return bool(self.session.query(self._filtered(**filters).exists()).scalar())

    def _filtered(self, **filters: Any) -> Query:
        query = self.session.query(self.model)
        for column, value in filters.items():
            query = query.filter(getattr(self.model, column) == value)
        return query
