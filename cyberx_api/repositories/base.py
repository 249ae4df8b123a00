"""
Persistence helpers shared by the entity repositories. Repositories own transactions:
every mutating method commits before returning.
"""
from datetime import datetime
from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session

from cyberx_api.models.types import utcnow
from cyberx_api.schemas.common import PaginationQuery

M = TypeVar("M")


class SoftDeleteRepository(Generic[M]):
    """CRUD for a model with id and deleted_at columns. Reads exclude soft-deleted rows unless asked."""

    model: type[M]

    def __init__(self, db: Session):
        self.db = db

    def query(self, include_deleted: bool = False) -> Query:
        q = self.db.query(self.model)
        if not include_deleted:
            q = q.filter(self.model.deleted_at.is_(None))
        return q

    def find_by_id(self, entity_id: UUID, include_deleted: bool = False) -> M | None:
        return self.query(include_deleted).filter(self.model.id == entity_id).first()

    def exists(self, entity_id: UUID, include_deleted: bool = False) -> bool:
        return self.find_by_id(entity_id, include_deleted) is not None

    def commit(self) -> None:
        """Commit; on a constraint violation roll back so the session stays usable, then re-raise."""
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise

    def create(self, **values: Any) -> M:
        obj = self.model(**values)
        self.db.add(obj)
        self.commit()
        self.db.refresh(obj)
        return obj

    def update(self, obj: M, values: dict[str, Any]) -> M:
        for key, value in values.items():
            setattr(obj, key, value)
        self.commit()
        self.db.refresh(obj)
        return obj

    def soft_delete(self, obj: M, now: datetime | None = None) -> M:
        return self.update(obj, {"deleted_at": now or utcnow()})

    def restore(self, obj: M) -> M:
        return self.update(obj, {"deleted_at": None})

    def delete_permanently(self, obj: M) -> None:
        self.db.delete(obj)
        self.commit()

    def paginate(self, q: Query, page: PaginationQuery, *order_by) -> tuple[list[M], int]:
        """Apply ordering and page window; returns (items, total matching rows)."""
        total = q.order_by(None).count()
        items = q.order_by(*order_by).offset(page.offset).limit(page.limit).all()
        return items, total
