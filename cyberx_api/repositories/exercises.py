"""
Exercise persistence.
"""
from cyberx_api.models.exercise import Exercise
from cyberx_api.repositories.base import SoftDeleteRepository
from cyberx_api.schemas.common import PaginationQuery


class ExerciseRepository(SoftDeleteRepository[Exercise]):
    model = Exercise

    def find_page(self, page: PaginationQuery, *, status: str | None = None) -> tuple[list[Exercise], int]:
        q = self.query(page.include_deleted)
        if page.search:
            q = q.filter(Exercise.name.ilike(f"%{page.search}%"))
        if status is not None:
            q = q.filter(Exercise.status == status)
        return self.paginate(q, page, Exercise.start_date.desc(), Exercise.name)
