"""
Exercise management. end_date must stay after start_date, including on partial updates.
"""
import logging
from uuid import UUID

from sqlalchemy.orm import Session

from cyberx_api.errors import NotFoundError, ValidationError
from cyberx_api.models.exercise import Exercise
from cyberx_api.repositories.exercises import ExerciseRepository
from cyberx_api.schemas.common import PaginationQuery
from cyberx_api.schemas.exercise import ExerciseCreateRequest, ExerciseUpdateRequest

logger = logging.getLogger(__name__)


class ExerciseService:
    def __init__(self, db: Session):
        self.exercises = ExerciseRepository(db)

    def _require(self, exercise_id: UUID, include_deleted: bool = False) -> Exercise:
        exercise = self.exercises.find_by_id(exercise_id, include_deleted)
        if exercise is None:
            raise NotFoundError("Exercise not found")
        return exercise

    def list_exercises(self, page: PaginationQuery, *, status: str | None = None) -> tuple[list[Exercise], int]:
        return self.exercises.find_page(page, status=status)

    def create_exercise(self, data: ExerciseCreateRequest) -> Exercise:
        exercise = self.exercises.create(**data.model_dump())
        logger.info("Exercise created: %s", exercise.id)
        return exercise

    def get_exercise(self, exercise_id: UUID, include_deleted: bool = False) -> Exercise:
        return self._require(exercise_id, include_deleted)

    def update_exercise(self, exercise_id: UUID, data: ExerciseUpdateRequest) -> Exercise:
        exercise = self._require(exercise_id)
        values = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
        start = values.get("start_date", exercise.start_date)
        end = values.get("end_date", exercise.end_date)
        if end <= start:
            raise ValidationError("end_date must be after start_date", extra={"field": "end_date"})
        if not values:
            return exercise
        return self.exercises.update(exercise, values)

    def _set_status(self, exercise_id: UUID, status: str) -> tuple[Exercise, bool]:
        exercise = self._require(exercise_id)
        if exercise.status == status:
            return exercise, False
        exercise = self.exercises.update(exercise, {"status": status})
        logger.info("Exercise %s status -> %s", exercise.id, status)
        return exercise, True

    def activate_exercise(self, exercise_id: UUID) -> tuple[Exercise, bool]:
        return self._set_status(exercise_id, "active")

    def close_exercise(self, exercise_id: UUID) -> tuple[Exercise, bool]:
        return self._set_status(exercise_id, "closed")

    def delete_exercise(self, exercise_id: UUID, *, permanent: bool = False) -> None:
        if permanent:
            # Members keep their accounts; users.exercise_id is nulled.
            self.exercises.delete_permanently(self._require(exercise_id, include_deleted=True))
            logger.info("Exercise permanently deleted: %s", exercise_id)
            return
        self.exercises.soft_delete(self._require(exercise_id))
        logger.info("Exercise soft-deleted: %s", exercise_id)

    def restore_exercise(self, exercise_id: UUID) -> Exercise:
        exercise = self._require(exercise_id, include_deleted=True)
        if not exercise.is_deleted:
            raise ValidationError("Exercise is not deleted")
        return self.exercises.restore(exercise)
