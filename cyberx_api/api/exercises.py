"""
Exercises API. Reads for any authenticated user; lifecycle changes for admins.
"""
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from cyberx_api.api.deps import get_current_principal, require_admin, visible_page
from cyberx_api.database import get_db
from cyberx_api.schemas.common import ItemResponse, MessageResponse, Page, Pagination, PaginationQuery, pagination_params
from cyberx_api.schemas.exercise import ExerciseCreateRequest, ExerciseResponse, ExerciseUpdateRequest
from cyberx_api.services.exercises import ExerciseService
from cyberx_api.services.rbac import Principal

router = APIRouter(prefix="/exercises", tags=["exercises"])


@router.get("", response_model=Page[ExerciseResponse])
def list_exercises(
    page: PaginationQuery = Depends(pagination_params),
    status_filter: Literal["active", "closed"] | None = Query(None, alias="status"),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    page = visible_page(page, principal)
    exercises, total = ExerciseService(db).list_exercises(page, status=status_filter)
    return Page[ExerciseResponse](
        data=[ExerciseResponse.model_validate(e) for e in exercises], pagination=Pagination.build(page, total)
    )


@router.post("", response_model=ItemResponse[ExerciseResponse], status_code=status.HTTP_201_CREATED)
def create_exercise(
    body: ExerciseCreateRequest,
    _admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    exercise = ExerciseService(db).create_exercise(body)
    return ItemResponse[ExerciseResponse](
        message="Exercise created successfully", data=ExerciseResponse.model_validate(exercise)
    )


@router.get("/{exercise_id}", response_model=ItemResponse[ExerciseResponse])
def get_exercise(
    exercise_id: UUID,
    include_deleted: bool = Query(False),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    exercise = ExerciseService(db).get_exercise(exercise_id, include_deleted=include_deleted and principal.is_admin)
    return ItemResponse[ExerciseResponse](data=ExerciseResponse.model_validate(exercise))


@router.put("/{exercise_id}", response_model=ItemResponse[ExerciseResponse])
def update_exercise(
    exercise_id: UUID,
    body: ExerciseUpdateRequest,
    _admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    exercise = ExerciseService(db).update_exercise(exercise_id, body)
    return ItemResponse[ExerciseResponse](
        message="Exercise updated successfully", data=ExerciseResponse.model_validate(exercise)
    )


@router.post("/{exercise_id}/activate", response_model=ItemResponse[ExerciseResponse])
def activate_exercise(exercise_id: UUID, _admin: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    exercise, changed = ExerciseService(db).activate_exercise(exercise_id)
    message = "Exercise activated successfully" if changed else "Exercise is already active"
    return ItemResponse[ExerciseResponse](message=message, data=ExerciseResponse.model_validate(exercise))


@router.post("/{exercise_id}/close", response_model=ItemResponse[ExerciseResponse])
def close_exercise(exercise_id: UUID, _admin: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    exercise, changed = ExerciseService(db).close_exercise(exercise_id)
    message = "Exercise closed successfully" if changed else "Exercise is already closed"
    return ItemResponse[ExerciseResponse](message=message, data=ExerciseResponse.model_validate(exercise))


@router.post("/{exercise_id}/restore", response_model=ItemResponse[ExerciseResponse])
def restore_exercise(exercise_id: UUID, _admin: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    exercise = ExerciseService(db).restore_exercise(exercise_id)
    return ItemResponse[ExerciseResponse](
        message="Exercise restored successfully", data=ExerciseResponse.model_validate(exercise)
    )


@router.delete("/{exercise_id}", response_model=MessageResponse)
def delete_exercise(
    exercise_id: UUID,
    permanent: bool = Query(False),
    _admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    ExerciseService(db).delete_exercise(exercise_id, permanent=permanent)
    return MessageResponse(message="Exercise permanently deleted" if permanent else "Exercise deleted successfully")
