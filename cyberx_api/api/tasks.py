"""
Tasks API. Reads for any authenticated user; create/update/delete and role links for admins.
"""
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from cyberx_api.api.deps import get_current_principal, require_admin, visible_page
from cyberx_api.database import get_db
from cyberx_api.schemas.common import ItemResponse, MessageResponse, Page, Pagination, PaginationQuery, pagination_params
from cyberx_api.schemas.task import TaskAssignRequest, TaskCreateRequest, TaskResponse, TaskUpdateRequest
from cyberx_api.services.rbac import Principal
from cyberx_api.services.tasks import TaskService

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.get("", response_model=Page[TaskResponse])
def list_tasks(
    page: PaginationQuery = Depends(pagination_params),
    role_id: UUID | None = Query(None),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    page = visible_page(page, principal)
    tasks, total = TaskService(db).list_tasks(page, role_id=role_id)
    return Page[TaskResponse](
        data=[TaskResponse.model_validate(t) for t in tasks], pagination=Pagination.build(page, total)
    )


@router.get("/search", response_model=Page[TaskResponse])
def search_tasks(
    q: str = Query(..., max_length=100),
    page: PaginationQuery = Depends(pagination_params),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Case-insensitive match on title or description (at least 2 characters)."""
    page = visible_page(page, principal)
    tasks, total = TaskService(db).search_tasks(q, page)
    return Page[TaskResponse](
        data=[TaskResponse.model_validate(t) for t in tasks], pagination=Pagination.build(page, total)
    )


@router.post("", response_model=ItemResponse[TaskResponse], status_code=status.HTTP_201_CREATED)
def create_task(body: TaskCreateRequest, _admin: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    task = TaskService(db).create_task(body)
    return ItemResponse[TaskResponse](message="Task created successfully", data=TaskResponse.model_validate(task))


@router.get("/{task_id}", response_model=ItemResponse[TaskResponse])
def get_task(
    task_id: UUID,
    include_deleted: bool = Query(False),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    task = TaskService(db).get_task(task_id, include_deleted=include_deleted and principal.is_admin)
    return ItemResponse[TaskResponse](data=TaskResponse.model_validate(task))


@router.put("/{task_id}", response_model=ItemResponse[TaskResponse])
def update_task(
    task_id: UUID,
    body: TaskUpdateRequest,
    _admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    task = TaskService(db).update_task(task_id, body)
    return ItemResponse[TaskResponse](message="Task updated successfully", data=TaskResponse.model_validate(task))


@router.delete("/{task_id}", response_model=MessageResponse)
def delete_task(
    task_id: UUID,
    permanent: bool = Query(False),
    _admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    TaskService(db).delete_task(task_id, permanent=permanent)
    return MessageResponse(message="Task permanently deleted" if permanent else "Task deleted successfully")


@router.post("/{task_id}/restore", response_model=ItemResponse[TaskResponse])
def restore_task(task_id: UUID, _admin: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    task = TaskService(db).restore_task(task_id)
    return ItemResponse[TaskResponse](message="Task restored successfully", data=TaskResponse.model_validate(task))


@router.post("/{task_id}/assign", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def assign_task(
    task_id: UUID,
    body: TaskAssignRequest,
    _admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    TaskService(db).assign_to_role(task_id, body.role_id)
    return MessageResponse(message="Task assigned to role successfully")


@router.delete("/{task_id}/assign/{role_id}", response_model=MessageResponse)
def unassign_task(
    task_id: UUID,
    role_id: UUID,
    _admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    TaskService(db).unassign_from_role(task_id, role_id)
    return MessageResponse(message="Task unassigned from role successfully")
