"""
Roles API. Any authenticated user may read roles; mutations and membership views are admin-only.
"""
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from cyberx_api.api.deps import get_current_principal, require_admin
from cyberx_api.database import get_db
from cyberx_api.schemas.common import (
    ItemResponse,
    ItemsResponse,
    MessageResponse,
    Page,
    Pagination,
    PaginationQuery,
    pagination_params,
)
from cyberx_api.schemas.role import (
    BulkAssignRequest,
    BulkAssignResult,
    RoleCreateRequest,
    RoleResponse,
    RoleStatistics,
    RoleUpdateRequest,
)
from cyberx_api.schemas.task import TaskResponse
from cyberx_api.schemas.user import AssignmentResponse
from cyberx_api.services.assignments import AssignmentService
from cyberx_api.services.rbac import Principal
from cyberx_api.services.roles import RoleService
from cyberx_api.services.tasks import TaskService

router = APIRouter(prefix="/roles", tags=["roles"])


@router.get("", response_model=ItemsResponse[RoleResponse])
def list_roles(
    include_inactive: bool = Query(False),
    include_deleted: bool = Query(False),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    roles = RoleService(db).list_roles(
        include_inactive=include_inactive,
        include_deleted=include_deleted and principal.is_admin,
    )
    return ItemsResponse[RoleResponse](data=[RoleResponse.model_validate(r) for r in roles], count=len(roles))


@router.get("/stats", response_model=ItemResponse[RoleStatistics])
def role_statistics(_admin: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    return ItemResponse[RoleStatistics](data=RoleStatistics(**RoleService(db).get_statistics()))


@router.get("/assignments", response_model=Page[AssignmentResponse])
def list_assignments(
    page: PaginationQuery = Depends(pagination_params),
    user_id: UUID | None = Query(None),
    role_id: UUID | None = Query(None),
    is_active: bool | None = Query(None),
    include_expired: bool = Query(False),
    _admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    items, total = AssignmentService(db).list_assignments(
        page, user_id=user_id, role_id=role_id, is_active=is_active, include_expired=include_expired
    )
    return Page[AssignmentResponse](
        data=[AssignmentResponse.from_assignment(a) for a in items],
        pagination=Pagination.build(page, total),
    )


@router.get("/by-name/{role_name}/users", response_model=ItemsResponse[AssignmentResponse])
def list_role_users_by_name(
    role_name: str,
    include_inactive: bool = Query(False),
    _admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    assignments = AssignmentService(db).list_role_users_by_name(role_name, include_inactive=include_inactive)
    data = [AssignmentResponse.from_assignment(a) for a in assignments]
    return ItemsResponse[AssignmentResponse](data=data, count=len(data))


@router.post("", response_model=ItemResponse[RoleResponse], status_code=status.HTTP_201_CREATED)
def create_role(body: RoleCreateRequest, _admin: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    role = RoleService(db).create_role(body)
    return ItemResponse[RoleResponse](message="Role created successfully", data=RoleResponse.model_validate(role))


@router.get("/{role_id}", response_model=ItemResponse[RoleResponse])
def get_role(
    role_id: UUID,
    principal: Principal = Depends(get_current_principal),
    include_deleted: bool = Query(False),
    db: Session = Depends(get_db),
):
    role = RoleService(db).get_role(role_id, include_deleted=include_deleted and principal.is_admin)
    return ItemResponse[RoleResponse](data=RoleResponse.model_validate(role))


@router.put("/{role_id}", response_model=ItemResponse[RoleResponse])
def update_role(
    role_id: UUID,
    body: RoleUpdateRequest,
    _admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    role = RoleService(db).update_role(role_id, body)
    return ItemResponse[RoleResponse](message="Role updated successfully", data=RoleResponse.model_validate(role))


@router.post("/{role_id}/activate", response_model=ItemResponse[RoleResponse])
def activate_role(role_id: UUID, _admin: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    role, changed = RoleService(db).activate_role(role_id)
    message = "Role activated successfully" if changed else "Role is already active"
    return ItemResponse[RoleResponse](message=message, data=RoleResponse.model_validate(role))


@router.post("/{role_id}/deactivate", response_model=ItemResponse[RoleResponse])
def deactivate_role(role_id: UUID, _admin: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    role, changed = RoleService(db).deactivate_role(role_id)
    message = "Role deactivated successfully" if changed else "Role is already inactive"
    return ItemResponse[RoleResponse](message=message, data=RoleResponse.model_validate(role))


@router.post("/{role_id}/restore", response_model=ItemResponse[RoleResponse])
def restore_role(role_id: UUID, _admin: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    role = RoleService(db).restore_role(role_id)
    return ItemResponse[RoleResponse](message="Role restored successfully", data=RoleResponse.model_validate(role))


@router.delete("/{role_id}", response_model=MessageResponse)
def delete_role(
    role_id: UUID,
    permanent: bool = Query(False),
    _admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    RoleService(db).delete_role(role_id, permanent=permanent)
    return MessageResponse(message="Role permanently deleted" if permanent else "Role deleted successfully")


@router.get("/{role_id}/users", response_model=ItemsResponse[AssignmentResponse])
def list_role_users(
    role_id: UUID,
    include_inactive: bool = Query(False),
    _admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    assignments = AssignmentService(db).list_role_users(role_id, include_inactive=include_inactive)
    data = [AssignmentResponse.from_assignment(a) for a in assignments]
    return ItemsResponse[AssignmentResponse](data=data, count=len(data))


@router.post("/{role_id}/users", response_model=ItemResponse[BulkAssignResult])
def assign_role_to_users(
    role_id: UUID,
    body: BulkAssignRequest,
    admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Assign the role to several users. Users that cannot receive it are reported in failed."""
    assigned, failed = AssignmentService(db).assign_role_to_users(
        role_id, body.user_ids, assigned_by=admin.id, expires_at=body.expires_at, notes=body.notes
    )
    return ItemResponse[BulkAssignResult](
        message=f"Role assigned to {len(assigned)} user(s)",
        data=BulkAssignResult(assigned=assigned, failed=failed),
    )


@router.get("/{role_id}/tasks", response_model=ItemsResponse[TaskResponse])
def list_role_tasks(role_id: UUID, _admin: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    tasks = TaskService(db).tasks_for_role(role_id)
    return ItemsResponse[TaskResponse](data=[TaskResponse.model_validate(t) for t in tasks], count=len(tasks))
