"""
Users API. Admin-only management plus self-service read/update/password for the account owner.
  GET/POST /users, GET /users/stats, GET/PUT/DELETE /users/{id}, PATCH /users/{id}/password,
  POST /users/{id}/activate|deactivate|restore|lock|unlock,
  GET/POST /users/{id}/roles, PATCH/DELETE /users/{id}/roles/{role_id}
"""
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from cyberx_api.api.deps import can_modify_user, guard_self_update, require_admin
from cyberx_api.database import get_db
from cyberx_api.models.user import User
from cyberx_api.schemas.common import (
    ItemResponse,
    ItemsResponse,
    MessageResponse,
    Page,
    Pagination,
    PaginationQuery,
    pagination_params,
)
from cyberx_api.schemas.user import (
    AssignmentResponse,
    AssignmentUpdateRequest,
    LockUserRequest,
    PasswordChangeRequest,
    RoleAssignRequest,
    UserCreateRequest,
    UserResponse,
    UserStatistics,
    UserUpdateRequest,
)
from cyberx_api.services.assignments import AssignmentService
from cyberx_api.services.rbac import AccessDecision, Principal
from cyberx_api.services.users import UserService

router = APIRouter(prefix="/users", tags=["users"])


def _out(service: UserService, user: User) -> UserResponse:
    return UserResponse.model_validate(user).model_copy(update={"roles": service.roles_of(user)})


@router.get("", response_model=Page[UserResponse])
def list_users(
    page: PaginationQuery = Depends(pagination_params),
    is_active: bool | None = Query(None),
    exercise_id: UUID | None = Query(None),
    role_id: UUID | None = Query(None),
    _admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    service = UserService(db)
    users, total = service.list_users(page, is_active=is_active, exercise_id=exercise_id, role_id=role_id)
    return Page[UserResponse](data=[_out(service, u) for u in users], pagination=Pagination.build(page, total))


@router.get("/stats", response_model=ItemResponse[UserStatistics])
def user_statistics(_admin: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    return ItemResponse[UserStatistics](data=UserStatistics(**UserService(db).get_statistics()))


@router.post("", response_model=ItemResponse[UserResponse], status_code=status.HTTP_201_CREATED)
def create_user(
    body: UserCreateRequest,
    _admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    service = UserService(db)
    user = service.create_user(body)
    return ItemResponse[UserResponse](message="User created successfully", data=_out(service, user))


@router.get("/{user_id}", response_model=ItemResponse[UserResponse])
def get_user(
    user_id: UUID,
    include_deleted: bool = Query(False),
    access: AccessDecision = Depends(can_modify_user),
    db: Session = Depends(get_db),
):
    service = UserService(db)
    user = service.get_user(user_id, include_deleted=include_deleted and access.is_admin)
    return ItemResponse[UserResponse](data=_out(service, user))


@router.put("/{user_id}", response_model=ItemResponse[UserResponse])
def update_user(
    user_id: UUID,
    body: UserUpdateRequest,
    access: AccessDecision = Depends(guard_self_update),
    db: Session = Depends(get_db),
):
    """Owners may change name, email and password; is_active, exercise_id and lockout fields are admin-only."""
    service = UserService(db)
    user = service.update_user(user_id, body, actor_is_admin=access.is_admin)
    return ItemResponse[UserResponse](message="User updated successfully", data=_out(service, user))


@router.patch("/{user_id}/password", response_model=MessageResponse)
def change_password(
    user_id: UUID,
    body: PasswordChangeRequest,
    access: AccessDecision = Depends(can_modify_user),
    db: Session = Depends(get_db),
):
    """Changing your own password requires current_password. Also clears any lockout."""
    UserService(db).change_password(user_id, body, require_current=access.is_owner)
    return MessageResponse(message="Password changed successfully")


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: UUID,
    permanent: bool = Query(False),
    admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    UserService(db).delete_user(user_id, permanent=permanent, actor_id=admin.id)
    return MessageResponse(message="User permanently deleted" if permanent else "User deleted successfully")


@router.post("/{user_id}/activate", response_model=ItemResponse[UserResponse])
def activate_user(user_id: UUID, _admin: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    service = UserService(db)
    user, changed = service.activate_user(user_id)
    message = "User activated successfully" if changed else "User is already active"
    return ItemResponse[UserResponse](message=message, data=_out(service, user))


@router.post("/{user_id}/deactivate", response_model=ItemResponse[UserResponse])
def deactivate_user(user_id: UUID, admin: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    service = UserService(db)
    user, changed = service.deactivate_user(user_id, actor_id=admin.id)
    message = "User deactivated successfully" if changed else "User is already inactive"
    return ItemResponse[UserResponse](message=message, data=_out(service, user))


@router.post("/{user_id}/restore", response_model=ItemResponse[UserResponse])
def restore_user(user_id: UUID, _admin: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    service = UserService(db)
    user = service.restore_user(user_id)
    return ItemResponse[UserResponse](message="User restored successfully", data=_out(service, user))


@router.post("/{user_id}/lock", response_model=ItemResponse[UserResponse])
def lock_user(
    user_id: UUID,
    body: LockUserRequest | None = None,
    _admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    service = UserService(db)
    user = service.lock_user(user_id, (body or LockUserRequest()).minutes)
    return ItemResponse[UserResponse](message="User locked successfully", data=_out(service, user))


@router.post("/{user_id}/unlock", response_model=ItemResponse[UserResponse])
def unlock_user(user_id: UUID, _admin: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    service = UserService(db)
    user = service.unlock_user(user_id)
    return ItemResponse[UserResponse](message="User unlocked successfully", data=_out(service, user))


@router.get("/{user_id}/roles", response_model=ItemsResponse[AssignmentResponse])
def list_user_roles(
    user_id: UUID,
    include_inactive: bool = Query(False),
    _access: AccessDecision = Depends(can_modify_user),
    db: Session = Depends(get_db),
):
    assignments = AssignmentService(db).list_user_roles(user_id, include_inactive=include_inactive)
    data = [AssignmentResponse.from_assignment(a) for a in assignments]
    return ItemsResponse[AssignmentResponse](data=data, count=len(data))


@router.post(
    "/{user_id}/roles",
    response_model=ItemResponse[AssignmentResponse],
    status_code=status.HTTP_201_CREATED,
)
def assign_role(
    user_id: UUID,
    body: RoleAssignRequest,
    admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    assignment = AssignmentService(db).assign_role(
        user_id, body.role_id, assigned_by=admin.id, expires_at=body.expires_at, notes=body.notes
    )
    return ItemResponse[AssignmentResponse](
        message="Role assigned successfully", data=AssignmentResponse.from_assignment(assignment)
    )


@router.patch("/{user_id}/roles/{role_id}", response_model=ItemResponse[AssignmentResponse])
def update_assignment(
    user_id: UUID,
    role_id: UUID,
    body: AssignmentUpdateRequest,
    _admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    assignment = AssignmentService(db).update_assignment(user_id, role_id, body)
    return ItemResponse[AssignmentResponse](
        message="Assignment updated successfully", data=AssignmentResponse.from_assignment(assignment)
    )


@router.delete("/{user_id}/roles/{role_id}", response_model=MessageResponse)
def revoke_role(
    user_id: UUID,
    role_id: UUID,
    _admin: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    AssignmentService(db).revoke_role(user_id, role_id)
    return MessageResponse(message="Role revoked successfully")
