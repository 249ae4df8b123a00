"""
Task management and task <-> role links.
"""
import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cyberx_api.errors import ConflictError, NotFoundError, ValidationError
from cyberx_api.models.role import Role
from cyberx_api.models.task import Task
from cyberx_api.repositories.roles import RoleRepository
from cyberx_api.repositories.tasks import TaskRepository
from cyberx_api.schemas.common import PaginationQuery
from cyberx_api.schemas.task import TaskCreateRequest, TaskUpdateRequest

logger = logging.getLogger(__name__)


class TaskService:
    def __init__(self, db: Session):
        self.tasks = TaskRepository(db)
        self.roles = RoleRepository(db)

    def _require(self, task_id: UUID, include_deleted: bool = False) -> Task:
        task = self.tasks.find_by_id(task_id, include_deleted)
        if task is None:
            raise NotFoundError("Task not found")
        return task

    def _require_role(self, role_id: UUID) -> Role:
        role = self.roles.find_by_id(role_id)
        if role is None:
            raise NotFoundError("Role not found")
        return role

    def list_tasks(self, page: PaginationQuery, *, role_id: UUID | None = None) -> tuple[list[Task], int]:
        return self.tasks.find_page(page, role_id=role_id)

    def search_tasks(self, term: str, page: PaginationQuery) -> tuple[list[Task], int]:
        term = (term or "").strip()
        if len(term) < 2:
            raise ValidationError("Search term must be at least 2 characters", extra={"field": "q"})
        return self.tasks.find_page(page.model_copy(update={"search": term}))

    def tasks_for_role(self, role_id: UUID) -> list[Task]:
        self._require_role(role_id)
        return self.tasks.for_role(role_id)

    def create_task(self, data: TaskCreateRequest) -> Task:
        task = self.tasks.create(title=data.title, description=data.description)
        logger.info("Task created: %s", task.id)
        return task

    def get_task(self, task_id: UUID, include_deleted: bool = False) -> Task:
        return self._require(task_id, include_deleted)

    def update_task(self, task_id: UUID, data: TaskUpdateRequest) -> Task:
        task = self._require(task_id)
        values = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
        if not values:
            return task
        return self.tasks.update(task, values)

    def delete_task(self, task_id: UUID, *, permanent: bool = False) -> None:
        if permanent:
            # role_tasks links are removed with the task.
            self.tasks.delete_permanently(self._require(task_id, include_deleted=True))
            logger.info("Task permanently deleted: %s", task_id)
            return
        self.tasks.soft_delete(self._require(task_id))
        logger.info("Task soft-deleted: %s", task_id)

    def restore_task(self, task_id: UUID) -> Task:
        task = self._require(task_id, include_deleted=True)
        if not task.is_deleted:
            raise ValidationError("Task is not deleted")
        return self.tasks.restore(task)

    def assign_to_role(self, task_id: UUID, role_id: UUID) -> None:
        self._require(task_id)
        self._require_role(role_id)
        if self.tasks.get_link(task_id, role_id) is not None:
            raise ConflictError("Task already assigned to this role")
        try:
            self.tasks.add_link(task_id, role_id)
        except IntegrityError as e:
            raise ConflictError("Task already assigned to this role") from e
        logger.info("Task %s assigned to role %s", task_id, role_id)

    def unassign_from_role(self, task_id: UUID, role_id: UUID) -> None:
        link = self.tasks.get_link(task_id, role_id)
        if link is None:
            raise NotFoundError("Task is not assigned to this role")
        self.tasks.remove_link(link)
        logger.info("Task %s unassigned from role %s", task_id, role_id)
