"""
Task persistence and role/task links.
"""
from uuid import UUID

from sqlalchemy import or_

from cyberx_api.models.role_task import RoleTask
from cyberx_api.models.task import Task
from cyberx_api.repositories.base import SoftDeleteRepository
from cyberx_api.schemas.common import PaginationQuery


class TaskRepository(SoftDeleteRepository[Task]):
    model = Task

    def find_page(self, page: PaginationQuery, *, role_id: UUID | None = None) -> tuple[list[Task], int]:
        q = self.query(page.include_deleted)
        if page.search:
            pattern = f"%{page.search}%"
            q = q.filter(or_(Task.title.ilike(pattern), Task.description.ilike(pattern)))
        if role_id is not None:
            q = q.filter(Task.id.in_(self.db.query(RoleTask.task_id).filter(RoleTask.role_id == role_id)))
        return self.paginate(q, page, Task.created_at.desc(), Task.title)

    def for_role(self, role_id: UUID) -> list[Task]:
        return (
            self.query()
            .join(RoleTask, RoleTask.task_id == Task.id)
            .filter(RoleTask.role_id == role_id)
            .order_by(Task.title)
            .all()
        )

    def get_link(self, task_id: UUID, role_id: UUID) -> RoleTask | None:
        return (
            self.db.query(RoleTask)
            .filter(RoleTask.task_id == task_id, RoleTask.role_id == role_id)
            .first()
        )

    def add_link(self, task_id: UUID, role_id: UUID) -> RoleTask:
        link = RoleTask(task_id=task_id, role_id=role_id)
        self.db.add(link)
        self.commit()
        return link

    def remove_link(self, link: RoleTask) -> None:
        self.db.delete(link)
        self.commit()
