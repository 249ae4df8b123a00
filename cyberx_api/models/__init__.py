"""
SQLAlchemy models. Import here so Alembic and app can use them.
"""
from cyberx_api.models.exercise import Exercise
from cyberx_api.models.user import User
from cyberx_api.models.role import Role
from cyberx_api.models.user_role import UserRole
from cyberx_api.models.task import Task
from cyberx_api.models.role_task import RoleTask

__all__ = ["Exercise", "User", "Role", "UserRole", "Task", "RoleTask"]
