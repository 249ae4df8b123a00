"""
Repositories: pure persistence over the SQLAlchemy models. One instance per request session.
"""
from cyberx_api.repositories.assignments import AssignmentRepository
from cyberx_api.repositories.exercises import ExerciseRepository
from cyberx_api.repositories.roles import RoleRepository
from cyberx_api.repositories.tasks import TaskRepository
from cyberx_api.repositories.users import UserRepository

__all__ = [
    "AssignmentRepository",
    "ExerciseRepository",
    "RoleRepository",
    "TaskRepository",
    "UserRepository",
]
