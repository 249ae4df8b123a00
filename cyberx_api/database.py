"""
Engine, session factory and declarative Base. PostgreSQL in deployment, SQLite for tests and
local runs. One session per request via get_db; repositories own commits.
"""
import logging
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base

from cyberx_api.config import settings

logger = logging.getLogger(__name__)

# Roles that must always exist; reserved names cannot be created through the API.
SYSTEM_ROLES = (
    ("admin", "Administrator with full access"),
    ("super_admin", "Super administrator"),
)

_is_sqlite = "sqlite" in settings.database_url
_connect_args = {"check_same_thread": False} if _is_sqlite else {}
engine = create_engine(
    settings.database_url,
    pool_pre_ping=not _is_sqlite,
    connect_args=_connect_args,
    echo=False,  # Set True for SQL logging during development
)

if _is_sqlite:
    @event.listens_for(engine, "connect")
    def _sqlite_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def seed_system_roles(db) -> int:
    """Create the protected roles if missing. Returns number of roles created."""
    from cyberx_api.models.role import Role

    created = 0
    for name, description in SYSTEM_ROLES:
        exists = db.query(Role).filter(Role.name == name).first()
        if exists is None:
            db.add(Role(name=name, description=description, is_active=True))
            created += 1
    if created:
        db.commit()
        logger.info("Seeded %s system role(s)", created)
    return created


def init_db():
    """When using SQLite: create tables and seed system roles. Call once at app startup.
    PostgreSQL schemas are managed by Alembic (alembic upgrade head)."""
    if not _is_sqlite:
        return
    # Import all models so they register with Base before create_all
    from cyberx_api.models import user, role, user_role, task, role_task, exercise  # noqa: F401
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_system_roles(db)
    finally:
        db.close()


def get_db():
    """Dependency: yield a DB session, close after request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
