import importlib

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from inventory_api.config import settings
from inventory_api.utils.logging import get_logger

log = get_logger("db")

DATABASE_URL = settings.DATABASE_URL


def _engine_options(url: str) -> dict:
    """
    SQLite keeps SQLAlchemy's default pool; it only needs connections that can
    cross the threads FastAPI serves sync endpoints from. Server databases get
    a bounded QueuePool sized from settings.
    """
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
        "pool_pre_ping": True,
    }


engine = create_engine(DATABASE_URL, future=True, echo=False, **_engine_options(DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

# Every module defining a table; imported by init_db so metadata is complete.
MODEL_MODULES = [
    "inventory_api.models.category",
    "inventory_api.models.supplier",
    "inventory_api.models.product",
    "inventory_api.models.audit",
]


def init_db(reset: bool = False):
    """
    Initialize DB schema.

    Imports every model module so the metadata is populated, then creates the
    tables. With reset=True (or RESET_DB set) existing tables are dropped first.
    """
    for mod in MODEL_MODULES:
        importlib.import_module(mod)

    if reset or settings.RESET_DB:
        log.info("Resetting database tables")
        Base.metadata.drop_all(bind=engine)

    Base.metadata.create_all(bind=engine)
    log.info("Database initialized (%s)", engine.url.render_as_string(hide_password=True))


def dispose_db():
    """Release every pooled connection. Called once at shutdown."""
    engine.dispose()
    log.info("Database connection pool disposed")

