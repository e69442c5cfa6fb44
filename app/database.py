"""
Database engine + session factory.

Always initializes: defaults to SQLite for local dev, Postgres in production.
get_session() always returns a real session.
"""
import importlib

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from app.config import DATABASE_URL


class Base(DeclarativeBase):
    pass


# Hosted Postgres URLs use postgres:// but SQLAlchemy 2.x requires postgresql://
url = DATABASE_URL.replace('postgres://', 'postgresql://', 1)

# SQLite needs different engine kwargs than Postgres
if url.startswith('sqlite'):
    engine = create_engine(url, connect_args={'check_same_thread': False})
else:
    engine = create_engine(url, pool_pre_ping=True, pool_size=5, max_overflow=10)

SessionLocal = sessionmaker(bind=engine)

MODEL_MODULES = [
    'app.models.contact_submission',
    'app.models.lead_score',
    'app.models.followup',
    'app.models.agent_interaction',
    'app.models.conversation',
]


def import_models():
    """Import every model module so Base.metadata knows about all tables."""
    for name in MODEL_MODULES:
        importlib.import_module(name)


def get_session():
    """Return a new DB session."""
    return SessionLocal()


def init_db(bind=None):
    """Create all tables. Used for local SQLite; Postgres schema is managed by Alembic."""
    import_models()
    Base.metadata.create_all(bind or engine)
