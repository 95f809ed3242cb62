import functools

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from crm_whatsapp.persistence.models import CrmBase
from crm_whatsapp.settings import get_settings


@functools.lru_cache()
def get_engine():
    """
    Get SQLAlchemy engine (cached).

    The engine is created lazily from DATABASE_URL in settings.
    """
    settings = get_settings()
    return create_engine(settings.DATABASE_URL, pool_pre_ping=True, echo=False)


@functools.lru_cache()
def get_sessionmaker():
    """Get SQLAlchemy sessionmaker (cached)."""
    engine = get_engine()
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """
    Yield a database session and close it after use.
    """
    SessionLocal = get_sessionmaker()
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create the CRM tables if they do not exist."""
    CrmBase.metadata.create_all(bind=get_engine())
