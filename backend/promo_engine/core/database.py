from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from promo_engine.core.config import settings

engine = create_engine(
    settings.APP_DATABASE_DSN,
    echo=settings.DEBUG,
    connect_args=({"check_same_thread": False} if "sqlite" in settings.APP_DATABASE_DSN else {}),
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base: Any = declarative_base()


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()



def init_db() -> None:
    """Create every promotion table that does not exist yet."""
    import promo_engine.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
