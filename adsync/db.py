# adsync/db.py
"""Database handle and session utilities.

`Database` owns the SQLAlchemy engine and session factory for the lifetime
of the process. The app factory opens it at startup and disposes it on
shutdown; request handlers get sessions through `get_db`.
"""
from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker, declarative_base
from fastapi import Request
from .utils import logger, retry

Base = declarative_base()


class Database:
    def __init__(self, url=None, engine=None, pool_size=5, max_overflow=10):
        if engine is None:
            if not url:
                raise RuntimeError("Database URL not set")
            kwargs = {"pool_pre_ping": True}
            # tuned pool settings for cloud DB; sqlite uses its own pool
            if not url.startswith("sqlite"):
                kwargs.update(pool_size=pool_size, max_overflow=max_overflow)
            engine = create_engine(url, **kwargs)
        self.engine = engine
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    @classmethod
    def from_settings(cls, settings):
        return cls(
            settings.database_url,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
        )

    @retry(OperationalError, tries=5, delay=2, backoff=2)
    def create_schema(self):
        from . import models  # noqa: F401 ensure models are imported so tables are known
        Base.metadata.create_all(bind=self.engine)

    def session(self):
        return self.SessionLocal()

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.warning("Database ping failed: %s", e)
            return False

    def close(self):
        self.engine.dispose()


def get_db(request: Request):
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()
