"""
Database connection and session management.
"""

from contextlib import contextmanager
from typing import ContextManager, Generator, Optional

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from brief_aggregation.config import DatabaseConfig, get_config
from brief_aggregation.logger import get_logger
from brief_aggregation.models import Base
from brief_aggregation.storage.dialects import get_dialect

logger = get_logger(__name__)

# Global engine and session factory
_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def _build_engine(db_config: DatabaseConfig) -> Engine:
    dialect = get_dialect(db_config.type)

    problems = dialect.validate_config(db_config)
    if problems:
        raise ValueError("; ".join(problems))

    engine = create_engine(dialect.build_url(db_config), **dialect.get_engine_kwargs(db_config))
    dialect.setup_engine_events(engine)
    return engine


def get_engine() -> Engine:
    """Get or create the process-wide database engine.

    Returns:
        SQLAlchemy Engine instance
    """
    global _engine

    if _engine is None:
        _engine = _build_engine(get_config().database)

    return _engine


def get_session_factory() -> sessionmaker:
    """Get or create the session factory."""
    global _session_factory

    if _session_factory is None:
        _session_factory = sessionmaker(autocommit=False, autoflush=False, bind=get_engine())

    return _session_factory


@contextmanager
def _transaction(factory: sessionmaker) -> Generator[Session, None, None]:
    """One unit of work: commit on success, roll back and re-raise on error."""
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> ContextManager[Session]:
    """Session on the globally configured database, used by scripts.

    Example:
        >>> with get_db() as session:
        ...     sources = FeedSourceRepository(session).list_active()
    """
    return _transaction(get_session_factory())


def init_db(drop_all: bool = False, use_migrations: bool = True) -> None:
    """Initialize the database behind the global configuration.

    Args:
        drop_all: If True, drop all tables first (destroys data)
        use_migrations: Run Alembic migrations instead of create_all()
    """
    engine = get_engine()

    if drop_all:
        logger.warning("Dropping all tables - data will be lost!")
        Base.metadata.drop_all(bind=engine)

    if use_migrations:
        from alembic import command
        from alembic.config import Config as AlembicConfig

        logger.info("Running database migrations")
        command.upgrade(AlembicConfig("alembic.ini"), "head")
        logger.info("Database migrations completed")
    else:
        logger.warning("Using direct table creation (not recommended for production)")
        Base.metadata.create_all(bind=engine)


def close_db() -> None:
    """Dispose of the global engine."""
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
        _engine = None

    _session_factory = None


class DatabaseManager:
    """Database manager owning one engine and handing out scoped sessions."""

    def __init__(self, db_path: Optional[str] = None, db_config: Optional[DatabaseConfig] = None):
        """Initialize database manager.

        Args:
            db_path: Optional SQLite path (":memory:" for a private in-memory database).
            db_config: Optional full database configuration.

        Note:
            If neither is provided, the global configuration's engine is used.
        """
        self._custom_db_path = db_path
        self._custom_db_config = db_config
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    @property
    def engine(self) -> Engine:
        """Get the database engine."""
        if self._engine is None:
            if self._custom_db_path:
                self._engine = _build_engine(DatabaseConfig(path=self._custom_db_path, echo=False))
            elif self._custom_db_config:
                self._engine = _build_engine(self._custom_db_config)
            else:
                self._engine = get_engine()

        return self._engine

    def init_db(self, drop_all: bool = False) -> None:
        """Create all tables.

        Args:
            drop_all: If True, drop existing tables first
        """
        if drop_all:
            Base.metadata.drop_all(bind=self.engine)

        Base.metadata.create_all(bind=self.engine)

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Get a database session that commits on success and rolls back on error."""
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                autocommit=False,
                autoflush=False,
                expire_on_commit=False,
                bind=self.engine,
            )
        with _transaction(self._session_factory) as session:
            yield session

    def close(self) -> None:
        """Close database connections."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
        self._session_factory = None

    def __enter__(self) -> "DatabaseManager":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
