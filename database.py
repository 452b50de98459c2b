"""
Database management layer.

The database only holds the local supervisor mirror and the feedback ledger;
the TPMA API stays the source of truth for everything else.
"""

import logging
from typing import Generator, Optional

from sqlalchemy import Engine, create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool

from config import Settings, get_settings

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Lazily builds the engine and session factory for the configured database URL."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._engine: Engine | None = None
        self._session_factory: sessionmaker | None = None

    @property
    def engine(self) -> Engine:
        """
        Get or create the SQLAlchemy engine.

        Returns:
            Engine: SQLAlchemy engine instance
        """
        if self._engine is None:
            self._engine = self._create_engine()
        return self._engine

    @property
    def session_factory(self) -> sessionmaker:
        """
        Get or create the session factory.

        Returns:
            sessionmaker: Session factory bound to the engine
        """
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)
        return self._session_factory

    def _create_engine(self) -> Engine:
        """
        Create the engine for the configured URL.

        SQLite gets a plain engine usable from the request threadpool; server
        databases get a pre-pinged connection pool sized from settings.

        Returns:
            Engine: Configured SQLAlchemy engine
        """
        url = str(self.settings.database_url)
        echo = self.settings.log_level.upper() == "DEBUG"
        logger.info(f"Creating database engine for: {self.masked_url(url)}")

        if url.startswith("sqlite"):
            # Handlers run in a threadpool
            return create_engine(url, connect_args={"check_same_thread": False}, echo=echo)

        return create_engine(
            url,
            poolclass=QueuePool,
            pool_size=self.settings.db_pool_size,
            max_overflow=self.settings.db_max_overflow,
            pool_timeout=self.settings.db_pool_timeout,
            pool_pre_ping=True,
            echo=echo,
        )

    def create_tables(self) -> None:
        """Create mirror and ledger tables if they do not exist."""
        from shared.models.entities import Base

        Base.metadata.create_all(self.engine)
        logger.info("Database tables ensured")

    def get_session(self) -> Session:
        """
        Create a new database session.

        Returns:
            Session: SQLAlchemy session
        """
        return self.session_factory()

    def health_check(self) -> bool:
        """
        Check database connectivity.

        Returns:
            bool: True if a trivial query succeeds, False otherwise
        """
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False
        return True

    @staticmethod
    def masked_url(url: str) -> str:
        """
        Hide the password in a database URL for logging.

        Args:
            url: Database URL

        Returns:
            str: URL with the password replaced by ***
        """
        return make_url(url).render_as_string(hide_password=True)


_db_manager: DatabaseManager | None = None


def get_db_manager() -> DatabaseManager:
    """
    Get or create the global database manager instance.

    Returns:
        DatabaseManager: Database manager
    """
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager


def get_db() -> Generator[Session, None, None]:
    """
    Dependency injection for FastAPI endpoints.

    Usage:
        @router.get("/")
        def endpoint(db: Session = Depends(get_db)):
            return db.query(MirroredSchedule).all()

    Yields:
        Session: Database session, closed when the request ends
    """
    session = get_db_manager().get_session()
    try:
        yield session
    finally:
        session.close()
