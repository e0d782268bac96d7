"""Database engine, sessions and schema setup.

Development runs against a local SQLite file (``data/happenings.db`` unless
``HAPPENINGS_SQLITE_PATH`` says otherwise); production requires
``DATABASE_URL`` and runs against PostgreSQL with a bounded pool. Setting
``DATABASE_URL`` in development points the app at that database instead.
"""

from contextlib import contextmanager
import logging
from pathlib import Path
from typing import Optional, Dict, Any, Generator
import os

from sqlalchemy import create_engine, Engine, inspect
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError, SQLAlchemyError
from sqlalchemy.orm import scoped_session, sessionmaker, Session

from ..config.environment import IS_PRODUCTION_ENVIRONMENT # Environment must be imported first
from ..models import Base

logger = logging.getLogger(__name__)

DEFAULT_SQLITE_PATH = Path(__file__).parent.parent.parent / 'data' / 'happenings.db'


class DatabaseError(Exception):
    """Base exception for database-related errors."""
    pass

class DatabaseConnectionError(DatabaseError):
    """Raised when the engine cannot be configured or reached."""
    pass

class SessionError(DatabaseError):
    """Raised when SQLAlchemy fails inside a session."""
    pass


class DatabaseConfig:
    """Where the listings database lives and how its engine is pooled."""

    def __init__(
        self,
        database_url: Optional[str] = None,
        sqlite_path: Optional[Path] = None,
        production: bool = IS_PRODUCTION_ENVIRONMENT,
        echo: bool = False,
        pool_size: int = 3,
        max_overflow: int = 4,
        pool_timeout: int = 30,
        pool_recycle: int = 3600,
    ):
        """
        Args:
            database_url: Explicit SQLAlchemy URL; falls back to DATABASE_URL
            sqlite_path: SQLite file used when no URL is configured
            production: Whether a server database is mandatory
            echo: Whether to echo SQL statements
            pool_size: Permanent connections kept by a server database pool
            max_overflow: Extra connections allowed under load
            pool_timeout: Seconds to wait for a free connection
            pool_recycle: Seconds before a pooled connection is replaced

        Raises:
            DatabaseConnectionError: If production has no database URL, or
                                     the URL cannot be parsed
        """
        url = database_url or os.environ.get('DATABASE_URL')
        if not url:
            if production:
                raise DatabaseConnectionError(
                    "DATABASE_URL must be set when ENVIRONMENT=production"
                )
            path = sqlite_path or os.environ.get('HAPPENINGS_SQLITE_PATH') or DEFAULT_SQLITE_PATH
            self.sqlite_path: Optional[Path] = Path(path)
            url = f"sqlite:///{self.sqlite_path}"
        else:
            self.sqlite_path = None

        try:
            self.url = make_url(url)
        except ArgumentError as e:
            raise DatabaseConnectionError(f"Invalid database URL: {e}") from e

        self.echo = echo
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.pool_timeout = pool_timeout
        self.pool_recycle = pool_recycle

    @property
    def is_sqlite(self) -> bool:
        return self.url.get_backend_name() == 'sqlite'

    @property
    def safe_url(self) -> str:
        """Connection URL with the password masked, for logs."""
        return self.url.render_as_string(hide_password=True)

    def get_engine_args(self) -> Dict[str, Any]:
        """Engine keyword arguments for the configured backend."""
        args: Dict[str, Any] = {"echo": self.echo}
        if self.is_sqlite:
            # Routes run in FastAPI's threadpool
            args["connect_args"] = {"check_same_thread": False}
        else:
            args.update({
                "pool_size": self.pool_size,
                "max_overflow": self.max_overflow,
                "pool_timeout": self.pool_timeout,
                "pool_recycle": self.pool_recycle,
                "pool_pre_ping": True,
            })
        return args


class Database:
    """Process-wide engine and session registry; one instance per process."""

    _instance = None

    def __new__(cls, config: Optional[DatabaseConfig] = None):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, config: Optional[DatabaseConfig] = None):
        if self._initialized:
            return

        # Built on first use so importing the app never touches the disk
        self._config = config
        self._engine: Optional[Engine] = None
        self._session_factory = sessionmaker(autoflush=False)
        self._scoped_session = scoped_session(self._session_factory)
        self._tables_checked = False
        self._initialized = True

    @property
    def config(self) -> DatabaseConfig:
        if self._config is None:
            self._config = DatabaseConfig()
        return self._config

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self._engine = self._create_engine()
        return self._engine

    def _create_engine(self) -> Engine:
        config = self.config
        try:
            if config.sqlite_path:
                config.sqlite_path.parent.mkdir(parents=True, exist_ok=True)
            engine = create_engine(config.url, **config.get_engine_args())
        except (OSError, SQLAlchemyError) as e:
            raise DatabaseConnectionError(f"Failed to create database engine: {e}") from e
        self._session_factory.configure(bind=engine)
        logger.info(f"Database engine ready for {config.safe_url}")
        return engine

    def ensure_tables_exist(self) -> None:
        """Create any listing tables missing from the database."""
        if self._tables_checked:
            return

        try:
            existing = set(inspect(self.engine).get_table_names())
            missing = sorted(set(Base.metadata.tables) - existing)
            if missing:
                logger.info(f"Creating missing tables: {', '.join(missing)}")
                Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to verify/create database schema: {e}") from e

        self._tables_checked = True

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """
        Transactional scope: commits on success, rolls back on any error.

        Example:
            with db.session() as session:
                save_override(session, event_id, {'date_key': '2026-03-10', 'status': 'cancelled'})

        Raises:
            SessionError: If SQLAlchemy fails inside the session; other
                          exceptions propagate unchanged after rollback
            DatabaseError: If the schema cannot be verified
        """
        self.ensure_tables_exist()

        session = self._scoped_session()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise SessionError(f"Database session error: {e}") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
            self._scoped_session.remove()

    def dispose(self) -> None:
        """Close pooled connections; the engine is rebuilt on next use."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._tables_checked = False


db = Database()
