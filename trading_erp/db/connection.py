# trading_erp/db/connection.py
from contextlib import contextmanager
from typing import Callable, Optional

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from trading_erp.config import config
from trading_erp.exceptions import DatabaseError
from trading_erp.models import Base

def build_engine(url: str, echo: bool = False):
    """Create an engine for a SQLAlchemy URL.

    In-memory SQLite shares one connection so every session sees the same data.
    """
    if url in ('sqlite://', 'sqlite:///:memory:'):
        return create_engine(
            url,
            echo=echo,
            connect_args={'check_same_thread': False},
            poolclass=StaticPool
        )
    return create_engine(url, echo=echo)

class DatabaseConnection:
    """Database connection manager."""

    _instance = None

    def __new__(cls):
        """Singleton pattern implementation."""
        if cls._instance is None:
            cls._instance = super(DatabaseConnection, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Initialize the connection manager if not already initialized."""
        if self._initialized:
            return

        self._engine = None
        self._session_factory = None
        self._initialized = True

    def initialize(self, connection_string: Optional[str] = None) -> None:
        """Initialize database connection.

        Args:
            connection_string: Optional SQLAlchemy URL.
                              If not provided, will use configuration.
        """
        if connection_string is None:
            connection_string = config.get_db_url()

        echo = config.get_boolean('DATABASE', 'echo', False)

        try:
            self._engine = build_engine(connection_string, echo=echo)
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to connect to {connection_string}: {str(e)}")

        self._session_factory = sessionmaker(bind=self._engine)

    @property
    def engine(self):
        """Get the database engine."""
        if self._engine is None:
            self.initialize()
        return self._engine

    def get_session(self) -> Session:
        """Get a new database session."""
        if self._session_factory is None:
            self.initialize()
        return self._session_factory()

    def create_all_tables(self) -> None:
        """Create all tables defined in the models."""
        Base.metadata.create_all(bind=self.engine)

    def drop_all_tables(self) -> None:
        """Drop all tables from the database."""
        Base.metadata.drop_all(bind=self.engine)

# Global database instance
db = DatabaseConnection()

@contextmanager
def session_scope(session_factory: Optional[Callable[[], Session]] = None):
    """Provide a transactional scope around a series of operations.

    Args:
        session_factory: Callable returning a new session; the global
                         connection is used when omitted
    """
    session = (session_factory or db.get_session)()
    try:
        yield session
        session.commit()
    except Exception as e:
        session.rollback()
        raise e
    finally:
        session.close()
