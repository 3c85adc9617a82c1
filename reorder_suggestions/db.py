from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, scoped_session

from reorder_suggestions.config import config
from reorder_suggestions.models import Base


class Database:
    """Database connection manager for the Reorder Suggestion Engine."""

    def __init__(self, connection_string=None, echo=None):
        """Create the manager without connecting.

        Args:
            connection_string: Optional SQLAlchemy URL. Defaults to the
                               [DATABASE] url configuration value.
            echo: Optional SQL echo flag
        """
        self._connection_string = connection_string
        self._echo = echo
        self._engine = None
        self._session = None

    def initialize(self, connection_string=None):
        """Initialize database connection.

        Args:
            connection_string: Optional database connection string.
                              If not provided, will use configuration.
        """
        if connection_string is not None:
            self._connection_string = connection_string
        if self._connection_string is None:
            self._connection_string = config.get_db_url()

        echo = self._echo
        if echo is None:
            echo = config.get_boolean('DATABASE', 'echo', False)

        self._engine = create_engine(self._connection_string, echo=echo)
        self._session = scoped_session(sessionmaker(bind=self._engine))

    def create_all_tables(self):
        """Create all tables defined in the models."""
        Base.metadata.create_all(self.engine)

    def drop_all_tables(self):
        """Drop all tables from the database."""
        Base.metadata.drop_all(self.engine)

    @property
    def session(self):
        """Get the session registry."""
        if self._session is None:
            self.initialize()
        return self._session

    @property
    def engine(self):
        """Get the database engine."""
        if self._engine is None:
            self.initialize()
        return self._engine

    @contextmanager
    def session_scope(self):
        """Provide a transactional scope around a series of operations."""
        session = self.session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

# Default database for the command-line entry point
db = Database()

@contextmanager
def session_scope():
    """Session scope context manager on the default database."""
    with db.session_scope() as session:
        yield session
