import logging
from threading import Lock

from fastapi import Request
from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker


logger = logging.getLogger(__name__)

Base = declarative_base()


def build_engine(database_url: str, echo: bool = False) -> Engine:
    if database_url.startswith('sqlite'):
        engine = create_engine(database_url, echo=echo, connect_args={'check_same_thread': False})

        # SQLite leaves foreign keys off unless every connection asks for them.
        @event.listens_for(engine, 'connect')
        def enable_sqlite_foreign_keys(dbapi_connection, _connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute('PRAGMA foreign_keys=ON')
            cursor.close()

        return engine

    return create_engine(database_url, echo=echo, pool_pre_ping=True)


def _has_unique_slot_reference(inspector) -> bool:
    unique_column_sets = [
        constraint['column_names'] for constraint in inspector.get_unique_constraints('bookings')
    ]
    unique_column_sets.extend(
        index['column_names'] for index in inspector.get_indexes('bookings') if index.get('unique')
    )
    return ['availability_id'] in unique_column_sets


class Database:
    """Storage handle shared by the request scoped sessions.

    Created once by the process entry point, handed to every request through
    ``get_db`` and disposed on shutdown.
    """

    def __init__(self, database_url: str, echo: bool = False) -> None:
        self.engine = build_engine(database_url, echo=echo)
        self.session_factory = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=self.engine,
        )
        self._schema_lock = Lock()
        self._schema_checked = False

    def session(self) -> Session:
        return self.session_factory()

    def create_all(self) -> None:
        # Register every table on Base.metadata before creating them.
        from slotbook.models import availability, booking, user  # noqa: F401

        Base.metadata.create_all(bind=self.engine)
        self.ensure_schema()

    def ensure_schema(self) -> None:
        """Bring databases created by older releases up to the current shape."""
        if self._schema_checked:
            return

        with self._schema_lock:
            if self._schema_checked:
                return

            inspector = inspect(self.engine)
            table_names = set(inspector.get_table_names())

            with self.engine.begin() as connection:
                if 'availability' in table_names:
                    existing_columns = {column['name'] for column in inspector.get_columns('availability')}
                    if 'description' not in existing_columns:
                        logger.info('Adding missing availability.description column')
                        connection.execute(
                            text("ALTER TABLE availability ADD COLUMN description VARCHAR(255) NOT NULL DEFAULT ''")
                        )
                    connection.execute(
                        text('CREATE INDEX IF NOT EXISTS idx_availability_user_date ON availability(user_id, date, start_time)')
                    )

                if 'bookings' in table_names and not _has_unique_slot_reference(inspector):
                    logger.info('Adding unique index on bookings.availability_id')
                    connection.execute(
                        text(
                            'CREATE UNIQUE INDEX IF NOT EXISTS uq_bookings_availability_id '
                            'ON bookings(availability_id)'
                        )
                    )

            self._schema_checked = True

    def dispose(self) -> None:
        self.engine.dispose()


def get_db(request: Request):
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()
