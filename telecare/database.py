from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from telecare.core import config


connect_args = {'check_same_thread': False} if config.DATABASE_URL.startswith('sqlite') else {}

engine = create_engine(config.DATABASE_URL, connect_args=connect_args)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_checked_tables: set[str] = set()

AVAILABILITY_COLUMNS = (
    ('is_available', 'BOOLEAN DEFAULT TRUE'),
    ('created_at', 'TIMESTAMP'),
)
AVAILABILITY_INDEXES = (
    ('idx_availability_therapist_day', 'therapist_id, day_of_week'),
)

APPOINTMENT_COLUMNS = (
    ('title', 'VARCHAR'),
    ('description', 'VARCHAR'),
    ('updated_at', 'TIMESTAMP'),
)
APPOINTMENT_INDEXES = (
    ('idx_appointments_time_range', 'start_time, end_time'),
    ('idx_appointments_therapist_status', 'therapist_id, status'),
)


def _upgrade_table(table_name: str, columns, indexes) -> None:
    """Add missing columns and indexes to a table created by an older release.

    Runs at most once per process and table. Tables that do not exist yet are
    left to ``Base.metadata.create_all``.
    """
    if table_name in _checked_tables:
        return

    with _schema_lock:
        if table_name in _checked_tables:
            return

        inspector = inspect(engine)
        if table_name not in inspector.get_table_names():
            _checked_tables.add(table_name)
            return

        existing_columns = {column['name'] for column in inspector.get_columns(table_name)}

        with engine.begin() as connection:
            for column_name, ddl_type in columns:
                if column_name not in existing_columns:
                    connection.execute(text(f'ALTER TABLE {table_name} ADD COLUMN {column_name} {ddl_type}'))
            for index_name, index_columns in indexes:
                connection.execute(
                    text(f'CREATE INDEX IF NOT EXISTS {index_name} ON {table_name}({index_columns})')
                )

        _checked_tables.add(table_name)


def ensure_availability_schema() -> None:
    _upgrade_table('therapist_availability', AVAILABILITY_COLUMNS, AVAILABILITY_INDEXES)


def ensure_appointment_schema() -> None:
    _upgrade_table('appointments', APPOINTMENT_COLUMNS, APPOINTMENT_INDEXES)
