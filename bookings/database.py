import os
from dotenv import load_dotenv
from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from bookings.core import config


load_dotenv()
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./bookings.db")

engine = create_engine(DATABASE_URL, echo=config.SQL_ECHO, pool_pre_ping=True)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_schema_checked = False

# (table, index name, columns) for the lookups the calendar and booking paths run.
LOOKUP_INDEXES = [
    ('default_availability', 'idx_default_availability_provider', 'provider_id, created_at'),
    ('availability_override', 'idx_override_provider_date', 'provider_id, override_date'),
    ('blocked_date', 'idx_blocked_date_provider_date', 'provider_id, blocked_date'),
    ('booking', 'idx_booking_provider_status_start', 'provider_id, status, start_time'),
]


def ensure_booking_schema() -> None:
    global _schema_checked

    if _schema_checked:
        return

    with _schema_lock:
        if _schema_checked:
            return

        existing_tables = set(inspect(engine).get_table_names())

        with engine.begin() as connection:
            for table_name, index_name, columns in LOOKUP_INDEXES:
                if table_name not in existing_tables:
                    continue
                connection.execute(
                    text(f'CREATE INDEX IF NOT EXISTS {index_name} ON {table_name}({columns})')
                )

        _schema_checked = True
