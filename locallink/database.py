import os
from dotenv import load_dotenv
from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker


load_dotenv()
DATABASE_URL = os.getenv("DATABASE_URL")

engine = create_engine(DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_calendar_schema_checked = False


def ensure_calendar_schema() -> None:
    global _calendar_schema_checked

    if _calendar_schema_checked:
        return

    with _schema_lock:
        if _calendar_schema_checked:
            return

        inspector = inspect(engine)

        if 'calendar_events' not in inspector.get_table_names():
            _calendar_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('calendar_events')}
        migration_steps = [
            ('booking_id', 'ALTER TABLE calendar_events ADD COLUMN booking_id VARCHAR'),
            ('customer_id', 'ALTER TABLE calendar_events ADD COLUMN customer_id VARCHAR'),
            ('location', 'ALTER TABLE calendar_events ADD COLUMN location VARCHAR'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text(
                    'CREATE INDEX IF NOT EXISTS idx_calendar_events_provider_range '
                    'ON calendar_events(provider_id, start_time, end_time)'
                )
            )

        _calendar_schema_checked = True
