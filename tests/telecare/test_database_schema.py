from sqlalchemy import inspect, text

from telecare import database


def test_old_appointments_table_is_upgraded(monkeypatch) -> None:
    monkeypatch.setattr(database, '_checked_tables', set())
    with database.engine.begin() as connection:
        connection.execute(text('DROP TABLE IF EXISTS appointments'))
        connection.execute(text(
            'CREATE TABLE appointments ('
            'id INTEGER PRIMARY KEY, therapist_id INTEGER, patient_id INTEGER, '
            'start_time TIMESTAMP, end_time TIMESTAMP, status VARCHAR)'
        ))

    try:
        database.ensure_appointment_schema()

        inspector = inspect(database.engine)
        columns = {column['name'] for column in inspector.get_columns('appointments')}
        indexes = {index['name'] for index in inspector.get_indexes('appointments')}
        assert {'title', 'description', 'updated_at'} <= columns
        assert {'idx_appointments_time_range', 'idx_appointments_therapist_status'} <= indexes
        assert 'appointments' in database._checked_tables
    finally:
        with database.engine.begin() as connection:
            connection.execute(text('DROP TABLE IF EXISTS appointments'))


def test_missing_table_is_left_for_create_all(monkeypatch) -> None:
    monkeypatch.setattr(database, '_checked_tables', set())
    with database.engine.begin() as connection:
        connection.execute(text('DROP TABLE IF EXISTS therapist_availability'))

    database.ensure_availability_schema()

    assert 'therapist_availability' not in inspect(database.engine).get_table_names()
    assert 'therapist_availability' in database._checked_tables
