import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite://')

from telecare.auth.passwords import hash_password  # noqa: E402
from telecare.database import Base  # noqa: E402
from telecare.models import appointment, availability, chat_message, notification, post, post_reaction  # noqa: E402,F401
from telecare.models.profile import Profile  # noqa: E402
from telecare.models.user import User  # noqa: E402


@pytest.fixture
def db():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def skip_schema_checks(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr('telecare.routes.availability_routes.ensure_database_ready', lambda: None)
    monkeypatch.setattr('telecare.routes.appointment_routes.ensure_database_ready', lambda: None)


@pytest.fixture
def make_account(db):
    def _make_account(
        email: str,
        role: str | None = 'patient',
        full_name: str = 'Test User',
        password: str = 'password123',
    ) -> tuple[User, Profile | None]:
        user = User(email=email, hashed_password=hash_password(password))
        db.add(user)
        db.flush()

        profile = None
        if role is not None:
            profile = Profile(user_id=user.id, full_name=full_name, role=role, status='active')
            db.add(profile)

        db.commit()
        db.refresh(user)
        if profile is not None:
            db.refresh(profile)
        return user, profile

    return _make_account
