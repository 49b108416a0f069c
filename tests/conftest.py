import os

import pytest

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from slotbook.database import Database  # noqa: E402
from slotbook.models.user import User  # noqa: E402


@pytest.fixture
def database(tmp_path):
    database = Database(f"sqlite:///{tmp_path / 'slotbook.db'}")
    database.create_all()
    try:
        yield database
    finally:
        database.dispose()


@pytest.fixture
def db(database):
    session = database.session()
    try:
        yield session
    finally:
        session.close()


def _create_user(db, email: str, full_name: str) -> User:
    user = User(email=email, full_name=full_name)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def owner(db) -> User:
    return _create_user(db, 'owner@example.com', 'Olivia Owner')


@pytest.fixture
def other_owner(db) -> User:
    return _create_user(db, 'other@example.com', 'Oscar Other')
