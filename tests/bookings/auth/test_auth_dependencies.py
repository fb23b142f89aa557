import os

import jwt
import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from bookings.auth.dependencies import get_current_user  # noqa: E402
from bookings.auth.jwt_handler import create_access_token, decode_access_token  # noqa: E402
from bookings.core import config  # noqa: E402
from bookings.database import Base  # noqa: E402
from bookings.models.user import User  # noqa: E402


@pytest.fixture
def auth_db():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    db = testing_session_local()
    db.add(User(email='provider@example.com', role='provider'))
    db.commit()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


def _credentials(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme='Bearer', credentials=token)


def test_access_token_round_trips_subject() -> None:
    token = create_access_token('provider@example.com')

    assert decode_access_token(token)['sub'] == 'provider@example.com'


def test_get_current_user_returns_token_owner(auth_db) -> None:
    user = get_current_user(credentials=_credentials(create_access_token('provider@example.com')), db=auth_db)

    assert user.email == 'provider@example.com'
    assert user.role == 'provider'


def test_get_current_user_rejects_garbage_token(auth_db) -> None:
    with pytest.raises(HTTPException) as exception_info:
        get_current_user(credentials=_credentials('not-a-token'), db=auth_db)

    assert exception_info.value.status_code == 401
    assert exception_info.value.detail == 'Invalid token'


def test_get_current_user_rejects_token_without_subject(auth_db) -> None:
    token = jwt.encode({'role': 'provider'}, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)

    with pytest.raises(HTTPException) as exception_info:
        get_current_user(credentials=_credentials(token), db=auth_db)

    assert exception_info.value.detail == 'Invalid token subject'


def test_get_current_user_rejects_unknown_user(auth_db) -> None:
    with pytest.raises(HTTPException) as exception_info:
        get_current_user(credentials=_credentials(create_access_token('nobody@example.com')), db=auth_db)

    assert exception_info.value.status_code == 401
    assert exception_info.value.detail == 'User not found'
