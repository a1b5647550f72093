import os
import tempfile

os.environ.setdefault('DATABASE_URL', 'sqlite:///:memory:')
os.environ.setdefault('JWT_SECRET_KEY', 'test-secret-key-with-enough-length-for-hs256')
os.environ.setdefault('BCRYPT_ROUNDS', '4')
os.environ.setdefault('UPLOAD_DIR', os.path.join(tempfile.gettempdir(), 'kata-test-uploads'))

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from kata.database import Base, get_db  # noqa: E402
from kata.main import app  # noqa: E402
from kata.models.sweet import Sweet  # noqa: E402
from kata.models.user import User  # noqa: E402


@pytest.fixture
def session_factory():
    engine = create_engine(
        'sqlite:///:memory:',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine, tables=[User.__table__, Sweet.__table__])
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        Base.metadata.drop_all(bind=engine, tables=[Sweet.__table__, User.__table__])
        engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def register(client: TestClient, email: str, role: str = 'user', password: str = 'pw123456') -> str:
    response = client.post(
        '/auth/register',
        json={'name': email.split('@')[0].title() + ' User', 'email': email, 'password': password, 'role': role},
    )
    assert response.status_code == 201, response.text
    return response.json()['data']['token']


def bearer(token: str) -> dict:
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def admin_token(client) -> str:
    return register(client, 'admin@example.com', role='admin')


@pytest.fixture
def user_token(client) -> str:
    return register(client, 'user@example.com')
