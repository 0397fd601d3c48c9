import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from main import app
from database import Base, get_db
from models import User
from auth import create_access_token

# Setup in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database session for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)

@pytest.fixture(scope="function")
def client(db_session):
    """Create a FastAPI TestClient with overridden database dependency."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.pop(get_db, None)

@pytest.fixture
def make_user(db_session):
    """Factory creating a user and returning (user, auth headers)."""
    def _make_user(username, email=None):
        user = User(
            email=email or f"{username.lower()}@example.com",
            username=username,
            is_active=True
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        access_token = create_access_token(data={"sub": user.email})
        return user, {"Authorization": f"Bearer {access_token}"}
    return _make_user

@pytest.fixture
def test_user(make_user):
    """Create the default test user (group creator in most tests)."""
    return make_user("Alice")

@pytest.fixture
def auth_headers(test_user):
    """Return authorization headers for the test user."""
    return test_user[1]

@pytest.fixture
def join_group(client):
    """Request to join with a code and have the creator accept the request."""
    def _join(group, headers, user, creator_headers):
        resp = client.post("/groups/join", headers=headers, json={"join_code": group["join_code"]})
        assert resp.status_code == 200
        resp = client.post(f"/groups/{group['id']}/pending/{user.id}/accept", headers=creator_headers)
        assert resp.status_code == 200
    return _join

@pytest.fixture
def group_of_three(client, make_user, test_user, auth_headers, join_group):
    """Group with Alice (creator), Bob and Carol as members."""
    alice, _ = test_user
    bob, bob_headers = make_user("Bob")
    carol, carol_headers = make_user("Carol")

    group = client.post("/groups", headers=auth_headers, json={"name": "Trip"}).json()
    join_group(group, bob_headers, bob, auth_headers)
    join_group(group, carol_headers, carol, auth_headers)

    return {
        "group": group,
        "alice": (alice, auth_headers),
        "bob": (bob, bob_headers),
        "carol": (carol, carol_headers),
    }
