import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from shopledger.main import app
from shopledger.core.db import get_session
from shopledger.models import User, UserRole, Actor, Client
from shopledger.test.factories import make_user, make_client, actor_for

# Base en memoria compartida por todas las conexiones del test
TEST_DATABASE_URL = "sqlite://"


@pytest.fixture(name="engine")
def engine_fixture():
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(session: Session):
    def get_session_override():
        return session
    app.dependency_overrides[get_session] = get_session_override
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="owner")
def owner_fixture(session: Session) -> User:
    return make_user(session, UserRole.OWNER, first_name="Anita")


@pytest.fixture(name="owner_actor")
def owner_actor_fixture(owner: User) -> Actor:
    return actor_for(owner)


@pytest.fixture(name="shop_client")
def shop_client_fixture(session: Session) -> Client:
    return make_client(session)
