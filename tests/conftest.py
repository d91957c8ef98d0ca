import os

# Set dummy env vars for testing
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool
from family_graph.database import Base
# Import models to ensure they are registered with Base.metadata
from family_graph import models  # noqa: F401
from family_graph.main import FamilyGraph
from family_graph.models.node import NodeStatus
from family_graph.models.user import User
from family_graph.schemas.node import NodeCreate
from family_graph.services.notification_service import NotificationService

# Use SQLite for testing
SQLALCHEMY_DATABASE_URL = "sqlite+aiosqlite:///./test.db"

engine = create_async_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}, poolclass=NullPool
)
TestingSessionLocal = sessionmaker(
    class_=AsyncSession, autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
)

class FailingNotifier:
    """A sink whose every call blows up, for fire-and-forget checks."""

    def __init__(self):
        self.calls = 0

    async def record(self, *args, **kwargs):
        self.calls += 1
        raise RuntimeError("notification backend down")

    async def record_many(self, *args, **kwargs):
        self.calls += 1
        raise RuntimeError("notification backend down")

@pytest_asyncio.fixture(scope="function")
async def prepare_database():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

@pytest_asyncio.fixture(scope="function")
async def db_session(prepare_database):
    async with TestingSessionLocal() as session:
        yield session

@pytest.fixture
def failing_write():
    """Makes writes of a model raise until the test ends, for rollback checks."""
    registered = []

    def _fail(model, event_name: str = "before_insert"):
        def _raise(mapper, connection, target):
            raise RuntimeError(f"{event_name} refused for {model.__tablename__}")

        event.listen(model, event_name, _raise)
        registered.append((model, event_name, _raise))

    yield _fail
    for model, event_name, listener in registered:
        event.remove(model, event_name, listener)

@pytest.fixture
def failing_notifier():
    return FailingNotifier()

@pytest.fixture
def notifier():
    return NotificationService(session_factory=TestingSessionLocal)

@pytest.fixture
def graph(db_session, notifier):
    return FamilyGraph(db_session, notifier)

@pytest_asyncio.fixture
async def make_user(db_session):
    counter = {"n": 0}

    async def _make_user(name: str = None) -> User:
        counter["n"] += 1
        name = name or f"user{counter['n']}"
        user = User(email=f"{name.lower()}@example.com", display_name=name)
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make_user

@pytest_asyncio.fixture
async def owner(make_user):
    return await make_user("Owner")

@pytest_asyncio.fixture
async def tree(graph, owner):
    return await graph.trees.create_tree("Smith Family", owner.id, "Paternal side")

@pytest_asyncio.fixture
async def make_node(graph):
    async def _make_node(tree_id: int, user_id: int, first_name: str = "John", last_name: str = "Smith",
                         pet_name: str = None, publish: bool = False):
        node = await graph.nodes.create_node(
            tree_id, user_id, NodeCreate(first_name=first_name, last_name=last_name, pet_name=pet_name)
        )
        if publish:
            node = await graph.nodes.publish_node(node.id, user_id)
            assert node.status == NodeStatus.PUBLISHED
        return node

    return _make_node
