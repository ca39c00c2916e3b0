# messaging/tests/conftest.py

import logging

import pytest
from fakeredis import aioredis
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine

from messaging.config import AppConfig
from messaging.domain.entities import ConversationOptions, ConversationType, ParticipantProfile
from messaging.gateways.conversation_gateway import ConversationGateway
from messaging.gateways.message_gateway import MessageGateway
from messaging.gateways.notification_gateway import NotificationGateway
from messaging.gateways.typing_gateway import TypingGateway
from messaging.infrastructure import schemas
from messaging.infrastructure.database import create_database
from messaging.infrastructure.event_dispatcher import EventDispatcher
from messaging.infrastructure.redis_client import RedisClient
from messaging.infrastructure.uow import UnitOfWork
from messaging.interactors.conversation_interactor import ConversationInteractor
from messaging.interactors.fanout_interactor import FanoutInteractor
from messaging.interactors.message_interactor import MessageInteractor
from messaging.interactors.notification_interactor import NotificationInteractor
from messaging.interactors.typing_interactor import TypingInteractor
from messaging.main import Application

ALICE = "user-alice"
BOB = "user-bob"
CAROL = "user-carol"


class RecordingDispatcher(EventDispatcher):
    """Dispatcher that remembers every event it forwarded."""

    def __init__(self) -> None:
        super().__init__()
        self.events = []

    async def dispatch(self, event) -> None:
        self.events.append(event)
        await super().dispatch(event)

    def of_type(self, event_type):
        return [event for event in self.events if isinstance(event, event_type)]


@pytest.fixture(scope="function")
def app_config(tmp_path):
    """
    Provide a test configuration with a file-backed SQLite database per test.
    """
    return AppConfig(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'messaging.db'}",
        REDIS_HOST="localhost",
        REDIS_PORT=6379,
        PROJECT_NAME="Test Messaging API",
        PROJECT_VERSION="1.0.0",
        PROJECT_DESCRIPTION="Test Messaging API",
        API_V1_STR="/api/v1",
        S3_BUCKET_NAME="test-bucket",
    )


@pytest.fixture
def test_logger():
    logger = logging.getLogger("test_messaging")
    logger.setLevel(logging.DEBUG)
    return logger


@pytest.fixture(scope="function")
async def mock_redis():
    """Provide a fake Redis client for testing."""
    redis = aioredis.FakeRedis(decode_responses=True)
    yield redis
    await redis.flushall()
    await redis.aclose()


@pytest.fixture(scope="function")
async def redis_client(mock_redis, test_logger):
    client = RedisClient(host="localhost", port=6379, logger=test_logger)
    client.client = mock_redis
    return client


@pytest.fixture(scope="function")
async def engine(app_config):
    """Create a SQLAlchemy engine for testing with a throwaway SQLite file."""
    engine = create_async_engine(app_config.DATABASE_URL, echo=False)
    yield engine
    await engine.dispose()


@pytest.fixture(scope="function")
async def database(engine):
    database = create_database(engine)
    await database.connect()
    return database


@pytest.fixture(scope="function")
async def db_session(database):
    """Provide a SQLAlchemy session for testing."""
    session = database.session_factory()
    yield session
    await session.close()


@pytest.fixture(scope="function")
def uow(db_session):
    """Provide a UnitOfWork bound to the test session."""
    return UnitOfWork(db_session)


@pytest.fixture
def event_dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def conversation_gateway(db_session, uow):
    return ConversationGateway(db_session, uow)


@pytest.fixture
def message_gateway(db_session, uow):
    return MessageGateway(db_session, uow)


@pytest.fixture
def notification_gateway(db_session, uow):
    return NotificationGateway(db_session, uow)


@pytest.fixture
def typing_gateway(db_session, uow):
    return TypingGateway(db_session, uow)


@pytest.fixture
def conversation_interactor(uow, conversation_gateway, event_dispatcher):
    return ConversationInteractor(uow, conversation_gateway, event_dispatcher)


@pytest.fixture
def message_interactor(uow, message_gateway, conversation_gateway, event_dispatcher, app_config):
    return MessageInteractor(
        uow, message_gateway, conversation_gateway, event_dispatcher, app_config
    )


@pytest.fixture
def notification_interactor(uow, notification_gateway, app_config):
    return NotificationInteractor(uow, notification_gateway, app_config.NOTIFICATION_BODY_LENGTH)


@pytest.fixture
def fanout_interactor(
    uow,
    conversation_gateway,
    message_gateway,
    notification_interactor,
    event_dispatcher,
    app_config,
    test_logger,
):
    return FanoutInteractor(
        uow,
        conversation_gateway,
        message_gateway,
        notification_interactor,
        event_dispatcher,
        app_config,
        test_logger,
    )


@pytest.fixture
def typing_interactor(uow, typing_gateway, event_dispatcher):
    return TypingInteractor(uow, typing_gateway, event_dispatcher)


@pytest.fixture
def build_fanout(app_config, test_logger):
    """Coordinators with their own session, as concurrent callers would have."""

    def _build(session):
        uow = UnitOfWork(session)
        notifications = NotificationInteractor(
            uow, NotificationGateway(session, uow), app_config.NOTIFICATION_BODY_LENGTH
        )
        return FanoutInteractor(
            uow,
            ConversationGateway(session, uow),
            MessageGateway(session, uow),
            notifications,
            EventDispatcher(),
            app_config,
            test_logger,
        )

    return _build


@pytest.fixture
def fresh_state(database):
    """Read committed state through a brand new session."""

    async def _read(conversation_id):
        async with database.session() as session:
            uow = UnitOfWork(session)
            conversation = await ConversationGateway(session, uow).get_conversation(
                conversation_id
            )
            messages = await MessageGateway(session, uow).get_all(conversation_id)
            return (
                schemas.Conversation.model_validate(conversation) if conversation else None,
                [schemas.Message.model_validate(message) for message in messages],
            )

    return _read


@pytest.fixture
async def conversation_id(conversation_interactor):
    """A direct conversation between Alice and Bob."""
    return await conversation_interactor.create_conversation(
        "Lease renewal",
        ConversationType.DIRECT,
        [ALICE, BOB],
        ALICE,
        ConversationOptions(
            profiles={
                ALICE: ParticipantProfile(name="Alice", role="landlord"),
                BOB: ParticipantProfile(name="Bob"),
            }
        ),
    )


@pytest.fixture
async def group_id(conversation_interactor):
    """A group conversation between Alice, Bob and Carol."""
    return await conversation_interactor.create_conversation(
        "Building 4",
        ConversationType.GROUP,
        [ALICE, BOB, CAROL],
        ALICE,
        ConversationOptions(
            property_id="prop-1",
            property_name="Maple Court",
            profiles={
                ALICE: ParticipantProfile(name="Alice", role="landlord"),
                BOB: ParticipantProfile(name="Bob"),
                CAROL: ParticipantProfile(name="Carol"),
            },
        ),
    )


@pytest.fixture(scope="function")
async def app(app_config, mock_redis, database):
    """Create the FastAPI app wired to the test database and fake Redis."""
    application = Application(config=app_config)
    application.database = database
    application.redis_client.client = mock_redis
    recording = RecordingDispatcher()
    for event_type, handlers in application.event_dispatcher.handlers.items():
        for handler in handlers:
            recording.register(event_type, handler)
    application.event_dispatcher = recording

    app_instance = application.create_app()
    app_instance.state.application = application
    return app_instance


@pytest.fixture(scope="function")
async def client(app):
    """Provide an HTTP client with the test app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
