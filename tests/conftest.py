"""
Shared pytest fixtures.

Each test gets its own SQLite file, a scripted triage assistant and a
notifier that records what would have been emailed.
"""

from typing import List, Optional, Sequence

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from triagedesk.core import NotificationException
from triagedesk.infrastructure.database import (
    close_database,
    create_tables,
    get_session_context,
    init_database,
)
from triagedesk.main import create_app
from triagedesk.tickets.application import INotificationSender, ITriageAssistant, TicketService
from triagedesk.tickets.domain import (
    ChatTurn,
    Notification,
    RoutingConfig,
    TriagePromptBuilder,
    TriageReply,
    UserInfo,
)
from triagedesk.tickets.infrastructure import SQLAlchemyTicketStore
from triagedesk.tickets.interfaces.controllers import (
    get_notification_sender,
    get_routing_config,
    get_triage_assistant,
)


class FakeTriageAssistant(ITriageAssistant):
    """Replies from a script; falls back to a generic question."""

    def __init__(self, replies: Optional[List[str]] = None, error: Optional[Exception] = None):
        self.replies = list(replies or [])
        self.error = error
        self.calls: List[List[ChatTurn]] = []

    async def classify_and_reply(self, history: Sequence[ChatTurn]) -> TriageReply:
        self.calls.append(list(history))
        if self.error is not None:
            raise self.error
        text = self.replies.pop(0) if self.replies else "Could you tell me more?"
        return TriageReply(reply_text=text, category=TriagePromptBuilder.extract_category(text))


class RecordingNotifier(INotificationSender):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[Notification] = []

    async def send(self, notification: Notification) -> None:
        if self.fail:
            raise NotificationException("SMTP relay refused connection")
        self.sent.append(notification)


@pytest.fixture
def user_info() -> UserInfo:
    return UserInfo(name="Ada", email="ada@example.com", phone="555-0100")


@pytest.fixture
def routing() -> RoutingConfig:
    return RoutingConfig()


@pytest.fixture
def assistant() -> FakeTriageAssistant:
    return FakeTriageAssistant(
        replies=["[Website] Sorry to hear that. When did the site stop loading?"]
    )


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest_asyncio.fixture
async def database(tmp_path):
    init_database(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await create_tables()
    yield
    await close_database()


@pytest_asyncio.fixture
async def session(database):
    async with get_session_context() as session:
        yield session


@pytest.fixture
def store(session) -> SQLAlchemyTicketStore:
    return SQLAlchemyTicketStore(session)


@pytest.fixture
def service(store, assistant, notifier, routing) -> TicketService:
    return TicketService(store=store, assistant=assistant, notifier=notifier, routing=routing)


@pytest.fixture
def app(database, assistant, notifier, routing):
    app = create_app()
    app.dependency_overrides[get_triage_assistant] = lambda: assistant
    app.dependency_overrides[get_notification_sender] = lambda: notifier
    app.dependency_overrides[get_routing_config] = lambda: routing
    return app


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
