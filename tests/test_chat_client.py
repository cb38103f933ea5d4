"""Tests for the chat client: session state, HTTP driver and turn helpers."""

import json

import httpx
import pytest

from triagedesk.client.api import SupportAPIClient
from triagedesk.client.cli import send_turn, submit_review
from triagedesk.client.session import TYPING_INDICATOR, ChatSession, ChatState
from triagedesk.config import MessageRole
from triagedesk.core import SupportAPIError, ValidationException


def started_session() -> ChatSession:
    session = ChatSession()
    session.start("Ada", "ada@example.com")
    return session


class TestChatSession:

    def test_start_seeds_greeting(self):
        session = started_session()

        assert session.state == ChatState.COLLECTING_TURNS
        assert session.turns[0].role == MessageRole.ASSISTANT
        assert session.turns[0].content == "Hello Ada! How can I help you today?"

    def test_start_requires_name_and_email(self):
        with pytest.raises(ValidationException):
            ChatSession().start("", "ada@example.com")

    def test_first_turn_sends_user_info(self):
        session = started_session()

        payload = session.begin_turn("My site is down")

        assert payload["ticketId"] is None
        assert payload["userInfo"] == {"name": "Ada", "email": "ada@example.com", "phone": None}
        assert payload["messages"][-1] == {"role": "user", "content": "My site is down"}
        assert session.visible_turns()[-1].content == TYPING_INDICATOR
        assert not session.accepts_input

    def test_later_turns_send_ticket_id_only(self):
        session = started_session()
        session.begin_turn("My site is down")
        session.complete_turn({"role": "assistant", "content": "[Website] Since when?", "ticketId": 4})

        payload = session.begin_turn("Since noon")

        assert payload["ticketId"] == 4
        assert "userInfo" not in payload
        assert [m["role"] for m in payload["messages"]] == ["assistant", "user", "assistant", "user"]
        assert session.can_escalate

    def test_errors_stay_out_of_history(self):
        session = started_session()
        session.begin_turn("hello")
        session.fail_turn("Something went wrong.")

        assert session.turns[-1].content == "Error: Something went wrong."
        assert session.accepts_input
        assert all(not m["content"].startswith("Error:") for m in session.history())

    def test_resolution_cue_moves_to_review(self):
        session = started_session()
        session.begin_turn("hello")
        session.complete_turn({"content": "[Website] Hi", "ticketId": 1})
        session.begin_turn("done")
        session.complete_turn({"content": "Try a reload. Is your issue RESOLVED?"})

        assert session.state == ChatState.AWAITING_REVIEW
        assert not session.accepts_input
        assert not session.can_escalate
        with pytest.raises(ValidationException):
            session.begin_turn("more")

        session.request_review()
        assert session.show_review_form
        session.mark_reviewed()
        assert session.state == ChatState.REVIEWED

    def test_review_needs_resolution_cue(self):
        with pytest.raises(ValidationException):
            started_session().request_review()

    def test_empty_text_is_rejected(self):
        with pytest.raises(ValidationException):
            started_session().begin_turn("   ")

    def test_reset(self):
        session = started_session()
        session.begin_turn("hello")
        session.reset()

        assert session.state == ChatState.NO_USER_INFO
        assert session.turns == []
        assert session.ticket_id is None


def api_with(handler) -> SupportAPIClient:
    return SupportAPIClient(base_url="http://support.test", transport=httpx.MockTransport(handler))


class TestSupportAPIClient:

    @pytest.mark.asyncio
    async def test_chat_returns_ai_message(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200, json={"aiMessage": {"role": "assistant", "content": "Hi", "ticketId": 1}}
            )

        async with api_with(handler) as api:
            ai_message = await api.chat({"messages": [{"role": "user", "content": "x"}]})

        assert seen["path"] == "/api/chat"
        assert seen["body"]["messages"][0]["content"] == "x"
        assert ai_message["ticketId"] == 1

    @pytest.mark.asyncio
    async def test_resolve_body(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"message": "Ticket resolved and review submitted."})

        async with api_with(handler) as api:
            message = await api.resolve(3, 5, "great")

        assert seen["body"] == {"ticketId": 3, "rating": 5, "comment": "great"}
        assert message == "Ticket resolved and review submitted."

    @pytest.mark.asyncio
    async def test_error_body_is_surfaced(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"error": "Failed to escalate ticket."})

        async with api_with(handler) as api:
            with pytest.raises(SupportAPIError) as exc_info:
                await api.escalate(1)

        assert exc_info.value.status_code == 500
        assert exc_info.value.error == "Failed to escalate ticket."

    @pytest.mark.asyncio
    async def test_non_json_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="Bad Gateway")

        async with api_with(handler) as api:
            with pytest.raises(SupportAPIError) as exc_info:
                await api.mark_urgent(1)

        assert exc_info.value.error == "Something went wrong."

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with api_with(handler) as api:
            with pytest.raises(SupportAPIError) as exc_info:
                await api.initiate("hello")

        assert exc_info.value.status_code == 0


class TestTurnHelpers:

    @pytest.mark.asyncio
    async def test_send_turn_success(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={"aiMessage": {"role": "assistant", "content": "[Email] Which inbox?", "ticketId": 9}}
            )

        session = started_session()
        async with api_with(handler) as api:
            reply = await send_turn(session, api, "No mail")

        assert reply == "[Email] Which inbox?"
        assert session.ticket_id == 9
        assert session.accepts_input

    @pytest.mark.asyncio
    async def test_send_turn_failure_is_inline(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"error": "AI service error."})

        session = started_session()
        async with api_with(handler) as api:
            reply = await send_turn(session, api, "No mail")

        assert reply == "Error: AI service error."
        assert session.turns[-1].is_error
        assert session.ticket_id is None

    @pytest.mark.asyncio
    async def test_submit_review(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"message": "Ticket resolved and review submitted."})

        session = started_session()
        session.begin_turn("hi")
        session.complete_turn({"content": "Is your issue resolved?", "ticketId": 2})

        async with api_with(handler) as api:
            message = await submit_review(session, api, 4, "thanks")

        assert message == "Ticket resolved and review submitted."
        assert session.state == ChatState.REVIEWED
