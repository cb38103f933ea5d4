"""Tests for TicketService orchestration."""

import pytest

from triagedesk.config import MessageRole, TicketPriority, TicketStatus
from triagedesk.core import (
    InvalidStatusTransitionException,
    LLMException,
    NotificationException,
    ResourceNotFoundException,
    TicketClosedException,
    ValidationException,
)
from triagedesk.tickets.application import TicketService
from triagedesk.tickets.domain import ChatTurn

from tests.conftest import FakeTriageAssistant, RecordingNotifier

GREETING = ChatTurn(MessageRole.ASSISTANT, "Hello Ada! How can I help you today?")


def first_turn(text="My site is down"):
    return [GREETING, ChatTurn(MessageRole.USER, text)]


@pytest.mark.asyncio
async def test_first_turn_opens_ticket(service, store, notifier, user_info):
    result = await service.handle_chat_turn(first_turn(), user_info=user_info)

    assert result.ticket_created is True
    assert result.category == "Website"
    assert result.reply_text.startswith("[Website]")

    ticket = await store.get_ticket(result.ticket_id)
    assert ticket.category == "Website"
    assert ticket.status == TicketStatus.OPEN
    assert ticket.user_email == "ada@example.com"

    messages = await store.get_messages(ticket.id)
    assert [(m.role, m.text) for m in messages] == [
        (MessageRole.USER, "My site is down"),
        (MessageRole.ASSISTANT, result.reply_text),
    ]

    assert len(notifier.sent) == 1
    notification = notifier.sent[0]
    assert notification.to == "web-team@example.com"
    assert notification.subject == f"New Ticket #{ticket.id}: Website"
    assert "Initial Query: My site is down" in notification.text
    assert f"http://localhost:5173/support/{ticket.id}" in notification.text


@pytest.mark.asyncio
async def test_reply_without_label_is_unclassified(store, notifier, routing, user_info):
    assistant = FakeTriageAssistant(replies=["Can you describe the problem?"])
    service = TicketService(store, assistant, notifier, routing)

    result = await service.handle_chat_turn(first_turn("help"), user_info=user_info)

    ticket = await store.get_ticket(result.ticket_id)
    assert ticket.category == "Unclassified"
    assert notifier.sent[0].to == "support-leads@example.com"


@pytest.mark.asyncio
async def test_unmapped_label_goes_to_default_recipient(store, notifier, routing, user_info):
    assistant = FakeTriageAssistant(replies=["[Billing] Which invoice is wrong?"])
    service = TicketService(store, assistant, notifier, routing)

    result = await service.handle_chat_turn(first_turn("invoice"), user_info=user_info)

    assert result.category == "Billing"
    assert notifier.sent[0].to == routing.default_recipient


@pytest.mark.asyncio
async def test_first_turn_needs_user_info(service, store, assistant, notifier):
    with pytest.raises(ValidationException):
        await service.handle_chat_turn(first_turn())

    assert assistant.calls == []
    assert notifier.sent == []
    with pytest.raises(ResourceNotFoundException):
        await store.get_ticket(1)


@pytest.mark.asyncio
async def test_history_without_user_turn(service, user_info):
    with pytest.raises(ValidationException):
        await service.handle_chat_turn([GREETING], user_info=user_info)


@pytest.mark.asyncio
async def test_follow_up_turn_appends(service, store, assistant, notifier, user_info):
    opened = await service.handle_chat_turn(first_turn(), user_info=user_info)
    assistant.replies.append("Does it fail in every browser?")

    history = first_turn() + [
        ChatTurn(MessageRole.ASSISTANT, opened.reply_text),
        ChatTurn(MessageRole.USER, "Since this morning"),
    ]
    result = await service.handle_chat_turn(history, ticket_id=opened.ticket_id)

    assert result.ticket_created is False
    assert result.ticket_id == opened.ticket_id
    assert result.reply_text == "Does it fail in every browser?"
    assert assistant.calls[-1] == history

    messages = await store.get_messages(opened.ticket_id)
    assert [m.text for m in messages][-2:] == ["Since this morning", "Does it fail in every browser?"]
    assert len(messages) == 4
    assert len(notifier.sent) == 1


@pytest.mark.asyncio
async def test_follow_up_on_unknown_ticket(service, assistant):
    with pytest.raises(ResourceNotFoundException):
        await service.handle_chat_turn(first_turn(), ticket_id=99)
    assert assistant.calls == []


@pytest.mark.asyncio
async def test_closed_ticket_rejects_turns_when_disabled(store, notifier, routing, user_info):
    assistant = FakeTriageAssistant(replies=["[Email] Which mailbox?"])
    service = TicketService(store, assistant, notifier, routing, allow_messages_after_close=False)
    opened = await service.handle_chat_turn(first_turn("no mail"), user_info=user_info)
    await service.resolve(opened.ticket_id, 5, "thanks")

    with pytest.raises(TicketClosedException):
        await service.handle_chat_turn(first_turn("one more thing"), ticket_id=opened.ticket_id)


@pytest.mark.asyncio
async def test_closed_ticket_accepts_turns_by_default(service, store, user_info):
    opened = await service.handle_chat_turn(first_turn(), user_info=user_info)
    await service.escalate(opened.ticket_id)

    result = await service.handle_chat_turn(first_turn("still broken"), ticket_id=opened.ticket_id)

    assert result.ticket_created is False
    assert len(await store.get_messages(opened.ticket_id)) == 4


@pytest.mark.asyncio
async def test_assistant_failure_creates_nothing(store, notifier, routing, user_info):
    assistant = FakeTriageAssistant(error=LLMException("timeout"))
    service = TicketService(store, assistant, notifier, routing)

    with pytest.raises(LLMException):
        await service.handle_chat_turn(first_turn(), user_info=user_info)

    assert notifier.sent == []
    with pytest.raises(ResourceNotFoundException):
        await store.get_ticket(1)


@pytest.mark.asyncio
async def test_escalate_notifies_with_transcript(service, store, notifier, user_info):
    opened = await service.handle_chat_turn(first_turn(), user_info=user_info)

    ticket = await service.escalate(opened.ticket_id)

    assert ticket.status == TicketStatus.ESCALATED
    notification = notifier.sent[-1]
    assert notification.to == "escalations@example.com"
    assert notification.subject == f"Escalated Ticket #{ticket.id} - Priority: normal"
    assert "Phone: 555-0100" in notification.text
    assert "USER: My site is down" in notification.text
    assert "ASSISTANT: [Website]" in notification.text


@pytest.mark.asyncio
async def test_escalate_resolved_ticket_is_rejected(service, notifier, user_info):
    opened = await service.handle_chat_turn(first_turn(), user_info=user_info)
    await service.resolve(opened.ticket_id, 3, "")
    sent_before = len(notifier.sent)

    with pytest.raises(InvalidStatusTransitionException):
        await service.escalate(opened.ticket_id)
    assert len(notifier.sent) == sent_before


@pytest.mark.asyncio
async def test_escalate_keeps_status_when_email_fails(store, assistant, routing, user_info):
    notifier = RecordingNotifier()
    service = TicketService(store, assistant, notifier, routing)
    opened = await service.handle_chat_turn(first_turn(), user_info=user_info)
    notifier.fail = True

    with pytest.raises(NotificationException):
        await service.escalate(opened.ticket_id)

    ticket = await store.get_ticket(opened.ticket_id)
    assert ticket.status == TicketStatus.ESCALATED


@pytest.mark.asyncio
async def test_mark_urgent_is_silent(service, notifier, user_info):
    opened = await service.handle_chat_turn(first_turn(), user_info=user_info)

    ticket = await service.mark_urgent(opened.ticket_id)

    assert ticket.priority == TicketPriority.URGENT
    assert ticket.status == TicketStatus.OPEN
    assert len(notifier.sent) == 1


@pytest.mark.asyncio
async def test_mark_urgent_unknown_ticket(service):
    with pytest.raises(ResourceNotFoundException):
        await service.mark_urgent(12)


@pytest.mark.asyncio
async def test_resolve_notifies_with_review(service, notifier, user_info):
    opened = await service.handle_chat_turn(first_turn(), user_info=user_info)

    ticket = await service.resolve(opened.ticket_id, 4, "Fixed after a reload")

    assert ticket.status == TicketStatus.RESOLVED
    notification = notifier.sent[-1]
    assert notification.to == "reviews@example.com"
    assert notification.subject == f"Resolved Ticket #{ticket.id} - 4/5 Stars"
    assert "Comment: Fixed after a reload" in notification.text
    assert "USER: My site is down" in notification.text


@pytest.mark.asyncio
async def test_get_ticket_with_transcript(service, user_info):
    opened = await service.handle_chat_turn(first_turn(), user_info=user_info)

    ticket, messages = await service.get_ticket_with_transcript(opened.ticket_id)

    assert ticket.id == opened.ticket_id
    assert [m.role for m in messages] == [MessageRole.USER, MessageRole.ASSISTANT]
