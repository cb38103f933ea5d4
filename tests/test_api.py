"""End-to-end tests for the HTTP surface."""

import pytest

from triagedesk.core import LLMException
from triagedesk.tickets.interfaces.controllers import get_triage_assistant

FIRST_TURN = {
    "messages": [{"role": "user", "content": "My site is down"}],
    "userInfo": {"name": "A", "email": "a@x.com"},
}


async def open_ticket(client) -> int:
    response = await client.post("/api/chat", json=FIRST_TURN)
    assert response.status_code == 200
    return response.json()["aiMessage"]["ticketId"]


@pytest.mark.asyncio
async def test_health_and_root(client):
    health = await client.get("/health")
    root = await client.get("/")

    assert health.status_code == 200
    assert health.json()["status"] == "healthy"
    assert root.json()["service"] == "TriageDesk"
    assert "X-Correlation-ID" in health.headers


@pytest.mark.asyncio
async def test_correlation_id_is_echoed(client):
    response = await client.get("/health", headers={"X-Correlation-ID": "abc-123"})
    assert response.headers["X-Correlation-ID"] == "abc-123"


@pytest.mark.asyncio
async def test_initiate_echoes_query(client):
    response = await client.post("/api/ticket/initiate", json={"query": "My site is down"})

    assert response.status_code == 200
    assert response.json() == {"message": "Received your query!", "query": "My site is down"}


@pytest.mark.asyncio
async def test_initiate_requires_query(client):
    response = await client.post("/api/ticket/initiate", json={})

    assert response.status_code == 400
    assert response.json() == {"error": "query is required."}


@pytest.mark.asyncio
async def test_first_chat_turn_creates_ticket(client, notifier):
    response = await client.post("/api/chat", json=FIRST_TURN)

    assert response.status_code == 200
    ai_message = response.json()["aiMessage"]
    assert ai_message["role"] == "assistant"
    assert ai_message["content"].startswith("[Website]")
    assert isinstance(ai_message["ticketId"], int) and ai_message["ticketId"] > 0

    detail = (await client.get(f"/api/ticket/{ai_message['ticketId']}")).json()
    assert detail["category"] == "Website"
    assert detail["status"] == "open"
    assert detail["priority"] == "normal"
    assert detail["userName"] == "A"
    assert [m["role"] for m in detail["messages"]] == ["user", "assistant"]
    assert [n.subject for n in notifier.sent] == [f"New Ticket #{ai_message['ticketId']}: Website"]


@pytest.mark.asyncio
async def test_follow_up_turn_appends_one_exchange(client, assistant, notifier):
    ticket_id = await open_ticket(client)
    assistant.replies.append("Which browser are you using?")

    response = await client.post("/api/chat", json={
        "messages": [
            {"role": "user", "content": "My site is down"},
            {"role": "user", "content": "Since this morning"},
        ],
        "ticketId": ticket_id,
    })

    assert response.status_code == 200
    ai_message = response.json()["aiMessage"]
    assert ai_message == {"role": "assistant", "content": "Which browser are you using?"}

    detail = (await client.get(f"/api/ticket/{ticket_id}")).json()
    assert [m["content"] for m in detail["messages"]] == [
        "My site is down",
        "[Website] Sorry to hear that. When did the site stop loading?",
        "Since this morning",
        "Which browser are you using?",
    ]
    assert (await client.get(f"/api/ticket/{ticket_id + 1}")).status_code == 404
    assert len(notifier.sent) == 1


@pytest.mark.asyncio
async def test_chat_without_user_info_is_rejected(client, assistant, notifier):
    response = await client.post("/api/chat", json={"messages": FIRST_TURN["messages"]})

    assert response.status_code == 400
    assert "error" in response.json()
    assert assistant.calls == []
    assert notifier.sent == []


@pytest.mark.asyncio
async def test_chat_without_messages_is_rejected(client, assistant):
    response = await client.post("/api/chat", json={"userInfo": FIRST_TURN["userInfo"]})

    assert response.status_code == 400
    assert response.json() == {"error": "messages is required."}
    assert assistant.calls == []


@pytest.mark.asyncio
async def test_chat_on_unknown_ticket(client):
    response = await client.post("/api/chat", json={**FIRST_TURN, "ticketId": 404})

    assert response.status_code == 404
    assert response.json() == {"error": "Ticket with id '404' not found"}


@pytest.mark.asyncio
async def test_chat_ai_failure_is_generic_500(client, assistant, notifier):
    assistant.error = LLMException("upstream timeout")

    response = await client.post("/api/chat", json=FIRST_TURN)

    assert response.status_code == 500
    assert response.json() == {"error": "AI service error."}
    assert notifier.sent == []


@pytest.mark.asyncio
async def test_chat_without_configured_assistant(app, client):
    app.dependency_overrides[get_triage_assistant] = lambda: None

    response = await client.post("/api/chat", json=FIRST_TURN)

    assert response.status_code == 503
    assert response.json() == {"error": "AI service not configured."}


@pytest.mark.asyncio
async def test_ticket_actions_work_without_assistant(app, client):
    ticket_id = await open_ticket(client)
    app.dependency_overrides[get_triage_assistant] = lambda: None

    response = await client.post("/api/ticket/urgent", json={"ticketId": ticket_id})

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_escalate(client, notifier):
    ticket_id = await open_ticket(client)

    response = await client.post("/api/ticket/escalate", json={"ticketId": ticket_id})

    assert response.status_code == 200
    assert response.json() == {"message": "Ticket escalated successfully."}
    detail = (await client.get(f"/api/ticket/{ticket_id}")).json()
    assert detail["status"] == "escalated"
    assert detail["rating"] is None
    assert detail["priority"] == "normal"
    assert notifier.sent[-1].to == "escalations@example.com"


@pytest.mark.asyncio
async def test_urgent_keeps_status(client, notifier):
    ticket_id = await open_ticket(client)

    response = await client.post("/api/ticket/urgent", json={"ticketId": ticket_id})

    assert response.status_code == 200
    assert response.json() == {"message": "Ticket marked as urgent."}
    detail = (await client.get(f"/api/ticket/{ticket_id}")).json()
    assert detail["priority"] == "urgent"
    assert detail["status"] == "open"
    assert len(notifier.sent) == 1


@pytest.mark.asyncio
async def test_resolve_sets_review_and_notifies_once(client, notifier):
    ticket_id = await open_ticket(client)
    sent_before = len(notifier.sent)

    response = await client.post(
        "/api/ticket/resolve", json={"ticketId": ticket_id, "rating": 5, "comment": "great"}
    )

    assert response.status_code == 200
    assert response.json() == {"message": "Ticket resolved and review submitted."}
    detail = (await client.get(f"/api/ticket/{ticket_id}")).json()
    assert detail["status"] == "resolved"
    assert detail["rating"] == 5
    assert detail["reviewComment"] == "great"
    assert len(notifier.sent) == sent_before + 1


@pytest.mark.asyncio
@pytest.mark.parametrize("path, body", [
    ("/api/ticket/escalate", {}),
    ("/api/ticket/urgent", {}),
    ("/api/ticket/resolve", {"rating": 5, "comment": "great"}),
])
async def test_missing_ticket_id_has_no_side_effects(client, notifier, path, body):
    ticket_id = await open_ticket(client)
    before = (await client.get(f"/api/ticket/{ticket_id}")).json()
    sent_before = len(notifier.sent)

    response = await client.post(path, json=body)

    assert response.status_code == 400
    assert response.json() == {"error": "ticketId is required."}
    assert (await client.get(f"/api/ticket/{ticket_id}")).json() == before
    assert len(notifier.sent) == sent_before


@pytest.mark.asyncio
@pytest.mark.parametrize("rating", [0, 6])
async def test_rating_out_of_range(client, rating):
    ticket_id = await open_ticket(client)

    response = await client.post(
        "/api/ticket/resolve", json={"ticketId": ticket_id, "rating": rating}
    )

    assert response.status_code == 400
    assert response.json()["error"].startswith("Invalid rating")


@pytest.mark.asyncio
@pytest.mark.parametrize("path, body", [
    ("/api/ticket/escalate", {"ticketId": 999}),
    ("/api/ticket/urgent", {"ticketId": 999}),
    ("/api/ticket/resolve", {"ticketId": 999, "rating": 4}),
])
async def test_unknown_ticket_is_404(client, notifier, path, body):
    response = await client.post(path, json=body)

    assert response.status_code == 404
    assert notifier.sent == []


@pytest.mark.asyncio
async def test_escalating_resolved_ticket_is_conflict(client):
    ticket_id = await open_ticket(client)
    await client.post("/api/ticket/resolve", json={"ticketId": ticket_id, "rating": 3})

    response = await client.post("/api/ticket/escalate", json={"ticketId": ticket_id})

    assert response.status_code == 409
    detail = (await client.get(f"/api/ticket/{ticket_id}")).json()
    assert detail["status"] == "resolved"


@pytest.mark.asyncio
async def test_notification_failure_keeps_persisted_state(client, notifier):
    ticket_id = await open_ticket(client)
    notifier.fail = True

    response = await client.post("/api/ticket/escalate", json={"ticketId": ticket_id})

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to escalate ticket."}
    detail = (await client.get(f"/api/ticket/{ticket_id}")).json()
    assert detail["status"] == "escalated"


@pytest.mark.asyncio
async def test_resolve_notification_failure_keeps_review(client, notifier):
    ticket_id = await open_ticket(client)
    notifier.fail = True

    response = await client.post(
        "/api/ticket/resolve", json={"ticketId": ticket_id, "rating": 2, "comment": "meh"}
    )

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to resolve ticket."}
    detail = (await client.get(f"/api/ticket/{ticket_id}")).json()
    assert detail["status"] == "resolved"
    assert detail["rating"] == 2
