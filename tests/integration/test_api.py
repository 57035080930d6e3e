"""HTTP tests for the support endpoints, driven through the ASGI app."""

from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from supportdesk.config import UserRole

from conftest import (
    ADMIN_ID, AGENT_IDS, ORDER_ID, OTHER_STUDENT_ID, RESTAURANT_ID,
    SENIOR_ID, STUDENT_ID, VENDOR_ID, as_user,
)

STUDENT = as_user(STUDENT_ID, UserRole.STUDENT)
OTHER_STUDENT = as_user(OTHER_STUDENT_ID, UserRole.STUDENT)
AGENT = as_user(AGENT_IDS[0], UserRole.SUPPORT_AGENT)
SENIOR = as_user(SENIOR_ID, UserRole.SENIOR_SUPPORT)
ADMIN = as_user(ADMIN_ID, UserRole.ADMIN)
VENDOR = as_user(VENDOR_ID, UserRole.VENDOR)

TICKET = {
    "ticket_type": "food_quality",
    "subject": "Cold curry",
    "description": "The curry arrived cold",
    "restaurant_id": RESTAURANT_ID,
}


async def open_ticket(client, **overrides):
    response = await client.post("/support/tickets", json={**TICKET, **overrides}, headers=STUDENT)
    assert response.status_code == 201, response.text
    return response.json()


class TestCreateTicketEndpoint:
    async def test_created(self, client):
        body = await open_ticket(client)

        assert body["message"] == "Support ticket created successfully"
        assert body["status"] == "open"
        assert body["escalated"] is False
        assert body["ai_response"]
        assert body["warnings"] == []
        assert isinstance(body["ticket_id"], int)

    async def test_missing_fields(self, client):
        response = await client.post(
            "/support/tickets", json={"ticket_type": "payment"}, headers=STUDENT
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Missing required fields"

    async def test_malformed_body_is_400(self, client):
        response = await client.post(
            "/support/tickets", json={**TICKET, "order_id": "not-a-number"}, headers=STUDENT
        )

        assert response.status_code == 400

    async def test_requires_identity(self, client):
        response = await client.post("/support/tickets", json=TICKET)

        assert response.status_code == 401

    async def test_agents_cannot_open_tickets(self, client):
        response = await client.post("/support/tickets", json=TICKET, headers=AGENT)

        assert response.status_code == 403

    async def test_urgent_double_charge(self, client):
        body = await open_ticket(
            client,
            ticket_type="payment",
            subject="Double charge",
            description="I was charged twice for my order",
            priority="urgent",
            restaurant_id=None,
            order_id=ORDER_ID,
        )

        assert body["escalated"] is True
        assert body["status"] == "open"

        queue = (await client.get("/support/tickets", headers=AGENT)).json()["tickets"]
        assert queue[0]["id"] == body["ticket_id"]
        assert queue[0]["status"] == "assigned"
        assert queue[0]["assigned_to"] == AGENT_IDS[0]


class TestMyTickets:
    async def test_lists_own_tickets_newest_first(self, client):
        first = await open_ticket(client, subject="First")
        second = await open_ticket(client, subject="Second")

        response = await client.get("/support/tickets/my-tickets", headers=STUDENT)

        assert response.status_code == 200
        ids = [t["id"] for t in response.json()["tickets"]]
        assert ids == [second["ticket_id"], first["ticket_id"]]
        assert response.json()["tickets"][0]["restaurant_name"] == "Campus Curry"

    async def test_other_customers_see_nothing(self, client):
        await open_ticket(client)

        response = await client.get("/support/tickets/my-tickets", headers=OTHER_STUDENT)

        assert response.json() == {"tickets": []}

    async def test_vendor_rejected(self, client):
        response = await client.get("/support/tickets/my-tickets", headers=VENDOR)

        assert response.status_code == 403


class TestMessages:
    async def test_conversation_and_internal_notes(self, client):
        ticket = await open_ticket(client)
        url = f"/support/tickets/{ticket['ticket_id']}/messages"

        note = await client.post(url, json={"message_text": "Check with kitchen", "is_internal_note": True}, headers=AGENT)
        reply = await client.post(url, json={"message_text": "Sorry about that!"}, headers=AGENT)

        assert note.status_code == 201
        assert reply.json()["message"] == "Message sent successfully"
        assert isinstance(reply.json()["message_id"], int)

        customer_view = (await client.get(url, headers=STUDENT)).json()["messages"]
        agent_view = (await client.get(url, headers=AGENT)).json()["messages"]

        assert [m["message_text"] for m in customer_view][-1] == "Sorry about that!"
        assert "Check with kitchen" not in [m["message_text"] for m in customer_view]
        assert "Check with kitchen" in [m["message_text"] for m in agent_view]

    async def test_agent_reply_starts_progress(self, client):
        ticket = await open_ticket(client)

        await client.post(
            f"/support/tickets/{ticket['ticket_id']}/messages",
            json={"message_text": "On it"},
            headers=SENIOR,
        )

        mine = (await client.get("/support/tickets/my-tickets", headers=STUDENT)).json()["tickets"]
        assert mine[0]["status"] == "in_progress"

    async def test_blank_message(self, client):
        ticket = await open_ticket(client)

        response = await client.post(
            f"/support/tickets/{ticket['ticket_id']}/messages",
            json={"message_text": "  "},
            headers=STUDENT,
        )

        assert response.status_code == 400

    async def test_non_owner_forbidden(self, client):
        ticket = await open_ticket(client)

        response = await client.get(f"/support/tickets/{ticket['ticket_id']}/messages", headers=OTHER_STUDENT)

        assert response.status_code == 403

    async def test_vendor_cannot_post(self, client):
        ticket = await open_ticket(client)

        response = await client.post(
            f"/support/tickets/{ticket['ticket_id']}/messages",
            json={"message_text": "Hello from the kitchen"},
            headers=VENDOR,
        )

        assert response.status_code == 403

    async def test_unknown_ticket(self, client):
        response = await client.get("/support/tickets/9999/messages", headers=AGENT)

        assert response.status_code == 404


class TestAgentEndpoints:
    async def test_queue_requires_support_role(self, client):
        response = await client.get("/support/tickets", headers=STUDENT)

        assert response.status_code == 403

    async def test_queue_filter_by_priority(self, client):
        await open_ticket(client, priority="low")
        high = await open_ticket(client, priority="high")

        response = await client.get("/support/tickets", params={"priority": "high"}, headers=ADMIN)

        assert [t["id"] for t in response.json()["tickets"]] == [high["ticket_id"]]

    async def test_unknown_filter_value(self, client):
        response = await client.get("/support/tickets", params={"status": "waiting"}, headers=ADMIN)

        assert response.status_code == 400

    async def test_status_update_and_conflict(self, client):
        ticket = await open_ticket(client)
        url = f"/support/tickets/{ticket['ticket_id']}/status"

        resolved = await client.patch(url, json={"status": "resolved"}, headers=SENIOR)
        reopened = await client.patch(url, json={"status": "open"}, headers=SENIOR)

        assert resolved.status_code == 200
        assert resolved.json() == {"ticket_id": ticket["ticket_id"], "status": "resolved"}
        assert reopened.status_code == 409

    async def test_in_progress_ticket_with_agent_cannot_be_escalated(self, client):
        ticket = await open_ticket(client, priority="urgent")
        url = f"/support/tickets/{ticket['ticket_id']}/status"

        started = await client.patch(url, json={"status": "in_progress"}, headers=SENIOR)
        escalated = await client.patch(url, json={"status": "escalated"}, headers=SENIOR)

        assert started.status_code == 200
        assert escalated.status_code == 409

    async def test_manual_escalation(self, client):
        ticket = await open_ticket(client)

        response = await client.post(
            f"/support/tickets/{ticket['ticket_id']}/escalate",
            json={"to_agent_id": SENIOR_ID, "reason": "Refund over limit", "level": "senior"},
            headers=AGENT,
        )

        assert response.status_code == 200
        assert response.json()["assigned_to"] == SENIOR_ID

    async def test_debug_ticket(self, client):
        ticket = await open_ticket(client)

        response = await client.get(f"/support/debug/ticket/{ticket['ticket_id']}", headers=ADMIN)

        body = response.json()
        assert response.status_code == 200
        assert body["ticket"]["id"] == ticket["ticket_id"]
        assert len(body["messages"]) == 2
        assert body["restaurant_complaints"][0]["restaurant_id"] == RESTAURANT_ID

    async def test_debug_unknown_ticket(self, client):
        response = await client.get("/support/debug/ticket/4040", headers=ADMIN)

        assert response.status_code == 404


class TestComplaintEndpoints:
    async def test_vendor_sees_complaints(self, client):
        ticket = await open_ticket(client)

        response = await client.get("/support/complaints/restaurant", headers=VENDOR)

        complaints = response.json()["complaints"]
        assert response.status_code == 200
        assert [c["ticket_id"] for c in complaints] == [ticket["ticket_id"]]
        assert complaints[0]["complaint_summary"] == "Cold curry"
        assert complaints[0]["status"] == "open"

    async def test_only_vendors(self, client):
        response = await client.get("/support/complaints/restaurant", headers=AGENT)

        assert response.status_code == 403

    async def test_annotate(self, client):
        ticket = await open_ticket(client)

        response = await client.patch(
            f"/support/complaints/{ticket['ticket_id']}",
            json={"support_notes": "Meal refunded", "customer_rating": 2},
            headers=AGENT,
        )

        assert response.status_code == 200
        assert response.json()["customer_rating"] == 2

        vendor_view = (await client.get("/support/complaints/restaurant", headers=VENDOR)).json()
        assert vendor_view["complaints"][0]["support_notes"] == "Meal refunded"

    async def test_annotate_bad_rating(self, client):
        ticket = await open_ticket(client)

        response = await client.patch(
            f"/support/complaints/{ticket['ticket_id']}",
            json={"customer_rating": 11},
            headers=AGENT,
        )

        assert response.status_code == 400


class TestStorageFailures:
    async def test_read_failure_is_503(self, client, monkeypatch):
        async def broken_execute(self, *args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        monkeypatch.setattr(AsyncSession, "execute", broken_execute)

        response = await client.get("/support/tickets/my-tickets", headers=STUDENT)

        assert response.status_code == 503
        assert response.json()["error"] == "Failed to list customer tickets"
        assert response.json()["details"]["error_type"] == "OperationalError"

    async def test_write_failure_is_503(self, client, monkeypatch):
        async def broken_flush(self, *args, **kwargs):
            raise OperationalError("INSERT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(AsyncSession, "flush", broken_flush)

        response = await client.post("/support/tickets", json=TICKET, headers=STUDENT)

        assert response.status_code == 503
        assert response.json()["details"]["operation"] == "create ticket"


class TestServiceEndpoints:
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["checks"]["database"] == "connected"

    async def test_correlation_id_echoed(self, client):
        response = await client.get("/", headers={"X-Correlation-ID": "abc-123"})

        assert response.headers["X-Correlation-ID"] == "abc-123"

    async def test_response_time_header_and_request_metrics(self, client):
        await client.get("/")
        response = await client.get("/health")

        assert response.headers["X-Response-Time"].endswith("s")
        body = response.json()
        assert body["metrics"]["requests"] == 2
        assert body["checks"]["grafana"] == "disabled"
