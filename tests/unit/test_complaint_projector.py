"""Unit tests for complaint rules and the projector with in-memory collaborators."""

from types import SimpleNamespace

import pytest

from supportdesk.complaints.application import (
    ComplaintProjector,
    ExplicitRestaurantResolver,
    IComplaintRepository,
    IOrderLookup,
    OrderRestaurantResolver,
)
from supportdesk.complaints.domain import complaint_summary, validate_rating
from supportdesk.core import ResourceNotFoundException, ValidationException


class InMemoryComplaints(IComplaintRepository):
    def __init__(self):
        self.rows = {}

    async def get_by_ticket(self, ticket_id):
        return self.rows.get(ticket_id)

    async def create(self, ticket_id, restaurant_id, complaint_type, summary, resolution_status):
        row = SimpleNamespace(
            id=len(self.rows) + 1,
            ticket_id=ticket_id,
            restaurant_id=restaurant_id,
            complaint_type=complaint_type,
            complaint_summary=summary,
            support_notes=None,
            customer_rating=None,
            resolution_status=resolution_status,
            resolved_at=None,
        )
        self.rows[ticket_id] = row
        return row

    async def update(self, complaint):
        return complaint

    async def list_for_vendor(self, vendor_id, limit):
        return list(self.rows.values())[:limit]

    async def list_for_ticket(self, ticket_id):
        return [self.rows[ticket_id]] if ticket_id in self.rows else []


class FakeOrders(IOrderLookup):
    def __init__(self, mapping=None, error=None):
        self.mapping = mapping or {}
        self.error = error

    async def restaurant_for_order(self, order_id):
        if self.error is not None:
            raise self.error
        return self.mapping.get(order_id)


def make_ticket(**overrides):
    values = dict(
        id=7, category="food_quality", subject="Cold food", description="Everything was cold",
        status="open", restaurant_id=None, order_id=None,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


class TestComplaintRules:
    def test_summary_prefers_subject(self):
        assert complaint_summary("Cold food", "Everything was cold") == "Cold food"

    def test_summary_falls_back_to_description(self):
        assert complaint_summary("  ", "Everything was cold") == "Everything was cold"

    def test_summary_may_be_empty(self):
        assert complaint_summary(None, "") is None

    @pytest.mark.parametrize("rating", [1, 3, 5, None])
    def test_valid_ratings(self, rating):
        assert validate_rating(rating) == rating

    @pytest.mark.parametrize("rating", [0, 6, -1, True])
    def test_invalid_ratings(self, rating):
        with pytest.raises(ValidationException):
            validate_rating(rating)


class TestRestaurantResolution:
    async def test_explicit_restaurant_wins_over_order(self):
        projector = ComplaintProjector.with_order_lookup(InMemoryComplaints(), FakeOrders({500: 2}))

        restaurant_id = await projector.resolve_restaurant(make_ticket(order_id=500), explicit_restaurant_id=1)

        assert restaurant_id == 1

    async def test_restaurant_on_ticket_counts_as_explicit(self):
        resolver = ExplicitRestaurantResolver()
        assert await resolver.resolve(make_ticket(restaurant_id=3), None) == 3

    async def test_order_lookup_infers_restaurant(self):
        projector = ComplaintProjector.with_order_lookup(InMemoryComplaints(), FakeOrders({500: 2}))

        assert await projector.resolve_restaurant(make_ticket(order_id=500)) == 2

    async def test_lookup_failure_means_no_restaurant(self):
        resolver = OrderRestaurantResolver(FakeOrders(error=ConnectionError("orders db down")))

        assert await resolver.resolve(make_ticket(order_id=500), None) is None

    async def test_nothing_to_resolve(self):
        projector = ComplaintProjector.with_order_lookup(InMemoryComplaints(), FakeOrders())

        assert await projector.resolve_restaurant(make_ticket()) is None


class TestComplaintProjector:
    async def test_projects_once_per_ticket(self):
        repo = InMemoryComplaints()
        projector = ComplaintProjector.with_order_lookup(repo, FakeOrders())
        ticket = make_ticket(restaurant_id=4)

        first = await projector.project(ticket)
        second = await projector.project(ticket)

        assert first is second
        assert len(repo.rows) == 1
        assert first.complaint_type == "food_quality"
        assert first.complaint_summary == "Cold food"
        assert first.resolution_status == "open"

    async def test_no_restaurant_no_complaint(self):
        repo = InMemoryComplaints()
        projector = ComplaintProjector.with_order_lookup(repo, FakeOrders(error=RuntimeError("boom")))

        assert await projector.project(make_ticket(order_id=9)) is None
        assert repo.rows == {}

    async def test_mirror_status_stamps_resolution(self):
        repo = InMemoryComplaints()
        projector = ComplaintProjector.with_order_lookup(repo, FakeOrders())
        ticket = make_ticket(restaurant_id=4)
        await projector.project(ticket)

        ticket.status = "resolved"
        complaint = await projector.mirror_status(ticket)

        assert complaint.resolution_status == "resolved"
        assert complaint.resolved_at is not None

    async def test_mirror_status_without_complaint(self):
        projector = ComplaintProjector.with_order_lookup(InMemoryComplaints(), FakeOrders())
        assert await projector.mirror_status(make_ticket()) is None

    async def test_annotate(self):
        repo = InMemoryComplaints()
        projector = ComplaintProjector.with_order_lookup(repo, FakeOrders())
        await projector.project(make_ticket(restaurant_id=4))

        complaint = await projector.annotate(7, support_notes="Refunded the meal", customer_rating=2)

        assert complaint.support_notes == "Refunded the meal"
        assert complaint.customer_rating == 2

    async def test_annotate_rejects_rating_before_lookup(self):
        projector = ComplaintProjector.with_order_lookup(InMemoryComplaints(), FakeOrders())

        with pytest.raises(ValidationException):
            await projector.annotate(7, customer_rating=9)

    async def test_annotate_unknown_ticket(self):
        projector = ComplaintProjector.with_order_lookup(InMemoryComplaints(), FakeOrders())

        with pytest.raises(ResourceNotFoundException):
            await projector.annotate(7, support_notes="hi")
