"""Shared fixtures: a file-backed SQLite database, seed data and a stub classifier."""

from typing import Optional

import httpx
import pytest

from supportdesk.complaints.application import ComplaintProjector
from supportdesk.complaints.infrastructure import SQLAlchemyComplaintRepository, SQLAlchemyOrderLookup
from supportdesk.config import Settings, TicketCategory, UserRole
from supportdesk.infrastructure.database import Database
from supportdesk.shared.infrastructure.read_models import OrderModel, RestaurantModel, UserModel
from supportdesk.tickets.application import EscalationEngine, MessageLedger, TicketService, TicketStore
from supportdesk.tickets.infrastructure import (
    SQLAlchemyAgentDirectory,
    SQLAlchemyEscalationRepository,
    SQLAlchemyMessageRepository,
    SQLAlchemyTicketRepository,
)
from supportdesk.triage.application import ClassifierGateway, IClassifier
from supportdesk.triage.domain import Verdict
from supportdesk.triage.infrastructure import SQLAlchemyClassifierLogRepository


class StubClassifier(IClassifier):
    """Returns a fixed verdict and remembers what it was asked."""

    def __init__(
        self,
        message: str = "Thanks, we're looking into it.",
        confidence: float = 0.9,
        intent: str = "general_question",
        needs_human: bool = False,
        error: Optional[Exception] = None,
    ):
        self.message = message
        self.confidence = confidence
        self.intent = intent
        self.needs_human = needs_human
        self.error = error
        self.calls = []

    async def classify(self, query_text: str, category: TicketCategory) -> Verdict:
        self.calls.append((query_text, category))
        if self.error is not None:
            raise self.error
        return Verdict(
            message=self.message,
            confidence_score=self.confidence,
            intent=self.intent,
            needs_human=self.needs_human,
        )


# Seeded ids
STUDENT_ID = 1
OTHER_STUDENT_ID = 2
VENDOR_ID = 10
AGENT_IDS = (20, 21, 22)
SENIOR_ID = 30
ADMIN_ID = 40
RESTAURANT_ID = 100
OTHER_RESTAURANT_ID = 101
ORDER_ID = 500
ORDER_WITHOUT_RESTAURANT_ID = 501


@pytest.fixture
async def database(tmp_path):
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'support_desk.db'}")
    await database.create_tables()
    yield database
    await database.close()


@pytest.fixture
async def seeded(database):
    """Users, restaurants and orders owned by the neighbouring services."""
    async with database.session() as session:
        session.add_all([
            UserModel(id=STUDENT_ID, full_name="Sam Student", email="sam@campus.edu", role=UserRole.STUDENT.value),
            UserModel(id=OTHER_STUDENT_ID, full_name="Olive Other", email="olive@campus.edu", role=UserRole.STUDENT.value),
            UserModel(id=VENDOR_ID, full_name="Vera Vendor", role=UserRole.VENDOR.value),
            UserModel(id=AGENT_IDS[0], full_name="Ann Agent", role=UserRole.SUPPORT_AGENT.value),
            UserModel(id=AGENT_IDS[1], full_name="Ben Agent", role=UserRole.SUPPORT_AGENT.value),
            UserModel(id=AGENT_IDS[2], full_name="Cat Agent", role=UserRole.SUPPORT_AGENT.value),
            UserModel(id=SENIOR_ID, full_name="Sid Senior", role=UserRole.SENIOR_SUPPORT.value),
            UserModel(id=ADMIN_ID, full_name="Ada Admin", role=UserRole.ADMIN.value),
        ])
        await session.flush()
        session.add_all([
            RestaurantModel(id=RESTAURANT_ID, restaurant_name="Campus Curry", vendor_id=VENDOR_ID),
            RestaurantModel(id=OTHER_RESTAURANT_ID, restaurant_name="Noodle Bar", vendor_id=None),
        ])
        await session.flush()
        session.add_all([
            OrderModel(id=ORDER_ID, restaurant_id=RESTAURANT_ID, order_reference="ORD-500"),
            OrderModel(id=ORDER_WITHOUT_RESTAURANT_ID, restaurant_id=None, order_reference="ORD-501"),
        ])
    return database


@pytest.fixture
async def session(seeded):
    async with seeded.session() as session:
        yield session


@pytest.fixture
def classifier():
    return StubClassifier()


@pytest.fixture
def gateway(classifier):
    return ClassifierGateway(classifier, timeout_seconds=1.0)


def build_service(session, gateway: ClassifierGateway, agent_directory=None) -> TicketService:
    store = TicketStore(SQLAlchemyTicketRepository(session))
    ledger = MessageLedger(SQLAlchemyMessageRepository(session))
    engine = EscalationEngine(
        store,
        ledger,
        SQLAlchemyEscalationRepository(session),
        agent_directory or SQLAlchemyAgentDirectory(session),
    )
    projector = ComplaintProjector.with_order_lookup(
        SQLAlchemyComplaintRepository(session),
        SQLAlchemyOrderLookup(session),
    )
    return TicketService(
        store,
        ledger,
        gateway,
        engine,
        projector,
        SQLAlchemyClassifierLogRepository(session),
        session=session,
    )


@pytest.fixture
def service(session, gateway):
    return build_service(session, gateway)


@pytest.fixture
async def client(seeded, gateway):
    from supportdesk.main import create_app

    app = create_app(Settings(environment="test", create_tables_on_startup=False))
    app.state.database = seeded
    app.state.classifier_gateway = gateway

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def as_user(user_id: int, role: UserRole) -> dict:
    """Identity headers set by the upstream gateway."""
    return {"X-User-Id": str(user_id), "X-User-Role": role.value}
