from __future__ import annotations

import os
from datetime import date
from decimal import Decimal

import pytest

# Set env before any tripdesk imports (settings/engine are created at import time).
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite:///./.tripdesk_test.db")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test")
os.environ.setdefault("OPENAI_API_KEY", "")
os.environ.setdefault("RESEND_API_KEY", "")


@pytest.fixture(autouse=True)
def _reset_db() -> None:
    import tripdesk.models  # noqa: F401
    from tripdesk.core.db import engine
    from tripdesk.core.models import Base

    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)

    yield


class RecordingNotifier:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.sent: list[tuple[int, str | None]] = []
        self.accepted: list[int] = []
        self.deposits: list[tuple[int, Decimal]] = []

    def proposal_sent(self, proposal_id: int, custom_message: str | None = None) -> None:
        self.sent.append((proposal_id, custom_message))
        if self.fail:
            raise RuntimeError("notification backend down")

    def proposal_accepted(self, proposal_id: int) -> None:
        self.accepted.append(proposal_id)
        if self.fail:
            raise RuntimeError("notification backend down")

    def deposit_received(self, proposal_id: int, amount: Decimal) -> None:
        self.deposits.append((proposal_id, amount))
        if self.fail:
            raise RuntimeError("notification backend down")


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def failing_notifier() -> RecordingNotifier:
    return RecordingNotifier(fail=True)


@pytest.fixture
def make_proposal():
    from tripdesk.core.db import SessionLocal
    from tripdesk.modules.proposals.models import ProposalStatus, TripProposal

    def _make(
        *,
        proposal_number: str = "TP-20260001",
        status: ProposalStatus = ProposalStatus.SENT,
        valid_until: date | None = date(2027, 3, 31),
        deposit_amount: Decimal = Decimal("1250.00"),
        deposit_paid: bool = False,
        customer_email: str | None = "dana.whitman@example.com",
        brand_id: int | None = None,
    ) -> int:
        with SessionLocal() as session:
            proposal = TripProposal(
                proposal_number=proposal_number,
                status=status,
                brand_id=brand_id,
                customer_name="Dana Whitman",
                customer_email=customer_email,
                trip_title="Walla Walla Spring Weekend",
                party_size=6,
                start_date=date(2027, 5, 14),
                end_date=date(2027, 5, 16),
                total=Decimal("2500.00"),
                deposit_amount=deposit_amount,
                deposit_paid=deposit_paid,
                valid_until=valid_until,
            )
            session.add(proposal)
            session.commit()
            return proposal.id

    return _make


@pytest.fixture
def staff_headers() -> dict[str, str]:
    from tripdesk.core.security import create_access_token

    token = create_access_token(subject="planner@wallawalla.travel")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client():
    from fastapi.testclient import TestClient

    from tripdesk.main import create_app

    app = create_app()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
