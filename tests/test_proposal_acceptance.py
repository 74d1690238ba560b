from __future__ import annotations

from datetime import date

import pytest
from fastapi import HTTPException
from sqlalchemy import select

from tripdesk.core.db import SessionLocal
from tripdesk.modules.notifications.models import EmailLog, EmailStatus
from tripdesk.modules.proposals.models import (
    ActorType,
    ProposalActivity,
    ProposalStatus,
    TripProposal,
)
from tripdesk.modules.workflow.service import accept_proposal

TODAY = date(2026, 10, 19)


@pytest.fixture(autouse=True)
def _frozen_today(monkeypatch):
    import tripdesk.modules.workflow.service as workflow_service

    monkeypatch.setattr(workflow_service, "today_utc", lambda: TODAY)


def _accept(notifier, number: str = "TP-20260001", **overrides):
    kwargs = {
        "proposal_number": number,
        "signature": "Dana Whitman",
        "agreed_to_terms": True,
        "notifier": notifier,
        "ip_address": "203.0.113.7",
    }
    kwargs.update(overrides)
    with SessionLocal() as session:
        return accept_proposal(session, **kwargs)


def _status(proposal_id: int) -> ProposalStatus:
    with SessionLocal() as session:
        return session.get(TripProposal, proposal_id).status


def test_sent_proposal_is_accepted_and_notifies_once(make_proposal, notifier):
    proposal_id = make_proposal(status=ProposalStatus.SENT, valid_until=date(2027, 3, 31))

    proposal = _accept(notifier)

    assert proposal.status == ProposalStatus.ACCEPTED
    assert proposal.accepted_signature == "Dana Whitman"
    assert proposal.accepted_ip == "203.0.113.7"
    assert proposal.accepted_at is not None
    assert notifier.accepted == [proposal_id]

    with SessionLocal() as session:
        activity = session.scalars(
            select(ProposalActivity).where(ProposalActivity.action == "accepted")
        ).all()
        assert len(activity) == 1
        assert activity[0].actor_type == ActorType.CUSTOMER
        assert activity[0].metadata_json["signature"] == "Dana Whitman"


def test_viewed_proposal_can_be_accepted(make_proposal, notifier):
    proposal_id = make_proposal(status=ProposalStatus.VIEWED)
    assert _accept(notifier).status == ProposalStatus.ACCEPTED
    assert notifier.accepted == [proposal_id]


def test_valid_until_today_is_still_acceptable(make_proposal, notifier):
    make_proposal(valid_until=TODAY)
    assert _accept(notifier).status == ProposalStatus.ACCEPTED


@pytest.mark.parametrize(
    ("status", "message"),
    [
        (ProposalStatus.DRAFT, "cannot be accepted until it has been sent"),
        (ProposalStatus.ACCEPTED, "already been accepted"),
        (ProposalStatus.BOOKED, "already been accepted and booked"),
        (ProposalStatus.EXPIRED, "has expired"),
        (ProposalStatus.DECLINED, "has been declined"),
    ],
)
def test_non_acceptable_statuses_are_rejected(make_proposal, notifier, status, message):
    proposal_id = make_proposal(status=status)

    with pytest.raises(HTTPException) as exc:
        _accept(notifier)

    assert exc.value.status_code == 400
    assert message in exc.value.detail
    assert _status(proposal_id) == status
    assert notifier.accepted == []


def test_lapsed_proposal_is_expired_instead_of_accepted(make_proposal, notifier):
    proposal_id = make_proposal(status=ProposalStatus.SENT, valid_until=date(2026, 10, 18))

    with pytest.raises(HTTPException) as exc:
        _accept(notifier)

    assert exc.value.detail == "This proposal has expired"
    assert _status(proposal_id) == ProposalStatus.EXPIRED
    assert notifier.accepted == []
    with SessionLocal() as session:
        actions = session.scalars(select(ProposalActivity.action)).all()
    assert actions == ["expired"]


def test_terms_and_signature_are_required(make_proposal, notifier):
    proposal_id = make_proposal()

    with pytest.raises(HTTPException) as exc:
        _accept(notifier, agreed_to_terms=False)
    assert "agree to the terms" in exc.value.detail

    with pytest.raises(HTTPException) as exc:
        _accept(notifier, signature="   ")
    assert "signature is required" in exc.value.detail

    assert _status(proposal_id) == ProposalStatus.SENT


def test_malformed_number_is_rejected_before_lookup(monkeypatch, notifier):
    import tripdesk.modules.workflow.service as workflow_service

    def _no_lookup(*_args, **_kwargs):
        raise AssertionError("lookup should not run")

    monkeypatch.setattr(workflow_service, "get_proposal_by_number", _no_lookup)

    for bad in ["TP20260001", "TP-2026-0001", "'; DROP TABLE trip_proposals;--", ""]:
        with pytest.raises(HTTPException) as exc:
            _accept(notifier, number=bad)
        assert exc.value.status_code == 400
        assert exc.value.detail == "Invalid proposal number format"


def test_unknown_number_is_not_found(notifier):
    with pytest.raises(HTTPException) as exc:
        _accept(notifier, number="TP-99999999")
    assert exc.value.status_code == 404


def test_notification_failure_does_not_undo_acceptance(make_proposal, failing_notifier):
    proposal_id = make_proposal()

    proposal = _accept(failing_notifier)

    assert proposal.status == ProposalStatus.ACCEPTED
    assert failing_notifier.accepted == [proposal_id]
    assert _status(proposal_id) == ProposalStatus.ACCEPTED


def test_losing_a_concurrent_accept_reports_already_accepted(make_proposal, notifier):
    proposal_id = make_proposal()

    with SessionLocal() as stale:
        # Loaded before the other request commits, so it still reads as sent.
        stale_proposal = stale.get(TripProposal, proposal_id)
        assert stale_proposal.status == ProposalStatus.SENT

        _accept(notifier)

        with pytest.raises(HTTPException) as exc:
            accept_proposal(
                stale,
                proposal_number="TP-20260001",
                signature="Someone Else",
                agreed_to_terms=True,
                notifier=notifier,
            )

    assert "already been accepted" in exc.value.detail
    assert notifier.accepted == [proposal_id]
    with SessionLocal() as session:
        proposal = session.get(TripProposal, proposal_id)
        assert proposal.accepted_signature == "Dana Whitman"


def test_accept_endpoint_queues_the_acceptance_email(client, make_proposal):
    proposal_id = make_proposal()

    resp = client.post(
        "/api/trip-proposals/TP-20260001/accept",
        json={"signature": "Dana Whitman", "agreed_to_terms": True},
        headers={"X-Forwarded-For": "198.51.100.4, 10.0.0.1"},
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["status"] == "accepted"
    assert resp.json()["proposal_number"] == "TP-20260001"

    with SessionLocal() as session:
        proposal = session.get(TripProposal, proposal_id)
        assert proposal.accepted_ip == "198.51.100.4"
        emails = session.scalars(select(EmailLog)).all()
    # No email provider in tests; the send is recorded as skipped.
    assert [(e.email_type, e.status) for e in emails] == [
        ("proposal_accepted", EmailStatus.SKIPPED)
    ]


def test_accept_endpoint_rejects_bad_input(client, make_proposal):
    make_proposal()

    resp = client.post(
        "/api/trip-proposals/not_a_number/accept",
        json={"signature": "Dana Whitman", "agreed_to_terms": True},
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Invalid proposal number format"

    resp = client.post(
        "/api/trip-proposals/TP-20260001/accept",
        json={"signature": "Dana Whitman"},
    )
    assert resp.status_code == 400
    assert "agree to the terms" in resp.json()["detail"]
