from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

import pytest
from fastapi import HTTPException
from sqlalchemy import select

from tripdesk.core.db import SessionLocal
from tripdesk.modules.proposals.models import (
    ActorType,
    InclusionType,
    PricingType,
    ProposalActivity,
    ProposalStatus,
    StopType,
    TripProposalStop,
)
from tripdesk.modules.proposals.schemas import (
    DayCreate,
    DayUpdate,
    GuestCreate,
    GuestUpdate,
    InclusionCreate,
    InclusionUpdate,
    ProposalCreate,
    StopCreate,
    StopUpdate,
)
from tripdesk.modules.proposals.service import (
    add_day,
    add_guest,
    add_inclusion,
    add_stop,
    calculate_pricing,
    create_proposal,
    delete_day,
    delete_guest,
    delete_inclusion,
    delete_stop,
    duplicate_proposal,
    generate_proposal_number,
    get_proposal,
    is_valid_proposal_number,
    list_activity,
    record_view,
    reorder_stops,
    send_proposal,
    today_utc,
    update_day,
    update_guest,
    update_inclusion,
    update_status,
    update_stop,
)


def _create(session, **overrides):
    data = {
        "customer_name": "Dana Whitman",
        "customer_email": "Dana.Whitman@Example.com",
        "party_size": 4,
        "start_date": date(2027, 5, 14),
        "end_date": date(2027, 5, 16),
    }
    data.update(overrides)
    return create_proposal(session, data=ProposalCreate(**data), created_by="planner")


def test_create_proposal_sets_defaults_and_first_day():
    with SessionLocal() as session:
        proposal = _create(session)

        year = today_utc().year
        assert proposal.proposal_number == f"TP-{year}0001"
        assert proposal.status == ProposalStatus.DRAFT
        assert proposal.customer_email == "dana.whitman@example.com"
        assert proposal.valid_until == today_utc() + timedelta(days=30)
        assert proposal.deposit_percentage == 50
        assert proposal.tax_rate == Decimal("0.0910")
        assert [(d.day_number, d.title, d.trip_date) for d in proposal.days] == [
            (1, "Day 1", date(2027, 5, 14))
        ]

        activity = session.scalars(select(ProposalActivity)).all()
        assert [(a.action, a.actor_type) for a in activity] == [("created", ActorType.STAFF)]

        second = _create(session, customer_name="Sam Okafor")
        assert second.proposal_number == f"TP-{year}0002"


def test_generate_proposal_number_continues_from_highest(make_proposal):
    make_proposal(proposal_number="TP-20260009")
    make_proposal(proposal_number="TP-20250042")
    with SessionLocal() as session:
        assert generate_proposal_number(session, year=2026) == "TP-20260010"
        assert generate_proposal_number(session, year=2027) == "TP-20270001"


def test_proposal_number_format():
    assert is_valid_proposal_number("TP-20260001")
    assert is_valid_proposal_number("tp-1")
    assert not is_valid_proposal_number("TP20260001")
    assert not is_valid_proposal_number("TP-2026-0001")
    assert not is_valid_proposal_number("../etc/passwd")
    assert not is_valid_proposal_number("")
    assert not is_valid_proposal_number(None)


def test_status_transitions_are_enforced():
    with SessionLocal() as session:
        proposal = _create(session)

        with pytest.raises(HTTPException) as exc:
            update_status(session, proposal=proposal, new_status=ProposalStatus.ACCEPTED)
        assert exc.value.status_code == 400
        assert exc.value.detail == "Cannot change proposal status from draft to accepted"

        sent = send_proposal(session, proposal=proposal, actor_name="planner")
        assert sent.status == ProposalStatus.SENT
        assert sent.sent_at is not None

        declined = update_status(session, proposal=sent, new_status=ProposalStatus.DECLINED)
        assert declined.status == ProposalStatus.DECLINED
        reopened = update_status(session, proposal=declined, new_status=ProposalStatus.DRAFT)
        assert reopened.status == ProposalStatus.DRAFT


def test_booked_is_terminal(make_proposal):
    proposal_id = make_proposal(status=ProposalStatus.BOOKED)
    with SessionLocal() as session:
        proposal = get_proposal(session, proposal_id=proposal_id)
        for target in ProposalStatus:
            with pytest.raises(HTTPException):
                update_status(session, proposal=proposal, new_status=target)


def test_send_requires_customer_email():
    with SessionLocal() as session:
        proposal = _create(session, customer_email=None)
        with pytest.raises(HTTPException) as exc:
            send_proposal(session, proposal=proposal)
        assert exc.value.status_code == 400
        assert proposal.status == ProposalStatus.DRAFT


def test_record_view_moves_sent_to_viewed_once(make_proposal):
    proposal_id = make_proposal(status=ProposalStatus.SENT)
    with SessionLocal() as session:
        proposal = get_proposal(session, proposal_id=proposal_id)
        record_view(session, proposal=proposal, ip_address="203.0.113.7")
        assert proposal.status == ProposalStatus.VIEWED
        assert proposal.view_count == 1
        first_seen = proposal.first_viewed_at

        record_view(session, proposal=proposal)
        assert proposal.status == ProposalStatus.VIEWED
        assert proposal.view_count == 2
        assert proposal.first_viewed_at == first_seen

        viewed = session.scalars(
            select(ProposalActivity).where(ProposalActivity.action == "viewed")
        ).all()
        assert len(viewed) == 1


def test_pricing_rolls_up_stops_and_inclusions():
    with SessionLocal() as session:
        proposal = _create(
            session, discount_percentage=Decimal("10"), gratuity_percentage=20
        )
        day = proposal.days[0]
        add_stop(
            session,
            proposal=proposal,
            day=day,
            data=StopCreate(
                stop_type=StopType.WINERY,
                custom_name="Leonetti Cellar",
                per_person_cost=Decimal("25"),
            ),
        )
        add_stop(
            session,
            proposal=proposal,
            day=day,
            data=StopCreate(
                stop_type=StopType.RESTAURANT, custom_name="Saffron", flat_cost=Decimal("150")
            ),
        )
        add_stop(
            session,
            proposal=proposal,
            day=day,
            data=StopCreate(
                stop_type=StopType.HOTEL_CHECKIN,
                custom_name="Marcus Whitman Hotel",
                room_rate=Decimal("200"),
                num_rooms=2,
                nights=2,
            ),
        )
        add_inclusion(
            session,
            proposal=proposal,
            data=InclusionCreate(
                inclusion_type=InclusionType.ARRANGED_TASTING,
                description="Reserve tasting fees",
                pricing_type=PricingType.PER_PERSON,
                unit_price=Decimal("10"),
            ),
        )
        add_inclusion(
            session,
            proposal=proposal,
            data=InclusionCreate(
                inclusion_type=InclusionType.TRANSPORTATION,
                description="Sprinter van, full day",
                unit_price=Decimal("300"),
            ),
        )
        session.expire_all()

        pricing = calculate_pricing(session, proposal=proposal)

    assert pricing.stops_subtotal == Decimal("1050.00")
    assert pricing.inclusions_subtotal == Decimal("340.00")
    assert pricing.subtotal == Decimal("1390.00")
    assert pricing.discount_amount == Decimal("139.00")
    assert pricing.taxes == Decimal("113.84")
    assert pricing.gratuity_amount == Decimal("250.20")
    assert pricing.total == Decimal("1615.04")
    assert pricing.deposit_amount == Decimal("807.52")


def test_repricing_keeps_a_paid_deposit(make_proposal):
    proposal_id = make_proposal(
        status=ProposalStatus.ACCEPTED, deposit_amount=Decimal("1250.00"), deposit_paid=True
    )
    with SessionLocal() as session:
        proposal = get_proposal(session, proposal_id=proposal_id)
        calculate_pricing(session, proposal=proposal)
        assert proposal.total == Decimal("0.00")
        assert proposal.deposit_amount == Decimal("1250.00")


def test_accepted_proposal_cannot_be_edited(make_proposal):
    proposal_id = make_proposal(status=ProposalStatus.ACCEPTED)
    with SessionLocal() as session:
        proposal = get_proposal(session, proposal_id=proposal_id)
        with pytest.raises(HTTPException) as exc:
            add_inclusion(
                session,
                proposal=proposal,
                data=InclusionCreate(
                    inclusion_type=InclusionType.CUSTOM, description="Late add"
                ),
            )
        assert exc.value.status_code == 409


def test_send_notifies_after_commit(notifier):
    with SessionLocal() as session:
        proposal = _create(session)
        proposal_id = proposal.id
        send_proposal(
            session,
            proposal=proposal,
            actor_name="planner",
            custom_message="Looking forward to May!",
            notifier=notifier,
        )
        resent = send_proposal(session, proposal=proposal, notifier=notifier)
        assert resent.status == ProposalStatus.SENT

    assert notifier.sent == [(proposal_id, "Looking forward to May!"), (proposal_id, None)]


def test_send_notification_failure_keeps_the_send(failing_notifier):
    with SessionLocal() as session:
        proposal = _create(session)
        sent = send_proposal(session, proposal=proposal, notifier=failing_notifier)
        assert sent.status == ProposalStatus.SENT
        assert len(failing_notifier.sent) == 1


def test_update_day_is_partial():
    with SessionLocal() as session:
        proposal = _create(session)
        day = proposal.days[0]
        update_day(
            session,
            proposal=proposal,
            day=day,
            data=DayUpdate(description="Red Mountain tastings", notes="Early start"),
        )
        updated = update_day(
            session, proposal=proposal, day=day, data=DayUpdate(notes=None, trip_date=None)
        )

        assert updated.title == "Day 1"
        assert updated.trip_date == date(2027, 5, 14)
        assert updated.description == "Red Mountain tastings"
        assert updated.notes is None


def test_delete_day_renumbers_the_rest():
    with SessionLocal() as session:
        proposal = _create(session)
        second = add_day(session, proposal=proposal, data=DayCreate(trip_date=date(2027, 5, 15)))
        add_day(session, proposal=proposal, data=DayCreate(trip_date=date(2027, 5, 16)))
        add_stop(
            session,
            proposal=proposal,
            day=second,
            data=StopCreate(stop_type=StopType.WINERY, custom_name="Leonetti Cellar"),
        )

        delete_day(session, proposal=proposal, day=second)

        assert [(d.day_number, d.trip_date) for d in proposal.days] == [
            (1, date(2027, 5, 14)),
            (2, date(2027, 5, 16)),
        ]
        assert session.scalars(select(TripProposalStop)).all() == []


def test_stops_can_be_edited_reordered_and_deleted():
    with SessionLocal() as session:
        proposal = _create(session)
        day = proposal.days[0]
        pickup, winery, dinner = (
            add_stop(
                session,
                proposal=proposal,
                day=day,
                data=StopCreate(stop_type=stop_type, custom_name=name),
            ).id
            for stop_type, name in [
                (StopType.PICKUP, "Pasco airport"),
                (StopType.WINERY, "Leonetti Cellar"),
                (StopType.RESTAURANT, "Saffron"),
            ]
        )

        stops = {s.id: s for s in day.stops}
        updated = update_stop(
            session,
            proposal=proposal,
            stop=stops[winery],
            data=StopUpdate(per_person_cost=Decimal("35"), client_notes="Reserve flight"),
        )
        assert updated.custom_name == "Leonetti Cellar"
        assert updated.per_person_cost == Decimal("35.00")

        with pytest.raises(HTTPException) as exc:
            update_stop(
                session, proposal=proposal, stop=stops[dinner], data=StopUpdate(custom_name=None)
            )
        assert exc.value.status_code == 400

        reordered = reorder_stops(
            session, proposal=proposal, day=day, stop_ids=[dinner, pickup, winery]
        )
        assert [(s.id, s.stop_order) for s in reordered] == [(dinner, 1), (pickup, 2), (winery, 3)]

        with pytest.raises(HTTPException) as exc:
            reorder_stops(session, proposal=proposal, day=day, stop_ids=[dinner, pickup])
        assert exc.value.status_code == 400

        delete_stop(session, proposal=proposal, stop=session.get(TripProposalStop, pickup))
        assert [(s.id, s.stop_order) for s in day.stops] == [(dinner, 1), (winery, 2)]


def test_guests_can_be_updated_and_deleted():
    with SessionLocal() as session:
        proposal = _create(session)
        dana = add_guest(
            session, proposal=proposal, data=GuestCreate(name="Dana Whitman", is_primary=True)
        )
        sam = add_guest(session, proposal=proposal, data=GuestCreate(name="Sam Whitman"))

        update_guest(
            session,
            proposal=proposal,
            guest=sam,
            data=GuestUpdate(is_primary=True, dietary_restrictions="Vegetarian"),
        )
        session.refresh(dana)
        assert dana.is_primary is False
        assert sam.is_primary is True
        assert sam.name == "Sam Whitman"

        delete_guest(session, proposal=proposal, guest=dana)
        assert [g.name for g in proposal.guests] == ["Sam Whitman"]


def test_updating_an_inclusion_recomputes_its_total():
    with SessionLocal() as session:
        proposal = _create(session)
        inclusion = add_inclusion(
            session,
            proposal=proposal,
            data=InclusionCreate(
                inclusion_type=InclusionType.TRANSPORTATION,
                description="Sprinter van",
                unit_price=Decimal("300"),
            ),
        )
        assert inclusion.total_price == Decimal("300.00")

        updated = update_inclusion(
            session,
            proposal=proposal,
            inclusion=inclusion,
            data=InclusionUpdate(pricing_type=PricingType.PER_PERSON, unit_price=Decimal("25")),
        )
        assert updated.description == "Sprinter van"
        assert updated.total_price == Decimal("100.00")

        delete_inclusion(session, proposal=proposal, inclusion=updated)
        assert proposal.inclusions == []


def test_accepted_proposal_rejects_itinerary_edits(make_proposal):
    proposal_id = make_proposal(status=ProposalStatus.DRAFT)
    with SessionLocal() as session:
        proposal = get_proposal(session, proposal_id=proposal_id)
        day = add_day(session, proposal=proposal, data=DayCreate(trip_date=date(2027, 5, 14)))
        guest = add_guest(session, proposal=proposal, data=GuestCreate(name="Dana Whitman"))
        proposal.status = ProposalStatus.ACCEPTED
        session.commit()

        edits = [
            lambda: update_day(session, proposal=proposal, day=day, data=DayUpdate(title="x")),
            lambda: delete_day(session, proposal=proposal, day=day),
            lambda: reorder_stops(session, proposal=proposal, day=day, stop_ids=[1]),
            lambda: delete_guest(session, proposal=proposal, guest=guest),
        ]
        for edit in edits:
            with pytest.raises(HTTPException) as exc:
                edit()
            assert exc.value.status_code == 409
        assert len(proposal.days) == 1


def test_duplicate_copies_itinerary_into_a_new_draft():
    with SessionLocal() as session:
        proposal = _create(session, trip_title="Spring Weekend")
        add_stop(
            session,
            proposal=proposal,
            day=proposal.days[0],
            data=StopCreate(
                stop_type=StopType.WINERY,
                custom_name="Leonetti Cellar",
                per_person_cost=Decimal("25"),
            ),
        )
        add_guest(session, proposal=proposal, data=GuestCreate(name="Dana Whitman"))
        add_inclusion(
            session,
            proposal=proposal,
            data=InclusionCreate(
                inclusion_type=InclusionType.TRANSPORTATION,
                description="Sprinter van",
                unit_price=Decimal("300"),
            ),
        )
        send_proposal(session, proposal=proposal)

        clone = duplicate_proposal(session, proposal=proposal, created_by="planner")

        assert clone.id != proposal.id
        assert clone.proposal_number != proposal.proposal_number
        assert clone.status == ProposalStatus.DRAFT
        assert clone.trip_title == "Copy of Spring Weekend"
        assert [s.custom_name for d in clone.days for s in d.stops] == ["Leonetti Cellar"]
        assert [i.description for i in clone.inclusions] == ["Sprinter van"]
        assert clone.guests == []
        assert clone.subtotal == Decimal("400.00")


def test_admin_and_customer_endpoints(client, staff_headers):
    resp = client.post(
        "/api/admin/trip-proposals",
        headers=staff_headers,
        json={
            "customer_name": "Dana Whitman",
            "customer_email": "dana.whitman@example.com",
            "party_size": 6,
            "start_date": "2027-05-14",
            "end_date": "2027-05-15",
        },
    )
    assert resp.status_code == 200, resp.text
    created = resp.json()
    number = created["proposal_number"]
    assert created["days"][0]["title"] == "Day 1"

    assert client.get(f"/api/trip-proposals/{number}").status_code == 404
    assert client.get("/api/trip-proposals/not-a-number!").status_code == 400

    resp = client.post(f"/api/admin/trip-proposals/{created['id']}/send", headers=staff_headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "sent"

    resp = client.get(f"/api/trip-proposals/{number}")
    assert resp.status_code == 200
    assert resp.json()["status"] == "viewed"
    assert resp.json()["view_count"] == 1

    resp = client.get(f"/api/admin/trip-proposals/{created['id']}/activity", headers=staff_headers)
    assert [a["action"] for a in resp.json()] == ["created", "status_changed", "viewed"]


def test_admin_endpoints_require_a_token(client):
    assert client.get("/api/admin/trip-proposals").status_code == 401
    resp = client.get(
        "/api/admin/trip-proposals", headers={"Authorization": "Bearer not-a-token"}
    )
    assert resp.status_code == 401


def test_staff_cannot_accept_through_the_status_endpoint(client, staff_headers, make_proposal):
    proposal_id = make_proposal(status=ProposalStatus.SENT, valid_until=date(2020, 1, 1))

    resp = client.post(
        f"/api/admin/trip-proposals/{proposal_id}/status",
        headers=staff_headers,
        json={"status": "accepted"},
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Cannot change proposal status from sent to accepted"

    with SessionLocal() as session:
        proposal = get_proposal(session, proposal_id=proposal_id)
        assert proposal.status == ProposalStatus.SENT
        assert proposal.accepted_at is None
        actions = [a.action for a in list_activity(session, proposal_id=proposal_id)]
        assert "status_changed" not in actions


def test_viewed_proposal_cannot_be_accepted_by_staff(make_proposal):
    proposal_id = make_proposal(status=ProposalStatus.VIEWED)
    with SessionLocal() as session:
        proposal = get_proposal(session, proposal_id=proposal_id)
        with pytest.raises(HTTPException) as exc:
            update_status(session, proposal=proposal, new_status=ProposalStatus.ACCEPTED)
        assert exc.value.status_code == 400
        assert proposal.status == ProposalStatus.VIEWED


def test_send_endpoint_passes_the_custom_message(client, staff_headers, make_proposal, notifier):
    from tripdesk.modules.notifications.dispatch import get_notifier

    client.app.dependency_overrides[get_notifier] = lambda: notifier
    proposal_id = make_proposal(status=ProposalStatus.DRAFT)

    resp = client.post(
        f"/api/admin/trip-proposals/{proposal_id}/send",
        headers=staff_headers,
        json={"custom_message": "See you in May"},
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["status"] == "sent"

    resp = client.post(f"/api/admin/trip-proposals/{proposal_id}/send", headers=staff_headers)
    assert resp.status_code == 200
    assert notifier.sent == [(proposal_id, "See you in May"), (proposal_id, None)]


def test_itinerary_edit_endpoints(client, staff_headers):
    resp = client.post(
        "/api/admin/trip-proposals",
        headers=staff_headers,
        json={
            "customer_name": "Dana Whitman",
            "party_size": 4,
            "start_date": "2027-05-14",
        },
    )
    created = resp.json()
    base = f"/api/admin/trip-proposals/{created['id']}"
    day_id = created["days"][0]["id"]

    resp = client.patch(
        f"{base}/days/{day_id}", headers=staff_headers, json={"title": "Arrival day"}
    )
    assert resp.status_code == 200
    assert resp.json()["title"] == "Arrival day"

    stop_ids = []
    for name in ("Pasco airport", "Leonetti Cellar"):
        resp = client.post(
            f"{base}/days/{day_id}/stops",
            headers=staff_headers,
            json={"stop_type": "custom", "custom_name": name},
        )
        stop_ids.append(resp.json()["id"])

    resp = client.put(
        f"{base}/days/{day_id}/stops/order",
        headers=staff_headers,
        json={"stop_ids": list(reversed(stop_ids))},
    )
    assert resp.status_code == 200
    assert [s["id"] for s in resp.json()] == list(reversed(stop_ids))

    resp = client.patch(
        f"{base}/days/{day_id}/stops/{stop_ids[0]}",
        headers=staff_headers,
        json={"flat_cost": "150"},
    )
    assert resp.status_code == 200
    assert resp.json()["flat_cost"] == "150.00"

    resp = client.delete(f"{base}/days/{day_id}/stops/{stop_ids[1]}", headers=staff_headers)
    assert resp.status_code == 204
    assert client.delete(
        f"{base}/days/{day_id}/stops/{stop_ids[1]}", headers=staff_headers
    ).status_code == 404

    resp = client.post(f"{base}/guests", headers=staff_headers, json={"name": "Sam Whitman"})
    guest_id = resp.json()["id"]
    resp = client.patch(
        f"{base}/guests/{guest_id}", headers=staff_headers, json={"phone": "509-555-0100"}
    )
    assert resp.json()["phone"] == "509-555-0100"
    assert client.delete(f"{base}/guests/{guest_id}", headers=staff_headers).status_code == 204
    assert client.delete(f"{base}/guests/{guest_id}", headers=staff_headers).status_code == 404

    resp = client.post(
        f"{base}/inclusions",
        headers=staff_headers,
        json={"inclusion_type": "planning_fee", "description": "Planning", "unit_price": "100"},
    )
    inclusion_id = resp.json()["id"]
    resp = client.patch(
        f"{base}/inclusions/{inclusion_id}", headers=staff_headers, json={"quantity": "2"}
    )
    assert resp.json()["total_price"] == "200.00"
    resp = client.delete(f"{base}/inclusions/{inclusion_id}", headers=staff_headers)
    assert resp.status_code == 204

    resp = client.post(f"{base}/duplicate", headers=staff_headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "draft"
    assert [d["title"] for d in resp.json()["days"]] == ["Arrival day"]

    assert client.delete(f"{base}/days/{day_id}", headers=staff_headers).status_code == 204
    assert client.get(base, headers=staff_headers).json()["days"] == []
