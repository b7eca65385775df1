"""Tests for capacity enforcement, waitlisting and FIFO promotion."""
import random
import threading

import pytest

from partake.exceptions import InvalidState, InvalidTransition, NotFound
from partake.models.attendee import AttendeeStatus
from partake.models.event import EventStatus
from partake.models.user import User
from partake.services import attendance_service, capacity_service
from tests.conftest import make_event, make_user, minutes


def _join_all(db, event, names, start_minute=0):
    attendees = []
    for i, name in enumerate(names):
        user = make_user(db, name)
        attendees.append(attendance_service.request_join(db, event.event_id, user.user_id,
                                                         now=minutes(start_minute + i)))
    return attendees


class TestApproveWithCapacity:

    def test_three_users_two_seats(self, db):
        """A and B are approved, C is waitlisted; removing A promotes C."""
        org = make_user(db, "Org")
        ev = make_event(db, org, max_attendees=2)
        a, b, c = _join_all(db, ev, ["A", "B", "C"])

        assert not capacity_service.approve_with_capacity(db, ev.event_id, a.id).capacity_full
        assert not capacity_service.approve_with_capacity(db, ev.event_id, b.id).capacity_full
        outcome = capacity_service.approve_with_capacity(db, ev.event_id, c.id)
        assert outcome.capacity_full
        assert outcome.attendee.status == AttendeeStatus.waitlist

        removal = capacity_service.remove_with_promotion(db, ev.event_id, a.id)
        assert removal.removed.status == AttendeeStatus.removed
        assert removal.promoted.id == c.id
        assert removal.promoted.status == AttendeeStatus.approved
        assert removal.promoted.approved_at is not None

        db.refresh(b)
        assert b.status == AttendeeStatus.approved
        assert capacity_service.approved_count(db, ev.event_id) == 2

    def test_full_event_status_tracks_capacity(self, db):
        org = make_user(db, "Org")
        ev = make_event(db, org, max_attendees=1)
        a, b = _join_all(db, ev, ["A", "B"])
        capacity_service.approve_with_capacity(db, ev.event_id, a.id)
        db.refresh(ev)
        assert ev.status == EventStatus.full

        capacity_service.approve_with_capacity(db, ev.event_id, b.id)
        capacity_service.remove_with_promotion(db, ev.event_id, a.id)
        db.refresh(ev)
        # B took the seat, so the event is still full
        assert ev.status == EventStatus.full

        capacity_service.remove_with_promotion(db, ev.event_id, b.id)
        db.refresh(ev)
        assert ev.status == EventStatus.active

    def test_waitlisted_attendee_stays_waitlisted_when_still_full(self, db):
        org = make_user(db, "Org")
        ev = make_event(db, org, max_attendees=1)
        a, b = _join_all(db, ev, ["A", "B"])
        capacity_service.approve_with_capacity(db, ev.event_id, a.id)
        capacity_service.approve_with_capacity(db, ev.event_id, b.id)
        outcome = capacity_service.approve_with_capacity(db, ev.event_id, b.id)
        assert outcome.capacity_full
        assert outcome.attendee.status == AttendeeStatus.waitlist

    def test_approving_removed_attendee_fails(self, db):
        org = make_user(db, "Org")
        ev = make_event(db, org, max_attendees=2)
        (a,) = _join_all(db, ev, ["A"])
        capacity_service.approve_with_capacity(db, ev.event_id, a.id)
        capacity_service.remove_with_promotion(db, ev.event_id, a.id)
        with pytest.raises(InvalidTransition):
            capacity_service.approve_with_capacity(db, ev.event_id, a.id)

    def test_attendee_of_other_event_not_found(self, db):
        org = make_user(db, "Org")
        ev1, ev2 = make_event(db, org), make_event(db, org)
        (a,) = _join_all(db, ev1, ["A"])
        with pytest.raises(NotFound):
            capacity_service.approve_with_capacity(db, ev2.event_id, a.id)

    def test_cancelled_event_freezes_approvals(self, db):
        org = make_user(db, "Org")
        ev = make_event(db, org)
        (a,) = _join_all(db, ev, ["A"])
        ev.status = EventStatus.cancelled
        db.commit()
        with pytest.raises(InvalidState):
            capacity_service.approve_with_capacity(db, ev.event_id, a.id)

    def test_decline_waitlisted(self, db):
        org = make_user(db, "Org")
        ev = make_event(db, org, max_attendees=1)
        a, b = _join_all(db, ev, ["A", "B"])
        capacity_service.approve_with_capacity(db, ev.event_id, a.id)
        capacity_service.approve_with_capacity(db, ev.event_id, b.id)
        declined = capacity_service.decline_request(db, ev.event_id, b.id)
        assert declined.status == AttendeeStatus.declined
        assert capacity_service.waitlist_for(db, ev.event_id) == []

    def test_explicit_waitlist_only_from_pending(self, db):
        org = make_user(db, "Org")
        ev = make_event(db, org, max_attendees=3)
        (a,) = _join_all(db, ev, ["A"])
        parked = capacity_service.waitlist_request(db, ev.event_id, a.id)
        assert parked.status == AttendeeStatus.waitlist
        with pytest.raises(InvalidTransition):
            capacity_service.waitlist_request(db, ev.event_id, a.id)
        # a seat is free, so approving the parked request admits it
        outcome = capacity_service.approve_with_capacity(db, ev.event_id, a.id)
        assert outcome.attendee.status == AttendeeStatus.approved
        assert outcome.capacity_full is False

    def test_account_scheduled_for_deletion_cannot_take_a_seat(self, db):
        org = make_user(db, "Org")
        ev = make_event(db, org, max_attendees=2)
        (a,) = _join_all(db, ev, ["A"])
        db.get(User, a.user_id).deleted_at = minutes(5)
        db.commit()
        with pytest.raises(InvalidState):
            capacity_service.approve_with_capacity(db, ev.event_id, a.id)
        db.refresh(a)
        assert a.status == AttendeeStatus.pending


class TestWaitlistPromotion:

    def test_promotes_earliest_joined(self, db):
        org = make_user(db, "Org")
        ev = make_event(db, org, max_attendees=1)
        seat = _join_all(db, ev, ["Seat"])[0]
        # Join order deliberately differs from the order they hit the waitlist
        late = _join_all(db, ev, ["Late"], start_minute=30)[0]
        early = _join_all(db, ev, ["Early"], start_minute=10)[0]
        capacity_service.approve_with_capacity(db, ev.event_id, seat.id)
        capacity_service.approve_with_capacity(db, ev.event_id, late.id)
        capacity_service.approve_with_capacity(db, ev.event_id, early.id)

        removal = capacity_service.remove_with_promotion(db, ev.event_id, seat.id)
        assert removal.promoted.id == early.id
        db.refresh(late)
        assert late.status == AttendeeStatus.waitlist

    def test_equal_join_time_prefers_lower_id(self, db):
        org = make_user(db, "Org")
        ev = make_event(db, org, max_attendees=1)
        seat = _join_all(db, ev, ["Seat"])[0]
        first = attendance_service.request_join(db, ev.event_id, make_user(db, "X").user_id, now=minutes(50))
        second = attendance_service.request_join(db, ev.event_id, make_user(db, "Y").user_id, now=minutes(50))
        for attendee in (seat, second, first):
            capacity_service.approve_with_capacity(db, ev.event_id, attendee.id)

        removal = capacity_service.remove_with_promotion(db, ev.event_id, seat.id)
        assert removal.promoted.id == min(first.id, second.id)

    def test_one_vacancy_one_promotion(self, db):
        org = make_user(db, "Org")
        ev = make_event(db, org, max_attendees=1)
        attendees = _join_all(db, ev, ["A", "B", "C", "D"])
        for attendee in attendees:
            capacity_service.approve_with_capacity(db, ev.event_id, attendee.id)

        capacity_service.remove_with_promotion(db, ev.event_id, attendees[0].id)
        waitlist = capacity_service.waitlist_for(db, ev.event_id)
        assert [a.id for a in waitlist] == [attendees[2].id, attendees[3].id]

    def test_promotion_skips_accounts_scheduled_for_deletion(self, db):
        org = make_user(db, "Org")
        ev = make_event(db, org, max_attendees=1)
        seat, leaving, staying = _join_all(db, ev, ["Seat", "Leaving", "Staying"])
        for attendee in (seat, leaving, staying):
            capacity_service.approve_with_capacity(db, ev.event_id, attendee.id)
        # deletion scheduled by another path after the user reached the waitlist
        db.get(User, leaving.user_id).deleted_at = minutes(60)
        db.commit()

        removal = capacity_service.remove_with_promotion(db, ev.event_id, seat.id)
        assert removal.promoted.id == staying.id
        db.refresh(leaving)
        assert leaving.status == AttendeeStatus.waitlist

    def test_removal_with_empty_waitlist(self, db):
        org = make_user(db, "Org")
        ev = make_event(db, org, max_attendees=3)
        (a,) = _join_all(db, ev, ["A"])
        capacity_service.approve_with_capacity(db, ev.event_id, a.id)
        removal = capacity_service.remove_with_promotion(db, ev.event_id, a.id)
        assert removal.promoted is None

    def test_removing_pending_attendee_fails(self, db):
        org = make_user(db, "Org")
        ev = make_event(db, org)
        (a,) = _join_all(db, ev, ["A"])
        with pytest.raises(InvalidTransition):
            capacity_service.remove_with_promotion(db, ev.event_id, a.id)


class TestCapacityInvariant:

    def test_random_operation_sequences(self, db):
        """count(APPROVED) never exceeds max_attendees."""
        rng = random.Random(1234)
        org = make_user(db, "Org")
        ev = make_event(db, org, max_attendees=3)
        attendees = _join_all(db, ev, [f"U{i}" for i in range(10)])

        for _ in range(80):
            attendee = rng.choice(attendees)
            db.refresh(attendee)
            op = rng.choice(["approve", "remove", "decline"])
            try:
                if op == "approve":
                    capacity_service.approve_with_capacity(db, ev.event_id, attendee.id)
                elif op == "remove":
                    capacity_service.remove_with_promotion(db, ev.event_id, attendee.id)
                else:
                    capacity_service.decline_request(db, ev.event_id, attendee.id)
            except InvalidTransition:
                pass
            assert capacity_service.approved_count(db, ev.event_id) <= ev.max_attendees

    def test_concurrent_approvals(self, db, session_factory):
        """Parallel approvals against one event never overbook it."""
        org = make_user(db, "Org")
        ev = make_event(db, org, max_attendees=3)
        attendees = _join_all(db, ev, [f"U{i}" for i in range(8)])
        event_id = ev.event_id
        errors = []

        def _approve(attendee_id):
            session = session_factory()
            try:
                capacity_service.approve_with_capacity(session, event_id, attendee_id)
            except Exception as exc:  # surfaced through the assertion below
                errors.append(exc)
            finally:
                session.close()

        threads = [threading.Thread(target=_approve, args=(a.id,)) for a in attendees]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        db.expire_all()
        assert capacity_service.approved_count(db, event_id) == 3
        assert len(capacity_service.waitlist_for(db, event_id)) == 5
