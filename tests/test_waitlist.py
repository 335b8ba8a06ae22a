import pytest

from gymstudio.core.auth import Principal
from gymstudio.core.errors import ConflictError, ForbiddenError, InvalidStateError, NotFoundError
from gymstudio.db import models
from gymstudio.services import booking_service, credit_service, schedule_service, waitlist_service


def member_principal(member):
    return Principal(user_id=member.user_id, role=models.UserRole.member)


def active_positions(session, schedule_id):
    entries = (
        session.query(models.ClassWaitlist)
        .filter(
            models.ClassWaitlist.class_schedule_id == schedule_id,
            models.ClassWaitlist.status.in_(models.ACTIVE_WAITLIST_STATUSES),
        )
        .order_by(models.ClassWaitlist.position)
        .all()
    )
    return [(entry.member_id, entry.position) for entry in entries]


def test_join_is_idempotent(db_session, factory):
    trainer = factory.trainer(db_session)
    schedule = factory.schedule(db_session, trainer)
    member = factory.member(db_session)

    first = waitlist_service.join_waitlist(db_session, schedule.id, member.id)
    second = waitlist_service.join_waitlist(db_session, schedule.id, member.id)

    assert first.id == second.id
    assert second.position == 1
    assert db_session.query(models.ClassWaitlist).count() == 1


def test_positions_stay_contiguous_after_promotion(db_session, factory):
    trainer = factory.trainer(db_session)
    schedule = factory.schedule(db_session, trainer, capacity=1)
    holder = factory.member(db_session, "holder@example.com")
    waiting = [factory.member(db_session, f"wait{i}@example.com") for i in range(3)]

    booking = booking_service.book_class(db_session, holder.id, schedule.id)
    for member in waiting:
        waitlist_service.join_waitlist(db_session, schedule.id, member.id)
    assert active_positions(db_session, schedule.id) == [
        (waiting[0].id, 1),
        (waiting[1].id, 2),
        (waiting[2].id, 3),
    ]

    booking_service.cancel_booking(db_session, booking.id)

    assert active_positions(db_session, schedule.id) == [(waiting[1].id, 1), (waiting[2].id, 2)]
    promoted = db_session.query(models.ClassBooking).filter_by(member_id=waiting[0].id).one()
    assert promoted.status == models.BookingStatus.confirmed


def test_promotion_is_noop_when_still_full(db_session, factory):
    trainer = factory.trainer(db_session)
    schedule = factory.schedule(db_session, trainer, capacity=1)
    holder = factory.member(db_session, "holder@example.com")
    waiter = factory.member(db_session, "waiter@example.com")
    booking_service.book_class(db_session, holder.id, schedule.id)
    waitlist_service.join_waitlist(db_session, schedule.id, waiter.id)

    assert waitlist_service.promote_waitlist(db_session, schedule.id) is None
    assert active_positions(db_session, schedule.id) == [(waiter.id, 1)]
    assert schedule_service.count_confirmed(db_session, schedule.id) == 1


def test_promotion_without_waiters_is_noop(db_session, factory):
    trainer = factory.trainer(db_session)
    schedule = factory.schedule(db_session, trainer)
    assert waitlist_service.promote_waitlist(db_session, schedule.id) is None


def test_promotion_consumes_credit(db_session, factory):
    trainer = factory.trainer(db_session)
    schedule = factory.schedule(db_session, trainer, capacity=1)
    holder = factory.member(db_session, "holder@example.com")
    waiter = factory.member(db_session, "waiter@example.com")
    package = factory.package(db_session, credits=3)
    result = credit_service.purchase_package(db_session, package.id, waiter.id)
    booking = booking_service.book_class(db_session, holder.id, schedule.id)
    waitlist_service.join_waitlist(db_session, schedule.id, waiter.id)

    booking_service.cancel_booking(db_session, booking.id)

    assert db_session.get(models.MemberClassPass, result.pass_id).remaining_credits == 2


def test_leave_does_not_renumber_and_rejoin_goes_to_back(db_session, factory):
    trainer = factory.trainer(db_session)
    schedule = factory.schedule(db_session, trainer)
    first = factory.member(db_session, "first@example.com")
    second = factory.member(db_session, "second@example.com")

    entry = waitlist_service.join_waitlist(db_session, schedule.id, first.id)
    waitlist_service.join_waitlist(db_session, schedule.id, second.id)

    left = waitlist_service.leave_waitlist(db_session, entry.id, member_principal(first))
    assert left.status == models.WaitlistStatus.cancelled
    assert active_positions(db_session, schedule.id) == [(second.id, 2)]

    rejoined = waitlist_service.join_waitlist(db_session, schedule.id, first.id)
    assert rejoined.id == entry.id
    assert rejoined.position == 3
    assert rejoined.status == models.WaitlistStatus.waiting


def test_leave_requires_ownership(db_session, factory):
    trainer = factory.trainer(db_session)
    schedule = factory.schedule(db_session, trainer)
    owner = factory.member(db_session, "owner@example.com")
    stranger = factory.member(db_session, "stranger@example.com")
    entry = waitlist_service.join_waitlist(db_session, schedule.id, owner.id)

    with pytest.raises(ForbiddenError, match="your own waitlist"):
        waitlist_service.leave_waitlist(db_session, entry.id, member_principal(stranger))
    with pytest.raises(NotFoundError):
        waitlist_service.leave_waitlist(db_session, 999)


def test_join_inactive_schedule(db_session, factory):
    trainer = factory.trainer(db_session)
    schedule = factory.schedule(db_session, trainer)
    member = factory.member(db_session)
    schedule_service.deactivate_class(db_session, schedule.id)

    with pytest.raises(InvalidStateError):
        waitlist_service.join_waitlist(db_session, schedule.id, member.id)
    with pytest.raises(InvalidStateError):
        waitlist_service.promote_next_by_admin(db_session, schedule.id)


def test_waitlist_queries(db_session, factory):
    trainer = factory.trainer(db_session)
    first = factory.schedule(db_session, trainer)
    second = factory.schedule(db_session, trainer, category="Spin")
    member = factory.member(db_session, "me@example.com")
    other = factory.member(db_session, "other@example.com")

    waitlist_service.join_waitlist(db_session, first.id, member.id)
    waitlist_service.join_waitlist(db_session, second.id, member.id)
    waitlist_service.join_waitlist(db_session, first.id, other.id)

    mine = waitlist_service.get_member_waitlist(db_session, member.id, member_principal(member))
    assert {entry.class_schedule_id for entry in mine} == {first.id, second.id}
    everything = waitlist_service.get_all_waitlist(db_session, schedule_id=first.id)
    assert [(e.member_id, e.position) for e in everything] == [(member.id, 1), (other.id, 2)]


def test_direct_booking_closes_waitlist_entry_and_promotion_skips_booked_members(
    db_session, factory
):
    trainer = factory.trainer(db_session)
    schedule = factory.schedule(db_session, trainer, capacity=2)
    first = factory.member(db_session, "first@example.com")
    second = factory.member(db_session, "second@example.com")
    late = factory.member(db_session, "late@example.com")
    next_in_line = factory.member(db_session, "next@example.com")
    package = factory.package(db_session, credits=5)
    credit_service.purchase_package(db_session, package.id, late.id)

    first_booking = booking_service.book_class(db_session, first.id, schedule.id)
    second_booking = booking_service.book_class(db_session, second.id, schedule.id)
    with pytest.raises(ConflictError, match="position 1"):
        booking_service.book_class(db_session, late.id, schedule.id)

    booking_service.update_booking_status(
        db_session, first_booking.id, models.BookingStatus.no_show
    )
    booking_service.book_class(db_session, late.id, schedule.id)

    closed = db_session.query(models.ClassWaitlist).filter_by(member_id=late.id).one()
    assert closed.status == models.WaitlistStatus.booked
    assert active_positions(db_session, schedule.id) == []

    entry = waitlist_service.join_waitlist(db_session, schedule.id, next_in_line.id)
    assert entry.position == 1

    booking_service.cancel_booking(db_session, second_booking.id)

    promoted = db_session.query(models.ClassBooking).filter_by(member_id=next_in_line.id).one()
    assert promoted.status == models.BookingStatus.confirmed
    usage_rows = (
        db_session.query(models.ClassCreditTransaction)
        .filter_by(member_id=late.id, transaction_type=models.CreditTransactionType.usage)
        .count()
    )
    assert usage_rows == 1
    assert schedule_service.count_confirmed(db_session, schedule.id) == 2
    assert active_positions(db_session, schedule.id) == []


def test_promotion_retires_waiters_who_already_hold_a_booking(db_session, factory):
    trainer = factory.trainer(db_session)
    schedule = factory.schedule(db_session, trainer, capacity=2)
    holder = factory.member(db_session, "holder@example.com")
    booked = factory.member(db_session, "booked@example.com")
    waiter = factory.member(db_session, "waiter@example.com")

    booking_service.book_class(db_session, booked.id, schedule.id)
    # queued directly, as an older row would be that predates direct-booking cleanup
    db_session.add(
        models.ClassWaitlist(
            member_id=booked.id,
            class_schedule_id=schedule.id,
            position=1,
            status=models.WaitlistStatus.waiting,
        )
    )
    db_session.commit()
    waitlist_service.join_waitlist(db_session, schedule.id, waiter.id)
    holder_booking = booking_service.book_class(db_session, holder.id, schedule.id)

    booking_service.cancel_booking(db_session, holder_booking.id)

    assert db_session.query(models.ClassBooking).filter_by(member_id=waiter.id).one().status == (
        models.BookingStatus.confirmed
    )
    retired = db_session.query(models.ClassWaitlist).filter_by(member_id=booked.id).one()
    assert retired.status == models.WaitlistStatus.booked
    assert active_positions(db_session, schedule.id) == []
    assert schedule_service.count_confirmed(db_session, schedule.id) == 2
