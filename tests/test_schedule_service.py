from datetime import datetime, timedelta, timezone

import pytest

from gymstudio.core.auth import Principal
from gymstudio.core.errors import ConflictError, ForbiddenError, InvalidRecurrenceError, NotFoundError
from gymstudio.db import models, schemas
from gymstudio.services import schedule_service

START = datetime(2031, 3, 3, 10, 0, tzinfo=timezone.utc)


def class_payload(trainer_id, start=START, **overrides):
    data = dict(
        name="Morning Yoga",
        class_type="Yoga",
        trainer_id=trainer_id,
        schedule=start,
        duration=60,
        capacity=10,
    )
    data.update(overrides)
    return schemas.ClassCreate(**data)


def test_overlapping_schedule_conflicts_but_touching_does_not(db_session, factory):
    trainer = factory.trainer(db_session)
    schedule_service.create_class_with_schedule(db_session, class_payload(trainer.id))

    with pytest.raises(ConflictError):
        schedule_service.create_class_with_schedule(
            db_session, class_payload(trainer.id, start=START + timedelta(minutes=30))
        )

    created = schedule_service.create_class_with_schedule(
        db_session, class_payload(trainer.id, start=START + timedelta(hours=1))
    )
    assert created.trainer_id == trainer.id
    assert db_session.query(models.ClassSchedule).count() == 2


def test_other_trainer_is_not_in_conflict(db_session, factory):
    first = factory.trainer(db_session, "a@example.com")
    second = factory.trainer(db_session, "b@example.com")
    schedule_service.create_class_with_schedule(db_session, class_payload(first.id))
    schedule_service.create_class_with_schedule(db_session, class_payload(second.id))
    assert db_session.query(models.ClassSchedule).count() == 2


def test_recurring_class_creates_one_schedule_per_occurrence(db_session, factory):
    trainer = factory.trainer(db_session)
    created = schedule_service.create_class_with_schedule(
        db_session,
        class_payload(trainer.id, recurrence_rule="FREQ=WEEKLY;BYDAY=MO,WE;COUNT=4"),
    )

    schedules = db_session.query(models.ClassSchedule).order_by(models.ClassSchedule.id).all()
    assert len(schedules) == 4
    assert db_session.query(models.GymClass).count() == 1
    assert {s.class_id for s in schedules} == {created.class_id}
    assert created.id == schedules[0].id
    assert [s.day_of_week for s in schedules] == ["Monday", "Wednesday", "Monday", "Wednesday"]


def test_conflict_in_any_occurrence_writes_nothing(db_session, factory):
    trainer = factory.trainer(db_session)
    schedule_service.create_class_with_schedule(
        db_session, class_payload(trainer.id, start=START + timedelta(days=9))
    )
    with pytest.raises(ConflictError):
        schedule_service.create_class_with_schedule(
            db_session,
            class_payload(trainer.id, recurrence_rule="FREQ=WEEKLY;BYDAY=WE;COUNT=3"),
        )
    assert db_session.query(models.GymClass).count() == 1


def test_invalid_recurrence_is_rejected(db_session, factory):
    trainer = factory.trainer(db_session)
    with pytest.raises(InvalidRecurrenceError):
        schedule_service.create_class_with_schedule(
            db_session, class_payload(trainer.id, recurrence_rule="FREQ=MONTHLY")
        )


def test_unknown_trainer(db_session):
    with pytest.raises(NotFoundError):
        schedule_service.create_class_with_schedule(db_session, class_payload(999))


def test_trainer_can_only_create_own_classes(db_session, factory):
    owner = factory.trainer(db_session, "owner@example.com")
    other = factory.trainer(db_session, "other@example.com")
    principal = Principal(user_id=other.user_id, role=models.UserRole.trainer)

    with pytest.raises(ForbiddenError):
        schedule_service.create_class_with_schedule(db_session, class_payload(owner.id), principal)

    own = Principal(user_id=owner.user_id, role=models.UserRole.trainer)
    created = schedule_service.create_class_with_schedule(db_session, class_payload(owner.id), own)
    assert created.trainer_name == "Anna Trainer"


def test_update_class_checks_conflicts_excluding_itself(db_session, factory):
    trainer = factory.trainer(db_session)
    first = schedule_service.create_class_with_schedule(db_session, class_payload(trainer.id))
    second = schedule_service.create_class_with_schedule(
        db_session, class_payload(trainer.id, start=START + timedelta(hours=2))
    )

    moved = schedule_service.update_class(
        db_session, first.id, schemas.ClassUpdate(schedule=START + timedelta(minutes=15))
    )
    assert moved.schedule.replace(tzinfo=None) == (START + timedelta(minutes=15)).replace(tzinfo=None)

    with pytest.raises(ConflictError):
        schedule_service.update_class(
            db_session, second.id, schemas.ClassUpdate(schedule=START + timedelta(minutes=30))
        )

    renamed = schedule_service.update_class(
        db_session, second.id, schemas.ClassUpdate(name="Evening Yoga", capacity=3)
    )
    assert renamed.name == "Evening Yoga"
    assert renamed.capacity == 3


def test_list_classes_paginates_and_filters(db_session, factory):
    trainer = factory.trainer(db_session)
    for offset in range(3):
        schedule_service.create_class_with_schedule(
            db_session, class_payload(trainer.id, start=START + timedelta(days=offset))
        )
    schedule_service.create_class_with_schedule(
        db_session,
        class_payload(trainer.id, start=START + timedelta(days=5), class_type="Boxing", name="Box"),
    )

    page = schedule_service.list_classes(db_session, schemas.ClassFilters(page=2, limit=2))
    assert page.total == 4
    assert page.total_pages == 2
    assert len(page.data) == 2

    boxing = schedule_service.list_classes(db_session, schemas.ClassFilters(class_type="box"))
    assert [item.class_type for item in boxing.data] == ["Boxing"]
    assert boxing.data[0].available_slots == 10


def test_listing_cache_is_invalidated_on_write(db_session, factory):
    trainer = factory.trainer(db_session)
    schedule_service.create_class_with_schedule(db_session, class_payload(trainer.id))
    assert schedule_service.list_classes(db_session).total == 1

    schedule_service.create_class_with_schedule(
        db_session, class_payload(trainer.id, start=START + timedelta(days=1))
    )
    assert schedule_service.list_classes(db_session).total == 2


def test_deactivated_class_is_hidden_from_listing(db_session, factory):
    trainer = factory.trainer(db_session)
    created = schedule_service.create_class_with_schedule(db_session, class_payload(trainer.id))
    schedule_service.deactivate_class(db_session, created.id)

    assert schedule_service.list_classes(db_session).total == 0
    assert schedule_service.get_class(db_session, created.id).is_active is False
    assert not schedule_service.has_schedule_conflict(
        db_session, trainer.id, START, START + timedelta(hours=1)
    )


def test_create_notifies_admins(db_session, factory):
    trainer = factory.trainer(db_session)
    schedule_service.create_class_with_schedule(db_session, class_payload(trainer.id))
    notification = db_session.query(models.Notification).one()
    assert notification.role == models.UserRole.admin
    assert notification.title == "New class created"
