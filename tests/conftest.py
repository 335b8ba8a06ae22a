from datetime import datetime, timedelta, timezone
import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from gymstudio.db.session import Base
from gymstudio.db import models
from gymstudio.services.cache import get_cache


@pytest.fixture()
def db_session():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    TestingSessionLocal = sessionmaker(
        bind=engine, autoflush=False, autocommit=False, expire_on_commit=False
    )
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def clear_class_cache():
    get_cache().clear()
    yield
    get_cache().clear()


def create_user(session, email, role=models.UserRole.member, first_name="Test", last_name="User"):
    user = models.User(email=email, first_name=first_name, last_name=last_name, role=role)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def create_member(session, email="member@example.com", **kwargs):
    user = create_user(session, email, **kwargs)
    member = models.Member(user_id=user.id)
    session.add(member)
    session.commit()
    session.refresh(member)
    return member


def create_trainer(session, email="trainer@example.com", specialization="Yoga, Pilates"):
    user = create_user(session, email, role=models.UserRole.trainer, first_name="Anna", last_name="Trainer")
    trainer = models.Trainer(user_id=user.id, specialization=specialization, experience=5)
    session.add(trainer)
    session.commit()
    session.refresh(trainer)
    return trainer


def create_schedule(session, trainer, start=None, capacity=1, duration=60, category="Yoga"):
    start = start or datetime.now(timezone.utc) + timedelta(days=2)
    gym_class = models.GymClass(
        name=f"{category} Flow", category=category, duration=duration, max_capacity=capacity
    )
    session.add(gym_class)
    session.commit()
    schedule = models.ClassSchedule(
        class_id=gym_class.id,
        trainer_id=trainer.id,
        start_time=start,
        end_time=start + timedelta(minutes=duration),
        is_active=True,
    )
    session.add(schedule)
    session.commit()
    session.refresh(schedule)
    return schedule


def create_package(session, credits=10, monthly_unlimited=False, pass_type=models.ClassPassType.bundle):
    package = models.ClassPackage(
        name=f"{credits} classes",
        pass_type=pass_type,
        credits_included=credits,
        price=100,
        monthly_unlimited=monthly_unlimited,
        is_active=True,
    )
    session.add(package)
    session.commit()
    session.refresh(package)
    return package


@pytest.fixture()
def factory():
    class Factory:
        user = staticmethod(create_user)
        member = staticmethod(create_member)
        trainer = staticmethod(create_trainer)
        schedule = staticmethod(create_schedule)
        package = staticmethod(create_package)

    return Factory
