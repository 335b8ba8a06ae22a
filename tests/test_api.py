from datetime import datetime, timedelta, timezone

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from gymstudio.api import deps
from gymstudio.api.routes import bookings, classes, members, packages, trainers, waitlist
from gymstudio.core.auth import Principal
from gymstudio.core.errors import ServiceError
from gymstudio.core.security import create_access_token
from gymstudio.db import models
from gymstudio.db.session import Base, get_db
from gymstudio.main import service_error_handler

START = datetime(2031, 3, 3, 10, 0, tzinfo=timezone.utc)
ADMIN = Principal(user_id=1, role=models.UserRole.admin)


@pytest.fixture()
def api_client():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    TestingSessionLocal = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        future=True,
    )
    Base.metadata.create_all(bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    caller = {"principal": ADMIN}

    test_app = FastAPI()
    for module in (classes, bookings, waitlist, packages, members, trainers):
        test_app.include_router(module.router, prefix="/api/v1")
    test_app.add_exception_handler(ServiceError, service_error_handler)
    test_app.dependency_overrides[get_db] = override_get_db
    test_app.dependency_overrides[deps.get_current_principal] = lambda: caller["principal"]

    with TestClient(test_app) as client:
        yield client, TestingSessionLocal, caller

    test_app.dependency_overrides.clear()


def seed(SessionLocal):
    db = SessionLocal()
    trainer_user = models.User(email="coach@example.com", first_name="Kim", last_name="Coach", role=models.UserRole.trainer)
    member_user = models.User(email="m1@example.com", role=models.UserRole.member)
    other_user = models.User(email="m2@example.com", role=models.UserRole.member)
    db.add_all([trainer_user, member_user, other_user])
    db.commit()
    trainer = models.Trainer(user_id=trainer_user.id, specialization="Spin")
    member = models.Member(user_id=member_user.id)
    other = models.Member(user_id=other_user.id)
    db.add_all([trainer, member, other])
    db.commit()
    ids = {
        "trainer": trainer.id,
        "member": member.id,
        "member_user": member_user.id,
        "other": other.id,
    }
    db.close()
    return ids


def create_class(client, trainer_id, **overrides):
    payload = {
        "name": "Spin 45",
        "class_type": "Spin",
        "trainer_id": trainer_id,
        "schedule": START.isoformat(),
        "duration": 45,
        "capacity": 1,
    }
    payload.update(overrides)
    return client.post("/api/v1/classes", json=payload)


def test_create_and_list_classes(api_client):
    client, SessionLocal, _ = api_client
    ids = seed(SessionLocal)

    created = create_class(client, ids["trainer"], recurrence_rule="FREQ=WEEKLY;COUNT=3")
    assert created.status_code == 200
    assert created.json()["trainer_name"] == "Kim Coach"

    listing = client.get("/api/v1/classes", params={"limit": 2})
    body = listing.json()
    assert body["total"] == 3
    assert body["total_pages"] == 2
    assert len(body["data"]) == 2

    detail = client.get(f"/api/v1/classes/{created.json()['id']}")
    assert detail.json()["available_slots"] == 1


def test_service_errors_map_to_status_codes(api_client):
    client, SessionLocal, caller = api_client
    ids = seed(SessionLocal)

    assert create_class(client, ids["trainer"], recurrence_rule="FREQ=DAILY").status_code == 400
    assert create_class(client, 999).status_code == 404
    schedule_id = create_class(client, ids["trainer"]).json()["id"]
    assert create_class(client, ids["trainer"], schedule=(START + timedelta(minutes=15)).isoformat()).status_code == 409

    booked = client.post(
        "/api/v1/bookings", json={"member_id": ids["member"], "class_schedule_id": schedule_id}
    )
    assert booked.status_code == 200
    assert booked.json()["status"] == "CONFIRMED"

    full = client.post(
        "/api/v1/bookings", json={"member_id": ids["other"], "class_schedule_id": schedule_id}
    )
    assert full.status_code == 409
    assert full.json()["detail"].endswith("waitlist at position 1")

    caller["principal"] = Principal(user_id=ids["member_user"], role=models.UserRole.member)
    forbidden = client.get(f"/api/v1/members/{ids['other']}/bookings")
    assert forbidden.status_code == 403

    cancelled = client.post(f"/api/v1/bookings/{booked.json()['id']}/cancel")
    assert cancelled.json()["status"] == "CANCELLED"
    again = client.post(f"/api/v1/bookings/{booked.json()['id']}/cancel")
    assert again.status_code == 400


def test_staff_routes_require_staff_role(api_client):
    client, SessionLocal, caller = api_client
    ids = seed(SessionLocal)
    caller["principal"] = Principal(user_id=ids["member_user"], role=models.UserRole.member)

    assert client.get("/api/v1/bookings").status_code == 403
    assert client.post(
        "/api/v1/packages",
        json={"name": "Ten", "pass_type": "BUNDLE", "credits_included": 10, "price": 120},
    ).status_code == 403


def test_package_purchase_and_credits(api_client):
    client, SessionLocal, _ = api_client
    ids = seed(SessionLocal)

    invalid = client.post(
        "/api/v1/packages",
        json={"name": "Year", "pass_type": "YEARLY", "credits_included": 10, "price": 120},
    )
    assert invalid.status_code == 422

    package = client.post(
        "/api/v1/packages",
        json={"name": "Ten", "pass_type": "bundle", "credits_included": 10, "price": 120},
    )
    assert package.json()["pass_type"] == "BUNDLE"

    purchase = client.post(
        f"/api/v1/packages/{package.json()['id']}/purchase", json={"member_id": ids["member"]}
    )
    assert purchase.json()["remaining_credits"] == 11

    credits = client.get(f"/api/v1/members/{ids['member']}/credits").json()
    assert credits["total_remaining_credits"] == 11
    assert credits["has_unlimited_pass"] is False


def test_waitlist_and_trainer_profile_routes(api_client):
    client, SessionLocal, _ = api_client
    ids = seed(SessionLocal)
    schedule_id = create_class(client, ids["trainer"]).json()["id"]

    joined = client.post(f"/api/v1/waitlist/{schedule_id}", json={"member_id": ids["member"]})
    assert joined.json()["position"] == 1
    assert client.get("/api/v1/waitlist", params={"schedule_id": schedule_id}).json()[0]["id"] == joined.json()["id"]

    promoted = client.post(f"/api/v1/waitlist/{schedule_id}/promote")
    assert promoted.json()["member_id"] == ids["member"]

    profile = client.get(f"/api/v1/trainers/{ids['trainer']}/profile").json()
    assert profile["full_name"] == "Kim Coach"
    assert profile["class_history"]["upcoming_classes_count"] == 1


def test_bearer_token_resolves_principal(api_client):
    client, SessionLocal, _ = api_client
    ids = seed(SessionLocal)
    client.app.dependency_overrides.pop(deps.get_current_principal)

    assert client.get(f"/api/v1/members/{ids['member']}/bookings").status_code == 401

    token = create_access_token({"sub": str(ids["member_user"])})
    response = client.get(
        f"/api/v1/members/{ids['member']}/bookings",
        headers={"Authorization": f"Bearer {token}"},
    )
    assert response.status_code == 200
    assert response.json() == []

    forbidden = client.get(
        f"/api/v1/members/{ids['other']}/bookings",
        headers={"Authorization": f"Bearer {token}"},
    )
    assert forbidden.status_code == 403
