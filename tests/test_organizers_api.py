from datetime import datetime, timedelta

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.models.user import User, UserRole, UserStatus

from conftest import auth_headers, create_category, create_event, create_user


def _admin(db: Session) -> User:
    return create_user(db, "user_admin", role=UserRole.ADMIN)


def _organizer_payload(**overrides) -> dict:
    payload = {
        "external_id": "user_priya",
        "email": "Priya@Example.com",
        "first_name": "Priya",
        "last_name": "Sen",
        "phone": "9876543210",
        "bio": "Runs <script>alert(1)</script>indie gigs",
    }
    payload.update(overrides)
    return payload


def test_create_organizer(client: TestClient, db_session: Session):
    admin = _admin(db_session)

    response = client.post("/api/v1/organizers", headers=auth_headers(admin), json=_organizer_payload())

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["email"] == "priya@example.com"
    assert data["status"] == "active"
    assert "<script>" not in data["bio"]
    stored = db_session.query(User).filter(User.external_id == "user_priya").one()
    assert stored.role == UserRole.ORGANIZER


def test_create_organizer_rejects_existing_account(client: TestClient, db_session: Session):
    admin = _admin(db_session)
    create_user(db_session, "user_priya")

    same_identity = client.post(
        "/api/v1/organizers",
        headers=auth_headers(admin),
        json=_organizer_payload(email="other@example.com"),
    )
    same_email = client.post(
        "/api/v1/organizers",
        headers=auth_headers(admin),
        json=_organizer_payload(external_id="user_other", email="user_priya@example.com"),
    )
    bad_email = client.post(
        "/api/v1/organizers",
        headers=auth_headers(admin),
        json=_organizer_payload(external_id="user_third", email="not-an-email"),
    )

    assert same_identity.status_code == 400
    assert same_email.status_code == 400
    assert bad_email.status_code == 422


def test_list_organizers_newest_first(client: TestClient, db_session: Session):
    admin = _admin(db_session)
    older = create_user(
        db_session, "user_old", role=UserRole.ORGANIZER, created_at=datetime.utcnow() - timedelta(days=10)
    )
    newer = create_user(
        db_session, "user_new", role=UserRole.ORGANIZER, created_at=datetime.utcnow() - timedelta(days=1)
    )
    create_user(db_session, "user_buyer")

    response = client.get("/api/v1/organizers", headers=auth_headers(admin))

    assert response.status_code == 200
    assert [o["id"] for o in response.json()["data"]] == [newer.id, older.id]


def test_organizer_routes_require_admin(client: TestClient, db_session: Session):
    organizer = create_user(db_session, "user_organizer", role=UserRole.ORGANIZER)

    response = client.get("/api/v1/organizers", headers=auth_headers(organizer))

    assert response.status_code == 403


def test_deactivated_organizer_loses_event_access(client: TestClient, db_session: Session):
    admin = _admin(db_session)
    organizer = create_user(db_session, "user_organizer", role=UserRole.ORGANIZER)

    response = client.patch(
        f"/api/v1/organizers/{organizer.id}/status",
        headers=auth_headers(admin),
        json={"status": "inactive"},
    )
    my_events = client.get("/api/v1/events/my-events", headers=auth_headers(organizer))

    assert response.status_code == 200
    assert response.json()["message"] == "Organizer marked as inactive"
    assert my_events.status_code == 403

    client.patch(
        f"/api/v1/organizers/{organizer.id}/status",
        headers=auth_headers(admin),
        json={"status": "active"},
    )
    assert client.get("/api/v1/events/my-events", headers=auth_headers(organizer)).status_code == 200


def test_status_change_unknown_or_invalid(client: TestClient, db_session: Session):
    admin = _admin(db_session)
    buyer = create_user(db_session, "user_buyer")
    organizer = create_user(db_session, "user_organizer", role=UserRole.ORGANIZER)

    unknown = client.patch("/api/v1/organizers/9999/status", headers=auth_headers(admin), json={"status": "inactive"})
    not_organizer = client.patch(
        f"/api/v1/organizers/{buyer.id}/status", headers=auth_headers(admin), json={"status": "inactive"}
    )
    invalid = client.patch(
        f"/api/v1/organizers/{organizer.id}/status", headers=auth_headers(admin), json={"status": "banned"}
    )

    assert unknown.status_code == 404
    assert unknown.json()["message"] == "Organizer not found."
    assert not_organizer.status_code == 404
    assert invalid.status_code == 422


def test_delete_organizer_without_history(client: TestClient, db_session: Session):
    admin = _admin(db_session)
    organizer = create_user(db_session, "user_organizer", role=UserRole.ORGANIZER)
    organizer_id = organizer.id

    response = client.delete(f"/api/v1/organizers/{organizer_id}", headers=auth_headers(admin))

    assert response.status_code == 200
    assert response.json()["data"] == {"deleted": True}
    assert db_session.query(User).filter(User.id == organizer_id).first() is None


def test_delete_organizer_with_events_deactivates(client: TestClient, db_session: Session):
    admin = _admin(db_session)
    organizer = create_user(db_session, "user_organizer", role=UserRole.ORGANIZER)
    create_event(db_session, create_category(db_session, "music"), organizer)

    response = client.delete(f"/api/v1/organizers/{organizer.id}", headers=auth_headers(admin))

    assert response.status_code == 200
    assert response.json()["data"] == {"deleted": False}
    db_session.refresh(organizer)
    assert organizer.status == UserStatus.INACTIVE
