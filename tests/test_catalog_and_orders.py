from datetime import datetime, timedelta

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.models.event import EventStatus
from app.models.order import Order, OrderStatus, OrderTicket, TicketTierName
from app.models.user import UserRole

from conftest import auth_headers, create_category, create_event, create_user


def _catalog(db: Session):
    organizer = create_user(db, "user_organizer", role=UserRole.ORGANIZER)
    music = create_category(db, "music")
    comedy = create_category(db, "comedy")
    create_category(db, "theatre", is_active=False)
    soon = datetime.utcnow() + timedelta(days=3)
    later = datetime.utcnow() + timedelta(days=30)
    indie = create_event(db, music, organizer, title="Indie Night", location="Pune", date=soon)
    arena = create_event(db, music, organizer, title="Arena Tour", location="Mumbai", date=later)
    standup = create_event(db, comedy, organizer, title="Open Mic", location="Mumbai", date=later + timedelta(days=1))
    draft = create_event(db, music, organizer, title="Secret Show", status=EventStatus.UNLEASHED)
    return {"music": music, "indie": indie, "arena": arena, "standup": standup, "draft": draft}


def _order(db: Session, buyer, event, razorpay_order_id: str, created_at: datetime, **overrides) -> Order:
    order = Order(
        event_id=event.id,
        buyer_id=buyer.id,
        subtotal=1000.0,
        processing_fee=20.0,
        discount_amount=0.0,
        total_amount=1020.0,
        status=OrderStatus.PENDING,
        razorpay_order_id=razorpay_order_id,
        created_at=created_at,
        tickets=[OrderTicket(position=0, tier_name=TicketTierName.GENERAL, quantity=1, price_per_ticket=1000.0)],
    )
    for key, value in overrides.items():
        setattr(order, key, value)
    db.add(order)
    db.commit()
    db.refresh(order)
    return order


def test_list_events_defaults_to_newest_first(client: TestClient, db_session: Session):
    catalog = _catalog(db_session)

    response = client.get("/api/v1/events")

    assert response.status_code == 200
    body = response.json()
    assert [e["id"] for e in body["data"]] == [
        catalog["standup"].id,
        catalog["arena"].id,
        catalog["indie"].id,
    ]
    assert body["meta"] == {"total": 3, "page": 1, "limit": 9, "total_pages": 1}


def test_list_events_filters(client: TestClient, db_session: Session):
    catalog = _catalog(db_session)

    by_category = client.get("/api/v1/events", params={"category": "music", "sort_by": "date-asc"})
    by_location = client.get("/api/v1/events", params={"location": "mumbai"})
    by_title = client.get("/api/v1/events", params={"search": "indie"})
    unknown = client.get("/api/v1/events", params={"category": "opera"})
    everything = client.get("/api/v1/events", params={"category": "all"})

    assert [e["id"] for e in by_category.json()["data"]] == [catalog["indie"].id, catalog["arena"].id]
    assert {e["id"] for e in by_location.json()["data"]} == {catalog["arena"].id, catalog["standup"].id}
    assert [e["id"] for e in by_title.json()["data"]] == [catalog["indie"].id]
    assert unknown.json()["data"] == []
    assert unknown.json()["meta"]["total"] == 0
    assert everything.json()["meta"]["total"] == 3


def test_list_events_pagination(client: TestClient, db_session: Session):
    _catalog(db_session)

    response = client.get("/api/v1/events", params={"page": 2, "limit": 2})

    body = response.json()
    assert len(body["data"]) == 1
    assert body["meta"]["total_pages"] == 2


def test_get_event(client: TestClient, db_session: Session):
    catalog = _catalog(db_session)

    found = client.get(f"/api/v1/events/{catalog['indie'].id}")
    hidden = client.get(f"/api/v1/events/{catalog['draft'].id}")

    assert found.status_code == 200
    data = found.json()["data"]
    assert data["category"]["slug"] == "music"
    assert [t["name"] for t in data["ticket_tiers"]] == ["General", "VIP"]
    assert hidden.status_code == 404
    assert hidden.json()["message"] == "Event not found."


def test_list_categories_only_active(client: TestClient, db_session: Session):
    _catalog(db_session)

    response = client.get("/api/v1/categories")

    assert response.status_code == 200
    assert [c["slug"] for c in response.json()["data"]] == ["comedy", "music"]


def test_my_orders_newest_first_and_scoped(client: TestClient, db_session: Session):
    catalog = _catalog(db_session)
    buyer = create_user(db_session, "user_buyer")
    other = create_user(db_session, "user_other")
    older = _order(db_session, buyer, catalog["indie"], "order_a", datetime.utcnow() - timedelta(days=2))
    newer = _order(db_session, buyer, catalog["arena"], "order_b", datetime.utcnow() - timedelta(hours=1))
    _order(db_session, other, catalog["arena"], "order_c", datetime.utcnow())

    response = client.get("/api/v1/orders/my-orders", headers=auth_headers(buyer))

    assert response.status_code == 200
    data = response.json()["data"]
    assert [o["id"] for o in data] == [newer.id, older.id]
    assert data[0]["event"]["title"] == "Arena Tour"


def test_order_lookup_by_id_and_payment(client: TestClient, db_session: Session):
    catalog = _catalog(db_session)
    buyer = create_user(db_session, "user_buyer")
    other = create_user(db_session, "user_other")
    order = _order(
        db_session,
        buyer,
        catalog["indie"],
        "order_a",
        datetime.utcnow(),
        status=OrderStatus.SUCCESSFUL,
        razorpay_payment_id="pay_a",
    )

    by_id = client.get(f"/api/v1/orders/{order.id}", headers=auth_headers(buyer))
    by_payment = client.get("/api/v1/orders/payment/pay_a", headers=auth_headers(buyer))
    foreign = client.get(f"/api/v1/orders/{order.id}", headers=auth_headers(other))

    assert by_id.status_code == 200
    assert by_id.json()["data"]["gateway_ref"] == {"order_id": "order_a", "payment_id": "pay_a"}
    assert by_payment.json()["data"]["id"] == order.id
    assert foreign.status_code == 404


def test_health(client: TestClient):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert "X-Correlation-ID" in response.headers


def test_list_events_search_treats_wildcards_literally(client: TestClient, db_session: Session):
    organizer = create_user(db_session, "user_organizer", role=UserRole.ORGANIZER)
    music = create_category(db_session, "music")
    half_off = create_event(db_session, music, organizer, title="50% Off Comedy")
    create_event(db_session, music, organizer, title="500 Club")
    late_night = create_event(db_session, music, organizer, title="Late_Night Jazz", location="Goa_North")
    create_event(db_session, music, organizer, title="Latest Night Jazz", location="Goa North")

    percent = client.get("/api/v1/events", params={"search": "50%"})
    underscore = client.get("/api/v1/events", params={"search": "Late_"})
    location = client.get("/api/v1/events", params={"location": "goa_"})

    assert [e["id"] for e in percent.json()["data"]] == [half_off.id]
    assert [e["id"] for e in underscore.json()["data"]] == [late_night.id]
    assert [e["id"] for e in location.json()["data"]] == [late_night.id]


def test_admin_creates_category(client: TestClient, db_session: Session):
    admin = create_user(db_session, "user_admin", role=UserRole.ADMIN)

    response = client.post(
        "/api/v1/categories",
        headers=auth_headers(admin),
        json={"name": "Live Music", "slug": "Live-Music", "description": "<b>Gigs</b> and sets"},
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["slug"] == "live-music"
    assert data["description"] == "Gigs and sets"
    listed = client.get("/api/v1/categories").json()["data"]
    assert [c["slug"] for c in listed] == ["live-music"]


def test_create_category_rejects_duplicates(client: TestClient, db_session: Session):
    admin = create_user(db_session, "user_admin", role=UserRole.ADMIN)
    create_category(db_session, "music")

    same_slug = client.post(
        "/api/v1/categories",
        headers=auth_headers(admin),
        json={"name": "Concerts", "slug": "music"},
    )
    same_name = client.post(
        "/api/v1/categories",
        headers=auth_headers(admin),
        json={"name": "Music", "slug": "concerts"},
    )

    assert same_slug.status_code == 400
    assert same_slug.json()["message"] == "Category with this slug already exists."
    assert same_name.status_code == 400
    assert same_name.json()["message"] == "Category with this name already exists."


def test_create_category_requires_admin(client: TestClient, db_session: Session):
    organizer = create_user(db_session, "user_organizer", role=UserRole.ORGANIZER)

    response = client.post(
        "/api/v1/categories",
        headers=auth_headers(organizer),
        json={"name": "Opera", "slug": "opera"},
    )

    assert response.status_code == 403
    assert response.json()["message"] == "Not authorized as an admin"
