from datetime import datetime, timedelta
from uuid import uuid4

import pytest
from fastapi import HTTPException
from sqlalchemy.orm import Session

from app.core.exceptions import (
    BelowMinimumPurchase,
    CouponExpired,
    CouponNotEligible,
    CouponNotFound,
    EventNotFound,
    NotApplicableToCategory,
    NotApplicableToEvent,
)
from app.models.coupon import Coupon, CouponUserType, DiscountType, UsageLimit
from app.models.order import Order, OrderStatus
from app.models.user import UserRole
from app.services.coupon_service import CouponService

from conftest import create_category, create_event, create_user

NOW = datetime(2024, 6, 15, 12, 0, 0)


def _create_coupon(db: Session, code: str = "WELCOME10", **overrides) -> Coupon:
    values = {
        "code": code,
        "discount_type": DiscountType.PERCENTAGE,
        "discount_value": 10.0,
        "min_purchase": 0.0,
        "valid_from": NOW - timedelta(days=30),
        "valid_to": NOW + timedelta(days=30),
        "is_active": True,
        "usage_limit": UsageLimit.UNLIMITED,
        "user_type": CouponUserType.ALL,
    }
    values.update(overrides)
    coupon = Coupon(**values)
    db.add(coupon)
    db.commit()
    db.refresh(coupon)
    return coupon


def _create_order(db: Session, buyer, event, coupon, status: OrderStatus, created_at: datetime) -> Order:
    order = Order(
        event_id=event.id,
        buyer_id=buyer.id,
        coupon_id=coupon.id,
        subtotal=1000.0,
        processing_fee=20.0,
        discount_amount=100.0,
        total_amount=920.0,
        status=status,
        razorpay_order_id=f"order_{uuid4().hex[:12]}",
        created_at=created_at,
    )
    db.add(order)
    db.commit()
    return order


@pytest.fixture()
def setup(db_session: Session):
    organizer = create_user(db_session, "user_organizer", role=UserRole.ORGANIZER)
    buyer = create_user(db_session, "user_buyer", created_at=NOW - timedelta(days=60))
    music = create_category(db_session, "music")
    comedy = create_category(db_session, "comedy")
    concert = create_event(db_session, music, organizer, title="Indie Night")
    standup = create_event(db_session, comedy, organizer, title="Open Mic")
    return {
        "db": db_session,
        "buyer": buyer,
        "music": music,
        "comedy": comedy,
        "concert": concert,
        "standup": standup,
    }


def _validate(setup, code: str, subtotal: float, event=None, buyer=None, now: datetime = NOW) -> Coupon:
    return CouponService.validate_coupon(
        setup["db"],
        code,
        subtotal,
        (event or setup["concert"]).id,
        buyer or setup["buyer"],
        now=now,
    )


def test_percentage_coupon_discount(setup):
    _create_coupon(setup["db"])

    coupon = _validate(setup, "WELCOME10", 500.0)

    assert coupon.code == "WELCOME10"
    assert CouponService.calculate_discount(coupon, 500.0) == 50.0


def test_code_lookup_is_case_insensitive(setup):
    _create_coupon(setup["db"])

    coupon = _validate(setup, "  welcome10 ", 500.0)

    assert coupon.code == "WELCOME10"


def test_unknown_or_inactive_code_is_rejected(setup):
    _create_coupon(setup["db"], code="OLDDEAL", is_active=False)

    with pytest.raises(CouponNotFound):
        _validate(setup, "NOPE", 500.0)
    with pytest.raises(CouponNotFound) as exc_info:
        _validate(setup, "OLDDEAL", 500.0)
    assert exc_info.value.status_code == 404
    assert exc_info.value.detail["message"] == "Invalid coupon code."


def test_unknown_event_is_rejected(setup):
    _create_coupon(setup["db"])

    with pytest.raises(EventNotFound):
        CouponService.validate_coupon(setup["db"], "WELCOME10", 500.0, 9999, setup["buyer"], now=NOW)


def test_coupon_outside_window_is_expired(setup):
    _create_coupon(
        setup["db"],
        code="SUMMER",
        valid_from=NOW - timedelta(days=30),
        valid_to=NOW - timedelta(days=1),
    )
    _create_coupon(
        setup["db"],
        code="DIWALI",
        valid_from=NOW + timedelta(days=1),
        valid_to=NOW + timedelta(days=30),
    )

    with pytest.raises(CouponExpired):
        _validate(setup, "SUMMER", 500.0)
    with pytest.raises(CouponExpired):
        _validate(setup, "DIWALI", 500.0)


def test_window_bounds_are_inclusive(setup):
    coupon = _create_coupon(setup["db"], code="EDGE", valid_from=NOW, valid_to=NOW + timedelta(hours=1))

    assert _validate(setup, "EDGE", 500.0, now=coupon.valid_from).id == coupon.id
    assert _validate(setup, "EDGE", 500.0, now=coupon.valid_to).id == coupon.id


def test_minimum_purchase(setup):
    _create_coupon(setup["db"], code="BIGSPEND", min_purchase=1000.0)

    with pytest.raises(BelowMinimumPurchase) as exc_info:
        _validate(setup, "BIGSPEND", 999.99)
    assert exc_info.value.detail["message"] == "Minimum purchase of ₹1000 required."
    assert exc_info.value.detail["errors"] == [{"code": "BELOW_MINIMUM"}]

    assert _validate(setup, "BIGSPEND", 1000.0).code == "BIGSPEND"


def test_event_restriction(setup):
    _create_coupon(setup["db"], code="INDIE", applicable_events=[setup["concert"]])

    assert _validate(setup, "INDIE", 500.0, event=setup["concert"]).code == "INDIE"
    with pytest.raises(NotApplicableToEvent):
        _validate(setup, "INDIE", 500.0, event=setup["standup"])


def test_category_restriction(setup):
    _create_coupon(setup["db"], code="LAUGHS", applicable_categories=[setup["comedy"]])

    assert _validate(setup, "LAUGHS", 500.0, event=setup["standup"]).code == "LAUGHS"
    with pytest.raises(NotApplicableToCategory):
        _validate(setup, "LAUGHS", 500.0, event=setup["concert"])


def test_event_and_category_lists_are_checked_independently(setup):
    # Event matches but its category is not listed
    _create_coupon(
        setup["db"],
        code="COMBO",
        applicable_events=[setup["concert"]],
        applicable_categories=[setup["comedy"]],
    )

    with pytest.raises(NotApplicableToCategory):
        _validate(setup, "COMBO", 500.0, event=setup["concert"])


def test_new_user_coupon(setup):
    db = setup["db"]
    _create_coupon(db, code="FIRSTGIG", user_type=CouponUserType.NEW_USER)
    newcomer = create_user(db, "user_newcomer", created_at=NOW - timedelta(days=2))
    boundary = create_user(db, "user_boundary", created_at=NOW - timedelta(days=7))

    assert _validate(setup, "FIRSTGIG", 500.0, buyer=newcomer).code == "FIRSTGIG"
    assert _validate(setup, "FIRSTGIG", 500.0, buyer=boundary).code == "FIRSTGIG"
    with pytest.raises(CouponNotEligible) as exc_info:
        _validate(setup, "FIRSTGIG", 500.0)
    assert exc_info.value.detail["message"] == "This coupon is valid only for new users."


def test_once_per_user_counts_only_successful_orders(setup):
    db = setup["db"]
    coupon = _create_coupon(db, code="ONETIME", usage_limit=UsageLimit.ONCE_PER_USER)
    buyer, event = setup["buyer"], setup["concert"]

    _create_order(db, buyer, event, coupon, OrderStatus.PENDING, NOW - timedelta(days=1))
    _create_order(db, buyer, event, coupon, OrderStatus.FAILED, NOW - timedelta(days=1))
    assert _validate(setup, "ONETIME", 500.0).code == "ONETIME"

    _create_order(db, buyer, event, coupon, OrderStatus.SUCCESSFUL, NOW - timedelta(days=200))
    with pytest.raises(CouponNotEligible) as exc_info:
        _validate(setup, "ONETIME", 500.0)
    assert exc_info.value.detail["message"] == "You have already used this coupon."


def test_once_per_user_is_scoped_to_the_buyer(setup):
    db = setup["db"]
    coupon = _create_coupon(db, code="ONETIME", usage_limit=UsageLimit.ONCE_PER_USER)
    other = create_user(db, "user_other")
    _create_order(db, other, setup["concert"], coupon, OrderStatus.SUCCESSFUL, NOW - timedelta(days=1))

    assert _validate(setup, "ONETIME", 500.0).code == "ONETIME"


def test_once_per_month(setup):
    db = setup["db"]
    coupon = _create_coupon(db, code="MONTHLY", usage_limit=UsageLimit.ONCE_PER_MONTH)
    buyer, event = setup["buyer"], setup["concert"]

    _create_order(db, buyer, event, coupon, OrderStatus.SUCCESSFUL, NOW - timedelta(days=40))
    assert _validate(setup, "MONTHLY", 500.0).code == "MONTHLY"

    _create_order(db, buyer, event, coupon, OrderStatus.SUCCESSFUL, NOW - timedelta(days=10))
    with pytest.raises(CouponNotEligible) as exc_info:
        _validate(setup, "MONTHLY", 500.0)
    assert exc_info.value.detail["message"] == "You have already used this coupon this month."


def test_once_per_month_window_starts_same_day_last_month(setup):
    db = setup["db"]
    coupon = _create_coupon(db, code="MONTHLY", usage_limit=UsageLimit.ONCE_PER_MONTH)
    buyer, event = setup["buyer"], setup["concert"]

    # Window for 2024-06-15 12:00 opens at 2024-05-15 12:00
    _create_order(db, buyer, event, coupon, OrderStatus.SUCCESSFUL, datetime(2024, 5, 15, 11, 59))
    assert _validate(setup, "MONTHLY", 500.0).code == "MONTHLY"

    _create_order(db, buyer, event, coupon, OrderStatus.SUCCESSFUL, datetime(2024, 5, 15, 12, 0))
    with pytest.raises(CouponNotEligible):
        _validate(setup, "MONTHLY", 500.0)


def test_fixed_discount_is_capped_at_subtotal(setup):
    coupon = _create_coupon(
        setup["db"],
        code="FLAT500",
        discount_type=DiscountType.FIXED,
        discount_value=500.0,
    )

    assert CouponService.calculate_discount(coupon, 300.0) == 300.0
    assert CouponService.calculate_discount(coupon, 800.0) == 500.0


def test_percentage_above_hundred_is_capped_at_subtotal(setup):
    coupon = _create_coupon(setup["db"], code="MEGA", discount_value=150.0)

    assert CouponService.calculate_discount(coupon, 400.0) == 400.0


def test_rejections_are_http_errors(setup):
    _create_coupon(setup["db"], code="BIGSPEND", min_purchase=1000.0)

    with pytest.raises(HTTPException) as exc_info:
        _validate(setup, "BIGSPEND", 10.0)
    assert exc_info.value.status_code == 400


# Listing

def test_list_available_matches_event_or_category(setup):
    db = setup["db"]
    unrestricted = _create_coupon(db, code="EVERYONE")
    for_concert = _create_coupon(db, code="INDIE", applicable_events=[setup["concert"]])
    for_music = _create_coupon(db, code="MUSIC", applicable_categories=[setup["music"]])
    _create_coupon(db, code="LAUGHS", applicable_categories=[setup["comedy"]])
    # Restricted to another event, but the category matches
    cross = _create_coupon(
        db,
        code="CROSS",
        applicable_events=[setup["standup"]],
        applicable_categories=[setup["music"]],
    )
    _create_coupon(db, code="OFF", is_active=False)
    _create_coupon(db, code="GONE", valid_to=NOW - timedelta(days=1))

    coupons = CouponService.list_available(db, setup["concert"].id, setup["music"].id, now=NOW)

    assert [c.id for c in coupons] == [unrestricted.id, for_concert.id, for_music.id, cross.id]


def test_list_available_is_repeatable(setup):
    db = setup["db"]
    _create_coupon(db, code="EVERYONE")
    _create_coupon(db, code="INDIE", applicable_events=[setup["concert"]])

    first = CouponService.list_available(db, setup["concert"].id, setup["music"].id, now=NOW)
    second = CouponService.list_available(db, setup["concert"].id, setup["music"].id, now=NOW)

    assert [c.id for c in first] == [c.id for c in second]


def test_list_available_requires_event_and_category(setup):
    with pytest.raises(HTTPException) as exc_info:
        CouponService.list_available(setup["db"], setup["concert"].id, None, now=NOW)

    assert exc_info.value.status_code == 400
    assert exc_info.value.detail == "Event and Category IDs are required."
