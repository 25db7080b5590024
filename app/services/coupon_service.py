from sqlalchemy.orm import Session
from sqlalchemy import and_, or_
from fastapi import HTTPException, status
from datetime import datetime, timedelta
from typing import List, Optional
import structlog

from app.core.config import settings
from app.core.exceptions import (
    BelowMinimumPurchase,
    CategoryNotFound,
    CouponExpired,
    CouponNotEligible,
    CouponNotFound,
    EventNotFound,
    NotApplicableToCategory,
    NotApplicableToEvent,
)
from app.models.category import Category
from app.models.coupon import Coupon, CouponUserType, DiscountType, UsageLimit
from app.models.event import Event
from app.models.order import Order, OrderStatus
from app.models.user import User
from app.schemas.coupon import CouponCreate, CouponUpdate
from app.utils.dates import one_month_before

logger = structlog.get_logger()


class CouponService:

    @staticmethod
    def calculate_discount(coupon: Coupon, subtotal: float) -> float:
        """Discount a validated coupon grants on ``subtotal``, capped at the subtotal."""
        if coupon.discount_type == DiscountType.PERCENTAGE:
            discount_amount = (subtotal * coupon.discount_value) / 100
        else:  # FIXED
            discount_amount = coupon.discount_value
        return round(max(0.0, min(discount_amount, subtotal)), 2)

    @staticmethod
    def list_available(
        db: Session,
        event_id: Optional[int],
        category_id: Optional[int],
        now: Optional[datetime] = None,
    ) -> List[Coupon]:
        """Active, in-window coupons that are unrestricted or match the event or its category."""
        if not event_id or not category_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Event and Category IDs are required.",
            )

        now = now or datetime.utcnow()
        unrestricted = and_(
            ~Coupon.applicable_events.any(),
            ~Coupon.applicable_categories.any(),
        )
        return (
            db.query(Coupon)
            .filter(
                Coupon.is_active == True,
                Coupon.valid_from <= now,
                Coupon.valid_to >= now,
                or_(
                    unrestricted,
                    Coupon.applicable_events.any(Event.id == event_id),
                    Coupon.applicable_categories.any(Category.id == category_id),
                ),
            )
            .order_by(Coupon.id.asc())
            .all()
        )

    @staticmethod
    def validate_coupon(
        db: Session,
        code: str,
        subtotal: float,
        event_id: int,
        buyer: User,
        now: Optional[datetime] = None,
    ) -> Coupon:
        """Check every rule for applying ``code`` to a purchase; the first failing rule raises."""
        coupon = (
            db.query(Coupon)
            .filter(Coupon.code == code.strip().upper(), Coupon.is_active == True)
            .first()
        )
        if not coupon:
            raise CouponNotFound()

        event = db.query(Event).filter(Event.id == event_id).first()
        if not event:
            raise EventNotFound()

        now = now or datetime.utcnow()
        try:
            if now < coupon.valid_from or now > coupon.valid_to:
                raise CouponExpired()

            if subtotal < coupon.min_purchase:
                raise BelowMinimumPurchase(coupon.min_purchase)

            # Event and category lists are each enforced on their own here,
            # unlike list_available which accepts a match on either.
            if coupon.applicable_events and event.id not in coupon.applicable_event_ids:
                raise NotApplicableToEvent()

            if coupon.applicable_categories and event.category_id not in coupon.applicable_category_ids:
                raise NotApplicableToCategory()

            if coupon.user_type == CouponUserType.NEW_USER:
                window_start = now - timedelta(days=settings.NEW_USER_WINDOW_DAYS)
                if buyer.created_at < window_start:
                    raise CouponNotEligible("This coupon is valid only for new users.")

            if coupon.usage_limit == UsageLimit.ONCE_PER_USER:
                if CouponService._has_successful_use(db, coupon.id, buyer.id):
                    raise CouponNotEligible("You have already used this coupon.")

            if coupon.usage_limit == UsageLimit.ONCE_PER_MONTH:
                since = one_month_before(now)
                if CouponService._has_successful_use(db, coupon.id, buyer.id, since=since):
                    raise CouponNotEligible("You have already used this coupon this month.")
        except HTTPException as exc:
            logger.info(
                "coupon_rejected",
                coupon_code=coupon.code,
                buyer_id=buyer.id,
                event_id=event_id,
                reason=getattr(exc, "code", None),
            )
            raise

        return coupon

    @staticmethod
    def _has_successful_use(
        db: Session,
        coupon_id: int,
        buyer_id: int,
        since: Optional[datetime] = None,
    ) -> bool:
        query = db.query(Order.id).filter(
            Order.buyer_id == buyer_id,
            Order.coupon_id == coupon_id,
            Order.status == OrderStatus.SUCCESSFUL,
        )
        if since is not None:
            query = query.filter(Order.created_at >= since)
        return query.first() is not None

    # Administration

    @staticmethod
    def _resolve_events(db: Session, event_ids: List[int]) -> List[Event]:
        unique_ids = sorted(set(event_ids))
        if not unique_ids:
            return []
        events = db.query(Event).filter(Event.id.in_(unique_ids)).all()
        if len(events) != len(unique_ids):
            raise EventNotFound()
        return events

    @staticmethod
    def _resolve_categories(db: Session, category_ids: List[int]) -> List[Category]:
        unique_ids = sorted(set(category_ids))
        if not unique_ids:
            return []
        categories = db.query(Category).filter(Category.id.in_(unique_ids)).all()
        if len(categories) != len(unique_ids):
            raise CategoryNotFound()
        return categories

    @staticmethod
    def create_coupon(db: Session, coupon_data: CouponCreate) -> Coupon:
        """Create a new coupon (admin only)."""
        existing = db.query(Coupon).filter(Coupon.code == coupon_data.code).first()
        if existing:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Coupon code already exists"
            )

        coupon = Coupon(
            code=coupon_data.code,
            description=coupon_data.description,
            discount_type=coupon_data.discount_type,
            discount_value=coupon_data.discount_value,
            min_purchase=coupon_data.min_purchase,
            valid_from=coupon_data.valid_from,
            valid_to=coupon_data.valid_to,
            is_active=coupon_data.is_active,
            usage_limit=coupon_data.usage_limit,
            user_type=coupon_data.user_type,
            applicable_events=CouponService._resolve_events(db, coupon_data.applicable_event_ids),
            applicable_categories=CouponService._resolve_categories(db, coupon_data.applicable_category_ids),
        )

        db.add(coupon)
        db.commit()
        db.refresh(coupon)
        logger.info("coupon_created", coupon_id=coupon.id, coupon_code=coupon.code)
        return coupon

    @staticmethod
    def update_coupon(db: Session, coupon_id: int, coupon_data: CouponUpdate) -> Coupon:
        """Update a coupon (admin only)."""
        coupon = CouponService.get_coupon(db, coupon_id)

        update_data = coupon_data.model_dump(exclude_unset=True, exclude_none=True)
        event_ids = update_data.pop("applicable_event_ids", None)
        category_ids = update_data.pop("applicable_category_ids", None)
        for key, value in update_data.items():
            setattr(coupon, key, value)
        if event_ids is not None:
            coupon.applicable_events = CouponService._resolve_events(db, event_ids)
        if category_ids is not None:
            coupon.applicable_categories = CouponService._resolve_categories(db, category_ids)

        if coupon.valid_to < coupon.valid_from:
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="valid_to must not be earlier than valid_from",
            )

        db.commit()
        db.refresh(coupon)
        logger.info("coupon_updated", coupon_id=coupon.id, fields=sorted(coupon_data.model_fields_set))
        return coupon

    @staticmethod
    def delete_coupon(db: Session, coupon_id: int) -> None:
        """Delete a coupon (admin only).

        Coupons already referenced by orders are deactivated instead so the
        order history keeps its coupon reference.
        """
        coupon = CouponService.get_coupon(db, coupon_id)
        if coupon.orders:
            coupon.is_active = False
            logger.info("coupon_deactivated", coupon_id=coupon.id)
        else:
            db.delete(coupon)
            logger.info("coupon_deleted", coupon_id=coupon_id)
        db.commit()

    @staticmethod
    def get_coupon(db: Session, coupon_id: int) -> Coupon:
        """Get a coupon by ID."""
        coupon = db.query(Coupon).filter(Coupon.id == coupon_id).first()
        if not coupon:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Coupon not found"
            )
        return coupon

    @staticmethod
    def list_coupons(db: Session, skip: int = 0, limit: int = 100) -> List[Coupon]:
        """List all coupons."""
        return db.query(Coupon).order_by(Coupon.id.asc()).offset(skip).limit(limit).all()
