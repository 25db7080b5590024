from sqlalchemy import Column, Integer, String, Float, DateTime, Boolean, Enum, Text, ForeignKey, Table
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
from app.db.base_class import Base


class DiscountType(str, enum.Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class UsageLimit(str, enum.Enum):
    UNLIMITED = "unlimited"
    ONCE_PER_USER = "once_per_user"
    ONCE_PER_MONTH = "once_per_month"


class CouponUserType(str, enum.Enum):
    ALL = "all"
    NEW_USER = "newUser"


coupon_events = Table(
    "coupon_events",
    Base.metadata,
    Column("coupon_id", Integer, ForeignKey("coupons.id", ondelete="CASCADE"), primary_key=True),
    Column("event_id", Integer, ForeignKey("events.id", ondelete="CASCADE"), primary_key=True),
)

coupon_categories = Table(
    "coupon_categories",
    Base.metadata,
    Column("coupon_id", Integer, ForeignKey("coupons.id", ondelete="CASCADE"), primary_key=True),
    Column("category_id", Integer, ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True),
)


class Coupon(Base):
    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), unique=True, nullable=False, index=True)  # Stored uppercase
    description = Column(Text, nullable=True)

    discount_type = Column(Enum(DiscountType), nullable=False)
    discount_value = Column(Float, nullable=False)  # Percentage or fixed amount

    min_purchase = Column(Float, default=0.0, nullable=False)

    # Active window is inclusive on both ends
    valid_from = Column(DateTime, nullable=False)
    valid_to = Column(DateTime, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    usage_limit = Column(Enum(UsageLimit), default=UsageLimit.UNLIMITED, nullable=False)
    user_type = Column(Enum(CouponUserType), default=CouponUserType.ALL, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    applicable_events = relationship("Event", secondary=coupon_events)
    applicable_categories = relationship("Category", secondary=coupon_categories)
    orders = relationship("Order", back_populates="coupon")

    @property
    def applicable_event_ids(self) -> list[int]:
        return sorted(event.id for event in self.applicable_events)

    @property
    def applicable_category_ids(self) -> list[int]:
        return sorted(category.id for category in self.applicable_categories)
