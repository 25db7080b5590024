from app.models.user import User, UserRole, UserStatus
from app.models.category import Category
from app.models.event import Event, EventGuest, EventStatus, TicketTier, TierAccess
from app.models.coupon import Coupon, CouponUserType, DiscountType, UsageLimit
from app.models.order import Order, OrderStatus, OrderTicket, TicketTierName, can_transition
from app.models.site_setting import SiteSetting
