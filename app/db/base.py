from app.db.base_class import Base


# IMPORT ALL MODELS HERE (THIS REGISTERS THEM WITH Base.metadata)
from app.models.user import User
from app.models.category import Category
from app.models.event import Event, EventGuest, TicketTier
from app.models.coupon import Coupon
from app.models.order import Order, OrderTicket
from app.models.site_setting import SiteSetting
