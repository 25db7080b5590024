from sqlalchemy.orm import Session, selectinload
from typing import List

from app.core.exceptions import OrderNotFound
from app.models.order import Order
from app.models.user import User


def _buyer_orders(db: Session, buyer: User):
    return (
        db.query(Order)
        .options(selectinload(Order.event), selectinload(Order.tickets))
        .filter(Order.buyer_id == buyer.id)
    )


def list_buyer_orders(db: Session, buyer: User) -> List[Order]:
    """All of a buyer's orders, newest first."""
    return _buyer_orders(db, buyer).order_by(Order.created_at.desc(), Order.id.desc()).all()


def get_order_by_payment_id(db: Session, buyer: User, razorpay_payment_id: str) -> Order:
    order = _buyer_orders(db, buyer).filter(Order.razorpay_payment_id == razorpay_payment_id).first()
    if not order:
        raise OrderNotFound()
    return order


def get_buyer_order(db: Session, buyer: User, order_id: int) -> Order:
    order = _buyer_orders(db, buyer).filter(Order.id == order_id).first()
    if not order:
        raise OrderNotFound()
    return order
