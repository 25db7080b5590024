import structlog
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import UserNotFound
from app.core.security import decode_token
from app.db.session import get_db
from app.models.user import User, UserRole, UserStatus
from app.services.payment_gateway import get_payment_gateway
from app.services.payment_service import OrderLifecycleManager, PaymentConfig

logger = structlog.get_logger()


def _bearer_token(request: Request) -> str:
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header is missing.",
        )
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Bearer token is missing.",
        )
    return token.strip()


def get_token_claims(request: Request) -> dict:
    """Verified access-token claims; ``sub`` is the identity provider's subject."""
    payload = decode_token(_bearer_token(request))
    if payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized: Invalid session token.",
        )

    external_id = payload.get("sub")
    if not external_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
        )
    payload["sub"] = str(external_id)
    return payload


def get_current_user(
    claims: dict = Depends(get_token_claims),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the identity provider's subject to the local user, or fail."""
    user = db.query(User).filter(User.external_id == claims["sub"]).first()
    if not user:
        raise UserNotFound()

    structlog.contextvars.bind_contextvars(user_id=user.id)
    return user


def require_organizer(
    request: Request,
    current_user: User = Depends(get_current_user),
) -> User:
    """Active organizers and admins may manage events."""
    allowed = current_user.role == UserRole.ADMIN or (
        current_user.role == UserRole.ORGANIZER and current_user.status == UserStatus.ACTIVE
    )
    if not allowed:
        logger.warning(
            "organizer_access_denied",
            action=f"{request.method} {request.url.path}",
            user_id=current_user.id,
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized as an organizer",
        )
    return current_user


def require_admin(
    request: Request,
    current_user: User = Depends(get_current_user),
) -> User:
    if current_user.role != UserRole.ADMIN:
        logger.warning(
            "admin_access_denied",
            action=f"{request.method} {request.url.path}",
            user_id=current_user.id,
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized as an admin",
        )

    logger.info(
        "admin_action",
        action=f"{request.method} {request.url.path}",
        admin_user_id=current_user.id,
        client_ip=request.client.host if request.client else None,
    )
    return current_user


def get_payment_config() -> PaymentConfig:
    return PaymentConfig.from_settings(settings)


def get_order_manager(
    db: Session = Depends(get_db),
    gateway=Depends(get_payment_gateway),
    config: PaymentConfig = Depends(get_payment_config),
) -> OrderLifecycleManager:
    return OrderLifecycleManager(db, gateway, config)
