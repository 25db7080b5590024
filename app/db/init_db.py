from sqlalchemy.orm import Session
import structlog
from app.db.base import Base
from app.db.session import engine
from app.models.user import User, UserRole
from app.models.category import Category
from app.core.config import settings

logger = structlog.get_logger()

DEFAULT_CATEGORIES = [
    {"name": "Music", "slug": "music", "description": "Concerts, gigs and festivals"},
    {"name": "Sports", "slug": "sports", "description": "Matches, races and tournaments"},
    {"name": "Comedy", "slug": "comedy", "description": "Stand-up and improv nights"},
    {"name": "Theatre", "slug": "theatre", "description": "Plays, musicals and performances"},
    {"name": "Workshops", "slug": "workshops", "description": "Hands-on classes and meetups"},
]


def create_tables() -> None:
    Base.metadata.create_all(bind=engine)


def init_db(db: Session) -> None:
    """Initialize database with default data"""

    # Create admin user
    admin_external_id = (settings.DEFAULT_ADMIN_EXTERNAL_ID or "").strip()
    if not admin_external_id:
        message = (
            "Missing admin bootstrap identity: set DEFAULT_ADMIN_EXTERNAL_ID "
            "or promote a user to admin manually before launch."
        )
        if settings.ENVIRONMENT == "production":
            logger.error("admin_bootstrap_missing", detail=message, env=settings.ENVIRONMENT)
            raise RuntimeError(message)
        logger.warning("admin_bootstrap_missing", detail=message, env=settings.ENVIRONMENT)
    else:
        admin = db.query(User).filter(User.external_id == admin_external_id).first()
        if not admin:
            admin = User(
                external_id=admin_external_id,
                email=settings.DEFAULT_ADMIN_EMAIL,
                first_name="Eventhub",
                last_name="Admin",
                role=UserRole.ADMIN,
            )
            db.add(admin)
            logger.info("admin_user_created", email=settings.DEFAULT_ADMIN_EMAIL)
        elif admin.role != UserRole.ADMIN:
            admin.role = UserRole.ADMIN
            logger.info("admin_user_promoted", user_id=admin.id)

    # Create categories
    for cat_data in DEFAULT_CATEGORIES:
        existing = db.query(Category).filter(Category.slug == cat_data["slug"]).first()
        if not existing:
            db.add(Category(**cat_data))
            logger.info("category_created", name=cat_data["name"])

    db.commit()
    logger.info("database_initialized")


if __name__ == "__main__":
    from app.core.logging_config import configure_logging
    from app.db.session import SessionLocal

    configure_logging()
    create_tables()
    db = SessionLocal()
    try:
        init_db(db)
    finally:
        db.close()
