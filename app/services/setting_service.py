from sqlalchemy.orm import Session
import structlog

from app.models.site_setting import SiteSetting
from app.schemas.setting import SiteSettingsUpdate

logger = structlog.get_logger()

SOCIAL_COLUMNS = {
    "facebook": "facebook_url",
    "twitter": "twitter_url",
    "instagram": "instagram_url",
    "linkedin": "linkedin_url",
}


def get_settings(db: Session) -> SiteSetting:
    """Return the site settings row, creating it with defaults on first use."""
    settings_row = db.query(SiteSetting).order_by(SiteSetting.id.asc()).first()
    if settings_row is None:
        settings_row = SiteSetting()
        db.add(settings_row)
        db.commit()
        db.refresh(settings_row)
        logger.info("site_settings_created", settings_id=settings_row.id)
    return settings_row


def update_settings(db: Session, update: SiteSettingsUpdate) -> SiteSetting:
    settings_row = get_settings(db)

    fields = update.model_dump(exclude_unset=True, exclude={"social_links"})
    for field, value in fields.items():
        if value is not None:
            setattr(settings_row, field, value)

    if update.social_links is not None:
        links = update.social_links.model_dump(exclude_unset=True)
        for network, url in links.items():
            if url is not None:
                setattr(settings_row, SOCIAL_COLUMNS[network], url.strip())

    db.commit()
    db.refresh(settings_row)
    logger.info("site_settings_updated", fields=sorted(update.model_fields_set))
    return settings_row
