from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session
import structlog

from app.api.deps import require_admin
from app.core.rate_limiter import limiter
from app.db.session import get_db
from app.models.category import Category
from app.models.user import User
from app.schemas.event import CategoryCreate, CategoryResponse
from app.utils.response import success

router = APIRouter()
logger = structlog.get_logger()


@router.get("", response_model=dict)
@router.get("/", response_model=dict)
@limiter.limit("100/minute")
def get_public_categories(
    request: Request,
    db: Session = Depends(get_db),
):
    """Public: Return active categories ordered by name."""
    categories = (
        db.query(Category)
        .filter(Category.is_active == True)
        .order_by(Category.name.asc(), Category.id.asc())
        .all()
    )
    return success(
        data=[CategoryResponse.model_validate(c) for c in categories],
        message="Categories retrieved",
    )


@router.post("", response_model=dict, status_code=status.HTTP_201_CREATED)
@router.post("/", response_model=dict, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_category(
    request: Request,
    category_data: CategoryCreate,
    current_admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Admin: Create category"""
    if db.query(Category.id).filter(Category.slug == category_data.slug).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Category with this slug already exists.",
        )
    if db.query(Category.id).filter(Category.name == category_data.name).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Category with this name already exists.",
        )

    category = Category(**category_data.model_dump())
    db.add(category)
    db.commit()
    db.refresh(category)
    logger.info("category_created", category_id=category.id, slug=category.slug)

    return success(data=CategoryResponse.model_validate(category), message="Category created successfully")
