"""
Skill Categories Router - category CRUD and the user -> admin category request flow
"""
import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from ..database import get_db
from ..models import SkillCategory, Skill, CategoryRequest, CategoryRequestStatus
from ..schemas.reference import (
    CategoryCreate, CategoryUpdate, CategoryResponse,
    CategoryRequestCreate, CategoryRequestReview, CategoryRequestResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/categories", tags=["Skill Categories"])


async def get_category_by_name(db: AsyncSession, name: str) -> Optional[SkillCategory]:
    result = await db.execute(
        select(SkillCategory).where(func.lower(SkillCategory.name) == name.strip().lower())
    )
    return result.scalar_one_or_none()


# ========== Category Requests ==========

@router.get("/requests", response_model=List[CategoryRequestResponse])
async def get_category_requests(
    request_status: Optional[CategoryRequestStatus] = Query(None, alias="status"),
    user_id: Optional[str] = None,
    db: AsyncSession = Depends(get_db)
):
    """List category requests, newest first, optionally by status or requesting user"""
    query = select(CategoryRequest)
    if request_status is not None:
        query = query.where(CategoryRequest.status == request_status)
    if user_id:
        query = query.where(CategoryRequest.user_id == user_id)
    query = query.order_by(CategoryRequest.created_at.desc())

    result = await db.execute(query)
    return result.scalars().all()


@router.post("/requests", response_model=CategoryRequestResponse)
async def create_category_request(
    data: CategoryRequestCreate,
    db: AsyncSession = Depends(get_db)
):
    if not data.user_id.strip() or not data.category_name.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="user_id and category_name are required"
        )

    request = CategoryRequest(
        user_id=data.user_id,
        category_name=data.category_name.strip(),
        suggested_skills=[s.strip() for s in data.suggested_skills if s.strip()],
        reason=data.reason,
        status=CategoryRequestStatus.PENDING,
    )
    db.add(request)
    await db.commit()
    await db.refresh(request)
    return request


@router.put("/requests", response_model=CategoryRequestResponse)
async def review_category_request(
    data: CategoryRequestReview,
    db: AsyncSession = Depends(get_db)
):
    """Approve or reject a request; approving creates the category and its suggested skills"""
    result = await db.execute(select(CategoryRequest).where(CategoryRequest.id == data.id))
    request = result.scalar_one_or_none()
    if not request:
        raise HTTPException(status_code=404, detail="Category request not found")

    request.status = data.status
    if data.status == CategoryRequestStatus.APPROVED:
        request.admin_comment = data.admin_comment or "Approved by admin"

        category = await get_category_by_name(db, request.category_name)
        if category is None:
            category = SkillCategory(name=request.category_name, approved=True)
            db.add(category)
            await db.flush()
            logger.info(f"Created category {category.name!r} from request {request.id}")

        existing = await db.execute(select(Skill.name).where(Skill.category_id == category.id))
        existing_names = {name.lower() for name in existing.scalars().all()}
        for skill_name in request.suggested_skills or []:
            if skill_name.lower() not in existing_names:
                db.add(Skill(name=skill_name, category_id=category.id))
                existing_names.add(skill_name.lower())
    elif data.status == CategoryRequestStatus.REJECTED:
        request.admin_comment = data.admin_comment or "Rejected by admin"
    else:
        request.admin_comment = data.admin_comment

    await db.commit()
    await db.refresh(request)
    return request


# ========== Category CRUD ==========

@router.get("", response_model=List[CategoryResponse])
async def get_categories(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(SkillCategory).order_by(SkillCategory.name))
    return result.scalars().all()


@router.post("", response_model=CategoryResponse)
async def create_category(
    data: CategoryCreate,
    db: AsyncSession = Depends(get_db)
):
    if not data.name.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Category name is required")
    if await get_category_by_name(db, data.name):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Category already exists")

    category = SkillCategory(name=data.name.strip(), approved=True)
    db.add(category)
    await db.commit()
    await db.refresh(category)
    return category


@router.put("", response_model=CategoryResponse)
async def update_category(
    data: CategoryUpdate,
    db: AsyncSession = Depends(get_db)
):
    if data.id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Category id is required")

    result = await db.execute(select(SkillCategory).where(SkillCategory.id == data.id))
    category = result.scalar_one_or_none()
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")

    if data.name is not None:
        duplicate = await get_category_by_name(db, data.name)
        if duplicate and duplicate.id != category.id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Category already exists")
        category.name = data.name.strip()
    if data.approved is not None:
        category.approved = data.approved

    await db.commit()
    await db.refresh(category)
    return category


@router.delete("")
async def delete_category(
    id: Optional[int] = None,
    db: AsyncSession = Depends(get_db)
):
    if id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Category id is required")

    result = await db.execute(select(SkillCategory).where(SkillCategory.id == id))
    category = result.scalar_one_or_none()
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")

    await db.delete(category)
    await db.commit()
    return {"message": "Category deleted"}
