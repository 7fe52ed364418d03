"""
Reference Data Router - degrees, institutions and skills used by the portfolio
form and by CV entity resolution
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from ..database import get_db
from ..models import Degree, Institution, Skill, SkillCategory
from ..schemas.reference import (
    DegreeCreate, DegreeUpdate, DegreeResponse,
    InstitutionCreate, InstitutionUpdate, InstitutionResponse,
    SkillCreate, SkillUpdate, SkillResponse
)

router = APIRouter(prefix="/api", tags=["Reference Data"])


async def _get_or_404(db: AsyncSession, model, entity_id: int, label: str):
    result = await db.execute(select(model).where(model.id == entity_id))
    entity = result.scalar_one_or_none()
    if not entity:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return entity


def _apply_updates(entity, data):
    for key, value in data.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(entity, key, value)


# ========== Degrees ==========

@router.get("/degrees", response_model=List[DegreeResponse])
async def get_degrees(
    include_inactive: bool = False,
    db: AsyncSession = Depends(get_db)
):
    query = select(Degree)
    if not include_inactive:
        query = query.where(Degree.is_active == True)  # noqa: E712
    result = await db.execute(query.order_by(Degree.name))
    return result.scalars().all()


@router.post("/degrees", response_model=DegreeResponse)
async def create_degree(data: DegreeCreate, db: AsyncSession = Depends(get_db)):
    degree = Degree(**data.model_dump())
    db.add(degree)
    await db.commit()
    await db.refresh(degree)
    return degree


@router.put("/degrees/{degree_id}", response_model=DegreeResponse)
async def update_degree(degree_id: int, data: DegreeUpdate, db: AsyncSession = Depends(get_db)):
    degree = await _get_or_404(db, Degree, degree_id, "Degree")
    _apply_updates(degree, data)
    await db.commit()
    await db.refresh(degree)
    return degree


@router.delete("/degrees/{degree_id}")
async def delete_degree(degree_id: int, db: AsyncSession = Depends(get_db)):
    """Soft delete a degree; portfolios keep referring to it by name"""
    degree = await _get_or_404(db, Degree, degree_id, "Degree")
    degree.is_active = False
    await db.commit()
    return {"message": "Degree deleted"}


# ========== Institutions ==========

@router.get("/institutions", response_model=List[InstitutionResponse])
async def get_institutions(
    include_inactive: bool = False,
    db: AsyncSession = Depends(get_db)
):
    query = select(Institution)
    if not include_inactive:
        query = query.where(Institution.is_active == True)  # noqa: E712
    result = await db.execute(query.order_by(Institution.name))
    return result.scalars().all()


@router.post("/institutions", response_model=InstitutionResponse)
async def create_institution(data: InstitutionCreate, db: AsyncSession = Depends(get_db)):
    institution = Institution(**data.model_dump())
    db.add(institution)
    await db.commit()
    await db.refresh(institution)
    return institution


@router.put("/institutions/{institution_id}", response_model=InstitutionResponse)
async def update_institution(institution_id: int, data: InstitutionUpdate, db: AsyncSession = Depends(get_db)):
    institution = await _get_or_404(db, Institution, institution_id, "Institution")
    _apply_updates(institution, data)
    await db.commit()
    await db.refresh(institution)
    return institution


@router.delete("/institutions/{institution_id}")
async def delete_institution(institution_id: int, db: AsyncSession = Depends(get_db)):
    """Soft delete an institution"""
    institution = await _get_or_404(db, Institution, institution_id, "Institution")
    institution.is_active = False
    await db.commit()
    return {"message": "Institution deleted"}


# ========== Skills ==========

@router.get("/skills", response_model=List[SkillResponse])
async def get_skills(
    category_id: Optional[int] = None,
    db: AsyncSession = Depends(get_db)
):
    query = select(Skill)
    if category_id is not None:
        query = query.where(Skill.category_id == category_id)
    result = await db.execute(query.order_by(Skill.name))
    return result.scalars().all()


@router.post("/skills", response_model=SkillResponse)
async def create_skill(data: SkillCreate, db: AsyncSession = Depends(get_db)):
    if data.category_id is not None:
        await _get_or_404(db, SkillCategory, data.category_id, "Category")

    skill = Skill(name=data.name.strip(), category_id=data.category_id)
    db.add(skill)
    await db.commit()
    await db.refresh(skill)
    return skill


@router.put("/skills/{skill_id}", response_model=SkillResponse)
async def update_skill(skill_id: int, data: SkillUpdate, db: AsyncSession = Depends(get_db)):
    skill = await _get_or_404(db, Skill, skill_id, "Skill")
    if data.category_id is not None:
        await _get_or_404(db, SkillCategory, data.category_id, "Category")
    _apply_updates(skill, data)
    await db.commit()
    await db.refresh(skill)
    return skill


@router.delete("/skills/{skill_id}")
async def delete_skill(skill_id: int, db: AsyncSession = Depends(get_db)):
    skill = await _get_or_404(db, Skill, skill_id, "Skill")
    await db.delete(skill)
    await db.commit()
    return {"message": "Skill deleted"}
