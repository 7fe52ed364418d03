"""
Portfolio Router - read, upsert and delete portfolio documents, public directory
listing, visit counting and per-step form validation.
"""
from datetime import datetime, timezone
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from ..database import get_db
from ..models import Portfolio
from ..schemas.portfolio import (
    PortfolioFormData, PortfolioUpsert, PortfolioResponse, StepValidationResponse
)
from ..services.portfolio_validation import validate_portfolio_step

router = APIRouter(prefix="/api/portfolio", tags=["Portfolio"])

PUBLIC_LIST_LIMIT = 50


# ============================================================================
# Helper Functions
# ============================================================================

async def get_portfolio_by_user(db: AsyncSession, user_id: str) -> Optional[Portfolio]:
    result = await db.execute(select(Portfolio).where(Portfolio.user_id == user_id))
    return result.scalar_one_or_none()


def _matches_filters(portfolio: Portfolio, skill_id, degree, institution, q) -> bool:
    if skill_id:
        skill_ids = {
            str(skill.get("skill_id"))
            for group in portfolio.technical_skills or []
            for skill in group.get("skills", [])
        }
        if skill_id not in skill_ids:
            return False
    if degree:
        if not any(degree.lower() in (edu.get("degree") or "").lower() for edu in portfolio.education or []):
            return False
    if institution:
        if not any(
            institution.lower() in (edu.get("institution") or "").lower() for edu in portfolio.education or []
        ):
            return False
    if q:
        haystack = f"{portfolio.designation or ''} {portfolio.summary or ''}".lower()
        if q.lower() not in haystack:
            return False
    return True


# ============================================================================
# Endpoints
# ============================================================================

@router.get("")
async def get_portfolios(
    user_id: Optional[str] = None,
    public: bool = False,
    min_years: Optional[float] = None,
    skill_id: Optional[str] = None,
    degree: Optional[str] = None,
    institution: Optional[str] = None,
    q: Optional[str] = None,
    db: AsyncSession = Depends(get_db)
):
    """
    Fetch one user's portfolio (?user_id=) or the public directory (?public=true).
    The directory is newest first, capped at 50, and can be narrowed by
    experience, skill id, degree, institution or free text.
    """
    if user_id:
        portfolio = await get_portfolio_by_user(db, user_id)
        if not portfolio:
            raise HTTPException(status_code=404, detail="Portfolio not found")
        return PortfolioResponse.model_validate(portfolio)

    if not public:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Either user_id or public=true is required"
        )

    query = select(Portfolio).where(Portfolio.is_public == True)  # noqa: E712
    if min_years is not None:
        query = query.where(Portfolio.years_of_experience >= min_years)
    query = query.order_by(Portfolio.created_at.desc())

    result = await db.execute(query)
    portfolios = [
        p for p in result.scalars().all()
        if _matches_filters(p, skill_id, degree, institution, q)
    ]
    return [PortfolioResponse.model_validate(p) for p in portfolios[:PUBLIC_LIST_LIMIT]]


@router.post("", response_model=PortfolioResponse)
async def upsert_portfolio(
    data: PortfolioUpsert,
    db: AsyncSession = Depends(get_db)
):
    """Create the user's portfolio, or replace its contents if it exists"""
    if not data.user_id or not data.user_id.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="user_id is required")

    now = datetime.now(timezone.utc)
    fields = data.model_dump(exclude={"user_id"})

    portfolio = await get_portfolio_by_user(db, data.user_id)
    if portfolio is None:
        portfolio = Portfolio(user_id=data.user_id, created_at=now, visit_count=0)
        db.add(portfolio)

    for key, value in fields.items():
        setattr(portfolio, key, value)
    portfolio.updated_at = now

    await db.commit()
    await db.refresh(portfolio)
    return PortfolioResponse.model_validate(portfolio)


@router.delete("")
async def delete_portfolio(
    user_id: str,
    db: AsyncSession = Depends(get_db)
):
    portfolio = await get_portfolio_by_user(db, user_id)
    if not portfolio:
        raise HTTPException(status_code=404, detail="Portfolio not found")

    await db.delete(portfolio)
    await db.commit()
    return {"message": "Portfolio deleted"}


@router.post("/{user_id}/visit")
async def record_visit(
    user_id: str,
    db: AsyncSession = Depends(get_db)
):
    """Increment the visit counter of a portfolio"""
    portfolio = await get_portfolio_by_user(db, user_id)
    if not portfolio:
        raise HTTPException(status_code=404, detail="Portfolio not found")

    portfolio.visit_count = (portfolio.visit_count or 0) + 1
    await db.commit()
    return {"user_id": user_id, "visit_count": portfolio.visit_count}


@router.post("/validate", response_model=StepValidationResponse)
async def validate_step(
    form_data: PortfolioFormData,
    step: int = Query(..., ge=1, le=4)
):
    """Validate one step of the builder form without saving anything"""
    errors = validate_portfolio_step(step, form_data)
    return StepValidationResponse(step=step, is_valid=not errors, errors=errors)
