"""
Reference data schemas - degrees, institutions, skills, categories and category requests
"""
from typing import List, Optional
from pydantic import BaseModel, Field
from datetime import datetime

from ..models.reference import CategoryRequestStatus


class DegreeCreate(BaseModel):
    name: str
    short_name: Optional[str] = None
    level: str = "Undergraduate"
    description: Optional[str] = None
    is_active: bool = True


class DegreeUpdate(BaseModel):
    name: Optional[str] = None
    short_name: Optional[str] = None
    level: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None


class DegreeResponse(DegreeCreate):
    id: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class InstitutionCreate(BaseModel):
    name: str
    short_name: Optional[str] = None
    type: str = "University"
    location: Optional[str] = None
    division: Optional[str] = None
    is_active: bool = True
    is_verified: bool = False


class InstitutionUpdate(BaseModel):
    name: Optional[str] = None
    short_name: Optional[str] = None
    type: Optional[str] = None
    location: Optional[str] = None
    division: Optional[str] = None
    is_active: Optional[bool] = None
    is_verified: Optional[bool] = None


class InstitutionResponse(InstitutionCreate):
    id: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CategoryCreate(BaseModel):
    name: str


class CategoryUpdate(BaseModel):
    id: Optional[int] = None
    name: Optional[str] = None
    approved: Optional[bool] = None


class CategoryResponse(BaseModel):
    id: int
    name: str
    approved: bool = True
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SkillCreate(BaseModel):
    name: str
    category_id: Optional[int] = None


class SkillUpdate(BaseModel):
    name: Optional[str] = None
    category_id: Optional[int] = None


class SkillResponse(BaseModel):
    id: int
    name: str
    category_id: Optional[int] = None

    class Config:
        from_attributes = True


class CategoryRequestCreate(BaseModel):
    user_id: str
    category_name: str
    suggested_skills: List[str] = Field(default_factory=list)
    reason: Optional[str] = None


class CategoryRequestReview(BaseModel):
    id: int
    status: CategoryRequestStatus
    admin_comment: Optional[str] = None


class CategoryRequestResponse(BaseModel):
    id: int
    user_id: str
    category_name: str
    suggested_skills: List[str] = Field(default_factory=list)
    reason: Optional[str] = None
    status: CategoryRequestStatus
    admin_comment: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
