"""
Reference data models - degrees, institutions, skills and their categories.
CV ingestion resolves extracted text against these tables.
"""
from datetime import datetime, timezone
import enum

from sqlalchemy import (
    Column, Integer, String, Text, DateTime, Boolean,
    ForeignKey, Enum as SQLEnum, JSON
)
from sqlalchemy.orm import relationship
from ..database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class DegreeLevel(str, enum.Enum):
    UNDERGRADUATE = "Undergraduate"
    GRADUATE = "Graduate"
    POSTGRADUATE = "Postgraduate"
    DIPLOMA = "Diploma"
    CERTIFICATE = "Certificate"


class InstitutionType(str, enum.Enum):
    UNIVERSITY = "University"
    COLLEGE = "College"
    SCHOOL = "School"
    TECHNICAL_INSTITUTE = "Technical Institute"


class CategoryRequestStatus(str, enum.Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class Degree(Base):
    __tablename__ = "degrees"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False, index=True)
    short_name = Column(String(50), nullable=True)
    level = Column(String(50), default=DegreeLevel.UNDERGRADUATE.value)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class Institution(Base):
    __tablename__ = "institutions"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(300), nullable=False, index=True)
    short_name = Column(String(50), nullable=True)
    type = Column(String(50), default=InstitutionType.UNIVERSITY.value)
    location = Column(String(200), nullable=True)
    division = Column(String(100), nullable=True)
    is_active = Column(Boolean, default=True)
    is_verified = Column(Boolean, default=False)

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class SkillCategory(Base):
    __tablename__ = "skill_categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False, index=True)
    approved = Column(Boolean, default=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    skills = relationship("Skill", back_populates="category")


class Skill(Base):
    __tablename__ = "skills"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("skill_categories.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    category = relationship("SkillCategory", back_populates="skills")


class CategoryRequest(Base):
    """A user's request for a new skill category, reviewed by an admin."""
    __tablename__ = "category_requests"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(128), nullable=False, index=True)
    category_name = Column(String(100), nullable=False)
    suggested_skills = Column(JSON, default=list)
    reason = Column(Text, nullable=True)

    status = Column(
        SQLEnum(CategoryRequestStatus),
        default=CategoryRequestStatus.PENDING,
        nullable=False
    )
    admin_comment = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
