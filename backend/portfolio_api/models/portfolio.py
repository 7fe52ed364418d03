"""
Portfolio model - one document per user, holding every step of the builder form.
"""
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, Float, JSON
from ..database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class Portfolio(Base):
    __tablename__ = "portfolios"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(128), unique=True, nullable=False, index=True)

    # Step 1 - personal info
    employee_code = Column(String(50), nullable=True)
    designation = Column(String(200), nullable=True)
    years_of_experience = Column(Float, default=0)
    nationality = Column(String(100), nullable=True)
    email = Column(String(255), nullable=True)
    mobile_no = Column(String(50), nullable=True)
    profile_image = Column(Text, nullable=True)
    summary = Column(Text, nullable=True)
    language_proficiency = Column(JSON, default=list)  # [{language, proficiency}]
    references = Column(JSON, default=list)  # [{name, contact_info, relationship}]

    # Step 2 - education & credentials
    education = Column(JSON, default=list)
    certifications = Column(JSON, default=list)
    courses = Column(JSON, default=list)

    # Step 3 - skills & experience
    technical_skills = Column(JSON, default=list)  # [{category, skills: [{skill_id, proficiency}]}]
    work_experience = Column(JSON, default=list)

    # Step 4 - projects
    projects = Column(JSON, default=list)

    # Visibility
    is_public = Column(Boolean, default=False, index=True)
    visit_count = Column(Integer, default=0)

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow)
