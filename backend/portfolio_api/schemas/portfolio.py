"""
Portfolio schemas - the builder form data and the stored portfolio document
"""
from typing import List, Literal, Optional
from pydantic import BaseModel, Field
from datetime import datetime


Proficiency = Literal["Beginner", "Intermediate", "Advanced", "Expert"]


# ============================================================================
# Step 1 - Personal info
# ============================================================================

class LanguageProficiencyEntry(BaseModel):
    language: str = ""
    proficiency: str = ""


class ReferenceEntry(BaseModel):
    name: str = ""
    contact_info: str = ""
    relationship: str = ""


# ============================================================================
# Step 2 - Education, certifications, courses
# ============================================================================

class EducationEntry(BaseModel):
    degree: str = ""  # degree name, or an unmapped placeholder
    institution: str = ""  # institution name, or an unmapped placeholder
    passing_year: Optional[int] = None
    grade: Optional[str] = None


class CertificationEntry(BaseModel):
    name: str = ""
    issuer: Optional[str] = None
    date: Optional[str] = None
    issuing_organization: str = ""
    year: Optional[int] = None
    expiry_date: Optional[str] = None
    credential_id: Optional[str] = None


class CourseEntry(BaseModel):
    name: str = ""
    provider: str = ""
    completion_date: Optional[str] = None
    duration: Optional[str] = None


# ============================================================================
# Step 3 - Skills and work experience
# ============================================================================

class SkillSelection(BaseModel):
    skill_id: str = ""  # skill id, or an unmapped placeholder
    proficiency: Proficiency = "Intermediate"


class TechnicalSkillGroup(BaseModel):
    category: str = ""  # category id, or an unmapped placeholder
    skills: List[SkillSelection] = Field(default_factory=list)


class WorkExperienceEntry(BaseModel):
    company: str = ""
    position: str = ""
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    is_current_role: bool = False
    responsibilities: List[str] = Field(default_factory=list)
    technologies: List[str] = Field(default_factory=list)


# ============================================================================
# Step 4 - Projects
# ============================================================================

class ProjectEntry(BaseModel):
    name: str = ""
    description: str = ""
    contribution: Optional[str] = None
    technologies: List[str] = Field(default_factory=list)
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    is_ongoing: bool = False
    role: Optional[str] = None
    responsibilities: List[str] = Field(default_factory=list)
    outcomes: List[str] = Field(default_factory=list)
    url: Optional[str] = None
    repository: Optional[str] = None


class PortfolioFormData(BaseModel):
    """Everything the four-step builder form collects."""
    # Step 1
    employee_code: str = ""
    designation: str = ""
    years_of_experience: float = 0
    nationality: str = ""
    language_proficiency: List[LanguageProficiencyEntry] = Field(default_factory=list)
    email: str = ""
    mobile_no: str = ""
    profile_image: Optional[str] = None
    summary: str = ""
    references: List[ReferenceEntry] = Field(default_factory=list)
    # Step 2
    education: List[EducationEntry] = Field(default_factory=list)
    certifications: List[CertificationEntry] = Field(default_factory=list)
    courses: List[CourseEntry] = Field(default_factory=list)
    # Step 3
    technical_skills: List[TechnicalSkillGroup] = Field(default_factory=list)
    work_experience: List[WorkExperienceEntry] = Field(default_factory=list)
    # Step 4
    projects: List[ProjectEntry] = Field(default_factory=list)


# ============================================================================
# API payloads
# ============================================================================

class PortfolioUpsert(PortfolioFormData):
    user_id: Optional[str] = None
    is_public: bool = False


class PortfolioResponse(PortfolioFormData):
    id: int
    user_id: str
    is_public: bool = False
    visit_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class StepValidationResponse(BaseModel):
    step: int
    is_valid: bool
    errors: List[str] = Field(default_factory=list)
