from .reference import (
    Degree, Institution, SkillCategory, Skill, CategoryRequest,
    DegreeLevel, InstitutionType, CategoryRequestStatus
)
from .portfolio import Portfolio

__all__ = [
    # Reference data
    "Degree", "Institution", "SkillCategory", "Skill", "CategoryRequest",
    "DegreeLevel", "InstitutionType", "CategoryRequestStatus",
    # Portfolio
    "Portfolio",
]
