"""
Map a ParsedCV onto the portfolio builder's form data, resolving degrees,
institutions, skills and categories to reference entities on the way.
Anything without a confident match is kept as an UNMAPPED placeholder so it
can be created and re-mapped later.
"""
import logging
import math
import re
from datetime import date, datetime
from typing import List, Optional

from rapidfuzz.distance import Levenshtein

from ...schemas.portfolio import (
    CertificationEntry,
    CourseEntry,
    EducationEntry,
    LanguageProficiencyEntry,
    PortfolioFormData,
    ProjectEntry,
    SkillSelection,
    TechnicalSkillGroup,
    WorkExperienceEntry,
)
from .schemas import (
    UNMAPPED_PREFIX,
    NormalizationResult,
    ParsedCV,
    ParsedWorkExperience,
    UnmappedFields,
)

logger = logging.getLogger(__name__)

DEFAULT_DESIGNATION = "Software Engineer"
DEFAULT_NATIONALITY = "Unknown"
OTHER_CATEGORY = "Other"
DATE_FORMATS = ("%b %Y", "%B %Y", "%Y-%m-%d", "%Y-%m", "%m/%d/%Y", "%m/%d/%y", "%d/%m/%Y", "%Y")


# ============================================================================
# Helpers
# ============================================================================

def fuzzy_match(a: str, b: str) -> float:
    """
    Similarity in [0, 1]: 1.0 for a case-insensitive match, 0.8 when one
    string contains the other, otherwise normalized Levenshtein similarity.
    """
    s1 = (a or "").lower().strip()
    s2 = (b or "").lower().strip()
    if s1 == s2:
        return 1.0 if s1 else 0.0
    if not s1 or not s2:
        return 0.0
    if s1 in s2 or s2 in s1:
        return 0.8
    return 1.0 - Levenshtein.distance(s1, s2) / max(len(s1), len(s2))


def unmapped(value: str) -> str:
    return f"{UNMAPPED_PREFIX}{value}"


def is_unmapped(value: Optional[str]) -> bool:
    return bool(value) and value.startswith(UNMAPPED_PREFIX)


def strip_unmapped(value: str) -> str:
    return value[len(UNMAPPED_PREFIX):] if is_unmapped(value) else value


def parse_cv_date(value: Optional[str]) -> Optional[date]:
    """Best-effort parse of the date strings CVs use ("Jan 2020", "2020-01-15", "2020")."""
    if not value:
        return None
    cleaned = re.sub(r"\s+", " ", value.replace(".", "").replace(",", "")).strip()
    # "Sept 2020" is common but not a strptime month abbreviation
    cleaned = re.sub(r"^Sept\b", "Sep", cleaned, flags=re.IGNORECASE)
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).date()
        except ValueError:
            continue
    return None


def calculate_years_of_experience(work_experience: List[ParsedWorkExperience], today: Optional[date] = None) -> int:
    today = today or date.today()
    total_months = 0
    for exp in work_experience:
        start = parse_cv_date(exp.start_date)
        if start is None:
            continue
        end = today if exp.is_current_role or not exp.end_date else parse_cv_date(exp.end_date)
        if end is None:
            continue
        total_months += max(0, (end.year - start.year) * 12 + (end.month - start.month))
    return math.floor(total_months / 12)


def _passing_year(value) -> int:
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        match = re.search(r"\b(?:19|20)\d{2}\b", value)
        if match:
            return int(match.group(0))
    return datetime.now().year


def _year_of(value: Optional[str]) -> Optional[int]:
    parsed = parse_cv_date(value)
    if parsed:
        return parsed.year
    if value:
        match = re.search(r"\b(?:19|20)\d{2}\b", value)
        if match:
            return int(match.group(0))
    return None


def _add_unique(items: List[str], value: str):
    if value and value not in items:
        items.append(value)


# ============================================================================
# Normalization
# ============================================================================

def normalize_parsed_cv(parsed_cv: ParsedCV, entity_resolver=None) -> NormalizationResult:
    """
    Convert a ParsedCV into PortfolioFormData.

    Args:
        parsed_cv: Output of one of the parsers
        entity_resolver: Loaded DatabaseEntityResolver, or None to leave every
            reference field unmapped

    Returns:
        NormalizationResult with form data, unmapped names and warnings
    """
    unmapped_fields = UnmappedFields()
    warnings: List[str] = []
    info = parsed_cv.personal_info

    form_data = PortfolioFormData(
        employee_code="",
        designation=parsed_cv.work_experience[0].position if parsed_cv.work_experience else DEFAULT_DESIGNATION,
        years_of_experience=calculate_years_of_experience(parsed_cv.work_experience),
        nationality=info.nationality or DEFAULT_NATIONALITY,
        language_proficiency=[LanguageProficiencyEntry(language="English", proficiency="professional")],
        email=info.email or "",
        mobile_no=info.phone or "",
        summary=info.summary or "",
        references=[],
    )

    # Education
    for edu in parsed_cv.education:
        degree_value = unmapped(edu.degree)
        institution_value = unmapped(edu.institution)

        degree_match = entity_resolver.resolve_degree(edu.degree) if entity_resolver else None
        if degree_match and degree_match.matched:
            degree_value = degree_match.entity["name"]
        else:
            _add_unique(unmapped_fields.degrees, edu.degree)
            if entity_resolver:
                warnings.append(f'Degree "{edu.degree}" not found in database, will be created')

        institution_match = entity_resolver.resolve_institution(edu.institution) if entity_resolver else None
        if institution_match and institution_match.matched:
            institution_value = institution_match.entity["name"]
        else:
            _add_unique(unmapped_fields.institutions, edu.institution)
            if entity_resolver:
                warnings.append(f'Institution "{edu.institution}" not found in database, will be created')

        form_data.education.append(EducationEntry(
            degree=degree_value,
            institution=institution_value,
            passing_year=_passing_year(edu.graduation_year),
            grade=edu.grade,
        ))

    form_data.certifications = [
        CertificationEntry(
            name=cert.name,
            issuer=cert.issuer,
            date=cert.issue_date,
            issuing_organization=cert.issuer,
            year=_year_of(cert.issue_date),
            expiry_date=cert.expiry_date,
            credential_id=cert.credential_id,
        )
        for cert in parsed_cv.certifications
    ]

    form_data.courses = [
        CourseEntry(
            name=course.name,
            provider=course.provider,
            completion_date=course.completion_date,
            duration=course.duration,
        )
        for course in parsed_cv.courses
    ]

    # Skills
    for category in parsed_cv.skills.categories:
        category_value = unmapped(category.category_name)
        category_match = (
            entity_resolver.resolve_skill_category(category.category_name) if entity_resolver else None
        )
        if category_match and category_match.matched:
            category_value = str(category_match.entity["id"])
        else:
            _add_unique(unmapped_fields.categories, category.category_name)
            if entity_resolver:
                warnings.append(f'Category "{category.category_name}" not found, will be created')

        group = TechnicalSkillGroup(category=category_value)
        for skill in category.skills:
            group.skills.append(SkillSelection(
                skill_id=_resolve_skill_id(
                    entity_resolver, skill.name, category.category_name, unmapped_fields, warnings
                ),
                proficiency=skill.proficiency or "Intermediate",
            ))
        form_data.technical_skills.append(group)

    if parsed_cv.skills.raw:
        other_match = entity_resolver.resolve_skill_category(OTHER_CATEGORY) if entity_resolver else None
        if other_match and other_match.matched:
            other_value = str(other_match.entity["id"])
        else:
            other_value = unmapped(OTHER_CATEGORY)
            _add_unique(unmapped_fields.categories, OTHER_CATEGORY)

        group = TechnicalSkillGroup(category=other_value)
        for name in parsed_cv.skills.raw:
            group.skills.append(SkillSelection(
                skill_id=_resolve_skill_id(entity_resolver, name, None, unmapped_fields, warnings),
                proficiency="Intermediate",
            ))
        form_data.technical_skills.append(group)

    form_data.work_experience = [
        WorkExperienceEntry(
            company=exp.company,
            position=exp.position,
            start_date=exp.start_date,
            end_date=exp.end_date,
            is_current_role=exp.is_current_role,
            responsibilities=list(exp.responsibilities),
            technologies=list(exp.technologies),
        )
        for exp in parsed_cv.work_experience
    ]

    form_data.projects = [
        ProjectEntry(
            name=project.name,
            description=project.description,
            contribution=project.contribution or project.description,
            technologies=list(project.technologies),
            start_date=project.start_date,
            end_date=project.end_date,
            is_ongoing=project.is_ongoing,
            role=project.role,
            url=project.url,
            repository=project.repository,
        )
        for project in parsed_cv.projects
    ]

    logger.info(
        f"Normalized CV: {unmapped_fields.total()} unmapped entities, {len(warnings)} warnings"
    )
    return NormalizationResult(form_data=form_data, unmapped_fields=unmapped_fields, warnings=warnings)


def _resolve_skill_id(entity_resolver, name: str, category_hint: Optional[str],
                      unmapped_fields: UnmappedFields, warnings: List[str]) -> str:
    match = entity_resolver.resolve_skill(name, category_hint) if entity_resolver else None
    if match and match.matched:
        return str(match.entity["id"])
    _add_unique(unmapped_fields.skills, name)
    if entity_resolver:
        warnings.append(f'Skill "{name}" not found in database')
    return unmapped(name)
