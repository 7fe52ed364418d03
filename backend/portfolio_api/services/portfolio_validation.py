"""
Per-step validation for the four-step portfolio builder form.
"""
import re
from datetime import datetime
from typing import Dict, List

from ..schemas.portfolio import PortfolioFormData

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
URL_PATTERN = re.compile(r"^https?://[^\s$.?#].[^\s]*$", re.IGNORECASE)
TOTAL_STEPS = 4


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _validate_personal_info(form: PortfolioFormData) -> List[str]:
    errors = []
    if _blank(form.employee_code):
        errors.append("Employee code is required")
    if _blank(form.designation):
        errors.append("Designation is required")
    if form.years_of_experience is None or form.years_of_experience < 0:
        errors.append("Years of experience must be 0 or more")
    if _blank(form.nationality):
        errors.append("Nationality is required")
    if not any(not _blank(lang.language) for lang in form.language_proficiency):
        errors.append("At least one language is required")
    if _blank(form.email):
        errors.append("Email is required")
    elif not EMAIL_PATTERN.match(form.email.strip()):
        errors.append("Email is invalid")
    if _blank(form.mobile_no):
        errors.append("Mobile number is required")
    if len((form.summary or "").strip()) < 50:
        errors.append("Summary must be at least 50 characters")
    return errors


def _validate_education(form: PortfolioFormData) -> List[str]:
    errors = []
    max_year = datetime.now().year + 10

    if not form.education:
        errors.append("At least one education entry is required")
    for i, edu in enumerate(form.education, start=1):
        if _blank(edu.degree):
            errors.append(f"Education {i}: degree is required")
        if _blank(edu.institution):
            errors.append(f"Education {i}: institution is required")
        if edu.passing_year is None or not 1900 <= edu.passing_year <= max_year:
            errors.append(f"Education {i}: passing year must be between 1900 and {max_year}")

    for i, cert in enumerate(form.certifications, start=1):
        if _blank(cert.name):
            errors.append(f"Certification {i}: name is required")
        if _blank(cert.issuing_organization):
            errors.append(f"Certification {i}: issuing organization is required")
        if cert.year is None:
            errors.append(f"Certification {i}: year is required")

    for i, course in enumerate(form.courses, start=1):
        if _blank(course.name):
            errors.append(f"Course {i}: name is required")
        if _blank(course.provider):
            errors.append(f"Course {i}: provider is required")
        if _blank(course.completion_date):
            errors.append(f"Course {i}: completion date is required")
    return errors


def _validate_skills_and_experience(form: PortfolioFormData) -> List[str]:
    errors = []

    if not form.technical_skills:
        errors.append("At least one skill category is required")
    for i, group in enumerate(form.technical_skills, start=1):
        if _blank(group.category):
            errors.append(f"Skill group {i}: category is required")
        if not group.skills:
            errors.append(f"Skill group {i}: at least one skill is required")
        for j, skill in enumerate(group.skills, start=1):
            if _blank(skill.skill_id):
                errors.append(f"Skill group {i}, skill {j}: skill is required")
            if _blank(skill.proficiency):
                errors.append(f"Skill group {i}, skill {j}: proficiency is required")

    if not form.work_experience:
        errors.append("At least one work experience entry is required")
    for i, work in enumerate(form.work_experience, start=1):
        if _blank(work.company):
            errors.append(f"Work experience {i}: company is required")
        if _blank(work.position):
            errors.append(f"Work experience {i}: position is required")
        if _blank(work.start_date):
            errors.append(f"Work experience {i}: start date is required")
        if not work.is_current_role and _blank(work.end_date):
            errors.append(f"Work experience {i}: end date is required unless this is your current role")
        if not any(not _blank(r) for r in work.responsibilities):
            errors.append(f"Work experience {i}: at least one responsibility is required")
    return errors


def _validate_projects(form: PortfolioFormData) -> List[str]:
    errors = []

    if not form.projects:
        errors.append("At least one project is required")
    for i, project in enumerate(form.projects, start=1):
        if _blank(project.name):
            errors.append(f"Project {i}: name is required")
        if len((project.description or "").strip()) < 20:
            errors.append(f"Project {i}: description must be at least 20 characters")
        if not any(not _blank(t) for t in project.technologies):
            errors.append(f"Project {i}: at least one technology is required")
        if _blank(project.start_date):
            errors.append(f"Project {i}: start date is required")
        if not project.is_ongoing and _blank(project.end_date):
            errors.append(f"Project {i}: end date is required unless the project is ongoing")
        if _blank(project.role):
            errors.append(f"Project {i}: role is required")
        if not any(not _blank(r) for r in project.responsibilities):
            errors.append(f"Project {i}: at least one responsibility is required")
        if not _blank(project.url) and not URL_PATTERN.match(project.url.strip()):
            errors.append(f"Project {i}: URL must start with http:// or https://")
        if not _blank(project.repository) and not URL_PATTERN.match(project.repository.strip()):
            errors.append(f"Project {i}: repository must start with http:// or https://")
    return errors


STEP_VALIDATORS = {
    1: _validate_personal_info,
    2: _validate_education,
    3: _validate_skills_and_experience,
    4: _validate_projects,
}


def validate_portfolio_step(step: int, form_data: PortfolioFormData) -> List[str]:
    """Error messages for one step; empty when the step is valid."""
    validator = STEP_VALIDATORS.get(step)
    if validator is None:
        return ["Invalid step"]
    return validator(form_data)


def validate_all_steps(form_data: PortfolioFormData) -> Dict[int, List[str]]:
    return {step: validate_portfolio_step(step, form_data) for step in range(1, TOTAL_STEPS + 1)}


def can_submit_portfolio(form_data: PortfolioFormData) -> bool:
    return all(not errors for errors in validate_all_steps(form_data).values())
