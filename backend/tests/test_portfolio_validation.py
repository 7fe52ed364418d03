"""Tests for per-step portfolio form validation."""

from datetime import datetime

import pytest

from portfolio_api.schemas.portfolio import PortfolioFormData
from portfolio_api.services.portfolio_validation import (
    can_submit_portfolio,
    validate_all_steps,
    validate_portfolio_step,
)


@pytest.fixture
def complete_form() -> PortfolioFormData:
    return PortfolioFormData.model_validate({
        "employee_code": "EMP-001",
        "designation": "Senior Software Engineer",
        "years_of_experience": 7,
        "nationality": "American",
        "language_proficiency": [{"language": "English", "proficiency": "native"}],
        "email": "jane.doe@example.com",
        "mobile_no": "+1 555-123-4567",
        "summary": "Full-stack engineer with seven years of experience building web platforms.",
        "education": [{"degree": "Bachelor of Science", "institution": "Stanford University", "passing_year": 2016}],
        "certifications": [{"name": "AWS SA", "issuing_organization": "Amazon Web Services", "year": 2021}],
        "courses": [{"name": "Deep Learning", "provider": "fast.ai", "completion_date": "2020-06-01"}],
        "technical_skills": [{"category": "1", "skills": [{"skill_id": "10", "proficiency": "Expert"}]}],
        "work_experience": [{
            "company": "Acme",
            "position": "Engineer",
            "start_date": "Jan 2020",
            "is_current_role": True,
            "responsibilities": ["Built the billing platform"],
        }],
        "projects": [{
            "name": "Inventory Tracker",
            "description": "Real-time inventory tracking for small shops",
            "technologies": ["React"],
            "start_date": "Jan 2021",
            "is_ongoing": True,
            "role": "Lead developer",
            "responsibilities": ["Designed the data model"],
            "url": "https://tracker.example.com",
            "repository": "https://github.com/janedoe/inventory",
        }],
    })


class TestSteps:
    def test_complete_form_passes_every_step(self, complete_form):
        assert validate_all_steps(complete_form) == {1: [], 2: [], 3: [], 4: []}
        assert can_submit_portfolio(complete_form) is True

    def test_empty_form(self):
        errors = validate_all_steps(PortfolioFormData())
        assert "Employee code is required" in errors[1]
        assert "Summary must be at least 50 characters" in errors[1]
        assert errors[2] == ["At least one education entry is required"]
        assert errors[3] == [
            "At least one skill category is required",
            "At least one work experience entry is required",
        ]
        assert errors[4] == ["At least one project is required"]
        assert can_submit_portfolio(PortfolioFormData()) is False

    def test_invalid_step(self, complete_form):
        assert validate_portfolio_step(5, complete_form) == ["Invalid step"]


class TestFieldRules:
    def test_invalid_email(self, complete_form):
        complete_form.email = "not-an-email"
        assert validate_portfolio_step(1, complete_form) == ["Email is invalid"]

    def test_passing_year_range(self, complete_form):
        complete_form.education[0].passing_year = 1850
        max_year = datetime.now().year + 10
        assert validate_portfolio_step(2, complete_form) == [
            f"Education 1: passing year must be between 1900 and {max_year}"
        ]

    def test_finished_role_needs_end_date(self, complete_form):
        complete_form.work_experience[0].is_current_role = False
        assert validate_portfolio_step(3, complete_form) == [
            "Work experience 1: end date is required unless this is your current role"
        ]

    def test_project_urls(self, complete_form):
        complete_form.projects[0].url = "tracker.example.com"
        complete_form.projects[0].repository = "ftp://example.com/repo"
        assert validate_portfolio_step(4, complete_form) == [
            "Project 1: URL must start with http:// or https://",
            "Project 1: repository must start with http:// or https://",
        ]

    def test_short_project_description(self, complete_form):
        complete_form.projects[0].description = "Too short"
        assert validate_portfolio_step(4, complete_form) == [
            "Project 1: description must be at least 20 characters"
        ]
