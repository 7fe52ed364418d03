"""Tests for CV -> portfolio form normalization."""

from datetime import date

import pytest

from portfolio_api.services.cv_ingestion.deterministic_parser import DeterministicParser
from portfolio_api.services.cv_ingestion.entity_resolver import DatabaseEntityResolver, EntityFetchers
from portfolio_api.services.cv_ingestion.normalizers import (
    calculate_years_of_experience,
    fuzzy_match,
    is_unmapped,
    normalize_parsed_cv,
    parse_cv_date,
    strip_unmapped,
    unmapped,
)
from portfolio_api.services.cv_ingestion.schemas import (
    ParsedCertification,
    ParsedCV,
    ParsedWorkExperience,
)


def _fetcher(rows):
    async def fetch():
        return rows
    return fetch


@pytest.fixture
async def resolver():
    resolver = DatabaseEntityResolver()
    await resolver.load_entities(EntityFetchers(
        degrees=_fetcher([{"id": 1, "name": "Bachelor of Science", "short_name": "BSc", "level": "Undergraduate"}]),
        institutions=_fetcher([{"id": 1, "name": "Stanford University", "short_name": "Stanford"}]),
        skills=_fetcher([
            {"id": 10, "name": "Python", "category_id": 1},
            {"id": 11, "name": "React", "category_id": 2},
            {"id": 12, "name": "Git", "category_id": 3},
        ]),
        categories=_fetcher([
            {"id": 1, "name": "Programming Languages"},
            {"id": 2, "name": "Frontend"},
            {"id": 3, "name": "Other"},
        ]),
    ))
    return resolver


@pytest.fixture
def parsed_cv(sample_extracted_text):
    return DeterministicParser(sample_extracted_text).parse()


class TestFuzzyMatch:
    @pytest.mark.parametrize("a,b,expected", [
        ("Python", "python", 1.0),
        ("  React ", "react", 1.0),
        ("Vue", "Vue.js", 0.8),
        ("", "", 0.0),
        ("Python", "", 0.0),
    ])
    def test_known_scores(self, a, b, expected):
        assert fuzzy_match(a, b) == expected

    def test_levenshtein_similarity(self):
        # one substitution over six characters
        assert fuzzy_match("kotlin", "kotlen") == pytest.approx(1 - 1 / 6)

    def test_symmetric(self):
        assert fuzzy_match("Angular", "AngularJS") == fuzzy_match("AngularJS", "Angular")


class TestHelpers:
    def test_unmapped_round_trip(self):
        value = unmapped("Rust")
        assert value == "__UNMAPPED__Rust"
        assert is_unmapped(value)
        assert strip_unmapped(value) == "Rust"
        assert not is_unmapped("12")
        assert strip_unmapped("12") == "12"

    @pytest.mark.parametrize("value,expected", [
        ("Jan 2020", date(2020, 1, 1)),
        ("September 2019", date(2019, 9, 1)),
        ("Sept. 2019", date(2019, 9, 1)),
        ("2021-03-15", date(2021, 3, 15)),
        ("2018", date(2018, 1, 1)),
        ("Present", None),
        (None, None),
    ])
    def test_parse_cv_date(self, value, expected):
        assert parse_cv_date(value) == expected

    def test_years_of_experience_sums_roles(self):
        work = [
            ParsedWorkExperience(company="A", position="Dev", start_date="Jan 2020", is_current_role=True),
            ParsedWorkExperience(company="B", position="Dev", start_date="Jun 2016", end_date="Dec 2019"),
            ParsedWorkExperience(company="C", position="Dev", start_date="sometime"),
        ]
        # 36 months + 42 months
        assert calculate_years_of_experience(work, today=date(2023, 1, 1)) == 6

    def test_years_of_experience_empty(self):
        assert calculate_years_of_experience([]) == 0


class TestNormalizeWithoutResolver:
    def test_personal_defaults(self, parsed_cv):
        form = normalize_parsed_cv(parsed_cv).form_data
        assert form.designation == "Senior Software Engineer"
        assert form.nationality == "American"
        assert form.email == "jane.doe@example.com"
        assert form.mobile_no == "+1 555-123-4567"
        assert form.language_proficiency[0].language == "English"
        assert form.employee_code == ""

    def test_empty_cv_defaults(self):
        form = normalize_parsed_cv(ParsedCV()).form_data
        assert form.designation == "Software Engineer"
        assert form.nationality == "Unknown"
        assert form.years_of_experience == 0

    def test_everything_unmapped_without_warnings(self, parsed_cv):
        result = normalize_parsed_cv(parsed_cv)
        assert result.form_data.education[0].degree == "__UNMAPPED__Bachelor of Science in Computer Science"
        assert result.unmapped_fields.categories == ["Languages", "Frontend", "Other"]
        assert result.unmapped_fields.skills == ["Python", "JavaScript", "TypeScript", "React", "Vue", "Docker", "Git"]
        assert result.warnings == []

    def test_credentials_and_projects(self, parsed_cv):
        form = normalize_parsed_cv(parsed_cv).form_data
        cert = form.certifications[0]
        assert cert.issuing_organization == "Amazon Web Services"
        assert cert.year == 2021
        assert form.projects[0].contribution == "Real-time inventory tracking tool for small shops."
        assert form.work_experience[1].company == "Globex Corp"

    def test_certification_year_from_iso_date(self):
        cv = ParsedCV(certifications=[ParsedCertification(name="CKA", issue_date="2022-05-01")])
        cert = normalize_parsed_cv(cv).form_data.certifications[0]
        assert cert.year == 2022
        assert cert.issuing_organization == "Unknown"


class TestNormalizeWithResolver:
    async def test_education_resolution(self, parsed_cv, resolver):
        result = normalize_parsed_cv(parsed_cv, resolver)
        edu = result.form_data.education[0]
        # "Bachelor of Science" is contained in the CV degree name
        assert edu.degree == "Bachelor of Science"
        assert edu.institution == "Stanford University"
        assert edu.passing_year == 2016
        assert result.unmapped_fields.degrees == []

    async def test_skill_groups(self, parsed_cv, resolver):
        result = normalize_parsed_cv(parsed_cv, resolver)
        languages, frontend, other = result.form_data.technical_skills

        assert languages.category == "1"
        assert [s.skill_id for s in languages.skills] == ["10", "__UNMAPPED__JavaScript", "__UNMAPPED__TypeScript"]
        assert frontend.category == "2"
        assert [s.skill_id for s in frontend.skills] == ["11", "__UNMAPPED__Vue"]
        assert other.category == "3"
        assert [s.skill_id for s in other.skills] == ["__UNMAPPED__Docker", "12"]

        assert result.unmapped_fields.skills == ["JavaScript", "TypeScript", "Vue", "Docker"]
        assert result.unmapped_fields.categories == []
        assert 'Skill "Vue" not found in database' in result.warnings

    async def test_unknown_degree_warns(self, resolver):
        cv = ParsedCV.model_validate({
            "education": [{"degree": "Diploma in Culinary Arts", "institution": "Le Cordon Bleu", "graduation_year": "2012"}]
        })
        result = normalize_parsed_cv(cv, resolver)
        assert result.form_data.education[0].degree == "__UNMAPPED__Diploma in Culinary Arts"
        assert result.form_data.education[0].passing_year == 2012
        assert result.warnings == [
            'Degree "Diploma in Culinary Arts" not found in database, will be created',
            'Institution "Le Cordon Bleu" not found in database, will be created',
        ]
