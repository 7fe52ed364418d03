"""Tests for matching CV names against reference data."""

import pytest

from portfolio_api.models import Degree
from portfolio_api.services.cv_ingestion.entity_resolver import (
    DatabaseEntityResolver,
    EntityFetchers,
    create_entity_resolver,
)


def _fetcher(rows):
    async def fetch():
        return rows
    return fetch


@pytest.fixture
async def resolver():
    resolver = DatabaseEntityResolver(match_threshold=0.75)
    await resolver.load_entities(EntityFetchers(
        degrees=_fetcher([
            {"id": 1, "name": "Bachelor of Science", "short_name": "BSc"},
            {"id": 2, "name": "Master of Business Administration", "short_name": "MBA"},
        ]),
        institutions=_fetcher([
            {"id": 1, "name": "University of Dhaka", "short_name": "DU"},
            {"id": 2, "name": "Stanford University", "short_name": "Stanford"},
        ]),
        skills=_fetcher([
            {"id": 10, "name": "Python", "category_id": 1},
            {"id": 11, "name": "Kubernetes", "category_id": 2},
            {"id": 12, "name": "PostgreSQL", "category_id": None},
            {"id": 13, "name": "Python", "category_id": 3},
        ]),
        categories=_fetcher([
            {"id": 1, "name": "Programming Languages"},
            {"id": 2, "name": "DevOps"},
            {"id": 3, "name": "Data Science"},
        ]),
    ))
    return resolver


class TestDegrees:
    async def test_exact_by_short_name(self, resolver):
        match = resolver.resolve_degree("mba")
        assert match.matched and match.match_type == "exact"
        assert match.entity["id"] == 2
        assert match.match_confidence == 1.0

    async def test_fuzzy(self, resolver):
        match = resolver.resolve_degree("Bachelor of Sciences")
        assert match.matched and match.match_type == "fuzzy"
        assert match.entity["id"] == 1

    async def test_no_match(self, resolver):
        match = resolver.resolve_degree("Doctor of Medicine")
        assert not match.matched
        assert match.match_type == "none"
        assert match.entity is None

    async def test_blank(self, resolver):
        assert not resolver.resolve_degree("  ").matched


class TestInstitutions:
    async def test_containment_counts_as_exact(self, resolver):
        match = resolver.resolve_institution("Stanford University, California")
        assert match.match_type == "exact"
        assert match.entity["name"] == "Stanford University"

    async def test_fuzzy_typo(self, resolver):
        match = resolver.resolve_institution("Univrsity of Dhaka")
        assert match.matched and match.match_type == "fuzzy"
        assert match.entity["id"] == 1


class TestSkills:
    async def test_category_hint_prefers_skill_in_that_category(self, resolver):
        match = resolver.resolve_skill("python", category_hint="Data Science")
        assert match.entity["id"] == 13
        assert match.entity["category_name"] == "Data Science"

    async def test_without_hint_first_exact_wins(self, resolver):
        match = resolver.resolve_skill("Python")
        assert match.entity == {
            "id": 10, "name": "Python", "category_id": 1, "category_name": "Programming Languages",
        }

    async def test_hint_falls_back_to_all_skills(self, resolver):
        match = resolver.resolve_skill("Kubernetes", category_hint="Data Science")
        assert match.entity["id"] == 11

    async def test_uncategorized_skill_reports_other(self, resolver):
        match = resolver.resolve_skill("Postgresql")
        assert match.entity["category_name"] == "Other"

    async def test_fuzzy_skill(self, resolver):
        match = resolver.resolve_skill("Kubernetess")
        assert match.matched and match.match_type == "fuzzy"


class TestCategories:
    async def test_exact_ignores_trailing_colon(self, resolver):
        match = resolver.resolve_skill_category("DevOps:")
        assert match.match_type == "exact"

    async def test_alias_mapping(self):
        resolver = DatabaseEntityResolver()
        await resolver.load_entities(EntityFetchers(
            _fetcher([]), _fetcher([]), _fetcher([]),
            _fetcher([{"id": 5, "name": "Testing"}]),
        ))
        match = resolver.resolve_skill_category("QA")
        assert match.matched and match.match_type == "mapped"
        assert match.match_confidence == 0.8
        assert match.entity["id"] == 5

    async def test_unknown_category(self, resolver):
        assert not resolver.resolve_skill_category("Robotics").matched


class TestSuggestions:
    async def test_ordered_by_similarity(self, resolver):
        suggestions = resolver.get_suggestions("institution", "Stanford", limit=2)
        assert suggestions[0]["name"] == "Stanford University"

    async def test_limit(self, resolver):
        assert len(resolver.get_suggestions("skill", "Python", limit=1)) == 1

    async def test_unknown_type(self, resolver):
        with pytest.raises(ValueError):
            resolver.get_suggestions("company", "Acme")


class TestDatabaseResolver:
    async def test_loads_active_rows_only(self, seeded_db):
        seeded_db.add(Degree(name="Bachelor of Retired Studies", is_active=False))
        await seeded_db.commit()

        resolver = await create_entity_resolver(seeded_db)
        names = {d["name"] for d in resolver.get_degrees()}
        assert "Bachelor of Science" in names
        assert "Bachelor of Retired Studies" not in names
        assert resolver.resolve_institution("Stanford University").matched
        assert resolver.resolve_skill("Docker", "DevOps").entity["category_name"] == "DevOps"
