"""Tests for creating missing reference entities and re-mapping form data onto them."""

import pytest
from sqlalchemy import select

from portfolio_api.models import Degree, Institution, Skill, SkillCategory
from portfolio_api.services.cv_ingestion.deterministic_parser import DeterministicParser
from portfolio_api.services.cv_ingestion.entity_remapper import remap_form_data_with_entities
from portfolio_api.services.cv_ingestion.entity_resolver import DatabaseEntityResolver, create_entity_resolver
from portfolio_api.services.cv_ingestion.ingestion_service import collect_unmapped_entities, ingest_and_reconcile
from portfolio_api.services.cv_ingestion.normalizers import normalize_parsed_cv
from portfolio_api.services.cv_ingestion.schemas import ParsedCV, UnmappedEntities
from portfolio_api.services.cv_ingestion.unmapped_entity_creator import (
    create_unmapped_entities,
    infer_degree_data,
    infer_institution_data,
)


class TestInference:
    def test_degree_short_name_from_parentheses(self):
        data = infer_degree_data("Master of Science (MSc)")
        assert data["short_name"] == "MSc"
        assert data["level"] == "Graduate"
        assert data["description"] == "Master of Science (MSc) degree"

    def test_degree_initials_skip_minor_words(self):
        data = infer_degree_data("Bachelor of Arts in History")
        assert data["short_name"] == "BAH"
        assert data["level"] == "Undergraduate"

    def test_doctorate_level(self):
        assert infer_degree_data("Doctor of Philosophy")["level"] == "Postgraduate"

    @pytest.mark.parametrize("name,expected_type", [
        ("Dhaka Polytechnic Institute", "Technical Institute"),
        ("Notre Dame College", "College"),
        ("Springfield High School", "School"),
        ("Acme", "University"),
    ])
    def test_institution_type(self, name, expected_type):
        assert infer_institution_data(name)["type"] == expected_type

    def test_institution_defaults(self):
        data = infer_institution_data("Notre Dame College")
        assert data["short_name"] == "NDC"
        assert data["is_verified"] is True
        assert infer_institution_data("Acme")["short_name"] is None


class TestCreateUnmappedEntities:
    async def test_creates_in_hinted_category(self, db_session):
        result = await create_unmapped_entities(db_session, UnmappedEntities(
            categories=["Languages", "Other"],
            skills=["Rust", "Docker"],
            degrees=["Master of Science (MSc)"],
            institutions=["Notre Dame College"],
            skill_category_hints={"Rust": "Languages"},
        ))

        assert result.created.model_dump() == {"skills": 2, "categories": 2, "degrees": 1, "institutions": 1}
        assert result.failed == []
        assert result.degree_ids == {"Master of Science (MSc)": "Master of Science (MSc)"}
        assert result.institution_ids == {"Notre Dame College": "Notre Dame College"}

        skills = {s.name: s for s in (await db_session.execute(select(Skill))).scalars().all()}
        assert str(skills["Rust"].id) == result.skill_ids["Rust"]
        assert str(skills["Rust"].category_id) == result.category_ids["Languages"]
        assert str(skills["Docker"].category_id) == result.category_ids["Other"]

    async def test_other_category_created_on_demand(self, db_session):
        result = await create_unmapped_entities(db_session, UnmappedEntities(skills=["Rust"]))
        assert result.created.categories == 1
        categories = (await db_session.execute(select(SkillCategory))).scalars().all()
        assert [c.name for c in categories] == ["Other"]

    async def test_existing_entities_are_reused(self, seeded_db):
        degrees_before = len((await seeded_db.execute(select(Degree))).scalars().all())

        result = await create_unmapped_entities(seeded_db, UnmappedEntities(
            degrees=["bsc"],
            institutions=["stanford university"],
            skills=["Postgre SQL", "python"],
        ))

        assert result.created.model_dump() == {"skills": 0, "categories": 0, "degrees": 0, "institutions": 0}
        assert result.degree_ids == {"bsc": "Bachelor of Science"}
        assert result.institution_ids == {"stanford university": "Stanford University"}
        postgres = (await seeded_db.execute(select(Skill).where(Skill.name == "PostgreSQL"))).scalar_one()
        assert result.skill_ids["Postgre SQL"] == str(postgres.id)
        assert len((await seeded_db.execute(select(Degree))).scalars().all()) == degrees_before

    async def test_skill_below_match_threshold_is_created(self, seeded_db):
        # "Postgres SQL" vs "PostgreSQL" scores about 0.83, under the skill threshold
        result = await create_unmapped_entities(seeded_db, UnmappedEntities(skills=["Postgres SQL"]))

        assert result.created.skills == 1
        created = (await seeded_db.execute(select(Skill).where(Skill.name == "Postgres SQL"))).scalar_one()
        assert result.skill_ids["Postgres SQL"] == str(created.id)

    async def test_soft_deleted_rows_are_not_reused(self, db_session):
        db_session.add(Degree(name="Bachelor of Arts", short_name="BA", is_active=False))
        db_session.add(Institution(name="Notre Dame College", is_active=False))
        await db_session.commit()

        result = await create_unmapped_entities(db_session, UnmappedEntities(
            degrees=["Bachelor of Arts"], institutions=["Notre Dame College"],
        ))

        assert result.created.degrees == 1
        assert result.created.institutions == 1
        resolver = await create_entity_resolver(db_session)
        assert resolver.resolve_degree("Bachelor of Arts").matched
        assert resolver.resolve_institution("Notre Dame College").matched

    async def test_duplicates_in_input_created_once(self, db_session):
        result = await create_unmapped_entities(db_session, UnmappedEntities(institutions=["MIT", "mit", " MIT "]))
        assert result.created.institutions == 1
        assert len((await db_session.execute(select(Institution))).scalars().all()) == 1

    async def test_overlong_names_fail_without_aborting(self, db_session):
        long_name = "X" * 250
        result = await create_unmapped_entities(db_session, UnmappedEntities(skills=[long_name, "Rust"]))
        assert result.failed == [f"Skill: {long_name}"]
        assert "Rust" in result.skill_ids


class TestReconcile:
    async def test_sample_cv_fully_reconciled(self, db_session, sample_extracted_text):
        parsed = DeterministicParser(sample_extracted_text).parse()
        normalization = normalize_parsed_cv(parsed, await create_entity_resolver(db_session))
        assert normalization.unmapped_fields.total() == 12

        creation, remap = await ingest_and_reconcile(db_session, parsed, normalization)

        assert creation.created.model_dump() == {"skills": 7, "categories": 3, "degrees": 1, "institutions": 1}
        assert remap.remaining_unmapped.total() == 0
        assert "__UNMAPPED__" not in remap.form_data.model_dump_json()
        assert remap.form_data.education[0].degree == "Bachelor of Science in Computer Science"

        vue = (await db_session.execute(select(Skill).where(Skill.name == "Vue"))).scalar_one()
        frontend_group = remap.form_data.technical_skills[1]
        assert frontend_group.skills[1].skill_id == str(vue.id)
        assert frontend_group.category == str(vue.category_id)

    async def test_nothing_unmapped_is_a_no_op(self, db_session):
        parsed = ParsedCV()
        normalization = normalize_parsed_cv(parsed)
        creation, remap = await ingest_and_reconcile(db_session, parsed, normalization)
        assert creation.created.model_dump() == {"skills": 0, "categories": 0, "degrees": 0, "institutions": 0}
        assert remap.form_data == normalization.form_data

    async def test_collect_hints_only_for_categorized_skills(self, sample_extracted_text):
        parsed = DeterministicParser(sample_extracted_text).parse()
        unmapped = collect_unmapped_entities(parsed, normalize_parsed_cv(parsed))
        assert unmapped.skill_category_hints["Python"] == "Languages"
        assert unmapped.skill_category_hints["Vue"] == "Frontend"
        assert "Docker" not in unmapped.skill_category_hints

    async def test_remap_reports_what_is_still_missing(self, db_session, sample_extracted_text):
        parsed = DeterministicParser(sample_extracted_text).parse()
        normalization = normalize_parsed_cv(parsed)

        remap = await remap_form_data_with_entities(
            db_session, normalization.form_data, parsed, DatabaseEntityResolver()
        )

        # Names are kept in plain text; ids stay as placeholders
        assert remap.form_data.education[0].institution == "Stanford University"
        assert remap.form_data.technical_skills[0].category == "__UNMAPPED__Languages"
        assert remap.remaining_unmapped.institutions == ["Stanford University"]
        assert remap.remaining_unmapped.categories == ["Languages", "Frontend", "Other"]
        assert len(remap.remaining_unmapped.skills) == 7
        # The input form data is left untouched
        assert normalization.form_data.education[0].institution == "__UNMAPPED__Stanford University"
