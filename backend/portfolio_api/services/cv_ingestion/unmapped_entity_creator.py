"""
Create reference entities for names a CV introduced that the resolver could
not match. Existing near-duplicates are reused instead of creating a second
row, and one failing entity never aborts the batch.
"""
import logging
import re
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ...models import Degree, DegreeLevel, Institution, InstitutionType, Skill, SkillCategory
from .normalizers import fuzzy_match
from .schemas import EntityCreationResult, UnmappedEntities

logger = logging.getLogger(__name__)

ENTITY_MATCH_THRESHOLD = 0.85
SKILL_MATCH_THRESHOLD = 0.9
OTHER_CATEGORY_NAMES = ("Other", "Others")
MAX_NAME_LENGTH = 200
MINOR_WORDS = {"of", "in", "and", "the", "for", "on", "at"}


def _unique(names: Iterable[str]) -> List[str]:
    seen = set()
    result = []
    for name in names:
        cleaned = (name or "").strip()
        if cleaned and cleaned.lower() not in seen:
            seen.add(cleaned.lower())
            result.append(cleaned)
    return result


def find_existing(name: str, rows: Sequence, threshold: float, attrs=("name",)):
    """Row whose attribute equals name (case-insensitive), else the best fuzzy match above threshold."""
    target = name.lower().strip()
    for row in rows:
        if any((getattr(row, attr) or "").lower().strip() == target for attr in attrs):
            return row

    best, best_score = None, 0.0
    for row in rows:
        score = max(fuzzy_match(name, getattr(row, attr) or "") for attr in attrs)
        if score > best_score:
            best, best_score = row, score
    return best if best_score >= threshold else None


def _initials(name: str) -> str:
    words = [w for w in re.findall(r"[A-Za-z]+", name) if w.lower() not in MINOR_WORDS]
    return "".join(w[0].upper() for w in words)


def infer_degree_data(degree_name: str) -> dict:
    paren = re.search(r"\(([^)]+)\)", degree_name)
    short_name = paren.group(1).strip() if paren else _initials(degree_name)

    lowered = degree_name.lower()
    if re.search(r"\bph\.?d\b|doctor", lowered):
        level = DegreeLevel.POSTGRADUATE
    elif re.search(r"master|\bm\.?sc\b|\bmba\b|\bm\.?s\b", lowered):
        level = DegreeLevel.GRADUATE
    elif re.search(r"bachelor|\bb\.?sc\b|\bba\b|\bb\.?s\b", lowered):
        level = DegreeLevel.UNDERGRADUATE
    elif "diploma" in lowered:
        level = DegreeLevel.DIPLOMA
    elif "certificate" in lowered:
        level = DegreeLevel.CERTIFICATE
    else:
        level = DegreeLevel.UNDERGRADUATE

    return {
        "name": degree_name,
        "short_name": short_name or None,
        "level": level.value,
        "description": f"{degree_name} degree",
    }


def infer_institution_data(institution_name: str) -> dict:
    lowered = institution_name.lower()
    if "university" in lowered:
        institution_type = InstitutionType.UNIVERSITY
    elif "college" in lowered:
        institution_type = InstitutionType.COLLEGE
    elif "school" in lowered:
        institution_type = InstitutionType.SCHOOL
    elif "institute" in lowered or "polytechnic" in lowered:
        institution_type = InstitutionType.TECHNICAL_INSTITUTE
    else:
        institution_type = InstitutionType.UNIVERSITY

    initials = _initials(institution_name)
    return {
        "name": institution_name,
        "short_name": initials if len(initials) > 1 else None,
        "type": institution_type.value,
        "location": "Unknown",
        "division": "Dhaka",
        "is_active": True,
        "is_verified": True,
    }


async def _insert(db: AsyncSession, row):
    async with db.begin_nested():
        db.add(row)
        await db.flush()
    return row


async def _get_other_category(db: AsyncSession, categories: List[SkillCategory], result: EntityCreationResult) -> SkillCategory:
    for category in categories:
        if category.name in OTHER_CATEGORY_NAMES:
            return category
    category = await _insert(db, SkillCategory(name="Other", approved=True))
    categories.append(category)
    result.created.categories += 1
    logger.info("Created fallback skill category 'Other'")
    return category


async def create_unmapped_entities(db: AsyncSession, unmapped: UnmappedEntities) -> EntityCreationResult:
    """
    Create categories, degrees, institutions and skills (in that order, so new
    skills can land in newly created categories).

    Returns:
        EntityCreationResult mapping each CV name to the entity now holding it
    """
    result = EntityCreationResult()

    categories = list((await db.execute(select(SkillCategory))).scalars().all())
    # Active rows only, the same set the resolver loads
    degrees = list((await db.execute(
        select(Degree).where(Degree.is_active == True)  # noqa: E712
    )).scalars().all())
    institutions = list((await db.execute(
        select(Institution).where(Institution.is_active == True)  # noqa: E712
    )).scalars().all())
    skills = list((await db.execute(select(Skill))).scalars().all())

    # Categories
    for name in _unique(unmapped.categories):
        if len(name) > MAX_NAME_LENGTH:
            result.failed.append(f"Category: {name}")
            continue
        try:
            category = find_existing(name, categories, ENTITY_MATCH_THRESHOLD)
            if category is None:
                category = await _insert(db, SkillCategory(name=name, approved=True))
                categories.append(category)
                result.created.categories += 1
                logger.info(f"Created skill category {name!r}")
            result.category_ids[name] = str(category.id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to create category {name!r}: {e}")
            result.failed.append(f"Category: {name}")

    # Degrees
    for name in _unique(unmapped.degrees):
        if len(name) > MAX_NAME_LENGTH:
            result.failed.append(f"Degree: {name}")
            continue
        try:
            degree = find_existing(name, degrees, ENTITY_MATCH_THRESHOLD, attrs=("name", "short_name"))
            if degree is None:
                degree = await _insert(db, Degree(**infer_degree_data(name), is_active=True))
                degrees.append(degree)
                result.created.degrees += 1
                logger.info(f"Created degree {name!r}")
            result.degree_ids[name] = degree.name
        except SQLAlchemyError as e:
            logger.error(f"Failed to create degree {name!r}: {e}")
            result.failed.append(f"Degree: {name}")

    # Institutions
    for name in _unique(unmapped.institutions):
        if len(name) > MAX_NAME_LENGTH:
            result.failed.append(f"Institution: {name}")
            continue
        try:
            institution = find_existing(name, institutions, ENTITY_MATCH_THRESHOLD)
            if institution is None:
                institution = await _insert(db, Institution(**infer_institution_data(name)))
                institutions.append(institution)
                result.created.institutions += 1
                logger.info(f"Created institution {name!r}")
            result.institution_ids[name] = institution.name
        except SQLAlchemyError as e:
            logger.error(f"Failed to create institution {name!r}: {e}")
            result.failed.append(f"Institution: {name}")

    # Skills
    hints = {k.lower(): v for k, v in unmapped.skill_category_hints.items()}
    for name in _unique(unmapped.skills):
        if len(name) > MAX_NAME_LENGTH:
            result.failed.append(f"Skill: {name}")
            continue
        try:
            skill = find_existing(name, skills, SKILL_MATCH_THRESHOLD)
            if skill is None:
                category = _category_for_hint(hints.get(name.lower()), categories)
                if category is None:
                    category = await _get_other_category(db, categories, result)
                skill = await _insert(db, Skill(name=name, category_id=category.id))
                skills.append(skill)
                result.created.skills += 1
                logger.info(f"Created skill {name!r} in category {category.name!r}")
            result.skill_ids[name] = str(skill.id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to create skill {name!r}: {e}")
            result.failed.append(f"Skill: {name}")

    logger.info(
        f"Entity creation done: {result.created.model_dump()} created, {len(result.failed)} failed"
    )
    return result


def _category_for_hint(hint: Optional[str], categories: List[SkillCategory]) -> Optional[SkillCategory]:
    if not hint:
        return None
    return find_existing(hint, categories, ENTITY_MATCH_THRESHOLD)
