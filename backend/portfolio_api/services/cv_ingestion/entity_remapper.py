"""
Second resolution pass: after unmapped entities were created, swap the
UNMAPPED placeholders in the form data for the real ids / names.
"""
import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ...schemas.portfolio import PortfolioFormData
from .entity_resolver import DatabaseEntityResolver, fetch_entities_from_db
from .normalizers import is_unmapped, strip_unmapped
from .schemas import ParsedCV, ParsedSkillCategory, RemapResult, UnmappedFields

logger = logging.getLogger(__name__)


def _add_unique(items: List[str], value: str):
    if value and value not in items:
        items.append(value)


def _find_parsed_category(parsed_cv: ParsedCV, group_category: str, index: int) -> Optional[ParsedSkillCategory]:
    name = strip_unmapped(group_category).lower()
    for category in parsed_cv.skills.categories:
        if category.category_name.lower() == name:
            return category
    # Groups keep the parsed order, so fall back to position for already-mapped ids
    categories = parsed_cv.skills.categories
    if index < len(categories) and not is_unmapped(group_category):
        return categories[index]
    return None


async def remap_form_data_with_entities(
    db: AsyncSession,
    form_data: PortfolioFormData,
    parsed_cv: ParsedCV,
    entity_resolver: DatabaseEntityResolver,
) -> RemapResult:
    await entity_resolver.load_entities(fetch_entities_from_db(db))

    updated = form_data.model_copy(deep=True)
    remaining = UnmappedFields()

    for edu in updated.education:
        if is_unmapped(edu.degree):
            original = strip_unmapped(edu.degree)
            match = entity_resolver.resolve_degree(original)
            if match.matched:
                edu.degree = match.entity["name"]
            else:
                edu.degree = original
                _add_unique(remaining.degrees, original)

        if is_unmapped(edu.institution):
            original = strip_unmapped(edu.institution)
            match = entity_resolver.resolve_institution(original)
            if match.matched:
                edu.institution = match.entity["name"]
            else:
                edu.institution = original
                _add_unique(remaining.institutions, original)

    for index, group in enumerate(updated.technical_skills):
        parsed_category = _find_parsed_category(parsed_cv, group.category, index)
        category_name = parsed_category.category_name if parsed_category else None

        if is_unmapped(group.category):
            original = strip_unmapped(group.category)
            match = entity_resolver.resolve_skill_category(original)
            if match.matched:
                group.category = str(match.entity["id"])
            else:
                _add_unique(remaining.categories, original)

        for position, selection in enumerate(group.skills):
            if not is_unmapped(selection.skill_id):
                continue
            original = strip_unmapped(selection.skill_id)
            if parsed_category:
                parsed_skill = next(
                    (s for s in parsed_category.skills if s.name.lower() == original.lower()),
                    parsed_category.skills[position] if position < len(parsed_category.skills) else None,
                )
                if parsed_skill:
                    original = parsed_skill.name

            match = entity_resolver.resolve_skill(original, category_name)
            if match.matched:
                selection.skill_id = str(match.entity["id"])
            else:
                _add_unique(remaining.skills, original)

    logger.info(
        f"Remapped form data, {remaining.total()} entities still unmapped"
    )
    return RemapResult(form_data=updated, remaining_unmapped=remaining)
