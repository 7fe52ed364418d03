"""
Resolve names pulled out of a CV against the reference tables
(degrees, institutions, skills, skill categories).

The resolver works on in-memory snapshots so a whole CV can be resolved
without a query per field; call load_entities() to refresh them.
"""
import logging
from typing import Awaitable, Callable, Dict, List, NamedTuple, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ...models import Degree, Institution, Skill, SkillCategory
from .normalizers import fuzzy_match
from .schemas import EntityMatch

logger = logging.getLogger(__name__)

DEFAULT_MATCH_THRESHOLD = 0.75

# Common category spellings -> canonical category names
CATEGORY_ALIASES = {
    "frontend": "Frontend",
    "front-end": "Frontend",
    "front end": "Frontend",
    "backend": "Backend",
    "back-end": "Backend",
    "back end": "Backend",
    "database": "Databases",
    "databases": "Databases",
    "devops": "DevOps",
    "dev ops": "DevOps",
    "cloud": "Cloud",
    "mobile": "Mobile",
    "testing": "Testing",
    "qa": "Testing",
    "design": "Design",
    "tools": "Tools",
    "framework": "Frameworks",
    "frameworks": "Frameworks",
    "library": "Libraries",
    "libraries": "Libraries",
    "language": "Languages",
    "languages": "Languages",
    "programming languages": "Languages",
}


class EntityFetchers(NamedTuple):
    degrees: Callable[[], Awaitable[List[dict]]]
    institutions: Callable[[], Awaitable[List[dict]]]
    skills: Callable[[], Awaitable[List[dict]]]
    categories: Callable[[], Awaitable[List[dict]]]


def _lower(value: Optional[str]) -> str:
    return (value or "").lower().strip()


class DatabaseEntityResolver:
    def __init__(self, match_threshold: float = DEFAULT_MATCH_THRESHOLD):
        self.match_threshold = match_threshold
        self.degrees: List[dict] = []
        self.institutions: List[dict] = []
        self.skills: List[dict] = []
        self.skill_categories: List[dict] = []

    async def load_entities(self, fetchers: EntityFetchers):
        self.degrees = await fetchers.degrees()
        self.institutions = await fetchers.institutions()
        self.skills = await fetchers.skills()
        self.skill_categories = await fetchers.categories()
        logger.info(
            f"Loaded reference data: {len(self.degrees)} degrees, {len(self.institutions)} institutions, "
            f"{len(self.skills)} skills, {len(self.skill_categories)} categories"
        )

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------

    def _best_fuzzy(self, name: str, candidates: List[dict], keys=("name",)):
        best, best_score = None, 0.0
        for candidate in candidates:
            score = max(fuzzy_match(name, candidate.get(key) or "") for key in keys)
            if score > best_score:
                best, best_score = candidate, score
        if best is not None and best_score >= self.match_threshold:
            return EntityMatch(matched=True, entity=best, match_confidence=best_score, match_type="fuzzy")
        return None

    def resolve_degree(self, degree_name: str) -> EntityMatch:
        target = _lower(degree_name)
        if not target:
            return EntityMatch()
        for degree in self.degrees:
            if _lower(degree.get("name")) == target or _lower(degree.get("short_name")) == target:
                return EntityMatch(matched=True, entity=degree, match_confidence=1.0, match_type="exact")

        match = self._best_fuzzy(degree_name, self.degrees, keys=("name", "short_name"))
        if match is None:
            logger.debug(f"No degree match for {degree_name!r}")
        return match or EntityMatch()

    def resolve_institution(self, institution_name: str) -> EntityMatch:
        target = _lower(institution_name)
        if not target:
            return EntityMatch()
        for institution in self.institutions:
            name = _lower(institution.get("name"))
            if name and (name == target or name in target or target in name):
                return EntityMatch(matched=True, entity=institution, match_confidence=1.0, match_type="exact")

        match = self._best_fuzzy(institution_name, self.institutions)
        if match is None:
            logger.debug(f"No institution match for {institution_name!r}")
        return match or EntityMatch()

    def resolve_skill(self, skill_name: str, category_hint: Optional[str] = None) -> EntityMatch:
        target = _lower(skill_name)
        if not target:
            return EntityMatch()

        candidate_pools = [self.skills]
        if category_hint:
            category = self.resolve_skill_category(category_hint)
            if category.matched:
                in_category = [s for s in self.skills if s.get("category_id") == category.entity["id"]]
                candidate_pools = [in_category, self.skills]

        for pool in candidate_pools:
            match = self._match_skill(target, skill_name, pool)
            if match:
                return match
        logger.debug(f"No skill match for {skill_name!r}")
        return EntityMatch()

    def _match_skill(self, target: str, skill_name: str, candidates: List[dict]) -> Optional[EntityMatch]:
        for skill in candidates:
            if _lower(skill.get("name")) == target:
                return EntityMatch(
                    matched=True, entity=self._skill_entity(skill), match_confidence=1.0, match_type="exact"
                )
        match = self._best_fuzzy(skill_name, candidates)
        if match:
            match.entity = self._skill_entity(match.entity)
        return match

    def _skill_entity(self, skill: dict) -> dict:
        category = next((c for c in self.skill_categories if c["id"] == skill.get("category_id")), None)
        return {
            "id": skill["id"],
            "name": skill["name"],
            "category_id": skill.get("category_id"),
            "category_name": category["name"] if category else "Other",
        }

    def resolve_skill_category(self, category_name: str) -> EntityMatch:
        target = _lower(category_name).rstrip(":")
        if not target:
            return EntityMatch()
        for category in self.skill_categories:
            if _lower(category.get("name")) == target:
                return EntityMatch(matched=True, entity=category, match_confidence=1.0, match_type="exact")

        match = self._best_fuzzy(target, self.skill_categories)
        if match:
            return match

        canonical = CATEGORY_ALIASES.get(target)
        if canonical:
            for category in self.skill_categories:
                if _lower(category.get("name")) == canonical.lower():
                    return EntityMatch(matched=True, entity=category, match_confidence=0.8, match_type="mapped")

        logger.debug(f"No category match for {category_name!r}")
        return EntityMatch()

    def get_suggestions(self, entity_type: str, search_term: str, limit: int = 5) -> List[dict]:
        """Entities of a type ordered by similarity to the search term."""
        pools: Dict[str, List[dict]] = {
            "degree": self.degrees,
            "institution": self.institutions,
            "skill": self.skills,
            "category": self.skill_categories,
        }
        if entity_type not in pools:
            raise ValueError(f"Unknown entity type: {entity_type}")

        scored = [(fuzzy_match(search_term, entity.get("name") or ""), entity) for entity in pools[entity_type]]
        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [entity for score, entity in scored[:limit] if score > 0]

    def get_degrees(self) -> List[dict]:
        return self.degrees

    def get_institutions(self) -> List[dict]:
        return self.institutions

    def get_skills(self) -> List[dict]:
        return self.skills

    def get_skill_categories(self) -> List[dict]:
        return self.skill_categories


# ============================================================================
# Database wiring
# ============================================================================

def degree_to_dict(degree: Degree) -> dict:
    return {"id": degree.id, "name": degree.name, "short_name": degree.short_name, "level": degree.level}


def institution_to_dict(institution: Institution) -> dict:
    return {
        "id": institution.id,
        "name": institution.name,
        "short_name": institution.short_name,
        "type": institution.type,
        "location": institution.location,
    }


def skill_to_dict(skill: Skill) -> dict:
    return {"id": skill.id, "name": skill.name, "category_id": skill.category_id}


def category_to_dict(category: SkillCategory) -> dict:
    return {"id": category.id, "name": category.name}


def fetch_entities_from_db(db: AsyncSession) -> EntityFetchers:
    async def degrees():
        result = await db.execute(select(Degree).where(Degree.is_active == True))  # noqa: E712
        return [degree_to_dict(d) for d in result.scalars().all()]

    async def institutions():
        result = await db.execute(select(Institution).where(Institution.is_active == True))  # noqa: E712
        return [institution_to_dict(i) for i in result.scalars().all()]

    async def skills():
        result = await db.execute(select(Skill))
        return [skill_to_dict(s) for s in result.scalars().all()]

    async def categories():
        result = await db.execute(select(SkillCategory))
        return [category_to_dict(c) for c in result.scalars().all()]

    return EntityFetchers(degrees, institutions, skills, categories)


async def create_entity_resolver(db: AsyncSession, match_threshold: float = DEFAULT_MATCH_THRESHOLD) -> DatabaseEntityResolver:
    resolver = DatabaseEntityResolver(match_threshold=match_threshold)
    await resolver.load_entities(fetch_entities_from_db(db))
    return resolver
