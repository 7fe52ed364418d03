"""
Seed script to populate the reference tables the portfolio form and CV ingestion rely on
Run with: python -m seed_data
"""
import asyncio
from sqlalchemy import select

from portfolio_api.database import async_session_maker, init_db
from portfolio_api.models import Degree, Institution, SkillCategory, Skill
from portfolio_api.models.reference import DegreeLevel, InstitutionType


DEGREES = [
    ("Bachelor of Science", "BSc", DegreeLevel.UNDERGRADUATE),
    ("Bachelor of Science in Computer Science", "BSc CS", DegreeLevel.UNDERGRADUATE),
    ("Bachelor of Engineering", "BE", DegreeLevel.UNDERGRADUATE),
    ("Bachelor of Business Administration", "BBA", DegreeLevel.UNDERGRADUATE),
    ("Bachelor of Arts", "BA", DegreeLevel.UNDERGRADUATE),
    ("Master of Science", "MSc", DegreeLevel.POSTGRADUATE),
    ("Master of Business Administration", "MBA", DegreeLevel.POSTGRADUATE),
    ("Doctor of Philosophy", "PhD", DegreeLevel.POSTGRADUATE),
    ("Diploma in Engineering", None, DegreeLevel.DIPLOMA),
]

INSTITUTIONS = [
    ("Stanford University", "Stanford", InstitutionType.UNIVERSITY, "Stanford, CA"),
    ("Massachusetts Institute of Technology", "MIT", InstitutionType.UNIVERSITY, "Cambridge, MA"),
    ("University of Dhaka", "DU", InstitutionType.UNIVERSITY, "Dhaka"),
    ("Bangladesh University of Engineering and Technology", "BUET", InstitutionType.UNIVERSITY, "Dhaka"),
    ("Dhaka College", None, InstitutionType.COLLEGE, "Dhaka"),
]

SKILLS_BY_CATEGORY = {
    "Programming Languages": ["Python", "JavaScript", "TypeScript", "Java", "Go", "C++"],
    "Frontend": ["React", "Vue.js", "Angular", "HTML", "CSS"],
    "Backend": ["Node.js", "FastAPI", "Django", "Spring Boot"],
    "Databases": ["PostgreSQL", "MySQL", "MongoDB", "Redis"],
    "DevOps": ["Docker", "Kubernetes", "AWS", "Terraform"],
    "Other": ["Git"],
}


async def seed_reference_data(db) -> dict:
    """Insert any reference rows that are missing; safe to run repeatedly"""
    counts = {"degrees": 0, "institutions": 0, "categories": 0, "skills": 0}

    existing = set((await db.execute(select(Degree.name))).scalars().all())
    for name, short_name, level in DEGREES:
        if name not in existing:
            db.add(Degree(
                name=name,
                short_name=short_name,
                level=level.value,
                description=f"{name} degree",
            ))
            counts["degrees"] += 1

    existing = set((await db.execute(select(Institution.name))).scalars().all())
    for name, short_name, inst_type, location in INSTITUTIONS:
        if name not in existing:
            db.add(Institution(
                name=name,
                short_name=short_name,
                type=inst_type.value,
                location=location,
                is_verified=True,
            ))
            counts["institutions"] += 1

    for category_name, skill_names in SKILLS_BY_CATEGORY.items():
        result = await db.execute(select(SkillCategory).where(SkillCategory.name == category_name))
        category = result.scalar_one_or_none()
        if category is None:
            category = SkillCategory(name=category_name, approved=True)
            db.add(category)
            await db.flush()
            counts["categories"] += 1

        result = await db.execute(select(Skill.name).where(Skill.category_id == category.id))
        existing = set(result.scalars().all())
        for skill_name in skill_names:
            if skill_name not in existing:
                db.add(Skill(name=skill_name, category_id=category.id))
                counts["skills"] += 1

    await db.commit()
    return counts


async def seed_database():
    await init_db()

    async with async_session_maker() as db:
        counts = await seed_reference_data(db)
        print("✅ Reference data seeded successfully!")
        for table, count in counts.items():
            print(f"   {table}: {count} added")


if __name__ == "__main__":
    asyncio.run(seed_database())
