"""
Pytest configuration and shared fixtures.
"""

import os
import tempfile
from pathlib import Path

# Point the app at a throwaway SQLite file before anything imports the settings
_DB_DIR = tempfile.mkdtemp(prefix="portfolio-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{Path(_DB_DIR) / 'test.db'}"
os.environ["DEBUG"] = "false"
for _key in ("GEMINI_API_KEY", "OPENAI_API_KEY", "ANTHROPIC_API_KEY"):
    os.environ[_key] = ""

import httpx
import pytest

from portfolio_api.database import Base, async_session_maker, engine, init_db
from portfolio_api.services.cv_ingestion.extractors import count_words, detect_sections
from portfolio_api.services.cv_ingestion.schemas import ExtractedText, ExtractedTextMetadata
from seed_data import seed_reference_data


SAMPLE_CV = """Jane Doe
jane.doe@example.com | +1 555-123-4567
San Francisco, CA
linkedin.com/in/janedoe | https://github.com/janedoe
Nationality: American

Professional Summary
Full-stack engineer with 8 years of experience building web platforms.

Education
Bachelor of Science in Computer Science
Stanford University
2016
GPA: 3.8

Experience
Senior Software Engineer
Acme Technologies Inc
Jan 2020 - Present
- Led migration of the billing platform to microservices
- Mentored four junior developers
Technologies: Python, FastAPI, PostgreSQL
Software Engineer at Globex Corp
Jun 2016 - Dec 2019
- Built internal analytics dashboards

Skills
Languages: Python, JavaScript, TypeScript
Frontend: React, Vue
Docker, Git

Certifications
AWS Certified Solutions Architect - Amazon Web Services - 2021

Projects
Inventory Tracker
Jan 2021 - Mar 2021
Real-time inventory tracking tool for small shops.
Tech Stack: React, Node.js
https://github.com/janedoe/inventory
"""


def make_extracted_text(text: str) -> ExtractedText:
    """ExtractedText the way extract_text_from_file builds it for a .txt upload."""
    text = text.strip()
    return ExtractedText(
        full_text=text,
        sections=detect_sections(text),
        metadata=ExtractedTextMetadata(word_count=count_words(text)),
    )


@pytest.fixture
def sample_cv_text() -> str:
    return SAMPLE_CV


@pytest.fixture
def sample_extracted_text() -> ExtractedText:
    return make_extracted_text(SAMPLE_CV)


@pytest.fixture
def extracted_text_factory():
    return make_extracted_text


@pytest.fixture
async def database():
    """Fresh schema per test; pooled connections are dropped so each test's event loop owns its own."""
    await init_db()
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def db_session(database):
    async with async_session_maker() as session:
        yield session


@pytest.fixture
async def seeded_db(db_session):
    await seed_reference_data(db_session)
    return db_session


@pytest.fixture
async def client(database):
    from portfolio_api.main import app

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
