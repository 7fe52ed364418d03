"""
LLM-backed CV parser (Gemini, OpenAI or Anthropic) and the hybrid strategy
that only pays for an LLM call when the rule-based parse looks weak.
"""
import json
import logging
import re
import time
from typing import Any, Dict, List, Optional

import httpx
from google import genai
from google.genai import types
from pydantic import ValidationError as PydanticValidationError

from ...config import get_settings
from .deterministic_parser import DeterministicParser
from .exceptions import LLMParsingError
from .schemas import (
    CVMetadata,
    ExtractedText,
    ParsedCertification,
    ParsedCourse,
    ParsedCV,
    ParsedEducation,
    ParsedPersonalInfo,
    ParsedProject,
    ParsedSkill,
    ParsedSkillCategory,
    ParsedSkills,
    ParsedWorkExperience,
    ParserConfig,
)

logger = logging.getLogger(__name__)

OPENAI_URL = "https://api.openai.com/v1/chat/completions"
ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"

SYSTEM_PROMPT = "You are an expert CV parser. Extract structured data from CVs and return valid JSON only."

PROFICIENCY_LEVELS = {"Beginner", "Intermediate", "Advanced", "Expert"}


# ============================================================================
# Prompt
# ============================================================================

CV_EXTRACTION_PROMPT = """You are an expert CV/Resume parser. Extract structured information from the following CV text and return it as JSON.

CV Text:
{cv_text}

Return JSON with exactly this structure:

{{
  "personal_info": {{
    "full_name": "string",
    "email": "string",
    "phone": "string",
    "location": "string (optional)",
    "nationality": "string (optional)",
    "summary": "string (optional, professional summary/objective)",
    "linkedin": "string (optional, URL)",
    "github": "string (optional, URL)",
    "website": "string (optional, URL)"
  }},
  "education": [
    {{
      "degree": "string (e.g., Bachelor of Science, MSc)",
      "institution": "string",
      "graduation_year": "number",
      "grade": "string (optional)",
      "field_of_study": "string (optional)"
    }}
  ],
  "certifications": [
    {{
      "name": "string",
      "issuer": "string",
      "issue_date": "string (optional, YYYY-MM-DD)",
      "expiry_date": "string (optional, YYYY-MM-DD)",
      "credential_id": "string (optional)"
    }}
  ],
  "courses": [
    {{
      "name": "string",
      "provider": "string",
      "completion_date": "string (optional, YYYY-MM-DD)",
      "duration": "string (optional)"
    }}
  ],
  "skills": {{
    "categories": [
      {{
        "category_name": "string (e.g., Frontend, Backend, DevOps, Databases)",
        "skills": [
          {{"name": "string", "proficiency": "Beginner | Intermediate | Advanced | Expert (optional)", "years_of_experience": "number (optional)"}}
        ]
      }}
    ],
    "raw": ["uncategorized skill names (optional)"]
  }},
  "work_experience": [
    {{
      "company": "string",
      "position": "string",
      "location": "string (optional)",
      "start_date": "string (YYYY-MM-DD or 'MMM YYYY')",
      "end_date": "string (optional)",
      "is_current_role": "boolean",
      "responsibilities": ["string"],
      "technologies": ["string"]
    }}
  ],
  "projects": [
    {{
      "name": "string",
      "description": "string",
      "role": "string (optional)",
      "technologies": ["string"],
      "start_date": "string (optional)",
      "end_date": "string (optional)",
      "url": "string (optional)",
      "repository": "string (optional, GitHub URL)"
    }}
  ]
}}

Rules:
1. Return ONLY valid JSON, no markdown or code blocks
2. Extract all available information accurately; omit optional fields that are missing
3. Prefer ISO dates (YYYY-MM-DD), or at least 'MMM YYYY'
4. Group skills into sensible categories (Frontend, Backend, DevOps, Databases, ...)
5. Split work responsibilities into short bullet points
6. List the technologies mentioned in each job and project
7. Do not invent information that is not in the CV
"""


def build_prompt(extracted_text: ExtractedText) -> str:
    return CV_EXTRACTION_PROMPT.format(cv_text=extracted_text.full_text)


def extract_json_object(text: str) -> Dict[str, Any]:
    """Parse the first JSON object in an LLM reply, tolerating Markdown fences."""
    text = (text or "").strip()
    fenced = re.search(r"```(?:json)?\s*(.*?)```", text, re.DOTALL)
    if fenced:
        text = fenced.group(1).strip()
    elif not text.startswith("{"):
        start, end = text.find("{"), text.rfind("}")
        if start != -1 and end > start:
            text = text[start:end + 1]

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse LLM response as JSON: {e}; raw: {text[:300]}")
        raise LLMParsingError("Failed to parse LLM response as JSON") from e
    if not isinstance(data, dict):
        raise LLMParsingError("LLM response is not a JSON object")
    return data


# ============================================================================
# Response -> ParsedCV
# ============================================================================

def _pick(data: dict, *keys, default=None):
    """First non-empty value under any of the given keys (snake or camel case)."""
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return default


def _text(value) -> Optional[str]:
    if value in (None, ""):
        return None
    return str(value).strip()


def _string_list(value) -> List[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if v not in (None, "") and str(v).strip()]


def _dict_list(value) -> List[dict]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, dict)]


def _year(value):
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return value


def _parse_skill(item) -> Optional[ParsedSkill]:
    if isinstance(item, str):
        return ParsedSkill(name=item.strip(), confidence=0.85) if item.strip() else None
    if not isinstance(item, dict) or not _text(item.get("name")):
        return None
    proficiency = _text(item.get("proficiency"))
    proficiency = proficiency.capitalize() if proficiency else None
    years = _pick(item, "years_of_experience", "yearsOfExperience")
    return ParsedSkill(
        name=_text(item["name"]),
        proficiency=proficiency if proficiency in PROFICIENCY_LEVELS else None,
        years_of_experience=years if isinstance(years, (int, float)) else None,
        confidence=0.85,
    )


def transform_llm_response(data: Dict[str, Any]) -> ParsedCV:
    pi = _pick(data, "personal_info", "personalInfo", default={})
    if not isinstance(pi, dict):
        pi = {}
    personal_info = ParsedPersonalInfo(
        full_name=_text(_pick(pi, "full_name", "fullName", "name")) or "",
        email=_text(pi.get("email")) or "",
        phone=_text(pi.get("phone")) or "",
        location=_text(pi.get("location")),
        nationality=_text(pi.get("nationality")),
        summary=_text(pi.get("summary")),
        linkedin=_text(_pick(pi, "linkedin", "linkedIn")),
        github=_text(pi.get("github")),
        website=_text(pi.get("website")),
    )

    education = [
        ParsedEducation(
            degree=_text(e.get("degree")),
            institution=_text(e.get("institution")),
            graduation_year=_year(_pick(e, "graduation_year", "graduationYear")),
            grade=_text(_pick(e, "grade", "gpa")),
            field_of_study=_text(_pick(e, "field_of_study", "fieldOfStudy")),
            confidence=0.85,
        )
        for e in _dict_list(data.get("education"))
        if _text(e.get("degree")) and _text(e.get("institution"))
    ]

    certifications = [
        ParsedCertification(
            name=_text(c.get("name")),
            issuer=_text(c.get("issuer")) or "Unknown",
            issue_date=_text(_pick(c, "issue_date", "issueDate")),
            expiry_date=_text(_pick(c, "expiry_date", "expiryDate")),
            credential_id=_text(_pick(c, "credential_id", "credentialId")),
            confidence=0.8,
        )
        for c in _dict_list(data.get("certifications"))
        if _text(c.get("name"))
    ]

    courses = [
        ParsedCourse(
            name=_text(c.get("name")),
            provider=_text(c.get("provider")) or "Unknown",
            completion_date=_text(_pick(c, "completion_date", "completionDate")),
            duration=_text(c.get("duration")),
            confidence=0.8,
        )
        for c in _dict_list(data.get("courses"))
        if _text(c.get("name"))
    ]

    skills_data = data.get("skills") or {}
    if isinstance(skills_data, list):
        # Some models return a flat list instead of the categorized object
        skills_data = {"raw": skills_data}
    elif isinstance(skills_data, str):
        skills_data = {"raw": skills_data.split(",")}
    elif not isinstance(skills_data, dict):
        skills_data = {}
    categories = []
    for cat in _dict_list(skills_data.get("categories")):
        name = _text(_pick(cat, "category_name", "categoryName", "name"))
        items = cat.get("skills") or []
        if isinstance(items, str):
            items = items.split(",")
        parsed = [s for s in (_parse_skill(item) for item in items) if s]
        if name and parsed:
            categories.append(ParsedSkillCategory(category_name=name, skills=parsed, confidence=0.85))
    skills = ParsedSkills(categories=categories, raw=_string_list(skills_data.get("raw")))

    work_experience = [
        ParsedWorkExperience(
            company=_text(w.get("company")),
            position=_text(w.get("position")),
            location=_text(w.get("location")),
            start_date=_text(_pick(w, "start_date", "startDate")) or "",
            end_date=_text(_pick(w, "end_date", "endDate")),
            is_current_role=bool(_pick(w, "is_current_role", "isCurrentRole", default=False)),
            responsibilities=_string_list(w.get("responsibilities")),
            technologies=_string_list(w.get("technologies")),
            confidence=0.85,
        )
        for w in _dict_list(_pick(data, "work_experience", "workExperience"))
        if _text(w.get("company")) and _text(w.get("position"))
    ]

    projects = []
    for p in _dict_list(data.get("projects")):
        if not _text(p.get("name")):
            continue
        description = _text(p.get("description")) or ""
        projects.append(ParsedProject(
            name=_text(p.get("name")),
            description=description,
            role=_text(p.get("role")),
            contribution=_text(p.get("contribution")) or description or None,
            technologies=_string_list(p.get("technologies")),
            start_date=_text(_pick(p, "start_date", "startDate")),
            end_date=_text(_pick(p, "end_date", "endDate")),
            is_ongoing=bool(_pick(p, "is_ongoing", "isOngoing", default=False)),
            url=_text(p.get("url")),
            repository=_text(p.get("repository")),
            confidence=0.8,
        ))

    return ParsedCV(
        personal_info=personal_info,
        education=education,
        certifications=certifications,
        courses=courses,
        skills=skills,
        work_experience=work_experience,
        projects=projects,
        metadata=CVMetadata(parsing_method="llm", total_confidence=0.85),
    )


# ============================================================================
# Provider calls
# ============================================================================

class LLMParser:
    def __init__(self, extracted_text: ExtractedText, config: ParserConfig):
        self.extracted_text = extracted_text
        self.config = config
        self.settings = get_settings()

    async def parse(self) -> ParsedCV:
        started = time.monotonic()
        data = await self._call_llm(build_prompt(self.extracted_text))
        try:
            parsed = transform_llm_response(data)
        except (AttributeError, TypeError, PydanticValidationError) as e:
            raise LLMParsingError("LLM response did not match the expected CV structure", details=str(e)) from e
        parsed.metadata.parsing_duration = int((time.monotonic() - started) * 1000)
        logger.info(
            f"LLM parse ({self.config.llm_provider}) finished in {parsed.metadata.parsing_duration}ms"
        )
        return parsed

    async def _call_llm(self, prompt: str) -> Dict[str, Any]:
        if not self.config.api_key:
            raise LLMParsingError("API key is required for LLM parsing")

        provider = self.config.llm_provider
        if provider == "openai":
            return await self._call_openai(prompt)
        if provider == "anthropic":
            return await self._call_anthropic(prompt)
        if provider == "gemini":
            return await self._call_gemini(prompt)
        raise LLMParsingError(f"Unsupported LLM provider: {provider}")

    async def _post(self, provider_name: str, url: str, headers: dict, payload: dict) -> dict:
        try:
            async with httpx.AsyncClient(timeout=self.settings.llm_timeout_seconds) as client:
                response = await client.post(url, headers=headers, json=payload)
        except httpx.HTTPError as e:
            raise LLMParsingError(f"{provider_name} API request failed: {e}") from e

        if response.status_code >= 400:
            try:
                message = response.json()["error"]["message"]
            except (ValueError, KeyError, TypeError):
                message = response.text[:200] or "Unknown error"
            raise LLMParsingError(f"{provider_name} API error: {message}")
        return response.json()

    async def _call_openai(self, prompt: str) -> Dict[str, Any]:
        data = await self._post(
            "OpenAI",
            OPENAI_URL,
            {"Authorization": f"Bearer {self.config.api_key}"},
            {
                "model": self.config.model or self.settings.openai_model,
                "messages": [
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                "temperature": 0.1,
                "response_format": {"type": "json_object"},
            },
        )
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise LLMParsingError("OpenAI API returned an unexpected response") from e
        return extract_json_object(content)

    async def _call_anthropic(self, prompt: str) -> Dict[str, Any]:
        data = await self._post(
            "Anthropic",
            ANTHROPIC_URL,
            {"x-api-key": self.config.api_key, "anthropic-version": ANTHROPIC_VERSION},
            {
                "model": self.config.model or self.settings.anthropic_model,
                "max_tokens": 4096,
                "system": SYSTEM_PROMPT,
                "messages": [{"role": "user", "content": prompt}],
                "temperature": 0.1,
            },
        )
        try:
            content = data["content"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise LLMParsingError("Anthropic API returned an unexpected response") from e
        return extract_json_object(content)

    async def _call_gemini(self, prompt: str) -> Dict[str, Any]:
        client = genai.Client(api_key=self.config.api_key)
        try:
            response = await client.aio.models.generate_content(
                model=self.config.model or self.settings.gemini_model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    temperature=0.1,
                    max_output_tokens=8192,
                    response_mime_type="application/json",
                ),
            )
        except Exception as e:
            raise LLMParsingError(f"Gemini API error: {e}") from e
        return extract_json_object(response.text)


# ============================================================================
# Hybrid strategy
# ============================================================================

def merge_parsed_cvs(primary: ParsedCV, secondary: ParsedCV) -> ParsedCV:
    """Prefer primary's non-empty sections, filling the gaps from secondary."""
    primary_info = primary.personal_info.model_dump()
    secondary_info = secondary.personal_info.model_dump()
    personal_info = {
        key: primary_info[key] if primary_info[key] else secondary_info[key]
        for key in primary_info
    }

    skills = primary.skills
    if not skills.categories and not skills.raw:
        skills = secondary.skills

    merged = ParsedCV(
        personal_info=ParsedPersonalInfo(**personal_info),
        education=primary.education or secondary.education,
        certifications=primary.certifications or secondary.certifications,
        courses=primary.courses or secondary.courses,
        skills=skills,
        work_experience=primary.work_experience or secondary.work_experience,
        projects=primary.projects or secondary.projects,
        metadata=primary.metadata.model_copy(deep=True),
    )
    merged.metadata.parsing_method = "hybrid"
    merged.metadata.warnings = [*primary.metadata.warnings, *secondary.metadata.warnings]
    merged.metadata.errors = [*primary.metadata.errors, *secondary.metadata.errors]
    return merged


async def parse_with_hybrid_approach(extracted_text: ExtractedText, config: ParserConfig) -> ParsedCV:
    """
    Deterministic parse first; call the LLM only when it is enabled and the
    deterministic confidence falls below the configured threshold.
    """
    deterministic = DeterministicParser(extracted_text).parse()
    confidence = deterministic.metadata.total_confidence

    if not config.use_llm or not config.api_key:
        return deterministic
    if confidence >= config.confidence_threshold:
        logger.info(f"Deterministic confidence {confidence:.2f} meets threshold, skipping LLM")
        return deterministic

    try:
        llm_result = await LLMParser(extracted_text, config).parse()
    except LLMParsingError as e:
        if not config.fallback_to_deterministic:
            raise
        logger.warning(f"LLM parsing failed, falling back to deterministic result: {e}")
        deterministic.metadata.warnings.append(f"LLM parsing failed: {e.message}")
        return deterministic

    return merge_parsed_cvs(llm_result, deterministic)
