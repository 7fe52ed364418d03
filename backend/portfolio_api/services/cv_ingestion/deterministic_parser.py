"""
Rule-based CV parser. Works section by section over the detected headings
and never leaves the process, so it is always available as the fallback
when no LLM is configured.
"""
import logging
import re
from typing import List, Optional

from .extractors import (
    extract_dates,
    extract_emails,
    extract_github_profile,
    extract_linkedin_profile,
    extract_phone_numbers,
    extract_urls,
)
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
)

logger = logging.getLogger(__name__)


# ============================================================================
# Patterns
# ============================================================================

DEGREE_WORDS = re.compile(r"\b(Bachelor|Master|Ph\.?D|Doctorate|Associate|Diploma)\b", re.IGNORECASE)
DEGREE_ACRONYMS = re.compile(r"\b(B\.?Sc|M\.?Sc|MBA|BBA|BA|MA|BS|MS|B\.?Tech|M\.?Tech|B\.E|M\.E|BE|ME)\b")
INSTITUTION_WORDS = re.compile(r"\b(University|College|Institute|School|Academy)\b", re.IGNORECASE)
YEAR = re.compile(r"\b(?:19|20)\d{2}\b")
GRADE_LINE = re.compile(r"^(?:CGPA|GPA|Grade)\b\s*[:\-]?\s*", re.IGNORECASE)
FIELD_OF_STUDY = re.compile(r"\bin\s+([A-Z][\w&/ ]+)")
ENTRY_SEPARATORS = re.compile(r"\s+[-–—]\s+|\s*[,|]\s*")
ISSUER_WORDS = re.compile(r"\b(?:issued\s+by|by|from)\b", re.IGNORECASE)
DURATION = re.compile(r"\b\d+\s*(?:hours?|hrs?|weeks?|months?|days?)\b", re.IGNORECASE)

NAME_EXCLUDE = re.compile(r"\b(Resume|CV|Curriculum Vitae|Contact|Email|Phone)\b", re.IGNORECASE)
LOCATION = re.compile(r"\b([A-Z][a-z]+(?:[ \t]+[A-Z][a-z]+)*),[ \t]*([A-Z]{2}|[A-Z][a-z]+)\b")
NATIONALITY = re.compile(r"Nationality:[ \t]*([A-Za-z \t]+)", re.IGNORECASE)

SKILL_SEPARATORS = re.compile(r"[,;|•]")
INLINE_CATEGORY = re.compile(r"^([A-Za-z][\w &/+.-]{1,39}):\s*(.+)$")
PROFICIENCY = re.compile(r"\s*\((Beginner|Intermediate|Advanced|Expert)\)\s*$", re.IGNORECASE)

BULLET = re.compile(r"^[•\-*▪●◦]\s*")
MONTH = re.compile(r"\b(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)", re.IGNORECASE)
CURRENT = re.compile(r"\b(Present|Current|Ongoing|Now)\b", re.IGNORECASE)
YEAR_RANGE = re.compile(r"\b(?:19|20)\d{2}\s*(?:[-–—]|to)\s*(?:(?:19|20)\d{2}|Present|Current|Now)\b", re.IGNORECASE)
TECH_LABEL = re.compile(r"^(?:Technologies|Technology|Tech Stack|Built with|Tools)\s*:\s*", re.IGNORECASE)
PAREN_LIST = re.compile(r"\(([^)]*,[^)]*)\)")
COMPANY_MARKERS = re.compile(r"\b(Inc|Ltd|Corp|LLC|Technologies|Solutions|Systems|Consulting)\b\.?|^@", re.IGNORECASE)
TITLE_AT_COMPANY = re.compile(r"^(.+?)\s+(?:at|@)\s+(.+)$")
JOB_TITLE_WORDS = re.compile(
    r"\b(Engineer|Developer|Manager|Director|Analyst|Consultant|Designer|Architect|Lead|Senior|"
    r"Junior|Intern|Specialist|Coordinator|Administrator)\b",
    re.IGNORECASE,
)
ROLE_LABEL = re.compile(r"^Role\s*:\s*", re.IGNORECASE)


def _strip_bullet(line: str) -> str:
    return BULLET.sub("", line).strip()


def _is_date_range(line: str) -> bool:
    if YEAR_RANGE.search(line):
        return True
    return bool(MONTH.search(line)) and bool(YEAR.search(line) or CURRENT.search(line))


def _parse_date_range(line: str):
    is_current = bool(CURRENT.search(line))
    dates = extract_dates(line)
    start = dates[0] if dates else ""
    end = None if is_current or len(dates) < 2 else dates[1]
    return start, end, is_current


def _extract_technologies(line: str) -> List[str]:
    tech = TECH_LABEL.sub("", line.strip())
    paren = PAREN_LIST.search(tech)
    if paren:
        tech = paren.group(1)
    return [t.strip() for t in SKILL_SEPARATORS.split(tech) if t.strip()]


def _average_confidence(items) -> float:
    if not items:
        return 0.0
    return sum(item.confidence for item in items) / len(items)


class DeterministicParser:
    """Heuristic parser over an ExtractedText."""

    def __init__(self, extracted_text: ExtractedText):
        self.extracted_text = extracted_text
        self.warnings: List[str] = []

    def parse(self) -> ParsedCV:
        personal_info = self.parse_personal_info()
        education = self.parse_education()
        certifications = self.parse_certifications()
        courses = self.parse_courses()
        skills = self.parse_skills()
        work_experience = self.parse_work_experience()
        projects = self.parse_projects()

        scored = [*education, *certifications, *courses, *work_experience, *projects]
        metadata = CVMetadata(
            parsing_method="deterministic",
            total_confidence=_average_confidence(scored),
            warnings=list(self.warnings),
        )
        logger.info(
            f"Deterministic parse: {len(education)} education, {len(work_experience)} jobs, "
            f"{len(skills.categories)} skill categories, {len(projects)} projects"
        )
        return ParsedCV(
            personal_info=personal_info,
            education=education,
            certifications=certifications,
            courses=courses,
            skills=skills,
            work_experience=work_experience,
            projects=projects,
            metadata=metadata,
        )

    def _lines(self, heading: str) -> Optional[List[str]]:
        content = self.extracted_text.section_content(heading)
        if content is None:
            return None
        return [line.strip() for line in content.split("\n") if line.strip()]

    # ------------------------------------------------------------------
    # Personal info
    # ------------------------------------------------------------------

    def parse_personal_info(self) -> ParsedPersonalInfo:
        text = self.extracted_text.full_text
        emails = extract_emails(text)
        phones = extract_phone_numbers(text)

        location_match = LOCATION.search(text)
        nationality_match = NATIONALITY.search(text)

        return ParsedPersonalInfo(
            full_name=self._extract_name(text),
            email=emails[0] if emails else "",
            phone=phones[0] if phones else "",
            location=location_match.group(0) if location_match else None,
            nationality=nationality_match.group(1).strip() if nationality_match else None,
            summary=self.extracted_text.section_content("Summary") or None,
            linkedin=extract_linkedin_profile(text),
            github=extract_github_profile(text),
            website=self._extract_website(text),
        )

    def _extract_name(self, text: str) -> str:
        for line in [l.strip() for l in text.split("\n") if l.strip()][:5]:
            if (
                2 < len(line) < 50
                and not NAME_EXCLUDE.search(line)
                and "@" not in line
                and "http" not in line.lower()
            ):
                return line
        return ""

    def _extract_website(self, text: str) -> Optional[str]:
        for url in extract_urls(text):
            lowered = url.lower()
            if not any(host in lowered for host in ("linkedin", "github", "twitter")):
                return url
        return None

    # ------------------------------------------------------------------
    # Education
    # ------------------------------------------------------------------

    def parse_education(self) -> List[ParsedEducation]:
        lines = self._lines("Education")
        if lines is None:
            self.warnings.append("No education section found")
            return []

        entries = []
        current = None

        for line in lines:
            line = _strip_bullet(line)
            if DEGREE_WORDS.search(line) or DEGREE_ACRONYMS.search(line):
                if current:
                    entries.append(current)
                current = {"confidence": 0.7}
                parts = [p for p in ENTRY_SEPARATORS.split(line) if p.strip()]
                institution = next((p for p in parts if INSTITUTION_WORDS.search(p)), None)
                degree = next(
                    (p for p in parts if DEGREE_WORDS.search(p) or DEGREE_ACRONYMS.search(p)),
                    line,
                )
                current["degree"] = degree.strip()
                if institution and institution is not degree:
                    current["institution"] = institution.strip()
                field = FIELD_OF_STUDY.search(degree)
                if field:
                    current["field_of_study"] = field.group(1).strip()
                year = YEAR.findall(line)
                if year:
                    current["graduation_year"] = int(year[-1])
                continue

            if current is None:
                current = {"confidence": 0.7}

            if GRADE_LINE.search(line):
                current["grade"] = GRADE_LINE.sub("", line).strip()
            elif INSTITUTION_WORDS.search(line) and "institution" not in current:
                current["institution"] = ENTRY_SEPARATORS.split(line)[0].strip()
                year = YEAR.findall(line)
                if year and "graduation_year" not in current:
                    current["graduation_year"] = int(year[-1])
            elif YEAR.search(line) and "graduation_year" not in current:
                current["graduation_year"] = int(YEAR.findall(line)[-1])

        if current:
            entries.append(current)

        return [
            ParsedEducation(**entry)
            for entry in entries
            if entry.get("degree") and entry.get("institution")
        ]

    # ------------------------------------------------------------------
    # Certifications & courses
    # ------------------------------------------------------------------

    def parse_certifications(self) -> List[ParsedCertification]:
        lines = self._lines("Certifications")
        if not lines:
            return []

        certifications = []
        current = None
        for line in lines:
            line = _strip_bullet(line)
            if current and ISSUER_WORDS.match(line):
                current.issuer = ISSUER_WORDS.sub("", line).strip(" :-") or current.issuer
                continue

            parts = [p.strip() for p in ENTRY_SEPARATORS.split(line) if p.strip()]
            dates = extract_dates(line)
            issuer = next((p for p in parts[1:] if p not in dates and not YEAR.fullmatch(p)), None)
            current = ParsedCertification(
                name=parts[0] if parts else line,
                issuer=ISSUER_WORDS.sub("", issuer).strip() if issuer else "Unknown",
                issue_date=dates[0] if dates else None,
                confidence=0.6,
            )
            certifications.append(current)
        return certifications

    def parse_courses(self) -> List[ParsedCourse]:
        lines = self._lines("Courses")
        if not lines:
            return []

        courses = []
        for line in lines:
            line = _strip_bullet(line)
            if len(line) < 5:
                continue
            parts = [p.strip() for p in ENTRY_SEPARATORS.split(line) if p.strip()]
            dates = extract_dates(line)
            duration = DURATION.search(line)
            provider = next(
                (
                    p for p in parts[1:]
                    if p not in dates and not YEAR.fullmatch(p) and not DURATION.fullmatch(p)
                ),
                None,
            )
            courses.append(ParsedCourse(
                name=parts[0] if parts else line,
                provider=provider or "Unknown",
                completion_date=dates[0] if dates else None,
                duration=duration.group(0) if duration else None,
                confidence=0.5,
            ))
        return courses

    # ------------------------------------------------------------------
    # Skills
    # ------------------------------------------------------------------

    def parse_skills(self) -> ParsedSkills:
        lines = self._lines("Skills")
        if lines is None:
            self.warnings.append("No skills section found")
            return ParsedSkills()

        categories: List[ParsedSkillCategory] = []
        raw: List[str] = []
        current: Optional[ParsedSkillCategory] = None

        for index, raw_line in enumerate(lines):
            line = _strip_bullet(raw_line)
            inline = INLINE_CATEGORY.match(line)
            if inline:
                categories.append(ParsedSkillCategory(
                    category_name=inline.group(1).strip(),
                    skills=self._parse_skills_from_line(inline.group(2)),
                    confidence=0.7,
                ))
                current = None
            elif not BULLET.match(raw_line) and self._is_category_heading(
                line, lines[index + 1] if index + 1 < len(lines) else None
            ):
                current = ParsedSkillCategory(category_name=line.rstrip(":").strip(), confidence=0.7)
                categories.append(current)
            elif current is not None:
                current.skills.extend(self._parse_skills_from_line(line))
            else:
                raw.extend(skill.name for skill in self._parse_skills_from_line(line))

        categories = [c for c in categories if c.skills]
        return ParsedSkills(categories=categories, raw=list(dict.fromkeys(raw)))

    def _is_category_heading(self, line: str, next_line: Optional[str]) -> bool:
        if line.endswith(":"):
            return True
        if len(line) >= 40 or not line[:1].isupper() or re.search(r"[,.;|•]", line):
            return False
        # A bare title-case line is a heading only when a list follows it
        return next_line is not None and bool(SKILL_SEPARATORS.search(next_line) or BULLET.match(next_line))

    def _parse_skills_from_line(self, line: str) -> List[ParsedSkill]:
        skills = []
        for part in SKILL_SEPARATORS.split(line):
            name = _strip_bullet(part)
            proficiency = None
            level = PROFICIENCY.search(name)
            if level:
                proficiency = level.group(1).capitalize()
                name = PROFICIENCY.sub("", name).strip()
            if name and len(name) <= 50:
                skills.append(ParsedSkill(name=name, proficiency=proficiency, confidence=0.6))
        return skills

    # ------------------------------------------------------------------
    # Work experience
    # ------------------------------------------------------------------

    def parse_work_experience(self) -> List[ParsedWorkExperience]:
        lines = self._lines("Experience")
        if lines is None:
            self.warnings.append("No work experience section found")
            return []

        experiences = []
        current: dict = {}

        def start_new(**fields):
            nonlocal current
            if current:
                experiences.append(current)
            current = {"responsibilities": [], "technologies": [], **fields}

        for line in lines:
            if BULLET.match(line):
                if not current:
                    start_new()
                current["responsibilities"].append(_strip_bullet(line))
            elif _is_date_range(line) and len(line) < 60:
                start, end, is_current = _parse_date_range(line)
                if not current or current.get("start_date"):
                    start_new()
                current.update(start_date=start, end_date=end, is_current_role=is_current)
            elif TECH_LABEL.match(line) or PAREN_LIST.search(line):
                if not current:
                    start_new()
                current["technologies"].extend(_extract_technologies(line))
            elif TITLE_AT_COMPANY.match(line) and JOB_TITLE_WORDS.search(TITLE_AT_COMPANY.match(line).group(1)):
                title_match = TITLE_AT_COMPANY.match(line)
                start_new(position=title_match.group(1).strip(), company=title_match.group(2).strip())
            elif COMPANY_MARKERS.search(line):
                if not current or current.get("company"):
                    start_new()
                current["company"] = line.lstrip("@").strip()
            elif JOB_TITLE_WORDS.search(line) and len(line) < 80:
                if not current or current.get("position"):
                    start_new()
                current["position"] = line
            elif current.get("position") and not current.get("company") and len(line) < 60 and not line.endswith("."):
                current["company"] = line
            elif current:
                current["responsibilities"].append(line)

        if current:
            experiences.append(current)

        return [
            ParsedWorkExperience(
                company=exp["company"],
                position=exp["position"],
                start_date=exp.get("start_date", ""),
                end_date=exp.get("end_date"),
                is_current_role=exp.get("is_current_role", False),
                responsibilities=exp["responsibilities"],
                technologies=list(dict.fromkeys(exp["technologies"])),
                confidence=0.7,
            )
            for exp in experiences
            if exp.get("company") and exp.get("position")
        ]

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def parse_projects(self) -> List[ParsedProject]:
        lines = self._lines("Projects")
        if not lines:
            return []

        projects = []
        current: dict = {}

        def has_content(project: dict) -> bool:
            return bool(
                project.get("description") or project.get("technologies")
                or project.get("start_date") or project.get("url") or project.get("repository")
            )

        for line in lines:
            if ROLE_LABEL.match(line) and current:
                current["role"] = ROLE_LABEL.sub("", line).strip()
            elif TECH_LABEL.match(line):
                if current:
                    current.setdefault("technologies", []).extend(_extract_technologies(line))
            elif re.search(r"https?://", line):
                if current:
                    for url in extract_urls(line):
                        key = "repository" if "github.com" in url.lower() else "url"
                        current.setdefault(key, url)
            elif _is_date_range(line) and len(line) < 60:
                if current:
                    start, end, is_current = _parse_date_range(line)
                    current.update(start_date=start, end_date=end, is_ongoing=is_current)
            elif self._is_project_title(line) and (not current or has_content(current)):
                if current:
                    projects.append(current)
                current = {"name": line}
            elif current and len(_strip_bullet(line)) > 10:
                current.setdefault("description", []).append(_strip_bullet(line))

        if current:
            projects.append(current)

        parsed = []
        for project in projects:
            description = project.get("description", [])
            parsed.append(ParsedProject(
                name=project["name"],
                description=" ".join(description),
                contribution=description[0] if description else None,
                role=project.get("role"),
                technologies=list(dict.fromkeys(project.get("technologies", []))),
                start_date=project.get("start_date"),
                end_date=project.get("end_date"),
                is_ongoing=project.get("is_ongoing", False),
                url=project.get("url"),
                repository=project.get("repository"),
                confidence=0.6,
            ))
        return parsed

    def _is_project_title(self, line: str) -> bool:
        return (
            3 < len(line) < 100
            and not BULLET.match(line)
            and line[:1].isupper()
            and not line.endswith(".")
            and len(line.split()) <= 8
        )
