"""
Data shapes flowing through the CV ingestion pipeline:
extracted text -> ParsedCV -> NormalizationResult -> validation / reconciliation.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, Field

from ...schemas.portfolio import PortfolioFormData


ParsingMethod = Literal["deterministic", "llm", "hybrid"]
LLMProvider = Literal["openai", "anthropic", "gemini"]
FileType = Literal["pdf", "docx", "doc", "txt"]

# Prefix marking a form value that has no reference entity yet
UNMAPPED_PREFIX = "__UNMAPPED__"


# ============================================================================
# Extracted text
# ============================================================================

class ExtractedSection(BaseModel):
    heading: str
    content: str = ""
    confidence: float = 0.0
    start_index: int = 0
    end_index: int = 0


class ExtractedTextMetadata(BaseModel):
    page_count: Optional[int] = None
    word_count: int = 0
    has_images: bool = False


class ExtractedText(BaseModel):
    full_text: str
    sections: List[ExtractedSection] = Field(default_factory=list)
    metadata: ExtractedTextMetadata = Field(default_factory=ExtractedTextMetadata)

    def get_section(self, heading: str) -> Optional[ExtractedSection]:
        for section in self.sections:
            if section.heading == heading:
                return section
        return None

    def section_content(self, heading: str) -> Optional[str]:
        """Content of every section with this heading, or None when there is none."""
        parts = [s.content for s in self.sections if s.heading == heading]
        if not parts:
            return None
        return "\n".join(p for p in parts if p)


# ============================================================================
# Parsed CV
# ============================================================================

class ParsedPersonalInfo(BaseModel):
    full_name: str = ""
    email: str = ""
    phone: str = ""
    location: Optional[str] = None
    nationality: Optional[str] = None
    summary: Optional[str] = None
    linkedin: Optional[str] = None
    github: Optional[str] = None
    website: Optional[str] = None


class ParsedEducation(BaseModel):
    degree: str
    institution: str
    graduation_year: Union[int, str, None] = None
    grade: Optional[str] = None
    field_of_study: Optional[str] = None
    confidence: float = 0.0


class ParsedCertification(BaseModel):
    name: str
    issuer: str = "Unknown"
    issue_date: Optional[str] = None
    expiry_date: Optional[str] = None
    credential_id: Optional[str] = None
    confidence: float = 0.0


class ParsedCourse(BaseModel):
    name: str
    provider: str = "Unknown"
    completion_date: Optional[str] = None
    duration: Optional[str] = None
    confidence: float = 0.0


class ParsedSkill(BaseModel):
    name: str
    proficiency: Optional[Literal["Beginner", "Intermediate", "Advanced", "Expert"]] = None
    years_of_experience: Optional[float] = None
    confidence: float = 0.0


class ParsedSkillCategory(BaseModel):
    category_name: str
    skills: List[ParsedSkill] = Field(default_factory=list)
    confidence: float = 0.0


class ParsedSkills(BaseModel):
    categories: List[ParsedSkillCategory] = Field(default_factory=list)
    raw: List[str] = Field(default_factory=list)  # skills with no category


class ParsedWorkExperience(BaseModel):
    company: str
    position: str
    location: Optional[str] = None
    start_date: str = ""
    end_date: Optional[str] = None
    is_current_role: bool = False
    responsibilities: List[str] = Field(default_factory=list)
    technologies: List[str] = Field(default_factory=list)
    confidence: float = 0.0


class ParsedProject(BaseModel):
    name: str
    description: str = ""
    role: Optional[str] = None
    contribution: Optional[str] = None
    technologies: List[str] = Field(default_factory=list)
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    is_ongoing: bool = False
    url: Optional[str] = None
    repository: Optional[str] = None
    confidence: float = 0.0


class CVMetadata(BaseModel):
    file_name: str = ""
    file_type: FileType = "txt"
    file_size: int = 0
    uploaded_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    parsing_method: ParsingMethod = "deterministic"
    parsing_duration: int = 0  # milliseconds
    total_confidence: float = 0.0
    warnings: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)


class ParsedCV(BaseModel):
    personal_info: ParsedPersonalInfo = Field(default_factory=ParsedPersonalInfo)
    education: List[ParsedEducation] = Field(default_factory=list)
    certifications: List[ParsedCertification] = Field(default_factory=list)
    courses: List[ParsedCourse] = Field(default_factory=list)
    skills: ParsedSkills = Field(default_factory=ParsedSkills)
    work_experience: List[ParsedWorkExperience] = Field(default_factory=list)
    projects: List[ParsedProject] = Field(default_factory=list)
    metadata: CVMetadata = Field(default_factory=CVMetadata)


# ============================================================================
# Entity resolution
# ============================================================================

class EntityMatch(BaseModel):
    matched: bool = False
    entity: Optional[Dict[str, Any]] = None
    match_confidence: float = 0.0
    match_type: Literal["exact", "fuzzy", "mapped", "none"] = "none"


class UnmappedFields(BaseModel):
    skills: List[str] = Field(default_factory=list)
    institutions: List[str] = Field(default_factory=list)
    degrees: List[str] = Field(default_factory=list)
    categories: List[str] = Field(default_factory=list)

    def total(self) -> int:
        return len(self.skills) + len(self.institutions) + len(self.degrees) + len(self.categories)


class NormalizationResult(BaseModel):
    form_data: PortfolioFormData
    unmapped_fields: UnmappedFields = Field(default_factory=UnmappedFields)
    warnings: List[str] = Field(default_factory=list)


class UnmappedEntities(BaseModel):
    skills: List[str] = Field(default_factory=list)
    categories: List[str] = Field(default_factory=list)
    degrees: List[str] = Field(default_factory=list)
    institutions: List[str] = Field(default_factory=list)
    # skill name -> category name it was listed under in the CV
    skill_category_hints: Dict[str, str] = Field(default_factory=dict)


class CreatedCounts(BaseModel):
    skills: int = 0
    categories: int = 0
    degrees: int = 0
    institutions: int = 0


class EntityCreationResult(BaseModel):
    skill_ids: Dict[str, str] = Field(default_factory=dict)
    category_ids: Dict[str, str] = Field(default_factory=dict)
    degree_ids: Dict[str, str] = Field(default_factory=dict)  # CV text -> stored degree name
    institution_ids: Dict[str, str] = Field(default_factory=dict)  # CV text -> stored institution name
    created: CreatedCounts = Field(default_factory=CreatedCounts)
    failed: List[str] = Field(default_factory=list)


class RemapResult(BaseModel):
    form_data: PortfolioFormData
    remaining_unmapped: UnmappedFields = Field(default_factory=UnmappedFields)


# ============================================================================
# Validation & results
# ============================================================================

class ValidationError(BaseModel):
    field: str
    message: str
    severity: Literal["critical", "error", "warning"] = "error"


class ValidationWarning(BaseModel):
    field: str
    message: str
    suggestion: Optional[str] = None


class CVValidationResult(BaseModel):
    is_valid: bool
    errors: List[ValidationError] = Field(default_factory=list)
    warnings: List[ValidationWarning] = Field(default_factory=list)
    completeness: int = 0  # 0-100
    quality_score: int = 0  # 0-100


class ParserConfig(BaseModel):
    use_llm: bool = False
    llm_provider: LLMProvider = "gemini"
    api_key: Optional[str] = None
    model: Optional[str] = None
    fallback_to_deterministic: bool = True
    enable_ocr: bool = False
    confidence_threshold: float = 0.7
    debug_mode: bool = False


class IngestionError(BaseModel):
    message: str
    code: str
    details: Optional[Any] = None


class CVIngestionResult(BaseModel):
    success: bool
    parsed_cv: Optional[ParsedCV] = None
    normalization_result: Optional[NormalizationResult] = None
    validation: Optional[CVValidationResult] = None
    extracted_text: Optional[str] = None
    error: Optional[IngestionError] = None
    warnings: List[str] = Field(default_factory=list)
