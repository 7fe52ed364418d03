"""
CV ingestion entry points: file -> parsed CV -> form data, with validation
and quality scoring, plus the apply step that creates missing reference
entities and re-maps the form data onto them.
"""
import logging
import time
from typing import Optional, Tuple

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from .deterministic_parser import DeterministicParser
from .entity_remapper import remap_form_data_with_entities
from .entity_resolver import DatabaseEntityResolver
from .exceptions import CVIngestionError
from .extractors import extract_text_from_file, get_file_type
from .llm_parser import parse_with_hybrid_approach
from .normalizers import normalize_parsed_cv
from .schemas import (
    CVIngestionResult,
    CVValidationResult,
    EntityCreationResult,
    IngestionError,
    NormalizationResult,
    ParsedCV,
    ParserConfig,
    RemapResult,
    UnmappedEntities,
    ValidationError,
    ValidationWarning,
)
from .unmapped_entity_creator import create_unmapped_entities

logger = logging.getLogger(__name__)

DEFAULT_PARSER_CONFIG = ParserConfig(
    use_llm=False,
    fallback_to_deterministic=True,
    enable_ocr=False,
    confidence_threshold=0.7,
    debug_mode=False,
)


async def ingest_cv(
    filename: str,
    content: bytes,
    config: Optional[ParserConfig] = None,
    entity_resolver: Optional[DatabaseEntityResolver] = None,
) -> CVIngestionResult:
    """
    Run the whole pipeline on one uploaded file. Never raises; failures come
    back as CVIngestionResult(success=False, error=...).
    """
    overrides = config.model_dump(exclude_unset=True) if config else {}
    parser_config = DEFAULT_PARSER_CONFIG.model_copy(update=overrides)
    started = time.monotonic()

    try:
        file_type = get_file_type(filename)
        extracted = extract_text_from_file(filename, content)

        if parser_config.use_llm and parser_config.api_key:
            parsed_cv = await parse_with_hybrid_approach(extracted, parser_config)
        else:
            parsed_cv = DeterministicParser(extracted).parse()

        parsed_cv.metadata.file_name = filename
        parsed_cv.metadata.file_type = file_type
        parsed_cv.metadata.file_size = len(content)
        parsed_cv.metadata.parsing_duration = int((time.monotonic() - started) * 1000)

        normalization = normalize_parsed_cv(parsed_cv, entity_resolver)
        validation = validate_parsed_cv(parsed_cv, normalization)
    except CVIngestionError as e:
        logger.warning(f"CV ingestion failed for {filename}: {e.message}")
        return CVIngestionResult(
            success=False,
            error=IngestionError(message=e.message, code=e.code, details=e.details),
        )
    except Exception as e:
        logger.exception(f"Unexpected error ingesting {filename}")
        return CVIngestionResult(
            success=False,
            error=IngestionError(message=str(e) or "Unknown error", code="INGESTION_ERROR"),
        )

    if parser_config.debug_mode:
        logger.info(f"Parsed CV for {filename}: {parsed_cv.model_dump_json()}")

    logger.info(
        f"Ingested {filename} via {parsed_cv.metadata.parsing_method}: "
        f"completeness {validation.completeness}%, quality {validation.quality_score}"
    )
    return CVIngestionResult(
        success=True,
        parsed_cv=parsed_cv,
        normalization_result=normalization,
        validation=validation,
        extracted_text=extracted.full_text,
        warnings=[*parsed_cv.metadata.warnings, *normalization.warnings],
    )


# ============================================================================
# Validation & scoring
# ============================================================================

def validate_parsed_cv(parsed_cv: ParsedCV, normalization: NormalizationResult) -> CVValidationResult:
    errors = []
    warnings = []
    info = parsed_cv.personal_info

    if not info.email:
        errors.append(ValidationError(field="email", message="Email is required", severity="critical"))
    if not info.full_name or info.full_name == "Unknown":
        errors.append(ValidationError(field="full_name", message="Name could not be extracted", severity="error"))

    if not info.phone:
        warnings.append(ValidationWarning(
            field="phone", message="Phone number not found", suggestion="Add a contact number"
        ))
    if not parsed_cv.education:
        warnings.append(ValidationWarning(
            field="education", message="No education entries found", suggestion="Add at least one degree"
        ))
    if not parsed_cv.skills.categories and not parsed_cv.skills.raw:
        warnings.append(ValidationWarning(
            field="skills", message="No skills found", suggestion="Add your technical skills"
        ))
    if not parsed_cv.work_experience:
        warnings.append(ValidationWarning(
            field="work_experience", message="No work experience found",
            suggestion="Add your employment history",
        ))

    for message in normalization.warnings:
        warnings.append(ValidationWarning(field="normalization", message=message))

    unmapped = normalization.unmapped_fields
    if unmapped.skills:
        warnings.append(ValidationWarning(
            field="skills",
            message=f"{len(unmapped.skills)} skills not found in database",
            suggestion="These skills will be created or can be mapped manually",
        ))
    if unmapped.degrees:
        warnings.append(ValidationWarning(
            field="education",
            message=f"{len(unmapped.degrees)} degrees not found in database",
            suggestion="These degrees will be created or can be mapped manually",
        ))
    if unmapped.institutions:
        warnings.append(ValidationWarning(
            field="education",
            message=f"{len(unmapped.institutions)} institutions not found in database",
            suggestion="These institutions will be created or can be mapped manually",
        ))

    is_valid = not any(e.severity == "critical" for e in errors)
    return CVValidationResult(
        is_valid=is_valid,
        errors=errors,
        warnings=warnings,
        completeness=calculate_completeness(parsed_cv),
        quality_score=calculate_quality_score(parsed_cv, errors, warnings),
    )


def calculate_completeness(parsed_cv: ParsedCV) -> int:
    info = parsed_cv.personal_info
    filled = [
        bool(info.email and info.phone),
        bool(parsed_cv.education),
        bool(parsed_cv.skills.categories or parsed_cv.skills.raw),
        bool(parsed_cv.work_experience),
        bool(parsed_cv.projects),
        bool(parsed_cv.certifications),
        bool(parsed_cv.courses),
    ]
    return round(sum(filled) / len(filled) * 100)


def calculate_quality_score(parsed_cv: ParsedCV, errors, warnings) -> int:
    score = 100
    score -= 20 * sum(1 for e in errors if e.severity == "critical")
    score -= 10 * sum(1 for e in errors if e.severity == "error")
    score -= 2 * len(warnings)

    confidence = parsed_cv.metadata.total_confidence
    if confidence < 0.5:
        score -= 20
    elif confidence < 0.7:
        score -= 10

    if (
        parsed_cv.personal_info.email
        and parsed_cv.education
        and parsed_cv.skills.categories
        and parsed_cv.work_experience
    ):
        score += 10

    return max(0, min(100, score))


# ============================================================================
# Apply: create missing entities and re-map
# ============================================================================

def collect_unmapped_entities(parsed_cv: ParsedCV, normalization: NormalizationResult) -> UnmappedEntities:
    hints = {}
    for category in parsed_cv.skills.categories:
        for skill in category.skills:
            hints.setdefault(skill.name, category.category_name)

    unmapped = normalization.unmapped_fields
    return UnmappedEntities(
        skills=list(unmapped.skills),
        categories=list(unmapped.categories),
        degrees=list(unmapped.degrees),
        institutions=list(unmapped.institutions),
        skill_category_hints={name: hints[name] for name in unmapped.skills if name in hints},
    )


async def ingest_and_reconcile(
    db: AsyncSession,
    parsed_cv: ParsedCV,
    normalization: NormalizationResult,
    entity_resolver: Optional[DatabaseEntityResolver] = None,
) -> Tuple[EntityCreationResult, RemapResult]:
    """Create the entities a reviewed CV still references by name, then re-map its form data."""
    unmapped = collect_unmapped_entities(parsed_cv, normalization)
    if not (unmapped.skills or unmapped.categories or unmapped.degrees or unmapped.institutions):
        return EntityCreationResult(), RemapResult(form_data=normalization.form_data)

    creation = await create_unmapped_entities(db, unmapped)
    remap = await remap_form_data_with_entities(
        db, normalization.form_data, parsed_cv, entity_resolver or DatabaseEntityResolver()
    )
    return creation, remap


# ============================================================================
# Export / import
# ============================================================================

def export_parsed_cv(parsed_cv: ParsedCV) -> str:
    return parsed_cv.model_dump_json(indent=2)


def import_parsed_cv(json_string: str) -> ParsedCV:
    try:
        return ParsedCV.model_validate_json(json_string)
    except PydanticValidationError as e:
        raise CVIngestionError("Invalid parsed CV data", details=str(e)) from e
