from .exceptions import CVIngestionError, UnsupportedFileTypeError, TextExtractionError, LLMParsingError
from .extractors import (
    extract_text_from_file,
    detect_sections,
    count_words,
    extract_emails,
    extract_phone_numbers,
    extract_urls,
    extract_linkedin_profile,
    extract_github_profile,
    extract_dates,
)
from .deterministic_parser import DeterministicParser
from .llm_parser import LLMParser, parse_with_hybrid_approach, merge_parsed_cvs
from .normalizers import normalize_parsed_cv, fuzzy_match
from .entity_resolver import (
    DatabaseEntityResolver,
    EntityFetchers,
    fetch_entities_from_db,
    create_entity_resolver,
)
from .unmapped_entity_creator import create_unmapped_entities
from .entity_remapper import remap_form_data_with_entities
from .ingestion_service import (
    ingest_cv,
    ingest_and_reconcile,
    collect_unmapped_entities,
    validate_parsed_cv,
    calculate_quality_score,
    export_parsed_cv,
    import_parsed_cv,
)
from .schemas import (
    ParsedCV,
    ParserConfig,
    ExtractedText,
    NormalizationResult,
    CVIngestionResult,
    UnmappedEntities,
    EntityMatch,
    UNMAPPED_PREFIX,
)

__all__ = [
    # Errors
    "CVIngestionError", "UnsupportedFileTypeError", "TextExtractionError", "LLMParsingError",
    # Extraction
    "extract_text_from_file", "detect_sections", "count_words", "extract_emails",
    "extract_phone_numbers", "extract_urls", "extract_linkedin_profile",
    "extract_github_profile", "extract_dates",
    # Parsing
    "DeterministicParser", "LLMParser", "parse_with_hybrid_approach", "merge_parsed_cvs",
    # Normalization & entities
    "normalize_parsed_cv", "fuzzy_match",
    "DatabaseEntityResolver", "EntityFetchers", "fetch_entities_from_db", "create_entity_resolver",
    "create_unmapped_entities", "remap_form_data_with_entities",
    # Service
    "ingest_cv", "ingest_and_reconcile", "collect_unmapped_entities", "validate_parsed_cv",
    "calculate_quality_score", "export_parsed_cv", "import_parsed_cv",
    # Types
    "ParsedCV", "ParserConfig", "ExtractedText", "NormalizationResult", "CVIngestionResult",
    "UnmappedEntities", "EntityMatch", "UNMAPPED_PREFIX",
]
