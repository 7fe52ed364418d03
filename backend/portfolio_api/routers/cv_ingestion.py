"""
CV Ingestion Router - upload a CV, get pre-filled portfolio form data back,
then apply it (create missing reference entities and re-map).
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..database import get_db
from ..schemas.cv import ApplyParsedCVRequest, ApplyParsedCVResponse, EntitySuggestion
from ..services.cv_ingestion import (
    ParserConfig,
    UnsupportedFileTypeError,
    create_entity_resolver,
    ingest_and_reconcile,
    ingest_cv,
)
from ..services.cv_ingestion.extractors import get_file_type

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/api", tags=["CV Ingestion"])

SUGGESTION_TYPES = ("degree", "institution", "skill", "category")


@router.post("/cv-parse")
async def parse_cv(
    file: Optional[UploadFile] = File(None),
    use_llm: bool = Form(False),
    api_key: Optional[str] = Form(None),
    llm_provider: Optional[str] = Form(None),
    db: AsyncSession = Depends(get_db)
):
    """
    Parse an uploaded CV (PDF, DOCX, DOC or TXT) into portfolio form data.

    The deterministic parser always runs; with use_llm the LLM is consulted
    when the deterministic result is not confident enough. Without an api_key
    in the request the server-side key for the provider is used.
    """
    # ===== STEP 1: VALIDATE FILE =====
    if file is None or not file.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file provided")

    try:
        get_file_type(file.filename)
    except UnsupportedFileTypeError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

    content = await file.read()
    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Uploaded file is empty")
    if len(content) > settings.max_upload_mb * 1024 * 1024:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File size must be less than {settings.max_upload_mb}MB"
        )

    # ===== STEP 2: BUILD PARSER CONFIG =====
    provider = llm_provider or settings.llm_provider
    try:
        config = ParserConfig(
            use_llm=use_llm,
            llm_provider=provider,
            api_key=api_key or settings.get_llm_api_key(provider) or None,
            confidence_threshold=settings.confidence_threshold,
            debug_mode=settings.debug,
        )
    except PydanticValidationError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported LLM provider: {provider}"
        )

    # ===== STEP 3: RUN PIPELINE =====
    resolver = await create_entity_resolver(db, settings.match_threshold)
    result = await ingest_cv(file.filename, content, config, resolver)

    if not result.success:
        logger.error(f"CV parse failed for {file.filename}: {result.error.message}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": result.error.model_dump(mode="json")},
        )

    return {
        "success": True,
        "extracted_text": result.extracted_text,
        "parsed_cv": result.parsed_cv.model_dump(mode="json"),
        "normalization_result": result.normalization_result.model_dump(mode="json"),
        "validation": result.validation.model_dump(mode="json"),
        "warnings": result.warnings,
    }


@router.post("/cv-ingestion/apply", response_model=ApplyParsedCVResponse)
async def apply_parsed_cv(
    data: ApplyParsedCVRequest,
    db: AsyncSession = Depends(get_db)
):
    """Create the degrees, institutions, skills and categories a reviewed CV introduced, then re-map its form data."""
    creation, remap = await ingest_and_reconcile(db, data.parsed_cv, data.normalization_result)

    return ApplyParsedCVResponse(
        form_data=remap.form_data,
        remaining_unmapped=remap.remaining_unmapped,
        created=creation.created,
        failed=creation.failed,
    )


@router.get("/cv-ingestion/suggestions", response_model=List[EntitySuggestion])
async def get_entity_suggestions(
    entity_type: str,
    q: str,
    limit: int = 5,
    db: AsyncSession = Depends(get_db)
):
    """Closest reference entities for manually mapping an unmatched CV value"""
    if entity_type not in SUGGESTION_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"entity_type must be one of: {', '.join(SUGGESTION_TYPES)}"
        )

    resolver = await create_entity_resolver(db, settings.match_threshold)
    suggestions = resolver.get_suggestions(entity_type, q, max(1, min(limit, 20)))
    return [EntitySuggestion(id=s["id"], name=s["name"]) for s in suggestions]
