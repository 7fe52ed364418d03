"""
CV ingestion API payloads
"""
from typing import List
from pydantic import BaseModel, Field

from .portfolio import PortfolioFormData
from ..services.cv_ingestion.schemas import (
    CreatedCounts,
    NormalizationResult,
    ParsedCV,
    UnmappedFields,
)


class ApplyParsedCVRequest(BaseModel):
    parsed_cv: ParsedCV
    normalization_result: NormalizationResult


class ApplyParsedCVResponse(BaseModel):
    form_data: PortfolioFormData
    remaining_unmapped: UnmappedFields = Field(default_factory=UnmappedFields)
    created: CreatedCounts = Field(default_factory=CreatedCounts)
    failed: List[str] = Field(default_factory=list)


class EntitySuggestion(BaseModel):
    id: int
    name: str
