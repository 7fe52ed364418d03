from .cv_ingestion import (
    ingest_cv,
    ingest_and_reconcile,
    create_entity_resolver,
    CVIngestionError,
)
from .portfolio_validation import (
    validate_portfolio_step,
    validate_all_steps,
    can_submit_portfolio
)

__all__ = [
    # CV ingestion
    "ingest_cv",
    "ingest_and_reconcile",
    "create_entity_resolver",
    "CVIngestionError",
    # Portfolio validation
    "validate_portfolio_step",
    "validate_all_steps",
    "can_submit_portfolio"
]
