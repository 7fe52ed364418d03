from .portfolio import router as portfolio_router
from .categories import router as categories_router
from .reference import router as reference_router
from .cv_ingestion import router as cv_ingestion_router

__all__ = [
    "portfolio_router", "categories_router", "reference_router", "cv_ingestion_router"
]
