"""
Catalog Matching API - product linking and live suggestions

Endpoints used by the vendor portal and admin console when a product is
listed: live catalog suggestions, auto-linking to an existing catalog entry
(or creating one), and match feedback.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from matching.auto_link import AutoLinker
from matching.catalog import create_catalog_entry, get_catalog_with_offers
from matching.errors import CatalogMatchingError, PartialFailure
from matching.feedback import FeedbackRecorder
from matching.suggestions import SuggestionService
from services.config import AppConfig
from services.database.db import Database
from services.database.models import AutoLinkRequest, CatalogCreate, FeedbackRequest
from .auth import Identity, get_identity, require_admin, require_seller
from .deps import get_config, get_database

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    get_database().init_schema()
    yield


app = FastAPI(title="Catalog Matching API", version="0.3.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(CatalogMatchingError)
async def matching_error_handler(request: Request, exc: CatalogMatchingError):
    body = {"error": exc.message}
    if isinstance(exc, PartialFailure):
        body["step"] = exc.step
        body["orphanCatalogId"] = exc.orphan_catalog_id
    elif hasattr(exc, "step"):
        body["step"] = exc.step
    return JSONResponse(status_code=exc.status_code, content=body)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    detail = errors[0] if errors else {}
    location = ".".join(str(part) for part in detail.get("loc", ()) if part != "body")
    message = detail.get("msg", "Invalid request")
    return JSONResponse(
        status_code=400,
        content={"error": f"{location}: {message}" if location else message},
    )


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.post("/products/auto-link")
async def auto_link(
    body: AutoLinkRequest,
    identity: Identity = Depends(require_seller),
    db: Database = Depends(get_database),
    config: AppConfig = Depends(get_config),
):
    """Link the product to an existing catalog entry or create one, then create the offer."""
    linker = AutoLinker(db, config)
    result = linker.auto_link(
        body.product_name,
        body.category_id,
        body.product_data,
        user_id=identity.user_id,
        vendor_id=None if identity.is_admin else identity.vendor_id,
        force_new_catalog=body.force_new_catalog,
        catalog_id=body.catalog_id,
    )
    return result.to_response()


@app.get("/products/suggestions")
async def get_suggestions(
    q: Optional[str] = None,
    categoryId: Optional[str] = None,
    limit: int = Query(default=5, ge=1, le=50),
    identity: Identity = Depends(get_identity),
    db: Database = Depends(get_database),
    config: AppConfig = Depends(get_config),
):
    """Live suggestions for a partially typed product name."""
    service = SuggestionService(db, config.matching)
    return service.suggest(q, categoryId, limit).to_response()


@app.post("/products/suggestions/feedback")
async def record_feedback(
    body: FeedbackRequest,
    identity: Identity = Depends(get_identity),
    db: Database = Depends(get_database),
):
    """Record whether the user accepted or rejected a suggestion."""
    FeedbackRecorder(db).record(
        input_text=body.input_text,
        suggested_catalog_id=body.suggested_catalog_id,
        user_choice=body.user_choice,
        actual_catalog_id=body.actual_catalog_id,
        confidence_score=body.confidence_score,
        category_id=body.category_id,
        user_id=identity.user_id,
    )
    return {"success": True}


@app.get("/products/suggestions/feedback/summary")
async def feedback_summary(
    identity: Identity = Depends(require_admin),
    db: Database = Depends(get_database),
):
    """Acceptance statistics for threshold tuning."""
    return FeedbackRecorder(db).summary()


@app.post("/admin/catalog")
async def create_catalog(
    body: CatalogCreate,
    identity: Identity = Depends(require_admin),
    db: Database = Depends(get_database),
    config: AppConfig = Depends(get_config),
):
    """Create a catalog entry directly, with an explicit brand."""
    entry = create_catalog_entry(db, body, identity.user_id, config.matching)
    return {
        "message": "Catalog item created successfully",
        "catalog_item": entry,
    }


@app.get("/admin/catalog/{catalog_id}")
async def get_catalog(
    catalog_id: str,
    identity: Identity = Depends(require_admin),
    db: Database = Depends(get_database),
):
    """Catalog entry with its offers and offer statistics."""
    return get_catalog_with_offers(db, catalog_id)


if __name__ == "__main__":
    import uvicorn
    from services.config import default_config

    logging.basicConfig(
        level=default_config.log_level,
        format='%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%H:%M:%S'
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
