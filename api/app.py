import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.routes import router
from core.catalog import DEFAULT_RECOMMENDED, Catalog, CategoryNotFoundError
from core.prices import DEFAULT_CURRENCY_MARKERS

log = logging.getLogger(__name__)


def create_app(
    catalog: Catalog,
    cors_origins: list[str] | None = None,
    recommended_count: int = DEFAULT_RECOMMENDED,
    currency_markers: tuple[str, ...] = DEFAULT_CURRENCY_MARKERS,
) -> FastAPI:
    app = FastAPI(
        title="Listing Catalog API",
        version="1.0.0",
        description="Query normalized product listings",
    )
    app.state.catalog = catalog
    app.state.recommended_count = recommended_count
    app.state.currency_markers = tuple(currency_markers)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or ["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        allow_credentials=True,
    )

    @app.exception_handler(CategoryNotFoundError)
    async def category_not_found(request: Request, exc: CategoryNotFoundError) -> JSONResponse:
        log.info(f"Category not found: {exc.category!r}")
        return JSONResponse(
            status_code=404,
            content={"error": "category_not_found", "message": str(exc), "category": exc.category},
        )

    app.include_router(router)

    @app.get("/")
    def root():
        return {"ok": True, "products": len(catalog), "docs": "/docs"}

    return app
