from decimal import Decimal

from fastapi import APIRouter, HTTPException, Request

from core.catalog import Catalog, ProductFilter
from core.prices import RANGE_SEPARATOR, PriceParseError, parse_price, strip_currency_markers

router = APIRouter(tags=["products"])


def _catalog(request: Request) -> Catalog:
    return request.app.state.catalog


def _optional_price(value: str | None, markers: tuple[str, ...]) -> Decimal | None:
    """Query-string price bound; ranges and unparseable values mean no bound."""
    if not value:
        return None
    cleaned = strip_currency_markers(value, markers)
    if RANGE_SEPARATOR in cleaned:
        return None
    try:
        return parse_price(cleaned)
    except PriceParseError:
        return None


@router.get("/products")
def search_products(
    request: Request,
    q: str = "",
    title: str = "",
    category: str = "",
    subcategory: str = "",
    location: str = "",
    min_price: str | None = None,
    max_price: str | None = None,
    page: str | None = None,
    limit: str | None = None,
):
    markers = request.app.state.currency_markers
    flt = ProductFilter(
        title=q.strip() or title,
        category=category,
        subcategory=subcategory,
        location=location,
        min_price=_optional_price(min_price, markers),
        max_price=_optional_price(max_price, markers),
    )
    result = _catalog(request).search(flt, page=page, limit=limit)
    return {
        "page": result.page,
        "limit": result.limit,
        "total": result.total,
        "products": [p.to_json_dict() for p in result.products],
    }


@router.get("/products/recommended")
def recommended_products(request: Request):
    catalog = _catalog(request)
    if not len(catalog):
        raise HTTPException(status_code=503, detail="No products loaded")

    products = catalog.recommended(request.app.state.recommended_count)
    return {"total": len(products), "products": [p.to_json_dict() for p in products]}


@router.get("/categories", tags=["categories"])
def list_categories(request: Request):
    return {"categories": _catalog(request).categories()}
