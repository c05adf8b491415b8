"""Product catalog endpoints."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from api.schemas.requests import ProductUpsertRequest
from api.schemas.responses import ProductResponse
from pricepilot.exceptions import CatalogValidationError, StoreError
from pricepilot.store.catalog import ProductCatalog

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/products", tags=["Products"])

# Shared catalog instance (set by main.py)
catalog: ProductCatalog = None


def set_catalog(c: ProductCatalog):
    global catalog
    catalog = c


@router.get("", response_model=list[ProductResponse])
async def list_products():
    """List every product in the catalog."""
    try:
        products = catalog.products()
    except StoreError as e:
        logger.error("Failed to read catalog: %s", e)
        return JSONResponse(status_code=500, content={"error": "Failed to load products"})
    return [ProductResponse(**p.to_dict()) for p in products]


@router.post("", response_model=ProductResponse, responses={400: {"description": "Invalid product"}})
async def upsert_product(request: ProductUpsertRequest):
    """Create a product, or replace the one with the same normalized id."""
    try:
        product = catalog.upsert(request.id, request.name, request.basePrice)
    except CatalogValidationError as e:
        return JSONResponse(status_code=400, content={"error": e.message})
    except StoreError as e:
        logger.error("Failed to update catalog: %s", e)
        return JSONResponse(status_code=500, content={"error": "Failed to update products"})
    return ProductResponse(**product.to_dict())
