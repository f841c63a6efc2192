import math
from typing import Optional
from fastapi import APIRouter, Body, HTTPException, Path, Query, status, Depends
from catalog_api.models.product import (
    MAX_INT,
    MessageResponse,
    ProductCreate,
    ProductList,
    ProductUpdate,
    ProductResponse
)
from catalog_api.crud.product_crud import ProductRepository, SqlProductRepository
from catalog_api.db import get_engine

from catalog_api.exceptions import (
    ProductNotFoundError,
    DatabaseError
)

from catalog_api.logging_config import tracer, get_child_logger

# Create a child logger for this module
logger = get_child_logger("routes.product")

router = APIRouter(prefix="/products", tags=["products"])

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 50
MAX_LIMIT = 50


async def get_product_repository() -> ProductRepository:
    return SqlProductRepository(await get_engine())


def parse_page(raw: Optional[str]) -> int:
    """Page number from the query string; anything unusable means the first page."""
    try:
        page = int(raw)
    except (TypeError, ValueError):
        return DEFAULT_PAGE
    return page if page >= 1 else DEFAULT_PAGE


def parse_limit(raw: Optional[str]) -> int:
    """Page size from the query string; values outside [1, MAX_LIMIT] fall back to the default."""
    try:
        limit = int(raw)
    except (TypeError, ValueError):
        return DEFAULT_LIMIT
    return limit if 1 <= limit <= MAX_LIMIT else DEFAULT_LIMIT


def count_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit)


@router.get("", response_model=ProductList)
@router.get("/", response_model=ProductList, include_in_schema=False)
async def list_products(
    page: Optional[str] = Query(None, title="Page number", description="Defaults to 1"),
    limit: Optional[str] = Query(None, title="Items per page", description="Defaults to 50, at most 50"),
    repository: ProductRepository = Depends(get_product_repository),
):
    current_page = parse_page(page)
    page_size = parse_limit(limit)

    with tracer.start_as_current_span("api_list_products") as span:
        span.set_attribute("page", current_page)
        span.set_attribute("limit", page_size)

        logger.info(
            "Handling GET /products request",
            extra={"page": current_page, "limit": page_size}
        )

        try:
            items, total = await repository.find_all(page=current_page, limit=page_size)
        except DatabaseError as e:
            span.set_attribute("error", True)
            span.set_attribute("error.type", "database_error")

            logger.error(
                "Database error during product listing",
                extra={"error": str(e), "page": current_page, "limit": page_size},
                exc_info=e.original_exception
            )
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to retrieve products",
            )

        span.set_attribute("products.count", len(items))
        return ProductList(
            data=items,
            total_pages=count_pages(total, page_size),
            current_page=current_page,
        )


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
@router.post(
    "/",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    include_in_schema=False,
)
async def create_product(
    product: ProductCreate = Body(..., description="Product information to create"),
    repository: ProductRepository = Depends(get_product_repository),
):
    try:
        return await repository.save(product)
    except DatabaseError as e:
        logger.error(f"Database error: {e}", exc_info=e.original_exception)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create product",
        )


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: int = Path(..., ge=1, le=MAX_INT, title="The ID of the product to retrieve"),
    repository: ProductRepository = Depends(get_product_repository),
):
    try:
        return await repository.find_by_id(product_id)
    except ProductNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except DatabaseError as e:
        logger.error(f"Database error: {e}", exc_info=e.original_exception)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve product",
        )


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    updated_product: ProductUpdate,
    product_id: int = Path(..., ge=1, le=MAX_INT, title="The ID of the product to update"),
    repository: ProductRepository = Depends(get_product_repository),
):
    try:
        return await repository.update(product_id, updated_product)
    except ProductNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except DatabaseError as e:
        logger.error(
            f"Database error during product update: {e}", exc_info=e.original_exception
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update product",
        )


@router.delete("/{product_id}", response_model=MessageResponse)
async def delete_product(
    product_id: int = Path(..., ge=1, le=MAX_INT, title="The ID of the product to delete"),
    repository: ProductRepository = Depends(get_product_repository),
):
    try:
        await repository.delete(product_id)
    except ProductNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except DatabaseError as e:
        logger.error(f"Database error: {e}", exc_info=e.original_exception)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete product",
        )
    return MessageResponse(message="Product deleted successfully")
