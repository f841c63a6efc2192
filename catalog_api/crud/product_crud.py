from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Dict, List, Tuple

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from catalog_api.db import products_table
from catalog_api.models.product import (
    ProductCreate,
    ProductUpdate,
    ProductResponse,
)

from catalog_api.exceptions import (
    ProductNotFoundError,
    DatabaseError,
)

from catalog_api.logging_config import get_child_logger, tracer

# Create a child logger for this module
logger = get_child_logger("crud.product")


class ProductRepository(ABC):
    """
    Persistence operations for products.
    """

    @abstractmethod
    async def save(self, product: ProductCreate) -> ProductResponse:
        ...

    @abstractmethod
    async def find_all(self, page: int, limit: int) -> Tuple[List[ProductResponse], int]:
        ...

    @abstractmethod
    async def find_by_id(self, product_id: int) -> ProductResponse:
        ...

    @abstractmethod
    async def update(self, product_id: int, product: ProductUpdate) -> ProductResponse:
        ...

    @abstractmethod
    async def delete(self, product_id: int) -> None:
        ...


def _to_row(product: ProductCreate) -> Dict[str, Any]:
    data = product.model_dump()
    # NUMERIC columns take exact decimals
    data["price"] = Decimal(str(data["price"]))
    return data


class SqlProductRepository(ProductRepository):
    """
    Product repository backed by the relational ``products`` table.
    """

    _columns = (
        products_table.c.id,
        products_table.c.name,
        products_table.c.price,
        products_table.c.amount,
        products_table.c.description,
    )

    def __init__(self, engine: AsyncEngine):
        self._engine = engine

    async def save(self, product: ProductCreate) -> ProductResponse:
        """
        Insert a new product and return it with its assigned id.

        Args:
            product: Product data to create

        Returns:
            Newly created product

        Raises:
            DatabaseError: If the insert fails
        """
        with tracer.start_as_current_span("save_product") as span:
            span.set_attribute("product.name", product.name)

            logger.info("Creating new product", extra={"product_name": product.name})

            try:
                async with self._engine.begin() as conn:
                    result = await conn.execute(
                        insert(products_table).values(**_to_row(product))
                    )
                    product_id = result.inserted_primary_key[0]
            except SQLAlchemyError as e:
                span.set_attribute("error", True)
                span.set_attribute("error.type", type(e).__name__)

                logger.error(
                    "Database error during product creation",
                    extra={"error_type": type(e).__name__, "product_name": product.name},
                    exc_info=True,
                )
                raise DatabaseError(
                    "product creation",
                    original_exception=e,
                ) from e

            span.set_attribute("product.id", product_id)
            logger.info("Product created successfully", extra={"product_id": product_id})
            return ProductResponse(id=product_id, **product.model_dump())

    async def find_all(self, page: int, limit: int) -> Tuple[List[ProductResponse], int]:
        """
        Retrieve one page of products ordered by id, plus the total row count.
        Page and limit are expected to be validated by the caller.
        """
        with tracer.start_as_current_span("find_all_products") as span:
            span.set_attribute("page", page)
            span.set_attribute("limit", limit)

            logger.info("Listing products", extra={"page": page, "limit": limit})

            offset = (page - 1) * limit
            query = (
                select(*self._columns)
                .order_by(products_table.c.id.asc())
                .limit(limit)
                .offset(offset)
            )

            try:
                async with self._engine.connect() as conn:
                    total = await conn.scalar(
                        select(func.count()).select_from(products_table)
                    )
                    result = await conn.execute(query)
                    items = [
                        ProductResponse.model_validate(dict(row._mapping))
                        for row in result
                    ]
            except SQLAlchemyError as e:
                span.set_attribute("error", True)
                span.set_attribute("error.type", type(e).__name__)

                logger.error(
                    "Database error during product listing",
                    extra={"error_type": type(e).__name__, "page": page, "limit": limit},
                    exc_info=True,
                )
                raise DatabaseError(
                    "product listing",
                    original_exception=e,
                ) from e

            logger.info(f"Retrieved {len(items)} products", extra={"count": len(items), "total": total})
            span.set_attribute("products.count", len(items))
            span.set_attribute("products.total", total or 0)
            return items, total or 0

    async def find_by_id(self, product_id: int) -> ProductResponse:
        """
        Retrieve a product by its id.

        Raises:
            ProductNotFoundError: If no row has this id
            DatabaseError: If the query fails
        """
        with tracer.start_as_current_span("find_product_by_id") as span:
            span.set_attribute("product.id", product_id)

            try:
                async with self._engine.connect() as conn:
                    result = await conn.execute(
                        select(*self._columns).where(products_table.c.id == product_id)
                    )
                    row = result.first()
            except SQLAlchemyError as e:
                span.set_attribute("error", True)
                span.set_attribute("error.type", type(e).__name__)

                logger.error(
                    "Database error retrieving product",
                    extra={"product_id": product_id, "error_type": type(e).__name__},
                    exc_info=True,
                )
                raise DatabaseError(
                    f"retrieval of product {product_id}",
                    original_exception=e,
                ) from e

            if row is None:
                logger.warning("Product not found", extra={"product_id": product_id})
                raise ProductNotFoundError(product_id)

            logger.info("Product retrieved successfully", extra={"product_id": product_id})
            return ProductResponse.model_validate(dict(row._mapping))

    async def update(self, product_id: int, product: ProductUpdate) -> ProductResponse:
        """
        Replace every mutable field of an existing product.

        Raises:
            ProductNotFoundError: If no row has this id
            DatabaseError: If the update fails
        """
        with tracer.start_as_current_span("update_product") as span:
            span.set_attribute("product.id", product_id)

            logger.info("Updating product", extra={"product_id": product_id})

            try:
                async with self._engine.begin() as conn:
                    result = await conn.execute(
                        update(products_table)
                        .where(products_table.c.id == product_id)
                        .values(**_to_row(product))
                    )
                    rows_affected = result.rowcount
            except SQLAlchemyError as e:
                span.set_attribute("error", True)
                span.set_attribute("error.type", type(e).__name__)

                logger.error(
                    "Database error during product update",
                    extra={"product_id": product_id, "error_type": type(e).__name__},
                    exc_info=True,
                )
                raise DatabaseError("product update", original_exception=e) from e

            span.set_attribute("rows_affected", rows_affected)
            if rows_affected == 0:
                logger.warning("Product not found for update", extra={"product_id": product_id})
                raise ProductNotFoundError(product_id, "update")

            logger.info("Product updated successfully", extra={"product_id": product_id})
            return ProductResponse(id=product_id, **product.model_dump())

    async def delete(self, product_id: int) -> None:
        """
        Delete a product by its id.

        Raises:
            ProductNotFoundError: If no row has this id
            DatabaseError: If the delete fails
        """
        with tracer.start_as_current_span("delete_product") as span:
            span.set_attribute("product.id", product_id)

            logger.info("Deleting product", extra={"product_id": product_id})

            try:
                async with self._engine.begin() as conn:
                    result = await conn.execute(
                        delete(products_table).where(products_table.c.id == product_id)
                    )
                    rows_affected = result.rowcount
            except SQLAlchemyError as e:
                span.set_attribute("error", True)
                span.set_attribute("error.type", type(e).__name__)

                logger.error(
                    "Database error during product deletion",
                    extra={"product_id": product_id, "error_type": type(e).__name__},
                    exc_info=True,
                )
                raise DatabaseError("product deletion", original_exception=e) from e

            span.set_attribute("rows_affected", rows_affected)
            if rows_affected == 0:
                logger.warning("Product not found for deletion", extra={"product_id": product_id})
                raise ProductNotFoundError(product_id, "deletion")

            logger.info("Product deleted successfully", extra={"product_id": product_id})
