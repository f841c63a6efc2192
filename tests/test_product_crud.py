"""Repository tests against a real (in-memory SQLite) database."""

import logging

import pytest
import pytest_asyncio
from sqlalchemy import select

from catalog_api.config import Settings
from catalog_api.crud.product_crud import SqlProductRepository
from catalog_api.db import create_engine_from_settings, products_table
from catalog_api.exceptions import DatabaseError, ProductNotFoundError
from catalog_api.models.product import ProductCreate, ProductUpdate


def _product(name: str = "Desk lamp", price: float = 24.5, amount: int = 7, description=None):
    return ProductCreate(name=name, price=price, amount=amount, description=description)


class TestSave:
    @pytest.mark.asyncio
    async def test_assigns_increasing_ids(self, engine):
        repository = SqlProductRepository(engine)

        first = await repository.save(_product("A"))
        second = await repository.save(_product("B"))

        assert first.id > 0
        assert second.id > first.id
        assert first.name == "A"

    @pytest.mark.asyncio
    async def test_persists_all_fields(self, engine):
        repository = SqlProductRepository(engine)

        created = await repository.save(_product(description="Warm light"))

        async with engine.connect() as conn:
            row = (await conn.execute(
                select(products_table).where(products_table.c.id == created.id)
            )).one()
        assert row.name == "Desk lamp"
        assert row.price == 24.5
        assert row.amount == 7
        assert row.description == "Warm light"


class TestFindAll:
    @pytest.mark.asyncio
    async def test_returns_page_ordered_by_id_with_total(self, engine):
        repository = SqlProductRepository(engine)
        created = [await repository.save(_product(f"P{i}")) for i in range(5)]

        items, total = await repository.find_all(page=2, limit=2)

        assert total == 5
        assert [item.id for item in items] == [created[2].id, created[3].id]

    @pytest.mark.asyncio
    async def test_last_partial_page(self, engine):
        repository = SqlProductRepository(engine)
        for i in range(3):
            await repository.save(_product(f"P{i}"))

        items, total = await repository.find_all(page=2, limit=2)

        assert total == 3
        assert [item.name for item in items] == ["P2"]

    @pytest.mark.asyncio
    async def test_page_past_end_is_empty(self, engine):
        repository = SqlProductRepository(engine)
        await repository.save(_product())

        items, total = await repository.find_all(page=4, limit=10)

        assert items == []
        assert total == 1

    @pytest.mark.asyncio
    async def test_empty_table(self, engine):
        items, total = await SqlProductRepository(engine).find_all(page=1, limit=50)

        assert items == []
        assert total == 0


class TestFindById:
    @pytest.mark.asyncio
    async def test_returns_matching_record(self, engine):
        repository = SqlProductRepository(engine)
        created = await repository.save(_product(description="Warm light"))

        found = await repository.find_by_id(created.id)

        assert found == created

    @pytest.mark.asyncio
    async def test_missing_id_raises_not_found(self, engine):
        with pytest.raises(ProductNotFoundError) as exc_info:
            await SqlProductRepository(engine).find_by_id(999)

        assert exc_info.value.product_id == 999
        assert "999" in str(exc_info.value)


class TestUpdate:
    @pytest.mark.asyncio
    async def test_replaces_mutable_fields(self, engine):
        repository = SqlProductRepository(engine)
        created = await repository.save(_product(description="old"))

        updated = await repository.update(
            created.id,
            ProductUpdate(name="Floor lamp", price=80.0, amount=2, description=None),
        )

        assert updated.id == created.id
        assert await repository.find_by_id(created.id) == updated
        assert updated.description is None

    @pytest.mark.asyncio
    async def test_missing_id_raises_not_found(self, engine):
        repository = SqlProductRepository(engine)

        with pytest.raises(ProductNotFoundError):
            await repository.update(42, ProductUpdate(name="X", price=1, amount=1))


class TestDelete:
    @pytest.mark.asyncio
    async def test_removes_row(self, engine):
        repository = SqlProductRepository(engine)
        created = await repository.save(_product())

        await repository.delete(created.id)

        with pytest.raises(ProductNotFoundError):
            await repository.find_by_id(created.id)

    @pytest.mark.asyncio
    async def test_second_delete_raises_not_found(self, engine):
        repository = SqlProductRepository(engine)
        created = await repository.save(_product())
        await repository.delete(created.id)

        with pytest.raises(ProductNotFoundError):
            await repository.delete(created.id)


class TestStorageFailures:
    """Without the products table every statement fails inside the driver."""

    @pytest_asyncio.fixture
    async def bare_engine(self):
        engine = create_engine_from_settings(Settings(database_url="sqlite+aiosqlite://"))
        yield engine
        await engine.dispose()

    @pytest.mark.asyncio
    async def test_save_wraps_driver_error(self, bare_engine):
        with pytest.raises(DatabaseError) as exc_info:
            await SqlProductRepository(bare_engine).save(_product())

        assert exc_info.value.original_exception is not None

    @pytest.mark.asyncio
    async def test_find_all_wraps_driver_error(self, bare_engine):
        with pytest.raises(DatabaseError):
            await SqlProductRepository(bare_engine).find_all(page=1, limit=10)

    @pytest.mark.asyncio
    async def test_find_by_id_wraps_driver_error(self, bare_engine):
        with pytest.raises(DatabaseError):
            await SqlProductRepository(bare_engine).find_by_id(1)

    @pytest.mark.asyncio
    async def test_update_and_delete_wrap_driver_error(self, bare_engine):
        repository = SqlProductRepository(bare_engine)

        with pytest.raises(DatabaseError):
            await repository.update(1, ProductUpdate(name="X", price=1, amount=1))
        with pytest.raises(DatabaseError):
            await repository.delete(1)


class TestOperationLogging:
    @pytest.mark.asyncio
    async def test_update_and_delete_log_success(self, engine, caplog):
        repository = SqlProductRepository(engine)
        created = await repository.save(_product())
        caplog.set_level(logging.INFO, logger="catalog_api")

        await repository.update(created.id, ProductUpdate(name="X", price=1, amount=1))
        await repository.delete(created.id)

        messages = [record.getMessage() for record in caplog.records]
        assert "Product updated successfully" in messages
        assert "Product deleted successfully" in messages

    @pytest.mark.asyncio
    async def test_missing_rows_are_logged_as_warnings(self, engine, caplog):
        repository = SqlProductRepository(engine)
        caplog.set_level(logging.INFO, logger="catalog_api")

        with pytest.raises(ProductNotFoundError):
            await repository.update(5, ProductUpdate(name="X", price=1, amount=1))
        with pytest.raises(ProductNotFoundError) as exc_info:
            await repository.delete(5)

        warnings = [r.getMessage() for r in caplog.records if r.levelno == logging.WARNING]
        assert warnings == ["Product not found for update", "Product not found for deletion"]
        assert str(exc_info.value) == "Product with ID 5 not found for deletion"
