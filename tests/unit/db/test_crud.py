"""Unit tests for the shared CRUD helpers."""

import pytest

from src.companies.service import CompaniesService
from src.db.crud import PageResult, normalize_pagination
from src.kernel.errors import NotFoundError
from tests.support.factories import create_company

pytestmark = pytest.mark.unit


class TestNormalizePagination:
    def test_defaults(self):
        assert normalize_pagination(None, None) == (1, 10)

    def test_clamps_out_of_range_values(self):
        assert normalize_pagination(0, 500) == (1, 100)
        assert normalize_pagination(-3, 0) == (1, 10)


class TestPageResult:
    def test_meta_counts_pages(self):
        page = PageResult(items=[1, 2], total=21, page=2, limit=10)

        payload = page.to_dict(lambda item: item * 10)

        assert payload["data"] == [10, 20]
        assert payload["meta"] == {
            "totalItems": 21,
            "itemsPerPage": 10,
            "totalPages": 3,
            "currentPage": 2,
        }

    def test_empty_result_has_zero_pages(self):
        assert PageResult(items=[], total=0, page=1, limit=10).total_pages == 0


class TestBaseCrudService:
    async def test_soft_deleted_rows_are_hidden_by_default(self, db_session):
        service = CompaniesService(db_session)
        company = await create_company(db_session, "Hidden Ltd")
        await service.soft_delete(company)

        assert await service.get(company.id) is None
        assert (await service.get(company.id, include_deleted=True)).is_deleted is True

    async def test_get_or_404_uses_entity_name(self, db_session):
        with pytest.raises(NotFoundError) as exc:
            await CompaniesService(db_session).get_or_404(999)

        assert exc.value.message == "Company with ID 999 not found"
        assert exc.value.status_code == 404

    async def test_paginate_returns_requested_slice(self, db_session):
        for index in range(3):
            await create_company(db_session, f"Company {index}", airwallex_account_id=None)

        page = await CompaniesService(db_session).paginate(2, 2)

        assert page.total == 3
        assert page.total_pages == 2
        assert len(page.items) == 1

    async def test_count_excludes_soft_deleted(self, db_session):
        service = CompaniesService(db_session)
        await create_company(db_session, "One")
        second = await create_company(db_session, "Two")
        await service.soft_delete(second)

        assert await service.count() == 1
        assert await service.count(include_deleted=True) == 2
