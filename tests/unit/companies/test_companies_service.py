"""Unit tests for CompaniesService."""

import pytest

from src.companies.schemas import CreateCompanyRequest, UpdateCompanyRequest
from src.companies.service import CompaniesService
from src.kernel.errors import ConflictError, NotFoundError
from tests.support.factories import create_company, create_plan, create_user

pytestmark = pytest.mark.unit


class TestCreateCompany:
    async def test_new_companies_start_unverified_and_inactive(self, db_session):
        company = await CompaniesService(db_session).create_company(
            CreateCompanyRequest(name="Acme", airwallex_account_id="acct_1", is_verified=True, is_active=True)
        )

        assert company.id is not None
        assert company.is_verified is False
        assert company.is_active is False
        assert company.is_deleted is False

    async def test_duplicate_name_conflicts(self, db_session):
        await create_company(db_session, "Acme")

        with pytest.raises(ConflictError) as exc:
            await CompaniesService(db_session).create_company(CreateCompanyRequest(name="Acme"))

        assert exc.value.status_code == 409
        assert exc.value.code == "company.name_conflict"

    async def test_name_of_soft_deleted_company_is_still_taken(self, db_session):
        service = CompaniesService(db_session)
        company = await create_company(db_session, "Ghost")
        await service.soft_delete_company(company.id)

        with pytest.raises(ConflictError):
            await service.create_company(CreateCompanyRequest(name="Ghost"))


class TestUpdateCompany:
    async def test_partial_update_only_touches_sent_fields(self, db_session):
        company = await create_company(db_session, "Acme", airwallex_account_id="acct_1")

        updated = await CompaniesService(db_session).update_company(
            company.id, UpdateCompanyRequest(is_verified=False)
        )

        assert updated.name == "Acme"
        assert updated.airwallex_account_id == "acct_1"
        assert updated.is_verified is False

    async def test_rename_to_existing_name_conflicts(self, db_session):
        await create_company(db_session, "Taken")
        company = await create_company(db_session, "Mine")

        with pytest.raises(ConflictError):
            await CompaniesService(db_session).update_company(company.id, UpdateCompanyRequest(name="Taken"))

    async def test_keeping_own_name_is_allowed(self, db_session):
        company = await create_company(db_session, "Mine")

        updated = await CompaniesService(db_session).update_company(company.id, UpdateCompanyRequest(name="Mine"))

        assert updated.name == "Mine"


class TestSoftDeleteAndRestore:
    async def test_round_trip(self, db_session):
        service = CompaniesService(db_session)
        company = await create_company(db_session)

        deleted = await service.soft_delete_company(company.id)
        assert deleted.is_deleted is True
        with pytest.raises(NotFoundError):
            await service.get_company(company.id)

        restored = await service.restore_company(company.id)
        assert restored.is_deleted is False

    async def test_restore_requires_deleted_company(self, db_session):
        company = await create_company(db_session)

        with pytest.raises(NotFoundError) as exc:
            await CompaniesService(db_session).restore_company(company.id)

        assert "Deleted company" in exc.value.message


class TestAccountLookup:
    async def test_find_by_airwallex_account_id_loads_users(self, db_session):
        company = await create_company(db_session, airwallex_account_id="acct_9")
        await create_user(db_session, company, "a@example.com")
        db_session.expunge_all()

        found = await CompaniesService(db_session).find_by_airwallex_account_id("acct_9")

        assert found is not None
        assert [user.email for user in found.users] == ["a@example.com"]

    async def test_find_by_airwallex_account_id_ignores_deleted(self, db_session):
        await create_company(db_session, airwallex_account_id="acct_9", is_deleted=True)

        assert await CompaniesService(db_session).find_by_airwallex_account_id("acct_9") is None

    async def test_update_company_plan(self, db_session):
        plan = await create_plan(db_session)
        company = await create_company(db_session)

        updated = await CompaniesService(db_session).update_company_plan(company.id, plan.id)

        assert updated.plan_id == plan.id

    async def test_get_with_plan_loads_the_plan(self, db_session):
        plan = await create_plan(db_session, "Silver", 2)
        company = await create_company(db_session, plan=plan)

        found = await CompaniesService(db_session).get_with_plan(company.id)

        assert found.plan.name == "Silver"

    async def test_get_with_plan_missing_company(self, db_session):
        with pytest.raises(NotFoundError, match="Company with ID 404 not found"):
            await CompaniesService(db_session).get_with_plan(404)
