"""
SQL 记录获取测试（使用 mock 会话，不连接数据库）
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from app.core.exceptions import UpstreamFetchFailure
from app.database.models import GlossaryTerm, Location, Tenant
from app.services.records import GlossaryTermRecord, LocationRecord, SQLRecordFetcher, TenantRecord


def _session_returning(result) -> AsyncMock:
    session = AsyncMock()
    session.execute.return_value = result
    return session


def _failing_session() -> AsyncMock:
    session = AsyncMock()
    session.execute.side_effect = OperationalError("SELECT 1", {}, Exception("connection refused"))
    return session


@pytest.mark.asyncio
async def test_get_tenant_maps_model():
    result = MagicMock()
    result.scalar_one_or_none.return_value = Tenant(
        id="acme-insurance", agency_name="Acme Insurance Group", phone="770-555-0100"
    )
    fetcher = SQLRecordFetcher(_session_returning(result), tenant_id="acme-insurance")

    tenant = await fetcher.get_tenant()
    assert isinstance(tenant, TenantRecord)
    assert tenant.agency_name == "Acme Insurance Group"
    assert tenant.phone == "770-555-0100"


@pytest.mark.asyncio
async def test_get_tenant_without_configured_id():
    session = AsyncMock()
    fetcher = SQLRecordFetcher(session, tenant_id="")
    assert await fetcher.get_tenant() is None
    session.execute.assert_not_called()


@pytest.mark.asyncio
async def test_get_all_locations_and_primary():
    result = MagicMock()
    result.scalars.return_value.all.return_value = [
        Location(id="l1", tenant_id="t", slug="woodstock-ga", city="Woodstock"),
        Location(id="l2", tenant_id="t", slug="canton-ga"),
    ]
    fetcher = SQLRecordFetcher(_session_returning(result), tenant_id="t")

    locations = await fetcher.get_all_locations()
    assert [loc.slug for loc in locations] == ["woodstock-ga", "canton-ga"]
    assert all(isinstance(loc, LocationRecord) for loc in locations)

    primary = await fetcher.get_primary_location()
    assert primary.slug == "woodstock-ga"


@pytest.mark.asyncio
async def test_published_slugs_returns_set():
    result = MagicMock()
    result.scalars.return_value.all.return_value = ["auto-insurance", "umbrella-insurance-woodstock-ga"]
    fetcher = SQLRecordFetcher(_session_returning(result), tenant_id="t")

    assert await fetcher.get_published_slugs("t", "l1") == {
        "auto-insurance",
        "umbrella-insurance-woodstock-ga",
    }


@pytest.mark.asyncio
async def test_is_multi_location():
    result = MagicMock()
    result.scalar.return_value = 2
    fetcher = SQLRecordFetcher(_session_returning(result), tenant_id="t")
    assert await fetcher.is_multi_location() is True


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "call",
    [
        lambda f: f.get_tenant(),
        lambda f: f.get_location_by_slug("woodstock-ga"),
        lambda f: f.get_all_locations(),
        lambda f: f.is_multi_location(),
        lambda f: f.get_published_slugs("t", None),
        lambda f: f.get_glossary_term("umbrella-policy", "l1"),
    ],
)
async def test_store_errors_are_wrapped(call):
    fetcher = SQLRecordFetcher(_failing_session(), tenant_id="t")
    with pytest.raises(UpstreamFetchFailure):
        await call(fetcher)


def test_location_address_joins_lines():
    record = LocationRecord(id="l", tenant_id="t", slug="x", address_line_1="1 Main St ", address_line_2=" ")
    assert record.address == "1 Main St"
    assert LocationRecord(id="l", tenant_id="t", slug="x").address is None


@pytest.mark.asyncio
async def test_get_glossary_term_maps_references():
    references = [{"slug": "umbrella-insurance", "title": "Umbrella Insurance"}]
    result = MagicMock()
    result.scalar_one_or_none.return_value = GlossaryTerm(
        id="g1", slug="umbrella-policy", title="Umbrella Policy", related_policy_pages=references
    )
    fetcher = SQLRecordFetcher(_session_returning(result), tenant_id="t")

    term = await fetcher.get_glossary_term("umbrella-policy", None)
    assert isinstance(term, GlossaryTermRecord)
    assert term.title == "Umbrella Policy"
    assert term.related_policy_pages == references


@pytest.mark.asyncio
async def test_get_glossary_term_missing():
    result = MagicMock()
    result.scalar_one_or_none.return_value = None
    fetcher = SQLRecordFetcher(_session_returning(result), tenant_id="t")
    assert await fetcher.get_glossary_term("nope", "l1") is None


def test_tenant_locations_not_eager_loaded():
    # 读取租户时不附带门店查询
    assert Tenant.locations.property.lazy == "select"
