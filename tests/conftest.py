"""
测试配置和 fixtures

记录获取、页面缓存的 Redis、身份校验都替换为内存实现，测试不依赖数据库和 Redis
"""

import os

os.environ.setdefault("ENV", "test")
os.environ.setdefault("TENANT_ID", "acme-insurance")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from typing import AsyncGenerator, Dict, List, Optional, Set, Tuple

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.api.deps import get_record_fetcher
from app.core.exceptions import AuthenticationFailed, UpstreamFetchFailure
from app.core.security import Principal, get_identity_provider
from app.main import create_app
from app.services.page_cache import PageCache, PageCacheConfig, get_page_cache
from app.services.records import GlossaryTermRecord, LocationRecord, TenantRecord

VALID_TOKEN = "valid-editor-token"


class FakeRedis:
    """只实现页面缓存用到的命令"""

    def __init__(self):
        self.store: Dict[str, str] = {}
        self.deleted: List[str] = []

    async def get(self, key: str) -> Optional[str]:
        return self.store.get(key)

    async def delete(self, key: str) -> int:
        self.deleted.append(key)
        return 1 if self.store.pop(key, None) is not None else 0

    async def aclose(self) -> None:
        pass


class FakeRecordFetcher:
    """内存记录获取器"""

    def __init__(
        self,
        tenant: Optional[TenantRecord],
        locations: Optional[List[LocationRecord]] = None,
        published: Optional[Dict[Tuple[str, Optional[str]], Set[str]]] = None,
        fail_published: bool = False,
        glossary: Optional[Dict[Tuple[str, Optional[str]], GlossaryTermRecord]] = None,
    ):
        self.tenant = tenant
        self.locations = locations or []
        self.published = published or {}
        self.fail_published = fail_published
        self.glossary = glossary or {}
        self.published_calls: List[Tuple[str, Optional[str]]] = []

    async def get_tenant(self) -> Optional[TenantRecord]:
        return self.tenant

    async def get_location_by_slug(self, slug: str) -> Optional[LocationRecord]:
        for location in self.locations:
            if location.slug == slug:
                return location
        return None

    async def get_all_locations(self) -> List[LocationRecord]:
        return list(self.locations)

    async def get_primary_location(self) -> Optional[LocationRecord]:
        return self.locations[0] if self.locations else None

    async def is_multi_location(self) -> bool:
        return len(self.locations) > 1

    async def get_published_slugs(self, tenant_id: str, location_id: Optional[str]) -> Set[str]:
        self.published_calls.append((tenant_id, location_id))
        if self.fail_published:
            raise UpstreamFetchFailure("content store unavailable")
        return set(self.published.get((tenant_id, location_id), set()))

    async def get_glossary_term(self, slug: str, location_id: Optional[str]) -> Optional[GlossaryTermRecord]:
        return self.glossary.get((slug, location_id))


class FakeIdentityProvider:
    """只接受 VALID_TOKEN"""

    def __init__(self):
        self.verified: List[str] = []

    async def verify(self, token: str) -> Principal:
        self.verified.append(token)
        if token != VALID_TOKEN:
            raise AuthenticationFailed(details="invalid JWT: unable to parse or verify signature")
        return Principal(id="editor-1", email="editor@acme.example")


@pytest.fixture
def tenant() -> TenantRecord:
    return TenantRecord(
        id="acme-insurance",
        agency_name="Acme Insurance Group",
        phone="770-555-0100",
        contact_email="hello@acme.example",
        address="100 Main St",
        city="atlanta",
        state="ga",
        zip="30301",
        website_url="https://acme.example",
    )


@pytest.fixture
def woodstock() -> LocationRecord:
    return LocationRecord(
        id="loc-woodstock",
        tenant_id="acme-insurance",
        slug="woodstock-ga",
        location_name="Acme Woodstock",
        phone="(678) 555-0199",
        address_line_1="200 Towne Lake Pkwy",
        address_line_2="Suite 5",
        city="Woodstock",
        state="GA",
        zip="30188",
    )


@pytest.fixture
def canton() -> LocationRecord:
    # 只填写了城市和州，其余字段回落到租户
    return LocationRecord(
        id="loc-canton",
        tenant_id="acme-insurance",
        slug="canton-ga",
        location_name="",
        city="Canton",
        state="GA",
    )


@pytest.fixture
def fetcher(tenant, woodstock, canton) -> FakeRecordFetcher:
    return FakeRecordFetcher(
        tenant=tenant,
        locations=[woodstock, canton],
        published={
            ("acme-insurance", "loc-woodstock"): {
                "umbrella-insurance-woodstock-ga",
                "auto-insurance",
            },
            ("acme-insurance", None): {"home-insurance"},
        },
        glossary={
            ("umbrella-policy", "loc-woodstock"): GlossaryTermRecord(
                id="term-umbrella",
                slug="umbrella-policy",
                title="Umbrella Policy",
                related_policy_pages=[
                    {"slug": "umbrella-insurance", "title": "Umbrella Insurance"},
                    {"slug": "flood-insurance", "title": "Flood Insurance"},
                    "/policies/auto-insurance",
                ],
            ),
        },
    )


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def page_cache(fake_redis) -> PageCache:
    return PageCache(config=PageCacheConfig(prefix="test:page"), redis_client=fake_redis)


@pytest.fixture
def identity_provider() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture
def app(fetcher, page_cache, identity_provider):
    application = create_app()
    application.dependency_overrides[get_record_fetcher] = lambda: fetcher
    application.dependency_overrides[get_page_cache] = lambda: page_cache
    application.dependency_overrides[get_identity_provider] = lambda: identity_provider
    yield application
    application.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """创建测试客户端"""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
