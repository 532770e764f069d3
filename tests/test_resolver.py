"""
门店 / 租户字段回落测试
"""

from app.services.records import LocationRecord, TenantRecord
from app.services.resolver import RESOLVED_FIELDS, RequestResolver, ResolvedView, resolve


def test_location_fields_win(tenant, woodstock):
    view = resolve(tenant, woodstock)
    assert view.name == "Acme Woodstock"
    assert view.address == "200 Towne Lake Pkwy, Suite 5"
    assert view.city == "Woodstock"
    assert view.state == "GA"
    assert view.zip == "30188"
    assert view.phone == "(678) 555-0199"
    # 门店没有邮箱，始终取租户
    assert view.email == "hello@acme.example"


def test_partial_location_falls_back_per_field(tenant, canton):
    view = resolve(tenant, canton)
    assert view.city == "Canton"
    assert view.state == "GA"
    assert view.name == "Acme Insurance Group"
    assert view.address == "100 Main St"
    assert view.zip == "30301"
    assert view.phone == "770-555-0100"


def test_no_location_uses_tenant(tenant):
    view = resolve(tenant, None)
    assert view == ResolvedView(
        name="Acme Insurance Group",
        address="100 Main St",
        city="atlanta",
        state="ga",
        zip="30301",
        phone="770-555-0100",
        email="hello@acme.example",
    )


def test_missing_everywhere_is_empty_string():
    view = resolve(TenantRecord(id="t"), LocationRecord(id="l", tenant_id="t", slug="x"))
    for field_name, _, _ in RESOLVED_FIELDS:
        assert getattr(view, field_name) == ""


def test_whitespace_counts_as_empty(tenant):
    location = LocationRecord(id="l", tenant_id=tenant.id, slug="x", phone="   ", city="  ")
    view = resolve(tenant, location)
    assert view.phone == tenant.phone
    assert view.city == tenant.city


def test_never_invents_values(tenant, woodstock, canton):
    for location in (None, woodstock, canton):
        view = resolve(tenant, location)
        for field_name, location_getter, tenant_getter in RESOLVED_FIELDS:
            value = getattr(view, field_name)
            allowed = {"", (tenant_getter(tenant) or "").strip()}
            if location is not None:
                allowed.add((location_getter(location) or "").strip())
            assert value in allowed


def test_resolve_is_deterministic(tenant, woodstock):
    assert resolve(tenant, woodstock) == resolve(tenant, woodstock)


def test_request_resolver_memoizes_per_pair(tenant, woodstock, canton):
    resolver = RequestResolver()
    first = resolver.resolve(tenant, woodstock)
    assert resolver.resolve(tenant, woodstock) is first
    resolver.resolve(tenant, canton)
    resolver.resolve(tenant, None)
    assert len(resolver) == 3


def test_to_dict_has_every_field(tenant):
    data = resolve(tenant).to_dict()
    assert set(data) == {name for name, _, _ in RESOLVED_FIELDS}
