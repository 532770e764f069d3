"""
门店上下文与链接改写测试
"""

import dataclasses

import pytest

from app.services.location_context import LocationContext, location_prefix, rewrite

PREFIX = "/locations/woodstock-ga"

HREFS = ["/", "/policies", "policies", "/blog/auto/best-auto-tips", "contact", "/locations/canton-ga/faq"]


@pytest.mark.parametrize("href", HREFS)
def test_no_prefix_is_identity(href):
    assert rewrite(None, href) == href
    assert rewrite("", href) == href


@pytest.mark.parametrize("prefix", [PREFIX, "/locations/canton-ga", "/locations/x/"])
def test_already_scoped_href_unchanged(prefix):
    assert rewrite(prefix, "/locations/canton-ga/policies") == "/locations/canton-ga/policies"
    assert rewrite(prefix, "locations/canton-ga") == "locations/canton-ga"


def test_root_maps_to_location_home():
    assert rewrite(PREFIX, "/") == PREFIX


@pytest.mark.parametrize(
    "href,expected",
    [
        ("/policies", "/locations/woodstock-ga/policies"),
        ("policies", "/locations/woodstock-ga/policies"),
        ("//policies", "/locations/woodstock-ga/policies"),
        ("/blog/auto", "/locations/woodstock-ga/blog/auto"),
    ],
)
def test_single_separator_at_join(href, expected):
    result = rewrite(PREFIX, href)
    assert result == expected
    assert "//" not in result
    assert result.count("/locations/") == 1


def test_trailing_slash_on_prefix():
    assert rewrite(PREFIX + "/", "/faq") == "/locations/woodstock-ga/faq"


def test_context_for_location():
    context = LocationContext.for_location("woodstock-ga")
    assert context.location_prefix == PREFIX == location_prefix("woodstock-ga")
    assert context.location_slug == "woodstock-ga"
    assert context.is_scoped
    assert context.rewrite("/") == PREFIX
    assert context.rewrite("/policies/auto-insurance") == "/locations/woodstock-ga/policies/auto-insurance"


@pytest.mark.parametrize("slug", [None, "", "/"])
def test_context_without_location(slug):
    context = LocationContext.for_location(slug)
    assert context == LocationContext.tenant_wide()
    assert not context.is_scoped
    assert context.rewrite("/policies") == "/policies"


def test_context_is_immutable():
    context = LocationContext.for_location("woodstock-ga")
    with pytest.raises(dataclasses.FrozenInstanceError):
        context.location_prefix = "/locations/other"  # type: ignore[misc]


def test_scoped_to_returns_new_context():
    context = LocationContext.for_location("woodstock-ga")
    other = context.scoped_to("canton-ga")
    assert other is not context
    assert context.location_prefix == PREFIX
    assert other.location_prefix == "/locations/canton-ga"
