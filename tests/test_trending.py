"""Tests for the trending fallback."""

from datetime import timedelta

from shopreco.domain.services.constants import ALGO_TRENDING
from shopreco.domain.services.trending_svc import get_trending

from conftest import NOW, FakeCatalog, days_ago, order, product, run


def test_trending_ranking(catalog, settings):
    result = run(get_trending(catalog, 10, settings=settings, now=NOW))

    assert result.algorithm == ALGO_TRENDING
    assert result.confidence == 85
    # p5: 4 orders, p3: 3, p6/p2: 2 (p6 has more reviews), then 1-order products
    assert [p.product_id for p in result.products] == [
        "p5", "p3", "p6", "p2", "p1", "p4", "p8", "p10", "p11", "p12",
    ]
    assert "p7" not in [p.product_id for p in result.products]  # archived


def test_trending_window_excludes_old_orders(catalog, settings):
    # counting the 40-day-old o4 would lift p2 to 3 orders, above p6
    result = run(get_trending(catalog, 20, settings=settings, now=NOW))
    ids = [p.product_id for p in result.products]
    assert ids.index("p6") < ids.index("p2")
    assert len(ids) == 11


def test_trending_category_filter(catalog, settings):
    result = run(get_trending(catalog, 10, ["shoes"], settings=settings, now=NOW))
    assert [p.product_id for p in result.products] == ["p5", "p6", "p2", "p1", "p4"]


def test_trending_tie_break_on_creation_date(settings):
    products = [
        product("old", review_count=1, created_at=days_ago(300)),
        product("new", review_count=1, created_at=days_ago(3)),
        product("hot", review_count=0, created_at=days_ago(500)),
    ]
    catalog = FakeCatalog(products, [order("o1", "u1", ["hot"], age_days=2)])
    result = run(get_trending(catalog, 10, settings=settings, now=NOW))
    assert [p.product_id for p in result.products] == ["hot", "new", "old"]


def test_trending_with_empty_history(settings):
    catalog = FakeCatalog([product("a"), product("b")], [])
    result = run(get_trending(catalog, 1, settings=settings, now=NOW))
    assert len(result.products) == 1
    assert result.confidence == 85


def test_trending_read_is_bounded_by_limit(catalog, settings):
    run(get_trending(catalog, 3, ["shoes"], settings=settings, now=NOW))
    assert catalog.trending_requests == [(NOW - timedelta(days=30), 3, ["shoes"])]
