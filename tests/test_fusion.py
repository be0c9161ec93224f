"""Tests for content-based recommendations and hybrid score fusion."""

import pytest

from shopreco.domain.models.product import ScoredProduct
from shopreco.domain.models.recommendation import RecommendationResult
from shopreco.domain.services.constants import ALGO_CONTENT, ALGO_HYBRID
from shopreco.domain.services.content_svc import content_based_recommendations
from shopreco.domain.services.fusion_svc import fuse, hybrid_recommendation
from shopreco.domain.services.trending_svc import get_trending

from conftest import NOW, product, run


def _result(ids, confidence):
    n = len(ids)
    return RecommendationResult(
        products=[ScoredProduct.from_product(product(pid), n - i) for i, pid in enumerate(ids)],
        algorithm="x",
        confidence=confidence,
    )


def test_fuse_position_weights():
    fused = fuse(_result(["a", "b"], 40), _result(["b", "c"], 70), 10)
    # a = 2*0.6, b = 1*0.6 + 2*0.4, c = 1*0.4
    assert [p.product_id for p in fused.products] == ["b", "a", "c"]
    assert [p.recommendation_score for p in fused.products] == [1.4, 1.2, 0.4]
    assert fused.algorithm == ALGO_HYBRID
    assert fused.confidence == 70


def test_fuse_handles_missing_side():
    fused = fuse(None, _result(["x", "y"], 50), 1)
    assert [p.product_id for p in fused.products] == ["x"]
    assert fused.confidence == 50


def test_content_based_uses_profile(catalog):
    result = run(content_based_recommendations(catalog, "u1", 10))
    assert result.algorithm == ALGO_CONTENT
    # shoes/socks in price range with sport|running tags, p1-p3 already bought
    assert [p.product_id for p in result.products] == ["p5", "p6"]
    assert result.confidence == pytest.approx(66.67)


def test_content_based_category_filter(catalog):
    result = run(content_based_recommendations(catalog, "u1", 10, category_filter=["socks"]))
    assert result.products == []


def test_content_based_cold_start(catalog):
    assert run(content_based_recommendations(catalog, "u5", 10)) is None


def test_hybrid_fuses_both_paths(catalog, settings):
    result = run(hybrid_recommendation(catalog, "u1", 10, settings=settings, now=NOW))
    assert result.algorithm == ALGO_HYBRID
    assert [p.product_id for p in result.products] == ["p5", "p4", "p6"]
    assert result.confidence == pytest.approx(66.67)


def test_hybrid_cold_start_is_trending(catalog, settings):
    hybrid = run(hybrid_recommendation(catalog, "u5", 5, settings=settings, now=NOW))
    trending = run(get_trending(catalog, 5, settings=settings, now=NOW))
    assert hybrid == trending
    assert hybrid.confidence == 85


def test_hybrid_reads_order_history_once(catalog, settings):
    run(hybrid_recommendation(catalog, "u1", 10, settings=settings, now=NOW))
    assert catalog.calls["get_completed_orders"] == 1
