"""Shared fixtures: in-memory catalog/order reader, cache and Redis fakes.

The fakes follow the same contracts as MongoCatalogRepo / RedisCacheStore so
the engines and the resolver can be exercised without Mongo or Redis.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Set

import pytest

from shopreco.core.config import Settings
from shopreco.domain.models.product import ACTIVE, InteractionRecord, ProductRef
from shopreco.domain.models.recommendation import RecommendationResult
from shopreco.domain.repositories.cache_repo import CacheStore
from shopreco.domain.repositories.catalog_repo import CatalogReader
from shopreco.domain.services.constants import COMPLETED_ORDER_STATUSES
from shopreco.domain.services.ranking import ts

NOW = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


def days_ago(n: float) -> datetime:
    return NOW - timedelta(days=n)


def product(pid: str, **kw) -> ProductRef:
    kw.setdefault("name", pid.upper())
    kw.setdefault("price", 10.0)
    kw.setdefault("created_at", days_ago(100))
    kw.setdefault("updated_at", days_ago(10))
    return ProductRef(product_id=pid, **kw)


def order(order_id: str, user_id: str, product_ids: Iterable[str], *, age_days: float = 1, status: str = "delivered", prices: Optional[Dict[str, float]] = None) -> dict:
    prices = prices or {}
    return {
        "order_id": order_id,
        "user_id": user_id,
        "status": status,
        "created_at": days_ago(age_days),
        "items": [{"product_id": pid, "quantity": 1, "unit_price": prices.get(pid, 10.0)} for pid in product_ids],
    }


def run(coro):
    return asyncio.run(coro)


class FakeCatalog(CatalogReader):
    """In-memory CatalogReader mirroring the Mongo adapter's query semantics."""

    def __init__(self, products: List[ProductRef], orders: List[dict]):
        self.products = {p.product_id: p for p in products}
        self.orders = list(orders)
        self.calls: Dict[str, int] = {}
        self.trending_requests: List[tuple] = []

    def _hit(self, name: str) -> None:
        self.calls[name] = self.calls.get(name, 0) + 1

    def _active(self) -> List[ProductRef]:
        return [p for p in self.products.values() if p.status == ACTIVE]

    def _completed(self) -> List[dict]:
        return [o for o in self.orders if o["status"] in COMPLETED_ORDER_STATUSES]

    async def get_completed_orders(self, user_id: str, since: Optional[datetime] = None) -> List[InteractionRecord]:
        self._hit("get_completed_orders")
        orders = [o for o in self._completed() if o["user_id"] == user_id and (since is None or o["created_at"] >= since)]
        orders.sort(key=lambda o: (-o["created_at"].timestamp(), o["order_id"]))
        return [
            InteractionRecord(
                order_id=o["order_id"],
                user_id=o["user_id"],
                product_id=it["product_id"],
                quantity=it["quantity"],
                unit_price=it["unit_price"],
                order_timestamp=o["created_at"],
                order_status=o["status"],
            )
            for o in orders
            for it in o["items"]
        ]

    async def get_product(self, product_id: str) -> Optional[ProductRef]:
        self._hit("get_product")
        return self.products.get(product_id)

    async def get_products(self, product_ids: Iterable[str]) -> List[ProductRef]:
        self._hit("get_products")
        return [self.products[pid] for pid in product_ids if pid in self.products]

    async def get_products_by_category(self, category_id: str, limit: int) -> List[ProductRef]:
        items = [p for p in self._active() if p.category_id == category_id]
        return sorted(items, key=lambda p: (-p.sales_count, p.product_id))[:limit]

    async def get_products_by_tag_overlap(self, tags: Iterable[str], limit: int) -> List[ProductRef]:
        wanted = set(tags)
        items = [p for p in self._active() if wanted & set(p.tags)]
        return sorted(items, key=lambda p: (-p.review_count, p.product_id))[:limit]

    async def get_products_by_price_band(self, min_price: float, max_price: float, limit: int) -> List[ProductRef]:
        items = [p for p in self._active() if min_price <= p.price <= max_price]
        return sorted(items, key=lambda p: (-ts(p.updated_at), p.product_id))[:limit]

    async def get_order_baskets_with(self, product_id: str) -> List[Set[str]]:
        baskets = [{it["product_id"] for it in o["items"]} for o in self.orders]
        return [b for b in baskets if product_id in b]

    async def get_candidate_buyers(self, product_ids: Iterable[str], exclude_user_id: str) -> Dict[str, Set[str]]:
        self._hit("get_candidate_buyers")
        wanted = set(product_ids)
        purchased: Dict[str, Set[str]] = {}
        for o in self._completed():
            purchased.setdefault(o["user_id"], set()).update(it["product_id"] for it in o["items"])
        return {
            uid: prods for uid, prods in purchased.items()
            if uid != exclude_user_id and prods & wanted
        }

    async def find_products(self, *, category_ids=None, min_price=None, max_price=None, tags=None, exclude_ids=None, limit=10) -> List[ProductRef]:
        excluded = set(exclude_ids or [])
        items = []
        for p in self._active():
            if category_ids and p.category_id not in category_ids:
                continue
            if min_price is not None and p.price < min_price:
                continue
            if max_price is not None and p.price > max_price:
                continue
            if tags and not set(tags) & set(p.tags):
                continue
            if p.product_id in excluded:
                continue
            items.append(p)
        items.sort(key=lambda p: (-p.sales_count, -p.review_count, -ts(p.updated_at), p.product_id))
        return items[:limit]

    async def get_trending_products(self, since: datetime, limit: int, category_ids: Optional[List[str]] = None) -> List[ProductRef]:
        self._hit("get_trending_products")
        self.trending_requests.append((since, limit, category_ids))
        counts: Dict[str, Set[str]] = {}
        for o in self.orders:
            if o["created_at"] >= since:
                for it in o["items"]:
                    counts.setdefault(it["product_id"], set()).add(o["order_id"])
        pool = [p for p in self._active() if not category_ids or p.category_id in category_ids]
        pool.sort(key=lambda p: (-len(counts.get(p.product_id, ())), -p.review_count, -ts(p.created_at), p.product_id))
        return pool[:limit]


class BrokenCatalog(FakeCatalog):
    """Every personalization read fails; trending reads still work."""

    async def get_completed_orders(self, user_id, since=None):
        raise ConnectionError("orders store unreachable")

    async def get_product(self, product_id):
        raise ConnectionError("catalog unreachable")


class DeadCatalog(BrokenCatalog):
    """Nothing works, not even trending."""

    async def get_trending_products(self, since, limit, category_ids=None):
        raise ConnectionError("catalog unreachable")


class SlowCatalog(FakeCatalog):
    async def get_completed_orders(self, user_id, since=None):
        await asyncio.sleep(1)
        return await super().get_completed_orders(user_id, since)


class FakeCache(CacheStore):
    """Serializes like RedisCacheStore and expires entries against an injectable clock."""

    def __init__(self, clock=lambda: NOW):
        self.clock = clock
        self.data: Dict[str, tuple] = {}
        self.sets = 0

    async def get(self, key: str) -> Optional[RecommendationResult]:
        entry = self.data.get(key)
        if entry is None:
            return None
        raw, expires_at = entry
        if self.clock() >= expires_at:
            del self.data[key]
            return None
        return RecommendationResult.model_validate_json(raw)

    async def set_with_ttl(self, key: str, value: RecommendationResult, ttl_seconds: int) -> None:
        self.sets += 1
        self.data[key] = (value.model_dump_json(), self.clock() + timedelta(seconds=ttl_seconds))


class FailingCache(CacheStore):
    async def get(self, key):
        raise ConnectionError("redis down")

    async def set_with_ttl(self, key, value, ttl_seconds):
        raise ConnectionError("redis down")


class FakeRedis:
    """Just enough of redis.asyncio.Redis for the tracker: hincrby via pipeline, hgetall."""

    def __init__(self):
        self.hashes: Dict[str, Dict[str, int]] = {}

    def pipeline(self, transaction: bool = True):
        return _FakePipeline(self)

    async def hgetall(self, key: str):
        return {k: str(v) for k, v in self.hashes.get(key, {}).items()}


class _FakePipeline:
    def __init__(self, redis: FakeRedis):
        self.redis = redis
        self.ops = []

    def hincrby(self, key, field, amount=1):
        self.ops.append((key, field, amount))
        return self

    async def execute(self):
        for key, field, amount in self.ops:
            h = self.redis.hashes.setdefault(key, {})
            h[field] = h.get(field, 0) + amount
        return [True] * len(self.ops)


class BrokenRedis(FakeRedis):
    def pipeline(self, transaction: bool = True):
        raise ConnectionError("redis down")

    async def hgetall(self, key: str):
        raise ConnectionError("redis down")


# ----- catalog fixture --------------------------------------------------------
#
# users:
#   u1 bought p1 p2 p3 (shoes)           -> similar to u2 (0.5) and u3 (0.75)
#   u2 bought p2 p3 p4
#   u3 bought p1 p2 p3 p4
#   u4 bought p3 p5 p6 p8..p12          -> exactly 0.10 with u1, discarded
#   u5 only has a cancelled order        -> cold start

def _catalog_products() -> List[ProductRef]:
    return [
        product("p1", category_id="shoes", tags=["running", "sport"], price=80, sales_count=40, review_count=5),
        product("p2", category_id="shoes", tags=["running"], price=100, sales_count=30, review_count=8),
        product("p3", category_id="socks", tags=["sport"], price=10, sales_count=90, review_count=20),
        product("p4", category_id="shoes", tags=["trail", "running"], price=120, sales_count=25, review_count=3),
        product("p5", category_id="shoes", tags=["running"], price=95, sales_count=60, review_count=12),
        product("p6", category_id="shoes", tags=["sport"], price=70, sales_count=15, review_count=30),
        product("p7", category_id="hats", tags=["sun"], price=25, sales_count=5, review_count=1, status="archived"),
        product("p8", category_id="hats", tags=["sun"], price=30, sales_count=8, review_count=2),
        product("p9", category_id="bags", tags=["travel"], price=200, sales_count=3, review_count=0),
        product("p10", category_id="bags", tags=["travel"], price=210, sales_count=2, review_count=0),
        product("p11", category_id="bags", tags=["travel"], price=220, sales_count=1, review_count=0),
        product("p12", category_id="bags", tags=["travel"], price=230, sales_count=1, review_count=0),
    ]


def _catalog_orders() -> List[dict]:
    return [
        order("o1", "u1", ["p1", "p2"], age_days=3, prices={"p1": 80, "p2": 100}),
        order("o2", "u1", ["p3"], age_days=1, prices={"p3": 10}),
        order("o3", "u2", ["p2", "p3", "p4"], age_days=5),
        order("o4", "u3", ["p1", "p2", "p3", "p4"], age_days=40),
        order("o5", "u4", ["p3", "p5", "p6", "p8", "p9", "p10", "p11", "p12"], age_days=2),
        order("o6", "u5", ["p5"], age_days=2, status="cancelled"),
        order("o7", "u6", ["p5", "p6"], age_days=4, status="payment_completed"),
        order("o8", "u7", ["p5"], age_days=6, status="delivered"),
    ]


@pytest.fixture
def settings():
    return Settings(read_timeout_s=2.0)


@pytest.fixture
def catalog():
    return FakeCatalog(_catalog_products(), _catalog_orders())


@pytest.fixture
def cache():
    return FakeCache()
