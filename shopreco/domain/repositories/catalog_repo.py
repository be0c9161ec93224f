# shopreco/domain/repositories/catalog_repo.py

from __future__ import annotations
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set
from motor.motor_asyncio import AsyncIOMotorDatabase

from shopreco.core.exceptions import UpstreamUnavailableError
from shopreco.domain.models.product import ACTIVE, InteractionRecord, ProductRef
from shopreco.domain.services.constants import COMPLETED_ORDER_STATUSES

_PRODUCT_PROJECTION = {
    "_id": 0,
    "product_id": 1,
    "name": 1,
    "category_id": 1,
    "tags": 1,
    "price": 1,
    "status": 1,
    "sales_count": 1,
    "review_count": 1,
    "created_at": 1,
    "updated_at": 1,
}


class CatalogReader(ABC):
    """
    Read-only view of the catalog and the order history.
    The recommendation engines only ever talk to this interface; the Mongo
    adapter below is the production implementation, tests use an in-memory one.
    """

    @abstractmethod
    async def get_completed_orders(self, user_id: str, since: Optional[datetime] = None) -> List[InteractionRecord]:
        """Line items of the user's delivered/paid orders, most recent order first."""

    @abstractmethod
    async def get_product(self, product_id: str) -> Optional[ProductRef]:
        ...

    @abstractmethod
    async def get_products(self, product_ids: Iterable[str]) -> List[ProductRef]:
        ...

    @abstractmethod
    async def get_products_by_category(self, category_id: str, limit: int) -> List[ProductRef]:
        """Active products of a category, best sellers first."""

    @abstractmethod
    async def get_products_by_tag_overlap(self, tags: Iterable[str], limit: int) -> List[ProductRef]:
        """Active products sharing at least one tag, most reviewed first."""

    @abstractmethod
    async def get_products_by_price_band(self, min_price: float, max_price: float, limit: int) -> List[ProductRef]:
        """Active products priced within [min_price, max_price], most recently updated first."""

    @abstractmethod
    async def get_order_baskets_with(self, product_id: str) -> List[Set[str]]:
        """Product-id set of every order that contains `product_id`."""

    @abstractmethod
    async def get_candidate_buyers(self, product_ids: Iterable[str], exclude_user_id: str) -> Dict[str, Set[str]]:
        """
        Purchased product set of every other user whose completed orders share
        at least one product with `product_ids`.
        """

    @abstractmethod
    async def find_products(
        self,
        *,
        category_ids: Optional[List[str]] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        tags: Optional[List[str]] = None,
        exclude_ids: Optional[Iterable[str]] = None,
        limit: int = 10,
    ) -> List[ProductRef]:
        """Active products matching every given criterion; best sellers, most reviewed, freshest first."""

    @abstractmethod
    async def get_trending_products(
        self,
        since: datetime,
        limit: int,
        category_ids: Optional[List[str]] = None,
    ) -> List[ProductRef]:
        """
        Up to `limit` active products (optionally within `category_ids`) ranked by
        distinct orders placed at or after `since`, then review count, then
        newest in catalog, then product id. Products without orders in the
        window fill the tail.
        """


class MongoCatalogRepo(CatalogReader):
    """
    Catalog/order reader backed by the 'products' and 'orders' collections.

    orders documents:
      { order_id, user_id, status, created_at, items: [{product_id, quantity, unit_price}] }
    """

    def __init__(self, db: AsyncIOMotorDatabase, products: str = "products", orders: str = "orders"):
        self.products = db[products]
        self.orders = db[orders]

    async def _find_products(self, query: dict, sort: list, limit: int) -> List[ProductRef]:
        cursor = self.products.find(query, _PRODUCT_PROJECTION).sort(sort).limit(limit)
        return [ProductRef.model_validate(doc) async for doc in cursor]

    async def get_completed_orders(self, user_id: str, since: Optional[datetime] = None) -> List[InteractionRecord]:
        query: dict = {"user_id": user_id, "status": {"$in": list(COMPLETED_ORDER_STATUSES)}}
        if since:
            query["created_at"] = {"$gte": since}
        cursor = self.orders.find(query, {"_id": 0}).sort([("created_at", -1), ("order_id", 1)])
        records: List[InteractionRecord] = []
        async for order in cursor:
            for item in order.get("items") or []:
                records.append(
                    InteractionRecord(
                        order_id=str(order["order_id"]),
                        user_id=order["user_id"],
                        product_id=item["product_id"],
                        quantity=int(item.get("quantity") or 1),
                        unit_price=item.get("unit_price"),
                        order_timestamp=order["created_at"],
                        order_status=order["status"],
                    )
                )
        return records

    async def get_product(self, product_id: str) -> Optional[ProductRef]:
        doc = await self.products.find_one({"product_id": product_id}, _PRODUCT_PROJECTION)
        return ProductRef.model_validate(doc) if doc else None

    async def get_products(self, product_ids: Iterable[str]) -> List[ProductRef]:
        ids = list(product_ids)
        if not ids:
            return []
        cursor = self.products.find({"product_id": {"$in": ids}}, _PRODUCT_PROJECTION)
        return [ProductRef.model_validate(doc) async for doc in cursor]

    async def get_products_by_category(self, category_id: str, limit: int) -> List[ProductRef]:
        return await self._find_products(
            {"category_id": category_id, "status": ACTIVE},
            [("sales_count", -1), ("product_id", 1)],
            limit,
        )

    async def get_products_by_tag_overlap(self, tags: Iterable[str], limit: int) -> List[ProductRef]:
        tags = list(tags)
        if not tags:
            return []
        return await self._find_products(
            {"tags": {"$in": tags}, "status": ACTIVE},
            [("review_count", -1), ("product_id", 1)],
            limit,
        )

    async def get_products_by_price_band(self, min_price: float, max_price: float, limit: int) -> List[ProductRef]:
        return await self._find_products(
            {"price": {"$gte": min_price, "$lte": max_price}, "status": ACTIVE},
            [("updated_at", -1), ("product_id", 1)],
            limit,
        )

    async def get_order_baskets_with(self, product_id: str) -> List[Set[str]]:
        cursor = self.orders.find({"items.product_id": product_id}, {"_id": 0, "items.product_id": 1})
        return [{it["product_id"] for it in order.get("items") or []} async for order in cursor]

    async def get_candidate_buyers(self, product_ids: Iterable[str], exclude_user_id: str) -> Dict[str, Set[str]]:
        ids = list(product_ids)
        if not ids:
            return {}
        statuses = list(COMPLETED_ORDER_STATUSES)
        # 1) bound the pool: only users sharing >= 1 product
        users = await self.orders.distinct(
            "user_id",
            {"status": {"$in": statuses}, "items.product_id": {"$in": ids}, "user_id": {"$ne": exclude_user_id}},
        )
        if not users:
            return {}
        # 2) full purchased set for each of them
        pipeline = [
            {"$match": {"status": {"$in": statuses}, "user_id": {"$in": users}}},
            {"$unwind": "$items"},
            {"$group": {"_id": "$user_id", "prods": {"$addToSet": "$items.product_id"}}},
        ]
        docs = await self.orders.aggregate(pipeline).to_list(length=None)
        return {d["_id"]: set(d["prods"]) for d in docs}

    async def find_products(
        self,
        *,
        category_ids: Optional[List[str]] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        tags: Optional[List[str]] = None,
        exclude_ids: Optional[Iterable[str]] = None,
        limit: int = 10,
    ) -> List[ProductRef]:
        query: dict = {"status": ACTIVE}
        if category_ids:
            query["category_id"] = {"$in": list(category_ids)}
        price: dict = {}
        if min_price is not None:
            price["$gte"] = min_price
        if max_price is not None:
            price["$lte"] = max_price
        if price:
            query["price"] = price
        if tags:
            query["tags"] = {"$in": list(tags)}
        excluded = list(exclude_ids or [])
        if excluded:
            query["product_id"] = {"$nin": excluded}
        return await self._find_products(
            query,
            [("sales_count", -1), ("review_count", -1), ("updated_at", -1), ("product_id", 1)],
            limit,
        )

    async def get_trending_products(
        self,
        since: datetime,
        limit: int,
        category_ids: Optional[List[str]] = None,
    ) -> List[ProductRef]:
        product_match: dict = {"product.status": ACTIVE}
        if category_ids:
            product_match["product.category_id"] = {"$in": list(category_ids)}
        # 1) products ordered in the window, ranked and cut to `limit` server side
        pipeline = [
            {"$match": {"created_at": {"$gte": since}}},
            {"$unwind": "$items"},
            {"$group": {"_id": "$items.product_id", "orders": {"$addToSet": "$order_id"}}},
            {"$lookup": {"from": self.products.name, "localField": "_id", "foreignField": "product_id", "as": "product"}},
            {"$unwind": "$product"},
            {"$match": product_match},
            {"$project": {"_id": 0, "count": {"$size": "$orders"}, "product": 1}},
            {"$sort": {"count": -1, "product.review_count": -1, "product.created_at": -1, "product.product_id": 1}},
            {"$limit": limit},
        ]
        docs = await self.orders.aggregate(pipeline).to_list(length=limit)
        ranked = [ProductRef.model_validate(d["product"]) for d in docs]
        if len(ranked) >= limit:
            return ranked

        # 2) every eligible seller is already in `ranked`; fill with unsold products
        query: dict = {"status": ACTIVE, "product_id": {"$nin": [p.product_id for p in ranked]}}
        if category_ids:
            query["category_id"] = {"$in": list(category_ids)}
        rest = await self._find_products(
            query,
            [("review_count", -1), ("created_at", -1), ("product_id", 1)],
            limit - len(ranked),
        )
        return ranked + rest


class UnavailableCatalogReader(CatalogReader):
    """
    Stand-in used when MongoDB is not configured: every read fails with
    UpstreamUnavailableError, which the resolver turns into its empty
    zero-confidence answer instead of a 500.
    """

    def __init__(self, reason: str = "MongoDB is not configured"):
        self.reason = reason

    def _fail(self, operation: str):
        raise UpstreamUnavailableError(operation, ConnectionError(self.reason))

    async def get_completed_orders(self, user_id, since=None):
        self._fail("get_completed_orders")

    async def get_product(self, product_id):
        self._fail("get_product")

    async def get_products(self, product_ids):
        self._fail("get_products")

    async def get_products_by_category(self, category_id, limit):
        self._fail("get_products_by_category")

    async def get_products_by_tag_overlap(self, tags, limit):
        self._fail("get_products_by_tag_overlap")

    async def get_products_by_price_band(self, min_price, max_price, limit):
        self._fail("get_products_by_price_band")

    async def get_order_baskets_with(self, product_id):
        self._fail("get_order_baskets_with")

    async def get_candidate_buyers(self, product_ids, exclude_user_id):
        self._fail("get_candidate_buyers")

    async def find_products(self, **kwargs):
        self._fail("find_products")

    async def get_trending_products(self, since, limit, category_ids=None):
        self._fail("get_trending_products")
