from pydantic import BaseModel, Field, field_validator
from typing import Any, Optional, List
from datetime import datetime

ACTIVE = "active"


def to_float(v: Any) -> float:
    """
    Explicit numeric conversion for money fields.
    Mongo may hand back Decimal128 (bson), Decimal, int or str.
    """
    if v is None:
        return 0.0
    if hasattr(v, "to_decimal"):  # bson.Decimal128
        v = v.to_decimal()
    return float(v)


class ProductRef(BaseModel):
    product_id: str
    name: Optional[str] = None
    category_id: Optional[str] = None
    tags: List[str] = []
    price: float = 0.0
    status: str = ACTIVE
    sales_count: int = 0       # units sold, all time
    review_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"frozen": True}  # immuable = safe

    @field_validator("price", mode="before")
    @classmethod
    def _price(cls, v):
        return to_float(v)

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, v):
        # set semantics, stable order for hashing/caching
        return sorted({str(t) for t in (v or [])})

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v):
        return str(v or "").lower()

    @property
    def is_active(self) -> bool:
        return self.status == ACTIVE


class InteractionRecord(BaseModel):
    """One line item of a finalized order."""
    order_id: str
    user_id: str
    product_id: str
    quantity: int = 1
    unit_price: float = 0.0
    order_timestamp: datetime
    order_status: str

    model_config = {"frozen": True}

    @field_validator("unit_price", mode="before")
    @classmethod
    def _unit_price(cls, v):
        return to_float(v)


class ScoredProduct(ProductRef):
    recommendation_score: float = Field(ge=0)

    @classmethod
    def from_product(cls, product: ProductRef, score: float) -> "ScoredProduct":
        # re-scoring an already scored product replaces its score
        data = product.model_dump(exclude={"recommendation_score"})
        return cls(**data, recommendation_score=max(float(score), 0.0))
