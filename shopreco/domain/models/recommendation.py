from enum import Enum
from typing import FrozenSet, List, Optional
from pydantic import BaseModel, Field

from shopreco.domain.models.product import ScoredProduct


class SubjectType(str, Enum):
    USER = "USER"
    PRODUCT = "PRODUCT"


class Strategy(str, Enum):
    HYBRID = "HYBRID"
    COLLABORATIVE = "COLLABORATIVE"
    CONTENT = "CONTENT"
    ITEM_BASED = "ITEM_BASED"
    TRENDING = "TRENDING"


class RecommendationRequest(BaseModel):
    # limit and subject_id are checked by the resolver, not here, so that a
    # bad request surfaces as RequestValidationError rather than a pydantic error
    subject_type: SubjectType = SubjectType.USER
    subject_id: str
    strategy: Strategy = Strategy.HYBRID
    limit: int = 10
    include_already_interacted: bool = False
    category_filter: Optional[List[str]] = None

    model_config = {"frozen": True}


class RecommendationResult(BaseModel):
    products: List[ScoredProduct] = []
    algorithm: str
    confidence: float = Field(ge=0, le=100)
    reason: str = ""

    model_config = {"frozen": True}  # immuable = safe

    @property
    def count(self) -> int:
        return len(self.products)


class PriceRange(BaseModel):
    min: float
    max: float

    model_config = {"frozen": True}


class PreferenceProfile(BaseModel):
    """Derived per request from the user's own completed orders; never stored."""
    order_count: int
    top_categories: List[str]      # <= 3, strongest first
    top_tags: List[str]            # <= 5, strongest first
    price_range: PriceRange
    excluded_product_ids: FrozenSet[str] = frozenset()

    model_config = {"frozen": True}


class SimilarUser(BaseModel):
    user_id: str
    similarity: float

    model_config = {"frozen": True}
