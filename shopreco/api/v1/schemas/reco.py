# api/v1/schemas/reco.py
from pydantic import BaseModel, Field


class TrackEventIn(BaseModel):
    user_id: str = Field(min_length=1)
    product_id: str = Field(min_length=1)
    algorithm: str = Field(min_length=1, description="algorithm tag of the result the product came from")


class TrackAck(BaseModel):
    accepted: bool = True
    recorded: bool


class PerformanceOut(BaseModel):
    algorithm: str
    clicks: int
    purchases: int
    conversion_rate: float
