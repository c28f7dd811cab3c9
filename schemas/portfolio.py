from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from schemas.media import MediaOut

CategoryLiteral = Literal["PROPERTY", "FUND"]


def _dedupe(values: List[int]) -> List[int]:
    out: List[int] = []
    for value in values:
        if value not in out:
            out.append(value)
    return out


class PortfolioCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    slug: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    category: CategoryLiteral = "PROPERTY"
    price: float = Field(gt=0)
    shares: int = Field(gt=0)
    share_price: float = Field(gt=0)
    featured_image_id: Optional[int] = None
    gallery_ids: List[int] = Field(default_factory=list)

    @field_validator("gallery_ids")
    @classmethod
    def validate_gallery(cls, value: List[int]) -> List[int]:
        return _dedupe(value)


class PortfolioUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    slug: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    category: Optional[CategoryLiteral] = None
    price: Optional[float] = Field(default=None, gt=0)
    shares: Optional[int] = Field(default=None, gt=0)
    share_price: Optional[float] = Field(default=None, gt=0)
    featured_image_id: Optional[int] = None
    gallery_ids: Optional[List[int]] = None

    @field_validator("gallery_ids")
    @classmethod
    def validate_gallery(cls, value: Optional[List[int]]) -> Optional[List[int]]:
        return None if value is None else _dedupe(value)


class GalleryImageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    media_id: int
    display_order: int
    media: MediaOut


class PortfolioOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    slug: str
    description: Optional[str] = None
    category: str
    price: float
    shares: int
    share_price: float
    remaining_shares: int
    remaining_investment: float
    featured_image: Optional[MediaOut] = None
    gallery: List[GalleryImageOut] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class PortfolioSummaryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    slug: str
    shares: int
    share_price: float
    featured_image: Optional[MediaOut] = None


class PortfolioOption(BaseModel):
    id: int
    title: str
    slug: str
