from __future__ import annotations

import math
from typing import Any, Dict, List

from pydantic import BaseModel, Field, ValidationInfo, field_validator
from pydantic.config import ConfigDict

UNKNOWN_NAME = "未知物品"
UNKNOWN_PRICE = "價格未知"
NOT_PROVIDED = "未提供"
DEFAULT_SCORE = 50

_TEXT_FIELDS = (
    "name",
    "price",
    "price_note",
    "description",
    "origin",
    "material",
    "usage",
    "category",
    "brand",
    "size",
    "weight",
    "warranty",
    "availability",
    "durability",
    "maintenance",
)

# Online platforms offered when the model gives none (Taiwan market).
DEFAULT_ONLINE_PLATFORMS: List[str] = [
    "蝦皮購物",
    "PChome 24h",
    "momo購物網",
    "露天拍賣",
    "Yahoo拍賣",
]


class RelatedItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    icon: str = Field(default="🔗")
    name: str = Field(default=NOT_PROVIDED)

    @field_validator("icon", "name", mode="before")
    @classmethod
    def fill_missing(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return cls.model_fields[info.field_name].default
        return _scalar_to_str(value)


class OnlinePurchaseLink(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    platform: str = Field(default=NOT_PROVIDED)
    search_term: str = Field(default=UNKNOWN_NAME, alias="searchTerm")

    @field_validator("platform", "search_term", mode="before")
    @classmethod
    def stringify(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return cls.model_fields[info.field_name].default
        return _scalar_to_str(value)


class PurchaseLinks(BaseModel):
    model_config = ConfigDict(extra="ignore")

    online: List[OnlinePurchaseLink] = Field(default_factory=list)
    offline: List[str] = Field(default_factory=list)

    @field_validator("offline", mode="before")
    @classmethod
    def drop_empty_locations(cls, value: Any) -> Any:
        return _clean_str_list(value)


class AnalysisResult(BaseModel):
    """
    Price estimate plus metadata for one photographed item.

    Serialized with camelCase keys (`by_alias=True`), which is the wire
    format clients consume.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    name: str = Field(default=UNKNOWN_NAME)
    price: str = Field(default=UNKNOWN_PRICE)
    price_note: str = Field(default=NOT_PROVIDED, alias="priceNote")
    description: str = Field(default=NOT_PROVIDED)
    origin: str = Field(default=NOT_PROVIDED)
    material: str = Field(default=NOT_PROVIDED)
    usage: str = Field(default=NOT_PROVIDED)
    category: str = Field(default=NOT_PROVIDED)
    brand: str = Field(default=NOT_PROVIDED)
    size: str = Field(default=NOT_PROVIDED)
    weight: str = Field(default=NOT_PROVIDED)
    warranty: str = Field(default=NOT_PROVIDED)
    availability: str = Field(default=NOT_PROVIDED)
    popularity_score: int = Field(default=DEFAULT_SCORE, alias="popularityScore")
    eco_score: int = Field(default=DEFAULT_SCORE, alias="ecoScore")
    durability: str = Field(default=NOT_PROVIDED)
    maintenance: str = Field(default=NOT_PROVIDED)
    tips: List[str] = Field(default_factory=list)
    related_items: List[RelatedItem] = Field(
        default_factory=list, alias="relatedItems"
    )
    purchase_links: PurchaseLinks = Field(
        default_factory=lambda: PurchaseLinks(
            online=default_online_links(UNKNOWN_NAME)
        ),
        alias="purchaseLinks",
    )

    @field_validator(*_TEXT_FIELDS, mode="before")
    @classmethod
    def stringify_text(cls, value: Any) -> Any:
        return _scalar_to_str(value)

    @field_validator("tips", mode="before")
    @classmethod
    def drop_empty_tips(cls, value: Any) -> Any:
        return _clean_str_list(value)

    @field_validator("popularity_score", "eco_score", mode="before")
    @classmethod
    def clamp_score(cls, value: Any) -> int:
        # Models return "85", 85.0 or "85/100" as often as 85.
        if isinstance(value, str):
            value = value.split("/", 1)[0].strip()
        try:
            score = float(value)
        except (TypeError, ValueError):
            return DEFAULT_SCORE
        if math.isnan(score):
            return DEFAULT_SCORE
        # int() rejects +/-inf, so clamp first.
        return int(max(1.0, min(100.0, score)))

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


def default_online_links(search_term: str) -> List[OnlinePurchaseLink]:
    return [
        OnlinePurchaseLink(platform=platform, search_term=search_term)
        for platform in DEFAULT_ONLINE_PLATFORMS
    ]


def default_analysis_result() -> AnalysisResult:
    """The all-placeholder result used as the base for partial extraction."""
    return AnalysisResult()


def _scalar_to_str(value: Any) -> Any:
    # Numbers become text ("weight": 1.5); other types are left to validation.
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


def _clean_str_list(value: Any) -> Any:
    if not isinstance(value, list):
        return value
    return [_scalar_to_str(item) for item in value if item is not None and item != ""]
