"""Product draft and AI analysis models."""

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from launchos.core.exceptions import ValidationError

MAX_TAGS = 20
MAX_IMAGES = 10


class ProductAnalysisRequest(BaseModel):
    """Body of the product analysis function."""

    model_config = ConfigDict(populate_by_name=True)

    image_base64: str | None = Field(default=None, alias="imageBase64")

    @field_validator("image_base64", mode="before")
    @classmethod
    def only_text(cls, value: Any) -> str | None:
        return value if isinstance(value, str) else None


class ProductAnalysisResult(BaseModel):
    """Product fields suggested by the vision model.

    The model's output is only loosely trusted: every field is optional and
    values are coerced where a reasonable reading exists.
    """

    model_config = ConfigDict(extra="ignore")

    title: str | None = None
    description: str | None = None
    price: float | None = None
    tags: list[str] = Field(default_factory=list)

    @field_validator("title", "description", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> str | None:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @field_validator("price", mode="before")
    @classmethod
    def coerce_price(cls, value: Any) -> float | None:
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return float(value)
        match = re.search(r"\d+(?:\.\d+)?", str(value).replace(",", ""))
        return float(match.group(0)) if match else None

    @field_validator("tags", mode="before")
    @classmethod
    def coerce_tags(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        if not isinstance(value, (list, tuple)):
            return []
        return [str(tag).strip() for tag in value if str(tag).strip()]


class ProductDraft(BaseModel):
    """In-progress product form state."""

    model_config = ConfigDict(validate_assignment=True)

    title: str = Field(default="", max_length=200)
    description: str = Field(default="", max_length=5000)
    price: float | None = Field(default=None, ge=0)
    inventory: int = Field(default=0, ge=0)
    tags: list[str] = Field(default_factory=list, max_length=MAX_TAGS)
    image_urls: list[str] = Field(default_factory=list, max_length=MAX_IMAGES)

    def attach_image(self, image: str) -> None:
        """Record a captured image on the draft."""
        if image in self.image_urls:
            return
        if len(self.image_urls) >= MAX_IMAGES:
            raise ValidationError(
                f"A product can have at most {MAX_IMAGES} images",
                {"field": "image_urls"},
            )
        self.image_urls = [*self.image_urls, image]

    def merge_analysis(self, result: ProductAnalysisResult) -> None:
        """Overlay analysis fields; anything missing keeps the draft value."""
        if result.title:
            self.title = result.title[:200]
        if result.description:
            self.description = result.description[:5000]
        if result.price is not None and result.price >= 0:
            self.price = result.price
        if result.tags:
            merged = list(dict.fromkeys([*self.tags, *result.tags]))
            self.tags = merged[:MAX_TAGS]
