"""
Product image analysis via an OpenAI-compatible multimodal chat API.

The model is asked for a strict JSON object with title, description, price
and tags. Replies are only loosely trusted: the first balanced JSON object
in the text is used and commentary around it is ignored.

Configuration:
  AI_GATEWAY_URL: chat completions endpoint
  AI_GATEWAY_API_KEY: server-side only
  AI_MODEL: defaults to google/gemini-2.5-flash

Failure mapping:
  - 429 -> RateLimited (the caller retries later, never automatically)
  - 402 -> QuotaExceeded
  - other non-2xx or transport errors -> UpstreamError
  - unusable reply -> AnalysisParseError
"""

from __future__ import annotations

import json
from functools import lru_cache
from itertools import islice
from typing import Any, Iterator

import httpx

from launchos.config import settings
from launchos.core.exceptions import (
    AnalysisParseError,
    InvalidArgument,
    QuotaExceeded,
    RateLimited,
    UpstreamError,
)
from launchos.models.product import ProductAnalysisResult, ProductDraft
from launchos.utils.logging import get_logger

logger = get_logger("product_analysis")

SYSTEM_PROMPT = (
    "You are a product analysis expert. Analyze product images and return ONLY "
    "a JSON object with: title (short product name), description (detailed "
    "description), price (estimated price as number), tags (array of relevant "
    "tags). No other text."
)

USER_PROMPT = (
    "Analyze this product image and provide: title, description, "
    "estimated price in USD, and relevant tags."
)

# Embedded objects tried per reply before giving up
MAX_JSON_CANDIDATES = 20


def iter_json_objects(text: str) -> Iterator[str]:
    """Yield each balanced ``{...}`` substring of ``text``, left to right.

    Braces inside JSON string literals are ignored.
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        end = -1
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
            elif ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    end = i
                    break
        if end == -1:
            return
        yield text[start : end + 1]
        start = text.find("{", start + 1)


def parse_product_json(text: str) -> dict[str, Any]:
    """Return the first JSON object embedded in a model reply."""
    for candidate in islice(iter_json_objects(text), MAX_JSON_CANDIDATES):
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed
    raise AnalysisParseError(text)


class ProductAnalyzer:
    """Client for the vision model behind product analysis."""

    def __init__(
        self,
        api_key: str | None = None,
        url: str | None = None,
        model: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ):
        self.api_key = settings.ai_gateway_api_key if api_key is None else api_key
        self.url = url or settings.ai_gateway_url
        self.model = model or settings.ai_model
        self.timeout = settings.ai_timeout_seconds if timeout is None else timeout
        self._client = client

    def build_payload(self, image: str) -> dict[str, Any]:
        """Single-turn request carrying the instruction and the image."""
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": USER_PROMPT},
                        {"type": "image_url", "image_url": {"url": image}},
                    ],
                },
            ],
        }

    async def analyze(self, image: str) -> ProductAnalysisResult:
        """
        Ask the model to describe the product in ``image``.

        Args:
            image: Base64 data URL or plain URL of the product photo.

        Raises:
            InvalidArgument: the image is empty (no request is made)
            RateLimited, QuotaExceeded, UpstreamError: the service failed
            AnalysisParseError: the reply holds no usable JSON object
        """
        if not image or not image.strip():
            raise InvalidArgument("No image data provided")
        if not self.api_key:
            raise UpstreamError("AI_GATEWAY_API_KEY is not configured")

        logger.info("product_analysis.started", model=self.model, image_chars=len(image))

        response = await self._post(self.build_payload(image))

        if response.status_code == 429:
            logger.warning("product_analysis.rate_limited")
            raise RateLimited(response.text)
        if response.status_code == 402:
            logger.warning("product_analysis.quota_exceeded")
            raise QuotaExceeded(response.text)
        if not response.is_success:
            logger.error(
                "product_analysis.upstream_error",
                status_code=response.status_code,
                body=response.text[:500],
            )
            raise UpstreamError(
                f"AI API error: {response.text}",
                upstream_status=response.status_code,
                upstream_body=response.text,
            )

        content = self._reply_text(response)
        logger.debug("product_analysis.reply", content=content[:500])

        try:
            product = parse_product_json(content)
        except AnalysisParseError:
            logger.error("product_analysis.parse_failed", content=content[:500])
            raise

        return ProductAnalysisResult.model_validate(product)

    async def _post(self, payload: dict[str, Any]) -> httpx.Response:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            if self._client is not None:
                return await self._client.post(self.url, json=payload, headers=headers)
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                return await client.post(self.url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error("product_analysis.transport_error", error=str(e))
            raise UpstreamError(f"AI API request failed: {e}") from e

    @staticmethod
    def _reply_text(response: httpx.Response) -> str:
        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise AnalysisParseError(response.text) from exc
        if isinstance(content, list):
            # Some gateways return content parts instead of a plain string
            content = "".join(
                part.get("text", "") for part in content if isinstance(part, dict)
            )
        if not isinstance(content, str):
            raise AnalysisParseError(response.text)
        return content


async def analyze_into_draft(
    analyzer: ProductAnalyzer, draft: ProductDraft, image: str
) -> ProductDraft:
    """Attach ``image`` to ``draft`` and fill it from the analysis.

    The image is recorded before the model is called, so when the analysis
    fails the error propagates with the draft already holding the image and
    otherwise unchanged.
    """
    if not image or not image.strip():
        raise InvalidArgument("No image data provided")
    draft.attach_image(image)
    result = await analyzer.analyze(image)
    draft.merge_analysis(result)
    return draft


@lru_cache
def get_product_analyzer() -> ProductAnalyzer:
    """Get the product analyzer singleton."""
    return ProductAnalyzer()
