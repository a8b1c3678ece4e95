"""Optional third-party photo analysis behind a narrow interface.

The scoring engine only knows ``PhotoAnalyzer.analyze_photo(attachment)``,
which returns a FaceQualitySignal or raises UpstreamDegradation. Transport,
authentication and payload details of the provider stay in this module.

Usage:
    analyzer = build_photo_analyzer()
    if analyzer:
        signal = await analyzer.analyze_photo(attachment)
"""

from dataclasses import dataclass
from typing import Any, Optional, Protocol, runtime_checkable

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from tip_triage.config.logging import get_logger
from tip_triage.config.settings import settings
from tip_triage.data_management.schemas import Attachment
from tip_triage.errors import UpstreamDegradation


@dataclass(frozen=True)
class FaceQualitySignal:
    """Provider verdict on a single photo.

    Attributes:
        face_count: Faces found by the provider
        quality: Overall face quality 0.0-1.0 (sharpness, pose, occlusion)
        matches_subject: Provider face match against the case subject, if computed
        provider: Provider identifier for audit
    """

    face_count: int
    quality: float
    matches_subject: Optional[bool] = None
    provider: str = "unknown"


@runtime_checkable
class PhotoAnalyzer(Protocol):
    async def analyze_photo(self, attachment: Attachment) -> FaceQualitySignal:
        ...


class HttpPhotoAnalyzer:
    """
    Photo analysis client for an HTTP vision provider.

    Transport errors are retried with exponential backoff via tenacity; any
    remaining failure (HTTP status, malformed payload, missing file URL) is
    raised as UpstreamDegradation for the caller to recover from.
    """

    PROVIDER = "http_vision"
    ANALYZE_PATH = "/v1/faces/analyze"

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = settings.vision_timeout_seconds,
        max_retries: int = settings.vision_max_retries,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.max_retries = max_retries
        self._client = client
        self.logger = get_logger("vision.http")

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client."""
        if self._client is None or self._client.is_closed:
            headers = {"User-Agent": "tip-triage/0.1"}
            if self.api_key:
                headers["Authorization"] = f"Bearer {self.api_key}"
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                headers=headers,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def analyze_photo(self, attachment: Attachment) -> FaceQualitySignal:
        if not attachment.file_url:
            raise UpstreamDegradation(self.PROVIDER, f"attachment {attachment.id} has no file_url")

        client = await self._get_client()
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_retries + 1),
                wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
                retry=retry_if_exception_type(httpx.TransportError),
                reraise=True,
            ):
                with attempt:
                    response = await client.post(
                        self.ANALYZE_PATH,
                        json={"attachment_id": attachment.id, "image_url": attachment.file_url},
                    )
                    response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise UpstreamDegradation(
                self.PROVIDER, f"HTTP error {e.response.status_code} for {attachment.id}"
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamDegradation(self.PROVIDER, f"Request failed for {attachment.id}: {e}") from e

        return self._parse(attachment.id, response)

    def _parse(self, attachment_id: str, response: httpx.Response) -> FaceQualitySignal:
        try:
            payload: dict[str, Any] = response.json()
            quality = float(payload["quality"])
            face_count = int(payload["face_count"])
        except (ValueError, KeyError, TypeError) as e:
            raise UpstreamDegradation(
                self.PROVIDER, f"Malformed analysis payload for {attachment_id}"
            ) from e

        if not 0.0 <= quality <= 1.0 or face_count < 0:
            raise UpstreamDegradation(self.PROVIDER, f"Out-of-range analysis for {attachment_id}")

        matches = payload.get("matches_subject")
        self.logger.debug(
            f"Photo analyzed: {attachment_id}",
            face_count=face_count,
            quality=quality,
        )
        return FaceQualitySignal(
            face_count=face_count,
            quality=quality,
            matches_subject=bool(matches) if matches is not None else None,
            provider=self.PROVIDER,
        )


def build_photo_analyzer() -> Optional[HttpPhotoAnalyzer]:
    """Analyzer from settings, or None when no provider is configured."""
    if not settings.vision_api_url:
        return None
    return HttpPhotoAnalyzer(base_url=settings.vision_api_url, api_key=settings.vision_api_key)


__all__ = [
    "FaceQualitySignal",
    "PhotoAnalyzer",
    "HttpPhotoAnalyzer",
    "build_photo_analyzer",
]
