"""
HTTP clients for the public file host and the lyrics/mood analysis API.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any

import requests

from .config import http_timeout
from .errors import AnalysisFailed, UploadFailed


logger = logging.getLogger(__name__)

CATBOX_API_URL = "https://catbox.moe/user/api.php"
SONOTELLER_HOST = "sonoteller-ai1.p.rapidapi.com"
SONOTELLER_URL = f"https://{SONOTELLER_HOST}/lyrics_ddex"


class CatboxHost:
    """Publish files to catbox.moe and return their direct URL."""

    def __init__(
        self,
        *,
        session: requests.Session | None = None,
        timeout: float | None = None,
        api_url: str = CATBOX_API_URL,
    ) -> None:
        self._session = session or requests.Session()
        self.timeout = timeout or http_timeout()
        self.api_url = api_url

    def host(self, filename: str, data: bytes) -> str:
        logger.info("Uploading %s (%d bytes) to %s", filename, len(data), self.api_url)
        try:
            resp = self._session.post(
                self.api_url,
                data={"reqtype": "fileupload"},
                files={"fileToUpload": (filename, data)},
                timeout=self.timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise UploadFailed(f"File host upload failed: {exc}") from exc

        url = resp.text.strip()
        if not url.startswith(("http://", "https://")):
            raise UploadFailed(f"File host returned an unexpected response: {url[:200]}")
        logger.info("File hosted at %s", url)
        return url


class SonotellerClient:
    """Request lyrics, language, mood and theme analysis for a public audio URL."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        session: requests.Session | None = None,
        timeout: float | None = None,
        api_url: str = SONOTELLER_URL,
    ) -> None:
        resolved_key = api_key or os.getenv("RAPID_API_KEY")
        if resolved_key is None:
            raise ValueError(
                "RAPID_API_KEY not found. "
                "Provide api_key or set the environment variable."
            )
        self._api_key = resolved_key
        self._session = session or requests.Session()
        self.timeout = timeout or http_timeout()
        self.api_url = api_url

    def analyze(self, song_url: str) -> dict[str, Any]:
        logger.info("Requesting analysis for %s", song_url)
        try:
            resp = self._session.post(
                self.api_url,
                data={"file": song_url},
                headers={
                    "x-rapidapi-key": self._api_key,
                    "x-rapidapi-host": SONOTELLER_HOST,
                    "Content-Type": "application/x-www-form-urlencoded",
                },
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise AnalysisFailed(f"Analysis request failed: {exc}") from exc

        if not resp.ok:
            raise AnalysisFailed(
                f"Analysis request failed: {resp.status_code} - {resp.text[:500]}"
            )
        try:
            result = json.loads(resp.text)
        except json.JSONDecodeError as exc:
            raise AnalysisFailed(f"Invalid JSON response: {resp.text[:500]}") from exc
        if not isinstance(result, dict):
            raise AnalysisFailed(f"Unexpected analysis response: {resp.text[:500]}")
        return result
