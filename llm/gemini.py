"""Gemini REST client shared by relevance scoring and newsletter generation."""

import json
import logging
import re
import threading
import time
from typing import Any

import requests

from config import (
    AI_MIN_INTERVAL,
    AI_TIMEOUT_SECONDS,
    GEMINI_API_KEY,
    GEMINI_BASE_URL,
    GEMINI_MODEL,
)

logger = logging.getLogger(__name__)

# Long prompts slow the free tier down considerably
_MAX_PROMPT_CHARS = 12000


class GeminiError(Exception):
    """Gemini call failed: transport, HTTP status, timeout or empty output."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def rate_limited(self) -> bool:
        return self.status_code == 429


def extract_json(text: str) -> Any:
    """Extract a JSON value from text that may contain prose or markdown fences."""
    text = text.strip()
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    m = re.search(r"```(?:json)?\s*\n?(.*?)```", text, re.DOTALL)
    if m:
        try:
            return json.loads(m.group(1).strip())
        except json.JSONDecodeError:
            pass

    for pattern in (r"\{[\s\S]*\}", r"\[[\s\S]*\]"):
        m = re.search(pattern, text)
        if m:
            try:
                return json.loads(m.group(0))
            except json.JSONDecodeError:
                pass

    raise json.JSONDecodeError("No JSON found in response", text, 0)


class GeminiClient:
    """Thin, rate-limited wrapper around generateContent."""

    # Shared across instances: the quota is per API key, not per client
    _lock = threading.Lock()
    _last_call = 0.0

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        min_interval: float | None = None,
        http: requests.Session | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else GEMINI_API_KEY
        self.model = model or GEMINI_MODEL
        self.base_url = (base_url or GEMINI_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else AI_TIMEOUT_SECONDS
        self.min_interval = min_interval if min_interval is not None else AI_MIN_INTERVAL
        self._http = http or requests.Session()
        self._calls = 0

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    @property
    def calls(self) -> int:
        return self._calls

    def _rate_limit(self) -> None:
        with GeminiClient._lock:
            elapsed = time.monotonic() - GeminiClient._last_call
            if elapsed < self.min_interval:
                time.sleep(self.min_interval - elapsed)
            GeminiClient._last_call = time.monotonic()

    def generate(self, prompt: str, temperature: float = 0.2, max_output_tokens: int = 1024) -> str:
        """Return the text of the first candidate. Raises GeminiError."""
        if not self.api_key:
            raise GeminiError("Missing Gemini API key")

        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt[:_MAX_PROMPT_CHARS]}]}],
            "generationConfig": {
                "temperature": temperature,
                "maxOutputTokens": max_output_tokens,
            },
        }
        url = f"{self.base_url}/v1beta/models/{self.model}:generateContent"

        self._rate_limit()
        try:
            resp = self._http.post(
                url,
                headers={"x-goog-api-key": self.api_key},
                json=payload,
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            raise GeminiError(f"Gemini request timed out after {self.timeout:.0f}s") from e
        except requests.RequestException as e:
            raise GeminiError(f"Gemini request failed: {e}") from e
        finally:
            self._calls += 1

        if resp.status_code >= 400:
            raise GeminiError(
                f"Gemini API error {resp.status_code}: {resp.text[:200]}",
                status_code=resp.status_code,
            )

        try:
            data = resp.json()
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise GeminiError(f"Unexpected Gemini response shape: {e}") from e
        if not text or not text.strip():
            raise GeminiError("Gemini returned empty text")
        return text.strip()

    def generate_json(self, prompt: str, temperature: float = 0.1, max_output_tokens: int = 512) -> Any:
        """generate() and parse the output as JSON. Raises GeminiError."""
        text = self.generate(prompt, temperature=temperature, max_output_tokens=max_output_tokens)
        try:
            return extract_json(text)
        except json.JSONDecodeError as e:
            raise GeminiError(f"Failed to parse Gemini JSON: {e}") from e
