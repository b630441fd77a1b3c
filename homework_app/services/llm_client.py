"""Client for the Ollama-compatible text generation backend.

The backend is treated as unreliable: every call has a bounded timeout and
any failure (disabled, timeout, transport error, non-2xx status, empty or
malformed body) is logged and reported to the caller as ``None``. Callers
always have a non-generative fallback beneath each call.
"""

import json
import logging
import re
from typing import Any, Dict, Optional

import httpx

from homework_app.config import LLMSettings

logger = logging.getLogger(__name__)

AVAILABILITY_TIMEOUT_SECONDS = 2.0

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


class LLMClient:
    """Single text-completion call against ``{base_url}/api/generate``."""

    def __init__(
        self,
        settings: Optional[LLMSettings] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.settings = settings or LLMSettings()
        self._http = httpx.Client(base_url=self.settings.base_url, transport=transport)

    @property
    def enabled(self) -> bool:
        return self.settings.enabled

    def generate(
        self,
        prompt: str,
        max_tokens: int = 200,
        timeout: Optional[float] = None,
    ) -> Optional[str]:
        """Return the completion text for ``prompt``, or None on any failure.

        Args:
            prompt: Full prompt text
            max_tokens: Upper bound on generated tokens (``num_predict``)
            timeout: Seconds before the request is abandoned; defaults to
                the configured ``timeout_seconds``
        """
        if not self.settings.enabled:
            return None

        payload = {
            "model": self.settings.model,
            "prompt": prompt,
            "options": {
                "temperature": self.settings.temperature,
                "top_p": self.settings.top_p,
                "num_predict": max_tokens,
            },
            "stream": False,
        }
        request_timeout = timeout if timeout is not None else self.settings.timeout_seconds

        try:
            response = self._http.post("/api/generate", json=payload, timeout=request_timeout)
        except httpx.TimeoutException:
            logger.warning("LLM request timed out after %.1fs", request_timeout)
            return None
        except httpx.HTTPError as exc:
            logger.warning("LLM request failed: %s", exc)
            return None

        if not response.is_success:
            logger.warning("LLM API error: %s %s", response.status_code, response.reason_phrase)
            return None

        try:
            data = response.json()
        except ValueError:
            logger.warning("LLM API returned a non-JSON body")
            return None

        text = data.get("response") if isinstance(data, dict) else None
        if not isinstance(text, str) or not text.strip():
            return None
        return text.strip()

    def is_available(self) -> bool:
        """Quick health probe against ``/api/tags``."""
        if not self.settings.enabled:
            return False
        try:
            response = self._http.get("/api/tags", timeout=AVAILABILITY_TIMEOUT_SECONDS)
        except httpx.HTTPError:
            return False
        return response.is_success

    def close(self) -> None:
        self._http.close()


def parse_json_response(text: str) -> Optional[Dict[str, Any]]:
    """Extract the first ``{...}`` span of a completion and decode it."""
    match = _JSON_OBJECT_RE.search(text)
    if not match:
        return None
    try:
        parsed = json.loads(match.group(0))
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None
