from __future__ import annotations

import json
import re
import ssl
import urllib.error
import urllib.request
from pathlib import Path
from typing import Any

import certifi

from clip_forge.domain.errors import ExternalServiceError

COHERE_CHAT_URL = "https://api.cohere.com/v2/chat"

_LEADING_HASHES_RE = re.compile(r"^#+\s*")
_WRAPPING_QUOTES_RE = re.compile(r"^[\"'«“]+|[\"'»”]+$")


class CohereTitleGenerator:
    def __init__(
        self,
        api_key: str,
        model: str,
        prompt_path: Path,
        max_chars: int = 60,
        temperature: float = 0.8,
        timeout_sec: int = 30,
    ) -> None:
        self.api_key = api_key.strip()
        self.model = model
        self.prompt_path = prompt_path
        self.max_chars = max_chars
        self.temperature = temperature
        self.timeout_sec = timeout_sec
        self.ssl_context = ssl.create_default_context(cafile=certifi.where())

    def generate(self, fragment: str, original_title: str) -> str:
        if not self.api_key:
            raise ExternalServiceError("COHERE_API_KEY is empty")

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": self.prompt_path.read_text(encoding="utf-8")},
                {"role": "user", "content": self._build_user_prompt(fragment, original_title)},
            ],
            "temperature": self.temperature,
        }
        response_json = self._request_json(payload)
        title = self.clean_title(self._extract_text(response_json))
        if not title:
            raise ExternalServiceError("Cohere response contained no title text")
        return title

    def clean_title(self, text: str) -> str:
        lines = [line.strip() for line in (text or "").splitlines() if line.strip()]
        if not lines:
            return ""
        title = _LEADING_HASHES_RE.sub("", lines[0])
        title = _WRAPPING_QUOTES_RE.sub("", title).strip()
        title = title.rstrip(".").strip()
        if len(title) > self.max_chars:
            title = title[: self.max_chars].rstrip()
        return title

    def _build_user_prompt(self, fragment: str, original_title: str) -> str:
        return (
            f'Título original del episodio: "{original_title}"\n'
            f'Transcripción del clip: "{fragment}"\n\n'
            "Genera un título de alto impacto para este clip:"
        )

    def _request_json(self, payload: dict[str, Any]) -> dict[str, Any]:
        req = urllib.request.Request(
            COHERE_CHAT_URL,
            data=json.dumps(payload).encode("utf-8"),
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            method="POST",
        )
        try:
            with urllib.request.urlopen(req, timeout=self.timeout_sec, context=self.ssl_context) as res:
                body = res.read().decode("utf-8")
        except urllib.error.HTTPError as exc:  # pragma: no cover
            detail = ""
            try:
                error_body = exc.read().decode("utf-8")
                detail = json.loads(error_body).get("message") or error_body
            except (ValueError, AttributeError):
                detail = str(exc)
            raise ExternalServiceError(f"Cohere HTTP {exc.code}: {detail}") from exc
        except (urllib.error.URLError, TimeoutError) as exc:  # pragma: no cover
            raise ExternalServiceError(f"Cohere request failed: {exc}") from exc

        try:
            return json.loads(body)
        except json.JSONDecodeError as exc:
            raise ExternalServiceError("Cohere response was not valid JSON") from exc

    def _extract_text(self, response_json: dict[str, Any]) -> str:
        if not isinstance(response_json, dict):
            return ""
        message = response_json.get("message") or {}
        for part in message.get("content") or []:
            if isinstance(part, dict):
                text = part.get("text")
                if isinstance(text, str) and text.strip():
                    return text.strip()
        return ""
