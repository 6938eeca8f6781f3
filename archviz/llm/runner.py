"""Adapter around an OpenAI-compatible chat completions endpoint."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Callable, Optional, Sequence
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from ..errors import UpstreamGenerationError
from ..logging import get_logger

_AUTO_API_KEY = object()


@dataclass
class LLMRequest:
    """Represents a single system/user exchange for one pipeline stage."""

    system: str
    prompt: str
    model: str
    reasoning_effort: Optional[str]
    max_tokens: Optional[int]
    temperature: Optional[float]
    base_url: str
    api_key: Optional[str]
    request_timeout: Optional[float]


class StageRunner:
    """Executes one model call per stage against the configured endpoint."""

    DEFAULT_MODEL = "o4-mini"
    DEFAULT_BASE_URL = "https://api.openai.com/v1"
    DEFAULT_MAX_TOKENS = 12000
    ENV_MODEL_KEYS = ("ARCHVIZ_LLM_MODEL", "OPENAI_MODEL")
    ENV_BASE_URL_KEYS = ("ARCHVIZ_LLM_BASE_URL", "OPENAI_BASE_URL")
    ENV_API_KEY_KEYS = ("ARCHVIZ_LLM_API_KEY", "OPENAI_API_KEY")

    def __init__(
        self,
        model: str | None = None,
        *,
        base_url: str | None = None,
        api_key: str | None | object = _AUTO_API_KEY,
        temperature: Optional[float] = None,
        request_timeout: Optional[float] = 120.0,
        runner: Callable[[LLMRequest], str] | None = None,
    ) -> None:
        self.model = model or self._first_env_value(self.ENV_MODEL_KEYS) or self.DEFAULT_MODEL
        self.base_url = self._normalize_base_url(
            base_url or self._first_env_value(self.ENV_BASE_URL_KEYS) or self.DEFAULT_BASE_URL
        )
        self.api_key = self._resolve_api_key(api_key)
        self.temperature = temperature
        self.request_timeout = request_timeout
        self._runner = runner or self._http_runner
        self.logger = get_logger("llm")

    def run(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        reasoning_effort: str | None = "low",
        max_tokens: int | None = DEFAULT_MAX_TOKENS,
    ) -> str:
        """Send one system/user exchange and return the raw response text."""
        request = LLMRequest(
            system=system_prompt,
            prompt=user_prompt,
            model=self.model,
            reasoning_effort=reasoning_effort,
            max_tokens=max_tokens,
            temperature=self.temperature,
            base_url=self.base_url,
            api_key=self.api_key,
            request_timeout=self.request_timeout,
        )
        self.logger.debug(
            "Calling %s (effort=%s, max_tokens=%s)", request.model, reasoning_effort, max_tokens
        )
        try:
            content = self._runner(request)
        except UpstreamGenerationError:
            raise
        except RuntimeError as exc:
            raise UpstreamGenerationError(str(exc)) from exc
        if not isinstance(content, str) or not content.strip():
            raise UpstreamGenerationError(f"No content returned from {request.model}")
        return content

    @staticmethod
    def _normalize_base_url(url: str) -> str:
        return url.rstrip("/")

    @staticmethod
    def _http_runner(request: LLMRequest) -> str:
        endpoint = f"{request.base_url}/chat/completions"
        payload: dict[str, object] = {
            "model": request.model,
            "messages": StageRunner._build_messages(request.system, request.prompt),
        }
        if request.max_tokens is not None:
            payload["max_completion_tokens"] = request.max_tokens
        if request.reasoning_effort is not None:
            payload["reasoning_effort"] = request.reasoning_effort
        if request.temperature is not None:
            payload["temperature"] = request.temperature

        data = json.dumps(payload).encode("utf-8")
        headers = {"Content-Type": "application/json"}
        if request.api_key:
            headers["Authorization"] = f"Bearer {request.api_key}"

        http_request = Request(endpoint, data=data, headers=headers, method="POST")
        timeout = request.request_timeout or 120.0

        try:
            with urlopen(http_request, timeout=timeout) as response:  # type: ignore[arg-type]
                raw = response.read()
        except HTTPError as exc:  # pragma: no cover - depends on runtime
            detail = exc.read().decode("utf-8", errors="ignore") if hasattr(exc, "read") else ""
            message = detail.strip() or exc.reason
            raise UpstreamGenerationError(
                f"Model request failed with status {exc.code}: {message}"
            ) from exc
        except URLError as exc:  # pragma: no cover - depends on runtime
            raise UpstreamGenerationError(f"Model request failed: {exc.reason}") from exc
        except OSError as exc:
            # Timeouts and resets while reading the body surface as plain OSError.
            raise UpstreamGenerationError(f"Model request failed: {exc}") from exc

        try:
            response_payload = json.loads(raw.decode("utf-8"))
        except json.JSONDecodeError as exc:
            raise UpstreamGenerationError("Model endpoint returned invalid JSON") from exc

        content = StageRunner._extract_content(response_payload)
        if not content:
            raise UpstreamGenerationError(f"No content returned from {request.model}")
        return content

    @staticmethod
    def _build_messages(system: str, prompt: str) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": system},
            {"role": "user", "content": prompt},
        ]

    @staticmethod
    def _extract_content(payload: object) -> str:
        if not isinstance(payload, dict):
            return ""
        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices:
            return ""
        first = choices[0]
        if not isinstance(first, dict):
            return ""
        message = first.get("message")
        if isinstance(message, dict):
            content = message.get("content")
            if isinstance(content, str):
                return content
        text = first.get("text")
        if isinstance(text, str):
            return text
        return ""

    def _resolve_api_key(self, api_key: str | None | object) -> str | None:
        if api_key is _AUTO_API_KEY:
            return self._first_env_value(self.ENV_API_KEY_KEYS)
        return api_key  # type: ignore[return-value]

    @staticmethod
    def _first_env_value(keys: Sequence[str]) -> str | None:
        for key in keys:
            value = os.getenv(key)
            if value:
                return value
        return None


__all__ = ["LLMRequest", "StageRunner"]
