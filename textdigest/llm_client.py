"""Provider-agnostic async LLM clients and provider resolution."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import random
import re
from dataclasses import dataclass

log = logging.getLogger(__name__)

_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class LLMServiceError(RuntimeError):
    """Raised when an LLM call fails after retries."""


class NoProvidersConfiguredError(LLMServiceError):
    """Raised when neither the primary nor the fallback provider is usable."""


@dataclass(frozen=True)
class LLMResponse:
    text: str
    input_tokens: int
    output_tokens: int
    model: str = ""

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class LLMClient:
    """Abstract base class for LLM providers."""

    provider: str = "base"
    model: str = ""
    timeout_s: float = 30.0
    max_retries: int = 0

    async def _sleep_backoff(self, attempt: int) -> None:
        from textdigest.config import LLM_BACKOFF_BASE_S, LLM_BACKOFF_MAX_S

        base = max(0.1, LLM_BACKOFF_BASE_S)
        max_wait = max(base, LLM_BACKOFF_MAX_S)
        wait = min(max_wait, base * (2**attempt))
        jitter = random.uniform(0.0, base)  # nosec B311
        await asyncio.sleep(wait + jitter)

    def _is_retryable_error(self, exc: Exception) -> tuple[bool, str]:
        name = exc.__class__.__name__
        status_code = getattr(exc, "status_code", None)
        body = str(exc).lower()
        retryable_status = {408, 409, 429, 500, 502, 503, 504}
        retryable_name_markers = (
            "RateLimitError",
            "APITimeoutError",
            "APIConnectionError",
            "InternalServerError",
        )

        if isinstance(exc, TimeoutError):
            return True, "timeout"
        if status_code in retryable_status:
            return True, f"status={status_code}"
        if any(marker in name for marker in retryable_name_markers):
            return True, name
        if "rate limit" in body or "too many requests" in body or "timeout" in body:
            return True, name
        return False, name

    async def _chat_completion_with_retry(self, client, kwargs: dict):
        attempts = max(1, self.max_retries + 1)
        for attempt in range(attempts):
            try:
                return await asyncio.wait_for(
                    client.chat.completions.create(**kwargs),
                    timeout=self.timeout_s,
                )
            except Exception as exc:
                retryable, reason = self._is_retryable_error(exc)
                is_last = attempt == attempts - 1
                if not retryable or is_last:
                    msg = (
                        f"{self.__class__.__name__} failed after "
                        f"{attempt + 1}/{attempts} attempts: {str(exc) or reason}"
                    )
                    raise LLMServiceError(msg) from exc
                log.warning(
                    "%s transient error (attempt %d/%d, reason=%s). Retrying...",
                    self.__class__.__name__,
                    attempt + 1,
                    attempts,
                    reason,
                )
                await self._sleep_backoff(attempt)

        raise LLMServiceError(f"{self.__class__.__name__} failed unexpectedly.")

    async def generate(
        self,
        prompt: str,
        *,
        system: str = "",
        temperature: float | None = None,
        max_tokens: int | None = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        raise NotImplementedError

    async def generate_json(
        self,
        prompt: str,
        *,
        system: str = "",
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> tuple[dict, LLMResponse]:
        response = await self.generate(
            prompt=prompt,
            system=system,
            temperature=temperature,
            max_tokens=max_tokens,
            json_mode=True,
        )
        # Handles JSON wrapped in markdown fences.
        text = _FENCE_PATTERN.sub("", response.text.strip()).strip()
        payload = json.loads(text)
        if not isinstance(payload, dict):
            raise ValueError(f"Expected a JSON object from {self.provider}, got {type(payload).__name__}.")
        return payload, response


class OpenAICompatibleClient(LLMClient):
    """Shared request logic for providers speaking the OpenAI chat API."""

    _client = None

    async def generate(
        self,
        prompt: str,
        *,
        system: str = "",
        temperature: float | None = None,
        max_tokens: int | None = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        from textdigest.config import SUMMARY_TEMPERATURE

        messages: list[dict[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        kwargs: dict = {"model": self.model, "messages": messages}
        if self.model.startswith("o"):
            if max_tokens is not None:
                kwargs["max_completion_tokens"] = max_tokens
        else:
            kwargs["temperature"] = temperature if temperature is not None else SUMMARY_TEMPERATURE
            if max_tokens is not None:
                kwargs["max_tokens"] = max_tokens
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        resp = await self._chat_completion_with_retry(self._client, kwargs)
        usage = resp.usage
        return LLMResponse(
            text=resp.choices[0].message.content or "",
            input_tokens=getattr(usage, "prompt_tokens", 0) if usage else 0,
            output_tokens=getattr(usage, "completion_tokens", 0) if usage else 0,
            model=self.model,
        )


class GeminiClient(OpenAICompatibleClient):
    provider = "gemini"

    def __init__(self, *, timeout_s: float = 30.0, max_retries: int = 0) -> None:
        from openai import AsyncOpenAI

        from textdigest.config import GEMINI_ENDPOINT, GEMINI_MODEL, GOOGLE_API_KEY

        if not GOOGLE_API_KEY:
            raise ValueError("GOOGLE_API_KEY is required for the gemini provider.")
        self.model = GEMINI_MODEL
        self.timeout_s = timeout_s
        self.max_retries = max_retries
        self._client = AsyncOpenAI(base_url=GEMINI_ENDPOINT, api_key=GOOGLE_API_KEY, max_retries=0)


class OpenAIClient(OpenAICompatibleClient):
    provider = "openai"

    def __init__(self, *, timeout_s: float = 30.0, max_retries: int = 0) -> None:
        from openai import AsyncOpenAI

        from textdigest.config import OPENAI_API_KEY, OPENAI_BASE_URL, OPENAI_MODEL

        if not OPENAI_API_KEY:
            raise ValueError("OPENAI_API_KEY is required for the openai provider.")
        self.model = OPENAI_MODEL
        self.timeout_s = timeout_s
        self.max_retries = max_retries
        self._client = AsyncOpenAI(
            api_key=OPENAI_API_KEY,
            base_url=OPENAI_BASE_URL or None,
            max_retries=0,
        )


class AzureOpenAIClient(OpenAICompatibleClient):
    provider = "azure_openai"

    def __init__(self, *, timeout_s: float = 30.0, max_retries: int = 0) -> None:
        from openai import AsyncAzureOpenAI

        from textdigest.config import AZURE_API_KEY, AZURE_API_VERSION, AZURE_ENDPOINT, AZURE_MODEL

        if not AZURE_API_KEY:
            raise ValueError("AZURE_API_KEY is required for the azure_openai provider.")
        if not AZURE_ENDPOINT:
            raise ValueError("AZURE_ENDPOINT is required for the azure_openai provider.")
        self.model = AZURE_MODEL
        self.timeout_s = timeout_s
        self.max_retries = max_retries
        self._client = AsyncAzureOpenAI(
            api_version=AZURE_API_VERSION,
            azure_endpoint=AZURE_ENDPOINT,
            api_key=AZURE_API_KEY,
            max_retries=0,
        )


class MockOfflineClient(LLMClient):
    """Deterministic offline provider that answers from the prompt text itself."""

    provider = "mock"
    model = "mock-offline"

    _FILE_BLOCK = re.compile(
        r"^## File (?P<idx>\d+): (?P<path>.+?)\n.*?"
        r"^<<<BEGIN FILE (?P=idx)>>>\n(?P<content>.*?)\n<<<END FILE (?P=idx)>>>$",
        re.DOTALL | re.MULTILINE,
    )
    _CITED_LINE = re.compile(r"^- (?P<fact>.+\[source:[^\]]+\])\s*$", re.MULTILINE)

    def _summaries_payload(self, prompt: str) -> dict:
        summaries = []
        for match in self._FILE_BLOCK.finditer(prompt):
            path = match.group("path").strip()
            lines = match.group("content").splitlines()
            numbered = [(idx, line.strip()) for idx, line in enumerate(lines, start=1) if line.strip()]
            facts = [
                f"{' '.join(text.split()[:40])} [source: {path}:{idx}]"
                for idx, text in numbered[:3]
            ]
            word_count = sum(len(text.split()) for _, text in numbered)
            summaries.append(
                {
                    "file": path,
                    "summary": f"Offline summary of {path} covering {len(numbered)} non-empty lines.",
                    "key_facts": facts,
                    "insights": [f"{path} contains {word_count} words of recent content [source: {path}]"],
                    "statistics": {"lines": len(numbered), "words": word_count},
                    "sources": [f"{path}:{idx}" for idx, _ in numbered[:3]],
                }
            )
        return {"summaries": summaries}

    def _conclusions_payload(self, prompt: str) -> dict:
        cited = [m.group("fact").strip() for m in self._CITED_LINE.finditer(prompt)]
        evidence = list(dict.fromkeys(cited))[:5]
        return {
            "conclusions": [
                f"The reviewed files share {len(evidence)} recurring cited statements.",
                "Recent activity is concentrated in a small number of documents.",
                "Source-linked facts are available for every summarized file.",
            ],
            "recommendations": [
                "Review the most common facts first; they recur across files.",
                "Follow up on unusual facts individually to confirm their relevance.",
                "Keep citing file and line for every new statement.",
            ],
            "evidence": evidence,
        }

    async def generate(
        self,
        prompt: str,
        *,
        system: str = "",
        temperature: float | None = None,
        max_tokens: int | None = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        del system, temperature, max_tokens, json_mode
        schema = prompt.rsplit("JSON_SCHEMA:", 1)[-1]
        if '"recommendations"' in schema:
            payload = self._conclusions_payload(prompt)
        else:
            payload = self._summaries_payload(prompt)
        return LLMResponse(text=json.dumps(payload), input_tokens=0, output_tokens=0, model=self.model)


@dataclass(frozen=True)
class ProviderSlot:
    """A provider resolved once per run: either configured with a client or unavailable."""

    name: str
    client: LLMClient | None = None
    reason: str = ""

    @property
    def available(self) -> bool:
        return self.client is not None

    @classmethod
    def configured(cls, client: LLMClient) -> ProviderSlot:
        return cls(name=client.provider, client=client)

    @classmethod
    def unavailable(cls, name: str, reason: str) -> ProviderSlot:
        return cls(name=name, client=None, reason=reason)


@dataclass(frozen=True)
class ProviderChain:
    primary: ProviderSlot
    fallback: ProviderSlot

    def available_slots(self) -> list[ProviderSlot]:
        return [slot for slot in (self.primary, self.fallback) if slot.available]


def build_client(name: str, *, timeout_s: float, max_retries: int) -> LLMClient:
    provider = name.strip().lower()
    if provider == "gemini":
        return GeminiClient(timeout_s=timeout_s, max_retries=max_retries)
    if provider == "openai":
        return OpenAIClient(timeout_s=timeout_s, max_retries=max_retries)
    if provider == "azure_openai":
        return AzureOpenAIClient(timeout_s=timeout_s, max_retries=max_retries)
    if provider == "mock":
        return MockOfflineClient()
    raise ValueError(f"Unknown provider={provider!r}")


def resolve_provider(name: str, *, timeout_s: float, max_retries: int) -> ProviderSlot:
    if not name.strip():
        return ProviderSlot.unavailable("none", "no provider configured")
    try:
        return ProviderSlot.configured(build_client(name, timeout_s=timeout_s, max_retries=max_retries))
    except ValueError as exc:
        log.info("Provider %s unavailable for this run: %s", name, exc)
        return ProviderSlot.unavailable(name, str(exc))


def get_provider_chain() -> ProviderChain:
    """Resolve the primary and fallback providers once, at startup."""
    from textdigest import config

    offline = os.getenv("OFFLINE_MODE", "1" if config.OFFLINE_MODE else "0").strip().lower() in {
        "1",
        "true",
        "yes",
    }
    if offline:
        return ProviderChain(
            primary=ProviderSlot.configured(MockOfflineClient()),
            fallback=ProviderSlot.unavailable("none", "offline mode"),
        )

    primary_name = os.getenv("PRIMARY_PROVIDER", config.PRIMARY_PROVIDER)
    fallback_name = os.getenv("FALLBACK_PROVIDER", config.FALLBACK_PROVIDER)
    primary = resolve_provider(
        primary_name,
        timeout_s=config.PRIMARY_TIMEOUT_S,
        max_retries=config.PRIMARY_MAX_RETRIES,
    )
    if fallback_name.strip().lower() == primary_name.strip().lower():
        fallback = ProviderSlot.unavailable(fallback_name, "same as primary")
    else:
        fallback = resolve_provider(
            fallback_name,
            timeout_s=config.FALLBACK_TIMEOUT_S,
            max_retries=config.FALLBACK_MAX_RETRIES,
        )
    return ProviderChain(primary=primary, fallback=fallback)
