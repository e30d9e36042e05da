from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

import requests

from sitegen.errors import NoProviderError, ProviderError
from sitegen.llm_parsing import html_from_text
from sitegen.llm_prompts import Prompt

log = logging.getLogger(__name__)

try:
    LLM_TIMEOUT_SECS = float(os.getenv("LLM_TIMEOUT_SECS", "30") or 30)
except ValueError:
    LLM_TIMEOUT_SECS = 30.0


class ProviderKind(str, Enum):
    """LLM backends the registry knows how to build."""

    OPENAI = "openai"
    DEEPSEEK = "deepseek"


_SHORT_NAMES = {
    ProviderKind.OPENAI: "OpenAI",
    ProviderKind.DEEPSEEK: "DeepSeek",
}

_DISPLAY_NAMES = {
    ProviderKind.OPENAI: "OpenAI GPT-3.5-turbo",
    ProviderKind.DEEPSEEK: "DeepSeek",
}

# kind -> (credential variable, base url variable, default base url, model variable, default model)
_ENV_LAYOUT = {
    ProviderKind.OPENAI: ("OPENAI_API_KEY", "OPENAI_BASE_URL", "https://api.openai.com/v1", "OPENAI_MODEL", "gpt-3.5-turbo"),
    ProviderKind.DEEPSEEK: ("DEEPSEEK_API_KEY", "DEEPSEEK_BASE_URL", "https://api.deepseek.com/v1", "DEEPSEEK_MODEL", "deepseek-chat"),
}


def credential_variable(kind: ProviderKind) -> str:
    return _ENV_LAYOUT[ProviderKind(kind)][0]


def short_name(kind: ProviderKind) -> str:
    return _SHORT_NAMES[ProviderKind(kind)]


@dataclass(frozen=True)
class ProviderConfig:
    kind: ProviderKind
    api_key: str
    base_url: str
    model: str

    @property
    def name(self) -> str:
        return self.kind.value

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self.kind]

    @property
    def endpoint(self) -> str:
        return self.base_url.rstrip("/") + "/chat/completions"

    @classmethod
    def from_env(cls, kind: ProviderKind, environ: Optional[Mapping[str, str]] = None) -> Optional["ProviderConfig"]:
        """Build the config for ``kind`` or return None when its credential is unset."""
        env = os.environ if environ is None else environ
        key_var, url_var, default_url, model_var, default_model = _ENV_LAYOUT[kind]
        api_key = (env.get(key_var) or "").strip()
        if not api_key:
            return None
        return cls(
            kind=kind,
            api_key=api_key,
            base_url=(env.get(url_var) or "").strip() or default_url,
            model=(env.get(model_var) or "").strip() or default_model,
        )


class Provider(ABC):
    """A configured LLM backend that turns a prompt pair into HTML text."""

    def __init__(self, config: ProviderConfig) -> None:
        self.config = config

    @property
    def kind(self) -> ProviderKind:
        return self.config.kind

    @abstractmethod
    def invoke(self, system_prompt: str, user_prompt: str) -> str:
        """Return the generated HTML or raise ProviderError."""


class ChatCompletionsProvider(Provider):
    """Provider speaking the OpenAI chat completions wire format."""

    def __init__(self, config: ProviderConfig, timeout: Optional[float] = None) -> None:
        super().__init__(config)
        self.timeout = LLM_TIMEOUT_SECS if timeout is None else timeout

    def _request_body(self, prompt: Prompt) -> Dict[str, Any]:
        return {
            "model": self.config.model,
            "messages": prompt.messages(),
            "max_tokens": prompt.max_tokens,
            "temperature": prompt.temperature,
        }

    def invoke(self, system_prompt: str, user_prompt: str) -> str:
        name = self.config.name
        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }
        body = self._request_body(Prompt(system=system_prompt, user=user_prompt))
        log.info("Using %s (%s) for website generation...", self.config.display_name, self.config.model)

        try:
            resp = requests.post(self.config.endpoint, headers=headers, json=body, timeout=self.timeout)
        except Exception as e:
            raise ProviderError(name, f"request error: {e!r}") from e

        if resp.status_code != 200:
            try:
                msg = resp.text[:400]
            except Exception:
                msg = ""
            detail = f"HTTP {resp.status_code}: {msg}" if msg else f"HTTP {resp.status_code}"
            raise ProviderError(name, detail)

        try:
            data = resp.json()
        except Exception as e:
            raise ProviderError(name, "non-JSON HTTP body") from e

        text: Optional[str]
        try:
            text = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            text = None
        if not text or not isinstance(text, str):
            raise ProviderError(name, "empty response text")

        try:
            return html_from_text(text)
        except ValueError as e:
            raise ProviderError(name, str(e)) from e


class OpenAIProvider(ChatCompletionsProvider):
    """OpenAI hosted models (gpt-3.5-turbo by default)."""


class DeepSeekProvider(ChatCompletionsProvider):
    """DeepSeek, reached through its OpenAI-compatible endpoint."""


_PROVIDER_CLASSES = {
    ProviderKind.OPENAI: OpenAIProvider,
    ProviderKind.DEEPSEEK: DeepSeekProvider,
}


class ProviderRegistry:
    """Zero, one or two configured providers keyed by kind.

    Absent providers are simply not present; there are no placeholder
    entries. The registry is built once at startup and never mutated.
    """

    def __init__(self, providers: Iterable[Provider] = ()) -> None:
        self._providers: Dict[ProviderKind, Provider] = {}
        for p in providers:
            self._providers[p.kind] = p

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ProviderRegistry":
        providers: List[Provider] = []
        for kind in ProviderKind:
            config = ProviderConfig.from_env(kind, environ)
            if config is not None:
                providers.append(_PROVIDER_CLASSES[kind](config))
        return cls(providers)

    def has_provider(self, kind: ProviderKind) -> bool:
        return ProviderKind(kind) in self._providers

    def get(self, kind: ProviderKind) -> Provider:
        try:
            return self._providers[ProviderKind(kind)]
        except KeyError:
            raise NoProviderError(ProviderKind(kind).value) from None

    def kinds(self) -> List[ProviderKind]:
        return [k for k in ProviderKind if k in self._providers]

    def invoke(self, kind: ProviderKind, system_prompt: str, user_prompt: str) -> str:
        return self.get(kind).invoke(system_prompt, user_prompt)

    def status(self) -> Dict[str, bool]:
        return {k.value: k in self._providers for k in ProviderKind}

    def __len__(self) -> int:
        return len(self._providers)
