from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from sitegen.errors import NoProviderError, SiteGenError
from sitegen.llm_prompts import build_prompt
from sitegen.providers import ProviderKind, ProviderRegistry
from sitegen.render import select_template

log = logging.getLogger(__name__)

TEMPLATE_METHOD = "template"
AUTO_SUFFIX = " (auto-selected)"

# Fixed auto-selection preference; independent of the display-only current provider
AUTO_ORDER: Tuple[ProviderKind, ...] = (ProviderKind.DEEPSEEK, ProviderKind.OPENAI)


class ProviderChoice(str, Enum):
    AUTO = "auto"
    OPENAI = "openai"
    DEEPSEEK = "deepseek"


@dataclass(frozen=True)
class GenerationResult:
    html: str
    method: str
    requested: ProviderChoice
    provider: Optional[ProviderKind] = None

    @property
    def usage_category(self) -> str:
        """Bucket for provider usage counters: openai, deepseek or template."""
        return self.provider.value if self.provider is not None else TEMPLATE_METHOD

    @property
    def used_template(self) -> bool:
        return self.provider is None


def resolve_provider(choice: ProviderChoice, registry: ProviderRegistry) -> ProviderKind:
    """Map the caller's choice to a concrete provider kind.

    ``auto`` picks the first configured kind in AUTO_ORDER and raises
    NoProviderError when nothing is configured. Explicit choices resolve to
    their own kind whether or not it is configured.
    """
    choice = ProviderChoice(choice)
    if choice is ProviderChoice.AUTO:
        for kind in AUTO_ORDER:
            if registry.has_provider(kind):
                return kind
        raise NoProviderError()
    return ProviderKind(choice.value)


def _method_label(registry: ProviderRegistry, kind: ProviderKind, choice: ProviderChoice) -> str:
    label = registry.get(kind).config.display_name
    if choice is ProviderChoice.AUTO:
        label += AUTO_SUFFIX
    return label


def generate_website(
    description: str,
    choice: ProviderChoice = ProviderChoice.AUTO,
    registry: Optional[ProviderRegistry] = None,
) -> GenerationResult:
    """Produce HTML for ``description``, falling back to a static template.

    Any failure on the provider path (nothing configured, unconfigured
    explicit choice, upstream error, malformed completion) selects a template
    instead; the returned ``method`` names the path that produced the HTML.
    The caller is expected to have rejected empty descriptions already.
    """
    choice = ProviderChoice(choice)
    registry = registry if registry is not None else ProviderRegistry()
    log.info("Generating website for: %r with provider: %s", description[:80], choice.value)

    try:
        kind = resolve_provider(choice, registry)
        prompt = build_prompt(description)
        html = registry.invoke(kind, prompt.system, prompt.user)
    except NoProviderError as e:
        log.info("LLM not configured (%s), using template fallback...", e)
    except SiteGenError as e:
        log.warning("LLM generation failed, falling back to templates: %s", e)
    else:
        return GenerationResult(
            html=html,
            method=_method_label(registry, kind, choice),
            requested=choice,
            provider=kind,
        )

    return GenerationResult(
        html=select_template(description),
        method=TEMPLATE_METHOD,
        requested=choice,
        provider=None,
    )
