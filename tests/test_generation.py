import pytest

from sitegen.errors import NoProviderError
from sitegen.generation import ProviderChoice, generate_website, resolve_provider
from sitegen.providers import ProviderKind, ProviderRegistry
from sitegen.render import select_template

from fakes import LLM_HTML, FakeProvider


def test_resolve_auto_order():
    both = ProviderRegistry([FakeProvider(ProviderKind.OPENAI), FakeProvider(ProviderKind.DEEPSEEK)])
    assert resolve_provider(ProviderChoice.AUTO, both) is ProviderKind.DEEPSEEK
    only_openai = ProviderRegistry([FakeProvider(ProviderKind.OPENAI)])
    assert resolve_provider("auto", only_openai) is ProviderKind.OPENAI


def test_resolve_auto_with_nothing_configured_raises():
    with pytest.raises(NoProviderError):
        resolve_provider(ProviderChoice.AUTO, ProviderRegistry())


def test_resolve_explicit_is_not_checked():
    assert resolve_provider(ProviderChoice.DEEPSEEK, ProviderRegistry()) is ProviderKind.DEEPSEEK


def test_generate_success_result():
    registry = ProviderRegistry([FakeProvider(ProviderKind.DEEPSEEK)])
    result = generate_website("coffee shop", ProviderChoice.DEEPSEEK, registry)
    assert result.html == LLM_HTML
    assert result.method == "DeepSeek"
    assert result.provider is ProviderKind.DEEPSEEK
    assert result.usage_category == "deepseek"
    assert result.used_template is False


def test_generate_falls_back_on_provider_error():
    registry = ProviderRegistry([FakeProvider(ProviderKind.OPENAI, error="timeout")])
    result = generate_website("my resume", "openai", registry)
    assert result.html == select_template("my resume")
    assert result.method == "template"
    assert result.requested is ProviderChoice.OPENAI
    assert result.usage_category == "template"
    assert result.used_template is True


def test_generate_explicit_unconfigured_does_not_call_other_provider():
    openai = FakeProvider(ProviderKind.OPENAI)
    result = generate_website("hello", ProviderChoice.DEEPSEEK, ProviderRegistry([openai]))
    assert result.method == "template"
    assert openai.calls == []


def test_generate_without_registry_is_template_only():
    result = generate_website("landing page")
    assert result.method == "template"
    assert result.html == select_template("landing page")


def test_unexpected_provider_exception_propagates():
    class Broken(FakeProvider):
        def invoke(self, system_prompt, user_prompt):
            raise RuntimeError("bug")

    with pytest.raises(RuntimeError):
        generate_website("x", "auto", ProviderRegistry([Broken(ProviderKind.OPENAI)]))
