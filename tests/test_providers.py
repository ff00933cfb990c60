"""Tests for the model catalog and provider configuration helpers."""

from complior_tui.core.providers import (
    PROVIDERS,
    ProviderConfig,
    display_model_name,
    key_format_valid,
    models_for_provider,
    provider_label,
    selectable_models,
)


def test_first_model_per_provider():
    assert models_for_provider("openai")[0].id == "gpt-4o"
    assert models_for_provider("anthropic")[0].id == "claude-sonnet-4-5-20250929"
    assert models_for_provider("nobody") == []


def test_display_names():
    assert display_model_name("gpt-4o-mini") == "GPT-4o Mini"
    assert display_model_name("custom-model") == "custom-model"
    assert provider_label("openrouter") == "OpenRouter"
    assert provider_label("custom") == "custom"


def test_key_prefixes():
    assert key_format_valid("anthropic", "sk-ant-abc")
    assert not key_format_valid("anthropic", "sk-abc")
    assert key_format_valid("openrouter", "sk-or-1")
    assert key_format_valid("unknown-provider", "anything")


def test_selectable_models_follow_menu_order():
    config = ProviderConfig(providers={"openrouter": "k1", "anthropic": "k2"})
    providers = [m.provider for m in selectable_models(config)]
    assert providers == sorted(providers, key=[pid for pid, _ in PROVIDERS].index)
    assert set(providers) == {"anthropic", "openrouter"}


def test_unconfigured():
    config = ProviderConfig()
    assert not config.is_configured()
    assert config.active_key() is None
    assert selectable_models(config) == []


def test_json_shape():
    config = ProviderConfig("openai", "gpt-4o", {"openai": "sk-x"})
    assert config.to_json() == {
        "active_provider": "openai",
        "active_model": "gpt-4o",
        "providers": {"openai": {"api_key": "sk-x"}},
    }
    assert ProviderConfig.from_json(config.to_json()) == config
    assert config.active_key() == "sk-x"


def test_from_json_skips_bad_entries():
    raw = {"providers": {"openai": {"api_key": 3}, "anthropic": "flat", "openrouter": {"api_key": "k"}}}
    assert ProviderConfig.from_json(raw).providers == {"openrouter": "k"}
