"""LLM provider catalog and the user's provider configuration.

// [LAW:one-source-of-truth] MODEL_CATALOG is the only list of selectable models.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ModelInfo:
    id: str
    display_name: str
    provider: str


# (provider id, display label) in menu order.
PROVIDERS: tuple[tuple[str, str], ...] = (
    ("anthropic", "Anthropic"),
    ("openai", "OpenAI"),
    ("openrouter", "OpenRouter"),
)

MODEL_CATALOG: tuple[ModelInfo, ...] = (
    ModelInfo("complior-zen-v1", "Complior Zen (Free)", "complior"),
    ModelInfo("claude-sonnet-4-5-20250929", "Claude Sonnet 4.5", "anthropic"),
    ModelInfo("claude-haiku-4-5-20251001", "Claude Haiku 4.5", "anthropic"),
    ModelInfo("claude-opus-4-6", "Claude Opus 4.6", "anthropic"),
    ModelInfo("gpt-4o", "GPT-4o", "openai"),
    ModelInfo("gpt-4o-mini", "GPT-4o Mini", "openai"),
    ModelInfo("o3-mini", "o3-mini", "openai"),
    ModelInfo("anthropic/claude-sonnet-4-5-20250929", "Claude Sonnet 4.5", "openrouter"),
    ModelInfo("openai/gpt-4o", "GPT-4o", "openrouter"),
    ModelInfo("meta-llama/llama-3.1-405b-instruct", "Llama 3.1 405B", "openrouter"),
    ModelInfo("mistralai/mixtral-8x7b-instruct", "Mixtral 8x7B", "openrouter"),
    ModelInfo("google/gemini-2.5-pro", "Gemini 2.5 Pro", "openrouter"),
    ModelInfo("deepseek/deepseek-r1", "DeepSeek R1", "openrouter"),
)

# Key prefixes accepted by the onboarding format check.
KEY_PREFIXES: dict[str, str] = {
    "openrouter": "sk-or-",
    "anthropic": "sk-ant-",
    "openai": "sk-",
}


def models_for_provider(provider: str) -> list[ModelInfo]:
    return [m for m in MODEL_CATALOG if m.provider == provider]


def display_model_name(model_id: str) -> str:
    for model in MODEL_CATALOG:
        if model.id == model_id:
            return model.display_name
    return model_id


def provider_label(provider_id: str) -> str:
    return dict(PROVIDERS).get(provider_id, provider_id)


def key_format_valid(provider: str, key: str) -> bool:
    prefix = KEY_PREFIXES.get(provider)
    return prefix is None or key.startswith(prefix)


@dataclass
class ProviderConfig:
    """Configured providers (id -> api key) plus the active selection."""

    active_provider: str = ""
    active_model: str = ""
    providers: dict[str, str] = field(default_factory=dict)

    def is_configured(self) -> bool:
        return bool(self.providers)

    def active_key(self) -> str | None:
        return self.providers.get(self.active_provider)

    def to_json(self) -> dict:
        return {
            "active_provider": self.active_provider,
            "active_model": self.active_model,
            "providers": {pid: {"api_key": key} for pid, key in self.providers.items()},
        }

    @classmethod
    def from_json(cls, raw: dict) -> ProviderConfig:
        providers = {}
        for pid, entry in (raw.get("providers") or {}).items():
            if isinstance(entry, dict) and isinstance(entry.get("api_key"), str):
                providers[pid] = entry["api_key"]
        return cls(
            active_provider=str(raw.get("active_provider", "")),
            active_model=str(raw.get("active_model", "")),
            providers=providers,
        )


def selectable_models(config: ProviderConfig) -> list[ModelInfo]:
    """Models of configured providers, grouped in PROVIDERS order."""
    models: list[ModelInfo] = []
    for provider_id, _label in PROVIDERS:
        if provider_id in config.providers:
            models.extend(models_for_provider(provider_id))
    return models
