"""Tests for API key storage: the credentials file and providers.json."""

import json
import stat

import pytest

from complior_tui.core.providers import ProviderConfig
from complior_tui.io import credentials


@pytest.fixture
def config_dir(xdg_dirs):
    config_home, _data_home = xdg_dirs
    return config_home / "complior"


def mode_of(path):
    return stat.S_IMODE(path.stat().st_mode)


class TestCredentialsFile:
    def test_save_creates_private_file(self, config_dir):
        assert credentials.save_credential("openai", "sk-one")
        path = config_dir / "credentials"
        assert path.read_text() == "OPENAI_KEY=sk-one\n"
        assert mode_of(path) == credentials.PRIVATE_MODE

    def test_replaces_existing_key_and_keeps_comments(self, config_dir):
        config_dir.mkdir(parents=True)
        (config_dir / "credentials").write_text("# keys\nOPENAI_KEY=old\n\nANTHROPIC_KEY=a\n")
        credentials.save_credential("openai", "new")
        assert (config_dir / "credentials").read_text() == "# keys\nOPENAI_KEY=new\n\nANTHROPIC_KEY=a\n"

    def test_unknown_provider_is_ignored(self, config_dir):
        assert credentials.save_credential("mystery", "x") is False
        assert not (config_dir / "credentials").exists()

    def test_get_credential(self, config_dir):
        credentials.save_credential("openrouter", "sk-or-1")
        assert credentials.get_credential("openrouter") == "sk-or-1"
        assert credentials.get_credential("openai") is None
        assert credentials.get_credential("mystery") is None

    def test_load_skips_junk_lines(self, config_dir):
        config_dir.mkdir(parents=True)
        (config_dir / "credentials").write_text("garbage\n # c\n KEY = v \n")
        assert credentials.load_credentials() == {"KEY": "v"}


class TestProviderConfig:
    def test_round_trip(self, config_dir):
        config = ProviderConfig("openai", "gpt-4o", {"openai": "sk-x"})
        credentials.save_provider_config(config)
        path = config_dir / "providers.json"
        assert json.loads(path.read_text())["providers"] == {"openai": {"api_key": "sk-x"}}
        assert mode_of(path) == credentials.PRIVATE_MODE
        assert credentials.load_provider_config() == config

    def test_missing_or_corrupt_is_empty(self, config_dir):
        assert credentials.load_provider_config() == ProviderConfig()
        config_dir.mkdir(parents=True)
        (config_dir / "providers.json").write_text("[")
        assert credentials.load_provider_config() == ProviderConfig()

    def test_onboarding_keys_fill_missing_providers(self, config_dir):
        credentials.save_credential("anthropic", "sk-ant-1")
        credentials.save_provider_config(ProviderConfig("openai", "gpt-4o", {"openai": "sk-x"}))
        config = credentials.load_provider_config()
        assert config.providers == {"openai": "sk-x", "anthropic": "sk-ant-1"}
        assert config.active_provider == "openai"

    def test_providers_json_wins_over_credentials(self, config_dir):
        credentials.save_credential("openai", "from-credentials")
        credentials.save_provider_config(ProviderConfig("openai", "gpt-4o", {"openai": "from-json"}))
        assert credentials.load_provider_config().providers == {"openai": "from-json"}
