import pytest

from contentcli.infrastructure.config import settings
from contentcli.infrastructure.config.settings import (
    clear_test_config, get_cache_enabled, get_config, get_default_model, get_rate_limit_configs,
    get_serpapi_key, load_configuration, reset_configuration, set_config_for_testing,
)


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    for name in ("SERPAPI_KEY", "RATE_LIMITS_LLM_MAX_REQUESTS", "RATE_LIMITS_SERPAPI_WINDOW_SECONDS",
                 "CACHE_ENABLED", "AI_DEFAULT_PROVIDER"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(settings, "_config", {})
    clear_test_config()
    yield
    clear_test_config()


@pytest.fixture
def yaml_config(tmp_path, monkeypatch):
    """Loads a YAML file (and an empty .env) in place of the user's configuration."""
    def load(text):
        config_file = tmp_path / "config.yaml"
        config_file.write_text(text)
        env_file = tmp_path / ".env"
        env_file.write_text("")
        reset_configuration()
        load_configuration(config_file=config_file, env_file=env_file)

    yield load
    reset_configuration()


def test_default_value_when_missing():
    assert get_config("does.not.exist", "fallback") == "fallback"


def test_test_config_takes_priority(monkeypatch):
    monkeypatch.setenv("SERPAPI_KEY", "from-env")
    set_config_for_testing({"SERPAPI_KEY": "from-test"})
    assert get_serpapi_key() == "from-test"


def test_env_values_are_coerced(monkeypatch):
    monkeypatch.setenv("RATE_LIMITS_LLM_MAX_REQUESTS", "7")
    monkeypatch.setenv("RATE_LIMITS_SERPAPI_WINDOW_SECONDS", "30.5")
    monkeypatch.setenv("CACHE_ENABLED", "false")

    assert get_config("rate_limits.llm.max_requests") == 7
    assert get_config("rate_limits.serpapi.window_seconds") == 30.5
    assert get_cache_enabled() is False


def test_yaml_nested_lookup(yaml_config):
    yaml_config("ai:\n  default_provider: groq\n  groq:\n    default_model: llama-test\n")

    assert get_config("ai.default_provider") == "groq"
    assert get_default_model() == "llama-test"


def test_env_overrides_yaml(yaml_config, monkeypatch):
    yaml_config("serpapi:\n  api_key: from-yaml\n")
    assert get_serpapi_key() == "from-yaml"

    monkeypatch.setenv("SERPAPI_KEY", "from-env")
    assert get_serpapi_key() == "from-env"


def test_dotenv_does_not_override_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("SERPAPI_KEY", "from-env")
    monkeypatch.setenv("CONTENTCLI_DOTENV_PROBE", "placeholder")
    monkeypatch.delenv("CONTENTCLI_DOTENV_PROBE")
    env_file = tmp_path / ".env"
    env_file.write_text("SERPAPI_KEY=from-dotenv\nCONTENTCLI_DOTENV_PROBE=loaded\n")

    reset_configuration()
    try:
        load_configuration(config_file=tmp_path / "missing.yaml", env_file=env_file)
        assert get_serpapi_key() == "from-env"
        assert get_config("contentcli_dotenv_probe") == "loaded"
    finally:
        reset_configuration()


def test_invalid_yaml_is_ignored(yaml_config):
    yaml_config("- just\n- a list\n")
    assert get_config("anything", 1) == 1


def test_rate_limit_defaults():
    configs = {config.name: config for config in get_rate_limit_configs()}

    assert set(configs) == {"llm", "serpapi", "reddit"}
    assert configs["llm"].max_requests == 15
    assert configs["serpapi"].max_requests == 10
    assert configs["reddit"].max_requests == 60
    assert configs["llm"].window_seconds == 60.0
    assert configs["llm"].max_retries == 5


def test_rate_limit_overrides():
    set_config_for_testing({"rate_limits.llm.max_requests": 3, "rate_limits.llm.timeout_seconds": 20})

    configs = {config.name: config for config in get_rate_limit_configs()}

    assert configs["llm"].max_requests == 3
    assert configs["llm"].timeout_seconds == 20
    assert configs["serpapi"].max_requests == 10


def test_invalid_rate_limit_override_falls_back_to_default():
    set_config_for_testing({"rate_limits.reddit.max_requests": 0})

    configs = {config.name: config for config in get_rate_limit_configs()}

    assert configs["reddit"].max_requests == 60


def test_yaml_only_service(yaml_config):
    yaml_config(
        "rate_limits:\n"
        "  analytics:\n"
        "    max_requests: 2\n"
        "    window_seconds: 10\n"
        "  broken:\n"
        "    max_retries: 1\n"
    )

    configs = {config.name: config for config in get_rate_limit_configs()}

    assert configs["analytics"].max_requests == 2
    assert configs["analytics"].window_seconds == 10
    assert "broken" not in configs
