"""
Test conftest — isolate provider environment variables so that Settings
tests are not affected by real keys in the developer's or CI environment.
"""
import pytest

_PROVIDER_ENV_VARS = [
    "OPENROUTER_API_KEY",
    "OPENROUTER_BASE_URL",
    "OPENROUTER_MODEL",
    "OPENROUTER_HTTP_REFERER",
    "OPENROUTER_APP_TITLE",
    "NETDEN_CONFIG",
]


@pytest.fixture(autouse=True)
def _isolate_settings(monkeypatch):
    """Remove provider env vars for every test so Settings() behaves as if no
    keys are present unless the test explicitly provides them. Also disables
    .env file loading and resets the settings singleton."""
    for var in _PROVIDER_ENV_VARS:
        monkeypatch.delenv(var, raising=False)

    import netden.config.settings as settings_module
    from pydantic_settings import SettingsConfigDict
    patched_config = SettingsConfigDict(
        env_file=None,
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )
    monkeypatch.setattr(settings_module.Settings, "model_config", patched_config)
    monkeypatch.setattr(settings_module, "_singleton", None)
