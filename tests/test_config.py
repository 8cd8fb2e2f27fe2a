from __future__ import annotations

import pytest

from stockroom import ConfigurationError, Settings
from stockroom.config import DEFAULT_APP_ID


def test_defaults_from_empty_environment() -> None:
    settings = Settings.from_env({})
    assert settings.app_id == DEFAULT_APP_ID
    assert settings.store == {}
    assert settings.auth_token is None
    assert settings.retry.max_attempts == 5


def test_reads_every_variable() -> None:
    settings = Settings.from_env({
        "STOCKROOM_APP_ID": "shop",
        "STOCKROOM_STORE_CONFIG": '{"backend": "memory"}',
        "STOCKROOM_AUTH_TOKEN": "alice.sig",
        "STOCKROOM_IDENTITY_SECRET": "s3cret",
        "STOCKROOM_RETRY_MAX_ATTEMPTS": "7",
        "STOCKROOM_LOG_LEVEL": "debug",
    })
    assert settings.app_id == "shop"
    assert settings.store == {"backend": "memory"}
    assert settings.auth_token == "alice.sig"
    assert settings.identity_secret == "s3cret"
    assert settings.retry.max_attempts == 7
    settings.validate()


@pytest.mark.parametrize(
    "env",
    [
        {"STOCKROOM_STORE_CONFIG": "{not json"},
        {"STOCKROOM_STORE_CONFIG": "[1, 2]"},
        {"STOCKROOM_RETRY_MAX_ATTEMPTS": "zero"},
        {"STOCKROOM_RETRY_MAX_ATTEMPTS": "0"},
    ],
)
def test_malformed_environment_is_a_configuration_error(env) -> None:
    with pytest.raises(ConfigurationError):
        Settings.from_env(env)


@pytest.mark.parametrize(
    "settings",
    [
        Settings(),
        Settings(store={"backend": "memory"}, app_id=""),
        Settings(store={"backend": "memory"}, app_id="a/b"),
        Settings(store={"backend": "memory"}, log_level="chatty"),
    ],
)
def test_validate_rejects_incomplete_settings(settings: Settings) -> None:
    with pytest.raises(ConfigurationError):
        settings.validate()


def test_builders_return_new_settings() -> None:
    base = Settings()
    changed = base.with_app_id("shop").with_store({"backend": "memory"})
    assert base.app_id == DEFAULT_APP_ID and base.store == {}
    assert changed.app_id == "shop" and changed.store == {"backend": "memory"}
