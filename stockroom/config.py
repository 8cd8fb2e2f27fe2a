"""
Settings — startup configuration, from code or the environment.

    settings = Settings.from_env()
    settings = Settings().with_store({"backend": "memory"}).with_app_id("demo")

Environment:
    STOCKROOM_APP_ID               app namespace (default "default-app-id")
    STOCKROOM_STORE_CONFIG         JSON object, see stockroom.store.open_store
    STOCKROOM_AUTH_TOKEN           custom sign-in token
    STOCKROOM_IDENTITY_SECRET      secret for verifying custom tokens
    STOCKROOM_RETRY_MAX_ATTEMPTS   executor attempt ceiling (default 5)
    STOCKROOM_LOG_LEVEL            logging level name (default INFO)
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from stockroom._errors import ConfigurationError
from stockroom.retry import RetryPolicy


DEFAULT_APP_ID = "default-app-id"
LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


@dataclass(frozen=True, slots=True)
class Settings:
    app_id: str = DEFAULT_APP_ID
    store: Mapping[str, Any] = field(default_factory=dict)
    auth_token: str | None = None
    identity_secret: str | None = None
    retry: RetryPolicy = RetryPolicy()
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ

        store: Mapping[str, Any] = {}
        raw_store = env.get("STOCKROOM_STORE_CONFIG", "").strip()
        if raw_store:
            try:
                store = json.loads(raw_store)
            except json.JSONDecodeError as e:
                raise ConfigurationError(f"STOCKROOM_STORE_CONFIG is not valid JSON: {e}") from e
            if not isinstance(store, dict):
                raise ConfigurationError("STOCKROOM_STORE_CONFIG must be a JSON object")

        retry = RetryPolicy()
        raw_attempts = env.get("STOCKROOM_RETRY_MAX_ATTEMPTS", "").strip()
        if raw_attempts:
            try:
                retry = retry.with_max_attempts(int(raw_attempts))
            except ValueError as e:
                raise ConfigurationError(f"STOCKROOM_RETRY_MAX_ATTEMPTS: {e}") from e

        return cls(
            app_id=env.get("STOCKROOM_APP_ID") or DEFAULT_APP_ID,
            store=store,
            auth_token=env.get("STOCKROOM_AUTH_TOKEN") or None,
            identity_secret=env.get("STOCKROOM_IDENTITY_SECRET") or None,
            retry=retry,
            log_level=env.get("STOCKROOM_LOG_LEVEL") or "INFO",
        )

    def with_app_id(self, app_id: str) -> Settings:
        return Settings(
            app_id=app_id,
            store=self.store,
            auth_token=self.auth_token,
            identity_secret=self.identity_secret,
            retry=self.retry,
            log_level=self.log_level,
        )

    def with_store(self, store: Mapping[str, Any]) -> Settings:
        return Settings(
            app_id=self.app_id,
            store=dict(store),
            auth_token=self.auth_token,
            identity_secret=self.identity_secret,
            retry=self.retry,
            log_level=self.log_level,
        )

    def with_identity(self, *, auth_token: str | None, secret: str | None = None) -> Settings:
        return Settings(
            app_id=self.app_id,
            store=self.store,
            auth_token=auth_token,
            identity_secret=secret if secret is not None else self.identity_secret,
            retry=self.retry,
            log_level=self.log_level,
        )

    def with_retry(self, retry: RetryPolicy) -> Settings:
        return Settings(
            app_id=self.app_id,
            store=self.store,
            auth_token=self.auth_token,
            identity_secret=self.identity_secret,
            retry=retry,
            log_level=self.log_level,
        )

    def validate(self) -> None:
        if not self.app_id.strip():
            raise ConfigurationError("app_id must not be empty")
        if "/" in self.app_id:
            raise ConfigurationError("app_id must not contain '/'")
        if not self.store:
            raise ConfigurationError("store configuration is missing")
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ConfigurationError(f"unknown log level {self.log_level!r}")


def configure_logging(level: str | int = "INFO") -> None:
    """Install a stderr handler on the root logger. For apps, not libraries."""
    if isinstance(level, str):
        level = level.upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)


__all__ = ("DEFAULT_APP_ID", "LOG_FORMAT", "Settings", "configure_logging")
