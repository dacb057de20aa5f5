"""Application settings read from environment variables.

Protean's own configuration (database, broker, event store) lives in the
``[tool.protean]`` section of ``pyproject.toml``; this module covers the
collaborators the ordering service wires up itself.
"""

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None


@dataclass(frozen=True)
class Settings:
    environment: str = "development"
    cart_ttl_hours: int = 24
    currency: str = "eur"
    catalogue_url: str | None = None
    catalogue_timeout: float = 5.0
    payment_gateway: str = "fake"
    payment_gateway_url: str | None = None
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_username: str | None = None
    smtp_password: str | None = None
    smtp_use_tls: bool = True
    mail_sender: str = "no-reply@boutique.example"
    redis_url: str | None = None
    cart_lock_timeout: float = 5.0
    json_logs: bool = False
    log_level: str | None = None

    @classmethod
    def from_env(cls) -> "Settings":
        environment = os.getenv("PROTEAN_ENV") or os.getenv("ENVIRONMENT") or "development"
        return cls(
            environment=environment,
            cart_ttl_hours=_env_int("CART_TTL_HOURS", 24),
            currency=os.getenv("CURRENCY", "eur").lower(),
            catalogue_url=os.getenv("CATALOGUE_URL") or None,
            catalogue_timeout=float(os.getenv("CATALOGUE_TIMEOUT", "5")),
            payment_gateway=os.getenv("PAYMENT_GATEWAY", "fake"),
            payment_gateway_url=os.getenv("PAYMENT_GATEWAY_URL") or None,
            smtp_host=os.getenv("SMTP_HOST") or None,
            smtp_port=_env_int("SMTP_PORT", 587),
            smtp_username=os.getenv("SMTP_USERNAME") or None,
            smtp_password=os.getenv("SMTP_PASSWORD") or None,
            smtp_use_tls=_env_bool("SMTP_USE_TLS", True),
            mail_sender=os.getenv("MAIL_SENDER", "no-reply@boutique.example"),
            redis_url=os.getenv("REDIS_URL") or None,
            cart_lock_timeout=float(os.getenv("CART_LOCK_TIMEOUT", "5")),
            json_logs=_env_bool("JSON_LOGS", environment in ("production", "staging")),
            log_level=os.getenv("LOG_LEVEL") or None,
        )
