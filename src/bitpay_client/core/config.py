"""
Configuration objects and helpers for BitPay clients.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlparse

from eth_account import Account
from eth_utils import ValidationError, add_0x_prefix, is_hex, remove_0x_prefix

from .environment import build_environment
from .tokens import Facade

__all__ = [
    "ClientConfig",
    "ClientParameters",
    "ConfigError",
    "DEFAULT_API_URL",
    "TEST_API_URL",
    "load_client_config",
]

DEFAULT_API_URL = "https://bitpay.com/"
TEST_API_URL = "https://test.bitpay.com/"

_PARAMETER_TO_ENV_KEY = {
    "api_url": "BITPAY_API_URL",
    "private_key": "BITPAY_PRIVATE_KEY",
    "label": "BITPAY_CLIENT_LABEL",
    "facade": "BITPAY_FACADE",
    "timeout_seconds": "BITPAY_TIMEOUT_SECONDS",
}


class ConfigError(Exception):
    """Raised when the supplied configuration is invalid."""


@dataclass(frozen=True)
class ClientParameters:
    """
    Explicit parameter bundle for constructing :class:`ClientConfig`.

    Callers can either instantiate this helper or pass the individual keyword
    arguments directly to :func:`load_client_config`.
    """

    api_url: Optional[str] = None
    private_key: Optional[str] = None
    label: Optional[str] = None
    facade: Optional[str] = None
    timeout_seconds: Optional[int | str] = None

    def as_overrides(self) -> Dict[str, str]:
        return _collect_parameter_overrides(
            {name: getattr(self, name) for name in _PARAMETER_TO_ENV_KEY}
        )


def _collect_parameter_overrides(explicit: Mapping[str, Any]) -> Dict[str, str]:
    overrides: Dict[str, str] = {}
    for key, value in explicit.items():
        if value is None:
            continue
        try:
            env_key = _PARAMETER_TO_ENV_KEY[key]
        except KeyError as exc:
            raise TypeError(f"Unknown client parameter '{key}'") from exc
        overrides[env_key] = str(value)
    return overrides


def _normalize_private_key(raw_key: str) -> str:
    key = raw_key.strip()
    if not key:
        raise ConfigError("BITPAY_PRIVATE_KEY must not be empty")
    if not is_hex(key) or len(remove_0x_prefix(key)) != 64:
        raise ConfigError("BITPAY_PRIVATE_KEY must be 32 bytes (64 hex chars)")
    key = add_0x_prefix(key.lower())
    try:
        Account.from_key(key)
    except (ValueError, ValidationError) as exc:
        raise ConfigError(f"BITPAY_PRIVATE_KEY is not a valid secp256k1 key: {exc}") from exc
    return key


def _normalize_api_url(raw_url: str) -> str:
    url = raw_url.strip()
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigError(f"BITPAY_API_URL must be an absolute http(s) URL, got '{raw_url}'")
    return url if url.endswith("/") else url + "/"


def _parse_timeout(raw_value: str) -> int:
    try:
        timeout = int(raw_value)
    except ValueError as exc:
        raise ConfigError(
            f"BITPAY_TIMEOUT_SECONDS must be an integer, got '{raw_value}'"
        ) from exc
    if timeout <= 0:
        raise ConfigError("BITPAY_TIMEOUT_SECONDS must be greater than zero")
    return timeout


@dataclass(frozen=True)
class ClientConfig:
    api_url: str = DEFAULT_API_URL
    private_key: Optional[str] = None
    label: str = "DEFAULT"
    facade: Facade = Facade.MERCHANT
    timeout_seconds: int = 30

    def __repr__(self) -> str:
        key_state = "set" if self.private_key else "unset"
        return (
            f"ClientConfig(api_url={self.api_url!r}, private_key=<{key_state}>, "
            f"label={self.label!r}, facade={str(self.facade)!r}, "
            f"timeout_seconds={self.timeout_seconds})"
        )

    @classmethod
    def from_mapping(cls, values: Mapping[str, str]) -> "ClientConfig":
        api_url = _normalize_api_url(values.get("BITPAY_API_URL") or DEFAULT_API_URL)

        raw_key = values.get("BITPAY_PRIVATE_KEY")
        private_key = _normalize_private_key(raw_key) if raw_key else None

        label = (values.get("BITPAY_CLIENT_LABEL") or "DEFAULT").strip()
        facade_name = (values.get("BITPAY_FACADE") or str(Facade.MERCHANT)).strip()
        if not facade_name:
            raise ConfigError("BITPAY_FACADE must not be empty")

        timeout_seconds = _parse_timeout(values.get("BITPAY_TIMEOUT_SECONDS") or "30")

        return cls(
            api_url=api_url,
            private_key=private_key,
            label=label or "DEFAULT",
            facade=Facade(facade_name),
            timeout_seconds=timeout_seconds,
        )

    @classmethod
    def from_env(
        cls,
        *,
        env_file: Optional[str] = ".env",
        overrides: Optional[Mapping[str, str]] = None,
        base: Optional[Mapping[str, str]] = None,
        parameters: Optional[ClientParameters] = None,
        api_url: Optional[str] = None,
        private_key: Optional[str] = None,
        label: Optional[str] = None,
        facade: Optional[str] = None,
        timeout_seconds: Optional[int | str] = None,
    ) -> "ClientConfig":
        merged_overrides = dict(overrides or {})
        if parameters is not None:
            merged_overrides.update(parameters.as_overrides())
        merged_overrides.update(
            _collect_parameter_overrides(
                {
                    "api_url": api_url,
                    "private_key": private_key,
                    "label": label,
                    "facade": facade,
                    "timeout_seconds": timeout_seconds,
                }
            )
        )

        environment = build_environment(
            env_file=env_file,
            base=base,
            overrides=merged_overrides,
        )
        return cls.from_mapping(environment.variables)


def load_client_config(
    *,
    env_file: Optional[str] = ".env",
    overrides: Optional[Mapping[str, str]] = None,
    base: Optional[Mapping[str, str]] = None,
    parameters: Optional[ClientParameters] = None,
    api_url: Optional[str] = None,
    private_key: Optional[str] = None,
    label: Optional[str] = None,
    facade: Optional[str] = None,
    timeout_seconds: Optional[int | str] = None,
) -> ClientConfig:
    """
    Convenience wrapper that mirrors :meth:`ClientConfig.from_env`.

    The configuration can be provided through environment variables, a
    ``.env`` file, direct keyword arguments, or any combination of the three.
    """
    return ClientConfig.from_env(
        env_file=env_file,
        overrides=overrides,
        base=base,
        parameters=parameters,
        api_url=api_url,
        private_key=private_key,
        label=label,
        facade=facade,
        timeout_seconds=timeout_seconds,
    )
