"""
Chain registry and SDK settings.

The chain registry maps a chain id to the contract deployments the SDK
needs (job registry, fee registry, Safe factory/module/multisend) and to
the SDK-controlled RPC endpoint used for reads and gas estimation. It is
built once and handed explicitly to every component; nothing looks it up
through module state.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional

from dotenv import load_dotenv

from .constants import DEFAULT_REQUEST_TIMEOUT_SECONDS
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

CHAIN_ADDRESSES_ENV = "TRIGGERX_CHAIN_ADDRESSES"
RPC_URLS_ENV = "TRIGGERX_RPC_URLS"

# Canonical Safe v1.3.0 MultiSendCallOnly deployment (same address on every chain).
MULTISEND_CALL_ONLY_V130 = "0x40A2aCCbd92BCA938b02010E17A5b8929b49130D"

_CAMEL_TO_FIELD = {
    "gasRegistry": "gas_registry",
    "jobRegistry": "job_registry",
    "safeFactory": "safe_factory",
    "safeModule": "safe_module",
    "multisendCallOnly": "multisend_call_only",
    "rpcUrl": "rpc_url",
}


@dataclass(frozen=True)
class ChainAddresses:
    """Contract deployments and SDK RPC endpoint for one chain."""

    gas_registry: Optional[str] = None
    job_registry: Optional[str] = None
    safe_factory: Optional[str] = None
    safe_module: Optional[str] = None
    multisend_call_only: Optional[str] = None
    rpc_url: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "ChainAddresses":
        """Build a record from camelCase or snake_case keys, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        values: Dict[str, Optional[str]] = {}
        for key, value in raw.items():
            name = _CAMEL_TO_FIELD.get(key, key)
            if name not in known:
                continue
            if value is None or not str(value).strip():
                continue
            values[name] = str(value).strip()
        return cls(**values)

    def merged_with(self, other: "ChainAddresses") -> "ChainAddresses":
        """Return a copy where the non-empty fields of ``other`` win."""
        overrides = {
            f.name: getattr(other, f.name)
            for f in fields(other)
            if getattr(other, f.name)
        }
        return replace(self, **overrides)


_DEFAULT_CHAINS: Dict[str, ChainAddresses] = {
    # Optimism Sepolia
    "11155420": ChainAddresses(
        rpc_url="https://sepolia.optimism.io",
        multisend_call_only=MULTISEND_CALL_ONLY_V130,
    ),
    # Base Sepolia
    "84532": ChainAddresses(
        rpc_url="https://sepolia.base.org",
        multisend_call_only=MULTISEND_CALL_ONLY_V130,
    ),
    # Arbitrum Sepolia
    "421614": ChainAddresses(
        rpc_url="https://sepolia-rollup.arbitrum.io/rpc",
        multisend_call_only=MULTISEND_CALL_ONLY_V130,
    ),
}


class ChainRegistry(Mapping[str, ChainAddresses]):
    """Immutable chain id -> ChainAddresses table."""

    def __init__(self, chains: Optional[Mapping[Any, ChainAddresses]] = None) -> None:
        normalised = {str(k).strip(): v for k, v in (chains or {}).items()}
        self._chains: Mapping[str, ChainAddresses] = MappingProxyType(normalised)

    def __getitem__(self, chain_id: Any) -> ChainAddresses:
        return self._chains[str(chain_id).strip()]

    def __iter__(self) -> Iterator[str]:
        return iter(self._chains)

    def __len__(self) -> int:
        return len(self._chains)

    def __repr__(self) -> str:
        return f"ChainRegistry(chains={sorted(self._chains)})"

    def get_addresses(self, chain_id: Any) -> ChainAddresses:
        """Return the record for a chain, or an empty record when unknown."""
        if chain_id is None:
            return ChainAddresses()
        return self._chains.get(str(chain_id).strip(), ChainAddresses())

    def require(self, chain_id: Any, field_name: str) -> str:
        """Return one address/URL for a chain or raise ConfigurationError."""
        if chain_id is None or not str(chain_id).strip():
            raise ConfigurationError(f"Chain ID is required to resolve {field_name}")
        value = getattr(self.get_addresses(chain_id), field_name, None)
        if not value:
            raise ConfigurationError(
                f"{field_name} not configured for chain ID: {chain_id}",
                {"chain_id": str(chain_id), "field": field_name},
            )
        return value

    @classmethod
    def from_mapping(
        cls,
        mapping: Mapping[Any, Mapping[str, Any]],
        base: Optional[Mapping[Any, ChainAddresses]] = None,
    ) -> "ChainRegistry":
        """Layer raw per-chain dictionaries on top of ``base``."""
        chains = {str(k): v for k, v in (base or {}).items()}
        for chain_id, raw in mapping.items():
            if not isinstance(raw, Mapping):
                raise ConfigurationError(
                    f"Chain entry for {chain_id} must be an object",
                    {"chain_id": str(chain_id)},
                )
            record = ChainAddresses.from_dict(raw)
            key = str(chain_id).strip()
            chains[key] = chains.get(key, ChainAddresses()).merged_with(record)
        return cls(chains)

    @classmethod
    def from_json_file(
        cls, path: Path | str, base: Optional[Mapping[Any, ChainAddresses]] = None
    ) -> "ChainRegistry":
        try:
            with open(path, "r", encoding="utf-8") as handle:
                mapping = json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            raise ConfigurationError(
                f"Failed to load chain registry from {path}: {exc}",
                {"path": str(path)},
            ) from exc
        if not isinstance(mapping, dict):
            raise ConfigurationError(
                f"Chain registry file {path} must contain a JSON object",
                {"path": str(path)},
            )
        return cls.from_mapping(mapping, base=base)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ChainRegistry":
        """Built-in defaults overlaid with TRIGGERX_CHAIN_ADDRESSES / TRIGGERX_RPC_URLS."""
        env = os.environ if environ is None else environ
        registry = cls(_DEFAULT_CHAINS)

        addresses = _load_json_env(env, CHAIN_ADDRESSES_ENV)
        if addresses:
            try:
                registry = cls.from_mapping(addresses, base=registry)
            except ConfigurationError as exc:
                logger.error("Ignoring %s: %s", CHAIN_ADDRESSES_ENV, exc)

        rpc_urls = _load_json_env(env, RPC_URLS_ENV)
        if rpc_urls:
            registry = cls.from_mapping(
                {
                    chain: {"rpc_url": url}
                    for chain, url in rpc_urls.items()
                    if url and str(url).strip()
                },
                base=registry,
            )
        return registry


def _load_json_env(env: Mapping[str, str], name: str) -> Dict[str, Any]:
    """Parse a JSON object from an environment variable, logging bad input."""
    raw = env.get(name)
    if not raw or not raw.strip():
        return {}
    try:
        mapping = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.error("Failed to parse %s: %s", name, exc)
        return {}
    if not isinstance(mapping, dict):
        logger.error("%s must be a JSON object; got %s", name, type(mapping).__name__)
        return {}
    return mapping


def default_chain_registry() -> ChainRegistry:
    """Return the registry built from defaults and the process environment."""
    return ChainRegistry.from_env()


@dataclass
class SDKConfig:
    """Backend connection settings."""

    api_key: str = ""
    api_url: str = ""
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS

    @classmethod
    def from_env(cls, load_dotenv_file: bool = True) -> "SDKConfig":
        if load_dotenv_file:
            load_dotenv()

        def _lookup(*names: str) -> str:
            for name in names:
                value = os.environ.get(name)
                if value and value.strip():
                    return value.strip()
            return ""

        timeout_raw = _lookup("TRIGGERX_REQUEST_TIMEOUT")
        timeout = float(DEFAULT_REQUEST_TIMEOUT_SECONDS)
        if timeout_raw:
            try:
                timeout = float(timeout_raw)
            except ValueError:
                logger.warning(
                    "Invalid TRIGGERX_REQUEST_TIMEOUT '%s'; using %s seconds",
                    timeout_raw,
                    timeout,
                )
        return cls(
            api_key=_lookup("TRIGGERX_API_KEY", "API_KEY"),
            api_url=_lookup("TRIGGERX_API_URL", "API_URL"),
            request_timeout=timeout,
        )
