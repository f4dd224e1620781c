"""
RPC resolution, dual-provider contract handles and transaction helpers.

Reads and gas estimation go through the SDK-controlled RPC for the chain
so they keep working when the caller's RPC is flaky. Writes are signed by
the caller's key and broadcast through the caller's RPC when available.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from hexbytes import HexBytes
from web3 import Web3
from web3.exceptions import TimeExhausted

from .config import ChainRegistry
from .constants import (
    DEFAULT_RECEIPT_TIMEOUT_SECONDS,
    GAS_BUFFER_DENOMINATOR,
    GAS_BUFFER_NUMERATOR,
    MAX_TRANSACTION_GAS,
)
from .errors import ConfigurationError, ContractError, NetworkError
from .signer import Signer, inject_poa_middleware

logger = logging.getLogger("triggerx.rpc")


def resolve_chain_id(signer: Optional[Signer], explicit_chain_id: Any = None) -> str:
    """Prefer the explicit chain id, else the signer's connected network."""
    if explicit_chain_id is not None and str(explicit_chain_id).strip():
        return str(explicit_chain_id).strip()
    chain_id = signer.get_chain_id() if signer is not None else None
    if chain_id is None:
        raise ConfigurationError(
            "Unable to resolve chain ID: none given and signer has no reachable network"
        )
    return str(chain_id)


@dataclass
class ContractHandles:
    """Same contract bound twice: ``read`` to the SDK RPC, ``write`` to the signer's."""

    address: str
    read: Any
    write: Any
    read_w3: Web3
    write_w3: Web3
    chain_id: str


class SdkRpc:
    """Caches one Web3 client per chain, built from the chain registry."""

    def __init__(
        self,
        registry: ChainRegistry,
        logger: Optional[logging.Logger] = None,
        web3_factory: Optional[Callable[[str], Web3]] = None,
    ) -> None:
        self.registry = registry
        self._logger = logger or logging.getLogger("triggerx.rpc")
        self._web3_factory = web3_factory or self._default_factory
        self._cache: Dict[str, Web3] = {}

    def _default_factory(self, rpc_url: str) -> Web3:
        w3 = Web3(Web3.HTTPProvider(rpc_url))
        inject_poa_middleware(w3, self._logger)
        return w3

    def web3_for(self, chain_id: Any) -> Web3:
        key = str(chain_id)
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        rpc_url = self.registry.require(key, "rpc_url")
        w3 = self._web3_factory(rpc_url)
        self._cache[key] = w3
        return w3

    def contract_handles(
        self,
        address: Optional[str],
        abi: List[Dict[str, Any]],
        signer: Signer,
        chain_id: Any,
    ) -> ContractHandles:
        if not address:
            raise ConfigurationError(
                f"Contract address not configured for chain ID: {chain_id}",
                {"chain_id": str(chain_id)},
            )
        read_w3 = self.web3_for(chain_id)
        write_w3 = signer.w3 if signer.w3 is not None else read_w3
        checksum = Web3.to_checksum_address(address)
        return ContractHandles(
            address=checksum,
            read=read_w3.eth.contract(address=checksum, abi=abi),
            write=write_w3.eth.contract(address=checksum, abi=abi),
            read_w3=read_w3,
            write_w3=write_w3,
            chain_id=str(chain_id),
        )


@dataclass(frozen=True)
class GasStrategy:
    """Either a buffered estimate or no explicit limit (node estimates)."""

    gas_limit: Optional[int] = None

    @classmethod
    def estimated(cls, estimate: int) -> "GasStrategy":
        buffered = int(estimate) * GAS_BUFFER_NUMERATOR // GAS_BUFFER_DENOMINATOR
        if buffered > MAX_TRANSACTION_GAS:
            logger.warning(
                "Buffered gas %s exceeds per-transaction gas limit (%s); capping to limit",
                buffered,
                MAX_TRANSACTION_GAS,
            )
            buffered = MAX_TRANSACTION_GAS
        return cls(gas_limit=buffered)

    @classmethod
    def unbounded(cls) -> "GasStrategy":
        return cls(gas_limit=None)

    @property
    def is_estimated(self) -> bool:
        return self.gas_limit is not None

    def apply(self, tx_params: Dict[str, Any]) -> Dict[str, Any]:
        if self.gas_limit is not None:
            tx_params["gas"] = self.gas_limit
        return tx_params


def plan_gas(
    read_fn: Any,
    from_address: str,
    value: int = 0,
    log: Optional[logging.Logger] = None,
) -> GasStrategy:
    """Estimate on the read-bound function; fall back to unbounded on failure."""
    log = log or logger
    params: Dict[str, Any] = {"from": from_address}
    if value:
        params["value"] = int(value)
    try:
        estimate = read_fn.estimate_gas(params)
    except Exception as exc:
        log.warning(f"Gas estimation failed, letting the node estimate: {exc}")
        return GasStrategy.unbounded()
    strategy = GasStrategy.estimated(estimate)
    log.debug("Gas estimate %s buffered to %s", estimate, strategy.gas_limit)
    return strategy


def wait_for_receipt_with_rpc_fallback(
    tx_hash: Any,
    primary_w3: Web3,
    fallback_w3: Optional[Web3] = None,
    timeout: float = DEFAULT_RECEIPT_TIMEOUT_SECONDS,
    log: Optional[logging.Logger] = None,
) -> Any:
    """Wait on the caller's RPC, then on the SDK RPC if that fails.

    A mined receipt with status 0 raises ContractError.
    """
    log = log or logger
    tx_hash = HexBytes(tx_hash)
    try:
        receipt = primary_w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
    except Exception as exc:
        if fallback_w3 is None or fallback_w3 is primary_w3:
            raise _receipt_error(exc, tx_hash) from exc
        log.warning(
            f"Receipt wait failed on signer RPC ({exc}); retrying on SDK RPC"
        )
        try:
            receipt = fallback_w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=timeout
            )
        except Exception as fallback_exc:
            raise _receipt_error(fallback_exc, tx_hash) from fallback_exc

    status = receipt.get("status") if hasattr(receipt, "get") else getattr(receipt, "status", None)
    if status is not None and int(status) == 0:
        raise ContractError(
            "Transaction reverted", {"transaction_hash": Web3.to_hex(tx_hash)}
        )
    return receipt


def _receipt_error(exc: Exception, tx_hash: HexBytes) -> Exception:
    details = {"transaction_hash": Web3.to_hex(tx_hash), "original_error": str(exc)}
    if isinstance(exc, TimeExhausted):
        return NetworkError("Timed out waiting for transaction receipt", details)
    return NetworkError(f"Failed to fetch transaction receipt: {exc}", details)


def transact(
    handles: ContractHandles,
    signer: Signer,
    fn_name: str,
    *args: Any,
    value: int = 0,
    log: Optional[logging.Logger] = None,
) -> Tuple[str, Any]:
    """Estimate, submit and confirm one contract call. Returns (tx hash, receipt)."""
    log = log or logger
    read_fn = getattr(handles.read.functions, fn_name)(*args)
    write_fn = getattr(handles.write.functions, fn_name)(*args)

    strategy = plan_gas(read_fn, signer.address, value, log)
    overrides = strategy.apply({"value": int(value)} if value else {})
    try:
        tx_hash = signer.send_transaction(write_fn, handles.write_w3, overrides)
    except Exception as exc:
        raise ContractError(
            f"Failed to submit {fn_name}: {exc}",
            {"function": fn_name, "contract": handles.address, "original_error": str(exc)},
        ) from exc

    receipt = wait_for_receipt_with_rpc_fallback(
        tx_hash, handles.write_w3, handles.read_w3, log=log
    )
    return Web3.to_hex(tx_hash), receipt
