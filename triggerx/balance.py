"""
Fee registry balance operations.

``check_eth_balance``, ``deposit_eth`` and ``withdraw_eth`` return a
PipelineResult. The TG helpers are the older token-denominated surface and
raise on failure like they always have.
"""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import Any, Dict, Optional, Union

from web3 import Web3

from .abis import GAS_REGISTRY_ABI
from .config import ChainRegistry, default_chain_registry
from .constants import TG_PRICE_WEI
from .errors import (
    PipelineResult,
    TriggerXError,
    ValidationError,
    classify_exception,
    create_error_response,
)
from .rpc import SdkRpc, resolve_chain_id, transact
from .signer import Signer, preview_address

logger = logging.getLogger("triggerx.balance")


def _rpc_or_default(
    rpc: Optional[SdkRpc], registry: Optional[ChainRegistry], log: logging.Logger
) -> SdkRpc:
    return rpc or SdkRpc(registry or default_chain_registry(), log)


def read_eth_balance(rpc: SdkRpc, user_address: str, chain_id: Any) -> int:
    """Escrowed ETH balance (wei) of ``user_address``, read through the SDK RPC."""
    address = rpc.registry.require(chain_id, "gas_registry")
    contract = rpc.web3_for(chain_id).eth.contract(
        address=Web3.to_checksum_address(address), abi=GAS_REGISTRY_ABI
    )
    return int(
        contract.functions.getBalance(Web3.to_checksum_address(user_address)).call()
    )


def deposit_eth_sync(
    rpc: SdkRpc,
    signer: Signer,
    chain_id: Any,
    amount_wei: int,
    log: Optional[logging.Logger] = None,
) -> str:
    log = log or logger
    handles = rpc.contract_handles(
        rpc.registry.require(chain_id, "gas_registry"), GAS_REGISTRY_ABI, signer, chain_id
    )
    tx_hash, _receipt = transact(
        handles, signer, "depositETH", int(amount_wei), value=int(amount_wei), log=log
    )
    log.info(
        f"Deposited {Web3.from_wei(int(amount_wei), 'ether')} ETH for "
        f"{preview_address(signer.address)}: tx={tx_hash}"
    )
    return tx_hash


def withdraw_eth_sync(
    rpc: SdkRpc,
    signer: Signer,
    chain_id: Any,
    amount_wei: int,
    log: Optional[logging.Logger] = None,
) -> str:
    log = log or logger
    handles = rpc.contract_handles(
        rpc.registry.require(chain_id, "gas_registry"), GAS_REGISTRY_ABI, signer, chain_id
    )
    tx_hash, _receipt = transact(
        handles, signer, "withdrawETHBalance", int(amount_wei), log=log
    )
    log.info(f"Withdrew {amount_wei} wei for {preview_address(signer.address)}: tx={tx_hash}")
    return tx_hash


def _check_amount(amount_wei: Any, field: str) -> int:
    if isinstance(amount_wei, bool) or not isinstance(amount_wei, int) or amount_wei <= 0:
        raise ValidationError(field, f"{field} must be a positive integer amount of wei")
    return amount_wei


async def check_eth_balance(
    user_address: str,
    chain_id: Any,
    *,
    registry: Optional[ChainRegistry] = None,
    rpc: Optional[SdkRpc] = None,
    logger: Optional[logging.Logger] = None,
) -> PipelineResult:
    log = logger or logging.getLogger("triggerx.balance")
    if not isinstance(user_address, str) or not user_address.strip():
        return create_error_response(
            ValidationError("user_address", "User address is required and must be a string")
        )
    if chain_id is None or not str(chain_id).strip():
        return create_error_response(ValidationError("chain_id", "Chain ID is required"))

    sdk_rpc = _rpc_or_default(rpc, registry, log)
    try:
        loop = asyncio.get_running_loop()
        balance_wei = await loop.run_in_executor(
            None, read_eth_balance, sdk_rpc, user_address, str(chain_id)
        )
    except Exception as exc:
        log.error(f"Error checking ETH balance: {exc}")
        return create_error_response(
            classify_exception(exc, "Failed to check ETH balance", {"user_address": user_address})
        )
    return PipelineResult.ok(
        {
            "eth_balance_wei": balance_wei,
            "eth_balance": str(Web3.from_wei(balance_wei, "ether")),
        }
    )


async def deposit_eth(
    amount_wei: int,
    signer: Signer,
    *,
    chain_id: Any = None,
    registry: Optional[ChainRegistry] = None,
    rpc: Optional[SdkRpc] = None,
    logger: Optional[logging.Logger] = None,
) -> PipelineResult:
    log = logger or logging.getLogger("triggerx.balance")
    sdk_rpc = _rpc_or_default(rpc, registry, log)
    try:
        amount = _check_amount(amount_wei, "amount_wei")
        resolved = resolve_chain_id(signer, chain_id)
        loop = asyncio.get_running_loop()
        tx_hash = await loop.run_in_executor(
            None, deposit_eth_sync, sdk_rpc, signer, resolved, amount, log
        )
    except TriggerXError as exc:
        log.error(f"ETH deposit failed: {exc}")
        return create_error_response(exc)
    except Exception as exc:
        log.error(f"ETH deposit failed: {exc}")
        return create_error_response(classify_exception(exc, "Failed to deposit ETH"))
    return PipelineResult.ok({"transaction_hash": tx_hash, "amount_wei": amount})


async def withdraw_eth(
    signer: Signer,
    amount_wei: int,
    *,
    chain_id: Any = None,
    registry: Optional[ChainRegistry] = None,
    rpc: Optional[SdkRpc] = None,
    logger: Optional[logging.Logger] = None,
) -> PipelineResult:
    log = logger or logging.getLogger("triggerx.balance")
    sdk_rpc = _rpc_or_default(rpc, registry, log)
    try:
        amount = _check_amount(amount_wei, "amount_wei")
        resolved = resolve_chain_id(signer, chain_id)
        loop = asyncio.get_running_loop()
        tx_hash = await loop.run_in_executor(
            None, withdraw_eth_sync, sdk_rpc, signer, resolved, amount, log
        )
    except TriggerXError as exc:
        log.error(f"ETH withdrawal failed: {exc}")
        return create_error_response(exc)
    except Exception as exc:
        log.error(f"ETH withdrawal failed: {exc}")
        return create_error_response(classify_exception(exc, "Failed to withdraw ETH"))
    return PipelineResult.ok({"transaction_hash": tx_hash, "amount_wei": amount})


def _legacy_handles(rpc: SdkRpc, signer: Signer, chain_id: Any):
    resolved = resolve_chain_id(signer, chain_id)
    return rpc.contract_handles(
        rpc.registry.require(resolved, "gas_registry"), GAS_REGISTRY_ABI, signer, resolved
    )


async def check_tg_balance(
    signer: Signer,
    *,
    chain_id: Any = None,
    registry: Optional[ChainRegistry] = None,
    rpc: Optional[SdkRpc] = None,
) -> Dict[str, Any]:
    """Legacy TG balance from ``balances(address)``; raises on failure."""
    sdk_rpc = _rpc_or_default(rpc, registry, logger)

    def _read() -> Dict[str, Any]:
        handles = _legacy_handles(sdk_rpc, signer, chain_id)
        eth_spent, tg_balance_wei = handles.read.functions.balances(signer.address).call()
        return {
            "eth_spent_wei": int(eth_spent),
            "tg_balance_wei": int(tg_balance_wei),
            "tg_balance": str(Web3.from_wei(int(tg_balance_wei), "ether")),
        }

    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, _read)


async def topup_tg(
    tg_amount: Union[int, float, str, Decimal],
    signer: Signer,
    *,
    chain_id: Any = None,
    registry: Optional[ChainRegistry] = None,
    rpc: Optional[SdkRpc] = None,
) -> str:
    """Buy TG at 0.001 ETH each via ``purchaseTG``; returns the tx hash."""
    amount_wei = int(Decimal(str(tg_amount)) * TG_PRICE_WEI)
    if amount_wei <= 0:
        raise ValidationError("tg_amount", "TG amount must be positive")
    sdk_rpc = _rpc_or_default(rpc, registry, logger)

    def _purchase() -> str:
        handles = _legacy_handles(sdk_rpc, signer, chain_id)
        tx_hash, _receipt = transact(
            handles, signer, "purchaseTG", amount_wei, value=amount_wei, log=logger
        )
        return tx_hash

    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, _purchase)


async def withdraw_tg(
    signer: Signer,
    amount_tg: Union[int, float, str, Decimal],
    *,
    chain_id: Any = None,
    registry: Optional[ChainRegistry] = None,
    rpc: Optional[SdkRpc] = None,
) -> str:
    """Redeem TG for ETH via ``claimETHForTG`` (amount in 18-decimal TG units)."""
    amount_wei = int(Web3.to_wei(Decimal(str(amount_tg)), "ether"))
    if amount_wei <= 0:
        raise ValidationError("amount_tg", "TG amount must be positive")
    sdk_rpc = _rpc_or_default(rpc, registry, logger)

    def _claim() -> str:
        handles = _legacy_handles(sdk_rpc, signer, chain_id)
        tx_hash, _receipt = transact(handles, signer, "claimETHForTG", amount_wei, log=logger)
        return tx_hash

    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, _claim)
