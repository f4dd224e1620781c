"""
Safe wallet provisioning and module configuration.

A Safe used for TriggerX jobs is owned by exactly one key (the caller's)
with threshold 1, and has the chain's TriggerX module enabled so job
executors can act through it. Enabling the module is a Safe transaction
signed by the owner with the eth_sign flavour of Safe signatures.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Optional

from eth_abi import encode
from eth_utils import function_signature_to_4byte_selector, keccak
from web3 import Web3
from web3.logs import DISCARD

from .abis import SAFE_ABI, SAFE_FACTORY_ABI
from .config import ChainRegistry, default_chain_registry
from .constants import (
    ETH_SIGN_V_OFFSET,
    SAFE_SETTLE_DELAY_SECONDS,
    SAFE_TX_TYPEHASH,
    SAFE_WALLET_CREATED_EVENT,
    ZERO_ADDRESS,
)
from .errors import ContractError, PipelineResult, TriggerXError, create_error_response
from .rpc import SdkRpc, resolve_chain_id, transact
from .signer import Signer, preview_address, to_bytes
from .types import Operation

logger = logging.getLogger("triggerx.safe")

ENABLE_MODULE_SELECTOR = function_signature_to_4byte_selector("enableModule(address)")


def ensure_single_owner(safe_contract: Any, signer_address: str) -> None:
    """Require threshold 1 and the signer as the only owner."""
    try:
        owners = [str(o) for o in safe_contract.functions.getOwners().call()]
        threshold = int(safe_contract.functions.getThreshold().call())
    except Exception as exc:
        raise ContractError(
            f"Failed to read Safe owners: {exc}",
            {"safe_address": safe_contract.address, "original_error": str(exc)},
        ) from exc

    details = {
        "safe_address": safe_contract.address,
        "owners": owners,
        "threshold": threshold,
        "signer": signer_address,
    }
    if threshold != 1:
        raise ContractError("Safe threshold must be exactly 1", details)
    if len(owners) != 1:
        raise ContractError("Safe must have exactly one owner", details)
    if owners[0].lower() != signer_address.lower():
        raise ContractError("Signer is not the owner of the Safe", details)


def is_module_enabled(safe_contract: Any, module_address: str) -> bool:
    return bool(
        safe_contract.functions.isModuleEnabled(
            Web3.to_checksum_address(module_address)
        ).call()
    )


def encode_enable_module(module_address: str) -> bytes:
    return ENABLE_MODULE_SELECTOR + encode(
        ["address"], [Web3.to_checksum_address(module_address)]
    )


def safe_tx_struct_hash(
    to: str, value: int, data: bytes, operation: int, nonce: int
) -> bytes:
    """EIP-712 struct hash of a SafeTx with all refund parameters zeroed."""
    return keccak(
        encode(
            [
                "bytes32",
                "address",
                "uint256",
                "bytes32",
                "uint8",
                "uint256",
                "uint256",
                "uint256",
                "address",
                "address",
                "uint256",
            ],
            [
                SAFE_TX_TYPEHASH,
                Web3.to_checksum_address(to),
                int(value),
                keccak(data),
                int(operation),
                0,
                0,
                0,
                ZERO_ADDRESS,
                ZERO_ADDRESS,
                int(nonce),
            ],
        )
    )


def safe_tx_digest(domain_separator: bytes, safe_tx_hash: bytes) -> bytes:
    return keccak(b"\x19\x01" + to_bytes(domain_separator) + safe_tx_hash)


def compute_safe_tx_hash(
    safe_contract: Any,
    to: str,
    value: int,
    data: bytes,
    operation: int,
    nonce: int,
    log: Optional[logging.Logger] = None,
) -> bytes:
    """Digest to sign: on-chain getTransactionHash, else computed locally."""
    log = log or logger
    try:
        return to_bytes(
            safe_contract.functions.getTransactionHash(
                Web3.to_checksum_address(to),
                int(value),
                data,
                int(operation),
                0,
                0,
                0,
                ZERO_ADDRESS,
                ZERO_ADDRESS,
                int(nonce),
            ).call()
        )
    except Exception as exc:
        log.debug(f"getTransactionHash unavailable, hashing locally: {exc}")
    domain_separator = safe_contract.functions.domainSeparator().call()
    return safe_tx_digest(
        domain_separator, safe_tx_struct_hash(to, value, data, operation, nonce)
    )


def sign_safe_digest(signer: Signer, digest: bytes) -> bytes:
    """Personal-sign the digest and pack r | s | v with v shifted for eth_sign."""
    signed = signer.sign_message(digest)
    v = int(signed.v) + ETH_SIGN_V_OFFSET
    return int(signed.r).to_bytes(32, "big") + int(signed.s).to_bytes(32, "big") + bytes([v])


def enable_safe_module(
    safe_address: str,
    signer: Signer,
    module_address: str,
    rpc: SdkRpc,
    chain_id: Any,
    log: Optional[logging.Logger] = None,
) -> Optional[str]:
    """Enable ``module_address`` on the Safe; returns the tx hash or None if already enabled."""
    log = log or logger
    handles = rpc.contract_handles(safe_address, SAFE_ABI, signer, chain_id)
    if is_module_enabled(handles.read, module_address):
        log.info(f"Module {preview_address(module_address)} already enabled on Safe {preview_address(safe_address)}")
        return None

    nonce = int(handles.read.functions.nonce().call())
    data = encode_enable_module(module_address)
    digest = compute_safe_tx_hash(
        handles.read, handles.address, 0, data, Operation.CALL, nonce, log
    )
    signature = sign_safe_digest(signer, digest)
    log.info(f"Enabling module on Safe {preview_address(safe_address)} (safe nonce {nonce})")

    tx_hash, _receipt = transact(
        handles,
        signer,
        "execTransaction",
        handles.address,
        0,
        data,
        int(Operation.CALL),
        0,
        0,
        0,
        ZERO_ADDRESS,
        ZERO_ADDRESS,
        signature,
        log=log,
    )

    if not is_module_enabled(handles.read, module_address):
        raise ContractError(
            "Module verification failed after enableModule",
            {
                "safe_address": safe_address,
                "module_address": module_address,
                "transaction_hash": tx_hash,
            },
        )
    log.info(f"Module enabled on Safe {preview_address(safe_address)}: tx={tx_hash}")
    return tx_hash


def configure_safe(
    safe_address: str,
    signer: Signer,
    module_address: str,
    rpc: SdkRpc,
    chain_id: Any,
    log: Optional[logging.Logger] = None,
) -> Optional[str]:
    """Owner check followed by module enablement."""
    handles = rpc.contract_handles(safe_address, SAFE_ABI, signer, chain_id)
    ensure_single_owner(handles.read, signer.address)
    return enable_safe_module(safe_address, signer, module_address, rpc, chain_id, log)


def create_safe_wallet_for_user(
    signer: Signer,
    rpc: SdkRpc,
    chain_id: Any,
    log: Optional[logging.Logger] = None,
    settle_delay: float = SAFE_SETTLE_DELAY_SECONDS,
) -> str:
    """Deploy a Safe for the signer through the factory and enable the module."""
    log = log or logger
    registry = rpc.registry
    factory_address = registry.require(chain_id, "safe_factory")
    module_address = registry.require(chain_id, "safe_module")
    handles = rpc.contract_handles(factory_address, SAFE_FACTORY_ABI, signer, chain_id)

    tx_hash, receipt = transact(
        handles, signer, "createSafeWallet", signer.address, log=log
    )

    safe_address: Optional[str] = None
    event = getattr(handles.read.events, SAFE_WALLET_CREATED_EVENT)()
    for entry in event.process_receipt(receipt, errors=DISCARD):
        args = entry["args"]
        if str(args["user"]).lower() == signer.address.lower():
            safe_address = str(args["safeWallet"])
            break
    if safe_address is None:
        log.warning("SafeWalletCreated event missing; reading latestSafeWallet")
        safe_address = str(handles.read.functions.latestSafeWallet(signer.address).call())
    if not safe_address or safe_address.lower() == ZERO_ADDRESS:
        raise ContractError(
            "Safe wallet address not found after creation",
            {"transaction_hash": tx_hash, "user": signer.address},
        )
    log.info(f"Safe wallet created: {safe_address} (tx={tx_hash})")

    if settle_delay > 0:
        time.sleep(settle_delay)
    enable_safe_module(safe_address, signer, module_address, rpc, chain_id, log)
    return safe_address


async def create_safe_wallet(
    signer: Signer,
    registry: Optional[ChainRegistry] = None,
    chain_id: Any = None,
    *,
    rpc: Optional[SdkRpc] = None,
    logger: Optional[logging.Logger] = None,
) -> PipelineResult:
    log = logger or logging.getLogger("triggerx.safe")
    rpc = rpc or SdkRpc(registry or default_chain_registry(), log)
    try:
        resolved = resolve_chain_id(signer, chain_id)
        loop = asyncio.get_running_loop()
        safe_address = await loop.run_in_executor(
            None, create_safe_wallet_for_user, signer, rpc, resolved, log
        )
    except TriggerXError as exc:
        log.error(f"Safe wallet creation failed: {exc}")
        return create_error_response(exc)
    except Exception as exc:
        log.error(f"Safe wallet creation failed: {exc}")
        return create_error_response(
            ContractError(
                "Failed to create Safe wallet",
                {"original_error": str(exc), "user": signer.address},
            )
        )
    return PipelineResult.ok({"safe_address": safe_address})
