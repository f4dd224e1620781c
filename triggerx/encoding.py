"""
Argument encoding for job registry calls.

Job data is an ABI-encoded tuple whose shape depends on the job-type code.
Safe-mode static jobs encode their sub-transactions either as a direct
module call (one transaction) or as a packed ``multiSend(bytes)`` batch.
"""

from __future__ import annotations

from typing import Any, List, Optional, Sequence

from eth_abi import decode, encode
from eth_utils import function_signature_to_4byte_selector, keccak, to_checksum_address

from .constants import MULTISEND_FUNCTION, ZERO_HASH
from .signer import to_bytes
from .types import ArgType, JobKind, Operation, SafeTransaction

CUSTOM_SCRIPT_JOB_TYPE = 7

_KIND_BASE = {
    JobKind.TIME: 1,
    JobKind.EVENT: 2,
    JobKind.CONDITION: 3,
}

MULTISEND_SELECTOR = function_signature_to_4byte_selector(MULTISEND_FUNCTION)


def job_type_code(kind: JobKind, arg_type: ArgType) -> int:
    """1..6 from (base * 2 - 1) static / (base * 2) dynamic; 7 for custom scripts."""
    if kind == JobKind.CUSTOM_SCRIPT:
        return CUSTOM_SCRIPT_JOB_TYPE
    base = _KIND_BASE[kind]
    return base * 2 if arg_type == ArgType.DYNAMIC else base * 2 - 1


def ipfs_hash(script_url: Optional[str]) -> bytes:
    if not script_url:
        return ZERO_HASH
    return keccak(text=script_url)


def encode_job_data(
    job_type: int,
    *,
    time_interval: int = 0,
    recurring: bool = False,
    script_url: Optional[str] = None,
    language: str = "",
) -> bytes:
    if job_type == 1:
        return encode(["uint256"], [int(time_interval)])
    if job_type == 2:
        return encode(["uint256", "bytes32"], [int(time_interval), ipfs_hash(script_url)])
    if job_type in (3, 5):
        return encode(["bool"], [bool(recurring)])
    if job_type in (4, 6):
        return encode(["bool", "bytes32"], [bool(recurring), ipfs_hash(script_url)])
    if job_type == CUSTOM_SCRIPT_JOB_TYPE:
        return encode(
            ["uint256", "bytes32", "string"],
            [int(time_interval), ipfs_hash(script_url), language or ""],
        )
    raise ValueError(f"Unsupported job type code: {job_type}")


def _check_operation(operation: Any) -> int:
    if isinstance(operation, bool) or operation not in (Operation.CALL, Operation.DELEGATECALL):
        raise ValueError(
            f"Invalid Safe transaction operation: {operation}. "
            "Expected 0 (CALL) or 1 (DELEGATECALL)."
        )
    return int(operation)


def pack_safe_transaction(tx: SafeTransaction) -> bytes:
    """operation(1) | to(20) | value(32) | data length(32) | data."""
    operation = _check_operation(tx.operation)
    data = to_bytes(tx.data)
    return (
        operation.to_bytes(1, "big")
        + to_bytes(tx.to.lower()).rjust(20, b"\x00")
        + int(tx.value).to_bytes(32, "big")
        + len(data).to_bytes(32, "big")
        + data
    )


def encode_multisend(transactions: Sequence[SafeTransaction]) -> bytes:
    """Calldata for ``multiSend(bytes)`` over the packed transactions, in order."""
    for tx in transactions:
        _check_operation(tx.operation)
    packed = b"".join(pack_safe_transaction(tx) for tx in transactions)
    return MULTISEND_SELECTOR + encode(["bytes"], [packed])


def decode_multisend(calldata: Any) -> List[SafeTransaction]:
    raw = to_bytes(calldata)
    if raw[:4] != MULTISEND_SELECTOR:
        raise ValueError("Calldata is not a multiSend(bytes) call")
    (packed,) = decode(["bytes"], raw[4:])

    transactions: List[SafeTransaction] = []
    offset = 0
    while offset < len(packed):
        if offset + 85 > len(packed):
            raise ValueError(f"Truncated multisend entry at byte {offset}")
        operation = packed[offset]
        to = to_checksum_address(packed[offset + 1 : offset + 21])
        value = int.from_bytes(packed[offset + 21 : offset + 53], "big")
        length = int.from_bytes(packed[offset + 53 : offset + 85], "big")
        data = packed[offset + 85 : offset + 85 + length]
        if len(data) != length:
            raise ValueError(f"Truncated multisend data at byte {offset}")
        transactions.append(
            SafeTransaction(
                to=to, value=str(value), data="0x" + data.hex(), operation=operation
            )
        )
        offset += 85 + length
    return transactions


def build_safe_arguments(
    safe_address: str,
    transactions: Sequence[SafeTransaction],
    multisend_address: Optional[str] = None,
) -> List[Any]:
    """Static arguments for the module's execJobFromHub entry point.

    One transaction is called directly; several are batched through the
    multisend contract with DELEGATECALL.
    """
    for tx in transactions:
        _check_operation(tx.operation)
    if len(transactions) == 1:
        tx = transactions[0]
        return [safe_address, tx.to, tx.value, tx.data, int(Operation.CALL)]
    if not multisend_address:
        raise ValueError("A multisend address is required for batched Safe transactions")
    return [
        safe_address,
        multisend_address,
        "0",
        "0x" + encode_multisend(transactions).hex(),
        int(Operation.DELEGATECALL),
    ]
