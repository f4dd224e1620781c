"""
Job cost prediction and the prepaid balance guard.

All amounts are integer wei. The backend quotes a fee per execution; the
prediction multiplies it by the number of executions the job will run.
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any, Optional, Tuple

from web3 import Web3

from .balance import deposit_eth_sync, read_eth_balance
from .client import TriggerXClient
from .constants import TOPUP_MARGIN_DENOMINATOR, TOPUP_MARGIN_NUMERATOR
from .errors import ApiError, BalanceError, TriggerXError
from .rpc import SdkRpc
from .signer import Signer, preview_address
from .types import BalanceCheck, FeeEstimate, JobInput, JobKind, ScheduleType

logger = logging.getLogger("triggerx.fees")

_MISSING = object()


def count_executions(job: JobInput) -> int:
    """ceil(time_frame / interval) for interval schedules, else 1."""
    interval = 0
    if job.kind == JobKind.TIME and job.schedule_type == ScheduleType.INTERVAL:
        interval = job.time_interval or 0
    elif job.kind == JobKind.CUSTOM_SCRIPT:
        interval = job.time_interval or 0
    if interval <= 0:
        return 1
    return max(1, math.ceil(job.time_frame / interval))


def topup_amount(prediction_wei: int) -> int:
    """ceil(prediction * 1.2) in integer arithmetic."""
    return (
        prediction_wei * TOPUP_MARGIN_NUMERATOR + TOPUP_MARGIN_DENOMINATOR - 1
    ) // TOPUP_MARGIN_DENOMINATOR


def _lookup(response: Any, key: str) -> Any:
    if not isinstance(response, dict):
        return _MISSING
    if key in response and response[key] is not None:
        return response[key]
    data = response.get("data")
    if isinstance(data, dict) and data.get(key) is not None:
        return data[key]
    return _MISSING


def _to_wei(raw: Any) -> int:
    if isinstance(raw, bool):
        raise ValueError("boolean is not a fee amount")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return int(math.floor(raw))
    if isinstance(raw, str):
        return int(raw.strip())
    raise ValueError(f"unsupported fee type {type(raw).__name__}")


def parse_fee_wei(response: Any) -> Tuple[int, Any]:
    """Return (fee wei, raw total_fee) from a /api/fees response.

    ``current_total_fee`` wins over ``total_fee``; either may sit at the
    top level or under ``data`` and may be a number or a decimal string.
    """
    raw = _lookup(response, "current_total_fee")
    if raw is _MISSING:
        raw = _lookup(response, "total_fee")
    if raw is _MISSING:
        raise ApiError(
            "Invalid response from /api/fees: missing total fee", {"response": response}
        )
    try:
        fee_wei = _to_wei(raw)
    except ValueError as exc:
        raise ApiError(
            f"Invalid total fee in /api/fees response: {exc}", {"total_fee": raw}
        ) from exc
    if fee_wei < 0:
        raise ApiError("Negative total fee in /api/fees response", {"total_fee": raw})
    max_total_fee_raw = _lookup(response, "total_fee")
    return fee_wei, (None if max_total_fee_raw is _MISSING else max_total_fee_raw)


async def predict_job_cost(
    client: TriggerXClient,
    job: JobInput,
    chain_id: str,
    task_definition_id: int,
    log: Optional[logging.Logger] = None,
) -> FeeEstimate:
    log = log or logger
    params = {
        "ipfs_url": job.dynamic_arguments_script_url or "",
        "task_definition_id": int(task_definition_id),
        "target_chain_id": str(chain_id),
        "target_contract_address": job.target_contract_address or "",
        "target_function": job.target_function or "",
        "abi": job.abi or "",
        "args": json.dumps(job.arguments) if job.arguments else "",
    }
    try:
        response = await client.get("/api/fees", params=params)
    except TriggerXError as exc:
        raise ApiError(
            "Failed to fetch job cost prediction",
            {"original_error": exc.message, "task_definition_id": task_definition_id},
            exc.http_status,
        ) from exc

    fee_wei, max_total_fee_raw = parse_fee_wei(response)
    executions = count_executions(job)
    prediction = fee_wei * executions
    log.info(
        f"Fee predicted: {fee_wei} wei x {executions} executions = "
        f"{Web3.from_wei(prediction, 'ether')} ETH"
    )
    return FeeEstimate(
        fee_per_execution_wei=fee_wei,
        executions=executions,
        job_cost_prediction_wei=prediction,
        max_total_fee_raw=max_total_fee_raw,
    )


def guard_balance(
    rpc: SdkRpc,
    signer: Signer,
    chain_id: str,
    prediction_wei: int,
    auto_topup: bool,
    log: Optional[logging.Logger] = None,
) -> BalanceCheck:
    """Make sure the escrowed balance covers the prediction, topping up if allowed."""
    log = log or logger
    try:
        current = read_eth_balance(rpc, signer.address, chain_id)
    except TriggerXError:
        raise
    except Exception as exc:
        raise BalanceError(
            "Failed to check ETH balance",
            {"original_error": str(exc), "user_address": signer.address},
        ) from exc

    if current >= prediction_wei:
        log.info(
            f"Balance {current} wei covers predicted cost {prediction_wei} wei; no top-up"
        )
        return BalanceCheck(required_wei=prediction_wei, current_balance_wei=current)

    if not auto_topup:
        raise BalanceError(
            f"Insufficient ETH balance. Job cost prediction is {prediction_wei} wei, "
            f"current balance is {current} wei. Set auto_topup=True to deposit automatically.",
            {
                "required": prediction_wei,
                "current": current,
                "auto_topup_enabled": False,
            },
        )

    deposit = topup_amount(prediction_wei)
    log.info(
        f"Topping up {preview_address(signer.address)} with {deposit} wei "
        f"(balance {current}, required {prediction_wei})"
    )
    try:
        tx_hash = deposit_eth_sync(rpc, signer, chain_id, deposit, log)
    except Exception as exc:
        raise BalanceError(
            "Failed to deposit ETH balance",
            {
                "original_error": str(exc),
                "required": prediction_wei,
                "deposit": deposit,
            },
        ) from exc
    return BalanceCheck(
        required_wei=prediction_wei,
        current_balance_wei=current,
        deposited_wei=deposit,
        deposit_tx_hash=tx_hash,
    )
