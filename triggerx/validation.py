"""
Job input validation.

Every check here is pure: no RPC or HTTP access happens, so a malformed
job is rejected before the pipeline touches the network. The first
violation raises ValidationError carrying the offending field name.
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import urlparse

from eth_utils import is_address

from .errors import ValidationError
from .types import (
    ConditionBasedJobInput,
    ConditionType,
    CustomScriptJobInput,
    EventBasedJobInput,
    JobInput,
    JobKind,
    Operation,
    SafeTransaction,
    ScheduleType,
    TimeBasedJobInput,
)


def _is_non_empty(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def is_valid_url(value: Any) -> bool:
    if not _is_non_empty(value):
        return False
    parsed = urlparse(value.strip())
    return bool(parsed.scheme) and bool(parsed.netloc or parsed.path)


_HEX_BODY = re.compile(r"(?:[0-9a-fA-F]{2})*")


def _is_hex(value: str) -> bool:
    return _HEX_BODY.fullmatch(value[2:]) is not None


def canonical_type(param: Dict[str, Any]) -> str:
    """Render an ABI parameter type, expanding tuples into (t1,t2,...)."""
    abi_type = str(param.get("type", ""))
    if abi_type.startswith("tuple"):
        inner = ",".join(canonical_type(c) for c in param.get("components") or [])
        return f"({inner}){abi_type[len('tuple'):]}"
    return abi_type


def function_signature(item: Dict[str, Any]) -> str:
    types = ",".join(canonical_type(p) for p in item.get("inputs") or [])
    return f"{item.get('name', '')}({types})"


def parse_abi(abi: Any) -> Optional[List[Dict[str, Any]]]:
    if isinstance(abi, list):
        return abi
    if not _is_non_empty(abi):
        return None
    try:
        parsed = json.loads(abi)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, list) else None


def find_function(abi: Sequence[Dict[str, Any]], target: str) -> Optional[Dict[str, Any]]:
    """Match ``target`` by full signature, or by bare name when unambiguous."""
    functions = [
        item for item in abi if isinstance(item, dict) and item.get("type") == "function"
    ]
    target = target.replace(" ", "")
    for item in functions:
        if function_signature(item) == target:
            return item
    if "(" not in target:
        named = [item for item in functions if item.get("name") == target]
        if len(named) == 1:
            return named[0]
    return None


def _validate_common(job: JobInput) -> None:
    if not _is_non_empty(job.job_title):
        raise ValidationError("job_title", "Job title is required.")
    if isinstance(job.time_frame, bool) or not isinstance(job.time_frame, int) or job.time_frame <= 0:
        raise ValidationError(
            "time_frame", "Timeframe must be a positive number of seconds."
        )
    if not _is_non_empty(job.timezone):
        raise ValidationError("timezone", "Timezone is required.")
    if not _is_non_empty(job.chain_id):
        raise ValidationError("chain_id", "Chain ID is required.")


def _validate_time(job: TimeBasedJobInput) -> None:
    if job.schedule_type == ScheduleType.INTERVAL:
        interval = job.time_interval
        if interval is None or interval <= 0:
            raise ValidationError(
                "time_interval",
                "time_interval is required and must be > 0 when schedule_type is interval.",
            )
        if interval > job.time_frame:
            raise ValidationError(
                "time_interval", "Time interval cannot exceed the timeframe."
            )
    elif job.schedule_type == ScheduleType.CRON:
        if not _is_non_empty(job.cron_expression):
            raise ValidationError(
                "cron_expression", "cron_expression is required when schedule_type is cron."
            )
    elif job.schedule_type == ScheduleType.SPECIFIC:
        if not _is_non_empty(job.specific_schedule):
            raise ValidationError(
                "specific_schedule",
                "specific_schedule is required when schedule_type is specific.",
            )


def _validate_event(job: EventBasedJobInput) -> None:
    if not _is_non_empty(job.trigger_chain_id):
        raise ValidationError("trigger_chain_id", "Trigger chain ID is required.")
    if not _is_non_empty(job.trigger_contract_address):
        raise ValidationError(
            "trigger_contract_address", "Trigger contract address is required."
        )
    if not is_address(job.trigger_contract_address):
        raise ValidationError(
            "trigger_contract_address", "Invalid trigger contract address."
        )
    if not _is_non_empty(job.trigger_event):
        raise ValidationError("trigger_event", "Trigger event is required.")


def _validate_condition(job: ConditionBasedJobInput) -> None:
    if not _is_non_empty(job.value_source_type):
        raise ValidationError("value_source_type", "Value source type is required.")
    if not is_valid_url(job.value_source_url):
        raise ValidationError(
            "value_source_url", "Source URL is required and must be valid."
        )
    if job.condition_type == ConditionType.BETWEEN:
        if job.upper_limit is None or job.lower_limit is None:
            raise ValidationError(
                "upper_limit", "Both upper and lower limits are required."
            )
    elif job.upper_limit is None:
        raise ValidationError("upper_limit", "Value is required.")


def _validate_custom_script(job: CustomScriptJobInput) -> None:
    if not _is_non_empty(job.language):
        raise ValidationError("language", "Script language is required.")
    if job.time_interval is None or job.time_interval < 0:
        raise ValidationError("time_interval", "time_interval must be >= 0.")


def validate_safe_transactions(transactions: Optional[Sequence[SafeTransaction]]) -> None:
    if not transactions:
        raise ValidationError(
            "safe_transactions",
            "safe_transactions must contain at least one transaction for static Safe jobs.",
        )
    for index, tx in enumerate(transactions):
        if not isinstance(tx, SafeTransaction):
            raise ValidationError(
                "safe_transactions", f"Transaction at index {index} is invalid."
            )
        if not _is_non_empty(tx.to) or not is_address(tx.to):
            raise ValidationError(
                "safe_transactions",
                f"Transaction at index {index}: 'to' must be a valid Ethereum address.",
            )
        if not isinstance(tx.value, str) or not (tx.value.isascii() and tx.value.isdecimal()):
            raise ValidationError(
                "safe_transactions",
                f"Transaction at index {index}: 'value' must be a decimal wei string.",
            )
        if not isinstance(tx.data, str) or not tx.data.startswith("0x") or not _is_hex(tx.data):
            raise ValidationError(
                "safe_transactions",
                f"Transaction at index {index}: 'data' must be a hex string starting with 0x.",
            )
        if tx.operation not in (Operation.CALL, Operation.DELEGATECALL):
            raise ValidationError(
                "safe_transactions",
                f"Transaction at index {index}: operation must be 0 (CALL) or 1 (DELEGATECALL).",
            )


def _validate_script_url(job: JobInput) -> None:
    if not is_valid_url(job.dynamic_arguments_script_url):
        raise ValidationError(
            "dynamic_arguments_script_url",
            "Dynamic arguments script URL is required and must be valid for dynamic jobs.",
        )


def _reject_script_url(job: JobInput) -> None:
    if job.dynamic_arguments_script_url:
        raise ValidationError(
            "dynamic_arguments_script_url",
            "Static jobs must not set dynamic_arguments_script_url.",
        )


def _validate_target(job: JobInput) -> None:
    if not _is_non_empty(job.target_contract_address):
        raise ValidationError(
            "target_contract_address", "Target contract address is required."
        )
    if not is_address(job.target_contract_address):
        raise ValidationError(
            "target_contract_address", "Invalid target contract address."
        )
    if not _is_non_empty(job.abi):
        raise ValidationError("abi", "Contract ABI must be provided.")
    if not _is_non_empty(job.target_function):
        raise ValidationError("target_function", "Target function must be selected.")


def _validate_static_arguments(job: JobInput) -> None:
    abi = parse_abi(job.abi)
    if abi is None:
        raise ValidationError("abi", "Contract ABI must be a valid JSON array.")
    fn_item = find_function(abi, job.target_function)
    if fn_item is None:
        raise ValidationError(
            "target_function",
            f"Function {job.target_function} not found in the contract ABI.",
        )
    inputs = fn_item.get("inputs") or []
    args = job.arguments or []
    if len(args) != len(inputs):
        raise ValidationError(
            "arguments",
            f"{function_signature(fn_item)} expects {len(inputs)} arguments, got {len(args)}.",
            {"expected": len(inputs), "received": len(args)},
        )
    for index, arg in enumerate(args):
        if arg is None or (isinstance(arg, str) and not arg.strip()):
            raise ValidationError(
                "arguments", f"Argument at index {index} must not be empty."
            )


def _validate_wallet_mode(job: JobInput) -> None:
    if job.is_dynamic and job.arguments:
        raise ValidationError(
            "arguments",
            "Cannot provide both static arguments and dynamic_arguments_script_url.",
        )

    if job.is_safe_mode:
        if not _is_non_empty(job.safe_address) or not is_address(job.safe_address):
            raise ValidationError(
                "safe_address",
                "A valid safe_address is required in Safe wallet mode. Create the Safe first.",
            )
        if job.is_dynamic:
            if job.safe_transactions:
                raise ValidationError(
                    "safe_transactions",
                    "Cannot provide both dynamic_arguments_script_url and safe_transactions.",
                )
            _validate_script_url(job)
        else:
            _reject_script_url(job)
            validate_safe_transactions(job.safe_transactions)
        return

    # Custom scripts carry their own logic; the target contract is optional.
    if job.kind == JobKind.CUSTOM_SCRIPT:
        if job.target_contract_address and not is_address(job.target_contract_address):
            raise ValidationError(
                "target_contract_address", "Invalid target contract address."
            )
        _validate_script_url(job)
        return

    _validate_target(job)
    if job.is_dynamic:
        _validate_script_url(job)
    else:
        _reject_script_url(job)
        _validate_static_arguments(job)


_VARIANT_VALIDATORS = {
    JobKind.TIME: _validate_time,
    JobKind.EVENT: _validate_event,
    JobKind.CONDITION: _validate_condition,
    JobKind.CUSTOM_SCRIPT: _validate_custom_script,
}


def validate_job_input(job: JobInput) -> None:
    """Raise ValidationError on the first rule the job input breaks."""
    kind = getattr(job, "kind", None)
    validator = _VARIANT_VALIDATORS.get(kind)
    if validator is None:
        raise ValidationError("kind", f"Unsupported job input type: {type(job).__name__}")
    _validate_common(job)
    validator(job)
    _validate_wallet_mode(job)
