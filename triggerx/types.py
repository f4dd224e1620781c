"""
Data model for TriggerX jobs.

Job inputs form an explicit tagged union: every concrete input class
carries a ``kind`` tag, decided once by the class the caller constructs.
The pipeline dispatches on that tag instead of probing for fields.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum, IntEnum
from typing import Any, ClassVar, Dict, List, Optional, Union


class JobKind(str, Enum):
    TIME = "time"
    EVENT = "event"
    CONDITION = "condition"
    CUSTOM_SCRIPT = "custom_script"


class ArgType(IntEnum):
    STATIC = 1
    DYNAMIC = 2

    @classmethod
    def coerce(cls, value: Union["ArgType", int, str, None]) -> "ArgType":
        """Accept 1/2, 'static'/'dynamic' or an ArgType."""
        if isinstance(value, ArgType):
            return value
        if value is None:
            return cls.STATIC
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in ("dynamic", "2"):
                return cls.DYNAMIC
            if lowered in ("static", "1"):
                return cls.STATIC
            raise ValueError(f"Unknown argument type: {value!r}")
        return cls(int(value))


class WalletMode(str, Enum):
    REGULAR = "regular"
    SAFE = "safe"


class ScheduleType(str, Enum):
    INTERVAL = "interval"
    CRON = "cron"
    SPECIFIC = "specific"


class ConditionType(str, Enum):
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    BETWEEN = "between"
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    GREATER_EQUAL = "greater_equal"
    LESS_EQUAL = "less_equal"


class Operation(IntEnum):
    """Safe transaction operation."""

    CALL = 0
    DELEGATECALL = 1


@dataclass
class SafeTransaction:
    """One sub-transaction executed by a Safe-mode job."""

    to: str
    value: str = "0"
    data: str = "0x"
    operation: int = Operation.CALL

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "SafeTransaction":
        return cls(
            to=raw["to"],
            value=str(raw.get("value", "0")),
            data=raw.get("data") or "0x",
            operation=int(raw.get("operation", Operation.CALL)),
        )


@dataclass(kw_only=True)
class JobInputBase:
    """Fields shared by every job kind."""

    kind: ClassVar[JobKind]

    job_title: str
    time_frame: int
    timezone: str
    chain_id: str
    target_contract_address: Optional[str] = None
    target_function: Optional[str] = None
    abi: Optional[str] = None
    arguments: Optional[List[str]] = None
    dynamic_arguments_script_url: Optional[str] = None
    arg_type: ArgType = ArgType.STATIC
    wallet_mode: WalletMode = WalletMode.REGULAR
    safe_address: Optional[str] = None
    safe_name: Optional[str] = None
    safe_transactions: Optional[List[SafeTransaction]] = None
    auto_topup: bool = False
    is_imua: bool = True

    def __post_init__(self) -> None:
        self.arg_type = ArgType.coerce(self.arg_type)
        self.wallet_mode = WalletMode(self.wallet_mode)
        if self.chain_id is not None:
            self.chain_id = str(self.chain_id)
        if self.safe_transactions:
            self.safe_transactions = [
                tx if isinstance(tx, SafeTransaction) else SafeTransaction.from_dict(tx)
                for tx in self.safe_transactions
            ]

    @property
    def is_dynamic(self) -> bool:
        return self.arg_type == ArgType.DYNAMIC

    @property
    def is_safe_mode(self) -> bool:
        return self.wallet_mode == WalletMode.SAFE


@dataclass(kw_only=True)
class TimeBasedJobInput(JobInputBase):
    kind: ClassVar[JobKind] = JobKind.TIME

    schedule_type: ScheduleType = ScheduleType.INTERVAL
    time_interval: Optional[int] = None
    cron_expression: Optional[str] = None
    specific_schedule: Optional[str] = None

    def __post_init__(self) -> None:
        super().__post_init__()
        self.schedule_type = ScheduleType(self.schedule_type)


@dataclass(kw_only=True)
class EventBasedJobInput(JobInputBase):
    kind: ClassVar[JobKind] = JobKind.EVENT

    trigger_chain_id: str
    trigger_contract_address: str
    trigger_event: str
    recurring: bool = False


@dataclass(kw_only=True)
class ConditionBasedJobInput(JobInputBase):
    kind: ClassVar[JobKind] = JobKind.CONDITION

    condition_type: ConditionType
    value_source_type: str
    value_source_url: str
    upper_limit: Optional[float] = None
    lower_limit: Optional[float] = None
    recurring: bool = False

    def __post_init__(self) -> None:
        super().__post_init__()
        self.condition_type = ConditionType(self.condition_type)


@dataclass(kw_only=True)
class CustomScriptJobInput(JobInputBase):
    """A job whose whole behaviour is an off-chain script; always dynamic."""

    kind: ClassVar[JobKind] = JobKind.CUSTOM_SCRIPT

    language: str
    time_interval: int = 0
    recurring: bool = False

    def __post_init__(self) -> None:
        super().__post_init__()
        self.arg_type = ArgType.DYNAMIC


JobInput = Union[
    TimeBasedJobInput, EventBasedJobInput, ConditionBasedJobInput, CustomScriptJobInput
]


@dataclass
class CreateJobData:
    """Backend job record assembled at the end of the creation pipeline."""

    job_id: str
    user_address: str
    ether_balance: int
    token_balance: int
    job_title: str
    task_definition_id: int
    time_frame: int
    recurring: bool
    job_cost_prediction: float
    timezone: str
    created_chain_id: str
    target_chain_id: str
    target_contract_address: str
    target_function: str
    abi: str
    arg_type: int
    custom: bool = True
    schedule_type: Optional[str] = None
    time_interval: Optional[int] = None
    cron_expression: Optional[str] = None
    specific_schedule: Optional[str] = None
    trigger_chain_id: Optional[str] = None
    trigger_contract_address: Optional[str] = None
    trigger_event: Optional[str] = None
    condition_type: Optional[str] = None
    upper_limit: Optional[float] = None
    lower_limit: Optional[float] = None
    value_source_type: Optional[str] = None
    value_source_url: Optional[str] = None
    arguments: Optional[List[Any]] = None
    dynamic_arguments_script_url: Optional[str] = None
    is_imua: bool = True
    is_safe: bool = False
    safe_name: str = ""
    safe_address: str = ""
    language: str = ""

    def to_payload(self) -> Dict[str, Any]:
        """JSON-ready dict; unset optional fields are omitted."""
        payload = {key: value for key, value in asdict(self).items() if value is not None}
        payload["ether_balance"] = int(self.ether_balance)
        payload["token_balance"] = int(self.token_balance)
        if self.arguments is not None:
            payload["arguments"] = [
                arg if isinstance(arg, (str, int, float, bool)) else str(arg)
                for arg in self.arguments
            ]
        return payload


@dataclass
class FeeEstimate:
    """Backend fee quote scaled to the number of expected executions."""

    fee_per_execution_wei: int
    executions: int
    job_cost_prediction_wei: int
    max_total_fee_raw: Any = None


@dataclass
class BalanceCheck:
    """Outcome of the prepaid-balance guard."""

    required_wei: int
    current_balance_wei: int
    deposited_wei: int = 0
    ok: bool = True
    deposit_tx_hash: Optional[str] = None

    @property
    def balance_after_topup_wei(self) -> int:
        return self.current_balance_wei + self.deposited_wei
