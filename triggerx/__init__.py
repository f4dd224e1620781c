"""TriggerX SDK: create, fund and delete scheduled on-chain jobs."""

from .api import (
    delete_job_from_backend,
    get_job_data,
    get_job_data_by_id,
    get_job_for_user,
    get_jobs_by_user_address,
    get_tasks_by_job_id,
    get_user_data,
    register_job,
)
from .balance import (
    check_eth_balance,
    check_tg_balance,
    deposit_eth,
    topup_tg,
    withdraw_eth,
    withdraw_tg,
)
from .client import TriggerXClient
from .config import ChainAddresses, ChainRegistry, SDKConfig, default_chain_registry
from .encoding import (
    build_safe_arguments,
    decode_multisend,
    encode_job_data,
    encode_multisend,
    job_type_code,
)
from .errors import (
    ApiError,
    AuthenticationError,
    BackendRejectedError,
    BalanceError,
    ConfigurationError,
    ContractError,
    NetworkError,
    PipelineResult,
    TriggerXError,
    UnknownError,
    ValidationError,
)
from .jobs import CreateJobParams, JobOrchestrator, create_job, delete_job
from .logging_setup import setup_logging
from .rpc import GasStrategy, SdkRpc, resolve_chain_id
from .safe_wallet import create_safe_wallet, enable_safe_module, ensure_single_owner
from .signer import Signer
from .types import (
    ArgType,
    ConditionBasedJobInput,
    ConditionType,
    CreateJobData,
    CustomScriptJobInput,
    EventBasedJobInput,
    JobKind,
    Operation,
    SafeTransaction,
    ScheduleType,
    TimeBasedJobInput,
    WalletMode,
)
from .validation import validate_job_input

__version__ = "0.1.0"

__all__ = [
    "ApiError",
    "ArgType",
    "AuthenticationError",
    "BackendRejectedError",
    "BalanceError",
    "ChainAddresses",
    "ChainRegistry",
    "ConditionBasedJobInput",
    "ConditionType",
    "ConfigurationError",
    "ContractError",
    "CreateJobData",
    "CreateJobParams",
    "CustomScriptJobInput",
    "EventBasedJobInput",
    "GasStrategy",
    "JobKind",
    "JobOrchestrator",
    "NetworkError",
    "Operation",
    "PipelineResult",
    "SDKConfig",
    "SafeTransaction",
    "ScheduleType",
    "SdkRpc",
    "Signer",
    "TimeBasedJobInput",
    "TriggerXClient",
    "TriggerXError",
    "UnknownError",
    "ValidationError",
    "WalletMode",
    "build_safe_arguments",
    "check_eth_balance",
    "check_tg_balance",
    "create_job",
    "create_safe_wallet",
    "decode_multisend",
    "default_chain_registry",
    "delete_job",
    "delete_job_from_backend",
    "deposit_eth",
    "enable_safe_module",
    "encode_job_data",
    "encode_multisend",
    "ensure_single_owner",
    "get_job_data",
    "get_job_data_by_id",
    "get_job_for_user",
    "get_jobs_by_user_address",
    "get_tasks_by_job_id",
    "get_user_data",
    "job_type_code",
    "register_job",
    "resolve_chain_id",
    "setup_logging",
    "topup_tg",
    "validate_job_input",
    "withdraw_eth",
    "withdraw_tg",
]
