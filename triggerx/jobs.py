"""
Job creation and deletion pipeline.

Stages run strictly in order, each gating the next:

    validate -> resolve chain -> [configure Safe] -> encode -> predict fee
    -> guard balance -> submit on chain -> register with backend

Blocking chain work runs in the default executor one stage at a time.
The on-chain job is created before the backend record; if registration
fails afterwards the job id is reported in the error details so the caller
can reconcile.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

from web3 import Web3

from .abis import JOB_REGISTRY_ABI, SAFE_MODULE_EXEC_ABI_JSON
from .api import delete_job_from_backend, register_job
from .client import TriggerXClient
from .config import ChainRegistry, default_chain_registry
from .constants import SAFE_MODULE_TARGET_FUNCTION, ZERO_ADDRESS
from .encoding import build_safe_arguments, encode_job_data, job_type_code
from .errors import (
    ApiError,
    AuthenticationError,
    BackendRejectedError,
    ConfigurationError,
    ContractError,
    PipelineResult,
    TriggerXError,
    ValidationError,
    classify_exception,
    create_error_response,
)
from .fees import guard_balance, predict_job_cost
from .job_registry import SubmittedJob, delete_job_on_chain, submit_job
from .rpc import SdkRpc, resolve_chain_id
from .safe_wallet import configure_safe
from .signer import Signer, preview_address, to_bytes
from .types import (
    BalanceCheck,
    CreateJobData,
    FeeEstimate,
    JobInput,
    JobKind,
    ScheduleType,
)
from .validation import validate_job_input


@dataclass
class CreateJobParams:
    job_input: JobInput
    signer: Signer
    encoded_data: Optional[Union[bytes, str]] = None


class JobOrchestrator:
    """Runs the job pipeline for one signer against one backend client."""

    def __init__(
        self,
        client: TriggerXClient,
        signer: Signer,
        registry: Optional[ChainRegistry] = None,
        rpc: Optional[SdkRpc] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._client = client
        self._signer = signer
        self._logger = logger or logging.getLogger("triggerx.jobs")
        if rpc is None:
            rpc = SdkRpc(registry or default_chain_registry(), self._logger)
        self._rpc = rpc
        self._registry = rpc.registry

    async def create_job(
        self, job_input: JobInput, encoded_data: Optional[Union[bytes, str]] = None
    ) -> PipelineResult:
        try:
            return await self._create_job(job_input, encoded_data)
        except TriggerXError as exc:
            self._logger.error(f"Job creation failed [{exc.code}]: {exc.message}")
            return create_error_response(exc)
        except Exception as exc:
            self._logger.error(f"Unexpected error during job creation: {exc}")
            return create_error_response(
                classify_exception(exc, "Unexpected error during job creation")
            )

    async def _create_job(
        self, job_input: JobInput, encoded_data: Optional[Union[bytes, str]]
    ) -> PipelineResult:
        if not self._client.api_key:
            raise AuthenticationError("API key is required but not provided")
        if self._signer is None:
            raise AuthenticationError("A signer is required to create jobs")
        user_address = self._signer.address

        validate_job_input(job_input)
        self._logger.info(f"Job input validated: '{job_input.job_title}' ({job_input.kind.value})")

        job = copy.deepcopy(job_input)
        chain_id = resolve_chain_id(self._signer, job.chain_id)
        job_registry_address = self._registry.require(chain_id, "job_registry")
        self._logger.info(f"Resolved chain {chain_id} for {preview_address(user_address)}")

        loop = asyncio.get_running_loop()
        if job.is_safe_mode:
            await self._prepare_safe_job(job, chain_id)

        job_type = job_type_code(job.kind, job.arg_type)
        data = to_bytes(encoded_data) if encoded_data else self._encode(job, job_type)

        estimate: FeeEstimate = await predict_job_cost(
            self._client, job, chain_id, job_type, self._logger
        )

        check: BalanceCheck = await loop.run_in_executor(
            None,
            guard_balance,
            self._rpc,
            self._signer,
            chain_id,
            estimate.job_cost_prediction_wei,
            job.auto_topup,
            self._logger,
        )

        submitted = await self._submit(job, job_type, data, job_registry_address, chain_id)

        job_data = build_create_job_data(
            job,
            job_id=submitted.job_id,
            user_address=user_address,
            chain_id=chain_id,
            task_definition_id=job_type,
            balance_wei=check.balance_after_topup_wei,
            prediction_wei=estimate.job_cost_prediction_wei,
        )

        try:
            response = await register_job(self._client, job_data)
        except BackendRejectedError as exc:
            exc.details.setdefault("transaction_hash", submitted.transaction_hash)
            raise
        except TriggerXError as exc:
            raise ApiError(
                "Failed to create job via API",
                {
                    "original_error": exc.message,
                    "job_id": submitted.job_id,
                    "transaction_hash": submitted.transaction_hash,
                },
                exc.http_status,
            ) from exc

        return PipelineResult.ok(
            {
                "job_id": submitted.job_id,
                "transaction_hash": submitted.transaction_hash,
                "response": response,
                "required_eth": check.deposited_wei or None,
                "max_total_fee_raw": estimate.max_total_fee_raw,
                "job_cost_prediction_wei": estimate.job_cost_prediction_wei,
            }
        )

    async def _prepare_safe_job(self, job: JobInput, chain_id: str) -> None:
        """Check the Safe, enable the module and point the job at it."""
        module_address = self._registry.require(chain_id, "safe_module")
        multisend_address = None
        if not job.is_dynamic and job.safe_transactions and len(job.safe_transactions) > 1:
            multisend_address = self._registry.require(chain_id, "multisend_call_only")

        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(
                None,
                configure_safe,
                job.safe_address,
                self._signer,
                module_address,
                self._rpc,
                chain_id,
                self._logger,
            )
        except ConfigurationError:
            raise
        except Exception as exc:
            raise ContractError(
                "Failed to configure Safe wallet",
                {"original_error": str(exc), "safe_address": job.safe_address},
            ) from exc
        self._logger.info(f"Safe {preview_address(job.safe_address)} configured")

        job.target_contract_address = module_address
        job.target_function = SAFE_MODULE_TARGET_FUNCTION
        job.abi = SAFE_MODULE_EXEC_ABI_JSON
        if job.is_dynamic:
            job.arguments = None
        else:
            job.arguments = build_safe_arguments(
                job.safe_address, job.safe_transactions, multisend_address
            )

    def _encode(self, job: JobInput, job_type: int) -> bytes:
        if job.kind == JobKind.TIME:
            return encode_job_data(
                job_type,
                time_interval=job.time_interval or 0,
                script_url=job.dynamic_arguments_script_url,
            )
        if job.kind == JobKind.CUSTOM_SCRIPT:
            return encode_job_data(
                job_type,
                time_interval=job.time_interval or 0,
                script_url=job.dynamic_arguments_script_url,
                language=job.language,
            )
        return encode_job_data(
            job_type,
            recurring=job.recurring,
            script_url=job.dynamic_arguments_script_url,
        )

    async def _submit(
        self,
        job: JobInput,
        job_type: int,
        data: bytes,
        job_registry_address: str,
        chain_id: str,
    ) -> SubmittedJob:
        loop = asyncio.get_running_loop()

        def _run() -> SubmittedJob:
            handles = self._rpc.contract_handles(
                job_registry_address, JOB_REGISTRY_ABI, self._signer, chain_id
            )
            return submit_job(
                handles,
                self._signer,
                job_title=job.job_title,
                job_type=job_type,
                time_frame=job.time_frame,
                target_contract_address=job.target_contract_address,
                encoded_data=data,
                log=self._logger,
            )

        try:
            return await loop.run_in_executor(None, _run)
        except ConfigurationError:
            raise
        except Exception as exc:
            details = dict(exc.details) if isinstance(exc, TriggerXError) else {}
            details.update(
                {
                    "original_error": str(exc),
                    "job_title": job.job_title,
                    "job_type": job_type,
                    "time_frame": job.time_frame,
                }
            )
            raise ContractError("Failed to create job on chain", details) from exc

    async def delete_job(self, job_id: Any, chain_id: Any = None) -> PipelineResult:
        """Delete on chain through the registry, then mark deleted in the backend."""
        try:
            if not self._client.api_key:
                raise AuthenticationError("API key is required but not provided")
            if job_id is None or not str(job_id).strip():
                raise ValidationError("job_id", "Job ID is required")
            raw_id = str(job_id).strip()
            if isinstance(job_id, bool) or not (raw_id.isascii() and raw_id.isdecimal()):
                raise ValidationError("job_id", "Job ID must be a non-negative integer")
            resolved = resolve_chain_id(self._signer, chain_id)
            address = self._registry.require(resolved, "job_registry")
            loop = asyncio.get_running_loop()

            def _run() -> str:
                handles = self._rpc.contract_handles(
                    address, JOB_REGISTRY_ABI, self._signer, resolved
                )
                return delete_job_on_chain(handles, self._signer, job_id, self._logger)

            try:
                tx_hash = await loop.run_in_executor(None, _run)
            except ConfigurationError:
                raise
            except Exception as exc:
                raise ContractError(
                    "Failed to delete job on chain",
                    {"original_error": str(exc), "job_id": str(job_id)},
                ) from exc

            try:
                response = await delete_job_from_backend(self._client, job_id)
            except TriggerXError as exc:
                raise ApiError(
                    "Failed to delete job via API",
                    {"original_error": exc.message, "job_id": str(job_id), "transaction_hash": tx_hash},
                    exc.http_status,
                ) from exc
        except TriggerXError as exc:
            self._logger.error(f"Job deletion failed [{exc.code}]: {exc.message}")
            return create_error_response(exc)
        except Exception as exc:
            self._logger.error(f"Unexpected error during job deletion: {exc}")
            return create_error_response(
                classify_exception(exc, "Unexpected error during job deletion")
            )
        self._logger.info(f"Job {job_id} deleted")
        return PipelineResult.ok(
            {"job_id": str(job_id), "transaction_hash": tx_hash, "response": response}
        )


def build_create_job_data(
    job: JobInput,
    *,
    job_id: str,
    user_address: str,
    chain_id: str,
    task_definition_id: int,
    balance_wei: int,
    prediction_wei: int,
) -> CreateJobData:
    """Flatten the (possibly Safe-amended) job input into the backend record."""
    record = CreateJobData(
        job_id=str(job_id),
        user_address=user_address,
        ether_balance=int(balance_wei),
        token_balance=int(balance_wei),
        job_title=job.job_title,
        task_definition_id=task_definition_id,
        time_frame=job.time_frame,
        recurring=bool(getattr(job, "recurring", False)),
        job_cost_prediction=float(Web3.from_wei(int(prediction_wei), "ether")),
        timezone=job.timezone,
        created_chain_id=str(chain_id),
        target_chain_id=str(chain_id),
        target_contract_address=job.target_contract_address or "",
        target_function=job.target_function or "",
        abi=job.abi or "",
        arg_type=int(job.arg_type),
        arguments=job.arguments,
        dynamic_arguments_script_url=job.dynamic_arguments_script_url,
        is_imua=job.is_imua,
        is_safe=job.is_safe_mode,
        safe_name=job.safe_name or "",
        safe_address=job.safe_address or "",
        language=getattr(job, "language", "") or "",
    )

    if job.kind == JobKind.TIME:
        record.schedule_type = job.schedule_type.value
        if job.schedule_type == ScheduleType.INTERVAL:
            record.time_interval = job.time_interval
        elif job.schedule_type == ScheduleType.CRON:
            record.cron_expression = job.cron_expression
        else:
            record.specific_schedule = job.specific_schedule
    elif job.kind == JobKind.EVENT:
        record.trigger_chain_id = job.trigger_chain_id or str(chain_id)
        record.trigger_contract_address = job.trigger_contract_address
        record.trigger_event = job.trigger_event
    elif job.kind == JobKind.CONDITION:
        record.condition_type = job.condition_type.value
        record.upper_limit = job.upper_limit
        record.lower_limit = job.lower_limit
        record.value_source_type = job.value_source_type
        record.value_source_url = job.value_source_url
    elif job.kind == JobKind.CUSTOM_SCRIPT:
        record.time_interval = job.time_interval
        if not record.target_contract_address:
            record.target_contract_address = ZERO_ADDRESS
    return record


async def create_job(
    client: TriggerXClient,
    params: Optional[CreateJobParams] = None,
    *,
    job_input: Optional[JobInput] = None,
    signer: Optional[Signer] = None,
    encoded_data: Optional[Union[bytes, str]] = None,
    registry: Optional[ChainRegistry] = None,
    rpc: Optional[SdkRpc] = None,
    logger: Optional[logging.Logger] = None,
) -> PipelineResult:
    """Create a job from ``params`` or from the keyword arguments."""
    if params is not None:
        job_input, signer, encoded_data = params.job_input, params.signer, params.encoded_data
    if signer is None:
        return create_error_response(AuthenticationError("A signer is required to create jobs"))
    if job_input is None:
        return create_error_response(ValidationError("job_input", "Job input is required"))
    orchestrator = JobOrchestrator(client, signer, registry=registry, rpc=rpc, logger=logger)
    return await orchestrator.create_job(job_input, encoded_data)


async def delete_job(
    client: TriggerXClient,
    job_id: Any,
    signer: Signer,
    chain_id: Any = None,
    *,
    registry: Optional[ChainRegistry] = None,
    rpc: Optional[SdkRpc] = None,
    logger: Optional[logging.Logger] = None,
) -> PipelineResult:
    if signer is None:
        return create_error_response(AuthenticationError("A signer is required to delete jobs"))
    orchestrator = JobOrchestrator(client, signer, registry=registry, rpc=rpc, logger=logger)
    return await orchestrator.delete_job(job_id, chain_id)
