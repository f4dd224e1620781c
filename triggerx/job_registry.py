"""On-chain job registry calls: create (with job id extraction) and delete."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from web3 import Web3
from web3.logs import DISCARD

from .constants import JOB_CREATED_EVENT, ZERO_ADDRESS
from .errors import ContractError
from .rpc import ContractHandles, transact
from .signer import Signer, to_bytes

logger = logging.getLogger("triggerx.job_registry")


@dataclass
class SubmittedJob:
    job_id: str
    transaction_hash: str


def extract_job_id(handles: ContractHandles, receipt: Any) -> Optional[str]:
    """First indexed argument of the JobCreated event in the receipt, if any."""
    event = getattr(handles.read.events, JOB_CREATED_EVENT)()
    indexed = [
        item["name"]
        for item in getattr(event, "abi", {}).get("inputs", [])
        if item.get("indexed")
    ]
    key = indexed[0] if indexed else "jobId"
    for entry in event.process_receipt(receipt, errors=DISCARD):
        if entry.get("event", JOB_CREATED_EVENT) != JOB_CREATED_EVENT:
            continue
        value = entry["args"].get(key)
        if value is not None:
            return str(value)
    return None


def submit_job(
    handles: ContractHandles,
    signer: Signer,
    *,
    job_title: str,
    job_type: int,
    time_frame: int,
    target_contract_address: Optional[str],
    encoded_data: Any,
    log: Optional[logging.Logger] = None,
) -> SubmittedJob:
    log = log or logger
    target = Web3.to_checksum_address(target_contract_address or ZERO_ADDRESS)
    tx_hash, receipt = transact(
        handles,
        signer,
        "createJob",
        job_title,
        int(job_type),
        int(time_frame),
        target,
        to_bytes(encoded_data),
        log=log,
    )
    job_id = extract_job_id(handles, receipt)
    if job_id is None:
        raise ContractError(
            "Job ID not found in transaction events",
            {"transaction_hash": tx_hash, "job_title": job_title, "job_type": job_type},
        )
    log.info(f"Job {job_id} created on chain {handles.chain_id}: tx={tx_hash}")
    return SubmittedJob(job_id=job_id, transaction_hash=tx_hash)


def delete_job_on_chain(
    handles: ContractHandles,
    signer: Signer,
    job_id: Any,
    log: Optional[logging.Logger] = None,
) -> str:
    log = log or logger
    tx_hash, _receipt = transact(handles, signer, "deleteJob", int(job_id), log=log)
    log.info(f"Job {job_id} deleted on chain {handles.chain_id}: tx={tx_hash}")
    return tx_hash
