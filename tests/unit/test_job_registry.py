"""
Unit tests for on-chain job creation and deletion.
"""

import pytest
from eth_abi import encode

from triggerx.abis import JOB_REGISTRY_ABI
from triggerx.constants import ZERO_ADDRESS
from triggerx.errors import ContractError
from triggerx.job_registry import delete_job_on_chain, extract_job_id, submit_job

from tests.conftest import CHAIN_ID, JOB_REGISTRY, TARGET


@pytest.fixture
def handles(rpc, mock_signer):
    return rpc.contract_handles(JOB_REGISTRY, JOB_REGISTRY_ABI, mock_signer, CHAIN_ID)


class TestSubmitJob:
    """createJob submission and JobCreated parsing."""

    def test_returns_job_id_from_event(self, chain, handles, mock_signer):
        data = encode(["uint256"], [33])

        job = submit_job(
            handles,
            mock_signer,
            job_title="counter",
            job_type=1,
            time_frame=36,
            target_contract_address=TARGET,
            encoded_data="0x" + data.hex(),
        )

        assert job.job_id == "42"
        assert job.transaction_hash == "0x" + "11" * 32
        chain.job_registry.functions.createJob.assert_called_with("counter", 1, 36, TARGET, data)

    def test_missing_target_uses_zero_address(self, chain, handles, mock_signer):
        submit_job(
            handles,
            mock_signer,
            job_title="script",
            job_type=7,
            time_frame=300,
            target_contract_address=None,
            encoded_data=b"",
        )
        args = chain.job_registry.functions.createJob.call_args.args
        assert args[3] == ZERO_ADDRESS

    def test_missing_event_is_contract_error(self, chain, handles, mock_signer):
        chain.set_job_created(None)

        with pytest.raises(ContractError, match="Job ID not found") as excinfo:
            submit_job(
                handles,
                mock_signer,
                job_title="counter",
                job_type=1,
                time_frame=36,
                target_contract_address=TARGET,
                encoded_data=b"",
            )
        assert excinfo.value.details["transaction_hash"] == "0x" + "11" * 32

    def test_indexed_input_name_comes_from_event_abi(self, chain, handles):
        event = chain.job_registry.events.JobCreated.return_value
        event.abi = {"inputs": [{"name": "id", "indexed": True}, {"name": "jobId", "indexed": False}]}
        event.process_receipt.return_value = [{"event": "JobCreated", "args": {"id": 7, "jobId": 8}}]

        assert extract_job_id(handles, {"logs": []}) == "7"


def test_delete_job_on_chain(chain, handles, mock_signer):
    tx_hash = delete_job_on_chain(handles, mock_signer, "42")

    assert tx_hash == "0x" + "11" * 32
    chain.job_registry.functions.deleteJob.assert_called_with(42)
