"""Shared fixtures: an in-memory chain made of MagicMock contracts."""

import sys
from pathlib import Path
from typing import Any, Dict, List
from unittest.mock import AsyncMock, MagicMock

import pytest
from hexbytes import HexBytes
from web3 import Web3

sys.path.insert(0, str(Path(__file__).parent.parent))

from triggerx.config import ChainRegistry
from triggerx.rpc import SdkRpc
from triggerx.signer import Signer

CHAIN_ID = "421614"

USER = Web3.to_checksum_address("0x1111111111111111111111111111111111111111")
TARGET = Web3.to_checksum_address("0x2222222222222222222222222222222222222222")
JOB_REGISTRY = Web3.to_checksum_address("0x3333333333333333333333333333333333333333")
GAS_REGISTRY = Web3.to_checksum_address("0x4444444444444444444444444444444444444444")
SAFE_FACTORY = Web3.to_checksum_address("0x5555555555555555555555555555555555555555")
SAFE_MODULE = Web3.to_checksum_address("0x6666666666666666666666666666666666666666")
MULTISEND = Web3.to_checksum_address("0x7777777777777777777777777777777777777777")
SAFE = Web3.to_checksum_address("0x8888888888888888888888888888888888888888")
TOKEN = Web3.to_checksum_address("0x9999999999999999999999999999999999999999")
ROUTER = Web3.to_checksum_address("0xaAaAaAaaAaAaAaaAaAAAAAAAAaaaAaAaAaaAaaAa")

TX_HASH = HexBytes(b"\x11" * 32)

COUNTER_ABI = (
    '[{"type":"function","name":"increment","stateMutability":"nonpayable",'
    '"inputs":[{"name":"amount","type":"uint256"}],"outputs":[]}]'
)


def full_registry(**overrides: Any) -> ChainRegistry:
    record = {
        "rpcUrl": "http://sdk-rpc.invalid",
        "jobRegistry": JOB_REGISTRY,
        "gasRegistry": GAS_REGISTRY,
        "safeFactory": SAFE_FACTORY,
        "safeModule": SAFE_MODULE,
        "multisendCallOnly": MULTISEND,
    }
    record.update(overrides)
    record = {k: v for k, v in record.items() if v is not None}
    return ChainRegistry.from_mapping({CHAIN_ID: record})


class FakeChain:
    """A MagicMock Web3 whose contracts are looked up by address."""

    def __init__(self) -> None:
        self.w3 = MagicMock(name="sdk_w3")
        self.contracts: Dict[str, MagicMock] = {}
        self.w3.eth.contract.side_effect = self._contract
        self.w3.eth.wait_for_transaction_receipt.return_value = {"status": 1, "logs": []}
        self.factory_calls: List[str] = []

        self.job_registry = self.add(JOB_REGISTRY)
        self.job_registry.functions.createJob.return_value.estimate_gas.return_value = 200_000
        self.set_job_created(42)

        self.gas_registry = self.add(GAS_REGISTRY)
        self.gas_registry.functions.depositETH.return_value.estimate_gas.return_value = 50_000
        self.set_balance(0)

        self.safe = self.add(SAFE)
        self.safe.functions.getOwners.return_value.call.return_value = [USER]
        self.safe.functions.getThreshold.return_value.call.return_value = 1
        self.safe.functions.isModuleEnabled.return_value.call.return_value = True

    def add(self, address: str) -> MagicMock:
        contract = MagicMock(name=f"contract_{address[:6]}")
        contract.address = address
        self.contracts[address] = contract
        return contract

    def _contract(self, address: str, abi: Any) -> MagicMock:
        return self.contracts[address]

    def factory(self, rpc_url: str) -> MagicMock:
        self.factory_calls.append(rpc_url)
        return self.w3

    def set_balance(self, wei: int) -> None:
        self.gas_registry.functions.getBalance.return_value.call.return_value = wei

    def set_job_created(self, job_id: Any) -> None:
        event = self.job_registry.events.JobCreated.return_value
        event.abi = {"inputs": [{"name": "jobId", "indexed": True, "type": "uint256"}]}
        if job_id is None:
            event.process_receipt.return_value = []
        else:
            event.process_receipt.return_value = [
                {"event": "JobCreated", "args": {"jobId": job_id, "jobOwner": USER}}
            ]


@pytest.fixture
def chain():
    return FakeChain()


@pytest.fixture
def registry():
    return full_registry()


@pytest.fixture
def rpc(chain, registry):
    return SdkRpc(registry, web3_factory=chain.factory)


@pytest.fixture
def mock_signer():
    signer = MagicMock(spec=Signer)
    signer.address = USER
    signer.w3 = None
    signer.get_chain_id.return_value = None
    signer.send_transaction.return_value = TX_HASH
    return signer


@pytest.fixture
def mock_client():
    client = MagicMock()
    client.api_key = "TGRX-test-key"
    client.get = AsyncMock(return_value={"current_total_fee": "1000", "total_fee": "1500"})
    client.post = AsyncMock(return_value={"status": "ok", "job_ids": ["42"]})
    client.put = AsyncMock(return_value={"deleted": True})
    return client
