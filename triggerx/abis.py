"""Minimal ABI fragments for the contracts the SDK talks to."""

from __future__ import annotations

import json
from typing import Any, Dict, List


def _function(
    name: str,
    inputs: List[Dict[str, str]],
    outputs: List[Dict[str, str]] | None = None,
    state_mutability: str = "nonpayable",
) -> Dict[str, Any]:
    return {
        "inputs": inputs,
        "name": name,
        "outputs": outputs or [],
        "stateMutability": state_mutability,
        "type": "function",
    }


def _arg(name: str, abi_type: str, internal_type: str | None = None) -> Dict[str, str]:
    return {"internalType": internal_type or abi_type, "name": name, "type": abi_type}


JOB_REGISTRY_ABI: List[Dict[str, Any]] = [
    _function(
        "createJob",
        [
            _arg("jobTitle", "string"),
            _arg("jobType", "uint8"),
            _arg("timeFrame", "uint256"),
            _arg("targetContract", "address"),
            _arg("data", "bytes"),
        ],
        [_arg("jobId", "uint256")],
    ),
    _function("deleteJob", [_arg("jobId", "uint256")]),
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "internalType": "uint256", "name": "jobId", "type": "uint256"},
            {"indexed": True, "internalType": "address", "name": "jobOwner", "type": "address"},
            {"indexed": False, "internalType": "uint8", "name": "jobType", "type": "uint8"},
        ],
        "name": "JobCreated",
        "type": "event",
    },
]

GAS_REGISTRY_ABI: List[Dict[str, Any]] = [
    _function("depositETH", [_arg("amount", "uint256")], state_mutability="payable"),
    _function("purchaseTG", [_arg("amount", "uint256")], state_mutability="payable"),
    _function("withdrawETHBalance", [_arg("amount", "uint256")]),
    _function("claimETHForTG", [_arg("amount", "uint256")]),
    _function(
        "balances",
        [_arg("", "address")],
        [_arg("ethSpent", "uint256"), _arg("TGbalance", "uint256")],
        state_mutability="view",
    ),
    _function(
        "getBalance",
        [_arg("user", "address")],
        [_arg("", "uint256")],
        state_mutability="view",
    ),
]

_SAFE_TX_INPUTS = [
    _arg("to", "address"),
    _arg("value", "uint256"),
    _arg("data", "bytes"),
    _arg("operation", "uint8", "enum Enum.Operation"),
    _arg("safeTxGas", "uint256"),
    _arg("baseGas", "uint256"),
    _arg("gasPrice", "uint256"),
    _arg("gasToken", "address"),
    _arg("refundReceiver", "address", "address payable"),
]

# Gnosis Safe surface used for module enablement and owner checks
SAFE_ABI: List[Dict[str, Any]] = [
    _function(
        "execTransaction",
        _SAFE_TX_INPUTS + [_arg("signatures", "bytes")],
        [_arg("success", "bool")],
        state_mutability="payable",
    ),
    _function(
        "getTransactionHash",
        _SAFE_TX_INPUTS + [_arg("_nonce", "uint256")],
        [_arg("", "bytes32")],
        state_mutability="view",
    ),
    _function("nonce", [], [_arg("", "uint256")], state_mutability="view"),
    _function("domainSeparator", [], [_arg("", "bytes32")], state_mutability="view"),
    _function("getOwners", [], [_arg("", "address[]")], state_mutability="view"),
    _function("getThreshold", [], [_arg("", "uint256")], state_mutability="view"),
    _function(
        "isModuleEnabled",
        [_arg("module", "address")],
        [_arg("", "bool")],
        state_mutability="view",
    ),
    _function("enableModule", [_arg("module", "address")]),
]

SAFE_FACTORY_ABI: List[Dict[str, Any]] = [
    _function("createSafeWallet", [_arg("user", "address")], [_arg("", "address")]),
    _function(
        "latestSafeWallet",
        [_arg("user", "address")],
        [_arg("", "address")],
        state_mutability="view",
    ),
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "internalType": "address", "name": "user", "type": "address"},
            {"indexed": True, "internalType": "address", "name": "safeWallet", "type": "address"},
            {"indexed": False, "internalType": "uint256", "name": "saltNonce", "type": "uint256"},
        ],
        "name": "SafeWalletCreated",
        "type": "event",
    },
]

# Entry point on the Safe module that executors call for Safe-mode jobs
SAFE_MODULE_EXEC_ABI: List[Dict[str, Any]] = [
    {
        "type": "function",
        "name": "execJobFromHub",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "safeAddress", "type": "address"},
            {"name": "actionTarget", "type": "address"},
            {"name": "actionValue", "type": "uint256"},
            {"name": "actionData", "type": "bytes"},
            {"name": "operation", "type": "uint8"},
        ],
        "outputs": [{"type": "bool", "name": "success"}],
    }
]

SAFE_MODULE_EXEC_ABI_JSON = json.dumps(SAFE_MODULE_EXEC_ABI)
