"""
Shared constants for the TriggerX SDK.

This module provides a single source of truth for numeric values and
identifiers that are used across the job pipeline.
"""

from eth_utils import keccak

ZERO_ADDRESS = "0x" + "0" * 40
ZERO_HASH = b"\x00" * 32

# Gas estimates are padded by 10% before submission (gas * 110 / 100).
GAS_BUFFER_NUMERATOR = 110
GAS_BUFFER_DENOMINATOR = 100

# Auto top-up deposits the predicted job cost plus a 20% margin.
TOPUP_MARGIN_NUMERATOR = 12
TOPUP_MARGIN_DENOMINATOR = 10

# Fusaka upgrade enforces a hard 16,777,216 gas limit per transaction (2^24).
MAX_TRANSACTION_GAS = 16_777_216

DEFAULT_RECEIPT_TIMEOUT_SECONDS = 180
DEFAULT_REQUEST_TIMEOUT_SECONDS = 30
# Safe proxies need a moment after factory deployment before they accept calls.
SAFE_SETTLE_DELAY_SECONDS = 2.0

# Each legacy TG token costs 0.001 ETH.
TG_PRICE_WEI = 10**15

SAFE_TX_TYPEHASH = keccak(
    text=(
        "SafeTx(address to,uint256 value,bytes data,uint8 operation,uint256 safeTxGas,"
        "uint256 baseGas,uint256 gasPrice,address gasToken,address refundReceiver,uint256 nonce)"
    )
)

# Safe marks eth_sign signatures by shifting v from {27, 28} to {31, 32}.
ETH_SIGN_V_OFFSET = 4

SAFE_MODULE_TARGET_FUNCTION = "execJobFromHub(address,address,uint256,bytes,uint8)"
MULTISEND_FUNCTION = "multiSend(bytes)"
JOB_CREATED_EVENT = "JobCreated"
SAFE_WALLET_CREATED_EVENT = "SafeWalletCreated"
