"""Caller-side signer: a local key plus the caller's own RPC connection."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount
from hexbytes import HexBytes
from web3 import Web3
from web3.middleware import ExtraDataToPOAMiddleware


def inject_poa_middleware(w3: Web3, logger: Optional[logging.Logger] = None) -> None:
    """Inject a POA-compatible middleware when available."""
    try:
        w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
    except ValueError:
        pass
    except Exception as exc:
        (logger or logging.getLogger(__name__)).debug(
            f"Failed to inject extra-data POA middleware: {exc}"
        )


def to_bytes(data: Any) -> bytes:
    """Normalize hex string or HexBytes to raw bytes."""
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    text = str(data or "")
    if text.startswith(("0x", "0X")):
        text = text[2:]
    return bytes.fromhex(text)


def preview_address(address: Optional[str]) -> str:
    if not address:
        return "<none>"
    if len(address) <= 12:
        return address
    return f"{address[:6]}...{address[-4:]}"


class Signer:
    """Wraps the caller's key and (optionally) the caller's RPC endpoint.

    Transactions are always signed locally with the caller's key. They are
    broadcast through whichever Web3 instance the contract function is
    bound to, which is the caller's RPC when one was supplied.
    """

    def __init__(
        self,
        account: LocalAccount,
        w3: Optional[Web3] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._account = account
        self.w3 = w3
        self._logger = logger or logging.getLogger("triggerx.signer")

    @classmethod
    def from_private_key(
        cls,
        private_key: str,
        rpc_url: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ) -> "Signer":
        account = Account.from_key(private_key)
        w3 = None
        if rpc_url:
            w3 = Web3(Web3.HTTPProvider(rpc_url))
            inject_poa_middleware(w3, logger)
        return cls(account, w3, logger)

    @property
    def address(self) -> str:
        return self._account.address

    def get_chain_id(self) -> Optional[int]:
        """Chain id of the caller's connected network, if reachable."""
        if self.w3 is None:
            return None
        try:
            return int(self.w3.eth.chain_id)
        except Exception as exc:
            self._logger.debug(f"Failed to read chain id from signer RPC: {exc}")
            return None

    def sign_message(self, digest: bytes):
        """Personal-sign a 32-byte digest (EIP-191 prefix applied)."""
        return self._account.sign_message(encode_defunct(primitive=bytes(digest)))

    def send_transaction(
        self, contract_fn: Any, w3: Web3, overrides: Optional[Dict[str, Any]] = None
    ) -> HexBytes:
        """Build, sign and broadcast a contract call; returns the tx hash.

        When ``overrides`` carries no ``gas`` the node estimates it while
        the transaction is built.
        """
        tx_params: Dict[str, Any] = {
            "from": self.address,
            "nonce": w3.eth.get_transaction_count(self.address, "pending"),
        }
        tx_params.update(overrides or {})
        transaction = contract_fn.build_transaction(tx_params)
        signed = self._account.sign_transaction(transaction)
        raw_tx = getattr(signed, "raw_transaction", None) or getattr(
            signed, "rawTransaction", None
        )
        if raw_tx is None:
            raise AttributeError("SignedTransaction missing raw transaction payload")
        tx_hash = w3.eth.send_raw_transaction(raw_tx)
        self._logger.info(
            f"Transaction submitted from {preview_address(self.address)}: "
            f"nonce={tx_params['nonce']} tx={Web3.to_hex(tx_hash)}"
        )
        return HexBytes(tx_hash)
