"""
Unit tests for fee registry balance operations.
"""

import pytest

from triggerx.balance import (
    check_eth_balance,
    check_tg_balance,
    deposit_eth,
    topup_tg,
    withdraw_eth,
    withdraw_tg,
)
from triggerx.errors import ValidationError

from tests.conftest import CHAIN_ID, USER

TX_HASH_HEX = "0x" + "11" * 32


class TestEthBalance:
    """ETH escrow: read, deposit, withdraw."""

    @pytest.mark.asyncio
    async def test_check_balance(self, chain, rpc):
        chain.set_balance(1_500_000_000_000_000_000)

        result = await check_eth_balance(USER, CHAIN_ID, rpc=rpc)

        assert result.success
        assert result.data == {
            "eth_balance_wei": 1_500_000_000_000_000_000,
            "eth_balance": "1.5",
        }

    @pytest.mark.asyncio
    async def test_check_balance_requires_address(self, rpc):
        result = await check_eth_balance("", CHAIN_ID, rpc=rpc)
        assert result.error_code == "VALIDATION_ERROR"
        assert result.details["field"] == "user_address"

    @pytest.mark.asyncio
    async def test_check_balance_rpc_failure(self, chain, rpc):
        chain.gas_registry.functions.getBalance.return_value.call.side_effect = OSError(
            "connection refused"
        )

        result = await check_eth_balance(USER, CHAIN_ID, rpc=rpc)

        assert result.error_code == "NETWORK_ERROR"

    @pytest.mark.asyncio
    async def test_deposit_sends_value(self, chain, rpc, mock_signer):
        result = await deposit_eth(1000, mock_signer, chain_id=CHAIN_ID, rpc=rpc)

        assert result.success
        assert result.data == {"transaction_hash": TX_HASH_HEX, "amount_wei": 1000}
        chain.gas_registry.functions.depositETH.assert_called_with(1000)
        assert mock_signer.send_transaction.call_args.args[2]["value"] == 1000

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [0, -1, True, 1.5])
    async def test_deposit_rejects_bad_amounts(self, rpc, mock_signer, amount):
        result = await deposit_eth(amount, mock_signer, chain_id=CHAIN_ID, rpc=rpc)

        assert result.error_code == "VALIDATION_ERROR"
        mock_signer.send_transaction.assert_not_called()

    @pytest.mark.asyncio
    async def test_withdraw(self, chain, rpc, mock_signer):
        result = await withdraw_eth(mock_signer, 700, chain_id=CHAIN_ID, rpc=rpc)

        assert result.success
        chain.gas_registry.functions.withdrawETHBalance.assert_called_with(700)
        assert "value" not in mock_signer.send_transaction.call_args.args[2]

    @pytest.mark.asyncio
    async def test_withdraw_revert(self, chain, rpc, mock_signer):
        chain.w3.eth.wait_for_transaction_receipt.return_value = {"status": 0}

        result = await withdraw_eth(mock_signer, 700, chain_id=CHAIN_ID, rpc=rpc)

        assert result.error_code == "CONTRACT_ERROR"


class TestLegacyTg:
    """TG token helpers raise instead of returning a result."""

    @pytest.mark.asyncio
    async def test_check_tg_balance(self, chain, rpc, mock_signer):
        chain.gas_registry.functions.balances.return_value.call.return_value = (
            10**15,
            2 * 10**18,
        )

        balance = await check_tg_balance(mock_signer, chain_id=CHAIN_ID, rpc=rpc)

        assert balance == {
            "eth_spent_wei": 10**15,
            "tg_balance_wei": 2 * 10**18,
            "tg_balance": "2",
        }

    @pytest.mark.asyncio
    async def test_topup_prices_tg_at_a_thousandth_of_an_eth(self, chain, rpc, mock_signer):
        tx_hash = await topup_tg("2.5", mock_signer, chain_id=CHAIN_ID, rpc=rpc)

        assert tx_hash == TX_HASH_HEX
        chain.gas_registry.functions.purchaseTG.assert_called_with(25 * 10**14)
        assert mock_signer.send_transaction.call_args.args[2]["value"] == 25 * 10**14

    @pytest.mark.asyncio
    async def test_topup_rejects_zero(self, rpc, mock_signer):
        with pytest.raises(ValidationError):
            await topup_tg(0, mock_signer, chain_id=CHAIN_ID, rpc=rpc)

    @pytest.mark.asyncio
    async def test_withdraw_tg_uses_18_decimals(self, chain, rpc, mock_signer):
        await withdraw_tg(mock_signer, "1.25", chain_id=CHAIN_ID, rpc=rpc)

        chain.gas_registry.functions.claimETHForTG.assert_called_with(1_250_000_000_000_000_000)
