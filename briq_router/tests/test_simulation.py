import pytest

from briq_router.simulation import run_supply_withdraw


class TestRunSupplyWithdraw:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("protocol", ["aave", "compound"])
    async def test_round_trip_without_interest(self, protocol):
        result = await run_supply_withdraw(protocol, amount="1000")

        assert result["deposited"] == 1_000_000_000
        assert result["shares_minted"] == 1_000_000_000
        assert result["accrued"] == 0
        assert result["returned_to_user"] == 1_000_000_000
        assert result["user_shares_after"] == 0
        assert result["total_liquidity_after"] == 0
        assert result["events"][-1] == "Withdraw"
        assert "MarketSupplied" in result["events"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("protocol", ["aave", "compound"])
    async def test_accrued_interest_reaches_user(self, protocol):
        result = await run_supply_withdraw(
            protocol, amount="1000", apr=0.05, accrue_seconds=30 * 24 * 3600
        )

        assert result["accrued"] > 0
        assert result["returned_to_user"] > result["deposited"]
        assert result["total_liquidity_after"] == 0

    @pytest.mark.asyncio
    async def test_unknown_protocol(self):
        with pytest.raises(ValueError, match="Unknown protocol"):
            await run_supply_withdraw("morpho")
