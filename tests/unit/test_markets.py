import pytest

from flashloan_attack_core.accounts import derive_address
from flashloan_attack_core.errors import (
    CollateralRejected, InsufficientCollateral, LoanUnavailable, MarketUnavailable, RepaymentFailed, Unauthorized,
)
from flashloan_attack_core.markets.flash_loan import InMemoryFlashLoanProvider
from flashloan_attack_core.markets.lending_market import CollateralLendingMarket
from flashloan_attack_core.markets.spot_market import ConstantProductMarket
from flashloan_attack_core.reserve_token import ReserveToken
from flashloan_attack_core.token import QuoteToken

ADMIN = derive_address("admin")
TRADER = derive_address("trader")
ONE = 10**18 # One whole reserve token
USD = 10**6 # One whole quote token


@pytest.fixture
def usdc():
    quote = QuoteToken(address=derive_address("usdc"))
    quote.faucet(ADMIN, 10_000_000 * USD)
    quote.faucet(TRADER, 1_000_000 * USD)
    return quote


@pytest.fixture
def ersv():
    token = ReserveToken(owner=ADMIN, address=derive_address("ersv"), initial_supply=10_000_000 * ONE)
    token.transfer(TRADER, 100_000 * ONE, sender=ADMIN)
    return token


@pytest.fixture
def flash_pool(usdc):
    pool = InMemoryFlashLoanProvider(derive_address("flash"), fee_bps=9)
    usdc.transfer(pool.address, 1_000_000 * USD, sender=ADMIN)
    return pool


@pytest.fixture
def market(ersv, usdc):
    """1M ERSV against 100k USDC: a spot price of 0.1 USDC per token."""
    pool = ConstantProductMarket(derive_address("market"), ersv, usdc, fee_bps=30)
    pool.add_liquidity(1_000_000 * ONE, 100_000 * USD, provider=ADMIN)
    return pool


@pytest.fixture
def lending(ersv, usdc, market):
    lender = CollateralLendingMarket(derive_address("lending"), admin=ADMIN, quote=usdc, price_source=market,
                                     ltv_bps=7_500)
    usdc.transfer(lender.address, 500_000 * USD, sender=ADMIN)
    lender.list_asset(ersv, sender=ADMIN)
    return lender


class TestFlashLoanProvider:
    def test_borrow_and_repay(self, usdc, flash_pool):
        fee = flash_pool.flash_fee(usdc, 100_000)
        assert fee == 90

        flash_pool.borrow(usdc, 100_000, receiver=TRADER)
        assert usdc.balance_of(TRADER) == 1_000_000 * USD + 100_000
        assert flash_pool.outstanding(TRADER, usdc) == 100_090

        usdc.approve(flash_pool.address, 100_090, sender=TRADER)
        flash_pool.repay(usdc, 100_090, payer=TRADER)
        assert flash_pool.outstanding(TRADER, usdc) == 0
        assert usdc.balance_of(flash_pool.address) == 1_000_000 * USD + 90

    def test_borrow_beyond_liquidity(self, usdc, flash_pool):
        with pytest.raises(LoanUnavailable) as exc_info:
            flash_pool.borrow(usdc, flash_pool.max_flash_loan(usdc) + 1, receiver=TRADER)
        assert exc_info.value.available == 1_000_000 * USD
        assert flash_pool.outstanding(TRADER, usdc) == 0

    def test_zero_and_second_loan_rejected(self, usdc, flash_pool):
        with pytest.raises(LoanUnavailable):
            flash_pool.borrow(usdc, 0, receiver=TRADER)
        flash_pool.borrow(usdc, 10, receiver=TRADER)
        with pytest.raises(LoanUnavailable):
            flash_pool.borrow(usdc, 10, receiver=TRADER)

    def test_short_repayment_rejected(self, usdc, flash_pool):
        flash_pool.borrow(usdc, 100_000, receiver=TRADER)
        usdc.approve(flash_pool.address, 100_000, sender=TRADER)
        with pytest.raises(RepaymentFailed) as exc_info:
            flash_pool.repay(usdc, 100_000, payer=TRADER)
        assert exc_info.value.requested == 100_090
        assert flash_pool.outstanding(TRADER, usdc) == 100_090

    def test_repay_without_approval_wraps_ledger_error(self, usdc, flash_pool):
        flash_pool.borrow(usdc, 1_000, receiver=TRADER)
        with pytest.raises(RepaymentFailed) as exc_info:
            flash_pool.repay(usdc, 1_000, payer=TRADER)
        assert "allowance too low" in exc_info.value.message
        assert flash_pool.outstanding(TRADER, usdc) == 1_000

    def test_repay_without_loan(self, usdc, flash_pool):
        with pytest.raises(RepaymentFailed):
            flash_pool.repay(usdc, 1, payer=TRADER)

    def test_invalid_fee(self):
        with pytest.raises(ValueError):
            InMemoryFlashLoanProvider(derive_address("flash"), fee_bps=10_001)


class TestConstantProductMarket:
    def test_spot_price(self, ersv, usdc, market):
        assert market.reserves == (1_000_000 * ONE, 100_000 * USD)
        assert market.price_of(ersv) == 100_000 * USD * ONE // (1_000_000 * ONE)
        assert market.price_of(usdc) == 10**6

    def test_buy_follows_constant_product(self, ersv, usdc, market):
        expected_out = (50_000 * USD * 9_970 * 1_000_000 * ONE) // (100_000 * USD * 10_000 + 50_000 * USD * 9_970)
        price_before = market.spot_price()

        usdc.approve(market.address, 50_000 * USD, sender=TRADER)
        amount_out = market.buy(ersv, 50_000 * USD, buyer=TRADER)

        assert amount_out == expected_out
        assert ersv.balance_of(TRADER) == 100_000 * ONE + expected_out
        assert market.reserves == (1_000_000 * ONE - expected_out, 150_000 * USD)
        assert market.spot_price() > price_before
        assert market.trades[-1].side == "buy"

    def test_sell_lowers_price(self, ersv, market):
        price_before = market.spot_price()
        ersv.approve(market.address, 100_000 * ONE, sender=TRADER)
        proceeds = market.sell(ersv, 100_000 * ONE, seller=TRADER)
        assert proceeds > 0
        assert market.spot_price() < price_before

    def test_buy_without_approval_rejected(self, ersv, usdc, market):
        with pytest.raises(MarketUnavailable):
            market.buy(ersv, 10_000, buyer=TRADER)
        assert market.reserves == (1_000_000 * ONE, 100_000 * USD)
        assert market.trades == []

    def test_slippage_bound(self, ersv, usdc):
        tight = ConstantProductMarket(derive_address("tight"), ersv, usdc, fee_bps=30, max_slippage_bps=100)
        tight.add_liquidity(1_000_000 * ONE, 100_000 * USD, provider=ADMIN)
        usdc.approve(tight.address, 50_000 * USD, sender=TRADER)

        with pytest.raises(MarketUnavailable) as exc_info:
            tight.buy(ersv, 50_000 * USD, buyer=TRADER)
        assert "Slippage" in exc_info.value.message
        assert usdc.balance_of(TRADER) == 1_000_000 * USD

    def test_unknown_asset_rejected(self, usdc, market):
        other = QuoteToken(address=derive_address("other"))
        with pytest.raises(MarketUnavailable):
            market.price_of(other)
        with pytest.raises(MarketUnavailable):
            market.buy(other, 1, buyer=TRADER)

    def test_empty_pool(self, ersv, usdc):
        empty = ConstantProductMarket(derive_address("empty"), ersv, usdc)
        assert empty.spot_price() == 0
        with pytest.raises(MarketUnavailable):
            empty.sell(ersv, 1, seller=TRADER)


class TestCollateralLendingMarket:
    def test_listing_is_admin_only(self, ersv, lending):
        with pytest.raises(Unauthorized):
            lending.delist_asset(ersv, sender=TRADER)
        assert lending.is_listed(ersv)

    def test_deposit_and_borrow_within_ltv(self, ersv, usdc, market, lending):
        ersv.approve(lending.address, 100_000 * ONE, sender=TRADER)
        lending.deposit_collateral(ersv, 100_000 * ONE, depositor=TRADER)

        value = 100_000 * market.price_of(ersv)
        assert lending.collateral_of(TRADER, ersv) == 100_000 * ONE
        assert lending.collateral_value(TRADER) == value
        assert lending.available_to_borrow(TRADER) == value * 7_500 // 10_000

        allowed = lending.available_to_borrow(TRADER)
        lending.borrow_against(usdc, allowed, borrower=TRADER)
        assert lending.debt_of(TRADER) == allowed
        assert lending.available_to_borrow(TRADER) == 0
        assert lending.borrowers() == [TRADER]

    def test_borrow_over_ltv_rejected(self, ersv, usdc, lending):
        ersv.approve(lending.address, ONE, sender=TRADER)
        lending.deposit_collateral(ersv, ONE, depositor=TRADER)
        with pytest.raises(InsufficientCollateral) as exc_info:
            lending.borrow_against(usdc, lending.available_to_borrow(TRADER) + 1, borrower=TRADER)
        assert exc_info.value.account == TRADER
        assert lending.debt_of(TRADER) == 0

    def test_unlisted_collateral_rejected(self, ersv, usdc, lending):
        lending.delist_asset(ersv, sender=ADMIN)
        ersv.approve(lending.address, ONE, sender=TRADER)
        with pytest.raises(CollateralRejected):
            lending.deposit_collateral(ersv, ONE, depositor=TRADER)
        assert ersv.balance_of(lending.address) == 0

    def test_deposit_without_approval_rejected(self, ersv, lending):
        with pytest.raises(CollateralRejected):
            lending.deposit_collateral(ersv, ONE, depositor=TRADER)

    def test_manipulated_price_inflates_borrowing_power(self, ersv, usdc, market, lending):
        ersv.approve(lending.address, 100_000 * ONE, sender=TRADER)
        lending.deposit_collateral(ersv, 100_000 * ONE, depositor=TRADER)
        before = lending.available_to_borrow(TRADER)

        usdc.approve(market.address, 50_000 * USD, sender=TRADER)
        market.buy(ersv, 50_000 * USD, buyer=TRADER)

        assert lending.available_to_borrow(TRADER) > before

    def test_snapshot_revert(self, ersv, usdc, lending):
        marker = lending.snapshot()
        ersv.approve(lending.address, ONE, sender=TRADER)
        lending.deposit_collateral(ersv, ONE, depositor=TRADER)
        lending.revert(marker)
        assert lending.collateral_of(TRADER, ersv) == 0
