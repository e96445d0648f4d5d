# flashloan_attack_core/markets/spot_market.py
"""
Constant-product (x * y = k) pool between one base token and the quote asset.
Reserves are the pool address's balances in the two ledgers, so the pool has
no hidden state beyond its trade history.
"""
from typing import Any, List

from .. import config as core_config
from ..accounts import normalize_address
from ..capabilities import ISpotMarket
from ..errors import AttackSimError, MarketUnavailable
from ..token import FungibleToken, require_amount


class Trade:
    """One executed swap, kept for reporting."""
    def __init__(self, side: str, trader: str, amount_in: int, amount_out: int, price_before: int, price_after: int):
        self.side: str = side # 'buy' or 'sell' of the base token
        self.trader: str = trader
        self.amount_in: int = amount_in
        self.amount_out: int = amount_out
        self.price_before: int = price_before
        self.price_after: int = price_after

    def __repr__(self) -> str:
        return (f"Trade({self.side}, trader='{self.trader[:10]}...', in={self.amount_in}, out={self.amount_out}, "
                f"price={self.price_before}->{self.price_after})")


class ConstantProductMarket(ISpotMarket):
    """
    Uniswap V2 style pool. A trade whose output falls short of the pre-trade
    spot quote by more than `max_slippage_bps` is rejected outright; there is
    no partial fill.
    """
    def __init__(self,
                 address: str,
                 base: FungibleToken,
                 quote: FungibleToken,
                 fee_bps: int = core_config.SPOT_MARKET_FEE_BPS,
                 max_slippage_bps: int = core_config.DEFAULT_MAX_SLIPPAGE_BPS
                ):
        if not 0 <= fee_bps < core_config.BPS_DENOMINATOR:
            raise ValueError(f"fee_bps must be within [0, {core_config.BPS_DENOMINATOR}), got {fee_bps}")
        self.address: str = normalize_address(address)
        self.base: FungibleToken = base
        self.quote: FungibleToken = quote
        self.fee_bps: int = fee_bps
        self.max_slippage_bps: int = max_slippage_bps
        self.trades: List[Trade] = []

    # --- Pool state ---

    @property
    def reserves(self):
        """(base reserve, quote reserve)"""
        return self.base.balance_of(self.address), self.quote.balance_of(self.address)

    def spot_price(self) -> int:
        """Quote base units per one whole base token; 0 for an empty pool."""
        base_reserve, quote_reserve = self.reserves
        if base_reserve == 0:
            return 0
        return quote_reserve * 10**self.base.decimals // base_reserve

    def price_of(self, asset: FungibleToken) -> int:
        if asset.address == self.base.address:
            return self.spot_price()
        if asset.address == self.quote.address:
            return 10**self.quote.decimals
        raise MarketUnavailable("Asset is not traded in this market", asset=asset.address)

    def add_liquidity(self, base_amount: int, quote_amount: int, provider: str) -> None:
        provider = normalize_address(provider)
        self.base.transfer(self.address, require_amount(base_amount), sender=provider)
        self.quote.transfer(self.address, require_amount(quote_amount), sender=provider)
        print(f"INFO: Liquidity added to {self.base.symbol}/{self.quote.symbol} pool: "
              f"{base_amount} {self.base.symbol}, {quote_amount} {self.quote.symbol}.")

    def get_amount_out(self, amount_in: int, reserve_in: int, reserve_out: int) -> int:
        amount_in_with_fee = amount_in * (core_config.BPS_DENOMINATOR - self.fee_bps)
        numerator = amount_in_with_fee * reserve_out
        denominator = reserve_in * core_config.BPS_DENOMINATOR + amount_in_with_fee
        return numerator // denominator

    # --- Trading ---

    def buy(self, asset: FungibleToken, quote_amount: int, buyer: str) -> int:
        self._require_base(asset)
        return self._swap("buy", self.quote, self.base, require_amount(quote_amount), normalize_address(buyer))

    def sell(self, asset: FungibleToken, amount: int, seller: str) -> int:
        self._require_base(asset)
        return self._swap("sell", self.base, self.quote, require_amount(amount), normalize_address(seller))

    def _require_base(self, asset: FungibleToken):
        if asset.address != self.base.address:
            raise MarketUnavailable("Asset is not traded in this market", asset=asset.address)

    def _swap(self, side: str, token_in: FungibleToken, token_out: FungibleToken, amount_in: int, trader: str) -> int:
        reserve_in = token_in.balance_of(self.address)
        reserve_out = token_out.balance_of(self.address)
        if amount_in == 0 or reserve_in == 0 or reserve_out == 0:
            raise MarketUnavailable(f"Cannot {side}: empty trade or pool", asset=self.base.address, account=trader,
                                    requested=amount_in, available=reserve_out)

        amount_out = self.get_amount_out(amount_in, reserve_in, reserve_out)
        quoted_out = amount_in * reserve_out // reserve_in
        if amount_out == 0:
            raise MarketUnavailable(f"Cannot {side}: output rounds to zero", asset=self.base.address,
                                    account=trader, requested=amount_in, available=reserve_out)

        slippage_bps = (quoted_out - amount_out) * core_config.BPS_DENOMINATOR // quoted_out
        if slippage_bps > self.max_slippage_bps:
            raise MarketUnavailable(
                f"Slippage bound exceeded on {side}: {slippage_bps} bps > {self.max_slippage_bps} bps",
                asset=self.base.address, account=trader, requested=quoted_out, available=amount_out
            )

        price_before = self.spot_price()
        try:
            token_in.transfer_from(trader, self.address, amount_in, sender=self.address)
        except AttackSimError as e:
            raise MarketUnavailable(f"Cannot {side}: {e.message}", asset=token_in.address, account=trader,
                                    requested=amount_in, available=token_in.balance_of(trader)) from e
        token_out.transfer(trader, amount_out, sender=self.address)

        trade = Trade(side, trader, amount_in, amount_out, price_before, self.spot_price())
        self.trades.append(trade)
        print(f"INFO: {side.upper()} {self.base.symbol}: {amount_in} {token_in.symbol} -> {amount_out} {token_out.symbol} "
              f"(price {trade.price_before} -> {trade.price_after}).")
        return amount_out

    # --- Snapshottable ---

    def snapshot(self) -> int:
        return len(self.trades)

    def revert(self, snapshot_id: Any) -> None:
        del self.trades[snapshot_id:]
