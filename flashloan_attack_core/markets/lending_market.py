# flashloan_attack_core/markets/lending_market.py
"""
In-memory collateralised lending market. Collateral is valued through a
price source (normally the spot market itself), which is exactly what makes
it exploitable by a manipulated spot price.
"""
import copy
from typing import Any, Dict, List, Set, Tuple

from .. import config as core_config
from ..accounts import normalize_address
from ..capabilities import ILendingMarket
from ..errors import AttackSimError, CollateralRejected, InsufficientCollateral, Unauthorized
from ..token import FungibleToken, require_amount


class CollateralLendingMarket(ILendingMarket):
    """
    Lends the quote asset from its own balance against listed collateral
    assets. Only the admin may list or delist assets; deposits of unlisted
    assets are rejected.
    """
    def __init__(self,
                 address: str,
                 admin: str,
                 quote: FungibleToken,
                 price_source: Any,
                 ltv_bps: int = core_config.LENDING_LTV_BPS
                ):
        """
        :param price_source: Any object with `price_of(asset) -> int` (quote base units per whole token).
        :param ltv_bps: Loan-to-value ratio in basis points applied to the collateral value.
        """
        if not 0 <= ltv_bps <= core_config.BPS_DENOMINATOR:
            raise ValueError(f"ltv_bps must be within [0, {core_config.BPS_DENOMINATOR}], got {ltv_bps}")
        self.address: str = normalize_address(address)
        self.admin: str = normalize_address(admin)
        self.quote: FungibleToken = quote
        self.price_source = price_source
        self.ltv_bps: int = ltv_bps

        self._listed: Dict[str, FungibleToken] = {}
        self._collateral: Dict[Tuple[str, str], int] = {} # (account, asset) -> amount
        self._debt: Dict[str, int] = {} # account -> quote owed

    # --- Listing ---

    def list_asset(self, asset: FungibleToken, sender: str) -> None:
        self._only_admin(sender)
        self._listed[asset.address] = asset
        print(f"INFO: {asset.symbol} listed as collateral.")

    def delist_asset(self, asset: FungibleToken, sender: str) -> None:
        self._only_admin(sender)
        self._listed.pop(asset.address, None)

    def is_listed(self, asset: FungibleToken) -> bool:
        return asset.address in self._listed

    @property
    def listed_assets(self) -> Set[str]:
        return set(self._listed)

    def _only_admin(self, sender: str):
        if normalize_address(sender) != self.admin:
            raise Unauthorized("Lending market: caller is not the admin", account=str(sender))

    # --- Accounting ---

    def collateral_of(self, account: str, asset: FungibleToken) -> int:
        return self._collateral.get((normalize_address(account), asset.address), 0)

    def debt_of(self, account: str) -> int:
        return self._debt.get(normalize_address(account), 0)

    def collateral_value(self, account: str) -> int:
        """Quote-denominated value of everything `account` has posted, at current prices."""
        account = normalize_address(account)
        total = 0
        for (holder, asset_address), amount in self._collateral.items():
            if holder != account or amount == 0:
                continue
            asset = self._listed.get(asset_address)
            if asset is None: # Delisted assets stop counting towards borrowing power
                continue
            total += amount * self.price_source.price_of(asset) // 10**asset.decimals
        return total

    def available_to_borrow(self, account: str) -> int:
        limit = self.collateral_value(account) * self.ltv_bps // core_config.BPS_DENOMINATOR
        headroom = max(0, limit - self.debt_of(account))
        return min(headroom, self.quote.balance_of(self.address))

    def deposit_collateral(self, asset: FungibleToken, amount: int, depositor: str) -> None:
        depositor = normalize_address(depositor)
        amount = require_amount(amount)
        if not self.is_listed(asset):
            raise CollateralRejected(f"{asset.symbol} is not listed as collateral", asset=asset.address,
                                     account=depositor, requested=amount)
        if amount == 0:
            raise CollateralRejected("Collateral amount must be positive", asset=asset.address, account=depositor,
                                     requested=amount)
        try:
            asset.transfer_from(depositor, self.address, amount, sender=self.address)
        except AttackSimError as e:
            raise CollateralRejected(f"Collateral transfer failed: {e.message}", asset=asset.address,
                                     account=depositor, requested=amount,
                                     available=asset.balance_of(depositor)) from e

        key = (depositor, asset.address)
        self._collateral[key] = self._collateral.get(key, 0) + amount
        print(f"INFO: {depositor} posted {amount} {asset.symbol} as collateral.")

    def borrow_against(self, asset: FungibleToken, amount: int, borrower: str) -> None:
        borrower = normalize_address(borrower)
        amount = require_amount(amount)
        if asset.address != self.quote.address:
            raise InsufficientCollateral(f"Market does not lend {asset.symbol}", asset=asset.address,
                                         account=borrower, requested=amount, available=0)

        available = self.available_to_borrow(borrower)
        if amount == 0 or amount > available:
            raise InsufficientCollateral("Would exceed LTV", asset=asset.address, account=borrower,
                                         requested=amount, available=available)

        self.quote.transfer(borrower, amount, sender=self.address)
        self._debt[borrower] = self._debt.get(borrower, 0) + amount
        print(f"INFO: {borrower} borrowed {amount} {asset.symbol} against collateral.")

    def borrowers(self) -> List[str]:
        return [account for account, debt in self._debt.items() if debt]

    # --- Snapshottable ---

    def snapshot(self) -> Dict[str, Any]:
        return {
            "listed": dict(self._listed),
            "collateral": dict(self._collateral),
            "debt": dict(self._debt),
        }

    def revert(self, snapshot_id: Any) -> None:
        self._listed = dict(snapshot_id["listed"])
        self._collateral = copy.deepcopy(snapshot_id["collateral"])
        self._debt = copy.deepcopy(snapshot_id["debt"])
