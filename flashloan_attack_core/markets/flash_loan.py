# flashloan_attack_core/markets/flash_loan.py
"""
In-memory flash loan pool. Liquidity is whatever balance the pool address
holds in the borrowed asset's ledger.
"""
import copy
from typing import Any, Dict, Tuple

from .. import config as core_config
from ..accounts import normalize_address
from ..capabilities import IFlashLoanProvider
from ..errors import AttackSimError, LoanUnavailable, RepaymentFailed
from ..token import FungibleToken, require_amount


class InMemoryFlashLoanProvider(IFlashLoanProvider):
    """
    Flash loan pool charging `fee_bps` on the principal. One loan per
    (receiver, asset) may be open at a time; it is cleared only by a repay()
    covering principal plus fee.
    """
    def __init__(self, address: str, fee_bps: int = core_config.FLASH_LOAN_FEE_BPS):
        if not 0 <= fee_bps <= core_config.BPS_DENOMINATOR:
            raise ValueError(f"fee_bps must be within [0, {core_config.BPS_DENOMINATOR}], got {fee_bps}")
        self.address: str = normalize_address(address)
        self.fee_bps: int = fee_bps
        self._loans: Dict[Tuple[str, str], int] = {} # (receiver, asset) -> amount owed

    def flash_fee(self, asset: FungibleToken, amount: int) -> int:
        return require_amount(amount) * self.fee_bps // core_config.BPS_DENOMINATOR

    def max_flash_loan(self, asset: FungibleToken) -> int:
        return asset.balance_of(self.address)

    def outstanding(self, receiver: str, asset: FungibleToken) -> int:
        return self._loans.get((normalize_address(receiver), asset.address), 0)

    def borrow(self, asset: FungibleToken, amount: int, receiver: str) -> None:
        receiver = normalize_address(receiver)
        amount = require_amount(amount)
        available = self.max_flash_loan(asset)

        if amount == 0:
            raise LoanUnavailable("Flash loan amount must be positive", asset=asset.address, account=receiver,
                                  requested=amount, available=available)
        if amount > available:
            raise LoanUnavailable("Not enough liquidity in flash pool", asset=asset.address, account=receiver,
                                  requested=amount, available=available)
        if (receiver, asset.address) in self._loans:
            raise LoanUnavailable("Receiver already has an open flash loan", asset=asset.address, account=receiver,
                                  requested=amount, available=available)

        owed = amount + self.flash_fee(asset, amount)
        asset.transfer(receiver, amount, sender=self.address)
        self._loans[(receiver, asset.address)] = owed
        print(f"INFO: Flash loan of {amount} {asset.symbol} issued to {receiver} (owed: {owed}).")

    def repay(self, asset: FungibleToken, amount: int, payer: str) -> None:
        payer = normalize_address(payer)
        amount = require_amount(amount)
        owed = self._loans.get((payer, asset.address))

        if owed is None:
            raise RepaymentFailed("No open flash loan for payer", asset=asset.address, account=payer,
                                  requested=amount, available=0)
        if amount < owed:
            raise RepaymentFailed("Repayment does not cover principal plus fee", asset=asset.address,
                                  account=payer, requested=owed, available=amount)
        try:
            asset.transfer_from(payer, self.address, amount, sender=self.address)
        except AttackSimError as e:
            raise RepaymentFailed(f"Repayment transfer failed: {e.message}", asset=asset.address, account=payer,
                                  requested=amount, available=asset.balance_of(payer)) from e

        del self._loans[(payer, asset.address)]
        print(f"INFO: Flash loan repaid by {payer}: {amount} {asset.symbol}.")

    def snapshot(self) -> Dict[Tuple[str, str], int]:
        return dict(self._loans)

    def revert(self, snapshot_id: Any) -> None:
        self._loans = copy.deepcopy(snapshot_id)
