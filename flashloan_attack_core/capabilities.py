"""
Abstract capability interfaces the attack orchestrator composes. Concrete
backings (in-memory simulations in `markets/`, or test doubles) must honour
these contracts; the orchestrator never depends on a concrete class.

Implementations also expose an `address` attribute: the account that
approvals must name before the orchestrator calls in.

Every capability is Snapshottable so a failed run can roll back collateral
postings, debts and outstanding loans together with the token ledgers.
"""
import abc

from .atomic import Snapshottable
from .token import FungibleToken


class IFlashLoanProvider(Snapshottable):
    """Lends an asset for the duration of one run; must be repaid with a fee before the run ends."""

    @abc.abstractmethod
    def borrow(self, asset: FungibleToken, amount: int, receiver: str) -> None:
        """
        Transfers `amount` of `asset` to `receiver` and records the debt.
        Raises LoanUnavailable if the provider declines (liquidity, fee computation, open loan).
        """
        pass

    @abc.abstractmethod
    def repay(self, asset: FungibleToken, amount: int, payer: str) -> None:
        """
        Pulls `amount` of `asset` from `payer` (who must have approved the provider)
        and settles the debt. Raises RepaymentFailed if it does not cover principal plus fee.
        """
        pass

    @abc.abstractmethod
    def flash_fee(self, asset: FungibleToken, amount: int) -> int:
        """Fee charged on top of the principal for borrowing `amount`."""
        pass

    @abc.abstractmethod
    def max_flash_loan(self, asset: FungibleToken) -> int:
        pass

    @abc.abstractmethod
    def outstanding(self, receiver: str, asset: FungibleToken) -> int:
        """Principal plus fee still owed by `receiver`; 0 when settled."""
        pass


class ISpotMarket(Snapshottable):
    """A market quoting `asset` against the quote asset. Trades never partially fill."""

    @abc.abstractmethod
    def buy(self, asset: FungibleToken, quote_amount: int, buyer: str) -> int:
        """
        Spends `quote_amount` of the quote asset (pre-approved by `buyer`) and returns
        the amount of `asset` received. Raises MarketUnavailable when rejected.
        """
        pass

    @abc.abstractmethod
    def sell(self, asset: FungibleToken, amount: int, seller: str) -> int:
        """
        Sells `amount` of `asset` (pre-approved by `seller`) and returns the quote
        received. Raises MarketUnavailable when rejected.
        """
        pass

    @abc.abstractmethod
    def price_of(self, asset: FungibleToken) -> int:
        """Observed price: quote base units per one whole unit of `asset`."""
        pass


class ILendingMarket(Snapshottable):
    """Accepts listed assets as collateral and lends against their assessed value."""

    @abc.abstractmethod
    def deposit_collateral(self, asset: FungibleToken, amount: int, depositor: str) -> None:
        """
        Pulls `amount` of `asset` (pre-approved by `depositor`) as collateral.
        Raises CollateralRejected if the asset is not listed or the transfer fails.
        """
        pass

    @abc.abstractmethod
    def borrow_against(self, asset: FungibleToken, amount: int, borrower: str) -> None:
        """
        Lends `amount` of `asset` to `borrower` against posted collateral.
        Raises InsufficientCollateral if the loan-to-value policy rejects the draw.
        """
        pass

    @abc.abstractmethod
    def available_to_borrow(self, account: str) -> int:
        """Largest draw the LTV policy currently allows for `account`."""
        pass
