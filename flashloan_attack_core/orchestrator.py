# flashloan_attack_core/orchestrator.py
"""
The attacker contract: a fixed, atomic pipeline that borrows a flash loan,
pumps the reserve token's spot price, posts the pumped tokens as collateral,
borrows against them, dumps the position, repays the loan and records the
run. Any failure inside the pipeline rolls back every participant.
"""
import enum
import threading
import time
from typing import Callable, List, Optional, Sequence, Tuple

from . import config as core_config
from .accounts import normalize_address
from .atomic import AtomicSection, Snapshottable
from .capabilities import IFlashLoanProvider, ILendingMarket, ISpotMarket
from .errors import AttackSimError, ExecutionInProgress, InsufficientCollateral, RepaymentFailed
from .events import EventLog
from .reserve_token import ReserveToken
from .token import FungibleToken, require_amount


class AttackStage(enum.Enum):
    IDLE = "Idle"
    BORROWING = "Borrowing"
    MANIPULATING = "Manipulating"
    COLLATERALIZING = "Collateralizing"
    BORROWED = "Borrowed"
    UNWINDING = "Unwinding"
    REPAYING = "Repaying"
    SETTLED = "Settled"
    REVERTED = "Reverted"


class AttackStats:
    """Cumulative record of completed runs. Profit is signed: a run can lose money."""
    def __init__(self, attempts: int = 0, successes: int = 0, cumulative_profit: int = 0,
                 last_run_timestamp: int = 0):
        self.attempts: int = attempts
        self.successes: int = successes
        self.cumulative_profit: int = cumulative_profit
        self.last_run_timestamp: int = last_run_timestamp

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.attempts, self.successes, self.cumulative_profit, self.last_run_timestamp)

    def copy(self) -> "AttackStats":
        return AttackStats(*self.as_tuple())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AttackStats):
            return NotImplemented
        return self.as_tuple() == other.as_tuple()

    def __repr__(self) -> str:
        return (f"AttackStats(attempts={self.attempts}, successes={self.successes}, "
                f"cumulative_profit={self.cumulative_profit}, last_run_timestamp={self.last_run_timestamp})")


class AttackRunResult:
    """What one settled run did, amount by amount."""
    def __init__(self, flash_loan_amount: int, manipulation_amount: int):
        self.flash_loan_amount: int = flash_loan_amount
        self.manipulation_amount: int = manipulation_amount
        self.flash_fee: int = 0
        self.acquired_amount: int = 0      # Reserve tokens bought during manipulation
        self.collateral_posted: int = 0
        self.price_before: Optional[int] = None
        self.price_manipulated: Optional[int] = None
        self.price_after: Optional[int] = None
        self.borrowed_amount: int = 0
        self.unwound_amount: int = 0       # Reserve tokens sold back
        self.unwind_proceeds: int = 0      # Quote received for them
        self.execution_cost: int = 0
        self.quote_balance_delta: int = 0  # Realised change of the orchestrator's quote balance
        self.profit: int = 0
        self.timestamp: int = 0
        self.stages: List[AttackStage] = []

    @property
    def successful(self) -> bool:
        return self.profit > 0

    def __repr__(self) -> str:
        return (f"AttackRunResult(loan={self.flash_loan_amount}, manipulation={self.manipulation_amount}, "
                f"borrowed={self.borrowed_amount}, fee={self.flash_fee}, profit={self.profit})")


class AttackOrchestrator:
    """
    Sequencer for the flash loan price-manipulation attack. Capability handles
    are fixed at construction. Runs are serialized; a re-entrant execute()
    from inside a run raises ExecutionInProgress.
    """
    def __init__(self,
                 address: str,
                 token: ReserveToken,
                 quote_asset: FungibleToken,
                 flash_loan: IFlashLoanProvider,
                 spot_market: ISpotMarket,
                 lending_market: ILendingMarket,
                 execution_cost: int = core_config.DEFAULT_EXECUTION_COST,
                 clock: Callable[[], float] = time.time
                ):
        """
        :param execution_cost: Quote-denominated cost (gas, bribes) netted from every run's profit.
        :param clock: Source of run timestamps, in seconds.
        """
        self._address: str = normalize_address(address)
        self._token = token
        self._quote_asset = quote_asset
        self._flash_loan = flash_loan
        self._spot_market = spot_market
        self._lending_market = lending_market
        self.execution_cost: int = require_amount(execution_cost)
        self._clock = clock

        self.events: EventLog = EventLog(self._address)
        self._stats = AttackStats()
        self._history: List[AttackRunResult] = []
        self._stage: AttackStage = AttackStage.IDLE
        self._lock = threading.RLock()

    # --- Immutable handles ---

    @property
    def address(self) -> str:
        return self._address

    @property
    def token(self) -> ReserveToken:
        return self._token

    @property
    def quote_asset(self) -> FungibleToken:
        return self._quote_asset

    @property
    def flash_loan(self) -> IFlashLoanProvider:
        return self._flash_loan

    @property
    def spot_market(self) -> ISpotMarket:
        return self._spot_market

    @property
    def lending_market(self) -> ILendingMarket:
        return self._lending_market

    # --- Reads ---

    @property
    def stage(self) -> AttackStage:
        return self._stage

    def get_attack_stats(self) -> Tuple[int, int, int, int]:
        """(attempts, successes, cumulative_profit, last_run_timestamp)"""
        return self._stats.as_tuple()

    @property
    def stats(self) -> AttackStats:
        return self._stats.copy()

    @property
    def run_history(self) -> List[AttackRunResult]:
        return list(self._history)

    # --- Execution ---

    def execute(self,
                flash_loan_amount: int = core_config.DEFAULT_FLASH_LOAN_AMOUNT,
                manipulation_amount: int = core_config.DEFAULT_MANIPULATION_AMOUNT,
                borrow_amount: Optional[int] = None,
                collateral_amount: Optional[int] = None,
                extra_participants: Sequence[Snapshottable] = ()
               ) -> AttackRunResult:
        """
        Runs the whole attack atomically and returns its result.

        :param flash_loan_amount: Quote asset to flash-borrow.
        :param manipulation_amount: Quote asset spent buying the reserve token to pump its price.
        :param borrow_amount: Quote asset to draw against the collateral. None draws the
                              lending market's full LTV allowance at the manipulated price.
        :param collateral_amount: Reserve tokens to post. None posts everything bought.
        :param extra_participants: Further state to roll back with the run, e.g. a ChainBalanceReader
                                   over the dev chain the deployment lives on.
        :raises AttackSimError: the failing step's error, with `stage` set. All state is
                                as it was before the call.
        """
        flash_loan_amount = require_amount(flash_loan_amount)
        manipulation_amount = require_amount(manipulation_amount)
        if borrow_amount is not None:
            borrow_amount = require_amount(borrow_amount)
        if collateral_amount is not None:
            collateral_amount = require_amount(collateral_amount)

        # Lock order: run lock, then each ledger. Ledger writers from other threads wait for the run.
        with self._lock, self._token.lock, self._quote_asset.lock:
            if self._stage is not AttackStage.IDLE:
                raise ExecutionInProgress("execute() re-entered during a run", account=self._address,
                                          stage=self._stage.value)

            result = AttackRunResult(flash_loan_amount, manipulation_amount)
            participants = [self._token, self._quote_asset, self._flash_loan, self._spot_market,
                            self._lending_market] + list(extra_participants)
            try:
                with AtomicSection(participants, name="execute"):
                    self._run_pipeline(result, borrow_amount, collateral_amount)
                self._settle(result)
            except AttackSimError as e:
                if e.stage is None:
                    e.stage = self._stage.value
                self._enter(AttackStage.REVERTED, result)
                print(f"WARN: Attack reverted at stage {e.stage}: {e}")
                raise
            finally:
                self._stage = AttackStage.IDLE
            return result

    def _enter(self, stage: AttackStage, result: AttackRunResult):
        self._stage = stage
        result.stages.append(stage)

    def _run_pipeline(self, result: AttackRunResult, borrow_amount: Optional[int],
                      collateral_amount: Optional[int]):
        token = self._token
        quote = self._quote_asset
        me = self._address
        quote_balance_before = quote.balance_of(me)

        # 1. Idle -> Borrowing
        self._enter(AttackStage.BORROWING, result)
        print(f"INFO: [1/7] Taking flash loan of {result.flash_loan_amount} {quote.symbol}...")
        result.flash_fee = self._flash_loan.flash_fee(quote, result.flash_loan_amount)
        self._flash_loan.borrow(quote, result.flash_loan_amount, receiver=me)

        # 2. Borrowing -> Manipulating
        self._enter(AttackStage.MANIPULATING, result)
        print(f"INFO: [2/7] Buying {token.symbol} with {result.manipulation_amount} {quote.symbol} to pump the price...")
        result.price_before = self._spot_market.price_of(token)
        quote.approve(self._spot_market.address, result.manipulation_amount, sender=me)
        result.acquired_amount = self._spot_market.buy(token, result.manipulation_amount, buyer=me)
        result.price_manipulated = self._spot_market.price_of(token)

        # 3. Manipulating -> Collateralizing
        self._enter(AttackStage.COLLATERALIZING, result)
        result.collateral_posted = result.acquired_amount if collateral_amount is None else collateral_amount
        print(f"INFO: [3/7] Depositing {result.collateral_posted} {token.symbol} as collateral...")
        token.approve(self._lending_market.address, result.collateral_posted, sender=me)
        self._lending_market.deposit_collateral(token, result.collateral_posted, depositor=me)

        # 4. Collateralizing -> Borrowed
        self._enter(AttackStage.BORROWED, result)
        draw = self._lending_market.available_to_borrow(me) if borrow_amount is None else borrow_amount
        if draw == 0:
            raise InsufficientCollateral("Collateral supports no borrowing", asset=quote.address, account=me,
                                         requested=draw, available=0)
        print(f"INFO: [4/7] Borrowing {draw} {quote.symbol} against inflated collateral...")
        self._lending_market.borrow_against(quote, draw, borrower=me)
        result.borrowed_amount = draw

        # 5. Borrowed -> Unwinding; lossy proceeds are expected here
        self._enter(AttackStage.UNWINDING, result)
        position = token.balance_of(me)
        if position:
            print(f"INFO: [5/7] Dumping {position} {token.symbol} to crash the price...")
            token.approve(self._spot_market.address, position, sender=me)
            result.unwind_proceeds = self._spot_market.sell(token, position, seller=me)
            result.unwound_amount = position
            if result.unwind_proceeds < result.manipulation_amount:
                print(f"INFO: Unwind returned {result.unwind_proceeds} {quote.symbol}, "
                      f"less than the {result.manipulation_amount} spent on manipulation.")
        else:
            print(f"INFO: [5/7] No {token.symbol} position left to unwind.")
        result.price_after = self._spot_market.price_of(token)

        # 6. Unwinding -> Repaying
        self._enter(AttackStage.REPAYING, result)
        owed = result.flash_loan_amount + result.flash_fee
        balance = quote.balance_of(me)
        print(f"INFO: [6/7] Repaying flash loan: {owed} {quote.symbol} (balance: {balance})...")
        if balance < owed:
            raise RepaymentFailed("Insufficient quote balance to repay flash loan", asset=quote.address,
                                  account=me, requested=owed, available=balance)
        quote.approve(self._flash_loan.address, owed, sender=me)
        self._flash_loan.repay(quote, owed, payer=me)
        still_owed = self._flash_loan.outstanding(me, quote)
        if still_owed:
            raise RepaymentFailed("Flash loan still outstanding at end of run", asset=quote.address,
                                  account=me, requested=still_owed, available=0)

        result.execution_cost = self.execution_cost
        result.quote_balance_delta = quote.balance_of(me) - quote_balance_before
        result.profit = (result.borrowed_amount - result.manipulation_amount
                         - result.flash_fee - result.execution_cost)

    def _settle(self, result: AttackRunResult):
        # 7. Repaying -> Settled
        self._enter(AttackStage.SETTLED, result)
        result.timestamp = int(self._clock())

        self._stats.attempts += 1
        if result.profit > 0:
            self._stats.successes += 1
        self._stats.cumulative_profit += result.profit
        self._stats.last_run_timestamp = result.timestamp
        self._history.append(result)

        self.events.emit("AttackCompleted", profit=result.profit)
        print(f"INFO: [7/7] Attack settled. Profit: {result.profit} {self._quote_asset.symbol} "
              f"(attempts={self._stats.attempts}, successes={self._stats.successes}).")
