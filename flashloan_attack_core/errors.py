# flashloan_attack_core/errors.py
"""
Error taxonomy shared by the token ledgers, the market capabilities and the
attack orchestrator. Every error carries enough context (asset, account,
requested vs. available amount, and the orchestrator stage when raised during
a run) to tell which step failed.
"""
from typing import Optional


class AttackSimError(Exception):
    """Base class for every error raised by the simulator."""

    def __init__(self,
                 message: str = "",
                 asset: Optional[str] = None,
                 account: Optional[str] = None,
                 requested: Optional[int] = None,
                 available: Optional[int] = None,
                 stage: Optional[str] = None
                ):
        self.message: str = message or self.__class__.__name__
        self.asset: Optional[str] = asset
        self.account: Optional[str] = account
        self.requested: Optional[int] = requested
        self.available: Optional[int] = available
        self.stage: Optional[str] = stage # Set by the orchestrator when raised mid-run
        super().__init__(self.message)

    def __str__(self) -> str:
        details = []
        if self.stage is not None:
            details.append(f"stage={self.stage}")
        if self.asset is not None:
            details.append(f"asset={self.asset}")
        if self.account is not None:
            details.append(f"account={self.account}")
        if self.requested is not None:
            details.append(f"requested={self.requested}")
        if self.available is not None:
            details.append(f"available={self.available}")
        if not details:
            return self.message
        return f"{self.message} ({', '.join(details)})"


# --- Ledger errors ---

class Unauthorized(AttackSimError):
    """Caller lacks the owner (or admin) privilege."""


class InsufficientBalance(AttackSimError):
    pass


class InsufficientAllowance(AttackSimError):
    pass


class InsufficientReserve(AttackSimError):
    pass


class Overflow(AttackSimError):
    """A supply or reserve total would exceed MAX_UINT256."""


class InvalidAddress(AttackSimError, ValueError):
    pass


class InvalidReceiver(AttackSimError):
    """Transfers and mints to the zero address are rejected."""


# --- Capability errors ---

class LoanUnavailable(AttackSimError):
    pass


class MarketUnavailable(AttackSimError):
    pass


class CollateralRejected(AttackSimError):
    pass


class InsufficientCollateral(AttackSimError):
    pass


class RepaymentFailed(AttackSimError):
    pass


# --- Orchestrator errors ---

class ExecutionInProgress(AttackSimError):
    """execute() was re-entered while a run was still in flight."""


# --- Chain access errors ---

class ChainUnavailable(AttackSimError):
    """A JSON-RPC call to the dev chain failed in transport or was rejected by the node."""
