# flashloan_attack_core/token.py
"""
ERC-20 style balance ledger used for both the attacked reserve token and the
quote asset (USDC) that the market capabilities trade against.
"""
import copy
import functools
import threading
from decimal import Decimal
from typing import Any, Callable, Dict, Tuple, Union

from . import config as core_config
from .accounts import ZERO_ADDRESS, is_valid_address, normalize_address
from .atomic import Snapshottable
from .errors import InsufficientAllowance, InsufficientBalance, InvalidReceiver, Overflow
from .events import EventLog


def to_base_units(amount: Union[int, str, Decimal], decimals: int) -> int:
    """Converts a human amount ("1.5") to integer base units, like ethers.parseUnits."""
    return int(Decimal(str(amount)) * (Decimal(10) ** decimals))


def format_units(amount: int, decimals: int) -> str:
    """Converts integer base units back to a human-readable decimal string."""
    value = Decimal(amount) / (Decimal(10) ** decimals)
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def require_amount(amount: Any) -> int:
    """Amounts are non-negative ints (uint256 on the original platform)."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValueError(f"Amount must be an int, got {type(amount).__name__}")
    if amount < 0:
        raise ValueError(f"Amount must be non-negative, got {amount}")
    if amount > core_config.MAX_UINT256:
        raise Overflow("Amount exceeds MAX_UINT256", requested=amount, available=core_config.MAX_UINT256)
    return amount


def synchronized(method: Callable) -> Callable:
    """Runs a ledger method under the ledger's lock."""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self.lock:
            return method(self, *args, **kwargs)
    return wrapper


class FungibleToken(Snapshottable):
    """
    Balance ledger with ERC-20 transfer/approve semantics. Invariant: the sum
    of all balances equals total_supply, and no balance is ever negative.
    Every failing call raises before mutating anything.

    Public mutators run under the re-entrant `lock`; AttackOrchestrator.execute
    holds it for a whole run, so other writers wait until the run settles or reverts.
    """
    def __init__(self, address: str, name: str, symbol: str, decimals: int):
        self.address: str = normalize_address(address)
        self.name: str = name
        self.symbol: str = symbol
        self.decimals: int = decimals
        self.events: EventLog = EventLog(self.address)
        self.lock = threading.RLock()

        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}
        self._total_supply: int = 0

    # --- Reads ---

    @property
    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, account: Any) -> int:
        if hasattr(account, "address"):
            account = account.address
        if not is_valid_address(account):
            return 0
        return self._balances.get(normalize_address(account), 0)

    def allowance(self, owner: Any, spender: Any) -> int:
        if hasattr(owner, "address"):
            owner = owner.address
        if hasattr(spender, "address"):
            spender = spender.address
        if not (is_valid_address(owner) and is_valid_address(spender)):
            return 0
        return self._allowances.get((normalize_address(owner), normalize_address(spender)), 0)

    def holders(self) -> Dict[str, int]:
        """Copy of all non-zero balances."""
        return {account: balance for account, balance in self._balances.items() if balance}

    # --- Mutations ---

    @synchronized
    def transfer(self, to: Any, amount: int, sender: Any) -> bool:
        self._transfer(normalize_address(sender), normalize_address(to), require_amount(amount))
        return True

    @synchronized
    def approve(self, spender: Any, amount: int, sender: Any) -> bool:
        owner = normalize_address(sender)
        spender = normalize_address(spender)
        amount = require_amount(amount)
        self._allowances[(owner, spender)] = amount
        self.events.emit("Approval", owner=owner, spender=spender, amount=amount)
        return True

    @synchronized
    def transfer_from(self, owner: Any, to: Any, amount: int, sender: Any) -> bool:
        owner = normalize_address(owner)
        spender = normalize_address(sender)
        to = normalize_address(to)
        amount = require_amount(amount)

        current = self._allowances.get((owner, spender), 0)
        if current < amount:
            raise InsufficientAllowance(
                f"{self.symbol}: allowance too low",
                asset=self.address, account=spender, requested=amount, available=current
            )
        self._check_transfer(owner, to, amount)
        if current != core_config.MAX_UINT256:
            self._allowances[(owner, spender)] = current - amount
        self._transfer(owner, to, amount)
        return True

    def _check_balance(self, account: str, amount: int):
        balance = self._balances.get(account, 0)
        if balance < amount:
            raise InsufficientBalance(
                f"{self.symbol}: insufficient balance",
                asset=self.address, account=account, requested=amount, available=balance
            )

    def _check_transfer(self, sender: str, to: str, amount: int):
        if to == ZERO_ADDRESS:
            raise InvalidReceiver(f"{self.symbol}: transfer to the zero address", asset=self.address, account=to)
        self._check_balance(sender, amount)

    def _emit_transfer(self, sender: str, to: str, amount: int):
        self.events.emit("Transfer", **{"from": sender, "to": to, "amount": amount})

    def _transfer(self, sender: str, to: str, amount: int):
        self._check_transfer(sender, to, amount)
        self._balances[sender] = self._balances.get(sender, 0) - amount
        self._balances[to] = self._balances.get(to, 0) + amount
        self._emit_transfer(sender, to, amount)

    def _mint(self, to: str, amount: int):
        if to == ZERO_ADDRESS:
            raise InvalidReceiver(f"{self.symbol}: mint to the zero address", asset=self.address, account=to)
        if self._total_supply + amount > core_config.MAX_UINT256:
            raise Overflow(
                f"{self.symbol}: total supply would overflow",
                asset=self.address, requested=amount,
                available=core_config.MAX_UINT256 - self._total_supply
            )
        self._total_supply += amount
        self._balances[to] = self._balances.get(to, 0) + amount
        self._emit_transfer(ZERO_ADDRESS, to, amount)

    def _burn(self, account: str, amount: int):
        self._check_balance(account, amount)
        self._balances[account] = self._balances.get(account, 0) - amount
        self._total_supply -= amount
        self._emit_transfer(account, ZERO_ADDRESS, amount)

    # --- Snapshottable ---

    @synchronized
    def snapshot(self) -> Dict[str, Any]:
        return {
            "balances": dict(self._balances),
            "allowances": dict(self._allowances),
            "total_supply": self._total_supply,
            "events": self.events.snapshot(),
        }

    @synchronized
    def revert(self, snapshot_id: Dict[str, Any]) -> None:
        state = copy.deepcopy(snapshot_id)
        self._balances = state["balances"]
        self._allowances = state["allowances"]
        self._total_supply = state["total_supply"]
        self.events.revert(state["events"])

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.symbol} @ {self.address}, supply={self._total_supply})"


class QuoteToken(FungibleToken):
    """
    Freely mintable quote asset (USDC stand-in) for simulations; anyone can
    call the faucet, which is what test tokens on dev chains do.
    """
    def __init__(self,
                 address: str,
                 name: str = core_config.QUOTE_NAME,
                 symbol: str = core_config.QUOTE_SYMBOL,
                 decimals: int = core_config.QUOTE_DECIMALS
                ):
        super().__init__(address, name, symbol, decimals)

    @synchronized
    def faucet(self, to: Any, amount: int) -> None:
        self._mint(normalize_address(to), require_amount(amount))
