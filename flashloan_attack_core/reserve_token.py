# flashloan_attack_core/reserve_token.py
"""
The attacked token: an ownable, mintable/burnable ledger that also records,
per external asset, how much "reserve backing" the owner asserts.

The backing table is an owner-asserted ledger only. Nothing here compares it
against balances, supply or any market price; that gap is the property the
attack relies on and is kept as-is.
"""
import copy
from typing import Any, Dict, List

from . import config as core_config
from .accounts import ZERO_ADDRESS, is_valid_address, normalize_address
from .errors import InsufficientReserve, InvalidAddress, Overflow, Unauthorized
from .token import FungibleToken, require_amount, synchronized


class ReserveToken(FungibleToken):
    """
    ERSV. The deploying owner receives the initial supply. Privileged calls
    check the caller first, validate second and mutate last, so a rejected
    call never changes state.
    """
    def __init__(self,
                 owner: str,
                 address: str,
                 initial_supply: int = core_config.TOKEN_INITIAL_SUPPLY,
                 name: str = core_config.TOKEN_NAME,
                 symbol: str = core_config.TOKEN_SYMBOL,
                 decimals: int = core_config.TOKEN_DECIMALS
                ):
        super().__init__(address, name, symbol, decimals)
        self._owner: str = normalize_address(owner)
        self._reserves: Dict[str, int] = {}

        self.events.emit("OwnershipTransferred", previous_owner=ZERO_ADDRESS, new_owner=self._owner)
        if initial_supply:
            self._mint(self._owner, require_amount(initial_supply))

    # --- Ownership ---

    @property
    def owner(self) -> str:
        return self._owner

    def _only_owner(self, sender: Any) -> str:
        try:
            caller = normalize_address(sender)
        except InvalidAddress:
            raise Unauthorized(f"{self.symbol}: caller is not the owner", account=str(sender))
        if caller != self._owner:
            raise Unauthorized(f"{self.symbol}: caller is not the owner", account=caller)
        return caller

    @synchronized
    def transfer_ownership(self, new_owner: Any, sender: Any) -> None:
        self._only_owner(sender)
        new_owner = normalize_address(new_owner)
        if new_owner == ZERO_ADDRESS:
            raise InvalidAddress(f"{self.symbol}: new owner is the zero address", account=new_owner)
        previous_owner = self._owner
        self._owner = new_owner
        self.events.emit("OwnershipTransferred", previous_owner=previous_owner, new_owner=new_owner)

    # --- Supply ---

    @synchronized
    def mint(self, to: Any, amount: int, sender: Any) -> None:
        self._only_owner(sender)
        self._mint(normalize_address(to), require_amount(amount))

    @synchronized
    def burn(self, amount: int, sender: Any) -> None:
        self._burn(normalize_address(sender), require_amount(amount))

    # --- Reserve backing ---

    def reserve_backing(self, asset: Any) -> int:
        if hasattr(asset, "address"):
            asset = asset.address
        if not is_valid_address(asset):
            return 0
        return self._reserves.get(normalize_address(asset), 0)

    @property
    def backed_assets(self) -> List[str]:
        """Assets with a non-zero recorded backing."""
        return [asset for asset, amount in self._reserves.items() if amount]

    @synchronized
    def add_reserve_backing(self, asset: Any, amount: int, sender: Any) -> None:
        self._only_owner(sender)
        asset = normalize_address(asset)
        amount = require_amount(amount)
        current = self._reserves.get(asset, 0)
        if current + amount > core_config.MAX_UINT256:
            raise Overflow(
                f"{self.symbol}: reserve backing would overflow",
                asset=asset, requested=amount, available=core_config.MAX_UINT256 - current
            )
        self._reserves[asset] = current + amount
        self.events.emit("ReserveAdded", asset=asset, amount=amount)

    @synchronized
    def remove_reserve_backing(self, asset: Any, amount: int, sender: Any) -> None:
        self._only_owner(sender)
        asset = normalize_address(asset)
        amount = require_amount(amount)
        current = self._reserves.get(asset, 0)
        if current < amount:
            raise InsufficientReserve(
                "Insufficient reserve", asset=asset, requested=amount, available=current
            )
        self._reserves[asset] = current - amount
        self.events.emit("ReserveRemoved", asset=asset, amount=amount)

    # --- Snapshottable ---

    @synchronized
    def snapshot(self) -> Dict[str, Any]:
        state = super().snapshot()
        state["reserves"] = dict(self._reserves)
        state["owner"] = self._owner
        return state

    @synchronized
    def revert(self, snapshot_id: Dict[str, Any]) -> None:
        super().revert(snapshot_id)
        self._reserves = copy.deepcopy(snapshot_id["reserves"])
        self._owner = snapshot_id["owner"]
