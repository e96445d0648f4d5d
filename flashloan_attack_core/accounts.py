"""
Address handling and labelled account management for simulation runs.
"""
import pandas as pd
from web3 import Web3
from typing import Any, Dict, List, Optional, Sequence

from . import config as core_config
from .errors import InvalidAddress

ZERO_ADDRESS: str = "0x0000000000000000000000000000000000000000"


def is_valid_address(value: Any) -> bool:
    """True for 20-byte hex addresses in any letter case."""
    return isinstance(value, str) and Web3.is_address(value.lower())


def normalize_address(value: Any) -> str:
    """
    Returns the EIP-55 checksummed form of an address. Objects exposing an
    `address` attribute (ledgers, markets) are resolved to that address.
    Raises InvalidAddress for anything that is not a 20-byte hex address.
    """
    if hasattr(value, "address"):
        value = value.address
    if not is_valid_address(value):
        raise InvalidAddress(f"Not a valid address: {value!r}")
    return Web3.to_checksum_address(value)


def derive_address(label: str) -> str:
    """Deterministic checksummed address from the last 20 bytes of keccak256(label)."""
    return Web3.to_checksum_address(Web3.to_hex(Web3.keccak(text=label)[-20:]))


class AccountManager:
    """
    Maps human-readable labels (deployer, attacker, ...) to account addresses.
    Labels are loaded from CSV files with 'label' and 'address' columns; any
    requested label missing from the files gets a derived address.
    """
    def __init__(self,
                 account_file_paths: Optional[List[str]] = None,
                 labels: Sequence[str] = core_config.DEFAULT_ACCOUNT_LABELS
                ):
        """
        :param account_file_paths: CSV files to load labelled accounts from. None loads nothing.
        :param labels: Labels that must always resolve; missing ones are derived.
        """
        self.accounts: Dict[str, str] = {}

        if account_file_paths:
            self._load_accounts_from_files(account_file_paths)

        for label in labels:
            if label not in self.accounts:
                self.accounts[label] = derive_address(label)

    def _load_accounts_from_files(self, file_paths: List[str]):
        """Loads labelled addresses from the given CSV files. First file wins on duplicate labels."""
        for file_path in file_paths:
            try:
                print(f"INFO: Loading accounts from: {file_path}")
                account_frame = pd.read_csv(file_path, dtype=str)
            except FileNotFoundError:
                print(f"WARN: Account file not found: {file_path}")
                continue
            except pd.errors.EmptyDataError:
                print(f"WARN: Account file is empty: {file_path}")
                continue

            if 'label' not in account_frame.columns or 'address' not in account_frame.columns:
                print(f"WARN: Skipping {file_path}: expected 'label' and 'address' columns.")
                continue

            for _, row_data in account_frame.iterrows():
                label = str(row_data['label']).strip()
                address = str(row_data['address']).strip()
                if not is_valid_address(address):
                    print(f"WARN: Skipping account '{label}' in {file_path}: invalid address {address}")
                    continue
                if label not in self.accounts:
                    self.accounts[label] = normalize_address(address)

        print(f"INFO: AccountManager holds {len(self.accounts)} labelled accounts.")

    def get(self, label: str) -> str:
        """Returns the address for a label; unknown labels get a derived address."""
        if label not in self.accounts:
            self.accounts[label] = derive_address(label)
        return self.accounts[label]

    def label_of(self, address: str) -> Optional[str]:
        if not is_valid_address(address):
            return None
        checksummed = normalize_address(address)
        for label, known in self.accounts.items():
            if known == checksummed:
                return label
        return None

    def __contains__(self, label: str) -> bool:
        return label in self.accounts

    @property
    def labels(self) -> List[str]:
        return list(self.accounts)

    def as_dict(self) -> Dict[str, str]:
        return dict(self.accounts)
