# flashloan_attack_core/chain_reader.py
"""
Read-side interface to a deployed instance on a dev chain (hardhat, anvil).
Reads ERC-20 balances through web3 and exposes the dev chain's
evm_snapshot / evm_revert RPCs so a live chain can join an AtomicSection.
"""
from typing import Any, Dict, List, Optional

import requests
from web3 import Web3

from . import config as core_config
from .accounts import normalize_address
from .atomic import Snapshottable
from .deployment import DeploymentRecord
from .errors import ChainUnavailable

ERC20_READ_ABI: List[Dict[str, Any]] = [
    {
        "constant": True,
        "inputs": [{"name": "account", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [],
        "name": "totalSupply",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
]


class ChainBalanceReader(Snapshottable):
    def __init__(self,
                 rpc_url: str = core_config.DEFAULT_RPC_URL,
                 w3: Optional[Web3] = None,
                 timeout: float = core_config.RPC_TIMEOUT_SECONDS
                ):
        """
        :param rpc_url: JSON-RPC endpoint of the dev chain.
        :param w3: Pre-built Web3 instance; one over HTTPProvider(rpc_url) is created when omitted.
        :param timeout: Seconds before a raw JSON-RPC request is abandoned.
        """
        self.rpc_url: str = rpc_url
        self.w3 = w3 if w3 is not None else Web3(Web3.HTTPProvider(rpc_url))
        self.timeout: float = timeout
        self._request_id: int = 0

    def is_connected(self) -> bool:
        try:
            return bool(self.w3.is_connected())
        except Exception as e:
            print(f"WARN: Connection check against {self.rpc_url} failed: {e}")
            return False

    def erc20_balance(self, token_address: str, account: str) -> int:
        contract = self.w3.eth.contract(address=normalize_address(token_address), abi=ERC20_READ_ABI)
        return contract.functions.balanceOf(normalize_address(account)).call()

    def erc20_total_supply(self, token_address: str) -> int:
        contract = self.w3.eth.contract(address=normalize_address(token_address), abi=ERC20_READ_ABI)
        return contract.functions.totalSupply().call()

    def harvest(self, record: DeploymentRecord, token_name: str, accounts: Dict[str, str]) -> Optional[Dict[str, int]]:
        """
        Reads the balance of every labelled account in the deployed token `token_name`.
        Returns None (with a WARN line) when the chain cannot be read.
        """
        try:
            token_address = record.contract_address(token_name)
        except KeyError as e:
            print(f"WARN: Cannot harvest balances: {e}")
            return None

        if not self.is_connected():
            print(f"WARN: Chain at {self.rpc_url} unreachable; skipping on-chain balances for {token_name}.")
            return None

        balances: Dict[str, int] = {}
        for label, address in accounts.items():
            try:
                balances[label] = self.erc20_balance(token_address, address)
            except Exception as e:
                print(f"WARN: Could not read {token_name} balance of {label} ({address}): {e}")
                return None
        return balances

    # --- Raw JSON-RPC ---

    def make_rpc_call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """
        Calls a method web3 does not wrap (evm_snapshot, evm_revert) and returns its `result`.
        Raises ChainUnavailable on transport, HTTP or decoding failures and on JSON-RPC errors.
        """
        self._request_id += 1
        payload = {"jsonrpc": "2.0", "method": method, "params": params or [], "id": self._request_id}
        try:
            response = requests.post(self.rpc_url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            body = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            print(f"ERROR: {method} request to {self.rpc_url} failed: {e}")
            raise ChainUnavailable(f"{method} request to {self.rpc_url} failed: {e}") from e

        if "error" in body:
            print(f"WARN: {method} rejected by {self.rpc_url}: {body['error']}")
            raise ChainUnavailable(f"{method} rejected by {self.rpc_url}: {body['error']}")
        return body.get("result")

    # --- Snapshottable ---

    def snapshot(self) -> str:
        snapshot_id = self.make_rpc_call("evm_snapshot")
        print(f"INFO: Chain snapshot {snapshot_id} taken on {self.rpc_url}")
        return snapshot_id

    def revert(self, snapshot_id: Any) -> None:
        if not self.make_rpc_call("evm_revert", [snapshot_id]):
            raise ChainUnavailable(f"evm_revert({snapshot_id}) was refused by {self.rpc_url}")
        print(f"INFO: Chain reverted to snapshot {snapshot_id} on {self.rpc_url}")

    def __repr__(self) -> str:
        return f"ChainBalanceReader({self.rpc_url})"
