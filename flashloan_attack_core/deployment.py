# flashloan_attack_core/deployment.py
"""
Deployment artifact written by the deploy scenario and read back by the
attack scenario (deployment.json).
"""
import json
import time
from typing import Any, Dict, Optional

from . import config as core_config
from .accounts import normalize_address


class DeploymentRecord:
    def __init__(self,
                 network: str,
                 deployer: str,
                 contracts: Dict[str, str],
                 mock_addresses: Optional[Dict[str, str]] = None,
                 timestamp: Optional[str] = None
                ):
        self.network: str = network
        self.deployer: str = normalize_address(deployer)
        self.contracts: Dict[str, str] = {name: normalize_address(addr) for name, addr in contracts.items()}
        self.mock_addresses: Dict[str, str] = {
            name: normalize_address(addr) for name, addr in (mock_addresses or {}).items()
        }
        self.timestamp: str = timestamp or time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())

    def contract_address(self, name: str) -> str:
        """Raises KeyError naming the contract when it was not part of the deployment."""
        if name not in self.contracts:
            raise KeyError(f"Contract '{name}' not found in deployment record (have: {sorted(self.contracts)})")
        return self.contracts[name]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "network": self.network,
            "deployer": self.deployer,
            "contracts": dict(self.contracts),
            "mockAddresses": dict(self.mock_addresses),
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeploymentRecord":
        return cls(
            network=data.get("network", core_config.DEFAULT_NETWORK),
            deployer=data["deployer"],
            contracts=data.get("contracts", {}),
            mock_addresses=data.get("mockAddresses", {}),
            timestamp=data.get("timestamp"),
        )

    def save(self, path: str = core_config.DEFAULT_DEPLOYMENT_FILE) -> None:
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
        print(f"INFO: Deployment info saved to {path}")

    @classmethod
    def load(cls, path: str = core_config.DEFAULT_DEPLOYMENT_FILE) -> "DeploymentRecord":
        """Raises FileNotFoundError when no deployment has been written to `path`."""
        with open(path, "r") as f:
            return cls.from_dict(json.load(f))

    def __repr__(self) -> str:
        return f"DeploymentRecord(network={self.network}, deployer={self.deployer}, contracts={len(self.contracts)})"
