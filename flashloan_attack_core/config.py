# flashloan_attack_core/config.py
"""
Default configuration values for the flash loan attack simulator.
These can be overridden by scenario-specific configurations.
"""
from typing import Dict

# --- Token Metadata ---
TOKEN_NAME: str = "Ethos Reserve"
TOKEN_SYMBOL: str = "ERSV"
TOKEN_DECIMALS: int = 18
TOKEN_INITIAL_SUPPLY: int = 100_000_000 * 10**TOKEN_DECIMALS # Minted to the owner at deployment

QUOTE_NAME: str = "USD Coin"
QUOTE_SYMBOL: str = "USDC"
QUOTE_DECIMALS: int = 6

MAX_UINT256: int = 2**256 - 1 # Representable maximum for balances, supply and reserves

# --- Market Capabilities ---
BPS_DENOMINATOR: int = 10_000
FLASH_LOAN_FEE_BPS: int = 9         # 0.09%, Aave V2 flash loan premium
SPOT_MARKET_FEE_BPS: int = 30       # 0.3%, Uniswap V2 swap fee
DEFAULT_MAX_SLIPPAGE_BPS: int = 10_000 # 100% means no slippage bound
LENDING_LTV_BPS: int = 7_500        # 75% loan-to-value

# --- Attack Parameters (from the original attack script) ---
DEFAULT_FLASH_LOAN_AMOUNT: int = 100_000 * 10**QUOTE_DECIMALS   # 100k USDC
DEFAULT_MANIPULATION_AMOUNT: int = 50_000 * 10**QUOTE_DECIMALS  # 50k USDC
DEFAULT_EXECUTION_COST: int = 0 # Extra quote-denominated cost netted from each run's profit

# --- Simulated World Seeding ---
ATTACKER_INVENTORY: int = 1_000_000 * 10**TOKEN_DECIMALS        # 1M ERSV handed to the attacker contract
MARKET_BASE_LIQUIDITY: int = 1_000_000 * 10**TOKEN_DECIMALS     # ERSV side of the ERSV/USDC pool
MARKET_QUOTE_LIQUIDITY: int = 100_000 * 10**QUOTE_DECIMALS      # USDC side of the ERSV/USDC pool
FLASH_POOL_LIQUIDITY: int = 1_000_000 * 10**QUOTE_DECIMALS
LENDING_POOL_LIQUIDITY: int = 500_000 * 10**QUOTE_DECIMALS
QUOTE_FAUCET_AMOUNT: int = 10_000_000 * 10**QUOTE_DECIMALS      # Minted to the deployer to fund the pools

# --- Deployment / Network ---
DEFAULT_NETWORK: str = "hardhat"
MAINNET_NETWORK: str = "mainnet" # Selects MAINNET_ADDRESSES instead of MOCK_ADDRESSES
DEFAULT_RPC_URL: str = "http://127.0.0.1:8545"
RPC_TIMEOUT_SECONDS: float = 10.0
DEFAULT_DEPLOYMENT_FILE: str = "deployment.json"
DEFAULT_ACCOUNTS_FILE: str = "./accounts.csv" # CSV with 'label' and 'address' columns
DEFAULT_ACCOUNT_LABELS = ("deployer", "attacker", "user1", "user2")

# Logical contract names used in the deployment record
CONTRACT_RESERVE_TOKEN: str = "ethosReserve"
CONTRACT_ATTACKER: str = "flashLoanAttacker"
CONTRACT_QUOTE_TOKEN: str = "usdc"
CONTRACT_FLASH_LOAN: str = "flashLoanPool"
CONTRACT_SPOT_MARKET: str = "spotMarket"
CONTRACT_LENDING_MARKET: str = "lendingMarket"

# Placeholder addresses used by the demo deployment
MOCK_ADDRESSES: Dict[str, str] = {
    "usdc": "0x1234567890123456789012345678901234567890",
    "weth": "0x2345678901234567890123456789012345678901",
    "uniswapV2Factory": "0x3456789012345678901234567890123456789012",
    "uniswapV2Router": "0x4567890123456789012345678901234567890123",
    "aaveLendingPool": "0x5678901234567890123456789012345678901234",
    "aaveDataProvider": "0x6789012345678901234567890123456789012345",
}

MAINNET_ADDRESSES: Dict[str, str] = {
    "usdc": "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
    "weth": "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
    "uniswapV2Factory": "0x5C69bEe701ef814a2B6a3EDD4B1652CB9cc5aA6f",
    "uniswapV2Router": "0x7a250d5630B4cF539739dF2C5dAcb4c659F2488D",
    "aaveLendingPool": "0x7d2768dE32b0b80b7a3454c06BdAc94A69DDc7A9",
    "aaveDataProvider": "0x057835Ad21a177dbdd3090bB1CAE03EaCF78Fc6d",
}
