# flashloan_attack_core/environment.py
"""
Builds a complete in-memory world: the reserve token, the quote asset, the
three market capabilities and the attacker contract, seeded with liquidity
the way the original deployment scripts set things up.
"""
from typing import Dict, Optional

from . import config as core_config
from .accounts import AccountManager, derive_address
from .deployment import DeploymentRecord
from .markets.flash_loan import InMemoryFlashLoanProvider
from .markets.lending_market import CollateralLendingMarket
from .markets.spot_market import ConstantProductMarket
from .orchestrator import AttackOrchestrator
from .reserve_token import ReserveToken
from .token import QuoteToken


def address_book(network: str) -> Dict[str, str]:
    """External protocol addresses for a network: the real ones on mainnet, placeholders elsewhere."""
    if network == core_config.MAINNET_NETWORK:
        return dict(core_config.MAINNET_ADDRESSES)
    return dict(core_config.MOCK_ADDRESSES)


def default_contract_addresses(network: str = core_config.DEFAULT_NETWORK) -> Dict[str, str]:
    """
    Deterministic addresses per logical contract name, used when no record is given.
    The quote asset sits at the network's USDC address.
    """
    addresses = {
        name: derive_address(name) for name in (
            core_config.CONTRACT_RESERVE_TOKEN,
            core_config.CONTRACT_ATTACKER,
            core_config.CONTRACT_FLASH_LOAN,
            core_config.CONTRACT_SPOT_MARKET,
            core_config.CONTRACT_LENDING_MARKET,
        )
    }
    addresses[core_config.CONTRACT_QUOTE_TOKEN] = address_book(network)["usdc"]
    return addresses


class SimulationEnvironment:
    """Handles to every deployed component of one simulated world."""
    def __init__(self,
                 deployer: str,
                 token: ReserveToken,
                 quote: QuoteToken,
                 flash_loan: InMemoryFlashLoanProvider,
                 spot_market: ConstantProductMarket,
                 lending_market: CollateralLendingMarket,
                 attacker: AttackOrchestrator,
                 accounts: AccountManager,
                 network: str = core_config.DEFAULT_NETWORK
                ):
        self.deployer = deployer
        self.token = token
        self.quote = quote
        self.flash_loan = flash_loan
        self.spot_market = spot_market
        self.lending_market = lending_market
        self.attacker = attacker
        self.accounts = accounts
        self.network = network

    @classmethod
    def deploy(cls,
               accounts: Optional[AccountManager] = None,
               record: Optional[DeploymentRecord] = None,
               network: str = core_config.DEFAULT_NETWORK,
               flash_fee_bps: int = core_config.FLASH_LOAN_FEE_BPS,
               market_fee_bps: int = core_config.SPOT_MARKET_FEE_BPS,
               max_slippage_bps: int = core_config.DEFAULT_MAX_SLIPPAGE_BPS,
               ltv_bps: int = core_config.LENDING_LTV_BPS,
               execution_cost: int = core_config.DEFAULT_EXECUTION_COST,
               attacker_inventory: int = core_config.ATTACKER_INVENTORY,
               list_reserve_token: bool = True
              ) -> "SimulationEnvironment":
        """
        Deploys and seeds a world. With a `record`, the deployer and contract
        addresses are taken from it so balances line up with a prior deployment.

        :param list_reserve_token: List ERSV as collateral in the lending market.
                                   Without it the attack fails at collateralization.
        """
        accounts = accounts or AccountManager()
        if record is not None:
            deployer = record.deployer
            network = record.network
            addresses = default_contract_addresses(network)
            addresses.update(record.contracts)
        else:
            deployer = accounts.get("deployer")
            addresses = default_contract_addresses(network)

        print(f"INFO: Deploying simulated world on '{network}' with deployer {deployer}...")
        token = ReserveToken(owner=deployer, address=addresses[core_config.CONTRACT_RESERVE_TOKEN])
        quote = QuoteToken(address=addresses[core_config.CONTRACT_QUOTE_TOKEN])
        flash_loan = InMemoryFlashLoanProvider(addresses[core_config.CONTRACT_FLASH_LOAN], fee_bps=flash_fee_bps)
        spot_market = ConstantProductMarket(addresses[core_config.CONTRACT_SPOT_MARKET], token, quote,
                                            fee_bps=market_fee_bps, max_slippage_bps=max_slippage_bps)
        lending_market = CollateralLendingMarket(addresses[core_config.CONTRACT_LENDING_MARKET], admin=deployer,
                                                 quote=quote, price_source=spot_market, ltv_bps=ltv_bps)
        attacker = AttackOrchestrator(addresses[core_config.CONTRACT_ATTACKER], token, quote, flash_loan,
                                      spot_market, lending_market, execution_cost=execution_cost)

        # Seeding
        quote.faucet(deployer, core_config.QUOTE_FAUCET_AMOUNT)
        quote.transfer(flash_loan.address, core_config.FLASH_POOL_LIQUIDITY, sender=deployer)
        spot_market.add_liquidity(core_config.MARKET_BASE_LIQUIDITY, core_config.MARKET_QUOTE_LIQUIDITY,
                                  provider=deployer)
        quote.transfer(lending_market.address, core_config.LENDING_POOL_LIQUIDITY, sender=deployer)
        if list_reserve_token:
            lending_market.list_asset(token, sender=deployer)
        if attacker_inventory:
            token.transfer(attacker.address, attacker_inventory, sender=deployer)

        print(f"INFO: {token.symbol} deployed at {token.address}; attacker at {attacker.address}.")
        return cls(deployer, token, quote, flash_loan, spot_market, lending_market, attacker, accounts, network)

    @property
    def contracts(self) -> Dict[str, str]:
        return {
            core_config.CONTRACT_RESERVE_TOKEN: self.token.address,
            core_config.CONTRACT_ATTACKER: self.attacker.address,
            core_config.CONTRACT_QUOTE_TOKEN: self.quote.address,
            core_config.CONTRACT_FLASH_LOAN: self.flash_loan.address,
            core_config.CONTRACT_SPOT_MARKET: self.spot_market.address,
            core_config.CONTRACT_LENDING_MARKET: self.lending_market.address,
        }

    def labelled_addresses(self) -> Dict[str, str]:
        """Every account worth reporting on: user labels plus contract names."""
        labelled = self.accounts.as_dict()
        labelled.update(self.contracts)
        return labelled

    def to_record(self, timestamp: Optional[str] = None) -> DeploymentRecord:
        return DeploymentRecord(self.network, self.deployer, self.contracts,
                                mock_addresses=address_book(self.network), timestamp=timestamp)
