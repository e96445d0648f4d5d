# scenarios/deploy_scenario.py
"""
Deploys the simulated world (ERSV, USDC stand-in, flash pool, spot market,
lending market and the attacker contract), prints a summary and writes the
deployment record that the attack scenario reads back.
"""
from typing import Optional

from flashloan_attack_core.accounts import AccountManager
from flashloan_attack_core.environment import SimulationEnvironment, address_book
from flashloan_attack_core.token import format_units
from flashloan_attack_core import config as core_config


def run_deploy_scenario(
    network: str = core_config.DEFAULT_NETWORK,
    accounts_file: Optional[str] = core_config.DEFAULT_ACCOUNTS_FILE,
    deployment_file: Optional[str] = core_config.DEFAULT_DEPLOYMENT_FILE,
    list_reserve_token: bool = True
) -> SimulationEnvironment:
    """
    :param accounts_file: CSV of labelled accounts; None derives every account.
    :param deployment_file: Where to write the record; None skips writing.
    """
    print("--- Starting Deploy Scenario ---")
    print(f"Network: {network}")

    account_manager = AccountManager(account_file_paths=[accounts_file] if accounts_file else None)
    deployer = account_manager.get("deployer")
    print(f"Deploying contracts with account: {deployer}")

    env = SimulationEnvironment.deploy(accounts=account_manager, network=network,
                                       list_reserve_token=list_reserve_token)
    token = env.token

    print("\nToken Info:")
    print(f"  Name: {token.name}")
    print(f"  Symbol: {token.symbol}")
    print(f"  Decimals: {token.decimals}")
    print(f"  Total Supply: {format_units(token.total_supply, token.decimals)}")
    print(f"  Owner: {token.owner}")

    print("\n=== DEPLOYMENT SUMMARY ===")
    print(f"Network: {network}")
    print(f"Deployer: {deployer}")
    for name, address in env.contracts.items():
        print(f"  {name}: {address}")
    book_label = "Mainnet" if network == core_config.MAINNET_NETWORK else "Mock"
    print(f"\n{book_label} Addresses Used:")
    for name, address in address_book(network).items():
        print(f"  {name}: {address}")

    if deployment_file:
        env.to_record().save(deployment_file)

    print("--- Deploy Scenario Finished ---")
    return env


if __name__ == "__main__":
    # To run: python -m scenarios.deploy_scenario
    run_deploy_scenario()
