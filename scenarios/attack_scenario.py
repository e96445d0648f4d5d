# scenarios/attack_scenario.py
"""
Loads a deployment record, rebuilds the world at the recorded addresses and
runs the flash loan price-manipulation attack against it, printing the
state before and after.
"""
from typing import Optional

from flashloan_attack_core.accounts import AccountManager
from flashloan_attack_core.chain_reader import ChainBalanceReader
from flashloan_attack_core.deployment import DeploymentRecord
from flashloan_attack_core.environment import SimulationEnvironment
from flashloan_attack_core.errors import AttackSimError
from flashloan_attack_core.orchestrator import AttackRunResult
from flashloan_attack_core.reporting import balances_frame, run_history_frame
from flashloan_attack_core.token import format_units
from flashloan_attack_core import config as core_config


def run_attack_scenario(
    deployment_file: str = core_config.DEFAULT_DEPLOYMENT_FILE,
    accounts_file: Optional[str] = core_config.DEFAULT_ACCOUNTS_FILE,
    flash_loan_amount: int = core_config.DEFAULT_FLASH_LOAN_AMOUNT,
    manipulation_amount: int = core_config.DEFAULT_MANIPULATION_AMOUNT,
    execution_cost: int = core_config.DEFAULT_EXECUTION_COST,
    rpc_url: Optional[str] = None,
    chain_reader: Optional[ChainBalanceReader] = None
) -> Optional[AttackRunResult]:
    """
    :param rpc_url: When set, reports the deployed token's on-chain balances and snapshots the
                    dev chain for the run, so a reverted attack also reverts the chain.
    :param chain_reader: Reader to use instead of one built from `rpc_url`.
    :return: The settled run, or None when there is no deployment or the attack reverted.
    """
    print("--- Starting Flash Loan Attack Scenario ---")

    try:
        record = DeploymentRecord.load(deployment_file)
    except FileNotFoundError:
        print(f"ERROR: {deployment_file} not found. Please run the deploy scenario first.")
        return None

    account_manager = AccountManager(account_file_paths=[accounts_file] if accounts_file else None)
    env = SimulationEnvironment.deploy(accounts=account_manager, record=record, execution_cost=execution_cost)
    token, quote, attacker = env.token, env.quote, env.attacker

    print(f"Attacker contract: {attacker.address}")
    print(f"{token.symbol} token: {token.address}")

    live_chain = []
    if chain_reader is None and rpc_url:
        chain_reader = ChainBalanceReader(rpc_url)
    if chain_reader is not None:
        on_chain = chain_reader.harvest(record, core_config.CONTRACT_RESERVE_TOKEN, account_manager.as_dict())
        if on_chain is not None:
            live_chain.append(chain_reader)
            print(f"INFO: {chain_reader!r} snapshots with the run and reverts if the attack fails.")
            print(f"\nOn-chain {token.symbol} balances:")
            for label, balance in on_chain.items():
                print(f"  {label}: {format_units(balance, token.decimals)}")

    print("\n=== PRE-ATTACK STATE ===")
    print(balances_frame([token, quote], env.labelled_addresses(), human=True).to_string())
    print(f"Spot price: {format_units(env.spot_market.price_of(token), quote.decimals)} {quote.symbol}/{token.symbol}")

    print("\n=== ATTACK PARAMETERS ===")
    print(f"Flash loan amount: {format_units(flash_loan_amount, quote.decimals)} {quote.symbol}")
    print(f"Manipulation amount: {format_units(manipulation_amount, quote.decimals)} {quote.symbol}")

    print("\n=== EXECUTING ATTACK ===")
    try:
        result = attacker.execute(flash_loan_amount, manipulation_amount, extra_participants=live_chain)
    except AttackSimError as e:
        print(f"ERROR: Attack failed: {e}")
        return None

    print(f"\nProfit: {format_units(result.profit, quote.decimals)} {quote.symbol}")
    print(f"Realised quote balance change: {format_units(result.quote_balance_delta, quote.decimals)} {quote.symbol}")

    print("\n=== POST-ATTACK STATE ===")
    print(balances_frame([token, quote], env.labelled_addresses(), human=True).to_string())
    print(f"Spot price: {format_units(env.spot_market.price_of(token), quote.decimals)} {quote.symbol}/{token.symbol}")

    attempts, successes, cumulative_profit, last_run = attacker.get_attack_stats()
    print("\n=== ATTACK STATISTICS ===")
    print(f"Total attempts: {attempts}")
    print(f"Successful attacks: {successes}")
    print(f"Total profit: {format_units(cumulative_profit, quote.decimals)} {quote.symbol}")
    print(f"Last attack timestamp: {last_run}")
    print(run_history_frame(attacker).to_string())

    print("--- Flash Loan Attack Scenario Finished ---")
    return result


if __name__ == "__main__":
    # To run: python -m scenarios.attack_scenario (after scenarios.deploy_scenario)
    run_attack_scenario()
