import pytest

from flashloan_attack_core import config as core_config
from flashloan_attack_core.environment import SimulationEnvironment
from flashloan_attack_core.reporting import RUN_HISTORY_COLUMNS, balances_frame, run_history_frame


@pytest.fixture
def env():
    return SimulationEnvironment.deploy()


class TestReporting:
    def test_balances_frame(self, env):
        frame = balances_frame([env.token, env.quote], env.labelled_addresses())

        assert list(frame.columns) == ["address", "ERSV", "USDC"]
        assert frame.loc[core_config.CONTRACT_ATTACKER, "ERSV"] == core_config.ATTACKER_INVENTORY
        assert frame.loc[core_config.CONTRACT_FLASH_LOAN, "USDC"] == core_config.FLASH_POOL_LIQUIDITY
        assert frame.loc["user1", "USDC"] == 0

    def test_balances_frame_human(self, env):
        frame = balances_frame([env.quote], env.labelled_addresses(), human=True)
        assert frame.loc[core_config.CONTRACT_LENDING_MARKET, "USDC"] == "500000"

    def test_run_history_frame(self, env):
        empty = run_history_frame(env.attacker)
        assert empty.empty
        assert list(empty.columns) == RUN_HISTORY_COLUMNS + ["successful"]

        result = env.attacker.execute()
        frame = run_history_frame(env.attacker)

        assert len(frame) == 1
        assert frame.loc[0, "profit"] == result.profit
        assert frame.loc[0, "flash_fee"] == result.flash_fee
        assert bool(frame.loc[0, "successful"]) is True
