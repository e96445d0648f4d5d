# flashloan_attack_core/reporting.py
"""
Tabular views over simulation state for scenario output and analysis.
"""
from typing import Dict, Iterable, List

import pandas as pd

from .orchestrator import AttackOrchestrator
from .token import FungibleToken, format_units

RUN_HISTORY_COLUMNS: List[str] = [
    "timestamp",
    "flash_loan_amount",
    "manipulation_amount",
    "flash_fee",
    "acquired_amount",
    "collateral_posted",
    "borrowed_amount",
    "unwind_proceeds",
    "execution_cost",
    "profit",
    "price_before",
    "price_manipulated",
    "price_after",
]


def balances_frame(tokens: Iterable[FungibleToken], accounts: Dict[str, str], human: bool = False) -> pd.DataFrame:
    """
    One row per labelled account, one column per token symbol. Raw base units
    by default; `human=True` renders decimal strings instead.
    """
    tokens = list(tokens)
    rows = []
    for label, address in accounts.items():
        row = {"label": label, "address": address}
        for token in tokens:
            balance = token.balance_of(address)
            row[token.symbol] = format_units(balance, token.decimals) if human else balance
        rows.append(row)
    columns = ["label", "address"] + [token.symbol for token in tokens]
    # Base-unit balances exceed int64, so keep them as Python ints
    return pd.DataFrame(rows, columns=columns, dtype=object).set_index("label")


def run_history_frame(orchestrator: AttackOrchestrator) -> pd.DataFrame:
    rows = [{column: getattr(run, column) for column in RUN_HISTORY_COLUMNS} for run in orchestrator.run_history]
    frame = pd.DataFrame(rows, columns=RUN_HISTORY_COLUMNS, dtype=object)
    frame["successful"] = [run.successful for run in orchestrator.run_history]
    return frame
