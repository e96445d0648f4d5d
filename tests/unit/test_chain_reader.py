from unittest.mock import Mock, patch

import pytest
import requests

from flashloan_attack_core import config as core_config
from flashloan_attack_core.accounts import derive_address
from flashloan_attack_core.chain_reader import ChainBalanceReader
from flashloan_attack_core.deployment import DeploymentRecord
from flashloan_attack_core.errors import ChainUnavailable

TOKEN_ADDRESS = derive_address("ersv")
ALICE = derive_address("alice")


@pytest.fixture
def record():
    return DeploymentRecord("hardhat", derive_address("deployer"), {core_config.CONTRACT_RESERVE_TOKEN: TOKEN_ADDRESS})


@pytest.fixture
def mock_w3():
    w3 = Mock()
    w3.is_connected.return_value = True
    w3.eth.contract.return_value.functions.balanceOf.return_value.call.return_value = 42
    return w3


class TestChainBalanceReader:
    def test_harvest_reads_balances(self, record, mock_w3):
        reader = ChainBalanceReader(w3=mock_w3)

        balances = reader.harvest(record, core_config.CONTRACT_RESERVE_TOKEN, {"alice": ALICE})

        assert balances == {"alice": 42}
        assert mock_w3.eth.contract.call_args.kwargs["address"] == TOKEN_ADDRESS
        mock_w3.eth.contract.return_value.functions.balanceOf.assert_called_with(ALICE)

    def test_harvest_unreachable_chain(self, record, mock_w3, capsys):
        mock_w3.is_connected.return_value = False
        reader = ChainBalanceReader("http://127.0.0.1:1", w3=mock_w3)

        assert reader.harvest(record, core_config.CONTRACT_RESERVE_TOKEN, {"alice": ALICE}) is None
        assert "WARN: Chain at http://127.0.0.1:1 unreachable" in capsys.readouterr().out

    def test_harvest_unknown_contract(self, record, mock_w3, capsys):
        reader = ChainBalanceReader(w3=mock_w3)
        assert reader.harvest(record, "usdc", {"alice": ALICE}) is None
        assert "WARN: Cannot harvest balances" in capsys.readouterr().out

    def test_harvest_call_failure(self, record, mock_w3, capsys):
        mock_w3.eth.contract.return_value.functions.balanceOf.return_value.call.side_effect = ValueError("revert")
        reader = ChainBalanceReader(w3=mock_w3)
        assert reader.harvest(record, core_config.CONTRACT_RESERVE_TOKEN, {"alice": ALICE}) is None
        assert "WARN: Could not read ethosReserve balance of alice" in capsys.readouterr().out

    @patch("flashloan_attack_core.chain_reader.requests.post")
    def test_snapshot_and_revert(self, mock_post, mock_w3):
        mock_post.return_value.json.side_effect = [
            {"jsonrpc": "2.0", "id": 1, "result": "0x1"},
            {"jsonrpc": "2.0", "id": 1, "result": True},
        ]
        reader = ChainBalanceReader(core_config.DEFAULT_RPC_URL, w3=mock_w3)

        snapshot_id = reader.snapshot()
        reader.revert(snapshot_id)

        assert snapshot_id == "0x1"
        payloads = [call.kwargs["json"] for call in mock_post.call_args_list]
        assert [payload["method"] for payload in payloads] == ["evm_snapshot", "evm_revert"]
        assert payloads[1]["params"] == ["0x1"]
        assert [payload["id"] for payload in payloads] == [1, 2]
        assert all(call.kwargs["timeout"] == core_config.RPC_TIMEOUT_SECONDS for call in mock_post.call_args_list)

    @patch("flashloan_attack_core.chain_reader.requests.post")
    def test_rpc_transport_errors(self, mock_post, mock_w3, capsys):
        mock_post.side_effect = requests.exceptions.ConnectionError("refused")
        reader = ChainBalanceReader(w3=mock_w3)

        with pytest.raises(ChainUnavailable) as exc_info:
            reader.snapshot()

        assert isinstance(exc_info.value.__cause__, requests.exceptions.ConnectionError)
        assert f"ERROR: evm_snapshot request to {core_config.DEFAULT_RPC_URL} failed" in capsys.readouterr().out

    @patch("flashloan_attack_core.chain_reader.requests.post")
    def test_http_error_status(self, mock_post, mock_w3):
        mock_post.return_value.raise_for_status.side_effect = requests.exceptions.HTTPError("502 Bad Gateway")
        reader = ChainBalanceReader(w3=mock_w3)
        with pytest.raises(ChainUnavailable, match="502"):
            reader.make_rpc_call("evm_snapshot")

    @patch("flashloan_attack_core.chain_reader.requests.post")
    def test_rpc_error_body(self, mock_post, mock_w3, capsys):
        mock_post.return_value.json.return_value = {
            "jsonrpc": "2.0", "id": 1, "error": {"code": -32601, "message": "Method not found"}
        }
        reader = ChainBalanceReader(w3=mock_w3)

        with pytest.raises(ChainUnavailable, match="Method not found"):
            reader.snapshot()
        assert "WARN: evm_snapshot rejected by" in capsys.readouterr().out

    @patch("flashloan_attack_core.chain_reader.requests.post")
    def test_failed_revert_raises(self, mock_post, mock_w3):
        mock_post.return_value.json.return_value = {"jsonrpc": "2.0", "id": 1, "result": False}
        reader = ChainBalanceReader(w3=mock_w3)
        with pytest.raises(ChainUnavailable, match="refused"):
            reader.revert("0x9")
