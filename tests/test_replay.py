"""
Tests for the block replay tool.
"""

import json

import pytest

from pairdex import replay as replay_mod
from pairdex.exchange.state_manager import DexStateManager
from pairdex.logger import LogManager

ALICE = "0xPQ" + "a" * 64
BOB = "0xPQ" + "b" * 64

DOT = [200, 1, 2]
BTC = [300, 3, 3]

BLOCKS = {
    "genesis": [
        {"asset_id": DOT, "target": ALICE, "amount": str(10 ** 30)},
        {"asset_id": BTC, "target": ALICE, "amount": str(10 ** 30)},
    ],
    "blocks": [
        {
            "height": 1,
            "transactions": [
                {"op_type": 1, "sender": ALICE, "nonce": 0, "params": {"asset_0": DOT, "asset_1": BTC}},
                {"op_type": 2, "sender": ALICE, "nonce": 1, "params": {
                    "asset_0": DOT, "asset_1": BTC,
                    "amount_0_desired": str(10 ** 16), "amount_1_desired": str(10 ** 9),
                    "amount_0_min": "0", "amount_1_min": "0", "deadline": 100,
                }},
            ],
        },
        {
            "height": 2,
            "transactions": [
                {"op_type": 4, "sender": ALICE, "nonce": 2, "params": {
                    "amount_in": str(10 ** 15), "amount_out_min": "0",
                    "path": [DOT, BTC], "recipient": BOB, "deadline": 100,
                }},
                # stale nonce: fails without failing the block
                {"op_type": 6, "sender": ALICE, "nonce": 0, "params": {
                    "asset_id": DOT, "recipient": BOB, "amount": "1",
                }},
            ],
        },
    ],
}


@pytest.fixture(autouse=True)
def reset_state_manager():
    DexStateManager.reset_instance()
    yield
    DexStateManager.reset_instance()


class TestReplay:

    def test_returns_root_per_block(self):
        roots = replay_mod.replay(BLOCKS)
        assert len(roots) == 2
        assert all(len(root) == 64 for root in roots)
        assert roots[0] != roots[1]

    def test_deterministic(self):
        assert replay_mod.replay(BLOCKS) == replay_mod.replay(BLOCKS)

    def test_expected_root_checked(self):
        roots = replay_mod.replay(BLOCKS)
        data = json.loads(json.dumps(BLOCKS))
        data["blocks"][0]["expected_root"] = roots[0]
        data["blocks"][1]["expected_root"] = roots[1]
        assert replay_mod.replay(data) == roots

        data["blocks"][1]["expected_root"] = "0" * 64
        with pytest.raises(RuntimeError, match="state root mismatch"):
            replay_mod.replay(data)

    def test_genesis_only(self):
        assert replay_mod.replay({"genesis": BLOCKS["genesis"]}) == []


class TestMain:

    @pytest.fixture(autouse=True)
    def quiet_logging(self, monkeypatch):
        monkeypatch.setattr(LogManager, "configure", lambda self, **kwargs: None)

    def write_blocks(self, tmp_path, data):
        path = tmp_path / "blocks.json"
        path.write_text(json.dumps(data))
        return str(path)

    def test_prints_roots(self, tmp_path, capsys):
        path = self.write_blocks(tmp_path, BLOCKS)
        code = replay_mod.main([path, "--config", str(tmp_path / "config.toml")])

        assert code == 0
        printed = capsys.readouterr().out.split()
        assert printed == replay_mod.replay(BLOCKS)

    def test_mismatch_exit_code(self, tmp_path, capsys):
        data = json.loads(json.dumps(BLOCKS))
        data["blocks"][0]["expected_root"] = "f" * 64
        path = self.write_blocks(tmp_path, data)

        assert replay_mod.main([path, "--config", str(tmp_path / "config.toml")]) == 1
        assert capsys.readouterr().out == ""
