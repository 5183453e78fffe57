import json

from corewriter_trace import decode_corewriter_action as cli

from .conftest import StubWeb3, build_log, build_payload

TX_HASH = "0x" + "12" * 32


def test_decode_data(capsys, limit_order_payload):
    assert cli.main(["--data", "0x" + limit_order_payload.hex()]) == 0

    out = capsys.readouterr().out
    assert "type: limitOrder" in out
    assert "isBuy: true" in out
    assert "cloid: 123456789" in out


def test_decode_data_json(capsys):
    payload = build_payload(1, ["uint32", "bool", "uint64", "uint64", "bool", "uint8", "uint128"],
                            [3, False, 5, 6, True, 1, 2**128 - 1])

    assert cli.main(["--data", payload.hex(), "--json"]) == 0

    body = json.loads(capsys.readouterr().out)
    assert body["type"] == "limitOrder"
    assert body["data"]["asset"] == 3
    assert body["data"]["cloid"] == str(2**128 - 1)


def test_decode_data_from_environment(monkeypatch, capsys):
    monkeypatch.setenv("EVENT_DATA", "0x01000063deadbeef")

    assert cli.main([]) == 0
    assert "data: deadbeef" in capsys.readouterr().out


def test_decode_data_failure():
    assert cli.main(["--data", "0x0100"]) == 1


def test_nothing_to_decode(monkeypatch):
    monkeypatch.delenv("EVENT_DATA", raising=False)

    assert cli.main([]) == 2


def test_decode_transaction(monkeypatch, capsys):
    logs = [build_log(build_payload(4, ["uint64"], [9]), log_index=2)]
    monkeypatch.setattr(cli, "setup_web3", lambda rpc_url: StubWeb3({TX_HASH: {"logs": logs}}))

    assert cli.main(["--tx", TX_HASH, "--network", "testnet"]) == 0

    out = capsys.readouterr().out
    assert "CoreWriter Actions (1)" in out
    assert "type: stakingDeposit" in out
    assert "wei: 9" in out


def test_decode_transaction_json_with_bad_log(monkeypatch, capsys):
    logs = [
        build_log(build_payload(4, ["uint64"], [9]), log_index=0),
        build_log(bytes.fromhex("010000"), log_index=1),
    ]
    monkeypatch.setattr(cli, "setup_web3", lambda rpc_url: StubWeb3({TX_HASH: {"logs": logs}}))

    assert cli.main(["--tx", TX_HASH, "--json"]) == 1

    body = json.loads(capsys.readouterr().out)
    assert body[0]["action"]["data"] == {"wei": 9}
    assert body[1]["action"] is None
    assert "too short" in body[1]["error"]


def test_decode_transaction_without_actions(monkeypatch):
    monkeypatch.setattr(cli, "setup_web3", lambda rpc_url: StubWeb3({TX_HASH: {"logs": []}}))

    assert cli.main(["--tx", TX_HASH]) == 1


def test_decode_missing_transaction(monkeypatch):
    monkeypatch.setattr(cli, "setup_web3", lambda rpc_url: StubWeb3({}))

    assert cli.main(["--tx", TX_HASH]) == 1


def test_rpc_option_selects_custom_network(monkeypatch, capsys):
    seen = []

    def fake_setup_web3(rpc_url):
        seen.append(rpc_url)
        return StubWeb3({TX_HASH: {"logs": [build_log(build_payload(4, ["uint64"], [1]))]}})

    monkeypatch.setattr(cli, "setup_web3", fake_setup_web3)

    assert cli.main(["--tx", TX_HASH, "--rpc", "https://node.example/evm"]) == 0
    assert seen == ["https://node.example/evm"]


def test_rpc_from_environment_selects_custom_network(monkeypatch):
    seen = []
    monkeypatch.setenv("HYPEREVM_RPC", "https://env.example/evm")
    monkeypatch.setattr(cli, "setup_web3", lambda rpc_url: seen.append(rpc_url) or StubWeb3({}))

    assert cli.main(["--tx", TX_HASH]) == 1
    assert seen == ["https://env.example/evm"]
