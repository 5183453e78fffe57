import logging

import pytest

from corewriter_trace.networks import MAINNET_RPC, RPC_ENV_VAR, TESTNET_RPC, resolve_rpc_url


def test_resolve_named_networks():
    assert resolve_rpc_url() == MAINNET_RPC
    assert resolve_rpc_url("mainnet", "https://ignored.example") == MAINNET_RPC
    assert resolve_rpc_url("testnet") == TESTNET_RPC


def test_resolve_custom(monkeypatch):
    monkeypatch.delenv(RPC_ENV_VAR, raising=False)
    assert resolve_rpc_url("custom", "https://node.example/evm") == "https://node.example/evm"
    assert resolve_rpc_url("custom") == MAINNET_RPC

    monkeypatch.setenv(RPC_ENV_VAR, "https://env.example/evm")
    assert resolve_rpc_url("custom") == "https://env.example/evm"


def test_resolve_unsupported_network():
    with pytest.raises(ValueError):
        resolve_rpc_url("devnet")


def test_rpc_without_network_means_custom():
    assert resolve_rpc_url(custom_rpc="https://node.example/evm") == "https://node.example/evm"


def test_rpc_with_other_network_is_ignored_with_warning(caplog):
    with caplog.at_level(logging.WARNING, logger="corewriter_trace.networks"):
        assert resolve_rpc_url("testnet", "https://node.example/evm") == TESTNET_RPC

    assert "Ignoring RPC https://node.example/evm" in caplog.text
