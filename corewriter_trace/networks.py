"""HyperEVM network endpoints and Web3 setup"""

import logging
import os
from typing import Optional

from web3 import Web3

logger = logging.getLogger(__name__)

HYPEREVM_CHAIN_ID = 999

MAINNET_RPC = "https://rpc.purroofgroup.com"
TESTNET_RPC = "https://rpc.hyperliquid-testnet.xyz/evm"

NETWORKS = ("mainnet", "testnet", "custom")

RPC_ENV_VAR = "HYPEREVM_RPC"
DEFAULT_TIMEOUT = 10


def resolve_rpc_url(network: Optional[str] = None, custom_rpc: Optional[str] = None) -> str:
    """
    Pick the RPC endpoint for a network.

    `custom` uses `custom_rpc`, then the HYPEREVM_RPC environment variable,
    then mainnet. Without a network, a given `custom_rpc` means `custom`
    and anything else means `mainnet`.
    """
    if network is None:
        network = "custom" if custom_rpc else "mainnet"
    elif custom_rpc and network != "custom":
        logger.warning(f"Ignoring RPC {custom_rpc} for network {network}; pass --network custom to use it")
    if network not in NETWORKS:
        raise ValueError(f"Unsupported network: {network} (expected one of {', '.join(NETWORKS)})")
    if network == "testnet":
        return TESTNET_RPC
    if network == "custom":
        return custom_rpc or os.environ.get(RPC_ENV_VAR) or MAINNET_RPC
    return MAINNET_RPC


def setup_web3(rpc_url: str, timeout: int = DEFAULT_TIMEOUT) -> Web3:
    """Setup Web3 connection."""
    w3 = Web3(Web3.HTTPProvider(rpc_url, {"timeout": timeout}))
    if not w3.is_connected():
        raise ConnectionError(f"Failed to connect to the RPC endpoint {rpc_url}")
    logger.info(f"Connected to HyperEVM node {rpc_url}")
    return w3
