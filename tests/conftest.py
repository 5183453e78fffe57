from typing import Any, Sequence

import pytest
from eth_abi import encode as abi_encode
from web3.exceptions import TransactionNotFound

from corewriter_trace.raw_action_log import CORE_WRITER_ADDRESS, RAW_ACTION_TOPIC

USER = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"


def build_payload(action_type: int, types: Sequence[str], values: Sequence[Any], version: int = 1) -> bytes:
    """Header bytes followed by one ABI slot per value"""
    return bytes([version]) + action_type.to_bytes(3, "big") + abi_encode(list(types), list(values))


def build_log(payload: bytes, log_index: int = 0, address: str = CORE_WRITER_ADDRESS, user: str = USER) -> dict:
    return {
        "address": address,
        "topics": [
            bytes.fromhex(RAW_ACTION_TOPIC[2:]),
            "0x" + "00" * 12 + user[2:].lower(),
        ],
        "data": abi_encode(["bytes"], [payload]),
        "logIndex": log_index,
    }


@pytest.fixture
def limit_order_payload() -> bytes:
    return build_payload(
        1,
        ["uint32", "bool", "uint64", "uint64", "bool", "uint8", "uint128"],
        [0, True, 100000000, 50000000, False, 2, 123456789],
    )


class StubEth:
    def __init__(self, receipts):
        self.receipts = receipts

    def get_transaction_receipt(self, tx_hash):
        if tx_hash not in self.receipts:
            raise TransactionNotFound(f"Transaction with hash: '{tx_hash}' not found.")
        return self.receipts[tx_hash]


class StubWeb3:
    """Just enough of Web3 to serve receipts"""

    def __init__(self, receipts):
        self.eth = StubEth(receipts)
