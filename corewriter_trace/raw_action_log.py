"""
Pick CoreWriter `RawAction` logs out of a transaction receipt and decode them.
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Union

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from web3 import Web3

from .action_decoder import (
    CoreWriterAction,
    CoreWriterActionDecoder,
    DecodeError,
    MalformedPayload,
)

logger = logging.getLogger(__name__)

CORE_WRITER_ADDRESS = "0x3333333333333333333333333333333333333333"
RAW_ACTION_EVENT = "RawAction(address,bytes)"
RAW_ACTION_TOPIC = Web3.to_hex(Web3.keccak(text=RAW_ACTION_EVENT))


@dataclass
class RawActionLog:
    """One RawAction log and its decoding result"""
    log_index: Optional[int]
    user: Optional[str]  # indexed address, checksummed
    payload: bytes
    action: Optional[CoreWriterAction] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.action is not None


def _to_hex(value: Union[str, bytes]) -> str:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    value = value.lower()
    return value if value.startswith("0x") else f"0x{value}"


def is_core_writer_log(log: Mapping[str, Any]) -> bool:
    """True for logs emitted by CoreWriter with the RawAction topic"""
    address = log.get("address")
    topics = log.get("topics") or []
    if not address or not topics:
        return False
    return (
        _to_hex(address) == CORE_WRITER_ADDRESS
        and _to_hex(topics[0]) == RAW_ACTION_TOPIC
    )


def unwrap_raw_action_data(log_data: Union[str, bytes]) -> bytes:
    """ABI-decode the non-indexed `bytes data` argument of RawAction"""
    if isinstance(log_data, str):
        hex_data = log_data[2:] if log_data.lower().startswith("0x") else log_data
        try:
            log_data = bytes.fromhex(hex_data)
        except ValueError as e:
            raise MalformedPayload(f"Log data is not valid hex: {e}") from e
    try:
        (payload,) = abi_decode(["bytes"], bytes(log_data))
    except DecodingError as e:
        raise MalformedPayload(f"Log data is not an ABI-encoded bytes value: {e}") from e
    return payload


def _user_from_topics(topics: List[Any]) -> Optional[str]:
    if len(topics) < 2:
        return None
    topic = _to_hex(topics[1])
    try:
        return Web3.to_checksum_address("0x" + topic[-40:])
    except ValueError as e:
        raise MalformedPayload(f"RawAction user topic is not an address: {topic}") from e


def decode_raw_action_log(
    log: Mapping[str, Any], decoder: Optional[CoreWriterActionDecoder] = None
) -> RawActionLog:
    """
    Decode a single RawAction log. Failures are recorded on the result, so
    one bad log does not stop the rest of the receipt from decoding.
    """
    decoder = decoder or CoreWriterActionDecoder()
    result = RawActionLog(log_index=log.get("logIndex"), user=None, payload=b"")
    try:
        result.user = _user_from_topics(list(log.get("topics") or []))
        result.payload = unwrap_raw_action_data(log.get("data") or b"")
        result.action = decoder.decode_action(result.payload)
    except DecodeError as e:
        logger.warning(f"Failed to decode RawAction log {result.log_index}: {e}")
        result.error = str(e)
    return result


def extract_raw_actions(
    logs: Iterable[Mapping[str, Any]], decoder: Optional[CoreWriterActionDecoder] = None
) -> List[RawActionLog]:
    """Decode every CoreWriter RawAction log, in receipt order"""
    decoder = decoder or CoreWriterActionDecoder()
    return [decode_raw_action_log(log, decoder) for log in logs if is_core_writer_log(log)]


def fetch_raw_actions(
    w3: Web3, tx_hash: str, decoder: Optional[CoreWriterActionDecoder] = None
) -> List[RawActionLog]:
    """Fetch a transaction receipt and decode its CoreWriter actions"""
    receipt = w3.eth.get_transaction_receipt(tx_hash)
    logs = receipt["logs"]
    actions = extract_raw_actions(logs, decoder)
    logger.info(f"Found {len(actions)} CoreWriter action(s) in {len(logs)} log(s) of {tx_hash}")
    return actions
