"""
CoreWriter action decoder

Decodes the `data` argument of the CoreWriter `RawAction(address indexed user,
bytes data)` event into a CoreWriterAction.

Payload layout:
    byte  0     version (uint8)
    bytes 1..3  action type (uint24, big-endian)
    bytes 4..   one 32-byte ABI slot per field of the action's schema

Unknown action types are not an error: they decode to the `unknown` action
with the remaining bytes kept as hex.
"""

import logging
import re
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, NamedTuple, Optional, Tuple, Type, Union

from web3 import Web3

logger = logging.getLogger(__name__)

SLOT_SIZE = 32
HEADER_SIZE = 4

_HEX_RE = re.compile(r"[0-9a-f]*")


class DecodeError(ValueError):
    """Base class for payloads that cannot be decoded"""


class MalformedPayload(DecodeError):
    """Input is not hex, or too short to hold the action header"""


class TruncatedPayload(DecodeError):
    """Action body is shorter than its schema requires"""


class SlotType(Enum):
    UINT8 = "uint8"
    UINT32 = "uint32"
    UINT64 = "uint64"
    UINT128 = "uint128"
    BOOL = "bool"
    ADDRESS = "address"

    @property
    def bits(self) -> int:
        return _SLOT_BITS[self]


_SLOT_BITS = {
    SlotType.UINT8: 8,
    SlotType.UINT32: 32,
    SlotType.UINT64: 64,
    SlotType.UINT128: 128,
    SlotType.BOOL: 8,
    SlotType.ADDRESS: 160,
}

# Ordered (field name, slot type) pairs
FieldSchema = Tuple[Tuple[str, SlotType], ...]


class ActionHeader(NamedTuple):
    version: int  # uint8
    action_type: int  # uint24
    remainder: bytes


@dataclass(frozen=True)
class LimitOrder:
    """limitOrder action (type 1) - place a limit order"""
    asset: int  # uint32
    is_buy: bool
    limit_px: int  # uint64
    sz: int  # uint64
    reduce_only: bool
    encoded_tif: int  # uint8
    cloid: int  # uint128


@dataclass(frozen=True)
class VaultTransfer:
    """vaultTransfer action (type 2) - deposit to or withdraw from a vault"""
    vault: str  # address
    is_deposit: bool
    usd: int  # uint64


@dataclass(frozen=True)
class TokenDelegate:
    """tokenDelegate action (type 3) - delegate or undelegate stake to a validator"""
    validator: str  # address
    wei: int  # uint64
    is_undelegate: bool


@dataclass(frozen=True)
class StakingDeposit:
    """stakingDeposit action (type 4) - move HYPE into staking"""
    wei: int  # uint64


@dataclass(frozen=True)
class StakingWithdraw:
    """stakingWithdraw action (type 5) - move HYPE out of staking"""
    wei: int  # uint64


@dataclass(frozen=True)
class SpotSend:
    """spotSend action (type 6) - send a spot token to another address"""
    destination: str  # address
    token: int  # uint64
    wei: int  # uint64


@dataclass(frozen=True)
class UsdClassTransfer:
    """usdClassTransfer action (type 7) - move USD between spot and perp"""
    ntl: int  # uint64
    to_perp: bool


@dataclass(frozen=True)
class CancelOrderByOid:
    """cancelOrderByOid action (type 10) - cancel an order by exchange order id"""
    asset: int  # uint32
    oid: int  # uint64


@dataclass(frozen=True)
class CancelOrderByCloid:
    """cancelOrderByCloid action (type 11) - cancel an order by client order id"""
    asset: int  # uint32
    cloid: int  # uint64


@dataclass(frozen=True)
class SendAsset:
    """sendAsset action (type 13) - send a token between dexes and sub-accounts"""
    destination: str  # address
    sub_account: str  # address
    source_dex: int  # uint32
    destination_dex: int  # uint32
    token: int  # uint64
    wei: int  # uint64


@dataclass(frozen=True)
class UnknownActionData:
    """Payload of an action type missing from the dispatch table"""
    data: str  # remaining payload as hex, no 0x prefix


ActionData = Union[
    LimitOrder,
    VaultTransfer,
    TokenDelegate,
    StakingDeposit,
    StakingWithdraw,
    SpotSend,
    UsdClassTransfer,
    CancelOrderByOid,
    CancelOrderByCloid,
    SendAsset,
    UnknownActionData,
]


@dataclass(frozen=True)
class ActionSpec:
    """One row of the dispatch table: tag -> action name, schema and data class"""
    action_type: Optional[int]
    name: str
    schema: FieldSchema
    data_cls: Type


ACTION_SPECS: Dict[int, ActionSpec] = {
    spec.action_type: spec
    for spec in (
        ActionSpec(1, "limitOrder", (
            ("asset", SlotType.UINT32),
            ("isBuy", SlotType.BOOL),
            ("limitPx", SlotType.UINT64),
            ("sz", SlotType.UINT64),
            ("reduceOnly", SlotType.BOOL),
            ("encodedTif", SlotType.UINT8),
            ("cloid", SlotType.UINT128),
        ), LimitOrder),
        ActionSpec(2, "vaultTransfer", (
            ("vault", SlotType.ADDRESS),
            ("isDeposit", SlotType.BOOL),
            ("usd", SlotType.UINT64),
        ), VaultTransfer),
        ActionSpec(3, "tokenDelegate", (
            ("validator", SlotType.ADDRESS),
            ("wei", SlotType.UINT64),
            ("isUndelegate", SlotType.BOOL),
        ), TokenDelegate),
        ActionSpec(4, "stakingDeposit", (("wei", SlotType.UINT64),), StakingDeposit),
        ActionSpec(5, "stakingWithdraw", (("wei", SlotType.UINT64),), StakingWithdraw),
        ActionSpec(6, "spotSend", (
            ("destination", SlotType.ADDRESS),
            ("token", SlotType.UINT64),
            ("wei", SlotType.UINT64),
        ), SpotSend),
        ActionSpec(7, "usdClassTransfer", (
            ("ntl", SlotType.UINT64),
            ("toPerp", SlotType.BOOL),
        ), UsdClassTransfer),
        ActionSpec(10, "cancelOrderByOid", (
            ("asset", SlotType.UINT32),
            ("oid", SlotType.UINT64),
        ), CancelOrderByOid),
        ActionSpec(11, "cancelOrderByCloid", (
            ("asset", SlotType.UINT32),
            ("cloid", SlotType.UINT64),
        ), CancelOrderByCloid),
        ActionSpec(13, "sendAsset", (
            ("destination", SlotType.ADDRESS),
            ("subAccount", SlotType.ADDRESS),
            ("sourceDex", SlotType.UINT32),
            ("destinationDex", SlotType.UINT32),
            ("token", SlotType.UINT64),
            ("wei", SlotType.UINT64),
        ), SendAsset),
    )
}

# Default entry for every tag missing from ACTION_SPECS
UNKNOWN_ACTION = ActionSpec(None, "unknown", (), UnknownActionData)

ACTION_SPECS_BY_NAME: Dict[str, ActionSpec] = {
    spec.name: spec for spec in (*ACTION_SPECS.values(), UNKNOWN_ACTION)
}


@dataclass(frozen=True)
class CoreWriterAction:
    """A decoded CoreWriter action"""
    version: int  # uint8
    type: str
    data: ActionData
    # table row the action was decoded with; None for unknown actions
    spec: Optional[ActionSpec] = field(default=None, compare=False, repr=False)

    def data_dict(self) -> Dict[str, Any]:
        """Fields keyed by their ABI names, in schema order"""
        if isinstance(self.data, UnknownActionData):
            return {"data": self.data.data}
        spec = self.spec or ACTION_SPECS_BY_NAME[self.type]
        values = [getattr(self.data, f.name) for f in fields(self.data)]
        return {name: value for (name, _), value in zip(spec.schema, values)}

    def to_dict(self) -> Dict[str, Any]:
        return {"version": self.version, "type": self.type, "data": self.data_dict()}


def to_payload_bytes(data: Union[str, bytes]) -> bytes:
    """Convert a hex string (with or without 0x) or a bytes-like value to bytes"""
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    if not isinstance(data, str):
        raise MalformedPayload(f"Unsupported payload type: {type(data).__name__}")

    payload = data.strip().lower()
    if payload.startswith("0x"):
        payload = payload[2:]
    if not _HEX_RE.fullmatch(payload):
        raise MalformedPayload(f"Payload is not valid hex: {data!r}")
    if len(payload) % 2 != 0:
        raise MalformedPayload(f"Hex payload has odd length: {len(payload)}")
    return bytes.fromhex(payload)


class CoreWriterActionDecoder:
    """Decoder for CoreWriter RawAction payloads"""

    def __init__(self, specs: Optional[Dict[int, ActionSpec]] = None):
        self.specs = ACTION_SPECS if specs is None else specs

    def read_slot(self, data: bytes, pos: int) -> Tuple[bytes, int]:
        """Read one 32-byte ABI slot"""
        if pos + SLOT_SIZE > len(data):
            raise TruncatedPayload(
                f"Not enough data to read 32-byte slot at offset {pos} (payload is {len(data)} bytes)"
            )
        return data[pos:pos + SLOT_SIZE], pos + SLOT_SIZE

    def unpack_uint(self, data: bytes, pos: int, bits: int) -> Tuple[int, int]:
        """Unpack an unsigned integer of the given width from a 32-byte slot"""
        slot, new_pos = self.read_slot(data, pos)
        value = int.from_bytes(slot, byteorder="big") & ((1 << bits) - 1)
        return value, new_pos

    def unpack_bool(self, data: bytes, pos: int) -> Tuple[bool, int]:
        """Unpack a bool; only the least significant byte counts"""
        slot, new_pos = self.read_slot(data, pos)
        return slot[-1] != 0, new_pos

    def unpack_address(self, data: bytes, pos: int) -> Tuple[str, int]:
        """Unpack an address from the low 20 bytes of a slot"""
        slot, new_pos = self.read_slot(data, pos)
        address = Web3.to_checksum_address("0x" + slot[-20:].hex())
        return address, new_pos

    def unpack_field(self, data: bytes, pos: int, slot_type: SlotType) -> Tuple[Any, int]:
        if slot_type is SlotType.BOOL:
            return self.unpack_bool(data, pos)
        if slot_type is SlotType.ADDRESS:
            return self.unpack_address(data, pos)
        return self.unpack_uint(data, pos, slot_type.bits)

    def parse_header(self, raw: bytes) -> ActionHeader:
        """Split a raw payload into (version, action type, remainder)"""
        if len(raw) < HEADER_SIZE:
            raise MalformedPayload(
                f"Payload too short for action header: {len(raw)} bytes (need at least {HEADER_SIZE})"
            )
        version = raw[0]
        action_type = int.from_bytes(raw[1:HEADER_SIZE], byteorder="big")
        return ActionHeader(version, action_type, raw[HEADER_SIZE:])

    def decode_slots(self, payload: bytes, schema: FieldSchema) -> Dict[str, Any]:
        """Decode one slot per schema field, in order"""
        required = SLOT_SIZE * len(schema)
        if len(payload) < required:
            raise TruncatedPayload(
                f"Payload has {len(payload)} bytes, schema needs {required} ({len(schema)} slots)"
            )

        values: Dict[str, Any] = {}
        ptr = 0
        for name, slot_type in schema:
            values[name], ptr = self.unpack_field(payload, ptr, slot_type)
        return values

    def decode_action(self, data: Union[str, bytes]) -> CoreWriterAction:
        """
        Decode a RawAction payload.

        Raises MalformedPayload for bad hex or a short header and
        TruncatedPayload when the body is shorter than the action's schema.
        """
        raw = to_payload_bytes(data)
        version, action_type, payload = self.parse_header(raw)

        spec = self.specs.get(action_type, UNKNOWN_ACTION)
        if spec is UNKNOWN_ACTION:
            logger.debug(f"Unknown action type {action_type}, keeping {len(payload)} payload bytes")
            return CoreWriterAction(
                version=version,
                type=UNKNOWN_ACTION.name,
                data=UnknownActionData(data=payload.hex()),
            )

        values = self.decode_slots(payload, spec.schema)
        logger.debug(f"Decoded {spec.name} (type {action_type}, version {version})")
        return CoreWriterAction(
            version=version,
            type=spec.name,
            data=spec.data_cls(*values.values()),
            spec=spec,
        )

    def try_decode_action(self, data: Union[str, bytes]) -> Optional[CoreWriterAction]:
        """Decode a payload, logging the failure and returning None instead of raising"""
        try:
            return self.decode_action(data)
        except DecodeError as e:
            logger.warning(f"Failed to decode CoreWriter action: {e}")
            return None


_default_decoder = CoreWriterActionDecoder()


def parse_header(raw: bytes) -> ActionHeader:
    return _default_decoder.parse_header(raw)


def decode_slots(payload: bytes, schema: FieldSchema) -> Dict[str, Any]:
    return _default_decoder.decode_slots(payload, schema)


def decode_action(data: Union[str, bytes]) -> CoreWriterAction:
    return _default_decoder.decode_action(data)


def try_decode_action(data: Union[str, bytes]) -> Optional[CoreWriterAction]:
    return _default_decoder.try_decode_action(data)
