from .action_decoder import (
    ACTION_SPECS,
    ActionHeader,
    CoreWriterAction,
    CoreWriterActionDecoder,
    DecodeError,
    MalformedPayload,
    SlotType,
    TruncatedPayload,
    UnknownActionData,
    decode_action,
    decode_slots,
    parse_header,
    try_decode_action,
)
from .raw_action_log import (
    CORE_WRITER_ADDRESS,
    RAW_ACTION_TOPIC,
    RawActionLog,
    extract_raw_actions,
    fetch_raw_actions,
)

__all__ = [
    "ACTION_SPECS",
    "ActionHeader",
    "CORE_WRITER_ADDRESS",
    "CoreWriterAction",
    "CoreWriterActionDecoder",
    "DecodeError",
    "MalformedPayload",
    "RAW_ACTION_TOPIC",
    "RawActionLog",
    "SlotType",
    "TruncatedPayload",
    "UnknownActionData",
    "decode_action",
    "decode_slots",
    "extract_raw_actions",
    "fetch_raw_actions",
    "parse_header",
    "try_decode_action",
]
