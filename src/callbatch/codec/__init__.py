"""Wire codec: request envelopes, tagged responses and failure payloads."""

from callbatch.codec.failures import decode_failure, encode_failure, selector_for
from callbatch.codec.requests import (
    decode_payload,
    decode_request,
    encode_payload,
    encode_request,
    parse_kind,
)
from callbatch.codec.responses import (
    decode_response,
    decode_response_body,
    encode_response,
    encode_response_body,
)
from callbatch.codec.wire import Reader, Writer, slice_bytes

__all__ = [
    "Reader",
    "Writer",
    "slice_bytes",
    "parse_kind",
    "decode_request",
    "decode_payload",
    "encode_request",
    "encode_payload",
    "encode_response",
    "decode_response",
    "encode_response_body",
    "decode_response_body",
    "selector_for",
    "encode_failure",
    "decode_failure",
]
