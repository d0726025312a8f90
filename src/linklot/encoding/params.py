"""
Request parameter encoder.

Builds the CBOR buffer consumed by the on-chain Chainlink request library:
for each parameter the text-string key followed by its value, appended in
order. The buffer has no enclosing map header; the node wraps it in an
indefinite-length map before decoding, which keeps the declared order.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any

import cbor2
from eth_abi import encode as abi_encode
from eth_abi.exceptions import EncodingError as AbiEncodingError
from eth_abi.packed import encode_packed
from eth_utils import decode_hex, is_hex

from linklot.core.exceptions import EncodingError, EncodingErrorReason
from linklot.core.types import RequestParameter, RequestParamType

# Indefinite-length array start / "break" stop code
CBOR_ARRAY_START = b"\x9f"
CBOR_BREAK = b"\xff"
CBOR_MAP_START = b"\xbf"

_ARRAY_SUFFIX = re.compile(r"^(.*)\[(\d*)\]$")


def _fail(
    message: str, reason: EncodingErrorReason, param: RequestParameter, index: int
) -> EncodingError:
    return EncodingError(
        message,
        reason=reason,
        param_name=param.name,
        param_index=index,
        details={"param": param.to_dict()},
    )


def _coerce_abi_value(abi_type: str, value: Any) -> Any:
    """Convert JSON values to what eth-abi expects for the given type."""
    match = _ARRAY_SUFFIX.match(abi_type)
    if match:
        if not isinstance(value, list):
            raise TypeError(f"Expected a list for '{abi_type}', got {value!r}")
        return [_coerce_abi_value(match.group(1), item) for item in value]
    if abi_type.startswith(("uint", "int")) and isinstance(value, str):
        return int(value, 0)
    if abi_type.startswith("bytes") and isinstance(value, str):
        return decode_hex(value)
    return value


def _encode_int(param: RequestParameter, index: int, value: Any, unsigned: bool) -> bytes:
    if isinstance(value, bool):
        raise _fail(f"Invalid integer value: {value!r}", EncodingErrorReason.INVALID_VALUE, param, index)
    try:
        number = int(value, 0) if isinstance(value, str) else int(value)
    except (TypeError, ValueError):
        raise _fail(
            f"Invalid integer value: {value!r}", EncodingErrorReason.INVALID_VALUE, param, index
        ) from None
    if isinstance(value, float) and number != value:
        raise _fail(f"Invalid integer value: {value!r}", EncodingErrorReason.INVALID_VALUE, param, index)
    if unsigned and number < 0:
        raise _fail(
            f"Invalid unsigned integer value: {value!r}", EncodingErrorReason.INVALID_VALUE, param, index
        )
    return cbor2.dumps(number)


def _encode_string(param: RequestParameter, index: int, value: Any) -> bytes:
    if not isinstance(value, str):
        raise _fail(f"Invalid string value: {value!r}", EncodingErrorReason.INVALID_VALUE, param, index)
    return cbor2.dumps(value)


def _encode_array(param: RequestParameter, index: int, encode_item) -> bytes:
    if not isinstance(param.value, list):
        raise _fail(
            f"Invalid array value: {param.value!r}", EncodingErrorReason.INVALID_VALUE, param, index
        )
    items = b"".join(encode_item(item) for item in param.value)
    return CBOR_ARRAY_START + items + CBOR_BREAK


def _encode_abi(param: RequestParameter, index: int, packed: bool) -> bytes:
    values = param.value
    value_types = param.value_types
    if not isinstance(values, list) or not isinstance(value_types, list) or len(values) != len(value_types):
        raise _fail(
            f"'valueTypes' {value_types!r} do not match 'value' {values!r}",
            EncodingErrorReason.ARITY_MISMATCH,
            param,
            index,
        )
    try:
        coerced = [_coerce_abi_value(t, v) for t, v in zip(value_types, values)]
        if packed:
            return encode_packed(value_types, coerced)
        return abi_encode(value_types, coerced)
    except (AbiEncodingError, TypeError, ValueError) as e:
        raise _fail(
            f"ABI encoding failed for types {value_types}: {e}",
            EncodingErrorReason.ABI_ENCODING,
            param,
            index,
        ) from e


def _encode_address_abi(param: RequestParameter, index: int, abi_type: str) -> bytes:
    try:
        return abi_encode([abi_type], [param.value])
    except (AbiEncodingError, TypeError, ValueError) as e:
        raise _fail(
            f"ABI encoding failed for '{abi_type}': {e}", EncodingErrorReason.ABI_ENCODING, param, index
        ) from e


def _encode_raw_bytes(param: RequestParameter, index: int) -> bytes:
    if not isinstance(param.value, str) or not is_hex(param.value):
        raise _fail(
            f"Invalid hex value: {param.value!r}", EncodingErrorReason.INVALID_VALUE, param, index
        )
    return decode_hex(param.value)


def _resolve_type(param: RequestParameter, index: int) -> RequestParamType:
    if isinstance(param.type, RequestParamType):
        return param.type
    try:
        return RequestParamType.from_string(str(param.type))
    except ValueError:
        raise _fail(
            f"Unsupported parameter type: {param.type!r}",
            EncodingErrorReason.UNSUPPORTED_TYPE,
            param,
            index,
        ) from None


def encode_request_params(params: Sequence[RequestParameter | dict[str, Any]]) -> bytes:
    """
    Encode an ordered parameter list into the request buffer.

    Args:
        params: Parameters in the order the receiving library appends them

    Returns:
        The buffer bytes (identical input always yields identical bytes)

    Raises:
        EncodingError: Unsupported type, arity mismatch, invalid value or ABI failure
    """
    buffer = b""
    for index, raw in enumerate(params):
        param = RequestParameter.from_dict(raw) if isinstance(raw, dict) else raw
        param_type = _resolve_type(param, index)

        if param_type.requires_value_types():
            if param.value_types is None:
                raise _fail(
                    f"Type '{param_type.value}' requires 'valueTypes'",
                    EncodingErrorReason.ARITY_MISMATCH,
                    param,
                    index,
                )
        elif param.value_types is not None:
            raise _fail(
                f"'valueTypes' is only allowed for bytes types, got type '{param_type.value}'",
                EncodingErrorReason.ARITY_MISMATCH,
                param,
                index,
            )

        # The buffer kind replaces everything appended so far
        if param_type is RequestParamType.BUFFER:
            buffer = _encode_raw_bytes(param, index)
            continue

        if param_type is RequestParamType.STRING:
            value = _encode_string(param, index, param.value)
        elif param_type is RequestParamType.INT:
            value = _encode_int(param, index, param.value, unsigned=False)
        elif param_type is RequestParamType.UINT:
            value = _encode_int(param, index, param.value, unsigned=True)
        elif param_type is RequestParamType.BOOL:
            if not isinstance(param.value, bool):
                raise _fail(
                    f"Invalid boolean value: {param.value!r}", EncodingErrorReason.INVALID_VALUE, param, index
                )
            value = cbor2.dumps(param.value)
        elif param_type is RequestParamType.BYTES_RAW:
            value = cbor2.dumps(_encode_raw_bytes(param, index))
        elif param_type is RequestParamType.ADDRESS:
            value = cbor2.dumps(_encode_address_abi(param, index, "address"))
        elif param_type is RequestParamType.ADDRESS_ARRAY:
            value = cbor2.dumps(_encode_address_abi(param, index, "address[]"))
        elif param_type is RequestParamType.BYTES:
            value = cbor2.dumps(_encode_abi(param, index, packed=False))
        elif param_type is RequestParamType.BYTES_PACKED:
            value = cbor2.dumps(_encode_abi(param, index, packed=True))
        elif param_type is RequestParamType.STRING_ARRAY:
            value = _encode_array(param, index, lambda v: _encode_string(param, index, v))
        elif param_type is RequestParamType.INT_ARRAY:
            value = _encode_array(param, index, lambda v: _encode_int(param, index, v, unsigned=False))
        elif param_type is RequestParamType.UINT_ARRAY:
            value = _encode_array(param, index, lambda v: _encode_int(param, index, v, unsigned=True))
        else:  # pragma: no cover - every enum member is handled above
            raise _fail(
                f"Unsupported parameter type: {param_type.value}",
                EncodingErrorReason.UNSUPPORTED_TYPE,
                param,
                index,
            )

        if not isinstance(param.name, str) or not param.name.strip():
            raise _fail(
                f"Invalid parameter name: {param.name!r}", EncodingErrorReason.INVALID_VALUE, param, index
            )
        buffer += cbor2.dumps(param.name) + value

    return buffer


def decode_request_buffer(buffer: str | bytes) -> dict[str, Any]:
    """
    Decode a request buffer the way the node does (as an indefinite-length map).

    Useful for inspecting converted entries; keys keep their appended order.
    """
    raw = decode_hex(buffer) if isinstance(buffer, str) else bytes(buffer)
    decoded = cbor2.loads(CBOR_MAP_START + raw + CBOR_BREAK)
    return dict(decoded)
