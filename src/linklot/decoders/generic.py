"""Decoders for results of standard Solidity types (`fulfill<Type>` callbacks)."""

from __future__ import annotations

from linklot.decoders.registry import DecoderSpec

# Callback name suffix -> result type
GENERIC_RESULT_TYPES: dict[str, str] = {
    "Address": "address",
    "AddressArray": "address[]",
    "Bool": "bool",
    "BoolArray": "bool[]",
    "Bytes": "bytes",
    "BytesArray": "bytes[]",
    "Bytes32": "bytes32",
    "Bytes32Array": "bytes32[]",
    "Int256": "int256",
    "Int256Array": "int256[]",
    "String": "string",
    "StringArray": "string[]",
    "Uint256": "uint256",
    "Uint256Array": "uint256[]",
}


def generic_signature(result_type: str) -> str:
    """Callback signature of the generic decoder for `result_type`."""
    for suffix, abi_type in GENERIC_RESULT_TYPES.items():
        if abi_type == result_type:
            return f"fulfill{suffix}(bytes32,{abi_type})"
    raise ValueError(f"No generic decoder for type: {result_type}")


GENERIC_DECODERS: list[DecoderSpec] = [
    DecoderSpec(f"fulfill{suffix}(bytes32,{abi_type})") for suffix, abi_type in GENERIC_RESULT_TYPES.items()
]
