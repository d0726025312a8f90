"""Entry identity and selector derivation."""

from __future__ import annotations

from eth_abi.packed import encode_packed
from eth_utils import (
    decode_hex,
    encode_hex,
    function_signature_to_4byte_selector,
    keccak,
    to_checksum_address,
)


def _to_bytes(value: str | bytes) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    return decode_hex(value)


def convert_job_id_to_spec_id(external_job_id: str) -> str:
    """
    Convert a job external id (UUID) into the 32-byte spec id.

    The node identifies jobs by the dash-less UUID as 32 ASCII bytes.
    """
    job_id = external_job_id.replace("-", "")
    if len(job_id) != 32:
        raise ValueError(f"Invalid external job id: {external_job_id}. Expected a UUID")
    return encode_hex(job_id.encode("ascii"))


def function_selector(signature: str) -> str:
    """Return bytes4(keccak256(signature)) as 0x-prefixed hex."""
    return encode_hex(function_signature_to_4byte_selector(signature.strip()))


def derive_entry_key(spec_id: str | bytes, oracle: str, buffer: str | bytes) -> str:
    """
    Compute the entry key: keccak256(specId ++ oracle ++ buffer).

    The three values are tightly packed (32 + 20 + len(buffer) bytes, no
    padding). Payment, callback and schedule are not part of the identity.
    """
    spec_id_bytes = _to_bytes(spec_id)
    if len(spec_id_bytes) != 32:
        raise ValueError(f"Invalid spec id: {spec_id!r}. Expected 32 bytes")
    packed = encode_packed(
        ["bytes32", "address", "bytes"],
        [spec_id_bytes, to_checksum_address(oracle), _to_bytes(buffer)],
    )
    return encode_hex(keccak(packed))
