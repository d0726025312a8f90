"""
Request encoding for LinkLot.

Turns declared request parameters into the CBOR buffer stored on-chain and
derives the identities (entry keys, spec ids, selectors) built on top of it.
"""

from linklot.encoding.keys import (
    convert_job_id_to_spec_id,
    derive_entry_key,
    function_selector,
)
from linklot.encoding.params import decode_request_buffer, encode_request_params

__all__ = [
    "encode_request_params",
    "decode_request_buffer",
    "derive_entry_key",
    "convert_job_id_to_spec_id",
    "function_selector",
]
