"""
Fulfillment decoders.

Example:
    >>> from linklot.decoders import build_default_registry
    >>>
    >>> registry = build_default_registry()
    >>> selectors = registry.selectors_for_name("fulfillUint256(bytes32,uint256)")
    >>> outcome = registry.decode_candidates(selectors, payload)
"""

from linklot.decoders.catalogue import (
    ADAPTER_DECODERS,
    DEFAULT_CATALOGUE,
    build_default_registry,
    find_selector_collisions,
)
from linklot.decoders.generic import GENERIC_DECODERS, generic_signature
from linklot.decoders.registry import DecodeOutcome, DecoderRegistry, DecoderRegistryEntry, DecoderSpec

__all__ = [
    "ADAPTER_DECODERS",
    "DEFAULT_CATALOGUE",
    "GENERIC_DECODERS",
    "DecodeOutcome",
    "DecoderRegistry",
    "DecoderRegistryEntry",
    "DecoderSpec",
    "build_default_registry",
    "find_selector_collisions",
    "generic_signature",
]
