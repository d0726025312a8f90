"""
Decoder Registry.

Maps 4-byte callback selectors to fulfillment decoders and tries candidate
selectors in order until one decodes the payload.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from eth_abi import decode as abi_decode
from eth_utils import decode_hex

from linklot.core.exceptions import DecodeError
from linklot.core.logging import get_logger
from linklot.decoders.formatting import to_display
from linklot.encoding.keys import function_selector

logger = get_logger("decoders.registry")

Decoder = Callable[[str], Any]


def _signature_name(signature: str) -> str:
    return signature.split("(", 1)[0]


def _signature_argument_types(signature: str) -> list[str]:
    args = signature[signature.index("(") + 1 : signature.rindex(")")]
    return [a.strip() for a in args.split(",") if a.strip()]


@dataclass(frozen=True)
class DecoderSpec:
    """
    One catalogue row: a callback signature and how to decode its payload.

    Attributes:
        signature: Canonical callback signature, e.g. "fulfillUint256(bytes32,uint256)"
        result_types: ABI types following the request id in the payload;
            defaults to the signature arguments after the leading bytes32
        post: Optional post-processing applied to the decoded values
    """

    signature: str
    result_types: tuple[str, ...] | None = None
    post: Callable[..., Any] | None = None

    @property
    def name(self) -> str:
        return _signature_name(self.signature)

    @property
    def abi_types(self) -> list[str]:
        if self.result_types is not None:
            return list(self.result_types)
        return _signature_argument_types(self.signature)[1:]

    def build(self) -> Decoder:
        """Create the decode function for this row."""
        types = ["bytes32", *self.abi_types]
        post = self.post

        def decode(payload: str) -> Any:
            raw = decode_hex(payload) if isinstance(payload, str) else bytes(payload)
            # The leading request id is not part of the result
            values = abi_decode(types, raw)[1:]
            if post is not None:
                return to_display(post(*values))
            return to_display(values[0] if len(values) == 1 else list(values))

        return decode


@dataclass(frozen=True)
class DecoderRegistryEntry:
    selector: str
    name: str
    decode: Decoder


@dataclass
class DecodeOutcome:
    """Result of trying candidate decoders against one payload."""

    payload: str
    decoded: bool = False
    value: Any = None
    selector: str | None = None
    callback_function_name: str | None = None
    failures: list[DecodeError] = field(default_factory=list)


class DecoderRegistry:
    """
    Registry of fulfillment decoders keyed by selector.

    Registering a selector twice keeps the last registration.

    Usage:
        registry = build_default_registry()
        outcome = registry.decode_candidates([event.callback_function_signature], event.payload)
        if outcome.decoded:
            print(outcome.callback_function_name, outcome.value)
    """

    def __init__(self) -> None:
        self._entries: dict[str, DecoderRegistryEntry] = {}

    @classmethod
    def from_specs(cls, specs: Iterable[DecoderSpec]) -> DecoderRegistry:
        registry = cls()
        for spec in specs:
            registry.register_spec(spec)
        return registry

    def register(self, signature: str, decode: Decoder) -> DecoderRegistryEntry:
        signature = signature.strip()
        selector = function_selector(signature)
        previous = self._entries.get(selector)
        if previous is not None:
            logger.warning(f"Selector {selector} of {signature} overrides {previous.name}")
        entry = DecoderRegistryEntry(selector=selector, name=signature, decode=decode)
        self._entries[selector] = entry
        return entry

    def register_spec(self, spec: DecoderSpec) -> DecoderRegistryEntry:
        return self.register(spec.signature, spec.build())

    def has(self, selector: str) -> bool:
        return selector.lower() in self._entries

    def get(self, selector: str) -> DecoderRegistryEntry | None:
        return self._entries.get(selector.lower())

    def entries(self) -> list[DecoderRegistryEntry]:
        return list(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, selector: object) -> bool:
        return isinstance(selector, str) and self.has(selector)

    def selectors_for_name(self, function_name: str) -> list[str]:
        """
        Resolve a callback function name to selectors.

        A full signature resolves to its selector whether registered or not;
        a bare name resolves to the registered signatures with that name.
        """
        function_name = function_name.strip()
        if "(" in function_name:
            return [function_selector(function_name)]
        return [e.selector for e in self._entries.values() if _signature_name(e.name) == function_name]

    def decode_candidates(self, selectors: Sequence[str], payload: str) -> DecodeOutcome:
        """
        Try each registered candidate in order; the first success wins.

        Unregistered candidates are skipped. Each failing decoder is logged
        as a warning and kept in `failures`; when every candidate fails the
        outcome is returned undecoded.
        """
        outcome = DecodeOutcome(payload=payload)
        tried: set[str] = set()
        for selector in selectors:
            selector = selector.lower()
            if selector in tried:
                continue
            tried.add(selector)
            entry = self._entries.get(selector)
            if entry is None:
                logger.debug(f"No decoder registered for selector {selector}")
                continue
            try:
                value = entry.decode(payload)
            except Exception as e:
                failure = DecodeError(str(e), selector=selector, name=entry.name)
                outcome.failures.append(failure)
                logger.warning(f"Decoder {entry.name} ({selector}) failed: {e}")
                continue
            outcome.decoded = True
            outcome.value = value
            outcome.selector = selector
            outcome.callback_function_name = entry.name
            return outcome
        return outcome
