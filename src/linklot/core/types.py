"""
Type definitions for LinkLot.

This module contains the enums, data classes and constants shared by the
encoder, the reconciliation engine, the stores and the decoders.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# 10 ** 27 juels (1 billion LINK with 18 decimals)
LINK_TOTAL_SUPPLY = 10**27

ZERO_ADDRESS = "0x" + "0" * 40
ZERO_SELECTOR = "0x00000000"

DEFAULT_BATCH_SIZE = 50


def parse_uint(value: int | str) -> int:
    """Parse an integer field given as int or as a decimal/hex string."""
    if isinstance(value, int):
        return value
    return int(value.strip(), 0)


class RequestParamType(str, Enum):
    """Supported request parameter kinds."""

    # Chainlink request library
    BUFFER = "buffer"
    BYTES_RAW = "bytes_raw"
    INT = "int"
    STRING = "string"
    STRING_ARRAY = "string_array"
    UINT = "uint"
    # Custom kinds
    BOOL = "bool"
    ADDRESS = "address"  # abi.encode(address)
    ADDRESS_ARRAY = "address_array"  # abi.encode(address[])
    BYTES = "bytes"  # abi.encode(valueTypes, value)
    BYTES_PACKED = "bytes_packed"  # abi.encodePacked(valueTypes, value)
    INT_ARRAY = "int_array"
    UINT_ARRAY = "uint_array"

    @classmethod
    def from_string(cls, value: str) -> RequestParamType:
        for member in cls:
            if member.value == value:
                return member
        raise ValueError(f"Unknown request parameter type: {value}. Supported: {[t.value for t in cls]}")

    def requires_value_types(self) -> bool:
        return self in (RequestParamType.BYTES, RequestParamType.BYTES_PACKED)


class RequestType(int, Enum):
    """How the consumer builds the oracle request."""

    ORACLE = 0
    OPERATOR = 1


class MutationKind(str, Enum):
    """Kind of write applied to a lot."""

    ADD = "add"
    UPDATE = "update"
    REMOVE = "remove"


class ChainlinkNodeId(str, Enum):
    """Known node operators hosting the jobs."""

    LINKPOOL_ETH_GOERLI_DELTA = "linkpool_eth_goerli_delta"


class ExternalAdapterId(str, Enum):
    """Known external adapters backing the jobs."""

    N_A = "n/a"
    # Node-operator managed adapters
    ACCUWEATHER = "accuweather"
    ANCHAIN = "anchain"
    AP_SPORTS = "ap-sports"
    ARTCENTRAL = "artcentral"
    BLOCKNATIVE = "blocknative"
    CRD_NETWORK = "crd-network"
    CHARTMETRIC = "chartmetric"
    ENETPULSE = "enetpulse"
    ENETSCORES = "enetscores"
    FREELANCE_JOBS_LANCERIA = "freelance-jobs-lanceria"
    GENERIC = "generic"
    HENI = "heni"
    KYC_CIPHERTRACE = "kyc-ciphertrace"
    KYC_EVEREST = "kyc-everest"
    NFT_ANALYTICS_NFTPERP = "nft-analytics-nftperp"
    NFT_ANALYTICS_RARIFY = "nft-analytics-rarify"
    NFTBANK = "nftbank"
    PROSPECTNOW = "prospectnow"
    SMARTZIP = "smartzip"
    SOLIPAY = "solipay"
    SPORTSDATAIO_LINKPOOL = "sportsdataio-linkpool"
    T3_INDEX = "t3-index"
    TAC_INDEX = "tac-index"
    THERUNDOWN_LP = "therundown-lp"
    UPSHOT = "upshot"
    VENRAI = "venrai"
    WAVEBRIDGE = "wavebridge"
    # Chainlink managed adapters
    COINGECKO = "coingecko"
    DNS_QUERY = "dns-query"
    EXTERNAL_CAR_BROKER = "external-car-broker"
    FINAGE_OWN = "finage-own"
    THERUNDOWN = "therundown"
    TRADERMADE_OWN = "tradermade-own"
    TWELVEDATA_OWN = "twelvedata-own"


@dataclass(frozen=True)
class RequestParameter:
    """A single typed request parameter, in the order it is appended."""

    name: str
    type: RequestParamType | str
    value: Any
    value_types: list[str] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RequestParameter:
        value_types = data.get("valueTypes")
        return cls(
            name=data["name"],
            type=data["type"],
            value=data["value"],
            value_types=list(value_types) if value_types is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "type": self.type.value if isinstance(self.type, RequestParamType) else self.type,
            "value": self.value,
        }
        if self.value_types is not None:
            data["valueTypes"] = list(self.value_types)
        return data


@dataclass(frozen=True)
class ExternalAdapter:
    id: ExternalAdapterId
    version: str


@dataclass(frozen=True)
class Description:
    """Metadata of an entries file item (not stored on-chain)."""

    adapter: ExternalAdapter | None
    chain_id: int
    job_id: int
    job_case: int
    job_name: str
    node_id: ChainlinkNodeId
    notes: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Description:
        adapter = data.get("adapter")
        return cls(
            adapter=(
                ExternalAdapter(id=ExternalAdapterId(adapter["id"]), version=adapter["version"])
                if adapter is not None
                else None
            ),
            chain_id=data["chainId"],
            job_id=data["jobId"],
            job_case=data["jobCase"],
            job_name=data["jobName"],
            node_id=ChainlinkNodeId(data["nodeId"]),
            notes=data.get("notes"),
        )


@dataclass(frozen=True)
class RequestData:
    """What to request, from whom, and where the answer goes."""

    external_job_id: str
    oracle_addr: str
    payment: int
    callback_addr: str
    callback_function_name: str
    request_type: RequestType
    request_params: list[RequestParameter] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RequestData:
        return cls(
            external_job_id=data["externalJobId"],
            oracle_addr=data["oracleAddr"],
            payment=parse_uint(data["payment"]),
            callback_addr=data["callbackAddr"],
            callback_function_name=data["callbackFunctionName"],
            request_type=RequestType(data["requestType"]),
            request_params=[RequestParameter.from_dict(p) for p in data["requestParams"]],
        )


@dataclass(frozen=True)
class Schedule:
    start_at: int
    interval: int

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Schedule:
        return cls(start_at=parse_uint(data["startAt"]), interval=parse_uint(data["interval"]))


@dataclass(frozen=True)
class EntrySpec:
    """One item of a declarative entries file."""

    description: Description
    request_data: RequestData
    schedule: Schedule
    inactive: bool

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EntrySpec:
        return cls(
            description=Description.from_dict(data["description"]),
            request_data=RequestData.from_dict(data["requestData"]),
            schedule=Schedule.from_dict(data["schedule"]),
            inactive=data["inactive"],
        )


@dataclass(frozen=True)
class Entry:
    """
    An entry in its on-chain shape.

    Attributes:
        key: keccak256(spec_id, oracle, buffer) as 0x-prefixed hex
        spec_id: 32-byte job spec id as 0x-prefixed hex
        oracle: Oracle/operator contract address
        payment: LINK payment in juels
        callback_addr: Contract receiving the fulfillment
        callback_function_signature: 4-byte selector as 0x-prefixed hex
        request_type: Oracle or operator request
        buffer: Encoded request parameters as 0x-prefixed hex
        start_at: Epoch seconds when the schedule starts
        interval: Seconds between requests
        inactive: Whether upkeep skips this entry
    """

    key: str
    spec_id: str
    oracle: str
    payment: int
    callback_addr: str
    callback_function_signature: str
    request_type: RequestType
    buffer: str
    start_at: int
    interval: int
    inactive: bool

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dict (integers as strings)."""
        return {
            "key": self.key,
            "specId": self.spec_id,
            "oracle": self.oracle,
            "payment": str(self.payment),
            "callbackAddr": self.callback_addr,
            "callbackFunctionSignature": self.callback_function_signature,
            "requestType": int(self.request_type),
            "buffer": self.buffer,
            "startAt": str(self.start_at),
            "interval": str(self.interval),
            "inactive": self.inactive,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Entry:
        return cls(
            key=data["key"],
            spec_id=data["specId"],
            oracle=data["oracle"],
            payment=parse_uint(data["payment"]),
            callback_addr=data["callbackAddr"],
            callback_function_signature=data["callbackFunctionSignature"],
            request_type=RequestType(int(data["requestType"])),
            buffer=data["buffer"],
            start_at=int(data["startAt"]),
            interval=int(data["interval"]),
            inactive=bool(data["inactive"]),
        )


@dataclass(frozen=True)
class EntryDiff:
    """Key sets computed by reconciling a local entry map against a lot."""

    to_add: tuple[str, ...] = ()
    to_remove: tuple[str, ...] = ()
    to_check: tuple[str, ...] = ()
    to_update: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        """True when nothing has to be written."""
        return not (self.to_add or self.to_remove or self.to_update)


@dataclass(frozen=True)
class FulfillmentEvent:
    """A past ChainlinkFulfilled event emitted by the consumer."""

    request_id: str
    success: bool
    is_forwarded: bool
    callback_addr: str
    callback_function_signature: str
    data: str
    block_number: int | None = None
    block_hash: str | None = None
    transaction_hash: str | None = None
    log_index: int | None = None

    @property
    def payload(self) -> str:
        """Callback calldata with the leading 4-byte selector stripped."""
        raw = self.data[2:] if self.data.startswith("0x") else self.data
        return "0x" + raw[8:]


@dataclass
class MutationReport:
    """Outcome of a batched mutation run."""

    kind: MutationKind
    lot: int
    calls: int = 0
    keys_applied: list[str] = field(default_factory=list)


@dataclass
class SyncResult:
    """Outcome of reconciling a lot against a declared entry set."""

    lot: int
    diff: EntryDiff
    removed: MutationReport | None = None
    updated: MutationReport | None = None
    added: MutationReport | None = None
    dry_run: bool = False
