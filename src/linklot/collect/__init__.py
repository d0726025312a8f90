"""Fulfillment event collection."""

from linklot.collect.events import (
    CHAINLINK_FULFILLED_TOPIC,
    FulfillmentEventFilter,
    FulfillmentEventSource,
    InMemoryEventSource,
    JsonRpcEventSource,
    parse_fulfillment_log,
)
from linklot.collect.pipeline import (
    CollectedFulfillment,
    CollectionPipeline,
    FulfillmentTransaction,
    decode_operator_fulfillment,
)

__all__ = [
    "CHAINLINK_FULFILLED_TOPIC",
    "CollectedFulfillment",
    "CollectionPipeline",
    "FulfillmentEventFilter",
    "FulfillmentEventSource",
    "FulfillmentTransaction",
    "InMemoryEventSource",
    "JsonRpcEventSource",
    "decode_operator_fulfillment",
    "parse_fulfillment_log",
]
