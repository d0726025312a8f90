"""
Validation of declarative entries files.

Every validator works on the raw JSON structures (camelCase keys, integers
as strings) and raises ValidationError naming the offending field and value.
`check_entries_integrity` runs them all and stamps the failing entry index.
"""

from __future__ import annotations

import re
from typing import Any

from eth_utils import is_address, to_checksum_address

from linklot.core.exceptions import ValidationError
from linklot.core.types import (
    ZERO_ADDRESS,
    ChainlinkNodeId,
    ExternalAdapterId,
    RequestParamType,
    RequestType,
    parse_uint,
)

# Local development chain; entries are accepted regardless of their chainId
HARDHAT_CHAIN_ID = 31337

RE_UUID = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)
RE_SEMVER = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?(?:\+[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?$"
)

_ADAPTER_IDS = {a.value for a in ExternalAdapterId}
_NODE_IDS = {n.value for n in ChainlinkNodeId}
_PARAM_TYPES = {t.value for t in RequestParamType}
_REQUEST_TYPES = {int(t) for t in RequestType}


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _parse_uint_str(value: Any) -> int | None:
    """Parse an integer given as string (or int); None when malformed."""
    if not _is_int(value) and not (isinstance(value, str) and value.strip()):
        return None
    try:
        return parse_uint(value)
    except ValueError:
        return None


def validate_external_adapter(adapter: Any) -> None:
    if adapter is None:
        return
    if not isinstance(adapter, dict):
        raise ValidationError(f"Invalid 'adapter': {adapter!r}. Expected null or an object", "adapter", adapter)
    if adapter.get("id") not in _ADAPTER_IDS:
        raise ValidationError(
            f"Invalid adapter 'id': {adapter.get('id')!r}. Check valid values in ExternalAdapterId",
            "adapter.id",
            adapter.get("id"),
        )
    version = adapter.get("version")
    if not isinstance(version, str) or not RE_SEMVER.match(version):
        raise ValidationError(
            f"Invalid adapter 'version': {version!r}. Expected format is 'Major.Minor.Patch'",
            "adapter.version",
            version,
        )


def validate_description(description: Any, chain_id: int | None = None) -> None:
    """
    Validate the description block of an entry.

    The chainId must be present; matching it is skipped when `chain_id` is None or the local
    development chain.
    """
    if not isinstance(description, dict):
        raise ValidationError(f"Invalid 'description': {description!r}", "description", description)

    validate_external_adapter(description.get("adapter"))

    entry_chain_id = description.get("chainId")
    if not _is_int(entry_chain_id) or entry_chain_id < 0:
        raise ValidationError(
            f"Invalid 'chainId': {entry_chain_id!r}. Expected an integer greater or equal than zero",
            "chainId",
            entry_chain_id,
        )
    if chain_id is not None and chain_id != HARDHAT_CHAIN_ID and entry_chain_id != chain_id:
        raise ValidationError(
            f"Chain ID conflict. Entry 'chainId': {entry_chain_id}. But running on: {chain_id}",
            "chainId",
            entry_chain_id,
        )

    for field_name in ("jobId", "jobCase"):
        value = description.get(field_name)
        if not _is_int(value) or value < 0:
            raise ValidationError(
                f"Invalid '{field_name}': {value!r}. Expected an integer greater or equal than zero",
                field_name,
                value,
            )

    job_name = description.get("jobName")
    if not _is_non_empty_str(job_name):
        raise ValidationError(f"Invalid 'jobName': {job_name!r}. Required a non-empty string", "jobName", job_name)

    node_id = description.get("nodeId")
    if node_id not in _NODE_IDS:
        raise ValidationError(
            f"Invalid 'nodeId': {node_id!r}. Check valid values in ChainlinkNodeId", "nodeId", node_id
        )

    notes = description.get("notes")
    if notes is not None and not _is_non_empty_str(notes):
        raise ValidationError(f"Invalid 'notes': {notes!r}. Required null or a non-empty string", "notes", notes)


def validate_external_job_id(external_job_id: Any) -> None:
    if not isinstance(external_job_id, str) or not RE_UUID.match(external_job_id):
        raise ValidationError(
            f"Invalid 'externalJobId': {external_job_id!r}. Expected format is UUID",
            "externalJobId",
            external_job_id,
        )


def validate_checksum_address(value: Any, field_name: str) -> None:
    """Require a checksummed, non-zero address."""
    if (
        not isinstance(value, str)
        or not is_address(value)
        or value != to_checksum_address(value)
        or value.lower() == ZERO_ADDRESS
    ):
        raise ValidationError(
            f"Invalid '{field_name}': {value!r}. Expected a checksum address (can't be the zero address)",
            field_name,
            value,
        )


def validate_payment(payment: Any) -> None:
    parsed = _parse_uint_str(payment) if isinstance(payment, str) else None
    if parsed is None or parsed <= 0:
        raise ValidationError(
            f"Invalid 'payment': {payment!r}. Expected an integer greater than zero as string",
            "payment",
            payment,
        )


def validate_callback_function_name(callback_function_name: Any) -> None:
    if not _is_non_empty_str(callback_function_name):
        raise ValidationError(
            f"Invalid 'callbackFunctionName': {callback_function_name!r}. Required a non-empty string",
            "callbackFunctionName",
            callback_function_name,
        )


def validate_request_type(request_type: Any) -> None:
    if not _is_int(request_type) or request_type not in _REQUEST_TYPES:
        raise ValidationError(
            f"Invalid 'requestType': {request_type!r}. Supported values are: "
            f"{', '.join(f'{t.name} ({t.value})' for t in RequestType)}",
            "requestType",
            request_type,
        )


def validate_request_params(request_params: Any) -> None:
    if not isinstance(request_params, list):
        raise ValidationError(
            f"Invalid 'requestParams': {request_params!r}. Expected an array of request parameters",
            "requestParams",
            request_params,
        )
    for idx, param in enumerate(request_params):
        prefix = f"Invalid 'requestParams' item at position {idx}"
        if not isinstance(param, dict):
            raise ValidationError(f"{prefix}: {param!r}", f"requestParams[{idx}]", param)

        name = param.get("name")
        if not _is_non_empty_str(name):
            raise ValidationError(
                f"{prefix}. Invalid 'name': {name!r}. Required a non-empty string", f"requestParams[{idx}].name", name
            )

        param_type = param.get("type")
        if param_type not in _PARAM_TYPES:
            raise ValidationError(
                f"{prefix}. Invalid 'type': {param_type!r}. Supported values are: {', '.join(sorted(_PARAM_TYPES))}",
                f"requestParams[{idx}].type",
                param_type,
            )

        value = param.get("value")
        if value is None or isinstance(value, dict):
            raise ValidationError(
                f"{prefix}. Invalid 'value': {value!r}. Supported JSON types are: boolean, string, number and array",
                f"requestParams[{idx}].value",
                value,
            )

        if RequestParamType(param_type).requires_value_types():
            if not isinstance(value, list):
                raise ValidationError(
                    f"{prefix}. Invalid 'value': {value!r}. Expected an array of values for type '{param_type}'",
                    f"requestParams[{idx}].value",
                    value,
                )
            value_types = param.get("valueTypes")
            if not isinstance(value_types, list):
                raise ValidationError(
                    f"{prefix}. Invalid 'valueTypes': {value_types!r}. "
                    f"Expected an array of Solidity types for type '{param_type}'",
                    f"requestParams[{idx}].valueTypes",
                    value_types,
                )


def validate_request_data(request_data: Any) -> None:
    if not isinstance(request_data, dict):
        raise ValidationError(f"Invalid 'requestData': {request_data!r}", "requestData", request_data)
    validate_external_job_id(request_data.get("externalJobId"))
    validate_checksum_address(request_data.get("oracleAddr"), "oracleAddr")
    validate_payment(request_data.get("payment"))
    validate_checksum_address(request_data.get("callbackAddr"), "callbackAddr")
    validate_callback_function_name(request_data.get("callbackFunctionName"))
    validate_request_type(request_data.get("requestType"))
    validate_request_params(request_data.get("requestParams"))


def validate_start_at(start_at: Any) -> None:
    parsed = _parse_uint_str(start_at)
    if parsed is None or parsed < 0:
        raise ValidationError(
            f"Invalid 'startAt': {start_at!r}. Expected a valid epoch timestamp in seconds",
            "startAt",
            start_at,
        )


def validate_interval(interval: Any) -> None:
    parsed = _parse_uint_str(interval)
    if parsed is None or parsed <= 0:
        raise ValidationError(
            f"Invalid 'interval': {interval!r}. Expected an integer greater than zero", "interval", interval
        )


def validate_schedule(schedule: Any) -> None:
    if not isinstance(schedule, dict):
        raise ValidationError(f"Invalid 'schedule': {schedule!r}", "schedule", schedule)
    validate_start_at(schedule.get("startAt"))
    validate_interval(schedule.get("interval"))


def validate_inactive(inactive: Any) -> None:
    if not isinstance(inactive, bool):
        raise ValidationError(f"Invalid 'inactive': {inactive!r}. Expected type is boolean", "inactive", inactive)


def check_entries_integrity(
    entries: Any,
    chain_id: int | None = None,
    unique_job_ids: bool = True,
) -> None:
    """
    Validate every item of an entries file.

    Args:
        entries: Parsed JSON content (must be a list)
        chain_id: Chain the entries will be synced on (None skips the check)
        unique_job_ids: Require unique (jobId, jobCase) pairs (one file per node)

    Raises:
        ValidationError: On the first invalid item, with its index set
    """
    if not isinstance(entries, list):
        raise ValidationError(
            "Invalid entries file data format. Expected an array of entry items", "entries", type(entries).__name__
        )

    seen: set[tuple[int, int]] = set()
    for idx, item in enumerate(entries):
        try:
            if not isinstance(item, dict):
                raise ValidationError(f"Invalid entry: {item!r}. Expected an object", "entry", item)
            description = item.get("description")
            validate_description(description, chain_id)
            validate_request_data(item.get("requestData"))
            validate_schedule(item.get("schedule"))
            validate_inactive(item.get("inactive"))
            job = (description["jobId"], description["jobCase"])
            if unique_job_ids:
                if job in seen:
                    raise ValidationError(
                        f"Duplicated (jobId, jobCase): {job}. Keep them unique", "jobId", description["jobId"]
                    )
                seen.add(job)
        except ValidationError as e:
            raise ValidationError(
                f"Invalid entry at index {idx}. Reason: {e.message}",
                field=e.field,
                value=e.value,
                index=idx,
                details={"entry": item},
            ) from e
