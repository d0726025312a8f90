"""
Decoder catalogue of the external adapter callbacks.

Each row is declarative: a callback signature, the result types when they
differ from the signature, and an optional post-processing step.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from typing import Any

from eth_abi import decode as abi_decode

from linklot.decoders.formatting import (
    hex_to_int,
    hex_to_text,
    log_hex_str,
    log_timestamp,
    log_timestamp_from_hex_str,
    to_display,
)
from linklot.decoders.generic import GENERIC_DECODERS
from linklot.decoders.registry import DecoderRegistry, DecoderSpec
from linklot.encoding.keys import function_selector

# ─── AccuWeather ────────────────────────────────────────────────────

ACCUWEATHER_LOCATION_TYPE = "(uint256,string,bytes2)"
ACCUWEATHER_CURRENT_CONDITIONS_TYPE = (
    "(uint256,uint24,uint24,uint24,uint24,int16,uint16,uint16,uint8,uint8,uint8,uint8)"
)


def decode_accuweather_location(location: bytes) -> list[Any]:
    location_key, name, country_code = abi_decode([ACCUWEATHER_LOCATION_TYPE], location)[0]
    return [location_key, name, hex_to_text(country_code)]


def decode_accuweather_current_conditions(current_conditions: bytes) -> list[Any]:
    # timestamp, precipitation past 12h / 24h / 1h, pressure, temperature,
    # wind direction, wind speed, precipitation type, humidity, uv index, icon
    timestamp, *conditions = abi_decode([ACCUWEATHER_CURRENT_CONDITIONS_TYPE], current_conditions)[0]
    return [log_timestamp(timestamp), *conditions]


def _accuweather_location(is_found: bool, location: bytes) -> list[Any]:
    if not is_found:
        return [is_found, "0x"]
    return [is_found, decode_accuweather_location(location)]


def _accuweather_location_current_conditions(
    is_found: bool, location: bytes, current_conditions: bytes
) -> list[Any]:
    if not is_found:
        return [is_found, "0x"]
    return [
        is_found,
        decode_accuweather_location(location),
        decode_accuweather_current_conditions(current_conditions),
    ]


# ─── Sports schedules ───────────────────────────────────────────────


def _ap_sports_games_created(games: list[bytes]) -> list[Any]:
    decoded = []
    for game in games:
        game_id, start_time, status, home_team, away_team = abi_decode(
            ["bytes32", "uint40", "uint8", "string", "string"], game
        )
        decoded.append([to_display(game_id), log_timestamp(start_time), status, home_team, away_team])
    return decoded


def _ap_sports_games_resolved(games: list[bytes]) -> list[Any]:
    return [list(abi_decode(["bytes32", "uint8", "uint8", "uint8"], game)) for game in games]


def _enetscores_games_created(games: list[bytes]) -> list[Any]:
    decoded = []
    for game in games:
        item = game.hex()
        end_home_team = 20 + hex_to_int(item[18:20]) * 2
        decoded.append(
            [
                hex_to_int(item[0:8]),
                log_timestamp_from_hex_str(item[8:18]),
                hex_to_text(item[20:end_home_team]),
                hex_to_text(item[end_home_team:]),
            ]
        )
    return decoded


def _enetscores_games_resolved(games: list[bytes]) -> list[Any]:
    decoded = []
    for game in games:
        item = game.hex()
        decoded.append(
            [hex_to_int(item[0:8]), hex_to_int(item[8:10]), hex_to_int(item[10:12]), hex_to_text(item[12:])]
        )
    return decoded


def _sportsdata_games_created(games: list[bytes]) -> list[Any]:
    decoded = []
    for game in games:
        item = game.hex()
        decoded.append(
            [
                hex_to_int(item[0:8]),
                log_timestamp_from_hex_str(item[8:18]),
                log_hex_str(item[18:38]),
                log_hex_str(item[38:]),
            ]
        )
    return decoded


def _sportsdata_games_resolved(games: list[bytes]) -> list[Any]:
    decoded = []
    for game in games:
        item = game.hex()
        decoded.append(
            [hex_to_int(item[0:8]), hex_to_int(item[8:10]), hex_to_int(item[10:12]), log_hex_str(item[12:])]
        )
    return decoded


def _therundown_games_created(games: list[bytes]) -> list[Any]:
    decoded = []
    for game in games:
        game_id, start_time, home_team, away_team = abi_decode(["(bytes32,uint256,string,string)"], game)[0]
        decoded.append([to_display(game_id), log_timestamp(start_time), home_team, away_team])
    return decoded


def _therundown_games_resolved(games: list[bytes]) -> list[Any]:
    return [list(abi_decode(["(bytes32,uint8,uint8,uint8)"], game)[0]) for game in games]


# ─── Packed bytes32 results ─────────────────────────────────────────


def _split_timestamp_value(result: bytes) -> list[Any]:
    item = result.hex()
    return [log_timestamp_from_hex_str(item[:32]), hex_to_int(item[32:])]


def _split_two_ints(result: bytes) -> list[int]:
    item = result.hex()
    return [hex_to_int(item[:32]), hex_to_int(item[32:])]


def _chartmetric_statistics(result: bytes) -> list[int]:
    # youtube, spotify, tiktok as three left-aligned uint64
    return [int.from_bytes(result[i : i + 8], "big") for i in (0, 8, 16)]


ADAPTER_DECODERS: list[DecoderSpec] = [
    # AccuWeather
    DecoderSpec("accuweatherLocation(bytes32,bytes)", ("bool", "bytes"), _accuweather_location),
    DecoderSpec("accuweatherCurrentConditions(bytes32,bytes)", ("bytes",), decode_accuweather_current_conditions),
    DecoderSpec(
        "accuweatherLocationCurrentConditions(bytes32,bytes)",
        ("bool", "bytes", "bytes"),
        _accuweather_location_current_conditions,
    ),
    # AnChain
    DecoderSpec("anchainCategory(bytes32,string)"),
    # AP Sports
    DecoderSpec("apSportsScheduleGamesCreated(bytes32,bytes[])", post=_ap_sports_games_created),
    DecoderSpec("apSportsScheduleGamesResolved(bytes32,bytes[])", post=_ap_sports_games_resolved),
    # ArtCentral
    DecoderSpec("artcentralTami(bytes32,uint256)"),
    # Blocknative (results are sent as string)
    DecoderSpec("blocknativeBlockpricesGetLegacy(bytes32,bytes32)", ("string",)),
    DecoderSpec("blocknativeBlockpricesGetEip1559(bytes32,bytes32)", ("string",)),
    # Chartmetric
    DecoderSpec("chartmetricStatistics(bytes32,bytes32)", post=_chartmetric_statistics),
    # CRD Network
    DecoderSpec("crdNetworkAddressInfo(bytes32,bytes22,uint8)"),
    # DNS query
    DecoderSpec("dnsQueryDnsProofCheckRecord(bytes32,bool)"),
    # Enetpulse
    DecoderSpec("enetpulseGameDetails(bytes32,bytes)", post=hex_to_text),
    DecoderSpec("enetpulseGameScore(bytes32,bytes)", post=hex_to_text),
    DecoderSpec("enetpulseSchedule(bytes32,bytes)", post=hex_to_text),
    # Enetscores
    DecoderSpec("enetscoresScheduleGamesCreated(bytes32,bytes[])", post=_enetscores_games_created),
    DecoderSpec("enetscoresScheduleGamesResolved(bytes32,bytes[])", post=_enetscores_games_resolved),
    # Finage
    DecoderSpec("finagePrice(bytes32,uint256)"),
    # Freelance Jobs Lanceria
    DecoderSpec("freelanceJobsLanceriaJobsGet(bytes32,address,address,uint256)"),
    # Heni
    DecoderSpec("heniPrice(bytes32,uint256)"),
    # CipherTrace
    DecoderSpec("kycCiphertraceAddressesGet(bytes32,bool)"),
    # Everest
    DecoderSpec(
        "kycEverestAddressesGet(bytes32,uint8,uint40)",
        post=lambda status, timestamp: [status, log_timestamp(timestamp)],
    ),
    # NFT Analytics
    DecoderSpec("nftAnalyticsNftperpTwapsGet(bytes32,uint256)"),
    DecoderSpec(
        "nftAnalyticsRarifyFloorpricesGet(bytes32,uint256,uint256)",
        post=lambda timestamp, floorprice: [log_timestamp(timestamp), floorprice],
    ),
    # NFTBank
    DecoderSpec("nftbankEstimateTokenPrice(bytes32,uint256)"),
    DecoderSpec("nftbankFloorPricePrice(bytes32,uint256)"),
    DecoderSpec("nftbankFloorPriceTimestampFloorprice(bytes32,bytes32)", post=_split_timestamp_value),
    # ProspectNow
    DecoderSpec("prospectnowTerritoryAnalizerAvgPrice(bytes32,uint256)"),
    # SmartZip
    DecoderSpec("smartzipPropertyAvmPrice(bytes32,uint256)"),
    DecoderSpec("smartzipPropertyDetailsPrice(bytes32,uint256)"),
    # SportsDataIO (LinkPool)
    DecoderSpec("sportsdataLpScheduleGamesCreated(bytes32,bytes32[])", post=_sportsdata_games_created),
    DecoderSpec("sportsdataLpScheduleGamesResolved(bytes32,bytes32[])", post=_sportsdata_games_resolved),
    # TAC Index
    DecoderSpec("tacIndexPrice(bytes32,uint256)"),
    # TheRundown (LinkPool)
    DecoderSpec("therundownLpScheduleGamesCreated_v2_0(bytes32,bytes[])", post=_therundown_games_created),
    DecoderSpec("therundownLpScheduleGamesResolved_v2_0(bytes32,bytes[])", post=_therundown_games_resolved),
    # TraderMade
    DecoderSpec("tradermadePrice(bytes32,uint256)"),
    # Twelve Data
    DecoderSpec("twelvedataPrice(bytes32,uint256)"),
    # Upshot
    DecoderSpec("upshotAssetPrice(bytes32,uint256)"),
    DecoderSpec("upshotStatisticsFloorprice(bytes32,uint256)"),
    DecoderSpec("upshotStatisticsMarketcap(bytes32,uint256)"),
    DecoderSpec("upshotStatisticsStatistics(bytes32,bytes32)", post=_split_two_ints),
    DecoderSpec("upshotStatisticsTimestampFloorprice(bytes32,bytes32)", post=_split_timestamp_value),
    # Venrai
    DecoderSpec("venraiSanctions(bytes32,bool)"),
    # Wavebridge
    DecoderSpec("wavebridgeCmxDaily(bytes32,int256)"),
    DecoderSpec("wavebridgeKimpDaily(bytes32,int256)"),
    DecoderSpec("wavebridgeKimpRealtime(bytes32,int256)"),
]

DEFAULT_CATALOGUE: list[DecoderSpec] = [*GENERIC_DECODERS, *ADAPTER_DECODERS]


def find_selector_collisions(specs: Iterable[DecoderSpec]) -> dict[str, list[str]]:
    """Selectors shared by more than one catalogue signature."""
    by_selector: dict[str, list[str]] = defaultdict(list)
    for spec in specs:
        by_selector[function_selector(spec.signature)].append(spec.signature)
    return {selector: sigs for selector, sigs in by_selector.items() if len(sigs) > 1}


def build_default_registry() -> DecoderRegistry:
    """Build a registry holding the generic and adapter decoders."""
    return DecoderRegistry.from_specs(DEFAULT_CATALOGUE)
