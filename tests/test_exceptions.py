"""Unit tests for exceptions module."""

from linklot.core.exceptions import (
    ConfigurationError,
    DecodeError,
    EncodingError,
    EncodingErrorReason,
    EntryNotInsertedError,
    EntryRejectedError,
    JsonRpcError,
    LinkLotError,
    LotNotInsertedError,
    MutationError,
    NetworkError,
    StoreError,
    TransactionError,
    ValidationError,
)


class TestLinkLotError:
    """Tests for base exception."""

    def test_basic_error(self) -> None:
        error = LinkLotError("Something went wrong")

        assert str(error) == "Something went wrong"
        assert error.message == "Something went wrong"
        assert error.details == {}

    def test_error_with_details(self) -> None:
        error = LinkLotError("RPC failed", details={"method": "eth_call"})

        assert "RPC failed" in str(error)
        assert "Details:" in str(error)
        assert error.details["method"] == "eth_call"

    def test_is_catchable_as_base_type(self) -> None:
        for error in (
            ConfigurationError("x"),
            ValidationError("x"),
            LotNotInsertedError(1),
            MutationError("x", kind="add", lot=1, keys=[]),
            NetworkError("x"),
        ):
            assert isinstance(error, LinkLotError)


class TestValidationError:
    def test_carries_field_value_and_index(self) -> None:
        error = ValidationError("Invalid 'interval'", field="interval", value="0", index=3)

        assert error.field == "interval"
        assert error.value == "0"
        assert error.index == 3
        assert str(error).startswith("[entry 3]")


class TestEncodingError:
    def test_str_names_entry_and_param(self) -> None:
        error = EncodingError(
            "boom", reason=EncodingErrorReason.ARITY_MISMATCH, param_name="data", param_index=1, entry_index=4
        )

        text = str(error)
        assert "[encoding:arity_mismatch]" in text
        assert "entry 4" in text
        assert "param 1 'data'" in text


class TestStoreErrors:
    def test_lot_not_inserted(self) -> None:
        error = LotNotInsertedError(7)

        assert isinstance(error, StoreError)
        assert error.lot == 7
        assert "Lot 7" in str(error)

    def test_entry_not_inserted(self) -> None:
        error = EntryNotInsertedError(2, "0xabc")

        assert error.lot == 2
        assert error.key == "0xabc"
        assert "0xabc" in str(error)

    def test_entry_rejected(self) -> None:
        error = EntryRejectedError("Entry field 'interval' is zero", field="interval", value=0)

        assert isinstance(error, StoreError)
        assert error.field == "interval"


class TestMutationError:
    def test_names_lot_keys_and_range(self) -> None:
        error = MutationError("failed", kind="remove", lot=3, keys=["0x01", "0x02"], chunk_range=(2, 3))

        text = str(error)
        assert "[remove]" in text
        assert "lot 3" in text
        assert "(2, 3)" in text
        assert "0x02" in text


class TestNetworkErrors:
    def test_status_helpers(self) -> None:
        assert NetworkError("x", status_code=429).is_rate_limited()
        assert NetworkError("x", status_code=503).is_server_error()
        assert not NetworkError("x", status_code=400).is_server_error()

    def test_json_rpc_revert(self) -> None:
        assert JsonRpcError("execution reverted", code=3, data="0x12345678").is_revert
        assert JsonRpcError("VM Exception: revert", code=-32000).is_revert
        assert not JsonRpcError("nonce too low", code=-32000).is_revert

    def test_transaction_and_decode_errors(self) -> None:
        tx_error = TransactionError("reverted", "0xhash", "receipt")
        decode_error = DecodeError("bad data", selector="0x12345678", name="fulfillUint256(bytes32,uint256)")

        assert "[tx:receipt]" in str(tx_error)
        assert "0xhash" in str(tx_error)
        assert "0x12345678" in str(decode_error)
        assert "fulfillUint256" in str(decode_error)
