"""
Tests for sp_resource.core.cbor — bounded encoder and skipping reader.
"""
import pytest

from sp_resource.core.cbor import CborEncoder, CborReader
from sp_resource.core.errors import (
    DecodeFailure,
    EncodeFailure,
    EncodeOverflow,
    InvalidArgument,
)

from conftest import EXOTIC_VALUE, cbor_text, cbor_uint


class TestEncoder:

    def test_small_values_use_inline_heads(self):
        enc = CborEncoder(64)
        enc.create_array(3)
        enc.encode_uint(23)
        enc.encode_uint(24)
        enc.encode_text_string("a")
        enc.close_container()
        assert enc.getvalue() == bytes.fromhex("83" "17" "1818" "6161")

    def test_wide_integers(self):
        enc = CborEncoder(64)
        enc.create_array(3)
        enc.encode_uint(0x1234)
        enc.encode_uint(0x12345678)
        enc.encode_uint(0x1_0000_0000)
        enc.close_container()
        assert enc.getvalue() == bytes.fromhex(
            "83" "191234" "1a12345678" "1b0000000100000000"
        )

    def test_overflow_reports_exact_shortfall(self):
        enc = CborEncoder(4)
        enc.encode_text_string("hello")   # 6 bytes
        assert enc.overflowed
        assert enc.bytes_needed == 2
        with pytest.raises(EncodeOverflow) as excinfo:
            enc.getvalue()
        assert excinfo.value.bytes_needed == 2
        assert excinfo.value.capacity == 4

    def test_overflow_keeps_counting_after_first_miss(self):
        enc = CborEncoder(3)
        enc.create_array(2)
        enc.encode_text_string("abcd")    # does not fit
        enc.encode_uint(1)                # would fit alone, still counted
        enc.close_container()
        # 1 + 5 + 1 = 7 bytes needed in total
        assert enc.bytes_needed == 4

    def test_exact_fit_is_not_overflow(self):
        enc = CborEncoder(6)
        enc.encode_text_string("hello")
        assert not enc.overflowed
        assert enc.getvalue() == cbor_text("hello")

    def test_too_many_items(self):
        enc = CborEncoder(16)
        enc.create_array(1)
        enc.encode_uint(1)
        with pytest.raises(EncodeFailure, match="too many"):
            enc.encode_uint(2)

    def test_too_few_items(self):
        enc = CborEncoder(16)
        enc.create_map(1)
        enc.encode_text_string("k")
        with pytest.raises(EncodeFailure, match="missing"):
            enc.close_container()

    def test_unclosed_container(self):
        enc = CborEncoder(16)
        enc.create_array(0)
        with pytest.raises(EncodeFailure, match="left open"):
            enc.getvalue()

    def test_negative_integer_rejected(self):
        enc = CborEncoder(16)
        with pytest.raises(EncodeFailure):
            enc.encode_uint(-1)

    def test_zero_capacity_rejected(self):
        with pytest.raises(InvalidArgument):
            CborEncoder(0)


class TestReader:

    def test_reads_scalars_in_sequence(self):
        reader = CborReader(cbor_uint(500) + cbor_text("sp"))
        assert reader.read_uint() == 500
        assert reader.read_text() == "sp"
        assert reader.at_end

    def test_chunked_text_is_joined(self):
        reader = CborReader(bytes.fromhex("7f" "626869" "6121" "ff"))
        assert reader.read_text() == "hi!"
        assert reader.at_end

    def test_wrong_type(self):
        reader = CborReader(cbor_uint(1))
        with pytest.raises(DecodeFailure, match="expected text string"):
            reader.read_text()

    def test_invalid_utf8(self):
        reader = CborReader(bytes.fromhex("62c328"))
        with pytest.raises(DecodeFailure, match="UTF-8"):
            reader.read_text()

    def test_truncated_string(self):
        reader = CborReader(bytes.fromhex("65616263"))
        with pytest.raises(DecodeFailure, match="truncated"):
            reader.read_text()

    def test_reserved_additional_info(self):
        reader = CborReader(bytes([0x1C]))
        with pytest.raises(DecodeFailure, match="additional info"):
            reader.read_uint()

    def test_indefinite_uint_is_invalid(self):
        reader = CborReader(bytes([0x1F]))
        with pytest.raises(DecodeFailure):
            reader.skip_value()


class TestSkipValue:

    def test_skips_whole_nested_structure(self):
        reader = CborReader(EXOTIC_VALUE + cbor_uint(9))
        reader.skip_value()
        assert reader.read_uint() == 9
        assert reader.at_end

    def test_skips_deeply_nested_arrays(self):
        depth = 200
        data = bytes([0x81]) * depth + cbor_uint(1) + cbor_text("next")
        reader = CborReader(data)
        reader.skip_value()
        assert reader.read_text() == "next"

    def test_skips_empty_containers(self):
        reader = CborReader(bytes.fromhex("80" "a0" "9fff" "bfff"))
        for _ in range(4):
            reader.skip_value()
        assert reader.at_end

    def test_skips_simple_values_and_floats(self):
        data = bytes.fromhex("f4" "f5" "f6" "f818" "fa47c35000" "fb3ff199999999999a")
        reader = CborReader(data)
        for _ in range(6):
            reader.skip_value()
        assert reader.at_end

    def test_stray_break(self):
        reader = CborReader(bytes([0xFF]))
        with pytest.raises(DecodeFailure, match="unexpected break"):
            reader.skip_value()

    def test_truncated_container(self):
        reader = CborReader(bytes.fromhex("83" "01" "02"))
        with pytest.raises(DecodeFailure, match="truncated"):
            reader.skip_value()

    def test_unterminated_indefinite_array(self):
        reader = CborReader(bytes.fromhex("9f" "01"))
        with pytest.raises(DecodeFailure):
            reader.skip_value()

    def test_bad_chunk_in_indefinite_text(self):
        reader = CborReader(bytes.fromhex("7f" "4161" "ff"))
        with pytest.raises(DecodeFailure, match="invalid chunk"):
            reader.skip_value()
