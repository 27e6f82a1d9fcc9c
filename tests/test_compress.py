"""Tests for the compression wrapper."""
import pytest

from morphodic.compress import Algorithm, compress, decompress, is_compressed
from morphodic.errors import CorruptArtifactError

PAYLOAD = "すもももももももものうち".encode("utf-8") * 50


@pytest.mark.parametrize("algorithm", list(Algorithm))
def test_round_trip(algorithm):
    data = compress(PAYLOAD, algorithm)
    assert is_compressed(data)
    assert decompress(data) == PAYLOAD


@pytest.mark.parametrize("algorithm", [Algorithm.DEFLATE, Algorithm.ZLIB, Algorithm.GZIP, Algorithm.LZMA])
def test_output_is_smaller(algorithm):
    assert len(compress(PAYLOAD, algorithm)) < len(PAYLOAD)


def test_gzip_is_reproducible():
    assert compress(PAYLOAD, Algorithm.GZIP) == compress(PAYLOAD, Algorithm.GZIP)


def test_empty_payload():
    assert decompress(compress(b"")) == b""


def test_uncompressed_data_is_not_sniffed():
    assert not is_compressed(b"MDIC\x01\x00\x00\x00")


class TestCorruption:
    @pytest.mark.parametrize("algorithm", list(Algorithm))
    def test_truncated(self, algorithm):
        data = compress(PAYLOAD, algorithm)
        with pytest.raises(CorruptArtifactError):
            decompress(data[:-8])

    def test_flipped_payload_byte(self):
        data = bytearray(compress(PAYLOAD, Algorithm.RAW))
        data[-1] ^= 0xFF
        with pytest.raises(CorruptArtifactError):
            decompress(bytes(data))

    def test_garbage_stream(self):
        data = compress(PAYLOAD, Algorithm.ZLIB)
        with pytest.raises(CorruptArtifactError):
            decompress(data[:17] + b"\x00" * 40)

    def test_unknown_algorithm(self):
        data = bytearray(compress(PAYLOAD))
        data[4] = 99
        with pytest.raises(CorruptArtifactError):
            decompress(bytes(data))

    def test_missing_header(self):
        with pytest.raises(CorruptArtifactError):
            decompress(PAYLOAD)


class TestAlgorithmNames:
    def test_from_name(self):
        assert Algorithm.from_name("deflate") is Algorithm.DEFLATE
        assert Algorithm.from_name("GZIP") is Algorithm.GZIP

    def test_unknown_name(self):
        with pytest.raises(ValueError):
            Algorithm.from_name("brotli")
