import pytest

from flagdcore.hashing import murmur3_32, xxh3_64


def test_murmur3_empty_input_with_zero_seed():
    assert murmur3_32(b"", 0) == 0


def test_murmur3_empty_input_with_seed_one():
    assert murmur3_32(b"", 1) == 0x514E28B7


def test_xxh3_empty_input():
    assert xxh3_64(b"") == 0x2D06800538D394C2


def test_murmur3_default_seed_is_zero():
    assert murmur3_32(b"flag-key") == murmur3_32(b"flag-key", 0)


@pytest.mark.parametrize("text", ["", "a", "abc", "abcd", "user@example.com", "grüße"])
def test_murmur3_string_hashes_utf8_bytes(text):
    assert murmur3_32(text) == murmur3_32(text.encode("utf-8"))


@pytest.mark.parametrize("text", ["", "a", "abcdefgh", "user@example.com", "grüße" * 50])
def test_xxh3_string_hashes_utf8_bytes(text):
    assert xxh3_64(text) == xxh3_64(text.encode("utf-8"))


def test_murmur3_seed_changes_result():
    assert murmur3_32(b"abc", 0) != murmur3_32(b"abc", 1)


def test_murmur3_results_fit_in_32_bits_and_differ_per_length():
    data = bytes(range(40))
    hashes = [murmur3_32(data[:n]) for n in range(len(data) + 1)]
    assert all(0 <= h < 2**32 for h in hashes)
    assert len(set(hashes)) == len(hashes)


@pytest.mark.parametrize(
    "data, seed, expected",
    [
        (b"", 0xFFFFFFFF, 0x81F16F39),
        (b"\x00\x00\x00\x00", 0, 0x2362F9DE),
        (b"abc", 0, 0xB3DD93FA),
    ],
)
def test_murmur3_known_vectors(data, seed, expected):
    assert murmur3_32(data, seed) == expected


def test_xxh3_covers_every_length_class_without_collisions():
    data = bytes(i % 251 for i in range(2100))
    hashes = [xxh3_64(data[:n]) for n in range(0, 2100, 7)]
    assert all(0 <= h < 2**64 for h in hashes)
    assert len(set(hashes)) == len(hashes)


@pytest.mark.parametrize("length", [1, 3, 4, 8, 9, 16, 17, 128, 129, 240, 241, 1024, 1025, 2048])
def test_xxh3_single_byte_change_alters_hash(length):
    data = bytearray(b"x" * length)
    original = xxh3_64(bytes(data))
    data[length // 2] ^= 0x01
    assert xxh3_64(bytes(data)) != original


def test_xxh3_is_deterministic_for_long_input():
    data = b"0123456789abcdef" * 100
    assert xxh3_64(data) == xxh3_64(bytes(data))