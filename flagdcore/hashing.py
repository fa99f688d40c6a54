"""Non-cryptographic hash functions used to bucket evaluation contexts."""

from __future__ import annotations

import struct
from typing import List, Union

BytesLike = Union[bytes, bytearray, memoryview, str]

_M32 = 0xFFFFFFFF
_M64 = 0xFFFFFFFFFFFFFFFF

_MURMUR_C1 = 0xCC9E2D51
_MURMUR_C2 = 0x1B873593

_PRIME32_1 = 0x9E3779B1
_PRIME32_2 = 0x85EBCA77
_PRIME32_3 = 0xC2B2AE3D
_PRIME64_1 = 0x9E3779B185EBCA87
_PRIME64_2 = 0xC2B2AE3D27D4EB4F
_PRIME64_3 = 0x165667B19E3779F9
_PRIME64_4 = 0x85EBCA77C2B2AE63
_PRIME64_5 = 0x27D4EB2F165667C5
_PRIME_MX1 = 0x165667919E3779F9
_PRIME_MX2 = 0x9FB21C651E98DF25

_SECRET = bytes(
    [
        0xB8, 0xFE, 0x6C, 0x39, 0x23, 0xA4, 0x4B, 0xBE, 0x7C, 0x01, 0x81, 0x2C, 0xF7, 0x21, 0xAD, 0x1C,
        0xDE, 0xD4, 0x6D, 0xE9, 0x83, 0x90, 0x97, 0xDB, 0x72, 0x40, 0xA4, 0xA4, 0xB7, 0xB3, 0x67, 0x1F,
        0xCB, 0x79, 0xE6, 0x4E, 0xCC, 0xC0, 0xE5, 0x78, 0x82, 0x5A, 0xD0, 0x7D, 0xCC, 0xFF, 0x72, 0x21,
        0xB8, 0x08, 0x46, 0x74, 0xF7, 0x43, 0x24, 0x8E, 0xE0, 0x35, 0x90, 0xE6, 0x81, 0x3A, 0x26, 0x4C,
        0x3C, 0x28, 0x52, 0xBB, 0x91, 0xC3, 0x00, 0xCB, 0x88, 0xD0, 0x65, 0x8B, 0x1B, 0x53, 0x2E, 0xA3,
        0x71, 0x64, 0x48, 0x97, 0xA2, 0x0D, 0xF9, 0x4E, 0x38, 0x19, 0xEF, 0x46, 0xA9, 0xDE, 0xAC, 0xD8,
        0xA8, 0xFA, 0x76, 0x3F, 0xE3, 0x9C, 0x34, 0x3F, 0xF9, 0xDC, 0xBB, 0xC7, 0xC7, 0x0B, 0x4F, 0x1D,
        0x8A, 0x51, 0xE0, 0x4B, 0xCD, 0xB4, 0x59, 0x31, 0xC8, 0x9F, 0x7E, 0xC9, 0xD9, 0x78, 0x73, 0x64,
        0xEA, 0xC5, 0xAC, 0x83, 0x34, 0xD3, 0xEB, 0xC3, 0xC5, 0x81, 0xA0, 0xFF, 0xFA, 0x13, 0x63, 0xEB,
        0x17, 0x0D, 0xDD, 0x51, 0xB7, 0xF0, 0xDA, 0x49, 0xD3, 0x16, 0x55, 0x26, 0x29, 0xD4, 0x68, 0x9E,
        0x2B, 0x16, 0xBE, 0x58, 0x7D, 0x47, 0xA1, 0xFC, 0x8F, 0xF8, 0xB8, 0xD1, 0x7A, 0xD0, 0x31, 0xCE,
        0x45, 0xCB, 0x3A, 0x8F, 0x95, 0x16, 0x04, 0x28, 0xAF, 0xD7, 0xFB, 0xCA, 0xBB, 0x4B, 0x40, 0x7E,
    ]
)
_SECRET_SIZE = len(_SECRET)
_SECRET_SIZE_MIN = 136
_STRIPE_LEN = 64
_SECRET_CONSUME_RATE = 8
_ACC_NB = 8
_MIDSIZE_START_OFFSET = 3
_MIDSIZE_LAST_OFFSET = 17
_SECRET_LASTACC_START = 7
_SECRET_MERGEACCS_START = 11


def _as_bytes(data: BytesLike) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


def _rotl32(x: int, r: int) -> int:
    return ((x << r) | (x >> (32 - r))) & _M32


def _rotl64(x: int, r: int) -> int:
    return ((x << r) | (x >> (64 - r))) & _M64


def murmur3_32(data: BytesLike, seed: int = 0) -> int:
    """MurmurHash3 x86 32-bit hash of ``data`` (strings are hashed as UTF-8)."""
    buf = _as_bytes(data)
    length = len(buf)
    h = seed & _M32
    body_len = length - (length & 3)

    for (k,) in struct.iter_unpack("<I", buf[:body_len]):
        k = (k * _MURMUR_C1) & _M32
        k = _rotl32(k, 15)
        k = (k * _MURMUR_C2) & _M32
        h ^= k
        h = _rotl32(h, 13)
        h = (h * 5 + 0xE6546B64) & _M32

    tail = buf[body_len:]
    if tail:
        k = int.from_bytes(tail, "little")
        k = (k * _MURMUR_C1) & _M32
        k = _rotl32(k, 15)
        k = (k * _MURMUR_C2) & _M32
        h ^= k

    h ^= length & _M32
    h ^= h >> 16
    h = (h * 0x85EBCA6B) & _M32
    h ^= h >> 13
    h = (h * 0xC2B2AE35) & _M32
    h ^= h >> 16
    return h


def _r32(buf: bytes, offset: int) -> int:
    return int.from_bytes(buf[offset:offset + 4], "little")


def _r64(buf: bytes, offset: int) -> int:
    return int.from_bytes(buf[offset:offset + 8], "little")


def _swap64(x: int) -> int:
    return int.from_bytes(x.to_bytes(8, "little"), "big")


def _mul128_fold64(a: int, b: int) -> int:
    product = a * b
    return (product ^ (product >> 64)) & _M64


def _xxh64_avalanche(h: int) -> int:
    h ^= h >> 33
    h = (h * _PRIME64_2) & _M64
    h ^= h >> 29
    h = (h * _PRIME64_3) & _M64
    h ^= h >> 32
    return h


def _xxh3_avalanche(h: int) -> int:
    h &= _M64
    h ^= h >> 37
    h = (h * _PRIME_MX1) & _M64
    h ^= h >> 32
    return h


def _rrmxmx(h: int, length: int) -> int:
    h ^= _rotl64(h, 49) ^ _rotl64(h, 24)
    h = (h * _PRIME_MX2) & _M64
    h ^= (h >> 35) + length
    h = (h * _PRIME_MX2) & _M64
    h ^= h >> 28
    return h


def _mix16(buf: bytes, in_offset: int, secret_offset: int) -> int:
    lo = _r64(buf, in_offset)
    hi = _r64(buf, in_offset + 8)
    return _mul128_fold64(lo ^ _r64(_SECRET, secret_offset), hi ^ _r64(_SECRET, secret_offset + 8))


def _len_1_to_3(buf: bytes) -> int:
    length = len(buf)
    c1, c2, c3 = buf[0], buf[length >> 1], buf[length - 1]
    combined = (c1 << 16) | (c2 << 24) | c3 | (length << 8)
    bitflip = _r32(_SECRET, 0) ^ _r32(_SECRET, 4)
    return _xxh64_avalanche(combined ^ bitflip)


def _len_4_to_8(buf: bytes) -> int:
    length = len(buf)
    input1 = _r32(buf, 0)
    input2 = _r32(buf, length - 4)
    bitflip = _r64(_SECRET, 8) ^ _r64(_SECRET, 16)
    input64 = input2 + (input1 << 32)
    return _rrmxmx(input64 ^ bitflip, length)


def _len_9_to_16(buf: bytes) -> int:
    length = len(buf)
    bitflip1 = _r64(_SECRET, 24) ^ _r64(_SECRET, 32)
    bitflip2 = _r64(_SECRET, 40) ^ _r64(_SECRET, 48)
    lo = _r64(buf, 0) ^ bitflip1
    hi = _r64(buf, length - 8) ^ bitflip2
    acc = length + _swap64(lo) + hi + _mul128_fold64(lo, hi)
    return _xxh3_avalanche(acc)


def _len_17_to_128(buf: bytes) -> int:
    length = len(buf)
    acc = length * _PRIME64_1
    if length > 32:
        if length > 64:
            if length > 96:
                acc += _mix16(buf, 48, 96)
                acc += _mix16(buf, length - 64, 112)
            acc += _mix16(buf, 32, 64)
            acc += _mix16(buf, length - 48, 80)
        acc += _mix16(buf, 16, 32)
        acc += _mix16(buf, length - 32, 48)
    acc += _mix16(buf, 0, 0)
    acc += _mix16(buf, length - 16, 16)
    return _xxh3_avalanche(acc)


def _len_129_to_240(buf: bytes) -> int:
    length = len(buf)
    acc = length * _PRIME64_1
    rounds = length // 16
    for i in range(8):
        acc += _mix16(buf, 16 * i, 16 * i)
    acc = _xxh3_avalanche(acc)
    for i in range(8, rounds):
        acc += _mix16(buf, 16 * i, 16 * (i - 8) + _MIDSIZE_START_OFFSET)
    acc += _mix16(buf, length - 16, _SECRET_SIZE_MIN - _MIDSIZE_LAST_OFFSET)
    return _xxh3_avalanche(acc)


def _accumulate_512(acc: List[int], buf: bytes, in_offset: int, secret_offset: int) -> None:
    for i in range(_ACC_NB):
        data_val = _r64(buf, in_offset + 8 * i)
        data_key = data_val ^ _r64(_SECRET, secret_offset + 8 * i)
        acc[i ^ 1] = (acc[i ^ 1] + data_val) & _M64
        acc[i] = (acc[i] + (data_key & _M32) * (data_key >> 32)) & _M64


def _scramble(acc: List[int], secret_offset: int) -> None:
    for i in range(_ACC_NB):
        value = acc[i]
        value ^= value >> 47
        value ^= _r64(_SECRET, secret_offset + 8 * i)
        acc[i] = (value * _PRIME32_1) & _M64


def _accumulate(acc: List[int], buf: bytes, in_offset: int, stripes: int) -> None:
    for stripe in range(stripes):
        _accumulate_512(acc, buf, in_offset + stripe * _STRIPE_LEN, stripe * _SECRET_CONSUME_RATE)


def _long(buf: bytes) -> int:
    length = len(buf)
    acc = [
        _PRIME32_3, _PRIME64_1, _PRIME64_2, _PRIME64_3,
        _PRIME64_4, _PRIME32_2, _PRIME64_5, _PRIME32_1,
    ]
    stripes_per_block = (_SECRET_SIZE - _STRIPE_LEN) // _SECRET_CONSUME_RATE
    block_len = _STRIPE_LEN * stripes_per_block
    blocks = (length - 1) // block_len

    for block in range(blocks):
        _accumulate(acc, buf, block * block_len, stripes_per_block)
        _scramble(acc, _SECRET_SIZE - _STRIPE_LEN)

    last_stripes = ((length - 1) - block_len * blocks) // _STRIPE_LEN
    _accumulate(acc, buf, blocks * block_len, last_stripes)
    _accumulate_512(acc, buf, length - _STRIPE_LEN, _SECRET_SIZE - _STRIPE_LEN - _SECRET_LASTACC_START)

    result = length * _PRIME64_1
    for i in range(4):
        offset = _SECRET_MERGEACCS_START + 16 * i
        result += _mul128_fold64(
            acc[2 * i] ^ _r64(_SECRET, offset), acc[2 * i + 1] ^ _r64(_SECRET, offset + 8)
        )
    return _xxh3_avalanche(result)


def xxh3_64(data: BytesLike) -> int:
    """XXH3 64-bit hash of ``data`` with the default secret and seed 0."""
    buf = _as_bytes(data)
    length = len(buf)
    if length == 0:
        return _xxh64_avalanche(_r64(_SECRET, 56) ^ _r64(_SECRET, 64))
    if length <= 3:
        return _len_1_to_3(buf)
    if length <= 8:
        return _len_4_to_8(buf)
    if length <= 16:
        return _len_9_to_16(buf)
    if length <= 128:
        return _len_17_to_128(buf)
    if length <= 240:
        return _len_129_to_240(buf)
    return _long(buf)