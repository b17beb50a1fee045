"""
Beacon block header hashing.

Computes the SSZ hash tree root of a phase 0 BeaconBlockHeader, which is
the block root a proposer slashing's signed header refers to.
"""
import hashlib

BYTES_PER_CHUNK = 32
UINT64_MAX = 2 ** 64 - 1


def _hash(left: bytes, right: bytes) -> bytes:
    return hashlib.sha256(left + right).digest()


def _uint64_chunk(value: int, name: str) -> bytes:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")
    if value < 0 or value > UINT64_MAX:
        raise ValueError(f"{name} out of uint64 range: {value}")
    return value.to_bytes(8, 'little').ljust(BYTES_PER_CHUNK, b'\x00')


def _root_chunk(value: bytes, name: str) -> bytes:
    if not isinstance(value, (bytes, bytearray, memoryview)):
        raise TypeError(f"{name} must be bytes, got {type(value).__name__}")
    value = bytes(value)
    if len(value) != BYTES_PER_CHUNK:
        raise ValueError(f"{name} must be {BYTES_PER_CHUNK} bytes, got {len(value)}")
    return value


def merkleize(chunks: list[bytes]) -> bytes:
    """
    Merkle root of 32-byte chunks, padded with zero chunks to a power of two.

    Args:
        chunks: Leaf chunks, each exactly 32 bytes

    Returns:
        32-byte root
    """
    if not chunks:
        return b'\x00' * BYTES_PER_CHUNK

    width = 1
    while width < len(chunks):
        width *= 2
    layer = list(chunks) + [b'\x00' * BYTES_PER_CHUNK] * (width - len(chunks))

    while len(layer) > 1:
        layer = [_hash(layer[i], layer[i + 1]) for i in range(0, len(layer), 2)]
    return layer[0]


def beacon_block_header_root(
    slot: int,
    proposer_index: int,
    parent_root: bytes,
    state_root: bytes,
    body_root: bytes
) -> bytes:
    """
    Hash tree root of a BeaconBlockHeader.

    Args:
        slot: Header slot (uint64)
        proposer_index: Proposer validator index (uint64)
        parent_root: 32-byte parent block root
        state_root: 32-byte state root
        body_root: 32-byte body root

    Returns:
        32-byte block root

    Raises:
        TypeError: If a field has the wrong type
        ValueError: If a field is out of range or the wrong length
    """
    return merkleize([
        _uint64_chunk(slot, 'slot'),
        _uint64_chunk(proposer_index, 'proposer_index'),
        _root_chunk(parent_root, 'parent_root'),
        _root_chunk(state_root, 'state_root'),
        _root_chunk(body_root, 'body_root'),
    ])
