"""
Deterministic (CREATE2) address derivation.

Everything here is pure: no network access, no side effects. Addresses are
returned EIP-55 checksummed.
"""

from typing import Any, Sequence, Tuple, Union

import rlp
from eth_utils import decode_hex, is_address, is_hex, keccak, to_canonical_address, to_checksum_address

from .constants import (
    MINIMAL_PROXY_IMPLEMENTATION_OFFSET,
    MINIMAL_PROXY_INIT_CODE_LENGTH,
    MINIMAL_PROXY_INIT_CODE_PREFIX,
    MINIMAL_PROXY_INIT_CODE_SUFFIX,
    POOL_SALT_TYPES,
    UINT24_MAX,
)
from .encoding import abi_encode
from .exceptions import InvalidInputKindError

BytesLike = Union[bytes, bytearray, str]


def canonical_address(value: BytesLike, what: str = "address") -> bytes:
    """
    Convert an address to its 20-byte form.

    Args:
        value: Hex string (any case, or valid checksum) or 20 raw bytes
        what: Label used in error messages

    Returns:
        20-byte address

    Raises:
        InvalidInputKindError: If value is not an address
    """
    if isinstance(value, bytearray):
        value = bytes(value)
    if not isinstance(value, (bytes, str)) or not is_address(value):
        raise InvalidInputKindError(f"Invalid {what}: {value!r}")
    return to_canonical_address(value)


def _fixed_bytes(value: BytesLike, size: int, what: str) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    elif isinstance(value, str) and is_hex(value):
        raw = decode_hex(value)
    else:
        raise InvalidInputKindError(f"Invalid {what}: {value!r}")
    if len(raw) != size:
        raise InvalidInputKindError(f"{what} must be {size} bytes, got {len(raw)}")
    return raw


def compute_create2_address(deployer: BytesLike, salt: BytesLike, init_code_hash: BytesLike) -> str:
    """
    Compute the address a CREATE2 deployment will occupy.

    address = keccak256(0xff ++ deployer ++ salt ++ init_code_hash)[12:]

    Args:
        deployer: Address of the contract executing CREATE2
        salt: 32-byte salt
        init_code_hash: keccak256 of the init code (32 bytes)

    Returns:
        Checksummed address

    Raises:
        InvalidInputKindError: If any input has the wrong shape
    """
    preimage = (
        b"\xff"
        + canonical_address(deployer, "deployer address")
        + _fixed_bytes(salt, 32, "salt")
        + _fixed_bytes(init_code_hash, 32, "init code hash")
    )
    return to_checksum_address(keccak(preimage)[12:])


def compute_create_address(sender: BytesLike, nonce: int) -> str:
    """
    Compute the address a plain CREATE from an account at a nonce occupies.

    address = keccak256(rlp([sender, nonce]))[12:]
    """
    if isinstance(nonce, bool) or not isinstance(nonce, int) or nonce < 0:
        raise InvalidInputKindError(f"Nonce must be a non-negative integer, got {nonce!r}")
    encoded = rlp.encode([canonical_address(sender, "sender address"), nonce])
    return to_checksum_address(keccak(encoded)[12:])


def build_minimal_proxy_init_code(implementation: BytesLike) -> bytes:
    """
    Assemble EIP-1167 minimal proxy init code forwarding to an implementation.

    Args:
        implementation: Address the proxy delegates to

    Returns:
        Init code with the implementation written at its fixed offset
    """
    template = bytearray(MINIMAL_PROXY_INIT_CODE_LENGTH)
    template[:MINIMAL_PROXY_IMPLEMENTATION_OFFSET] = MINIMAL_PROXY_INIT_CODE_PREFIX
    template[MINIMAL_PROXY_IMPLEMENTATION_OFFSET : MINIMAL_PROXY_IMPLEMENTATION_OFFSET + 20] = (
        canonical_address(implementation, "implementation address")
    )
    template[MINIMAL_PROXY_IMPLEMENTATION_OFFSET + 20 :] = MINIMAL_PROXY_INIT_CODE_SUFFIX
    return bytes(template)


def minimal_proxy_init_code_hash(implementation: BytesLike) -> bytes:
    """keccak256 of the minimal proxy init code for an implementation."""
    return keccak(build_minimal_proxy_init_code(implementation))


def resolve_init_code_hash(implementation_or_code_hash: BytesLike) -> bytes:
    """
    Turn an implementation reference into an init code hash.

    A 20-byte value is an implementation address (minimal proxy scheme);
    a 32-byte value is already the init code hash (full bytecode scheme).

    Raises:
        InvalidInputKindError: If the reference is neither 20 nor 32 bytes
    """
    value = implementation_or_code_hash
    if isinstance(value, str) and is_hex(value):
        raw = decode_hex(value)
    elif isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    else:
        raise InvalidInputKindError(f"Invalid implementation reference: {value!r}")

    if len(raw) == 20:
        return minimal_proxy_init_code_hash(raw)
    if len(raw) == 32:
        return raw
    raise InvalidInputKindError(
        "Implementation reference must be a 20-byte address or a 32-byte "
        f"init code hash, got {len(raw)} bytes"
    )


def compute_salt(types: Sequence[str], values: Sequence[Any]) -> bytes:
    """keccak256 of the ABI-encoded values; identical arguments give identical salts."""
    return keccak(abi_encode(types, values))


def text_salt(label: str) -> bytes:
    """Salt for a text label, keccak256 of its UTF-8 bytes."""
    return keccak(text=label)


def normalize_salt(salt: BytesLike) -> bytes:
    """Accept a 32-byte salt (raw or hex) or a text label."""
    if isinstance(salt, (bytes, bytearray)):
        return _fixed_bytes(salt, 32, "salt")
    if isinstance(salt, str) and is_hex(salt) and salt.startswith(("0x", "0X")):
        return _fixed_bytes(salt, 32, "salt")
    if isinstance(salt, str) and salt:
        return text_salt(salt)
    raise InvalidInputKindError(f"Invalid salt: {salt!r}")


def derive_address(
    deployer: BytesLike,
    implementation_or_code_hash: BytesLike,
    types: Sequence[str],
    values: Sequence[Any],
) -> str:
    """
    Derive the address for a deployment salted with its encoded arguments.

    Args:
        deployer: Factory/deployer address
        implementation_or_code_hash: Implementation address or init code hash
        types: ABI types of the salt arguments
        values: Salt argument values

    Returns:
        Checksummed address
    """
    init_code_hash = resolve_init_code_hash(implementation_or_code_hash)
    return compute_create2_address(deployer, compute_salt(types, values), init_code_hash)


def sort_tokens(token_a: BytesLike, token_b: BytesLike) -> Tuple[str, str]:
    """
    Order a token pair the way the factory keys pools: smaller address first.

    Raises:
        InvalidInputKindError: If either is not an address or both are the same
    """
    a = canonical_address(token_a, "token address")
    b = canonical_address(token_b, "token address")
    if a == b:
        raise InvalidInputKindError(f"Identical token addresses: {to_checksum_address(a)}")
    if a > b:
        a, b = b, a
    return to_checksum_address(a), to_checksum_address(b)


def compute_pool_address(
    factory: BytesLike,
    implementation_or_code_hash: BytesLike,
    tokens: Sequence[BytesLike],
    fee: int,
) -> str:
    """
    Compute the address of a pool the factory creates for a token pair and fee.

    The pair is canonicalized first, so both call orders give the same address.

    Args:
        factory: Pool factory address
        implementation_or_code_hash: Pool implementation address (pools are
            minimal proxies) or the full pool init code hash
        tokens: The two pool tokens, in any order
        fee: Fee tier (uint24)

    Returns:
        Checksummed pool address

    Raises:
        InvalidInputKindError: On malformed addresses, identical tokens or
            an out-of-range fee
    """
    if isinstance(tokens, (str, bytes)) or len(tokens) != 2:
        raise InvalidInputKindError(f"Expected a pair of tokens, got {tokens!r}")
    if isinstance(fee, bool) or not isinstance(fee, int) or not 0 <= fee <= UINT24_MAX:
        raise InvalidInputKindError(f"Fee must be a uint24, got {fee!r}")

    token0, token1 = sort_tokens(tokens[0], tokens[1])
    return derive_address(
        factory, implementation_or_code_hash, POOL_SALT_TYPES, [token0, token1, fee]
    )
