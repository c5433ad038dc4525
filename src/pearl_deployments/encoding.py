"""Typed value encoding helpers for pearl-deployments library."""

from typing import Any, Dict, List, Sequence

from eth_abi import encode
from eth_abi.exceptions import ABITypeError, EncodingError, ParseError, PredicateMappingError
from eth_abi.grammar import TupleType, parse
from eth_utils import decode_hex

from .exceptions import InvalidInputKindError


def _coerce_value(abi_type: Any, value: Any) -> Any:
    # Plan files carry bytes and bytesN values as 0x-prefixed hex strings
    if abi_type.is_array:
        if isinstance(value, (list, tuple)):
            return [_coerce_value(abi_type.item_type, item) for item in value]
        return value
    if isinstance(abi_type, TupleType):
        if isinstance(value, (list, tuple)) and len(value) == len(abi_type.components):
            return tuple(
                _coerce_value(component, item)
                for component, item in zip(abi_type.components, value)
            )
        return value
    if abi_type.base == "bytes" and isinstance(value, str) and value.startswith(("0x", "0X")):
        return decode_hex(value)
    return value


def abi_encode(types: Sequence[str], values: Sequence[Any]) -> bytes:
    """
    ABI-encode values against their declared types.

    Args:
        types: ABI type strings (e.g., ["address", "uint24"])
        values: Values in the same order as types; hex strings are accepted
            for bytes and bytesN types

    Returns:
        Encoded bytes

    Raises:
        InvalidInputKindError: If the values don't match the types
    """
    types = list(types)
    values = list(values)
    if len(types) != len(values):
        raise InvalidInputKindError(
            f"Expected {len(types)} values for types {types}, got {len(values)}"
        )
    try:
        values = [_coerce_value(parse(abi_type), value) for abi_type, value in zip(types, values)]
        return encode(types, values)
    except (
        EncodingError,
        ParseError,
        ABITypeError,
        PredicateMappingError,
        TypeError,
        ValueError,
    ) as e:
        raise InvalidInputKindError(f"Cannot encode {values!r} as {types}: {e}") from e


def _abi_type(param: Dict[str, Any]) -> str:
    abi_type = param["type"]
    if abi_type.startswith("tuple"):
        inner = ",".join(_abi_type(component) for component in param.get("components", []))
        return f"({inner}){abi_type[len('tuple'):]}"
    return abi_type


def constructor_input_types(abi: List[Dict[str, Any]]) -> List[str]:
    """Return the ABI type strings of a contract's constructor inputs."""
    for item in abi:
        if item.get("type") == "constructor":
            return [_abi_type(param) for param in item.get("inputs", [])]
    return []


def encode_constructor_args(abi: List[Dict[str, Any]], args: Sequence[Any]) -> bytes:
    """
    Encode constructor arguments using the constructor signature from an ABI.

    Args:
        abi: Contract ABI
        args: Constructor arguments, already resolved to concrete values

    Returns:
        Encoded arguments (empty bytes for a constructor without inputs)

    Raises:
        InvalidInputKindError: If args don't match the constructor inputs
    """
    types = constructor_input_types(abi)
    if not types and not args:
        return b""
    return abi_encode(types, args)


def ascii_string_to_bytes32(text: str) -> bytes:
    """Right-pad an ASCII string into a bytes32 value."""
    try:
        raw = text.encode("ascii")
    except UnicodeEncodeError as e:
        raise InvalidInputKindError(f"Not an ASCII string: {text!r}") from e
    if len(raw) > 32:
        raise InvalidInputKindError(f"String too long for bytes32: {text!r}")
    return raw.ljust(32, b"\x00")
