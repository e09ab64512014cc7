"""
Call encoding helpers

Ethereum-compatible function selectors and ABI argument encoding for the
calls a proposal carries.
"""

from typing import Any, List, Sequence, Tuple, Union

from eth_abi import decode, encode
from eth_utils import decode_hex, encode_hex, function_signature_to_4byte_selector, is_hexstr

Payload = Union[bytes, str]


def to_payload_bytes(data: Payload) -> bytes:
    """
    Normalise a signature-less payload to raw bytes.

    Accepts raw bytes or a hex string (with or without ``0x``).
    """
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    if not data or data in ("0x", "0X"):
        return b""
    if not is_hexstr(data):
        raise ValueError(f"Payload is not hex encoded: {data!r}")
    return decode_hex(data)


def compute_function_selector(function_signature: str) -> bytes:
    """
    Compute Ethereum function selector (first 4 bytes of keccak256(sig)).

    Args:
        function_signature: Function signature like "setValue(uint256)"

    Returns:
        4-byte function selector
    """
    return function_signature_to_4byte_selector(function_signature.replace(" ", ""))


def parse_argument_types(function_signature: str) -> List[str]:
    """
    Split the argument list of a signature into ABI type strings.

    "transfer(address,uint256)" -> ['address', 'uint256']
    Tuple types such as "(uint256,address)[]" are kept whole.
    """
    sig = function_signature.replace(" ", "")
    if "(" not in sig or not sig.endswith(")"):
        raise ValueError(f"Malformed function signature: {function_signature!r}")
    body = sig[sig.index("(") + 1:-1]
    if not body:
        return []

    types, depth, current = [], 0, ""
    for ch in body:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        if ch == "," and depth == 0:
            types.append(current)
            current = ""
        else:
            current += ch
    if depth != 0:
        raise ValueError(f"Unbalanced parentheses in {function_signature!r}")
    types.append(current)
    return types


def encode_parameters(types: Sequence[str], values: Sequence[Any]) -> str:
    """ABI-encode *values* as *types* and return a 0x-prefixed hex string."""
    return encode_hex(encode(list(types), list(values)))


def decode_parameters(types: Sequence[str], data: Payload) -> Tuple[Any, ...]:
    return decode(list(types), to_payload_bytes(data))


def build_call_data(signature: str, calldata: Payload) -> bytes:
    """
    Assemble the bytes sent to a target.

    An empty signature means *calldata* already starts with a selector;
    otherwise the selector of *signature* is prepended.
    """
    args = to_payload_bytes(calldata)
    if not signature:
        return args
    return compute_function_selector(signature) + args


def encode_function_call(function_signature: str, *args) -> bytes:
    """Encode function call data (selector + ABI-encoded arguments)."""
    selector = compute_function_selector(function_signature)
    arg_types = parse_argument_types(function_signature)
    if not arg_types:
        return selector
    return selector + encode(arg_types, list(args))


def decode_function_call(data: bytes) -> Tuple[bytes, bytes]:
    """Split call data into (selector, arguments)."""
    if len(data) < 4:
        return b'', b''
    return data[:4], data[4:]
