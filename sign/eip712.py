# eip712.py
from eth_abi import encode
from eth_keys import keys
from eth_keys.exceptions import BadSignature, ValidationError
from web3 import Web3

from eip3009_errors import InvalidSignature

EIP712_DOMAIN_TYPE = (
    "EIP712Domain(string name,string version,uint256 chainId,address verifyingContract)"
)
TRANSFER_WITH_AUTHORIZATION_TYPE = (
    "TransferWithAuthorization(address from,address to,uint256 value,"
    "uint256 validAfter,uint256 validBefore,bytes32 nonce)"
)
RECEIVE_WITH_AUTHORIZATION_TYPE = (
    "ReceiveWithAuthorization(address from,address to,uint256 value,"
    "uint256 validAfter,uint256 validBefore,bytes32 nonce)"
)
CANCEL_AUTHORIZATION_TYPE = "CancelAuthorization(address authorizer,bytes32 nonce)"

EIP712_DOMAIN_TYPEHASH = bytes(Web3.keccak(text=EIP712_DOMAIN_TYPE))
TRANSFER_WITH_AUTHORIZATION_TYPEHASH = bytes(Web3.keccak(text=TRANSFER_WITH_AUTHORIZATION_TYPE))
RECEIVE_WITH_AUTHORIZATION_TYPEHASH = bytes(Web3.keccak(text=RECEIVE_WITH_AUTHORIZATION_TYPE))
CANCEL_AUTHORIZATION_TYPEHASH = bytes(Web3.keccak(text=CANCEL_AUTHORIZATION_TYPE))

# secp256k1 group order
SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
SECP256K1_HALF_N = SECP256K1_N // 2

MAX_UINT256 = 2**256 - 1

# abi.encode layout shared by transfer and receive messages
_AUTHORIZATION_FIELDS = ["bytes32", "address", "address", "uint256", "uint256", "uint256", "bytes32"]


def to_bytes32(value: bytes | str) -> bytes:
    """
    Normalize a nonce / r / s style value to exactly 32 bytes.
    Hex strings shorter than 32 bytes are left padded, like a uint256.
    """
    if isinstance(value, str):
        raw = Web3.to_bytes(hexstr=value)
        if len(raw) < 32:
            raw = raw.rjust(32, b"\x00")
    elif isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    else:
        raise ValueError(f"expected bytes32, got {type(value).__name__}")

    if len(raw) != 32:
        raise ValueError(f"expected 32 bytes, got {len(raw)}")
    return raw


def to_uint256(value: int | str) -> int:
    if isinstance(value, bool):
        raise ValueError("expected uint256, got bool")
    number = int(value)
    if number < 0 or number > MAX_UINT256:
        raise ValueError(f"uint256 out of range: {value}")
    return number


def _to_signature_int(value: int | bytes | str) -> int:
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return Web3.to_int(hexstr=value)
    return Web3.to_int(bytes(value))


def domain_separator(name: str, version: str, chain_id: int, verifying_contract: str) -> bytes:
    return bytes(
        Web3.keccak(
            encode(
                ["bytes32", "bytes32", "bytes32", "uint256", "address"],
                [
                    EIP712_DOMAIN_TYPEHASH,
                    Web3.keccak(text=name),
                    Web3.keccak(text=version),
                    int(chain_id),
                    Web3.to_checksum_address(verifying_contract),
                ],
            )
        )
    )


def _authorization_struct_hash(
    type_hash: bytes,
    from_addr: str,
    to_addr: str,
    value: int,
    valid_after: int,
    valid_before: int,
    nonce: bytes | str,
) -> bytes:
    return bytes(
        Web3.keccak(
            encode(
                _AUTHORIZATION_FIELDS,
                [
                    type_hash,
                    Web3.to_checksum_address(from_addr),
                    Web3.to_checksum_address(to_addr),
                    to_uint256(value),
                    to_uint256(valid_after),
                    to_uint256(valid_before),
                    to_bytes32(nonce),
                ],
            )
        )
    )


def transfer_struct_hash(from_addr, to_addr, value, valid_after, valid_before, nonce) -> bytes:
    return _authorization_struct_hash(
        TRANSFER_WITH_AUTHORIZATION_TYPEHASH,
        from_addr, to_addr, value, valid_after, valid_before, nonce,
    )


def receive_struct_hash(from_addr, to_addr, value, valid_after, valid_before, nonce) -> bytes:
    return _authorization_struct_hash(
        RECEIVE_WITH_AUTHORIZATION_TYPEHASH,
        from_addr, to_addr, value, valid_after, valid_before, nonce,
    )


def cancel_struct_hash(authorizer: str, nonce: bytes | str) -> bytes:
    return bytes(
        Web3.keccak(
            encode(
                ["bytes32", "address", "bytes32"],
                [
                    CANCEL_AUTHORIZATION_TYPEHASH,
                    Web3.to_checksum_address(authorizer),
                    to_bytes32(nonce),
                ],
            )
        )
    )


def typed_data_digest(domain_sep: bytes, struct_hash: bytes) -> bytes:
    """keccak256(0x1901 || domainSeparator || hashStruct(message))"""
    return bytes(Web3.keccak(b"\x19\x01" + bytes(domain_sep) + bytes(struct_hash)))


def recover_signer(digest: bytes, v: int, r: int | bytes | str, s: int | bytes | str) -> str:
    """
    Recover the checksum address that signed ``digest``.

    Only canonical signatures are accepted: v must be 27 or 28 and s must be
    in the lower half of the curve order, so a third party cannot produce a
    second valid encoding of the same signature. Any failure raises
    InvalidSignature.
    """
    try:
        v = int(v)
        r_int = _to_signature_int(r)
        s_int = _to_signature_int(s)
    except (TypeError, ValueError) as exc:
        raise InvalidSignature() from exc

    if v not in (27, 28):
        raise InvalidSignature()
    if not 0 < r_int < SECP256K1_N:
        raise InvalidSignature()
    if not 0 < s_int <= SECP256K1_HALF_N:
        raise InvalidSignature()

    try:
        signature = keys.Signature(vrs=(v - 27, r_int, s_int))
        public_key = signature.recover_public_key_from_msg_hash(bytes(digest))
    except (BadSignature, ValidationError) as exc:
        raise InvalidSignature() from exc

    return public_key.to_checksum_address()
