# eip3009_meta.py
import os
import time
from dataclasses import dataclass

from eth_account.messages import encode_typed_data
from web3 import Web3

from sign import eip712

EIP712_DOMAIN_FIELDS = [
    {"name": "name",              "type": "string"},
    {"name": "version",           "type": "string"},
    {"name": "chainId",           "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]

AUTHORIZATION_FIELDS = [
    {"name": "from",        "type": "address"},
    {"name": "to",          "type": "address"},
    {"name": "value",       "type": "uint256"},
    {"name": "validAfter",  "type": "uint256"},
    {"name": "validBefore", "type": "uint256"},
    {"name": "nonce",       "type": "bytes32"},
]

CANCEL_AUTHORIZATION_FIELDS = [
    {"name": "authorizer", "type": "address"},
    {"name": "nonce",      "type": "bytes32"},
]

MESSAGE_TYPES = {
    "TransferWithAuthorization": AUTHORIZATION_FIELDS,
    "ReceiveWithAuthorization": AUTHORIZATION_FIELDS,
    "CancelAuthorization": CANCEL_AUTHORIZATION_FIELDS,
}


def random_nonce_bytes32() -> bytes:
    return os.urandom(32)


@dataclass
class Authorization:
    """A signed transfer / receive authorization as a relayer receives it."""
    from_addr: str
    to: str
    value: int
    valid_after: int
    valid_before: int
    nonce: bytes
    v: int = 0
    r: bytes = b""
    s: bytes = b""

    def args(self) -> tuple:
        return (
            self.from_addr,
            self.to,
            self.value,
            self.valid_after,
            self.valid_before,
            self.nonce,
            self.v,
            self.r,
            self.s,
        )

    def to_dict(self) -> dict:
        # 前端 / 钱包之间传递的 payload 结构
        return {
            "from": Web3.to_checksum_address(self.from_addr),
            "to": Web3.to_checksum_address(self.to),
            "value": str(self.value),
            "validAfter": str(self.valid_after),
            "validBefore": str(self.valid_before),
            "nonce": Web3.to_hex(self.nonce),
            "v": self.v,
            "r": Web3.to_hex(self.r),
            "s": Web3.to_hex(self.s),
        }

    @classmethod
    def from_dict(cls, auth: dict) -> "Authorization":
        """auth: 必须包含 from/to/value/validAfter/validBefore/nonce/v/r/s 字段"""
        return cls(
            from_addr=Web3.to_checksum_address(auth["from"]),
            to=Web3.to_checksum_address(auth["to"]),
            value=int(auth["value"]),
            valid_after=int(auth["validAfter"]),
            valid_before=int(auth["validBefore"]),
            nonce=eip712.to_bytes32(auth["nonce"]),
            v=int(auth["v"]),
            r=eip712.to_bytes32(auth["r"]),
            s=eip712.to_bytes32(auth["s"]),
        )


@dataclass
class CancelAuthorization:
    authorizer: str
    nonce: bytes
    v: int = 0
    r: bytes = b""
    s: bytes = b""

    def args(self) -> tuple:
        return (self.authorizer, self.nonce, self.v, self.r, self.s)

    def to_dict(self) -> dict:
        return {
            "authorizer": Web3.to_checksum_address(self.authorizer),
            "nonce": Web3.to_hex(self.nonce),
            "v": self.v,
            "r": Web3.to_hex(self.r),
            "s": Web3.to_hex(self.s),
        }

    @classmethod
    def from_dict(cls, cancel: dict) -> "CancelAuthorization":
        return cls(
            authorizer=Web3.to_checksum_address(cancel["authorizer"]),
            nonce=eip712.to_bytes32(cancel["nonce"]),
            v=int(cancel["v"]),
            r=eip712.to_bytes32(cancel["r"]),
            s=eip712.to_bytes32(cancel["s"]),
        )


def _sign_digest(account, digest: bytes) -> tuple[int, bytes, bytes]:
    signed = account.unsafe_sign_hash(digest)
    return signed.v, signed.r.to_bytes(32, "big"), signed.s.to_bytes(32, "big")


def sign_transfer_authorization(
    account,
    domain_separator: bytes,
    to_addr: str,
    value: int,
    valid_after: int,
    valid_before: int,
    nonce: bytes,
) -> Authorization:
    """Sign a TransferWithAuthorization digest with ``account`` as the payer."""
    struct_hash = eip712.transfer_struct_hash(
        account.address, to_addr, value, valid_after, valid_before, nonce
    )
    v, r, s = _sign_digest(account, eip712.typed_data_digest(domain_separator, struct_hash))
    return Authorization(account.address, to_addr, value, valid_after, valid_before, nonce, v, r, s)


def sign_receive_authorization(
    account,
    domain_separator: bytes,
    to_addr: str,
    value: int,
    valid_after: int,
    valid_before: int,
    nonce: bytes,
) -> Authorization:
    struct_hash = eip712.receive_struct_hash(
        account.address, to_addr, value, valid_after, valid_before, nonce
    )
    v, r, s = _sign_digest(account, eip712.typed_data_digest(domain_separator, struct_hash))
    return Authorization(account.address, to_addr, value, valid_after, valid_before, nonce, v, r, s)


def sign_cancel_authorization(account, domain_separator: bytes, nonce: bytes) -> CancelAuthorization:
    struct_hash = eip712.cancel_struct_hash(account.address, nonce)
    v, r, s = _sign_digest(account, eip712.typed_data_digest(domain_separator, struct_hash))
    return CancelAuthorization(account.address, nonce, v, r, s)


def build_domain(name: str, version: str, chain_id: int, verifying_contract: str) -> dict:
    return {
        "name": name,
        "version": version,
        "chainId": int(chain_id),
        "verifyingContract": Web3.to_checksum_address(verifying_contract),
    }


def build_typed_data(primary_type: str, domain: dict, message: dict) -> dict:
    """EIP-712 full_message，钱包 (eth_signTypedData_v4) 直接可用"""
    return {
        "types": {
            "EIP712Domain": EIP712_DOMAIN_FIELDS,
            primary_type: MESSAGE_TYPES[primary_type],
        },
        "primaryType": primary_type,
        "domain": domain,
        "message": message,
    }


def sign_typed_data(account, full_message: dict) -> tuple[int, bytes, bytes]:
    signable = encode_typed_data(full_message=full_message)
    signed = account.sign_message(signable)
    return signed.v, signed.r.to_bytes(32, "big"), signed.s.to_bytes(32, "big")


def build_transfer_authorization(
    account,
    domain: dict,
    to_addr: str,
    value_atomic: int,
    valid_for_seconds: int = 3600,
    now: int | None = None,
    primary_type: str = "TransferWithAuthorization",
) -> dict:
    """
    构造一份 TransferWithAuthorization (或 ReceiveWithAuthorization) 的 EIP-712 授权，
    并用 account 私钥签名，走和钱包完全一样的 encode_typed_data 路径。
    返回 relayer 需要的 payload 结构。
    """
    now = int(time.time()) if now is None else now
    valid_after = 0
    valid_before = now + valid_for_seconds
    nonce = random_nonce_bytes32()

    message = {
        "from": Web3.to_checksum_address(account.address),
        "to": Web3.to_checksum_address(to_addr),
        "value": int(value_atomic),
        "validAfter": int(valid_after),
        "validBefore": int(valid_before),
        "nonce": nonce,
    }
    v, r, s = sign_typed_data(account, build_typed_data(primary_type, domain, message))

    auth = Authorization(
        from_addr=message["from"],
        to=message["to"],
        value=message["value"],
        valid_after=valid_after,
        valid_before=valid_before,
        nonce=nonce,
        v=v,
        r=r,
        s=s,
    )
    return auth.to_dict()
