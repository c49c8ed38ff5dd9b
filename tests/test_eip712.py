import os

import pytest
from eth_account import Account
from eth_account.messages import encode_typed_data
from web3 import Web3

from eip3009_errors import InvalidSignature
from sign import eip712
from sign.eip3009_meta import build_domain, build_typed_data

ALICE_KEY = "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d"
BOB = Web3.to_checksum_address("0x3c44cdddb6a900fa2b585dd299e03d12fa4293bc")
VERIFYING_CONTRACT = Web3.to_checksum_address("0x5fbdb2315678afecb367f032d93f642f64180aa3")
MAX_UINT256 = 2**256 - 1


def _domain():
    return build_domain("Token", "1", 31337, VERIFYING_CONTRACT)


def test_type_hashes_match_type_strings() -> None:
    assert eip712.TRANSFER_WITH_AUTHORIZATION_TYPEHASH == Web3.keccak(
        text="TransferWithAuthorization(address from,address to,uint256 value,"
        "uint256 validAfter,uint256 validBefore,bytes32 nonce)"
    )
    assert eip712.RECEIVE_WITH_AUTHORIZATION_TYPEHASH == Web3.keccak(
        text="ReceiveWithAuthorization(address from,address to,uint256 value,"
        "uint256 validAfter,uint256 validBefore,bytes32 nonce)"
    )
    assert eip712.CANCEL_AUTHORIZATION_TYPEHASH == Web3.keccak(
        text="CancelAuthorization(address authorizer,bytes32 nonce)"
    )


def test_type_hashes_are_distinct() -> None:
    hashes = {
        eip712.TRANSFER_WITH_AUTHORIZATION_TYPEHASH,
        eip712.RECEIVE_WITH_AUTHORIZATION_TYPEHASH,
        eip712.CANCEL_AUTHORIZATION_TYPEHASH,
    }
    assert len(hashes) == 3


def test_domain_separator_matches_wallet_encoding() -> None:
    alice = Account.from_key(ALICE_KEY)
    message = {
        "from": alice.address,
        "to": BOB,
        "value": 7_000_000,
        "validAfter": 0,
        "validBefore": MAX_UINT256,
        "nonce": bytes(32),
    }
    signable = encode_typed_data(
        full_message=build_typed_data("TransferWithAuthorization", _domain(), message)
    )
    assert signable.header == eip712.domain_separator("Token", "1", 31337, VERIFYING_CONTRACT)


def test_struct_hashes_match_wallet_encoding() -> None:
    alice = Account.from_key(ALICE_KEY)
    nonce = os.urandom(32)
    message = {
        "from": alice.address,
        "to": BOB,
        "value": 123,
        "validAfter": 10,
        "validBefore": 20,
        "nonce": nonce,
    }
    transfer = encode_typed_data(
        full_message=build_typed_data("TransferWithAuthorization", _domain(), message)
    )
    receive = encode_typed_data(
        full_message=build_typed_data("ReceiveWithAuthorization", _domain(), message)
    )
    cancel = encode_typed_data(
        full_message=build_typed_data(
            "CancelAuthorization", _domain(), {"authorizer": alice.address, "nonce": nonce}
        )
    )

    assert transfer.body == eip712.transfer_struct_hash(alice.address, BOB, 123, 10, 20, nonce)
    assert receive.body == eip712.receive_struct_hash(alice.address, BOB, 123, 10, 20, nonce)
    assert cancel.body == eip712.cancel_struct_hash(alice.address, nonce)


def test_domain_separator_binds_chain_and_contract() -> None:
    base = eip712.domain_separator("Token", "1", 31337, VERIFYING_CONTRACT)
    assert base != eip712.domain_separator("Token", "1", 1, VERIFYING_CONTRACT)
    assert base != eip712.domain_separator("Token", "2", 31337, VERIFYING_CONTRACT)
    assert base != eip712.domain_separator("Token", "1", 31337, BOB)


def test_recover_signer_returns_signing_address() -> None:
    alice = Account.from_key(ALICE_KEY)
    digest = Web3.keccak(text="fixed digest vector")
    signed = Account.unsafe_sign_hash(digest, ALICE_KEY)

    assert eip712.recover_signer(digest, signed.v, signed.r, signed.s) == alice.address
    # bytes32 and hex forms of r / s are accepted too
    r = signed.r.to_bytes(32, "big")
    s = signed.s.to_bytes(32, "big")
    assert eip712.recover_signer(digest, signed.v, r, s) == alice.address
    assert eip712.recover_signer(digest, signed.v, Web3.to_hex(r), Web3.to_hex(s)) == alice.address


def test_recover_signer_different_digest_gives_different_address() -> None:
    alice = Account.from_key(ALICE_KEY)
    signed = Account.unsafe_sign_hash(Web3.keccak(text="one"), ALICE_KEY)
    recovered = eip712.recover_signer(Web3.keccak(text="two"), signed.v, signed.r, signed.s)
    assert recovered != alice.address


def test_recover_signer_rejects_high_s() -> None:
    digest = Web3.keccak(text="malleable")
    signed = Account.unsafe_sign_hash(digest, ALICE_KEY)
    flipped_v = 55 - signed.v  # 27 <-> 28
    high_s = eip712.SECP256K1_N - signed.s

    with pytest.raises(InvalidSignature):
        eip712.recover_signer(digest, flipped_v, signed.r, high_s)


@pytest.mark.parametrize("v", [0, 1, 26, 29, 37])
def test_recover_signer_rejects_non_canonical_v(v) -> None:
    digest = Web3.keccak(text="bad v")
    signed = Account.unsafe_sign_hash(digest, ALICE_KEY)
    with pytest.raises(InvalidSignature):
        eip712.recover_signer(digest, v, signed.r, signed.s)


def test_recover_signer_rejects_zero_and_out_of_range_components() -> None:
    digest = Web3.keccak(text="zero")
    with pytest.raises(InvalidSignature):
        eip712.recover_signer(digest, 27, 0, 1)
    with pytest.raises(InvalidSignature):
        eip712.recover_signer(digest, 27, 1, 0)
    with pytest.raises(InvalidSignature):
        eip712.recover_signer(digest, 27, eip712.SECP256K1_N, 1)


def test_to_bytes32_normalization() -> None:
    assert eip712.to_bytes32("0x01") == bytes(31) + b"\x01"
    assert eip712.to_bytes32(b"\xff" * 32) == b"\xff" * 32
    with pytest.raises(ValueError):
        eip712.to_bytes32(b"\x01" * 31)
    with pytest.raises(ValueError):
        eip712.to_bytes32("0x" + "11" * 33)


def test_to_uint256_bounds() -> None:
    assert eip712.to_uint256("42") == 42
    assert eip712.to_uint256(MAX_UINT256) == MAX_UINT256
    with pytest.raises(ValueError):
        eip712.to_uint256(-1)
    with pytest.raises(ValueError):
        eip712.to_uint256(MAX_UINT256 + 1)
