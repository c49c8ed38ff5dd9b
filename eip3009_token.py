# eip3009_token.py
"""
ERC20 token with EIP-3009 transfer / receive / cancel authorizations.

An authorization is signed off-chain by the fund owner over an EIP-712
digest bound to this token's domain separator. Anyone may relay a transfer
authorization; a receive authorization may only be relayed by its payee.
Each (authorizer, nonce) pair can be consumed exactly once, either by
executing the authorization or by cancelling it.
"""
import time
from typing import Callable

from web3 import Web3

from eip3009_errors import (
    AuthorizationAlreadyUsed,
    AuthorizationExpired,
    AuthorizationNotYetValid,
    CallerMustBePayee,
    InvalidSignature,
)
from erc20_utils import ERC20Token
from sign import eip712


class AuthorizationLedger:
    """
    (authorizer, nonce) -> used flag. Missing entries are unused, and a
    used entry is never flipped back outside of a transaction rollback.
    """

    def __init__(self):
        self._states: dict[tuple[str, bytes], bool] = {}

    def __len__(self) -> int:
        return len(self._states)

    def is_used(self, authorizer: str, nonce: bytes) -> bool:
        return self._states.get((authorizer, nonce), False)

    def mark_used(self, authorizer: str, nonce: bytes):
        key = (authorizer, nonce)
        if self._states.get(key, False):
            raise AuthorizationAlreadyUsed()
        self._states[key] = True

    def snapshot(self) -> dict:
        return dict(self._states)

    def restore(self, states: dict):
        self._states = dict(states)


class EIP3009Token(ERC20Token):
    TRANSFER_WITH_AUTHORIZATION_TYPEHASH = eip712.TRANSFER_WITH_AUTHORIZATION_TYPEHASH
    RECEIVE_WITH_AUTHORIZATION_TYPEHASH = eip712.RECEIVE_WITH_AUTHORIZATION_TYPEHASH
    CANCEL_AUTHORIZATION_TYPEHASH = eip712.CANCEL_AUTHORIZATION_TYPEHASH

    def __init__(
        self,
        address: str,
        name: str,
        version: str,
        symbol: str,
        decimals: int,
        total_supply: int,
        deployer: str,
        chain_id: int,
        clock: Callable[[], int] | None = None,
    ):
        super().__init__(address, name, symbol, decimals)
        self.version = version
        self.chain_id = int(chain_id)
        self.clock = clock or (lambda: int(time.time()))
        self._domain_separator = eip712.domain_separator(name, version, self.chain_id, self.address)
        self._authorizations = AuthorizationLedger()
        self._mint(deployer, total_supply)

    def DOMAIN_SEPARATOR(self) -> bytes:
        return self._domain_separator

    def authorizationState(self, authorizer: str, nonce: bytes | str) -> bool:
        return self._authorizations.is_used(
            Web3.to_checksum_address(authorizer), eip712.to_bytes32(nonce)
        )

    def transferWithAuthorization(
        self,
        sender: str,
        from_addr: str,
        to: str,
        value: int,
        valid_after: int,
        valid_before: int,
        nonce: bytes | str,
        v: int,
        r: bytes | str,
        s: bytes | str,
    ):
        """Execute a transfer signed by ``from_addr``; ``sender`` is any relayer."""
        struct_hash = eip712.transfer_struct_hash(from_addr, to, value, valid_after, valid_before, nonce)
        self._execute_authorization(
            struct_hash, from_addr, to, value, valid_after, valid_before, nonce, v, r, s
        )

    def receiveWithAuthorization(
        self,
        sender: str,
        from_addr: str,
        to: str,
        value: int,
        valid_after: int,
        valid_before: int,
        nonce: bytes | str,
        v: int,
        r: bytes | str,
        s: bytes | str,
    ):
        """
        Same as transferWithAuthorization, but only the payee may submit it.
        This closes the window where an observer of the pending submission
        front-runs it with the same signature.
        """
        if Web3.to_checksum_address(sender) != Web3.to_checksum_address(to):
            raise CallerMustBePayee()
        struct_hash = eip712.receive_struct_hash(from_addr, to, value, valid_after, valid_before, nonce)
        self._execute_authorization(
            struct_hash, from_addr, to, value, valid_after, valid_before, nonce, v, r, s
        )

    def cancelAuthorization(
        self,
        sender: str,
        authorizer: str,
        nonce: bytes | str,
        v: int,
        r: bytes | str,
        s: bytes | str,
    ):
        authorizer = Web3.to_checksum_address(authorizer)
        nonce = eip712.to_bytes32(nonce)

        digest = eip712.typed_data_digest(
            self._domain_separator, eip712.cancel_struct_hash(authorizer, nonce)
        )
        self._require_signer(digest, v, r, s, authorizer)
        if self._authorizations.is_used(authorizer, nonce):
            raise AuthorizationAlreadyUsed()

        self._authorizations.mark_used(authorizer, nonce)
        self._emit("AuthorizationCanceled", authorizer=authorizer, nonce=nonce)

    # ---- internals ----

    def _require_signer(self, digest: bytes, v, r, s, expected: str):
        if eip712.recover_signer(digest, v, r, s) != expected:
            raise InvalidSignature()

    def _execute_authorization(
        self, struct_hash, from_addr, to, value, valid_after, valid_before, nonce, v, r, s
    ):
        from_addr = Web3.to_checksum_address(from_addr)
        nonce = eip712.to_bytes32(nonce)
        valid_after = eip712.to_uint256(valid_after)
        valid_before = eip712.to_uint256(valid_before)

        digest = eip712.typed_data_digest(self._domain_separator, struct_hash)
        self._require_signer(digest, v, r, s, from_addr)

        now = self.clock()
        if now < valid_after:
            raise AuthorizationNotYetValid()
        if now >= valid_before:
            raise AuthorizationExpired()
        if self._authorizations.is_used(from_addr, nonce):
            raise AuthorizationAlreadyUsed()

        # balance first: a failed debit must leave the nonce unused
        from_addr, to, value = self._move_balance(from_addr, to, value)
        self._authorizations.mark_used(from_addr, nonce)

        self._emit("AuthorizationUsed", authorizer=from_addr, nonce=nonce)
        self._emit("Transfer", **{"from": from_addr, "to": to, "value": value})

    def _snapshot(self) -> dict:
        snapshot = super()._snapshot()
        snapshot["authorizations"] = self._authorizations.snapshot()
        return snapshot

    def _restore(self, snapshot: dict):
        super()._restore(snapshot)
        self._authorizations.restore(snapshot["authorizations"])
