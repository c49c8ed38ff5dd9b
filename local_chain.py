# local_chain.py
"""
In-process execution environment for the token.

Every call goes through ``LocalChain.transact`` which runs it against a
snapshot of the contract state: a revert restores the snapshot and yields a
failed receipt, so no partial balance, ledger or event change is ever
observable. Calls are applied one at a time in submission order: a lock on
the chain serializes every state change, whichever thread submits it.
"""
import threading
import time
from dataclasses import dataclass, field
from typing import Any

import rlp
from eth_abi import encode
from eth_account import Account
from web3 import Web3

from chain_utils import DEV_PRIVATE_KEYS, get_chain_id, get_devnet_accounts, get_token_config
from eip3009_errors import ContractRevert
from eip3009_token import EIP3009Token
from erc20_utils import LogEntry


@dataclass
class TxReceipt:
    transaction_hash: str
    block_number: int
    sender: str
    status: int
    logs: list[LogEntry] = field(default_factory=list)
    revert_reason: str | None = None
    return_value: Any = None


def contract_address(deployer: str, nonce: int) -> str:
    """CREATE address: keccak(rlp([sender, nonce]))[12:]"""
    sender = Web3.to_bytes(hexstr=Web3.to_checksum_address(deployer))
    return Web3.to_checksum_address(Web3.keccak(rlp.encode([sender, nonce]))[12:])


class LocalChain:
    def __init__(self, chain_id: int | None = None, timestamp: int | None = None):
        self.chain_id = get_chain_id() if chain_id is None else int(chain_id)
        self.block_timestamp = int(time.time()) if timestamp is None else int(timestamp)
        self.block_number = 0
        self.contracts: dict[str, Any] = {}
        self.receipts: dict[str, TxReceipt] = {}
        self._account_nonces: dict[str, int] = {}
        # 所有改状态的操作都在这把锁里串行执行（FastAPI 的 def 接口跑在线程池上）
        self._lock = threading.Lock()

    # ---- clock ----

    def now(self) -> int:
        return self.block_timestamp

    def sleep(self, seconds: int):
        if seconds < 0:
            raise ValueError("cannot move time backwards")
        with self._lock:
            self.block_timestamp += int(seconds)

    def set_time(self, timestamp: int):
        with self._lock:
            self.block_timestamp = int(timestamp)

    # ---- deployment ----

    def _next_nonce(self, sender: str) -> int:
        nonce = self._account_nonces.get(sender, 0)
        self._account_nonces[sender] = nonce + 1
        return nonce

    def deploy_token(
        self,
        deployer: str,
        name: str,
        version: str,
        symbol: str,
        decimals: int,
        total_supply: int,
    ) -> EIP3009Token:
        deployer = Web3.to_checksum_address(deployer)
        with self._lock:
            address = contract_address(deployer, self._account_nonces.get(deployer, 0))
            token = EIP3009Token(
                address=address,
                name=name,
                version=version,
                symbol=symbol,
                decimals=decimals,
                total_supply=total_supply,
                deployer=deployer,
                chain_id=self.chain_id,
                clock=self.now,
            )
            self._next_nonce(deployer)
            self.block_number += 1
            self.contracts[address] = token
        return token

    # ---- transactions ----

    def transact(self, sender: str, contract, method: str, *args) -> TxReceipt:
        """
        Run ``contract.method(sender, *args)`` as one atomic transaction.
        Reverts come back as a receipt with status 0; any other exception is
        re-raised after the state has been restored and leaves no trace, not
        even a consumed sender nonce.
        """
        sender = Web3.to_checksum_address(sender)
        with self._lock:
            tx_nonce = self._account_nonces.get(sender, 0)
            block_number = self.block_number + 1
            tx_hash = Web3.to_hex(
                Web3.keccak(encode(["address", "uint256", "uint256"], [sender, tx_nonce, block_number]))
            )

            snapshot = contract._snapshot()
            first_log = snapshot["events"]
            try:
                result = getattr(contract, method)(sender, *args)
            except ContractRevert as exc:
                contract._restore(snapshot)
                receipt = TxReceipt(
                    transaction_hash=tx_hash,
                    block_number=block_number,
                    sender=sender,
                    status=0,
                    revert_reason=exc.reason,
                )
            except Exception:
                contract._restore(snapshot)
                raise
            else:
                receipt = TxReceipt(
                    transaction_hash=tx_hash,
                    block_number=block_number,
                    sender=sender,
                    status=1,
                    logs=list(contract.events[first_log:]),
                    return_value=result,
                )

            self._next_nonce(sender)
            self.block_number = block_number
            self.receipts[tx_hash] = receipt
        return receipt

    def get_transaction_receipt(self, tx_hash: str) -> TxReceipt:
        try:
            return self.receipts[tx_hash]
        except KeyError:
            raise KeyError(f"unknown transaction {tx_hash}") from None


@dataclass
class Devnet:
    chain: LocalChain
    token: EIP3009Token
    user_account: Any
    relayer_account: Any
    deployer_account: Any


def build_devnet(chain: LocalChain | None = None) -> Devnet:
    """
    Deploy the configured token on a fresh LocalChain and hand the whole
    supply to the demo user.
    """
    chain = chain or LocalChain()
    config = get_token_config()
    user_account, relayer_account = get_devnet_accounts()
    deployer_account = Account.from_key(DEV_PRIVATE_KEYS[0])

    token = chain.deploy_token(
        deployer_account.address,
        config["name"],
        config["version"],
        config["symbol"],
        config["decimals"],
        config["total_supply"],
    )
    chain.transact(
        deployer_account.address, token, "transfer", user_account.address, config["total_supply"]
    )
    return Devnet(
        chain=chain,
        token=token,
        user_account=user_account,
        relayer_account=relayer_account,
        deployer_account=deployer_account,
    )
