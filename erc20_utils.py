# erc20_utils.py
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal

from web3 import Web3

from eip3009_errors import (
    AllowanceBelowZero,
    InsufficientAllowance,
    InsufficientBalance,
    ZeroAddress,
)
from sign.eip712 import to_uint256

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# 最小 ERC20 ABI，只要 transfer / decimals / balanceOf
ERC20_ABI = [
    {
        "constant": False,
        "inputs": [
            {"name": "_to", "type": "address"},
            {"name": "_value", "type": "uint256"},
        ],
        "name": "transfer",
        "outputs": [{"name": "", "type": "bool"}],
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [{"name": "_owner", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "balance", "type": "uint256"}],
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [],
        "name": "decimals",
        "outputs": [{"name": "", "type": "uint8"}],
        "type": "function",
    },
    # 事件 Transfer
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "from", "type": "address"},
            {"indexed": True, "name": "to", "type": "address"},
            {"indexed": False, "name": "value", "type": "uint256"},
        ],
        "name": "Transfer",
        "type": "event",
    },
]


@dataclass
class LogEntry:
    """One emitted event, shaped like a decoded web3 log."""
    address: str
    event: str
    args: dict = field(default_factory=dict)


def human_to_token_amount(amount_human: str | float | Decimal, decimals: int) -> int:
    """
    把“人类读得懂的数量”（如 "0.2" USDC）转成最小单位的整数（如 200000）
    """
    # 用 Decimal 避免浮点误差
    amt = Decimal(str(amount_human))
    scaled = amt * (Decimal(10) ** decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"{amount_human} has more than {decimals} decimals")
    return int(scaled)


class ERC20Token:
    """
    In-memory ERC20 ledger.

    Every state-changing method takes the calling address (``msg.sender``)
    as its first argument and either applies fully or raises a
    ContractRevert before touching any state.
    """

    def __init__(self, address: str, name: str, symbol: str, decimals: int):
        self.address = Web3.to_checksum_address(address)
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self.events: list[LogEntry] = []
        self._balances = defaultdict(int)
        self._allowances = defaultdict(int)
        self._total_supply = 0

    # ---- views ----

    def totalSupply(self) -> int:
        return self._total_supply

    def balanceOf(self, account: str) -> int:
        return self._balances.get(Web3.to_checksum_address(account), 0)

    def allowance(self, owner: str, spender: str) -> int:
        key = (Web3.to_checksum_address(owner), Web3.to_checksum_address(spender))
        return self._allowances.get(key, 0)

    # ---- mutators ----

    def transfer(self, sender: str, to: str, value: int) -> bool:
        self._transfer(sender, to, value)
        return True

    def approve(self, sender: str, spender: str, value: int) -> bool:
        self._approve(sender, spender, value)
        return True

    def transferFrom(self, sender: str, from_addr: str, to: str, value: int) -> bool:
        value = to_uint256(value)
        allowed = self.allowance(from_addr, sender)
        if value > allowed:
            raise InsufficientAllowance()
        self._transfer(from_addr, to, value)
        self._approve(from_addr, sender, allowed - value)
        return True

    def increaseAllowance(self, sender: str, spender: str, added_value: int) -> bool:
        self._approve(sender, spender, self.allowance(sender, spender) + to_uint256(added_value))
        return True

    def decreaseAllowance(self, sender: str, spender: str, subtracted_value: int) -> bool:
        current = self.allowance(sender, spender)
        subtracted_value = to_uint256(subtracted_value)
        if subtracted_value > current:
            raise AllowanceBelowZero()
        self._approve(sender, spender, current - subtracted_value)
        return True

    # ---- internals ----

    def _emit(self, event: str, **args):
        self.events.append(LogEntry(address=self.address, event=event, args=args))

    def _move_balance(self, from_addr: str, to: str, value: int) -> tuple[str, str, int]:
        """Debit and credit without emitting, returns the normalized arguments."""
        from_addr = Web3.to_checksum_address(from_addr)
        to = Web3.to_checksum_address(to)
        value = to_uint256(value)

        if from_addr == ZERO_ADDRESS:
            raise ZeroAddress("ERC20: transfer from the zero address")
        if to == ZERO_ADDRESS:
            raise ZeroAddress()
        if self._balances.get(from_addr, 0) < value:
            raise InsufficientBalance()

        self._balances[from_addr] -= value
        self._balances[to] += value
        return from_addr, to, value

    def _transfer(self, from_addr: str, to: str, value: int):
        from_addr, to, value = self._move_balance(from_addr, to, value)
        self._emit("Transfer", **{"from": from_addr, "to": to, "value": value})

    def _approve(self, owner: str, spender: str, value: int):
        owner = Web3.to_checksum_address(owner)
        spender = Web3.to_checksum_address(spender)
        value = to_uint256(value)
        if owner == ZERO_ADDRESS:
            raise ZeroAddress("ERC20: approve from the zero address")
        if spender == ZERO_ADDRESS:
            raise ZeroAddress("ERC20: approve to the zero address")
        self._allowances[(owner, spender)] = value
        self._emit("Approval", owner=owner, spender=spender, value=value)

    def _mint(self, to: str, value: int):
        to = Web3.to_checksum_address(to)
        value = to_uint256(value)
        if to == ZERO_ADDRESS:
            raise ZeroAddress("ERC20: mint to the zero address")
        self._total_supply = to_uint256(self._total_supply + value)
        self._balances[to] += value
        self._emit("Transfer", **{"from": ZERO_ADDRESS, "to": to, "value": value})

    def _snapshot(self) -> dict:
        return {
            "balances": dict(self._balances),
            "allowances": dict(self._allowances),
            "total_supply": self._total_supply,
            "events": len(self.events),
        }

    def _restore(self, snapshot: dict):
        self._balances = defaultdict(int, snapshot["balances"])
        self._allowances = defaultdict(int, snapshot["allowances"])
        self._total_supply = snapshot["total_supply"]
        del self.events[snapshot["events"]:]
