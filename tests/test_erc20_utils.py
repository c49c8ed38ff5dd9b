from decimal import Decimal

import pytest

from eip3009_errors import (
    AllowanceBelowZero,
    InsufficientAllowance,
    InsufficientBalance,
    ZeroAddress,
)
from erc20_utils import ZERO_ADDRESS, human_to_token_amount

from conftest import INITIAL_BALANCE


def test_deployment_mints_supply_to_deployer(chain, accounts) -> None:
    deployer = accounts["deployer"].address
    token = chain.deploy_token(deployer, "Token", "1", "TOK", 4, 500)

    assert token.totalSupply() == 500
    assert token.balanceOf(deployer) == 500
    mint = token.events[0]
    assert mint.event == "Transfer"
    assert mint.args == {"from": ZERO_ADDRESS, "to": deployer, "value": 500}


def test_transfer_moves_balance(token, alice, bob) -> None:
    assert token.transfer(alice.address, bob.address, 10) is True
    assert token.balanceOf(alice.address) == INITIAL_BALANCE - 10
    assert token.balanceOf(bob.address) == 10
    assert token.events[-1].args == {"from": alice.address, "to": bob.address, "value": 10}


def test_transfer_rejects_overdraft_and_zero_address(token, alice, bob) -> None:
    with pytest.raises(InsufficientBalance):
        token.transfer(bob.address, alice.address, 1)
    with pytest.raises(ZeroAddress):
        token.transfer(alice.address, ZERO_ADDRESS, 1)


def test_transfer_rejects_out_of_range_value(token, alice, bob) -> None:
    with pytest.raises(ValueError):
        token.transfer(alice.address, bob.address, -1)


def test_approve_and_transfer_from(token, alice, bob, charlie) -> None:
    token.approve(alice.address, bob.address, 100)
    assert token.allowance(alice.address, bob.address) == 100

    token.transferFrom(bob.address, alice.address, charlie.address, 60)
    assert token.balanceOf(charlie.address) == 60
    assert token.allowance(alice.address, bob.address) == 40

    with pytest.raises(InsufficientAllowance):
        token.transferFrom(bob.address, alice.address, charlie.address, 41)


def test_increase_and_decrease_allowance(token, alice, bob) -> None:
    token.increaseAllowance(alice.address, bob.address, 5)
    token.increaseAllowance(alice.address, bob.address, 5)
    assert token.allowance(alice.address, bob.address) == 10

    token.decreaseAllowance(alice.address, bob.address, 3)
    assert token.allowance(alice.address, bob.address) == 7

    with pytest.raises(AllowanceBelowZero):
        token.decreaseAllowance(alice.address, bob.address, 8)
    assert token.events[-1].event == "Approval"


@pytest.mark.parametrize(
    "human, decimals, expected",
    [
        ("0.2", 6, 200_000),
        (Decimal("7"), 6, 7_000_000),
        ("700", 4, 7_000_000),
        (0.01, 4, 100),
    ],
)
def test_human_to_token_amount(human, decimals, expected) -> None:
    assert human_to_token_amount(human, decimals) == expected


def test_human_to_token_amount_rejects_extra_precision() -> None:
    with pytest.raises(ValueError):
        human_to_token_amount("0.00001", 4)


def test_reads_do_not_create_entries(token, alice, bob, charlie) -> None:
    before = token._snapshot()

    assert token.balanceOf(charlie.address) == 0
    assert token.allowance(bob.address, charlie.address) == 0
    with pytest.raises(InsufficientBalance):
        token.transfer(charlie.address, bob.address, 1)

    after = token._snapshot()
    assert after["balances"] == before["balances"]
    assert charlie.address not in after["balances"]
    assert after["allowances"] == {}
