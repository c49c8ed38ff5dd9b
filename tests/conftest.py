import os

import pytest
from eth_account import Account

from chain_utils import DEV_PRIVATE_KEYS
from local_chain import LocalChain

INITIAL_BALANCE = 10_000_000
START_TIME = 1_700_000_000
CHAIN_ID = 31337


@pytest.fixture
def accounts():
    deployer, alice, bob, charlie = (Account.from_key(key) for key in DEV_PRIVATE_KEYS)
    return {"deployer": deployer, "alice": alice, "bob": bob, "charlie": charlie}


@pytest.fixture
def alice(accounts):
    return accounts["alice"]


@pytest.fixture
def bob(accounts):
    return accounts["bob"]


@pytest.fixture
def charlie(accounts):
    return accounts["charlie"]


@pytest.fixture
def chain():
    return LocalChain(chain_id=CHAIN_ID, timestamp=START_TIME)


@pytest.fixture
def token(chain, accounts):
    deployer = accounts["deployer"].address
    token = chain.deploy_token(deployer, "Token", "1", "TOK", 4, INITIAL_BALANCE)
    receipt = chain.transact(deployer, token, "transfer", accounts["alice"].address, INITIAL_BALANCE)
    assert receipt.status == 1
    return token


@pytest.fixture
def domain_separator(token):
    return token.DOMAIN_SEPARATOR()


@pytest.fixture
def nonce():
    return os.urandom(32)
