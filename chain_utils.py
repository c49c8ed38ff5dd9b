# chain_utils.py
import os

from dotenv import load_dotenv
from eth_account import Account
from web3 import Web3

load_dotenv("properties.env")

# 本地开发链（hardhat / anvil）公开的测试私钥，只能用于 devnet
DEV_PRIVATE_KEYS = [
    "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80",
    "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d",
    "0x5de4111afa1a4b94908f83103eb1f1706367c2e68ca870fc3fb9a804cdab365a",
    "0x7c852118294e51e653712a81e05800f419141751be58f605c371e15141b007a6",
]


def get_chain_id() -> int:
    return int(os.getenv("CHAIN_ID", "31337"))


def get_token_config() -> dict:
    return {
        "name": os.getenv("TOKEN_NAME", "Token"),
        "version": os.getenv("TOKEN_VERSION", "1"),
        "symbol": os.getenv("TOKEN_SYMBOL", "TOK"),
        "decimals": int(os.getenv("TOKEN_DECIMALS", "4")),
        "total_supply": int(os.getenv("TOKEN_TOTAL_SUPPLY", "10000000")),
    }


def get_web3():
    rpc_url = os.getenv("RPC_URL")
    if not rpc_url:
        raise RuntimeError("RPC_URL not set in properties.env")

    w3 = Web3(Web3.HTTPProvider(rpc_url))
    if not w3.is_connected():
        raise RuntimeError("Web3 not connected, check RPC_URL")
    return w3


def get_relayer_account():
    private_key = os.getenv("RELAYER_PRIVATE_KEY")
    if not private_key:
        raise RuntimeError("RELAYER_PRIVATE_KEY not set in properties.env")
    return Account.from_key(private_key)


def get_token_address():
    addr = os.getenv("TOKEN_ADDRESS")
    if not addr:
        raise RuntimeError("TOKEN_ADDRESS not set in properties.env")
    return Web3.to_checksum_address(addr)


def get_devnet_accounts():
    """
    (user, relayer) for the local devnet. Falls back to the well-known
    development keys so the server can start without any configuration.
    """
    user_key = os.getenv("USER_PRIVATE_KEY") or DEV_PRIVATE_KEYS[1]
    relayer_key = os.getenv("RELAYER_PRIVATE_KEY") or DEV_PRIVATE_KEYS[3]
    return Account.from_key(user_key), Account.from_key(relayer_key)
