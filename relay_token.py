# relay_token.py
"""
Relay signed EIP-3009 authorizations to a token deployed on a real chain.
The relayer account pays gas; the authorizer only signs off-chain.
"""
from web3 import Web3

from chain_utils import get_relayer_account, get_token_address, get_web3
from eip3009_errors import RelayError
from erc20_utils import ERC20_ABI
from sign.eip3009_abi import EIP3009_ABI
from sign.eip3009_meta import Authorization, CancelAuthorization

META_TX_GAS = 200_000


def get_eip3009_contract(w3: Web3, token_addr: str | None = None):
    if token_addr is None:
        token_addr = get_token_address()
    return w3.eth.contract(address=Web3.to_checksum_address(token_addr), abi=EIP3009_ABI + ERC20_ABI)


def _send_meta_tx(w3: Web3, relayer, contract_fn, gas: int = META_TX_GAS) -> str:
    tx = contract_fn.build_transaction(
        {
            "from": relayer.address,
            "nonce": w3.eth.get_transaction_count(relayer.address),
            "chainId": w3.eth.chain_id,
            "gas": gas,
            "maxFeePerGas": w3.to_wei("2", "gwei"),
            "maxPriorityFeePerGas": w3.to_wei("1", "gwei"),
        }
    )

    signed = relayer.sign_transaction(tx)
    tx_hash = Web3.to_hex(w3.eth.send_raw_transaction(signed.raw_transaction))
    print("Sent meta-tx:", tx_hash)
    receipt = w3.eth.wait_for_transaction_receipt(tx_hash)
    print("Status:", receipt.status)
    if receipt.status != 1:
        raise RelayError("Meta-tx failed", tx_hash)
    return tx_hash


def relay_with_authorization(
    auth: Authorization | dict,
    receive: bool = False,
    w3: Web3 | None = None,
    relayer=None,
    token_addr: str | None = None,
) -> str:
    """
    用 relayer 私钥调用 transferWithAuthorization（receive=True 时调用
    receiveWithAuthorization，此时 relayer 必须就是收款方）。
    返回 tx_hash(hex)
    """
    if isinstance(auth, dict):
        auth = Authorization.from_dict(auth)
    w3 = w3 or get_web3()
    relayer = relayer or get_relayer_account()
    token = get_eip3009_contract(w3, token_addr)

    if receive:
        if Web3.to_checksum_address(relayer.address) != Web3.to_checksum_address(auth.to):
            raise RelayError("receiveWithAuthorization must be submitted by the payee")
        contract_fn = token.functions.receiveWithAuthorization(*auth.args())
    else:
        contract_fn = token.functions.transferWithAuthorization(*auth.args())
    return _send_meta_tx(w3, relayer, contract_fn)


def relay_cancel_authorization(
    cancel: CancelAuthorization | dict,
    w3: Web3 | None = None,
    relayer=None,
    token_addr: str | None = None,
) -> str:
    if isinstance(cancel, dict):
        cancel = CancelAuthorization.from_dict(cancel)
    w3 = w3 or get_web3()
    relayer = relayer or get_relayer_account()
    token = get_eip3009_contract(w3, token_addr)
    return _send_meta_tx(w3, relayer, token.functions.cancelAuthorization(*cancel.args()))


def relay_two_auth(auth_main: dict, auth_fee: dict, **kwargs) -> dict:
    """
    播两笔 meta-tx：
    1) auth_main: A -> B（本金）
    2) auth_fee:  A -> Service（手续费）
    """
    tx_main = relay_with_authorization(auth_main, **kwargs)
    tx_fee = relay_with_authorization(auth_fee, **kwargs)
    return {"tx_main": tx_main, "tx_fee": tx_fee}


def fetch_authorization_state(
    authorizer: str, nonce: bytes, w3: Web3 | None = None, token_addr: str | None = None
) -> bool:
    w3 = w3 or get_web3()
    token = get_eip3009_contract(w3, token_addr)
    return token.functions.authorizationState(Web3.to_checksum_address(authorizer), nonce).call()
