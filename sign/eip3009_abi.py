# eip3009_abi.py

_AUTHORIZATION_INPUTS = [
    {"name": "from",        "type": "address"},
    {"name": "to",          "type": "address"},
    {"name": "value",       "type": "uint256"},
    {"name": "validAfter",  "type": "uint256"},
    {"name": "validBefore", "type": "uint256"},
    {"name": "nonce",       "type": "bytes32"},
    {"name": "v",           "type": "uint8"},
    {"name": "r",           "type": "bytes32"},
    {"name": "s",           "type": "bytes32"},
]


def _bytes32_constant(name: str) -> dict:
    return {
        "name": name,
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "bytes32"}],
    }


EIP3009_ABI = [
    {
        "name": "transferWithAuthorization",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": _AUTHORIZATION_INPUTS,
        "outputs": [],
    },
    {
        "name": "receiveWithAuthorization",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": _AUTHORIZATION_INPUTS,
        "outputs": [],
    },
    {
        "name": "cancelAuthorization",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "authorizer", "type": "address"},
            {"name": "nonce",      "type": "bytes32"},
            {"name": "v",          "type": "uint8"},
            {"name": "r",          "type": "bytes32"},
            {"name": "s",          "type": "bytes32"},
        ],
        "outputs": [],
    },
    {
        "name": "authorizationState",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "authorizer", "type": "address"},
            {"name": "nonce",      "type": "bytes32"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
    _bytes32_constant("DOMAIN_SEPARATOR"),
    _bytes32_constant("TRANSFER_WITH_AUTHORIZATION_TYPEHASH"),
    _bytes32_constant("RECEIVE_WITH_AUTHORIZATION_TYPEHASH"),
    _bytes32_constant("CANCEL_AUTHORIZATION_TYPEHASH"),
    {
        "name": "AuthorizationUsed",
        "type": "event",
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "authorizer", "type": "address"},
            {"indexed": True, "name": "nonce",      "type": "bytes32"},
        ],
    },
    {
        "name": "AuthorizationCanceled",
        "type": "event",
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "authorizer", "type": "address"},
            {"indexed": True, "name": "nonce",      "type": "bytes32"},
        ],
    },
]
