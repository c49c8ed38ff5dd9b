# verify_payment.py
from web3 import Web3


def verify_token_payment(
    receipt,
    user_address: str,
    service_address: str,
    token_address: str,
    required_amount: int,
) -> bool:
    """
    校验：这笔 tx 是否包含 user -> service 的 token Transfer 事件
    且转账数量 >= required_amount（最小单位）
    """
    user = Web3.to_checksum_address(user_address)
    service = Web3.to_checksum_address(service_address)
    token_addr = Web3.to_checksum_address(token_address)

    # 1. 交易是否成功
    if receipt.status != 1:
        print("Tx failed, status != 1:", receipt.revert_reason)
        return False

    # 2. 遍历 logs 找 Transfer 事件
    paid_amount = 0
    matched = False

    for log in receipt.logs:
        # 必须是这个 token 合约的 log
        if log.address != token_addr:
            continue
        if log.event != "Transfer":
            continue

        # 我们只关注 user -> service 的转账
        if log.args["from"] != user or log.args["to"] != service:
            continue

        paid_amount += log.args["value"]
        matched = True

    if not matched:
        print("No matching Transfer(user -> service) found in logs")
        return False

    if paid_amount < required_amount:
        print(f"Paid {paid_amount}, required {required_amount}")
        return False

    print("Payment verified OK")
    return True
