# relay_service_core.py
from web3 import Web3

from local_chain import LocalChain, TxReceipt
from sign.eip3009_meta import Authorization, CancelAuthorization
from verify_payment import verify_token_payment


class RelayService:
    """
    Relayer on a LocalChain: submits signed authorizations on behalf of
    their signers and collects a fee through a second authorization.
    """

    def __init__(self, chain: LocalChain, token, relayer_address: str, required_fee: int = 0):
        self.chain = chain
        self.token = token
        self.relayer_address = Web3.to_checksum_address(relayer_address)
        self.required_fee = required_fee

    def relay(self, auth: Authorization | dict) -> TxReceipt:
        if isinstance(auth, dict):
            auth = Authorization.from_dict(auth)
        return self.chain.transact(
            self.relayer_address, self.token, "transferWithAuthorization", *auth.args()
        )

    def relay_receive(self, auth: Authorization | dict, sender: str | None = None) -> TxReceipt:
        """receiveWithAuthorization 只能由收款方提交，默认 sender = auth.to"""
        if isinstance(auth, dict):
            auth = Authorization.from_dict(auth)
        return self.chain.transact(
            sender or auth.to, self.token, "receiveWithAuthorization", *auth.args()
        )

    def cancel(self, cancel: CancelAuthorization | dict) -> TxReceipt:
        if isinstance(cancel, dict):
            cancel = CancelAuthorization.from_dict(cancel)
        return self.chain.transact(
            self.relayer_address, self.token, "cancelAuthorization", *cancel.args()
        )

    def relay_two_auth(self, auth_main: Authorization | dict, auth_fee: Authorization | dict) -> dict:
        """
        整体流程：
        1. 检查 auth_fee 是否为 user 向 relayer 支付 >= required_fee 的授权
        2. 先播手续费授权，并从 receipt 里校验确实收到了手续费
        3. 再播本金授权 A -> B
        """
        if isinstance(auth_main, dict):
            auth_main = Authorization.from_dict(auth_main)
        if isinstance(auth_fee, dict):
            auth_fee = Authorization.from_dict(auth_fee)

        print("[DEBUG] user_address   =", auth_main.from_addr)
        print("[DEBUG] service_address=", self.relayer_address)
        print("[DEBUG] token_addr     =", self.token.address)

        if auth_fee.from_addr != auth_main.from_addr:
            return {"ok": False, "step": "check_fee", "msg": "auth_fee.from != auth_main.from"}
        if auth_fee.to != self.relayer_address:
            return {"ok": False, "step": "check_fee", "msg": "auth_fee.to != relayer address"}
        if auth_fee.value < self.required_fee:
            return {
                "ok": False,
                "step": "check_fee",
                "msg": f"fee {auth_fee.value} below required {self.required_fee}",
            }

        fee_receipt = self.relay(auth_fee)
        ok = verify_token_payment(
            receipt=fee_receipt,
            user_address=auth_fee.from_addr,
            service_address=self.relayer_address,
            token_address=self.token.address,
            required_amount=self.required_fee,
        )
        if not ok:
            return {
                "ok": False,
                "step": "verify_payment",
                "msg": fee_receipt.revert_reason or "Payment verification failed",
                "tx_fee": fee_receipt.transaction_hash,
            }

        main_receipt = self.relay(auth_main)
        if main_receipt.status != 1:
            return {
                "ok": False,
                "step": "relay_transfer",
                "msg": main_receipt.revert_reason,
                "tx_fee": fee_receipt.transaction_hash,
                "tx_main": main_receipt.transaction_hash,
            }

        return {
            "ok": True,
            "step": "done",
            "msg": "Fee verified and relay tx sent",
            "tx_fee": fee_receipt.transaction_hash,
            "tx_main": main_receipt.transaction_hash,
            "service_address": self.relayer_address,
        }
