# gasless_api.py
from fastapi import FastAPI
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from web3 import Web3

from erc20_utils import human_to_token_amount
from local_chain import Devnet, build_devnet
from relay_service_core import RelayService
from sign.eip3009_meta import build_domain, build_transfer_authorization


class BuildAuthDemoRequest(BaseModel):
    to_addr: str                      # B
    amount: str                       # 本金（人类单位）
    fee: str = "0.01"                 # 手续费（人类单位）
    valid_for_seconds: int = 3600


class AuthPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(alias="from")
    to: str
    value: str
    validAfter: str
    validBefore: str
    nonce: str
    v: int
    r: str
    s: str

    def to_dict(self) -> dict:
        return {
            "from": self.from_,
            "to": self.to,
            "value": self.value,
            "validAfter": self.validAfter,
            "validBefore": self.validBefore,
            "nonce": self.nonce,
            "v": self.v,
            "r": self.r,
            "s": self.s,
        }


class ReceivePayload(BaseModel):
    auth: AuthPayload
    sender: Optional[str] = None      # 不传就用 auth.to（收款方自己提交）


class CancelPayload(BaseModel):
    authorizer: str
    nonce: str
    v: int
    r: str
    s: str


class RelayWithAuthRequest(BaseModel):
    auth_main: AuthPayload   # A -> B
    auth_fee: AuthPayload    # A -> Service


class SleepRequest(BaseModel):
    seconds: int = Field(ge=0)


def _receipt_response(receipt) -> dict:
    if receipt.status != 1:
        return {"code": 1, "error": receipt.revert_reason, "tx_hash": receipt.transaction_hash}
    return {
        "code": 0,
        "data": {
            "tx_hash": receipt.transaction_hash,
            "block_number": receipt.block_number,
            "events": [log.event for log in receipt.logs],
        },
    }


def create_app(devnet: Devnet | None = None, fee: str = "0.01") -> FastAPI:
    devnet = devnet or build_devnet()
    chain, token = devnet.chain, devnet.token
    service = RelayService(
        chain,
        token,
        devnet.relayer_account.address,
        required_fee=human_to_token_amount(fee, token.decimals),
    )

    app = FastAPI(title="EIP-3009 Relay Devnet")
    app.state.devnet = devnet
    app.state.relay_service = service

    @app.get("/")
    def root():
        return {"msg": "EIP-3009 relay devnet running"}

    @app.get("/token")
    def token_info():
        return {
            "code": 0,
            "data": {
                "address": token.address,
                "name": token.name,
                "symbol": token.symbol,
                "decimals": token.decimals,
                "version": token.version,
                "chainId": token.chain_id,
                "DOMAIN_SEPARATOR": Web3.to_hex(token.DOMAIN_SEPARATOR()),
                "TRANSFER_WITH_AUTHORIZATION_TYPEHASH": Web3.to_hex(token.TRANSFER_WITH_AUTHORIZATION_TYPEHASH),
                "RECEIVE_WITH_AUTHORIZATION_TYPEHASH": Web3.to_hex(token.RECEIVE_WITH_AUTHORIZATION_TYPEHASH),
                "CANCEL_AUTHORIZATION_TYPEHASH": Web3.to_hex(token.CANCEL_AUTHORIZATION_TYPEHASH),
                "relayer": service.relayer_address,
            },
        }

    @app.get("/balance/{address}")
    def balance(address: str):
        try:
            return {"code": 0, "data": {"address": address, "balance": str(token.balanceOf(address))}}
        except ValueError as e:
            return {"code": 1, "error": str(e)}

    @app.get("/authorization_state/{authorizer}/{nonce}")
    def authorization_state(authorizer: str, nonce: str):
        try:
            used = token.authorizationState(authorizer, nonce)
        except ValueError as e:
            return {"code": 1, "error": str(e)}
        return {"code": 0, "data": {"authorizer": authorizer, "nonce": nonce, "used": used}}

    @app.post("/build_auth_demo")
    def build_auth_demo(req: BuildAuthDemoRequest):
        """
        开发阶段使用：后端用 demo 用户私钥“模拟前端签名”，
        返回两份授权 auth_main / auth_fee（以后前端钱包会自己生成同款结构）。
        """
        user = devnet.user_account
        domain = build_domain(token.name, token.version, token.chain_id, token.address)
        try:
            amount_atomic = human_to_token_amount(req.amount, token.decimals)
            fee_atomic = human_to_token_amount(req.fee, token.decimals)

            # A -> B
            auth_main = build_transfer_authorization(
                user, domain, req.to_addr, amount_atomic,
                valid_for_seconds=req.valid_for_seconds, now=chain.now(),
            )
            # A -> Service
            auth_fee = build_transfer_authorization(
                user, domain, service.relayer_address, fee_atomic,
                valid_for_seconds=req.valid_for_seconds, now=chain.now(),
            )
        except ValueError as e:
            return {"code": 1, "error": str(e)}

        return {
            "code": 0,
            "data": {
                "from": user.address,
                "to_main": auth_main["to"],
                "to_service": service.relayer_address,
                "amount": req.amount,
                "fee": req.fee,
                "auth_main": auth_main,
                "auth_fee": auth_fee,
            },
        }

    @app.post("/transfer_with_auth")
    def transfer_with_auth(req: AuthPayload):
        try:
            return _receipt_response(service.relay(req.to_dict()))
        except ValueError as e:
            return {"code": 1, "error": str(e)}

    @app.post("/receive_with_auth")
    def receive_with_auth(req: ReceivePayload):
        try:
            return _receipt_response(service.relay_receive(req.auth.to_dict(), sender=req.sender))
        except ValueError as e:
            return {"code": 1, "error": str(e)}

    @app.post("/cancel_auth")
    def cancel_auth(req: CancelPayload):
        try:
            return _receipt_response(service.cancel(req.model_dump()))
        except ValueError as e:
            return {"code": 1, "error": str(e)}

    @app.post("/relay_with_auth")
    def relay_with_auth(req: RelayWithAuthRequest):
        """
        通用接口：调用方已经做好两份授权签名（auth_main / auth_fee），
        本接口负责校验手续费并用 relayer 播两笔 meta-tx。
        """
        try:
            result = service.relay_two_auth(req.auth_main.to_dict(), req.auth_fee.to_dict())
        except ValueError as e:
            return {"code": 1, "error": str(e)}
        if not result["ok"]:
            return {"code": 1, "error": result["msg"], "data": result}
        return {"code": 0, "data": result}

    @app.post("/devnet/sleep")
    def devnet_sleep(req: SleepRequest):
        chain.sleep(req.seconds)
        return {"code": 0, "data": {"timestamp": chain.now()}}

    return app
