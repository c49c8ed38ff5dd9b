# main.py
import os

import uvicorn

from chain_utils import get_chain_id
from gasless_api import create_app

app = create_app()

if __name__ == "__main__":
    host = os.getenv("API_HOST", "0.0.0.0")
    port = int(os.getenv("API_PORT", "9000"))
    devnet = app.state.devnet
    print(f"🚀 EIP-3009 devnet 正在启动 (chainId: {get_chain_id()}, Port: {port})...")
    print("   token  :", devnet.token.address)
    print("   user   :", devnet.user_account.address)
    print("   relayer:", devnet.relayer_account.address)
    uvicorn.run(app, host=host, port=port)
