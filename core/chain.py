import asyncio
from typing import Any, Dict, List, Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3, HTTPProvider

import config
from core.errors import TransientNetworkError
from core.logger import get_logger, short

logger = get_logger("Chain")

TOKEN_ABI = [
    {"inputs": [{"name": "to", "type": "address"}, {"name": "amount", "type": "uint256"}], "name": "mint", "outputs": [], "stateMutability": "nonpayable", "type": "function"},
    {"inputs": [{"name": "spender", "type": "address"}, {"name": "amount", "type": "uint256"}], "name": "approve", "outputs": [{"name": "", "type": "bool"}], "stateMutability": "nonpayable", "type": "function"},
    {"inputs": [{"name": "to", "type": "address"}, {"name": "amount", "type": "uint256"}], "name": "transfer", "outputs": [{"name": "", "type": "bool"}], "stateMutability": "nonpayable", "type": "function"},
    {"inputs": [{"name": "account", "type": "address"}], "name": "balanceOf", "outputs": [{"name": "", "type": "uint256"}], "stateMutability": "view", "type": "function"},
]

BRIDGE_ABI = [{
    "inputs": [
        {"name": "destinationNetwork", "type": "uint32"},
        {"name": "destinationAddress", "type": "address"},
        {"name": "amount", "type": "uint256"},
        {"name": "token", "type": "address"},
        {"name": "forceUpdateGlobalExitRoot", "type": "bool"},
        {"name": "permitData", "type": "bytes"},
    ],
    "name": "bridgeAsset",
    "outputs": [],
    "stateMutability": "payable",
    "type": "function"
}]

NFT_ABI = [
    {"inputs": [{"name": "to", "type": "address"}], "name": "mint", "outputs": [], "stateMutability": "nonpayable", "type": "function"},
    {"inputs": [{"name": "owner", "type": "address"}], "name": "balanceOf", "outputs": [{"name": "", "type": "uint256"}], "stateMutability": "view", "type": "function"},
]


def create_web3_with_proxy(rpc_url: str, proxy: Optional[str] = None) -> Web3:
    kwargs: Dict[str, Any] = {"timeout": config.HTTP_TIMEOUT}
    if proxy:
        kwargs["proxies"] = {"http": proxy, "https": proxy}
    return Web3(HTTPProvider(rpc_url, request_kwargs=kwargs))


class ChainClient:
    """One account on one RPC endpoint.

    Every write builds, signs and sends a transaction and then blocks (in a
    worker thread) until the receipt arrives. A missing or reverted receipt
    raises TransientNetworkError so callers can retry.
    """

    def __init__(self, rpc_url: str, private_key: str, proxy: Optional[str] = None,
                 w3: Optional[Web3] = None):
        self.rpc_url = rpc_url
        self.w3 = w3 or create_web3_with_proxy(rpc_url, proxy)
        self.account: LocalAccount = Account.from_key(private_key)
        self.address = self.account.address

    def contract(self, address: str, abi: List[dict]):
        return self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    # --- reads ---

    async def get_balance(self) -> int:
        return await asyncio.to_thread(self.w3.eth.get_balance, self.address)

    async def balance_of(self, token: str, owner: Optional[str] = None, abi: List[dict] = TOKEN_ABI) -> int:
        call = self.contract(token, abi).functions.balanceOf(owner or self.address)
        return await asyncio.to_thread(call.call)

    # --- writes ---

    def _send_and_wait(self, tx: Dict[str, Any]):
        signed_tx = self.account.sign_transaction(tx)
        tx_hash = self.w3.eth.send_raw_transaction(signed_tx.raw_transaction)
        logger.debug(f"[{short(self.address)}] sent {self.w3.to_hex(tx_hash)}")
        receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=config.TX_TIMEOUT)
        if receipt.status != 1:
            raise TransientNetworkError(f"Transaction reverted: {self.w3.to_hex(tx_hash)}")
        return receipt

    def _transact_sync(self, call, gas: Optional[int] = None, value: int = 0):
        params: Dict[str, Any] = {
            "from": self.address,
            "nonce": self.w3.eth.get_transaction_count(self.address, "pending"),
        }
        if value:
            params["value"] = value
        if gas:
            params["gas"] = gas
        return self._send_and_wait(call.build_transaction(params))

    async def transact(self, call, gas: Optional[int] = None, value: int = 0):
        """Send a prepared contract call and wait for its receipt."""
        try:
            return await asyncio.to_thread(self._transact_sync, call, gas, value)
        except TransientNetworkError:
            raise
        except Exception as e:
            raise TransientNetworkError(f"{self.rpc_url}: {e}") from e

    async def mint(self, token: str, to: str, amount: int):
        return await self.transact(self.contract(token, TOKEN_ABI).functions.mint(to, amount))

    async def approve(self, token: str, spender: str, amount: int):
        call = self.contract(token, TOKEN_ABI).functions.approve(Web3.to_checksum_address(spender), amount)
        return await self.transact(call)

    async def bridge_asset(self, bridge: str, token: str, amount: int,
                           destination_network: int = config.DESTINATION_NETWORK,
                           gas: int = config.BRIDGE_GAS_LIMIT):
        call = self.contract(bridge, BRIDGE_ABI).functions.bridgeAsset(
            destination_network,
            self.address,
            amount,
            Web3.to_checksum_address(token),
            True,
            b"",
        )
        return await self.transact(call, gas=gas)

    async def transfer(self, token: str, to: str, amount: int, abi: List[dict] = TOKEN_ABI):
        return await self.transact(self.contract(token, abi).functions.transfer(to, amount))

    async def deploy(self, abi: List[dict], bytecode: str, *args, gas: int = config.DEPLOY_GAS_LIMIT) -> str:
        """Deploy a contract and return its address."""
        factory = self.w3.eth.contract(abi=abi, bytecode=bytecode)
        receipt = await self.transact(factory.constructor(*args), gas=gas)
        return receipt.contractAddress

    async def mint_nft(self, nft: str, gas: int = config.NFT_GAS_LIMIT):
        return await self.transact(self.contract(nft, NFT_ABI).functions.mint(self.address), gas=gas)

    async def send_native(self, to: str, value_wei: int):
        def send():
            tx = {
                "from": self.address,
                "to": Web3.to_checksum_address(to),
                "value": value_wei,
                "gas": config.NATIVE_TRANSFER_GAS,
                "gasPrice": self.w3.eth.gas_price,
                "nonce": self.w3.eth.get_transaction_count(self.address, "pending"),
                "chainId": self.w3.eth.chain_id,
            }
            return self._send_and_wait(tx)

        try:
            return await asyncio.to_thread(send)
        except TransientNetworkError:
            raise
        except Exception as e:
            raise TransientNetworkError(f"{self.rpc_url}: {e}") from e


def sepolia_client(private_key: str) -> ChainClient:
    return ChainClient(config.SEPOLIA_RPC, private_key)


def haust_client(private_key: str) -> ChainClient:
    return ChainClient(config.HAUST_RPC, private_key)
