# core/mint_nft.py

import asyncio
from functools import partial
from typing import Awaitable, Callable, List, Optional

from web3 import Web3

import config
from core.chain import NFT_ABI, ChainClient, haust_client
from core.errors import ExhaustedRetries
from core.logger import get_logger, short
from core.retry import RetryPolicy, retry_action
from core.wallets import require_wallets

logger = get_logger("MintNFT")

MINT_POLICY = RetryPolicy.fixed(config.RETRIES_PER_ACTION, config.DELAY_BETWEEN_RETRIES)


async def mint_nft(client: ChainClient, nft: str = config.NFT_CONTRACT) -> int:
    """Mint one NFT to the client's own address and return the new balance."""
    wallet = short(client.address)
    balance = await client.balance_of(nft, abi=NFT_ABI)
    logger.info(f"[{wallet}] Current NFT balance: {balance}")

    logger.info(f"[{wallet}] Minting NFT to {client.address}...")
    receipt = await client.mint_nft(nft)
    logger.info(f"[{wallet}] NFT mint confirmed: {Web3.to_hex(receipt.transactionHash)}")

    new_balance = await client.balance_of(nft, abi=NFT_ABI)
    logger.info(f"[{wallet}] New NFT balance: {new_balance}")
    return new_balance


async def run_mint_all_wallets(path: str = config.WALLETS_FILE,
                               client_factory: Callable[[str], ChainClient] = haust_client,
                               sleep: Callable[[float], Awaitable[None]] = asyncio.sleep) -> List[Optional[int]]:
    wallets = require_wallets(path)
    results = []
    for wallet in wallets:
        wallet_name = short(wallet.address)
        try:
            client = client_factory(wallet.private_key)
            balance = await retry_action(
                partial(mint_nft, client), MINT_POLICY, f"NFT mint {wallet_name}", sleep=sleep
            )
        except ExhaustedRetries as e:
            logger.error(f"[{wallet_name}] NFT mint failed: {e.cause}")
            balance = None
        except Exception as e:
            logger.error(f"[{wallet_name}] NFT mint skipped: {e}")
            balance = None
        results.append(balance)
    return results
