import asyncio
from dataclasses import dataclass
from decimal import Decimal
from functools import partial
from typing import Any, Awaitable, Callable, Dict, List, Optional

from web3 import Web3

import config
from core.batch import run_batches
from core.chain import ChainClient, sepolia_client
from core.errors import BotError, ExhaustedRetries
from core.logger import get_logger, short
from core.randomness import Randomizer, default_randomizer
from core.retry import RetryPolicy, retry_action
from core.wallets import WalletAccount, require_wallets

logger = get_logger("Bridge")


@dataclass(frozen=True)
class TokenSpec:
    symbol: str
    address: str


TOKENS = [
    TokenSpec("USDT", config.USDT),
    TokenSpec("USDC", config.USDC),
    TokenSpec("WBTC", config.WBTC),
]

TOKEN_DECIMALS = 6
MINT_AMOUNT = 10000 * 10 ** TOKEN_DECIMALS

BRIDGE_POLICY = RetryPolicy.fixed(config.RETRIES_PER_ACTION, config.DELAY_BETWEEN_RETRIES)

Sleep = Callable[[float], Awaitable[None]]


async def bridge_token(client: ChainClient, token: TokenSpec,
                       randomizer: Optional[Randomizer] = None,
                       sleep: Sleep = asyncio.sleep) -> None:
    """Mint, approve and bridge one token, each step retried on its own."""
    randomizer = randomizer or default_randomizer
    wallet = short(client.address)

    logger.info(f"[{wallet}] Minting 10000 {token.symbol} to {client.address}...")
    receipt = await retry_action(
        partial(client.mint, token.address, client.address, MINT_AMOUNT),
        BRIDGE_POLICY, f"{token.symbol} mint", randomizer, sleep,
    )
    logger.info(f"[{wallet}] {token.symbol} mint confirmed: {Web3.to_hex(receipt.transactionHash)}")

    logger.info(f"[{wallet}] Approving 10000 {token.symbol} for {config.BRIDGE_CONTRACT}...")
    receipt = await retry_action(
        partial(client.approve, token.address, config.BRIDGE_CONTRACT, MINT_AMOUNT),
        BRIDGE_POLICY, f"{token.symbol} approve", randomizer, sleep,
    )
    logger.info(f"[{wallet}] {token.symbol} approve confirmed: {Web3.to_hex(receipt.transactionHash)}")

    whole = randomizer.randint(*config.BRIDGE_AMOUNT_RANGE)
    amount = whole * 10 ** TOKEN_DECIMALS
    logger.info(f"[{wallet}] Bridging {whole} {token.symbol} to Haust network...")
    receipt = await retry_action(
        partial(client.bridge_asset, config.BRIDGE_CONTRACT, token.address, amount),
        BRIDGE_POLICY, f"{token.symbol} bridge", randomizer, sleep,
    )
    logger.info(f"[{wallet}] {token.symbol} bridge confirmed: {Web3.to_hex(receipt.transactionHash)}")


async def bridge_assets(client: ChainClient,
                        randomizer: Optional[Randomizer] = None,
                        sleep: Sleep = asyncio.sleep,
                        tokens: List[TokenSpec] = TOKENS) -> Dict[str, bool]:
    results = {}
    for token in tokens:
        try:
            await bridge_token(client, token, randomizer, sleep)
            results[token.symbol] = True
        except ExhaustedRetries as e:
            logger.error(f"[{short(client.address)}] {token.symbol} operations failed after all retries: {e.message}")
            results[token.symbol] = False
    return results


async def distribute_native(wallets: List[WalletAccount], amount_eth: str,
                            client_factory: Callable[[str], ChainClient] = sepolia_client) -> int:
    """Send ``amount_eth`` from the first wallet to every other wallet once."""
    if len(wallets) < 2:
        logger.warning("At least 2 wallets are needed to distribute ETH")
        return 0

    value = Web3.to_wei(Decimal(amount_eth), "ether")
    sender = client_factory(wallets[0].private_key)
    logger.info(f"Distributing {amount_eth} ETH from {sender.address} to {len(wallets) - 1} wallet(s)")

    sent = 0
    for recipient in wallets[1:]:
        logger.info(f"Sending {amount_eth} ETH to {recipient.address}")
        try:
            receipt = await sender.send_native(recipient.address, value)
        except BotError as e:
            logger.error(f"Sending to {recipient.address} failed: {e.message}")
            continue
        logger.info(f"Transaction confirmed: {Web3.to_hex(receipt.transactionHash)}")
        sent += 1
    return sent


async def run_bridge_all_wallets(path: str = config.WALLETS_FILE,
                                 batch_size: int = config.BRIDGE_BATCH_SIZE,
                                 distribute_amount: Optional[str] = None,
                                 client_factory: Callable[[str], ChainClient] = sepolia_client) -> List[Any]:
    wallets = require_wallets(path)
    logger.info(f"Found {len(wallets)} existing wallet(s)")

    if distribute_amount:
        await distribute_native(wallets, distribute_amount, client_factory)

    async def process(wallet: WalletAccount):
        logger.info(f"Starting processing for wallet {wallet.address}")
        return await bridge_assets(client_factory(wallet.private_key))

    results = await run_batches(wallets, batch_size, process, label=lambda w: w.address)
    logger.info("All batches processed")
    return results
