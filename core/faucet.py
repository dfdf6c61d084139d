import asyncio
from typing import Any, Callable, Awaitable, List, Optional

import requests

import config
from core.batch import run_batches
from core.errors import ExhaustedRetries, TransientNetworkError
from core.logger import get_logger, short
from core.proxy import ProxyDescriptor, ProxySettings, create_proxy_pool, pick_random
from core.randomness import Randomizer
from core.retry import RetryPolicy, retry_action
from core.wallets import load_wallets

logger = get_logger("Faucet")

FAUCET_POLICY = RetryPolicy.exponential(
    config.FAUCET_RETRIES, config.FAUCET_BACKOFF_BASE, config.FAUCET_BACKOFF_CAP
)

HEADERS = {
    "accept": "application/json, text/plain, */*",
    "content-type": "application/json",
    "user-agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
                  "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
}


def post_claim(address: str, proxy: Optional[ProxyDescriptor] = None,
               url: str = config.FAUCET_URL) -> Any:
    """Single claim request. Any non-2xx answer is a failure."""
    try:
        response = requests.post(
            url,
            json={"address": address},
            headers=HEADERS,
            proxies=proxy.proxies if proxy else None,
            timeout=config.HTTP_TIMEOUT,
        )
        response.raise_for_status()
    except requests.RequestException as e:
        raise TransientNetworkError(f"Faucet request failed: {e}") from e
    try:
        return response.json()
    except ValueError:
        return response.text


async def claim_faucet(
    address: str,
    pool: List[ProxyDescriptor],
    randomizer: Optional[Randomizer] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> bool:
    wallet = short(address)

    def attempt():
        proxy = pick_random(pool, randomizer)
        if proxy:
            logger.info(f"[{wallet}] Claiming through proxy {proxy}")
        else:
            logger.warning(f"[{wallet}] No proxy available, claiming directly")
        return post_claim(address, proxy)

    try:
        data = await retry_action(attempt, FAUCET_POLICY, f"faucet claim {wallet}", randomizer, sleep)
    except ExhaustedRetries as e:
        logger.error(f"[{wallet}] Faucet claim failed after {e.attempts} attempts: {e.cause}")
        return False

    logger.info(f"[{wallet}] Faucet claimed: {data}")
    return True


async def run_faucet_all_wallets(
    settings: ProxySettings,
    path: str = config.WALLETS_FILE,
    batch_size: int = config.FAUCET_BATCH_SIZE,
) -> List[Any]:
    wallets = load_wallets(path)
    if not wallets:
        logger.warning("No wallets to claim for")
        return []

    pool = await asyncio.to_thread(create_proxy_pool, settings)
    if not pool:
        logger.warning("No proxy configured or available, running without proxy")

    results = await run_batches(
        wallets,
        batch_size,
        lambda w: claim_faucet(w.address, pool),
        label=lambda w: w.address,
    )
    claimed = sum(1 for r in results if r is True)
    logger.info(f"Faucet finished: {claimed}/{len(wallets)} wallet(s) claimed")
    return results
