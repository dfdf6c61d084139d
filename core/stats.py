import asyncio
from typing import Callable, Dict, List, Optional

from web3 import Web3

import config
from core.chain import ChainClient
from core.logger import get_logger
from core.wallets import WalletAccount, load_wallets

logger = get_logger("Stats")

NETWORKS = {
    "Haust": config.HAUST_RPC,
    "Sepolia": config.SEPOLIA_RPC,
}


async def wallet_balances(wallet: WalletAccount,
                          client_factory: Callable[[str, str], ChainClient]) -> Dict[str, Optional[float]]:
    balances: Dict[str, Optional[float]] = {}
    for network, rpc in NETWORKS.items():
        try:
            client = client_factory(rpc, wallet.private_key)
            balances[network] = float(Web3.from_wei(await client.get_balance(), "ether"))
        except Exception as e:
            logger.warning(f"{wallet.address}: {network} balance read failed: {e}")
            balances[network] = None
    return balances


async def collect_stats(path: str = config.WALLETS_FILE,
                        client_factory: Callable[[str, str], ChainClient] = ChainClient) -> List[Dict]:
    wallets = load_wallets(path)
    if not wallets:
        logger.warning("No wallets to report on")
        return []

    rows = await asyncio.gather(*(wallet_balances(w, client_factory) for w in wallets))

    logger.info(f"{'#':>3} | {'Wallet':<42} | {'Haust':>12} | {'Sepolia':>12}")
    report = []
    for index, (wallet, row) in enumerate(zip(wallets, rows), start=1):
        cells = [f"{row[n]:>12.4f}" if row[n] is not None else f"{'ERR':>12}" for n in NETWORKS]
        logger.info(f"{index:>3} | {wallet.address:<42} | {' | '.join(cells)}")
        report.append({"address": wallet.address, **row})
    return report
