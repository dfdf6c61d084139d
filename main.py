import asyncio
import sys
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Awaitable, Callable, Dict

import config
from core.bridge import run_bridge_all_wallets
from core.deploy import deploy_all_wallets
from core.errors import BotError
from core.faucet import run_faucet_all_wallets
from core.logger import get_logger
from core.mint_nft import run_mint_all_wallets
from core.proxy import ProxySettings, test_all_proxies
from core.stats import collect_stats
from core.wallets import create_wallets

logger = get_logger("Main")


class Command(Enum):
    CREATE_WALLETS = "1"
    CLAIM_FAUCET = "2"
    DEPLOY = "3"
    BRIDGE = "4"
    MINT_NFT = "5"
    TEST_PROXIES = "6"
    STATS = "7"
    EXIT = "0"


MENU_TITLES = {
    Command.CREATE_WALLETS: "Create new wallets",
    Command.CLAIM_FAUCET: "Claim faucet tokens",
    Command.DEPLOY: "Deploy contract and send transfers",
    Command.BRIDGE: "Distribute Sepolia ETH and bridge tokens",
    Command.MINT_NFT: "Mint NFT",
    Command.TEST_PROXIES: "Test proxies",
    Command.STATS: "Wallet balances",
    Command.EXIT: "Exit",
}


def ask_positive_int(prompt: str, default: int = 1) -> int:
    raw = input(prompt).strip()
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def ask_eth_amount(prompt: str) -> str:
    """Empty answer means skip, anything else must be a positive number."""
    raw = input(prompt).strip()
    if not raw:
        return ""
    try:
        if Decimal(raw) > 0:
            return raw
    except InvalidOperation:
        pass
    logger.warning(f"Invalid ETH amount {raw!r}, distribution skipped")
    return ""


async def handle_create_wallets(proxy_settings: ProxySettings):
    count = ask_positive_int("How many wallets to create: ")
    await asyncio.to_thread(create_wallets, count)


async def handle_claim_faucet(proxy_settings: ProxySettings):
    await run_faucet_all_wallets(proxy_settings)


async def handle_deploy(proxy_settings: ProxySettings):
    await deploy_all_wallets()


async def handle_bridge(proxy_settings: ProxySettings):
    amount = ask_eth_amount("Sepolia ETH to send from the first wallet to each other wallet (Enter to skip): ")
    await run_bridge_all_wallets(distribute_amount=amount or None)


async def handle_mint_nft(proxy_settings: ProxySettings):
    await run_mint_all_wallets()


async def handle_test_proxies(proxy_settings: ProxySettings):
    await test_all_proxies(proxy_settings)


async def handle_stats(proxy_settings: ProxySettings):
    await collect_stats()


async def handle_exit(proxy_settings: ProxySettings):
    logger.info("Bye")
    sys.exit(0)


HANDLERS: Dict[Command, Callable[[ProxySettings], Awaitable[None]]] = {
    Command.CREATE_WALLETS: handle_create_wallets,
    Command.CLAIM_FAUCET: handle_claim_faucet,
    Command.DEPLOY: handle_deploy,
    Command.BRIDGE: handle_bridge,
    Command.MINT_NFT: handle_mint_nft,
    Command.TEST_PROXIES: handle_test_proxies,
    Command.STATS: handle_stats,
    Command.EXIT: handle_exit,
}

_unhandled = set(Command) - set(HANDLERS) | set(Command) - set(MENU_TITLES)
if _unhandled:
    raise RuntimeError(f"Commands without handler or title: {_unhandled}")


def parse_command(choice: str):
    try:
        return Command(choice.strip())
    except ValueError:
        return None


async def dispatch(command: Command, proxy_settings: ProxySettings) -> None:
    try:
        await HANDLERS[command](proxy_settings)
    except BotError as e:
        logger.error(e.message)
    except Exception as e:
        logger.error(f"{command.name} failed: {e}")


async def main():
    proxy_settings = ProxySettings(proxy_url=config.PROXY_URL)
    if proxy_settings.proxy_url:
        logger.info("Proxy configured")
    else:
        logger.warning("No proxy configured, running without proxy")

    while True:
        print("\n=== HAUST BOT ===")
        for command in Command:
            print(f"{command.value}. {MENU_TITLES[command]}")

        command = parse_command(input("Select an option: "))
        if command is None:
            print("Invalid option")
            continue
        await dispatch(command, proxy_settings)


if __name__ == "__main__":
    asyncio.run(main())
