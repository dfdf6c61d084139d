import json
import os
from typing import Dict, List

from eth_account import Account
from web3 import Web3

import config
from core.errors import FatalStartupError
from core.logger import get_logger

logger = get_logger("Wallets")


class WalletAccount:
    def __init__(self, address: str, private_key: str):
        self.address = address
        self.private_key = private_key

    def as_dict(self) -> Dict[str, str]:
        return {
            "address": self.address,
            "privateKey": self.private_key
        }

    @classmethod
    def from_dict(cls, data: Dict[str, str]) -> "WalletAccount":
        return cls(Web3.to_checksum_address(data["address"]), data["privateKey"])

    def __repr__(self):
        return f"WalletAccount({self.address})"


def load_wallets(path: str = config.WALLETS_FILE) -> List[WalletAccount]:
    if not os.path.exists(path):
        logger.info(f"{path} not found")
        return []
    with open(path, "r", encoding="utf-8") as f:
        return [WalletAccount.from_dict(item) for item in json.load(f)]


def save_wallets(wallets: List[WalletAccount], path: str = config.WALLETS_FILE) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump([w.as_dict() for w in wallets], f, indent=2)


def create_wallets(count: int, path: str = config.WALLETS_FILE) -> List[WalletAccount]:
    """Generate ``count`` fresh keypairs and overwrite ``path`` with them."""
    if count < 1:
        raise ValueError(f"wallet count must be >= 1, got {count}")
    wallets = []
    for _ in range(count):
        account = Account.create()
        wallets.append(WalletAccount(account.address, Web3.to_hex(account.key)))
    save_wallets(wallets, path)
    logger.info(f"Created {count} new wallet(s) in {path}")
    return wallets


def require_wallets(path: str = config.WALLETS_FILE, minimum: int = 1) -> List[WalletAccount]:
    wallets = load_wallets(path)
    if len(wallets) < minimum:
        raise FatalStartupError(
            f"Need at least {minimum} wallet(s) in {path}, found {len(wallets)}. Create wallets first"
        )
    return wallets
