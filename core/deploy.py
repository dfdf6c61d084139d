import asyncio
import time
from dataclasses import dataclass
from functools import lru_cache, partial
from typing import Awaitable, Callable, List, Optional

from eth_account import Account
from solcx import compile_standard, get_installed_solc_versions, install_solc

import config
from core.chain import ChainClient, haust_client
from core.errors import BotError, ExhaustedRetries, FatalStartupError
from core.logger import get_logger, short
from core.randomness import Randomizer, default_randomizer
from core.retry import RetryPolicy, retry_action
from core.wallets import require_wallets

logger = get_logger("Deploy")

CONTRACT_NAME = "Token"
CONTRACT_SOURCE = """// SPDX-License-Identifier: MIT
pragma solidity ^0.8.0;

contract Token {
    string public name = "Haust Token";
    string public symbol = "HAUS";
    uint8 public decimals = 18;
    uint256 public totalSupply;

    mapping(address => uint256) public balanceOf;

    event Transfer(address indexed from, address indexed to, uint256 value);
    event Mint(address indexed to, uint256 value);

    constructor(uint256 _initialSupply) {
        balanceOf[msg.sender] = _initialSupply;
        totalSupply = _initialSupply;
        emit Transfer(address(0), msg.sender, _initialSupply);
    }

    function transfer(address _to, uint256 _value) public returns (bool success) {
        require(balanceOf[msg.sender] >= _value, "Insufficient balance");
        balanceOf[msg.sender] -= _value;
        balanceOf[_to] += _value;
        emit Transfer(msg.sender, _to, _value);
        return true;
    }

    function mint(address _to, uint256 _value) public {
        totalSupply += _value;
        balanceOf[_to] += _value;
        emit Mint(_to, _value);
    }
}
"""

INITIAL_SUPPLY = 1_000_000 * 10 ** 18
DEPLOY_POLICY = RetryPolicy.randomized(config.DEPLOY_RETRIES, *config.DEPLOY_RETRY_DELAY)

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class CompiledContract:
    abi: list
    bytecode: str


@lru_cache(maxsize=1)
def compile_contract(solc_version: str = config.SOLC_VERSION) -> CompiledContract:
    """Compile CONTRACT_SOURCE once per process."""
    if solc_version not in {str(v) for v in get_installed_solc_versions()}:
        logger.info(f"Installing solc {solc_version}...")
        install_solc(solc_version)

    out = compile_standard({
        "language": "Solidity",
        "sources": {f"{CONTRACT_NAME}.sol": {"content": CONTRACT_SOURCE}},
        "settings": {"outputSelection": {"*": {"*": ["abi", "evm.bytecode.object"]}}},
    }, solc_version=solc_version)
    data = out["contracts"][f"{CONTRACT_NAME}.sol"][CONTRACT_NAME]
    return CompiledContract(data["abi"], data["evm"]["bytecode"]["object"])


async def transfer_tokens(client: ChainClient, token: str, abi: list,
                          randomizer: Optional[Randomizer] = None) -> int:
    """Send random amounts to fresh throwaway addresses. Returns successes."""
    randomizer = randomizer or default_randomizer
    count = randomizer.randint(*config.TRANSFERS_PER_DEPLOY)
    logger.info(f"[{short(client.address)}] Sending {count} transfer(s) to random addresses...")

    done = 0
    for _ in range(count):
        recipient = Account.create().address
        whole = randomizer.randint(*config.TRANSFER_AMOUNT_RANGE)
        try:
            await client.transfer(token, recipient, whole * 10 ** 18, abi)
        except BotError as e:
            logger.error(f"[{short(client.address)}] Transfer to {recipient} failed: {e.message}")
            continue
        logger.info(f"[{short(client.address)}] Transferred {whole} HAUS to {recipient}")
        done += 1
    return done


async def deploy_contract(client: ChainClient, compiled: CompiledContract,
                          randomizer: Optional[Randomizer] = None,
                          sleep: Sleep = asyncio.sleep) -> Optional[str]:
    try:
        address = await retry_action(
            partial(client.deploy, compiled.abi, compiled.bytecode, INITIAL_SUPPLY,
                    gas=config.DEPLOY_GAS_LIMIT),
            DEPLOY_POLICY, f"deploy {short(client.address)}", randomizer, sleep,
        )
    except ExhaustedRetries as e:
        logger.error(f"[{short(client.address)}] Contract deploy failed after {e.attempts} attempts: {e.cause}")
        return None

    logger.info(f"[{short(client.address)}] Contract deployed: {address}")
    await transfer_tokens(client, address, compiled.abi, randomizer)
    return address


async def deploy_all_wallets(path: str = config.WALLETS_FILE,
                             client_factory: Callable[[str], ChainClient] = haust_client,
                             randomizer: Optional[Randomizer] = None,
                             sleep: Sleep = asyncio.sleep) -> List[Optional[str]]:
    wallets = require_wallets(path)
    logger.info(f"Found {len(wallets)} existing wallet(s)")
    compiled = await asyncio.to_thread(compile_contract)

    deployed = []
    for wallet in wallets:
        logger.info(f"Deploying contract for wallet {wallet.address}...")
        try:
            client = client_factory(wallet.private_key)
            deployed.append(await deploy_contract(client, compiled, randomizer, sleep))
        except Exception as e:
            logger.error(f"[{short(wallet.address)}] Deploy failed: {e}")
            deployed.append(None)
        await sleep(config.DELAY_BETWEEN_WALLETS)

    logger.info(f"All deployments finished: {sum(1 for d in deployed if d)}/{len(wallets)} succeeded")
    return deployed


async def run_deploy_scheduler(interval: float = config.DEPLOY_INTERVAL,
                               cycles: Optional[int] = None,
                               cycle: Callable[[], Awaitable[object]] = deploy_all_wallets,
                               sleep: Sleep = asyncio.sleep,
                               clock: Callable[[], float] = time.monotonic) -> None:
    """Run a deploy cycle now and then every ``interval`` seconds.

    Cycles start at a fixed rate, the time a cycle takes is subtracted from
    the wait. Runs forever unless ``cycles`` is given. FatalStartupError ends
    the loop.
    """
    completed = 0
    while cycles is None or completed < cycles:
        started = clock()
        try:
            await cycle()
        except FatalStartupError:
            raise
        except Exception as e:
            logger.error(f"Deploy cycle failed: {e}")
        completed += 1
        if cycles is not None and completed >= cycles:
            break
        wait = max(0.0, interval - (clock() - started))
        logger.info(f"Next deploy cycle in {wait / 3600:.1f}h")
        await sleep(wait)
