import json
from types import SimpleNamespace

import pytest
import requests
from eth_account import Account
from web3 import Web3

import config

config.LOG_FILE = ""

from core.randomness import Randomizer  # noqa: E402


class StubRandomizer(Randomizer):
    """Returns queued values, falling back to the lower bound / first item."""

    def __init__(self, ints=(), floats=()):
        super().__init__()
        self.ints = list(ints)
        self.floats = list(floats)
        self.choices = 0

    def randint(self, low, high):
        return self.ints.pop(0) if self.ints else low

    def uniform(self, low, high):
        return self.floats.pop(0) if self.floats else low

    def choice(self, items):
        item = items[self.choices % len(items)]
        self.choices += 1
        return item


class FakeSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def receipt(**kwargs):
    return SimpleNamespace(transactionHash=b"\x11" * 32, status=1, **kwargs)


@pytest.fixture
def sleep():
    return FakeSleep()


@pytest.fixture
def make_wallet_file(tmp_path):
    def make(count):
        path = tmp_path / "wallets.json"
        accounts = [Account.create() for _ in range(count)]
        path.write_text(json.dumps([
            {"address": a.address, "privateKey": Web3.to_hex(a.key)}
            for a in accounts
        ]))
        return str(path)
    return make


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self.payload = payload if payload is not None else {}
        self.text = str(self.payload)

    def json(self):
        return self.payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


def break_private_key(path, index):
    """Replace one stored key with one that is too short to load."""
    with open(path) as f:
        wallets = json.load(f)
    wallets[index]["privateKey"] = "0xdeadbeef"
    with open(path, "w") as f:
        json.dump(wallets, f)
