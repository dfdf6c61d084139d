import asyncio

import requests

import config
from conftest import FakeResponse, StubRandomizer
from core import faucet
from core.proxy import ProxyDescriptor, ProxySettings

ADDRESS = "0x1111111111111111111111111111111111111111"


class FakePost:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def __call__(self, url, json=None, headers=None, proxies=None, timeout=None):
        self.calls.append({"url": url, "json": json, "proxies": proxies})
        outcome = self.responses.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def test_claim_posts_address_without_proxy(monkeypatch, sleep):
    post = FakePost([FakeResponse(payload={"msg": "Txhash 0xabc"})])
    monkeypatch.setattr("core.faucet.requests.post", post)

    assert asyncio.run(faucet.claim_faucet(ADDRESS, [], sleep=sleep)) is True
    assert post.calls == [{"url": config.FAUCET_URL, "json": {"address": ADDRESS}, "proxies": None}]
    assert sleep.delays == []


def test_claim_gives_up_after_five_attempts_with_backoff(monkeypatch, sleep):
    post = FakePost([requests.ConnectionError("down")] * 5)
    monkeypatch.setattr("core.faucet.requests.post", post)

    assert asyncio.run(faucet.claim_faucet(ADDRESS, [], sleep=sleep)) is False
    assert len(post.calls) == 5
    assert sleep.delays == [2, 4, 8, 10]


def test_non_2xx_response_is_retried(monkeypatch, sleep):
    post = FakePost([FakeResponse(status_code=429), FakeResponse(payload={"msg": "ok"})])
    monkeypatch.setattr("core.faucet.requests.post", post)

    assert asyncio.run(faucet.claim_faucet(ADDRESS, [], sleep=sleep)) is True
    assert len(post.calls) == 2
    assert sleep.delays == [2]


def test_each_attempt_picks_a_proxy_again(monkeypatch, sleep):
    pool = [ProxyDescriptor("http://a:b@one.example:1"), ProxyDescriptor("http://a:b@two.example:2")]
    post = FakePost([requests.Timeout("slow"), requests.Timeout("slow"), FakeResponse()])
    monkeypatch.setattr("core.faucet.requests.post", post)
    randomizer = StubRandomizer()

    assert asyncio.run(faucet.claim_faucet(ADDRESS, pool, randomizer, sleep)) is True
    assert [c["proxies"] for c in post.calls] == [pool[0].proxies, pool[1].proxies, pool[0].proxies]
    assert randomizer.choices == 3


def test_run_faucet_claims_every_wallet(monkeypatch, make_wallet_file):
    path = make_wallet_file(7)
    claimed = []

    async def fake_claim(address, pool):
        claimed.append(address)
        assert pool == []
        return True

    monkeypatch.setattr(faucet, "claim_faucet", fake_claim)
    results = asyncio.run(faucet.run_faucet_all_wallets(ProxySettings(""), path, batch_size=3))

    assert results == [True] * 7
    assert len(set(claimed)) == 7


def test_run_faucet_without_wallets_does_nothing(tmp_path):
    assert asyncio.run(faucet.run_faucet_all_wallets(ProxySettings(""), str(tmp_path / "none.json"))) == []
