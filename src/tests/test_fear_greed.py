import pytest
import requests

from analysis.fear_greed import classify, classification_es, fear_greed_signal
from config.settings import settings
from contracts.indicator_settings import FearGreedSettings
from data.fear_greed_provider import FearGreedIndexProvider, CACHE_DURATION_SECONDS


class FakeResponse:
    def __init__(self, payload=None, status_code=200, text=""):
        self._payload = payload
        self.status_code = status_code
        self.ok = status_code < 400
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FakeSession:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append({"url": url, "params": params, "headers": headers, "timeout": timeout})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class Clock:
    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


def _payload(value, classification="Fear"):
    return {
        "status": {"error_code": "0", "error_message": None},
        "data": [{"value": value, "value_classification": classification, "timestamp": "1704067200"}],
    }


def test_classify_bands():
    assert classify(10) == "Extreme Fear"
    assert classify(24) == "Extreme Fear"
    assert classify(25) == "Fear"
    assert classify(50) == "Neutral"
    assert classify(51) == "Greed"
    assert classify(75) == "Extreme Greed"
    assert classification_es(80) == "Codicia Extrema"


def test_fear_greed_signal_rules():
    fg = FearGreedSettings(enabled=True, buy_threshold=25, sell_increase_percent=50, stop_loss_percent=30)
    assert fear_greed_signal(20, fg)[0] == "buy"
    assert fear_greed_signal(40, fg)[0] == "neutral"
    # +50% desde la entrada -> take profit
    side, description = fear_greed_signal(45, fg, entry_value=30)
    assert side == "sell"
    assert "Take Profit" in description
    # -30% desde la entrada -> stop loss
    side, description = fear_greed_signal(28, fg, entry_value=40)
    assert side == "sell"
    assert "Stop Loss" in description
    assert fear_greed_signal(35, fg, entry_value=30)[0] == "neutral"
    # la compra tiene prioridad sobre la variación
    assert fear_greed_signal(20, fg, entry_value=40)[0] == "buy"


def test_fetch_parses_and_sends_api_key():
    session = FakeSession([FakeResponse(_payload(22, "Extreme Fear"))])
    provider = FearGreedIndexProvider(api_key="cmc-key", session=session, clock=Clock())

    reading = provider.fetch_index()

    assert reading.value == 22
    assert reading.classification == "Extreme Fear"
    assert session.calls[0]["headers"]["X-CMC_PRO_API_KEY"] == "cmc-key"
    assert session.calls[0]["params"] == {"limit": 1}
    assert not provider.is_stale()


def test_fetch_uses_cache_for_24h():
    clock = Clock()
    session = FakeSession([FakeResponse(_payload(22)), FakeResponse(_payload(60, "Greed"))])
    provider = FearGreedIndexProvider(api_key="cmc-key", session=session, clock=clock)

    provider.fetch_index()
    clock.now += CACHE_DURATION_SECONDS - 1
    assert provider.fetch_index().value == 22
    assert len(session.calls) == 1

    clock.now += 2
    assert provider.is_stale()
    assert provider.fetch_index().value == 60
    assert len(session.calls) == 2


@pytest.mark.parametrize("failure", [
    FakeResponse(status_code=500, text="boom"),
    FakeResponse({"status": {"error_code": "1002", "error_message": "API key missing"}, "data": []}),
    FakeResponse({"status": {"error_code": "0"}, "data": []}),
    requests.exceptions.Timeout("timeout"),
])
def test_failures_return_last_cached_reading(failure):
    clock = Clock()
    session = FakeSession([FakeResponse(_payload(30)), failure])
    provider = FearGreedIndexProvider(api_key="cmc-key", session=session, clock=clock)
    provider.fetch_index()

    clock.now += CACHE_DURATION_SECONDS + 1
    reading = provider.fetch_index()

    assert reading is not None
    assert reading.value == 30
    # la lectura vieja sigue marcada como desactualizada
    assert provider.is_stale()


def test_failure_without_cache_returns_none():
    session = FakeSession([FakeResponse(status_code=401, text="unauthorized")])
    provider = FearGreedIndexProvider(api_key="cmc-key", session=session, clock=Clock())
    assert provider.fetch_index() is None


def test_missing_api_key_skips_request(monkeypatch):
    monkeypatch.setattr(settings, "COINMARKETCAP_API_KEY", None)
    session = FakeSession([])
    provider = FearGreedIndexProvider(session=session, clock=Clock())

    assert not provider.has_api_key()
    assert provider.fetch_index() is None
    assert session.calls == []


def test_api_key_from_app_settings(monkeypatch, storage):
    monkeypatch.setattr(settings, "COINMARKETCAP_API_KEY", None)
    storage.save_app_settings(coinmarketcap_api_key="stored-key")
    session = FakeSession([FakeResponse(_payload(40))])
    provider = FearGreedIndexProvider(storage=storage, session=session, clock=Clock())

    assert provider.fetch_index().value == 40
    assert session.calls[0]["headers"]["X-CMC_PRO_API_KEY"] == "stored-key"


def test_set_api_key_clears_cache():
    session = FakeSession([FakeResponse(_payload(22)), FakeResponse(_payload(70, "Greed"))])
    provider = FearGreedIndexProvider(api_key="old", session=session, clock=Clock())
    provider.fetch_index()

    provider.set_api_key("new")

    assert provider.cached is None
    assert provider.fetch_index().value == 70
    assert session.calls[1]["headers"]["X-CMC_PRO_API_KEY"] == "new"


@pytest.mark.asyncio
async def test_async_fetch_runs_in_executor():
    session = FakeSession([FakeResponse(_payload(55, "Greed"))])
    provider = FearGreedIndexProvider(api_key="cmc-key", session=session, clock=Clock())
    reading = await provider.async_fetch_index()
    assert reading.value == 55
