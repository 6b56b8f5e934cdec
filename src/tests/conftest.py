import sys
from datetime import datetime
from pathlib import Path
import pytest

# Asegurar que 'src' esté en sys.path para imports del proyecto
ROOT = Path(__file__).resolve().parents[1]  # apunta a .../src
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from contracts.indicator_settings import IndicatorSettings
from fakes import FakeVenueClient, FakeConnections, FakeAnalyzer


@pytest.fixture
def fake_client():
    return FakeVenueClient()


@pytest.fixture
def connections(fake_client):
    return FakeConnections(fake_client)


@pytest.fixture
def analyzer():
    return FakeAnalyzer()


@pytest.fixture
def bot_factory(storage):
    def _create(**overrides):
        fields = {
            "name": "Bot Test",
            "symbol": "BTC/USDT",
            "status": "active",
            "investment": 100.0,
            "stop_loss_percent": 5.0,
            "take_profit_percent": 10.0,
            "trailing_stop_percent": 0.0,
            "cooldown_minutes": 0,
            "min_signals": 2,
            "interval": "1h",
            "indicator_settings": IndicatorSettings().to_dict(),
        }
        fields.update(overrides)
        return storage.create_bot(**fields)
    return _create


@pytest.fixture
def trade_factory(storage):
    def _create(bot, side, price, quantity, created_at=None, status="completed", pnl=None):
        return storage.create_trade(
            bot_id=bot.id,
            symbol=bot.symbol,
            side=side,
            price=price,
            quantity=quantity,
            total=price * quantity,
            pnl=pnl,
            status=status,
            created_at=created_at or datetime.utcnow(),
        )
    return _create
