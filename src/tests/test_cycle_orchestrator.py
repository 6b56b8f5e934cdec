from datetime import datetime, timedelta

import pytest

from engine.cycle_orchestrator import CycleOrchestrator
from exceptions.db_exceptions import DatabaseError
from fakes import FakeAnalyzer, make_analysis
from position import risk_evaluator


def _buy():
    return make_analysis(buy=["RSI", "MACD"], neutral=["Bollinger Bands", "EMA"])


@pytest.mark.asyncio
async def test_round_trip_buy_then_take_profit(storage, connections, fake_client, bot_factory):
    analyzer = FakeAnalyzer(_buy())
    orchestrator = CycleOrchestrator(storage, connections, analyzer)
    bot = bot_factory(investment=100.0, take_profit_percent=10)

    await orchestrator.run_cycle(bot.id)
    assert storage.get_bot(bot.id).current_balance == 1.0

    fake_client.price = 111.0
    await orchestrator.run_cycle(bot.id)

    stored = storage.get_bot(bot.id)
    assert stored.current_balance == 0.0
    assert stored.invested_amount == 0.0
    assert stored.avg_entry_price == 0.0
    assert stored.last_sell_reason == "TAKE_PROFIT"
    assert stored.last_sell_time is not None
    assert stored.total_trades == 2
    assert stored.winning_trades == 1
    assert stored.total_pnl == pytest.approx(11.0)
    assert stored.status == "active"

    sell = storage.get_all_trades(bot.id)[0]
    assert sell.side == "sell"
    assert sell.pnl == pytest.approx(11.0)
    assert sell.pnl_percent == pytest.approx(11.0)
    assert sell.indicators == ["TAKE_PROFIT"]
    assert fake_client.orders[-1] == ("BTC/USDT", "SELL", 1.0)


@pytest.mark.asyncio
async def test_losing_sell_counts_trade_without_win(storage, connections, fake_client, bot_factory):
    orchestrator = CycleOrchestrator(storage, connections, FakeAnalyzer())
    bot = bot_factory(current_balance=2.0, invested_amount=200.0, avg_entry_price=100.0,
                      stop_loss_percent=5, total_trades=1)
    fake_client.price = 94.0

    await orchestrator.run_cycle(bot.id)

    stored = storage.get_bot(bot.id)
    assert stored.last_sell_reason == "STOP_LOSS"
    assert stored.total_trades == 2
    assert stored.winning_trades == 0
    assert stored.total_pnl == pytest.approx(-12.0)


@pytest.mark.asyncio
async def test_indicator_exit_records_voting_names(storage, connections, bot_factory):
    analyzer = FakeAnalyzer(make_analysis(sell=["RSI", "EMA"], neutral=["MACD", "Bollinger Bands"]))
    orchestrator = CycleOrchestrator(storage, connections, analyzer)
    bot = bot_factory(current_balance=1.0, invested_amount=100.0, avg_entry_price=100.0)

    await orchestrator.run_cycle(bot.id)

    sell = storage.get_all_trades(bot.id)[0]
    assert sell.indicators == ["RSI", "EMA"]
    assert storage.get_bot(bot.id).last_sell_reason == "INDICATOR_OVERBOUGHT"


@pytest.mark.asyncio
async def test_dca_when_holding_and_no_exit(storage, connections, fake_client, bot_factory):
    orchestrator = CycleOrchestrator(storage, connections, FakeAnalyzer(_buy()))
    bot = bot_factory(investment=300.0, current_balance=1.0, invested_amount=100.0, avg_entry_price=100.0)

    await orchestrator.run_cycle(bot.id)

    assert fake_client.orders == [("BTC/USDT", "BUY", 2.0)]
    assert storage.get_bot(bot.id).current_balance == pytest.approx(3.0)


@pytest.mark.asyncio
async def test_threshold_mismatch_skips_dca(storage, connections, fake_client, bot_factory, monkeypatch):
    monkeypatch.setattr(risk_evaluator, "take_profit_checks", lambda avg, price, pct: (False, True))
    orchestrator = CycleOrchestrator(storage, connections, FakeAnalyzer(_buy()))
    bot = bot_factory(investment=300.0, current_balance=1.0, invested_amount=100.0, avg_entry_price=100.0)

    await orchestrator.run_cycle(bot.id)

    assert fake_client.orders == []
    assert storage.get_bot(bot.id).current_balance == 1.0


@pytest.mark.asyncio
async def test_cooldown_skips_entry(storage, connections, fake_client, bot_factory):
    analyzer = FakeAnalyzer(_buy())
    orchestrator = CycleOrchestrator(storage, connections, analyzer)
    bot = bot_factory(cooldown_minutes=5, last_sell_time=datetime.utcnow() - timedelta(minutes=2),
                      last_sell_reason="STOP_LOSS")

    await orchestrator.run_cycle(bot.id)

    assert analyzer.calls == []
    assert fake_client.orders == []
    activity = storage.get_activities(bot_id=bot.id)[0]
    assert activity.type == "analysis"
    assert "3 min restantes" in activity.message


@pytest.mark.asyncio
async def test_stale_timer_does_nothing(storage, connections, fake_client, bot_factory):
    orchestrator = CycleOrchestrator(storage, connections, FakeAnalyzer(_buy()))
    bot = bot_factory(status="paused")

    await orchestrator.run_cycle(bot.id)
    await orchestrator.run_cycle(9999)

    assert fake_client.orders == []
    assert storage.get_activities() == []


@pytest.mark.asyncio
async def test_recoverable_error_keeps_bot_active(storage, connections, fake_client, bot_factory):
    fake_client.balances["USDT"] = 1.0
    orchestrator = CycleOrchestrator(storage, connections, FakeAnalyzer(_buy()))
    bot = bot_factory()

    await orchestrator.run_cycle(bot.id)

    assert storage.get_bot(bot.id).status == "active"
    activity = storage.get_activities(bot_id=bot.id)[0]
    assert activity.type == "error"
    assert "Saldo insuficiente" in activity.message


@pytest.mark.asyncio
async def test_sell_failure_keeps_position(storage, connections, fake_client, bot_factory):
    fake_client.fail_orders = True
    fake_client.price = 94.0
    orchestrator = CycleOrchestrator(storage, connections, FakeAnalyzer())
    bot = bot_factory(current_balance=1.0, invested_amount=100.0, avg_entry_price=100.0)

    await orchestrator.run_cycle(bot.id)

    stored = storage.get_bot(bot.id)
    assert stored.status == "active"
    assert stored.current_balance == 1.0
    assert storage.get_all_trades(bot.id) == []


@pytest.mark.asyncio
async def test_disconnected_venue_moves_bot_to_error(storage, connections, bot_factory):
    connections.connected = False
    orchestrator = CycleOrchestrator(storage, connections, FakeAnalyzer())
    bot = bot_factory()

    await orchestrator.run_cycle(bot.id)

    assert storage.get_bot(bot.id).status == "error"
    activity = storage.get_activities(bot_id=bot.id)[0]
    assert activity.type == "error"
    assert activity.message.startswith("Error en el ciclo")


@pytest.mark.asyncio
async def test_failed_error_activity_still_moves_bot_to_error(storage, connections, fake_client,
                                                              bot_factory, monkeypatch):
    fake_client.fail_price = RuntimeError("boom")
    orchestrator = CycleOrchestrator(storage, connections, FakeAnalyzer())
    bot = bot_factory()

    def failing_add_activity(**fields):
        raise DatabaseError("tabla bloqueada")

    monkeypatch.setattr(storage, "add_activity", failing_add_activity)

    await orchestrator.run_cycle(bot.id)

    assert storage.get_bot(bot.id).status == "error"
