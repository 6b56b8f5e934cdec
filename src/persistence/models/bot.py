from sqlalchemy import Column, Integer, String, DateTime, JSON, Float, Text
from sqlalchemy.orm import relationship
from datetime import datetime
from persistence.db_connection import Base


class Bot(Base):
    __tablename__ = "bots"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False)
    symbol = Column(String(20), nullable=False)  # BASE/QUOTE
    status = Column(String(20), default="stopped")  # stopped / active / paused / error

    # Capital
    investment = Column(Float, nullable=False)
    invested_amount = Column(Float, default=0.0)
    current_balance = Column(Float, default=0.0)  # cantidad del activo base
    avg_entry_price = Column(Float, default=0.0)

    # Riesgo
    stop_loss_percent = Column(Float, default=5.0)
    take_profit_percent = Column(Float, default=10.0)
    trailing_stop_percent = Column(Float, default=0.0)
    cooldown_minutes = Column(Integer, default=0)

    # Estado de riesgo en ejecución
    highest_price = Column(Float, nullable=True)
    trailing_stop_price = Column(Float, nullable=True)
    last_sell_time = Column(DateTime, nullable=True)
    last_sell_reason = Column(String(30), nullable=True)
    entry_sentiment = Column(Float, nullable=True)

    # Estrategia
    indicator_settings = Column(JSON, nullable=False)
    min_signals = Column(Integer, default=2)
    interval = Column(String(5), default="1h")

    # Telemetría
    total_trades = Column(Integer, default=0)
    winning_trades = Column(Integer, default=0)
    total_pnl = Column(Float, default=0.0)
    last_signal = Column(String(10), nullable=True)
    last_signal_time = Column(DateTime, nullable=True)
    last_indicator_values = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    trades = relationship("Trade", back_populates="bot")
    activities = relationship("Activity", back_populates="bot")

    @property
    def has_position(self) -> bool:
        return (self.current_balance or 0) > 0
