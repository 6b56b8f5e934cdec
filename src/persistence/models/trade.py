from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from persistence.db_connection import Base


class Trade(Base):
    __tablename__ = "trades"

    id = Column(Integer, primary_key=True, index=True)
    bot_id = Column(Integer, ForeignKey("bots.id"), index=True)
    symbol = Column(String(20), nullable=False)
    side = Column(String(4), nullable=False)  # buy / sell
    type = Column(String(10), default="market")
    price = Column(Float, nullable=False)  # precio ejecutado
    quantity = Column(Float, nullable=False)  # cantidad ejecutada
    total = Column(Float, nullable=False)  # nocional en moneda de cotización
    pnl = Column(Float, nullable=True)  # solo ventas
    pnl_percent = Column(Float, nullable=True)
    indicators = Column(JSON, nullable=True)  # nombres que dispararon la operación
    order_id = Column(String(64), nullable=True)
    status = Column(String(20), default="completed")
    created_at = Column(DateTime, default=datetime.utcnow)

    bot = relationship("Bot", back_populates="trades")
