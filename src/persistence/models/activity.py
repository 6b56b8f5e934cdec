from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from persistence.db_connection import Base


class Activity(Base):
    __tablename__ = "activities"

    id = Column(Integer, primary_key=True, index=True)
    bot_id = Column(Integer, ForeignKey("bots.id"), nullable=True, index=True)
    bot_name = Column(String(50), nullable=True)
    symbol = Column(String(20), nullable=True)
    type = Column(String(10), nullable=False)  # start / stop / buy / sell / analysis / error
    message = Column(String(1024), nullable=False)
    buy_signals = Column(Integer, nullable=True)
    sell_signals = Column(Integer, nullable=True)
    indicators = Column(JSON, nullable=True)
    timestamp = Column(DateTime, default=datetime.utcnow)

    bot = relationship("Bot", back_populates="activities")
