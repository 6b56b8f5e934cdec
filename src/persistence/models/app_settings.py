from sqlalchemy import Column, Integer, String, DateTime
from datetime import datetime
from persistence.db_connection import Base


class AppSettings(Base):
    __tablename__ = "app_settings"

    id = Column(Integer, primary_key=True)
    coinmarketcap_api_key = Column(String(128), nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
