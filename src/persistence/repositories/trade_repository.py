from sqlalchemy.orm import Session
from datetime import datetime
from persistence.models.trade import Trade


class TradeRepository:
    def __init__(self, session: Session):
        self.session = session

    def create(
        self,
        bot_id: int,
        symbol: str,
        side: str,
        price: float,
        quantity: float,
        total: float,
        type: str = "market",
        pnl: float | None = None,
        pnl_percent: float | None = None,
        indicators: list | None = None,
        order_id: str | None = None,
        status: str = "completed",
        created_at: datetime | None = None,
    ) -> Trade:
        trade = Trade(
            bot_id=bot_id,
            symbol=symbol,
            side=side,
            type=type,
            price=price,
            quantity=quantity,
            total=total,
            pnl=pnl,
            pnl_percent=pnl_percent,
            indicators=indicators,
            order_id=order_id,
            status=status,
            created_at=created_at or datetime.utcnow(),
        )
        self.session.add(trade)
        self.session.commit()
        self.session.refresh(trade)
        return trade

    def get(self, trade_id: int) -> Trade | None:
        return self.session.query(Trade).filter_by(id=trade_id).first()

    def get_all(self, bot_id: int | None = None):
        """Más recientes primero."""
        query = self.session.query(Trade)
        if bot_id is not None:
            query = query.filter_by(bot_id=bot_id)
        return query.order_by(Trade.created_at.desc(), Trade.id.desc()).all()

    def get_latest(self, bot_id: int) -> Trade | None:
        return (
            self.session.query(Trade)
            .filter_by(bot_id=bot_id)
            .order_by(Trade.created_at.desc(), Trade.id.desc())
            .first()
        )

    def delete_by_bot(self, bot_id: int | None = None) -> int:
        query = self.session.query(Trade)
        if bot_id is not None:
            query = query.filter_by(bot_id=bot_id)
        count = query.delete(synchronize_session=False)
        self.session.commit()
        return count
