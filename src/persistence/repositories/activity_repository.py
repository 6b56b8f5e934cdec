from sqlalchemy.orm import Session
from datetime import datetime
from persistence.models.activity import Activity


class ActivityRepository:
    def __init__(self, session: Session):
        self.session = session

    def add(
        self,
        type: str,
        message: str,
        bot_id: int | None = None,
        bot_name: str | None = None,
        symbol: str | None = None,
        buy_signals: int | None = None,
        sell_signals: int | None = None,
        indicators: list | None = None,
        timestamp: datetime | None = None,
    ) -> Activity:
        activity = Activity(
            bot_id=bot_id,
            bot_name=bot_name,
            symbol=symbol,
            type=type,
            message=message,
            buy_signals=buy_signals,
            sell_signals=sell_signals,
            indicators=indicators,
            timestamp=timestamp or datetime.utcnow(),
        )
        self.session.add(activity)
        self.session.commit()
        self.session.refresh(activity)
        return activity

    def prune(self, retention: int) -> int:
        """Elimina las entradas más antiguas por encima de `retention`."""
        keep_ids = [
            row.id
            for row in self.session.query(Activity.id)
            .order_by(Activity.timestamp.desc(), Activity.id.desc())
            .limit(retention)
            .all()
        ]
        if not keep_ids:
            return 0
        count = (
            self.session.query(Activity)
            .filter(Activity.id.notin_(keep_ids))
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return count

    def get_recent(self, limit: int = 50, bot_id: int | None = None):
        query = self.session.query(Activity)
        if bot_id is not None:
            query = query.filter_by(bot_id=bot_id)
        return (
            query.order_by(Activity.timestamp.desc(), Activity.id.desc())
            .limit(limit)
            .all()
        )

    def delete_by_bot(self, bot_id: int | None = None) -> int:
        query = self.session.query(Activity)
        if bot_id is not None:
            query = query.filter_by(bot_id=bot_id)
        count = query.delete(synchronize_session=False)
        self.session.commit()
        return count
