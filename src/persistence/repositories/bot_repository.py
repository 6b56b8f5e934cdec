from sqlalchemy.orm import Session
from datetime import datetime
from persistence.models.bot import Bot


class BotRepository:
    def __init__(self, session: Session):
        self.session = session

    def create(self, **fields) -> Bot:
        bot = Bot(**fields)
        self.session.add(bot)
        self.session.commit()
        self.session.refresh(bot)
        return bot

    def get(self, bot_id: int) -> Bot | None:
        return self.session.query(Bot).filter_by(id=bot_id).first()

    def get_all(self):
        return self.session.query(Bot).order_by(Bot.id).all()

    def get_by_status(self, status: str):
        return self.session.query(Bot).filter_by(status=status).order_by(Bot.id).all()

    def update(self, bot_id: int, **changes) -> Bot | None:
        bot = self.get(bot_id)
        if bot:
            for key, value in changes.items():
                if not hasattr(Bot, key):
                    raise AttributeError(f"Bot no tiene el campo '{key}'")
                setattr(bot, key, value)
            bot.updated_at = datetime.utcnow()
            self.session.commit()
            self.session.refresh(bot)
        return bot

    def delete(self, bot_id: int) -> bool:
        bot = self.get(bot_id)
        if not bot:
            return False
        self.session.delete(bot)
        self.session.commit()
        return True

    def reset_counters(self, bot_id: int | None = None) -> int:
        query = self.session.query(Bot)
        if bot_id is not None:
            query = query.filter_by(id=bot_id)
        count = query.update(
            {Bot.total_trades: 0, Bot.winning_trades: 0, Bot.total_pnl: 0.0},
            synchronize_session=False,
        )
        self.session.commit()
        return count
