from sqlalchemy.orm import Session
from datetime import datetime
from persistence.models.app_settings import AppSettings


class AppSettingsRepository:
    def __init__(self, session: Session):
        self.session = session

    def get(self) -> AppSettings | None:
        return self.session.query(AppSettings).order_by(AppSettings.id).first()

    def save(self, **fields) -> AppSettings:
        row = self.get()
        if row is None:
            row = AppSettings(**fields)
            self.session.add(row)
        else:
            for key, value in fields.items():
                setattr(row, key, value)
            row.updated_at = datetime.utcnow()
        self.session.commit()
        self.session.refresh(row)
        return row
