from contextlib import contextmanager
import importlib
import pkgutil

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from config.settings import settings
from exceptions.db_exceptions import DatabaseError
from persistence import models


Base = declarative_base()


def load_models(package):
    """Importa dinámicamente todos los módulos dentro del paquete 'models'."""
    for _, module_name, _ in pkgutil.iter_modules(package.__path__):
        importlib.import_module(f"{package.__name__}.{module_name}")


class Database:
    def __init__(self, url: str | None = None):
        # Sin url explícita se usa settings.DATABASE_URL (PostgreSQL por defecto)
        self.url = url or settings.DATABASE_URL
        engine_kwargs = {"echo": False}
        if self.url.startswith("sqlite") and (":memory:" in self.url or self.url == "sqlite://"):
            # Una única conexión compartida para que la base en memoria sobreviva entre sesiones
            engine_kwargs["poolclass"] = StaticPool
            engine_kwargs["connect_args"] = {"check_same_thread": False}
        self.engine = create_engine(self.url, **engine_kwargs)
        self.SessionLocal = sessionmaker(
            bind=self.engine, autocommit=False, autoflush=False, expire_on_commit=False
        )

    def create_tables(self):
        # Carga todos los modelos antes de crear las tablas
        load_models(models)
        Base.metadata.create_all(self.engine)

    def drop_tables(self):
        load_models(models)
        Base.metadata.drop_all(self.engine)

    def get_session(self):
        return self.SessionLocal()

    @contextmanager
    def session_scope(self):
        """Sesión corta: rollback si algo falla, siempre se cierra."""
        session = self.get_session()
        try:
            yield session
        except SQLAlchemyError as e:
            session.rollback()
            raise DatabaseError(f"Error de base de datos: {e}") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
