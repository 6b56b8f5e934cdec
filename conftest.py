# conftest.py
# Añade la carpeta `src` al PYTHONPATH para que las importaciones como
# `persistence`, `utils`, `data`, etc. (que viven en src/) funcionen
# durante la ejecución de pytest.
import sys
import os
ROOT = os.path.dirname(__file__)
SRC = os.path.join(ROOT, "src")
if SRC not in sys.path:
    sys.path.insert(0, SRC)

import pytest

# --- Fixture DB de prueba (SQLite in-memory) ---
from persistence.db_connection import Database
from persistence.storage import Storage


@pytest.fixture
def db():
    database = Database("sqlite://")
    database.create_tables()
    yield database
    database.engine.dispose()


@pytest.fixture
def storage(db):
    return Storage(db, activity_retention=100)
