"""Create all tables. Run on app startup."""
from sqlalchemy.engine import Engine

from pharmaledger.db.base import Base
from pharmaledger.db.session import engine as default_engine
from pharmaledger import models  # noqa: F401 - register models


def init_db(bind: Engine | None = None):
    Base.metadata.create_all(bind=bind or default_engine)
