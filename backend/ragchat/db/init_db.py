from sqlalchemy import text

from ragchat.db.base import Base
from ragchat.db.session import engine
import ragchat.db.models  # noqa


def init_db():
    if engine.dialect.name == "postgresql":
        with engine.begin() as conn:
            conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
    Base.metadata.create_all(bind=engine)


if __name__ == "__main__":
    init_db()
