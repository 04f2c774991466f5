# calculator_server/database.py

import os
import logging
from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, Session
from calculator_server.models import Base


logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """
    Owns the engine and session factory for one database URL.
    Built by the application factory and kept on app.state.
    """

    def __init__(self, url: str):
        self.url = make_url(url)
        is_sqlite = self.url.get_backend_name() == "sqlite"

        if is_sqlite and self.url.database and self.url.database != ":memory:":
            directory = os.path.dirname(self.url.database)
            if directory:
                os.makedirs(directory, exist_ok=True)

        self.engine = create_engine(
            self.url,
            connect_args={"check_same_thread": False} if is_sqlite else {},
        )
        if is_sqlite:
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)

        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=self.engine
        )

    def init_db(self):
        Base.metadata.create_all(bind=self.engine)
        logger.info("Database ready at %s", self.url.render_as_string(hide_password=True))

    def session(self) -> Session:
        return self.SessionLocal()

    def dispose(self):
        self.engine.dispose()


def get_db(request: Request):
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()
