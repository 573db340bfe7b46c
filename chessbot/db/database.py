"""Database engine and session factory. One engine is shared by the whole process."""

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from chessbot.db.schema import Base


def make_engine(database_url: str, echo: bool = False) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        # handlers run on the event loop thread, shutdown may close from a signal handler
        connect_args["check_same_thread"] = False
    engine = create_engine(database_url, echo=echo, connect_args=connect_args)

    # Ensure all tables are created
    Base.metadata.create_all(bind=engine)
    return engine


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
