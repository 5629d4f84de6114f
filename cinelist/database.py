from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from cinelist.config import settings


def configure_engine(engine: Engine) -> Engine:
    """Give SQLite real SAVEPOINT support and foreign keys.

    pysqlite's own transaction handling breaks ``Session.begin_nested()``,
    so BEGIN is emitted by SQLAlchemy instead. Other dialects are untouched.
    """
    if engine.dialect.name != "sqlite":
        return engine

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


engine = configure_engine(create_engine(settings.database_url))
SessionLocal = sessionmaker(bind=engine)


class Base(DeclarativeBase):
    pass
