from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event

db = SQLAlchemy()


def configure_sqlite_locking(app):
    """
    SQLite has no row locks, so every transaction is opened with
    BEGIN IMMEDIATE: the write lock is taken up front and competing
    writers wait on the busy timeout instead of failing mid-transaction.
    """
    with app.app_context():
        engine = db.engine
        if engine.dialect.name != "sqlite":
            return

        busy_timeout = int(app.config.get("SQLITE_BUSY_TIMEOUT_MS", 15000))

        @event.listens_for(engine, "connect")
        def _on_connect(dbapi_connection, connection_record):
            # hand transaction control to SQLAlchemy (pysqlite would defer BEGIN)
            dbapi_connection.isolation_level = None
            dbapi_connection.execute(f"PRAGMA busy_timeout = {busy_timeout}")

        @event.listens_for(engine, "begin")
        def _on_begin(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
