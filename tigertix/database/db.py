from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from tigertix.core.config import DATABASE_URL, TRANSACTION_TIMEOUT

# Largest id SQLite can store in an INTEGER column
MAX_ROW_ID = 2**63 - 1

# Connection execution option: start the transaction with a deferred BEGIN
READ_ONLY = "tigertix_read_only"


class Base(DeclarativeBase):
    pass


def make_engine(url: str = DATABASE_URL, *, busy_timeout: float = TRANSACTION_TIMEOUT) -> Engine:
    """
    Create the engine shared by one store instance.

    On SQLite every transaction is opened with BEGIN IMMEDIATE, so the write
    lock is taken before the first read and writers are serialized by the
    database itself. Connections carrying the READ_ONLY execution option get
    a deferred BEGIN instead and read alongside a writer. `busy_timeout`
    bounds how long a transaction waits for a lock.
    """
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)

    engine = create_engine(
        url,
        connect_args={"check_same_thread": False, "timeout": busy_timeout},
    )

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # SQLAlchemy emits BEGIN itself, the driver must not
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        if conn.get_execution_options().get(READ_ONLY):
            conn.exec_driver_sql("BEGIN")
        else:
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
