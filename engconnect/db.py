import logging

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlmodel import SQLModel, Session, create_engine
from tenacity import before_sleep_log, retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from engconnect.config import get_settings

logger = logging.getLogger(__name__)


def make_engine(url: str):
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, echo=False, connect_args=connect_args)


engine = make_engine(get_settings().db_url)


def get_session():
    with Session(engine) as session:
        yield session


_log_retry = before_sleep_log(logger, logging.WARNING)


def _rollback_before_retry(retry_state):
    # a dropped connection leaves the session unusable until its transaction is rolled back
    _log_retry(retry_state)
    retry_state.args[0].rollback()


# Reads only. Writes are never retried: an insert may have landed before the fault.
# Every wrapped function takes the session as its first argument.
read_retry = retry(
    retry=retry_if_exception_type(OperationalError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.05, max=1),
    before_sleep=_rollback_before_retry,
    reraise=True,
)


@read_retry
def fetch(session: Session, model, ident):
    return session.get(model, ident)


@read_retry
def fetch_first(session: Session, statement):
    return session.exec(statement).first()


@read_retry
def fetch_all(session: Session, statement):
    return session.exec(statement).all()


def ensure_ledger_indexes(bind) -> None:
    """Create the ledger's unique indexes on tables that predate them."""
    from engconnect.models import LEDGER_INDEXES

    with bind.begin() as conn:
        for table, (name, columns) in LEDGER_INDEXES.items():
            conn.execute(text(f"CREATE UNIQUE INDEX IF NOT EXISTS {name} ON {table} ({', '.join(columns)})"))


def init_db(bind=None):
    from engconnect import models  # ensure models are imported
    bind = bind or engine
    SQLModel.metadata.create_all(bind)
    ensure_ledger_indexes(bind)
