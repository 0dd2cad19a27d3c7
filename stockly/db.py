from contextlib import contextmanager
import logging
import sqlite3
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from .errors import ValidationError
from .models import Base, StockLevel, StockMovement

TWOPLACES = Decimal("0.01")

logger = logging.getLogger(__name__)


def to_decimal(value) -> Decimal:
    """Return ``value`` as a money amount; ``None`` and blanks become zero."""
    if value is None or value == "":
        return Decimal("0.00")
    if isinstance(value, Decimal):
        return value.quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    return Decimal(str(value)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def parse_amount(value, label: str = "amount") -> Decimal:
    """Like :func:`to_decimal` but rejects text, NaN and infinities with a 400."""
    try:
        amount = to_decimal(value)
    except (ArithmeticError, TypeError, ValueError):
        raise ValidationError(f"Invalid {label}: {value!r}") from None
    if not amount.is_finite():
        raise ValidationError(f"Invalid {label}: {value!r}")
    return amount


engine = None
SessionLocal = None

SQLITE_CONNECT_ARGS = {"check_same_thread": False, "timeout": 5}
SQLITE_JOURNAL_MODE = "WAL"
SQLITE_BUSY_TIMEOUT_MS = 30000


def _configure_sqlite_connection(dbapi_connection):
    """Apply common SQLite PRAGMA settings to the given connection."""

    cursor = dbapi_connection.cursor()
    try:
        try:
            cursor.execute(f"PRAGMA journal_mode={SQLITE_JOURNAL_MODE}")
            cursor.fetchone()
        except sqlite3.OperationalError as exc:
            logger.warning(
                "Unable to set SQLite journal_mode to %s; continuing without WAL mode: %s",
                SQLITE_JOURNAL_MODE,
                exc,
            )

        try:
            cursor.execute(f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT_MS}")
        except sqlite3.OperationalError as exc:
            logger.warning(
                "Unable to set SQLite busy_timeout; continuing with default timeout: %s",
                exc,
            )

        try:
            cursor.execute("PRAGMA foreign_keys=ON")
        except sqlite3.OperationalError as exc:
            logger.warning(
                "Unable to enable SQLite foreign_keys; continuing without enforcement: %s",
                exc,
            )
    finally:
        cursor.close()


def sqlite_connect(db_path=None, **kwargs):
    """Return a raw SQLite connection with standard settings applied."""

    if db_path is None:
        if engine is None:
            raise RuntimeError(
                "Database not configured. Call configure_engine() first."
            )
        db_path = engine.url.database

    params = {**SQLITE_CONNECT_ARGS, **kwargs}
    conn = sqlite3.connect(str(db_path), **params)
    _configure_sqlite_connection(conn)
    return conn


def configure_engine(db_path):
    """Create SQLAlchemy engine and session factory for ``db_path``."""
    global engine, SessionLocal
    if engine is not None:
        engine.dispose()
    engine = create_engine(
        f"sqlite:///{db_path}",
        future=True,
        connect_args=SQLITE_CONNECT_ARGS,
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragmas(dbapi_connection, _record):  # pragma: no cover - SQLAlchemy hook
        _configure_sqlite_connection(dbapi_connection)

    SessionLocal = sessionmaker(
        bind=engine,
        autoflush=False,
        expire_on_commit=False,  # keep returned objects usable after commit
    )


@contextmanager
def get_session():
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception as e:
        session.rollback()
        logger.exception("Database session error: %s", e)
        raise
    finally:
        session.close()


def init_db():
    """Create any missing tables."""
    Base.metadata.create_all(engine)


def reset_db():
    """Drop all tables and recreate them from the models."""
    Base.metadata.drop_all(engine)
    with sqlite_connect() as conn:
        conn.execute("DROP TABLE IF EXISTS alembic_version")
        conn.commit()
    Base.metadata.create_all(engine)


def adjust_stock_level(session, stock_item_id, site_id, delta) -> StockLevel:
    """Add ``delta`` to the item's level at ``site_id``, creating the row if needed."""
    delta = to_decimal(delta)
    level = (
        session.query(StockLevel)
        .filter_by(stock_item_id=stock_item_id, site_id=site_id)
        .first()
    )
    if level:
        level.quantity = to_decimal(level.quantity) + delta
    else:
        level = StockLevel(stock_item_id=stock_item_id, site_id=site_id, quantity=delta)
        session.add(level)
        session.flush()
    return level


def record_movement(
    session,
    company_id,
    stock_item_id,
    movement_type,
    quantity,
    unit_cost=None,
    ref_type=None,
    ref_id=None,
    to_site_id=None,
):
    """Append a stock movement row inside an existing session."""
    session.add(
        StockMovement(
            company_id=company_id,
            stock_item_id=stock_item_id,
            movement_type=movement_type,
            quantity=to_decimal(quantity),
            unit_cost=None if unit_cost is None else to_decimal(unit_cost),
            ref_type=ref_type,
            ref_id=ref_id,
            to_site_id=to_site_id,
        )
    )
