# calculator_server/core/history.py

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from sqlalchemy import func
from sqlalchemy.orm import Session

from calculator_server.core.users import isoformat
from calculator_server.models.calculation import Calculation


logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


@dataclass
class HistoryPage:
    items: list
    total: int
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        return self.offset + self.limit < self.total

    def pagination(self) -> dict:
        return {
            "total": self.total,
            "limit": self.limit,
            "offset": self.offset,
            "hasMore": self.has_more,
        }


def _as_utc_naive(value: datetime | None) -> datetime | None:
    # Columns hold naive UTC; aware filters are converted before comparing
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def public_calculation(calc: Calculation) -> dict:
    return {
        "id": calc.id,
        "operation": calc.operation,
        "operands": calc.operands,
        "result": calc.result,
        "timestamp": isoformat(calc.timestamp),
        "metadata": {
            "userAgent": calc.user_agent,
            "ipAddress": calc.ip_address,
        },
    }


def record_calculation(
    db: Session,
    user_id: int,
    operation: str,
    operands: dict,
    result: float,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> Calculation:
    calc = Calculation(
        user_id=user_id,
        operation=operation,
        operands=operands,
        result=result,
        user_agent=user_agent,
        ip_address=ip_address,
    )
    db.add(calc)
    db.commit()
    db.refresh(calc)
    return calc


def query_history(
    db: Session,
    user_id: int,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
    operation: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> HistoryPage:
    """
    Returns one page of a user's history, newest first.
    The date range is inclusive on both ends.
    """
    limit = max(1, min(limit, MAX_LIMIT))
    offset = max(0, offset)

    query = db.query(Calculation).filter(Calculation.user_id == user_id)
    if operation:
        query = query.filter(Calculation.operation == operation)
    if start_date:
        query = query.filter(Calculation.timestamp >= _as_utc_naive(start_date))
    if end_date:
        query = query.filter(Calculation.timestamp <= _as_utc_naive(end_date))

    total = query.count()
    items = (
        query.order_by(Calculation.timestamp.desc(), Calculation.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return HistoryPage(items=items, total=total, limit=limit, offset=offset)


def clear_history(db: Session, user_id: int) -> int:
    deleted = (
        db.query(Calculation)
        .filter(Calculation.user_id == user_id)
        .delete(synchronize_session=False)
    )
    db.commit()
    logger.info("Cleared %d calculations for user id=%s", deleted, user_id)
    return deleted


def get_user_stats(db: Session, user_id: int) -> dict:
    count = func.count(Calculation.id).label("count")
    rows = (
        db.query(Calculation.operation, count, func.max(Calculation.timestamp).label("last_used"))
        .filter(Calculation.user_id == user_id)
        .group_by(Calculation.operation)
        .order_by(count.desc(), Calculation.operation)
        .all()
    )

    first, last = (
        db.query(func.min(Calculation.timestamp), func.max(Calculation.timestamp))
        .filter(Calculation.user_id == user_id)
        .one()
    )

    return {
        "totalCalculations": sum(row.count for row in rows),
        "operationStats": [
            {"operation": row.operation, "count": row.count, "lastUsed": isoformat(row.last_used)}
            for row in rows
        ],
        "firstCalculation": isoformat(first),
        "lastCalculation": isoformat(last),
    }
