"""
Usage ledger for quota-limited resources.

Per-user, per-resource-type counters for the current calendar month.
Increment and decrement are single atomic statements so concurrent callers
never lose an update.
"""
import logging
from typing import Dict, Optional
from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from entitlements.db.models.usage import UsageCounter
from entitlements.core.plan_catalog import SUPPORTED_RESOURCES
from entitlements.core.timeutils import get_period_key, utcnow

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _validate_resource_type(resource_type: str) -> None:
    if resource_type not in SUPPORTED_RESOURCES:
        raise ValueError(f"Unsupported resource type: {resource_type}")


def _counter_filter(user_id: int, resource_type: str, period_key: str):
    return (
        UsageCounter.user_id == user_id,
        UsageCounter.resource_type == resource_type,
        UsageCounter.period_key == period_key,
    )


def current_count(
    db: Session,
    user_id: int,
    resource_type: str,
    period_key: Optional[str] = None,
) -> int:
    """
    Get the usage count for the period (current month by default).
    
    Returns 0 when no counter row exists yet.
    """
    _validate_resource_type(resource_type)
    period_key = period_key or get_period_key()
    count = db.execute(
        select(UsageCounter.count).where(*_counter_filter(user_id, resource_type, period_key))
    ).scalar()
    return int(count or 0)


def get_period_usage(db: Session, user_id: int, period_key: Optional[str] = None) -> Dict[str, int]:
    """
    Get per-resource usage counts for a user in a period.
    
    Returns:
        Dictionary mapping every supported resource type to its count
    """
    period_key = period_key or get_period_key()
    rows = db.execute(
        select(UsageCounter.resource_type, UsageCounter.count).where(
            UsageCounter.user_id == user_id,
            UsageCounter.period_key == period_key,
        )
    ).all()
    usage = {resource_type: 0 for resource_type in SUPPORTED_RESOURCES}
    usage.update({resource_type: int(count) for resource_type, count in rows})
    return usage


def _locked_counter(db: Session, user_id: int, resource_type: str, period_key: str) -> Optional[UsageCounter]:
    return (
        db.query(UsageCounter)
        .filter(*_counter_filter(user_id, resource_type, period_key))
        .with_for_update()
        .first()
    )


def _locked_increment(db: Session, user_id: int, resource_type: str, period_key: str) -> None:
    """Row-lock fallback for dialects without INSERT ... ON CONFLICT."""
    counter = _locked_counter(db, user_id, resource_type, period_key)
    if counter is None:
        # Nothing to lock yet: insert under a savepoint and fall back to the
        # locked update if a concurrent first increment created the row
        savepoint = db.begin_nested()
        try:
            db.add(UsageCounter(
                user_id=user_id,
                resource_type=resource_type,
                period_key=period_key,
                count=1,
            ))
            db.flush()
            savepoint.commit()
            return
        except IntegrityError:
            savepoint.rollback()
            logger.info(
                f"Concurrent counter insert: user_id={user_id}, resource={resource_type}, "
                f"period={period_key}, retrying as update"
            )
        counter = _locked_counter(db, user_id, resource_type, period_key)

    counter.count = UsageCounter.count + 1
    counter.updated_at = utcnow()
    db.flush()


def increment(db: Session, user_id: int, resource_type: str) -> int:
    """
    Add 1 to the current period counter, creating it on first use.
    
    Uses INSERT ... ON CONFLICT DO UPDATE SET count = count + 1 so the
    read-modify-write happens inside the database in one statement.
    
    Returns:
        Count after the increment
        
    Raises:
        SQLAlchemyError: On datastore failure (session is rolled back)
    """
    _validate_resource_type(resource_type)
    period_key = get_period_key()
    now = utcnow()
    
    try:
        insert = _UPSERT_DIALECTS.get(db.get_bind().dialect.name)
        if insert is None:
            _locked_increment(db, user_id, resource_type, period_key)
        else:
            stmt = insert(UsageCounter).values(
                user_id=user_id,
                resource_type=resource_type,
                period_key=period_key,
                count=1,
                updated_at=now,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=["user_id", "resource_type", "period_key"],
                set_={"count": UsageCounter.count + 1, "updated_at": now},
            )
            db.execute(stmt)
        
        new_count = current_count(db, user_id, resource_type, period_key)
        db.commit()
    except Exception:
        db.rollback()
        raise
    
    logger.info(
        f"Usage incremented: user_id={user_id}, resource={resource_type}, "
        f"period={period_key}, count={new_count}"
    )
    return new_count


def decrement(db: Session, user_id: int, resource_type: str) -> int:
    """
    Subtract 1 from the current period counter, floored at 0.
    
    Decrementing an absent or zero counter is a no-op.
    
    Returns:
        Count after the decrement
    """
    _validate_resource_type(resource_type)
    period_key = get_period_key()
    
    try:
        db.execute(
            update(UsageCounter)
            .where(*_counter_filter(user_id, resource_type, period_key), UsageCounter.count > 0)
            .values(count=UsageCounter.count - 1, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        new_count = current_count(db, user_id, resource_type, period_key)
        db.commit()
    except Exception:
        db.rollback()
        raise
    
    logger.info(
        f"Usage decremented: user_id={user_id}, resource={resource_type}, "
        f"period={period_key}, count={new_count}"
    )
    return new_count


def reset(db: Session, user_id: int) -> int:
    """
    Force every current-period counter of a user back to 0.
    
    Administrative correction only; normal flow never resets.
    
    Returns:
        Number of counter rows reset
    """
    period_key = get_period_key()
    try:
        result = db.execute(
            update(UsageCounter)
            .where(UsageCounter.user_id == user_id, UsageCounter.period_key == period_key)
            .values(count=0, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    
    logger.warning(f"Usage reset: user_id={user_id}, period={period_key}, rows={result.rowcount}")
    return result.rowcount
