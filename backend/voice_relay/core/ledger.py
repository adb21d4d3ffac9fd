import logging
import threading
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import or_, and_
from sqlalchemy.orm import sessionmaker

from voice_relay.models.call import Call
from voice_relay.schemas.call import CallRecord

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 10


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class CallLedger:
    """Call history, one row per call attempt.

    Every operation runs in its own short session under a single lock, so
    callers from different channel tasks see each write as atomic.
    """

    def __init__(self, session_factory: sessionmaker, history_limit: int = DEFAULT_HISTORY_LIMIT):
        self._session_factory = session_factory
        self._history_limit = history_limit
        self._lock = threading.Lock()
        self._last_created_at: Optional[datetime] = None

    def _next_timestamp(self) -> datetime:
        # Wall clocks can step backwards; creation order must not
        now = _utcnow()
        if self._last_created_at is not None and now < self._last_created_at:
            now = self._last_created_at
        self._last_created_at = now
        return now

    def create_record(self, caller: str, callee: str, duration: int = 0, status: str = "initiated") -> int:
        if duration < 0:
            raise ValueError("duration must be non-negative")
        with self._lock:
            with self._session_factory() as db:
                call = Call(
                    caller_id=caller,
                    callee_id=callee,
                    duration=duration,
                    status=status,
                    created_at=self._next_timestamp(),
                )
                db.add(call)
                db.commit()
                record_id = call.id
        logger.debug(f"Call {record_id} recorded: {caller} -> {callee} ({status})")
        return record_id

    def recent_calls(self, identity: str, limit: Optional[int] = None) -> List[CallRecord]:
        """Most recent calls where identity is caller or callee, newest first."""
        if limit is None:
            limit = self._history_limit
        if limit <= 0:
            return []
        with self._lock:
            with self._session_factory() as db:
                calls = (
                    db.query(Call)
                    .filter(or_(Call.caller_id == identity, Call.callee_id == identity))
                    .order_by(Call.created_at.desc(), Call.id.desc())
                    .limit(limit)
                    .all()
                )
                return [CallRecord.model_validate(call) for call in calls]

    def mark_status(self, identity_a: str, identity_b: str, status: str) -> Optional[int]:
        """Overwrite the status of the latest call between two identities.

        Either identity may be the caller. Returns the updated record id, or
        None when the pair has no calls.
        """
        with self._lock:
            with self._session_factory() as db:
                call = (
                    db.query(Call)
                    .filter(
                        or_(
                            and_(Call.caller_id == identity_a, Call.callee_id == identity_b),
                            and_(Call.caller_id == identity_b, Call.callee_id == identity_a),
                        )
                    )
                    .order_by(Call.created_at.desc(), Call.id.desc())
                    .first()
                )
                if call is None:
                    return None
                call.status = status
                db.commit()
                record_id = call.id
        logger.debug(f"Call {record_id} marked {status}")
        return record_id

    def get_record(self, record_id: int) -> Optional[CallRecord]:
        with self._lock:
            with self._session_factory() as db:
                call = db.get(Call, record_id)
                if call is None:
                    return None
                return CallRecord.model_validate(call)

    def count(self) -> int:
        with self._lock:
            with self._session_factory() as db:
                return db.query(Call).count()
