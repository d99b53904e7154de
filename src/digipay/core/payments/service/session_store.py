import logging
import uuid
from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Callable, Optional

from digipay.config import settings
from digipay.core.exceptions.PaymentException import PaymentSessionNotFoundException
from digipay.core.payments.model.paymentsession import PaymentFormFields
from digipay.core.payments.service.orchestrator import PaymentOrchestrator

logger = logging.getLogger(__name__)


class PaymentSessionStore:
    """
    In-memory orchestrators, one per collector session. Nothing is persisted.

    Sessions idle for longer than the TTL are dropped, and once the store is
    full the least recently used idle session makes room for a new one.
    Sessions with an operation in flight are never evicted.
    """

    def __init__(
        self,
        orchestrator_factory: Callable[[PaymentFormFields], PaymentOrchestrator],
        ttl: Optional[timedelta] = None,
        max_sessions: Optional[int] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.orchestrator_factory = orchestrator_factory
        self.ttl = ttl or timedelta(minutes=settings.SESSION_TTL_MINUTES)
        self.max_sessions = max_sessions or settings.MAX_SESSIONS
        self.clock = clock
        # session id -> (orchestrator, last access), least recently used first
        self._sessions: "OrderedDict[str, tuple]" = OrderedDict()

    def create(self, form: Optional[PaymentFormFields] = None) -> str:
        self._evict_expired()
        self._evict_overflow()
        session_id = uuid.uuid4().hex
        self._sessions[session_id] = (self.orchestrator_factory(form or PaymentFormFields()), self.clock())
        logger.info(f"[SESSION_CREATED] {session_id}")
        return session_id

    def get(self, session_id: str) -> PaymentOrchestrator:
        entry = self._sessions.get(session_id)
        if entry is None:
            raise PaymentSessionNotFoundException(session_id)
        orchestrator, last_access = entry
        if self._is_expired(orchestrator, last_access):
            del self._sessions[session_id]
            logger.info(f"[SESSION_EXPIRED] {session_id}")
            raise PaymentSessionNotFoundException(session_id)
        self._sessions[session_id] = (orchestrator, self.clock())
        self._sessions.move_to_end(session_id)
        return orchestrator

    def remove(self, session_id: str):
        if self._sessions.pop(session_id, None) is None:
            raise PaymentSessionNotFoundException(session_id)
        logger.info(f"[SESSION_REMOVED] {session_id}")

    def __len__(self) -> int:
        return len(self._sessions)

    def _is_expired(self, orchestrator: PaymentOrchestrator, last_access: datetime) -> bool:
        return orchestrator.busy_operation is None and self.clock() - last_access > self.ttl

    def _evict_expired(self):
        expired = [
            session_id
            for session_id, (orchestrator, last_access) in self._sessions.items()
            if self._is_expired(orchestrator, last_access)
        ]
        for session_id in expired:
            del self._sessions[session_id]
        if expired:
            logger.info(f"[SESSION_EXPIRED] dropped {len(expired)} idle session(s)")

    def _evict_overflow(self):
        while len(self._sessions) >= self.max_sessions:
            idle = next(
                (sid for sid, (orchestrator, _) in self._sessions.items() if orchestrator.busy_operation is None),
                None,
            )
            if idle is None:
                break
            del self._sessions[idle]
            logger.warning(f"[SESSION_EVICTED] {idle}: store full ({self.max_sessions})")
