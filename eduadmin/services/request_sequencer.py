"""Latest-request-wins sequencing for search-as-you-type list queries.

A search box fires a new query on every (debounced) keystroke; responses
can come back out of order. Each query gets a monotonically increasing
sequence number when it is issued, and a response is applied only if its
number is still the latest issued; anything older is discarded.

    session = SearchSession(service, "programs", caller)
    ticket = session.issue(QueryDescriptor(search="ma"))
    newer = session.issue(QueryDescriptor(search="math"))
    session.complete(ticket, result_for_ma)     # False, superseded
    session.complete(newer, result_for_math)    # True, session.latest updated
"""
import itertools
import logging
from dataclasses import dataclass
from threading import Lock

from eduadmin.core.roles import Caller
from eduadmin.services.entity_service import EntityService
from eduadmin.services.query_engine import PaginatedResult, QueryDescriptor

logger = logging.getLogger(__name__)


class RequestSequencer:
    """Hands out sequence numbers and accepts only the newest one."""

    def __init__(self) -> None:
        self._counter = itertools.count(1)
        self._latest_issued = 0
        self._lock = Lock()

    def issue(self) -> int:
        with self._lock:
            self._latest_issued = next(self._counter)
            return self._latest_issued

    @property
    def latest_issued(self) -> int:
        return self._latest_issued

    def is_current(self, seq: int) -> bool:
        with self._lock:
            return seq == self._latest_issued


@dataclass(frozen=True)
class Ticket:
    seq: int
    descriptor: QueryDescriptor


class SearchSession:
    """One list view's query stream; keeps the newest applied result."""

    def __init__(self, service: EntityService, entity_type: str, caller: Caller) -> None:
        self.service = service
        self.entity_type = entity_type
        self.caller = caller
        self.sequencer = RequestSequencer()
        self.latest: PaginatedResult | None = None
        self.applied_seq = 0

    def issue(self, descriptor: QueryDescriptor) -> Ticket:
        return Ticket(seq=self.sequencer.issue(), descriptor=descriptor)

    def execute(self, ticket: Ticket) -> PaginatedResult:
        return self.service.list_records(self.entity_type, self.caller, ticket.descriptor)

    def complete(self, ticket: Ticket, result: PaginatedResult) -> bool:
        """Apply *result* if *ticket* is still the newest query; else drop it."""
        if not self.sequencer.is_current(ticket.seq):
            logger.debug(
                "Discarding stale %s response seq=%d (latest=%d)",
                self.entity_type, ticket.seq, self.sequencer.latest_issued,
            )
            return False
        self.latest = result
        self.applied_seq = ticket.seq
        return True

    def search(self, descriptor: QueryDescriptor) -> PaginatedResult | None:
        """Issue, run and apply in one step; returns the applied result."""
        ticket = self.issue(descriptor)
        self.complete(ticket, self.execute(ticket))
        return self.latest
