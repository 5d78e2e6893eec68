# Vault - Ticket Status Preferences
#
# Which ticket statuses the dashboard shows. Not sensitive: stored in the
# sync scope in the clear. At least one status is always selected.

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from ..core.audit_log import AuditLogger, EventSeverity, EventType, get_audit_logger
from ..exceptions import ValidationError
from ..storage.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

STATUSES_KEY = "jira_statuses"


@dataclass(frozen=True)
class StatusOption:
    id: str
    label: str
    jql: str


STATUS_OPTIONS: Tuple[StatusOption, ...] = (
    StatusOption("in_progress", "In Progress", 'status = "In Progress"'),
    StatusOption("to_do", "To Do", 'statusCategory = "To Do"'),
    StatusOption("in_review", "In Review", 'status = "In Review"'),
    StatusOption("code_review", "Code Review", 'status = "Code Review"'),
    StatusOption("blocked", "Blocked", 'status = "Blocked"'),
    StatusOption("done_today", "Done Today", 'status = "Done" AND updated >= startOfDay()'),
)

OPTIONS_BY_ID: Dict[str, StatusOption] = {opt.id: opt for opt in STATUS_OPTIONS}

DEFAULT_STATUSES: Tuple[str, ...] = ("in_progress",)


class StatusPreferenceSet:
    """Ordered, duplicate-free, never-empty set of status ids."""

    def __init__(self, statuses: Optional[Iterable[str]] = None):
        ordered: List[str] = []
        for status_id in statuses or ():
            if status_id not in OPTIONS_BY_ID:
                raise ValidationError(f"Unknown ticket status: {status_id}", field="statuses")
            if status_id not in ordered:
                ordered.append(status_id)
        self._statuses = ordered or list(DEFAULT_STATUSES)

    @property
    def statuses(self) -> List[str]:
        return list(self._statuses)

    def __contains__(self, status_id: str) -> bool:
        return status_id in self._statuses

    def __iter__(self):
        return iter(self._statuses)

    def __len__(self) -> int:
        return len(self._statuses)

    def __eq__(self, other) -> bool:
        if not isinstance(other, StatusPreferenceSet):
            return NotImplemented
        return self._statuses == other._statuses

    def __repr__(self) -> str:
        return f"StatusPreferenceSet({self._statuses!r})"

    def add(self, status_id: str) -> None:
        if status_id not in OPTIONS_BY_ID:
            raise ValidationError(f"Unknown ticket status: {status_id}", field="statuses")
        if status_id not in self._statuses:
            self._statuses.append(status_id)

    def remove(self, status_id: str) -> bool:
        """Deselect a status. Removing the last selected status is a no-op.

        Returns:
            True if the status was removed.
        """
        if status_id not in self._statuses or len(self._statuses) == 1:
            return False
        self._statuses.remove(status_id)
        return True

    def toggle(self, status_id: str) -> None:
        if status_id in self._statuses:
            self.remove(status_id)
        else:
            self.add(status_id)

    def jql_clause(self) -> str:
        """OR of the selected statuses' JQL, e.g. for an issue search."""
        clauses = [OPTIONS_BY_ID[s].jql for s in self._statuses]
        if len(clauses) == 1:
            return clauses[0]
        return " OR ".join(f"({clause})" for clause in clauses)


class StatusPreferenceStore:
    """Persists the StatusPreferenceSet in the sync scope."""

    def __init__(self, sync_store: KeyValueStore, audit_logger: Optional[AuditLogger] = None):
        self.sync_store = sync_store
        self._audit_logger = audit_logger

    @property
    def audit(self) -> AuditLogger:
        return self._audit_logger or get_audit_logger()

    async def load(self) -> StatusPreferenceSet:
        """Saved preferences, or the default set when none are stored."""
        result = await self.sync_store.get([STATUSES_KEY])
        stored = result.get(STATUSES_KEY)
        if not isinstance(stored, list):
            return StatusPreferenceSet()
        # Drop ids that are no longer offered rather than failing the dashboard
        known = [s for s in stored if isinstance(s, str) and s in OPTIONS_BY_ID]
        if len(known) != len(stored):
            logger.info("Ignoring %d unknown stored status id(s)", len(stored) - len(known))
        return StatusPreferenceSet(known)

    async def save(self, prefs: StatusPreferenceSet) -> None:
        await self.sync_store.set({STATUSES_KEY: prefs.statuses})
        self.audit.log_event(
            event_type=EventType.PREFERENCES_SAVED,
            severity=EventSeverity.INFO,
            message="Ticket status preferences saved",
            details={"statuses": prefs.statuses},
        )
