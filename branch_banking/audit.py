"""
Audit Trail Module

Hash-chained immutable audit log with SHA-256 for tamper detection.
Staff actions that change branch or account state are recorded here.
Held in memory for the lifetime of the process.
"""

import hashlib
import json
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional


class AuditEventType(Enum):
    """Types of audit events"""
    # Customer events
    CUSTOMER_REGISTERED = "customer_registered"
    CUSTOMER_REMOVED = "customer_removed"

    # Account events
    ACCOUNT_OPENED = "account_opened"
    ACCOUNT_CLOSED = "account_closed"
    ACCOUNT_SUSPENDED = "account_suspended"
    ACCOUNT_UNSUSPENDED = "account_unsuspended"
    WITHDRAWAL_COUNTS_RESET = "withdrawal_counts_reset"

    # Transaction events
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"

    # Staff events
    STAFF_ADDED = "staff_added"
    STAFF_REMOVED = "staff_removed"
    MANAGER_ASSIGNED = "manager_assigned"
    LOGIN_SUCCESS = "login_success"
    LOGIN_FAILED = "login_failed"

    # Reporting events
    HEAD_OFFICE_REPORT = "head_office_report"


@dataclass
class AuditEvent:
    """
    Immutable audit event with hash chaining for tamper detection
    """
    id: str
    created_at: datetime
    event_type: AuditEventType
    entity_type: str  # customer, account, branch, staff
    entity_id: str
    previous_hash: str
    current_hash: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    actor: Optional[str] = None  # Login id of the staff member

    def __post_init__(self):
        if self.metadata:
            self._serialize_metadata()

    def _serialize_metadata(self) -> None:
        """Convert metadata values to JSON-serializable format"""
        def convert_value(value):
            if isinstance(value, Decimal):
                return str(value)
            elif isinstance(value, datetime):
                return value.isoformat()
            elif isinstance(value, Enum):
                return value.value
            elif isinstance(value, dict):
                return {k: convert_value(v) for k, v in value.items()}
            elif isinstance(value, list):
                return [convert_value(v) for v in value]
            else:
                return value

        self.metadata = {k: convert_value(v) for k, v in self.metadata.items()}

    def calculate_hash(self) -> str:
        """
        Calculate SHA-256 hash of this event
        Hash includes all fields except current_hash to prevent circular reference
        """
        hash_data = {
            'id': self.id,
            'created_at': self.created_at.isoformat(),
            'event_type': self.event_type.value,
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'previous_hash': self.previous_hash,
            'actor': self.actor,
            'metadata': self.metadata
        }

        json_data = json.dumps(hash_data, sort_keys=True, separators=(',', ':'), default=str)
        return hashlib.sha256(json_data.encode('utf-8')).hexdigest()

    def verify_hash(self) -> bool:
        """Verify that the current hash is correct"""
        return self.current_hash == self.calculate_hash()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'created_at': self.created_at.isoformat(),
            'event_type': self.event_type.value,
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'actor': self.actor,
            'previous_hash': self.previous_hash,
            'current_hash': self.current_hash,
            'metadata': self.metadata,
        }


class AuditTrail:
    """
    Hash-chained audit trail for tamper detection
    """

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._events: List[AuditEvent] = []
        self._last_hash: str = ""
        self._lock = threading.Lock()

    def log_event(
        self,
        event_type: AuditEventType,
        entity_type: str,
        entity_id: Any,
        metadata: Optional[Dict[str, Any]] = None,
        actor: Optional[str] = None
    ) -> Optional[AuditEvent]:
        """
        Log an audit event with hash chaining

        Args:
            event_type: Type of audit event
            entity_type: Type of entity being audited
            entity_id: ID of the entity (account number, sort code, ...)
            metadata: Additional event-specific data
            actor: Login id of the staff member who acted

        Returns:
            Created AuditEvent, or None when auditing is disabled
        """
        if not self.enabled:
            return None

        with self._lock:
            event = AuditEvent(
                id=str(uuid.uuid4()),
                created_at=datetime.now(timezone.utc),
                event_type=event_type,
                entity_type=entity_type,
                entity_id=str(entity_id),
                previous_hash=self._last_hash,
                current_hash="",  # Calculated below
                metadata=metadata or {},
                actor=actor
            )
            event.current_hash = event.calculate_hash()
            self._events.append(event)
            self._last_hash = event.current_hash
            return event

    def get_events_for_entity(
        self,
        entity_type: str,
        entity_id: Any,
        limit: Optional[int] = None
    ) -> List[AuditEvent]:
        """Events for one entity, oldest first; limit keeps the most recent N"""
        with self._lock:
            events = [
                e for e in self._events
                if e.entity_type == entity_type and e.entity_id == str(entity_id)
            ]
        if limit:
            events = events[-limit:]
        return events

    def get_events_by_type(self, event_type: AuditEventType) -> List[AuditEvent]:
        with self._lock:
            return [e for e in self._events if e.event_type == event_type]

    def get_all_events(self) -> List[AuditEvent]:
        with self._lock:
            return list(self._events)

    def count_events(self) -> int:
        with self._lock:
            return len(self._events)

    def get_latest_hash(self) -> Optional[str]:
        with self._lock:
            return self._last_hash or None

    def verify_integrity(self) -> Dict[str, Any]:
        """
        Verify the integrity of the entire audit chain

        Returns:
            Dictionary with integrity check results
        """
        result = {
            'valid': True,
            'total_events': 0,
            'hash_errors': [],
            'chain_breaks': [],
        }

        events = self.get_all_events()
        result['total_events'] = len(events)

        previous_hash = ""
        for position, event in enumerate(events):
            if not event.verify_hash():
                result['valid'] = False
                result['hash_errors'].append({
                    'event_id': event.id,
                    'position': position,
                    'expected_hash': event.calculate_hash(),
                    'actual_hash': event.current_hash
                })
            if event.previous_hash != previous_hash:
                result['valid'] = False
                result['chain_breaks'].append({
                    'event_id': event.id,
                    'position': position,
                    'expected_previous_hash': previous_hash,
                    'actual_previous_hash': event.previous_hash
                })
            previous_hash = event.current_hash

        return result
