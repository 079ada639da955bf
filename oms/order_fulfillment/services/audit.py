"""
Audit ledger for the order fulfillment workflow.

Services receive a ledger instance and call ``record`` inside their own
transaction, so an aborted operation leaves no audit entry behind.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List

from ..context import ActorContext
from ..models import AuditLog


def json_safe(value):
    """Convert Decimals, UUIDs and nested containers into JSON-friendly values."""
    if isinstance(value, dict):
        return {str(k): json_safe(v) for k, v in value.items()}
    elif isinstance(value, (list, tuple)):
        return [json_safe(item) for item in value]
    elif isinstance(value, Decimal):
        return str(value)
    elif value is None or isinstance(value, (str, int, float, bool)):
        return value
    else:
        return str(value)


class AuditLedger(ABC):
    """Contract for the append-only audit ledger."""

    @abstractmethod
    def record(self, action: str, entity_type: str, entity_id, actor: ActorContext,
               metadata: Dict[str, Any] = None):
        """
        Append one entry to the ledger.

        Args:
            action: AuditAction value
            entity_type: Name of the entity the action applies to
            entity_id: Identifier of that entity
            actor: Caller context (user, IP address, user agent)
            metadata: Snapshot of the change
        """
        pass


class DatabaseAuditLedger(AuditLedger):
    """Writes entries to the AuditLog table."""

    def record(self, action, entity_type, entity_id, actor, metadata=None):
        return AuditLog.objects.create(
            actor=actor.user,
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id),
            metadata=json_safe(metadata or {}),
            ip_address=actor.ip_address,
            user_agent=actor.user_agent or '',
        )


@dataclass
class AuditEntry:
    action: str
    entity_type: str
    entity_id: str
    actor_user_id: Any
    metadata: Dict[str, Any] = field(default_factory=dict)


class InMemoryAuditLedger(AuditLedger):
    """Keeps entries in a list. Used in tests."""

    def __init__(self):
        self.entries: List[AuditEntry] = []

    def record(self, action, entity_type, entity_id, actor, metadata=None):
        entry = AuditEntry(
            action=str(action),
            entity_type=entity_type,
            entity_id=str(entity_id),
            actor_user_id=actor.user_id,
            metadata=json_safe(metadata or {}),
        )
        self.entries.append(entry)
        return entry

    def actions(self) -> List[str]:
        return [entry.action for entry in self.entries]
