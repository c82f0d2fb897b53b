"""
Domain Events — Observer Pattern (GoF)

Services publish events after a successful commit; handlers subscribe by
event type. Audit rows are written by the services inside their own
transaction, so handlers here are purely observational and must never
raise into the publisher.
"""
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional, Type

logger = logging.getLogger(__name__)


@dataclass
class DomainEvent:
    entity_type: str
    entity_id: int
    user_id: Optional[int] = None
    occurred_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def name(self) -> str:
        return type(self).__name__


@dataclass
class EntityCreatedEvent(DomainEvent):
    pass


@dataclass
class InventoryStatusChangedEvent(DomainEvent):
    old_status: str = ""
    new_status: str = ""


@dataclass
class CountSubmittedEvent(DomainEvent):
    inventory_id: int = 0
    stage: int = 0
    unit_kind: str = ""


@dataclass
class DiscrepanciesProcessedEvent(DomainEvent):
    total: int = 0
    by_type: Dict[str, int] = field(default_factory=dict)


@dataclass
class InventoryMigratedEvent(DomainEvent):
    adjustment_count: int = 0


Handler = Callable[[DomainEvent], None]


class EventBus:
    def __init__(self) -> None:
        self._handlers: Dict[Type[DomainEvent], List[Handler]] = {}

    def subscribe(self, event_type: Type[DomainEvent], handler: Handler) -> None:
        self._handlers.setdefault(event_type, []).append(handler)

    def clear(self) -> None:
        self._handlers.clear()

    def publish(self, event: DomainEvent) -> None:
        for event_type, handlers in self._handlers.items():
            if not isinstance(event, event_type):
                continue
            for handler in handlers:
                try:
                    handler(event)
                except Exception:
                    logger.exception("event_handler_failed", extra={"event": event.name})


class LoggingHandler:
    def __call__(self, event: DomainEvent) -> None:
        logger.info("domain_event", extra={"event": event.name, **asdict(event)})


_event_bus = EventBus()


def get_event_bus() -> EventBus:
    return _event_bus


def configure_event_bus() -> EventBus:
    _event_bus.clear()
    _event_bus.subscribe(DomainEvent, LoggingHandler())
    return _event_bus
