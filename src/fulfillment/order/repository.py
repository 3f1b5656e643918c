"""Order repository port and its Protean-backed implementation.

Orders are looked up in the current store first, then in the legacy document
collections. Writes always land in the current store, which migrates a
legacy order on its first write.
"""

import json
from abc import ABC, abstractmethod

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from fulfillment.errors import DuplicateRequestError, OrderNotFoundError
from fulfillment.order.legacy import (
    LEGACY_COLLECTIONS,
    LegacyOrderRecord,
    legacy_record_key,
    order_from_document,
)
from fulfillment.order.order import Order

logger = structlog.get_logger(__name__)


class OrderRepository(ABC):
    """Abstract interface for reading and writing orders."""

    @abstractmethod
    def find(self, order_id: str) -> Order | None:
        """Return the order, or None when no store holds it."""
        ...

    @abstractmethod
    def save(self, order: Order) -> None: ...

    @abstractmethod
    def save_shipment(self, order: Order) -> None:
        """Persist an order that just received its carrier shipment.

        Raises ``DuplicateRequestError`` when the stored order already holds a
        different tracking id.
        """
        ...

    def get(self, order_id: str) -> Order:
        order = self.find(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order


class DomainOrderRepository(OrderRepository):
    def __init__(self):
        self._loaded_from_legacy: set[str] = set()

    def find(self, order_id: str) -> Order | None:
        try:
            return current_domain.repository_for(Order).get(order_id)
        except ObjectNotFoundError:
            pass
        return self._find_legacy(order_id)

    def _find_legacy(self, order_id: str) -> Order | None:
        repo = current_domain.repository_for(LegacyOrderRecord)
        for collection in LEGACY_COLLECTIONS:
            try:
                record = repo.get(legacy_record_key(collection, order_id))
            except ObjectNotFoundError:
                continue
            logger.info("legacy_order_loaded", order_id=order_id, collection=collection)
            self._loaded_from_legacy.add(order_id)
            return order_from_document(order_id, json.loads(record.document))
        return None

    def save(self, order: Order) -> None:
        if str(order.id) in self._loaded_from_legacy:
            self._loaded_from_legacy.discard(str(order.id))
            logger.info("legacy_order_migrated", order_id=str(order.id))
        current_domain.repository_for(Order).add(order)

    def save_shipment(self, order: Order) -> None:
        # Conditional write: no lock is held across the carrier call, so the
        # stored tracking id is re-read immediately before writing.
        stored = self.find(str(order.id))
        if stored is not None and stored.tracking_id and stored.tracking_id != order.tracking_id:
            raise DuplicateRequestError(str(order.id), stored.tracking_id)
        self.save(order)
