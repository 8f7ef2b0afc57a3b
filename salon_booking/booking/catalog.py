from dataclasses import dataclass
from decimal import Decimal

from salon_booking.models.service import Service


@dataclass(frozen=True)
class CatalogEntry:
    id: str
    name: str
    price: Decimal
    duration_minutes: int
    is_active: bool


class ServiceCatalog:
    """Read access to the service catalog for pricing"""

    def __init__(self, db):
        self.db = db

    def find_services_by_ids(self, service_ids):
        """
        Resolve every id in a single query.
        Returns a dict keyed by id; ids that do not exist are simply absent.
        """
        unique_ids = list(dict.fromkeys(service_ids))
        if not unique_ids:
            return {}

        rows = self.db.session.execute(
            self.db.select(Service).where(Service.id.in_(unique_ids))
        ).scalars()

        return {
            service.id: CatalogEntry(
                id=service.id,
                name=service.name,
                price=Decimal(service.price),
                duration_minutes=service.duration_minutes,
                is_active=bool(service.is_active),
            )
            for service in rows
        }
