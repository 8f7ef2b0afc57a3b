import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from salon_booking.errors import ValidationError

logger = logging.getLogger(__name__)

CENTS = Decimal('0.01')


@dataclass(frozen=True)
class ServiceSelection:
    service_id: str
    number_of_people: int = 1


@dataclass(frozen=True)
class AppointmentTotals:
    total_price: Decimal
    estimated_duration: int


def validate_selections(selections):
    if not selections:
        raise ValidationError.for_fields({'services': ['At least one service is required']})

    errors = {}
    for index, selection in enumerate(selections):
        people = selection.number_of_people
        if isinstance(people, bool) or not isinstance(people, int) or people < 1:
            errors[f'services[{index}].numberOfPeople'] = ['Number of people must be a whole number of at least 1']
        if not selection.service_id:
            errors[f'services[{index}].serviceId'] = ['Service id is required']
    if errors:
        raise ValidationError.for_fields(errors)


def compute_totals(selections, catalog, reject_unknown=True):
    """
    Price a list of service selections.

    total_price is the sum of price x headcount per line. estimated_duration is
    the sum of each distinct service's duration; headcount does not lengthen
    the appointment. Unknown or inactive services are rejected unless
    reject_unknown is off, in which case unknown ids contribute nothing.
    """
    validate_selections(selections)

    entries = catalog.find_services_by_ids([s.service_id for s in selections])

    missing = sorted({s.service_id for s in selections if s.service_id not in entries})
    if missing:
        if reject_unknown:
            raise ValidationError(
                f"Unknown service id(s): {', '.join(missing)}",
                details={'fields': {'services': ['Unknown service'], 'serviceIds': missing}},
            )
        logger.warning(f"Pricing ignores unknown service ids: {missing}")

    if reject_unknown:
        inactive = sorted(entry.id for entry in entries.values() if not entry.is_active)
        if inactive:
            raise ValidationError(
                f"Service(s) not available for booking: {', '.join(inactive)}",
                details={'fields': {'services': ['Service is not available'], 'serviceIds': inactive}},
            )

    total_price = Decimal('0')
    for selection in selections:
        entry = entries.get(selection.service_id)
        if entry is not None:
            total_price += entry.price * selection.number_of_people

    estimated_duration = sum(entry.duration_minutes for entry in entries.values())

    return AppointmentTotals(
        total_price=total_price.quantize(CENTS, rounding=ROUND_HALF_UP),
        estimated_duration=estimated_duration,
    )
