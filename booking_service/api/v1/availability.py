from collections.abc import Callable
from datetime import datetime, timedelta

from fastapi import APIRouter, Depends, Query

from booking_service.api.v1.errors import error_response
from booking_service.api.v1.schemas import ServiceSchema, SlotSchema
from booking_service.application.exceptions import ValidationError
from booking_service.application.ports.booking_store import BookingStorePort
from booking_service.application.ports.service_catalog import ServiceCatalogPort
from booking_service.application.use_cases.slot_generator import generate_slots
from booking_service.application.utils.instants import local_date, parse_range_bound
from booking_service.core.config import settings
from booking_service.domain.entities.business_hours import BusinessHoursConfig
from booking_service.wiring.dependencies import (
    get_booking_store,
    get_business_hours,
    get_clock,
    get_service_catalog,
)

router = APIRouter()


@router.get("/services", response_model=list[ServiceSchema])
def list_services(catalog: ServiceCatalogPort = Depends(get_service_catalog)):
    return [ServiceSchema.from_entity(s) for s in catalog.list_services()]


@router.get("/availability", response_model=list[SlotSchema])
def availability(
    service_id: str = Query(..., alias="serviceId"),
    range_start: str = Query(..., alias="rangeStart"),
    range_end: str | None = Query(None, alias="rangeEnd"),
    catalog: ServiceCatalogPort = Depends(get_service_catalog),
    store: BookingStorePort = Depends(get_booking_store),
    hours: BusinessHoursConfig = Depends(get_business_hours),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    service = catalog.get_service(service_id)
    if service is None:
        return error_response(422, "validation_error", fields=["serviceId"], detail=f"Unknown service: {service_id}")

    try:
        start = parse_range_bound(range_start, hours.zone, "rangeStart")
        end = parse_range_bound(range_end or range_start, hours.zone, "rangeEnd", end_of_day=True)
        days = (local_date(end, hours.zone) - local_date(start, hours.zone)).days + 1
        if days > settings.AVAILABILITY_MAX_DAYS:
            raise ValidationError(
                f"Range spans {days} days; the maximum is {settings.AVAILABILITY_MAX_DAYS}",
                fields=["rangeEnd"],
            )
        # Reads are lock-free; reserve() re-checks under the service lock.
        existing = store.list_for_service(service.id, start - timedelta(days=1), end + timedelta(days=1))
        slots = generate_slots(hours, service, existing, start, end, now=clock())
        return [SlotSchema.from_entity(slot) for slot in slots]
    except ValidationError as e:
        return error_response(422, "validation_error", fields=e.fields, detail=str(e))
