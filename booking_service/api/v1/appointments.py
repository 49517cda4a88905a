from fastapi import APIRouter, BackgroundTasks, Depends, Query

from booking_service.api.v1.errors import error_response
from booking_service.api.v1.schemas import (
    AppointmentStatusSchema,
    AppointmentSchema,
    CreateAppointmentSchema,
)
from booking_service.application.exceptions import InvalidAppointmentState, ValidationError
from booking_service.application.ports.booking_store import BookingStorePort
from booking_service.application.ports.service_catalog import ServiceCatalogPort
from booking_service.application.use_cases.reservation import (
    NotFound,
    ReservationCoordinator,
    Reserved,
    SlotConflict,
    TransitionResult,
    Transitioned,
)
from booking_service.domain.entities.appointment import AppointmentStatus
from booking_service.wiring.dependencies import (
    get_booking_store,
    get_reservation_coordinator,
    get_service_catalog,
)

router = APIRouter()


@router.post("/appointments", status_code=201, response_model=AppointmentStatusSchema)
def create_appointment(
    req: CreateAppointmentSchema,
    background_tasks: BackgroundTasks,
    coordinator: ReservationCoordinator = Depends(get_reservation_coordinator),
    catalog: ServiceCatalogPort = Depends(get_service_catalog),
):
    service = catalog.get_service(req.service_id)
    if service is None:
        return error_response(422, "validation_error", fields=["serviceId"], detail=f"Unknown service: {req.service_id}")

    try:
        result = coordinator.reserve(
            service_id=service.id,
            start_instant=req.start_instant,
            duration_minutes=service.duration_minutes,
            contact=req.contact.to_entity(),
            source=req.source,
            hold=req.hold,
            defer=background_tasks.add_task,
        )
    except ValidationError as e:
        return error_response(422, "validation_error", fields=e.fields, detail=str(e))

    if isinstance(result, Reserved):
        return AppointmentStatusSchema(appointment_id=result.appointment.id, status=result.appointment.status)
    if isinstance(result, SlotConflict):
        return error_response(409, result.reason)
    return error_response(503, "store_unavailable")


@router.get("/appointments", response_model=list[AppointmentSchema])
def list_appointments(
    source: str | None = Query(None),
    status: AppointmentStatus | None = Query(None),
    store: BookingStorePort = Depends(get_booking_store),
):
    return [AppointmentSchema.from_entity(a) for a in store.list_all(source=source, status=status)]


@router.get("/appointments/{appointment_id}", response_model=AppointmentSchema)
def get_appointment(appointment_id: str, store: BookingStorePort = Depends(get_booking_store)):
    appointment = store.get(appointment_id)
    if appointment is None:
        return error_response(404, "not_found")
    return AppointmentSchema.from_entity(appointment)


@router.post("/appointments/{appointment_id}/cancel", response_model=AppointmentStatusSchema)
def cancel_appointment(
    appointment_id: str,
    background_tasks: BackgroundTasks,
    coordinator: ReservationCoordinator = Depends(get_reservation_coordinator),
):
    return _transition_response(coordinator.cancel(appointment_id, defer=background_tasks.add_task))


@router.post("/appointments/{appointment_id}/confirm", response_model=AppointmentStatusSchema)
def confirm_appointment(
    appointment_id: str,
    background_tasks: BackgroundTasks,
    coordinator: ReservationCoordinator = Depends(get_reservation_coordinator),
):
    try:
        result = coordinator.confirm(appointment_id, defer=background_tasks.add_task)
    except InvalidAppointmentState as e:
        return error_response(409, "invalid_state", detail=str(e))
    return _transition_response(result)


def _transition_response(result: TransitionResult):
    if isinstance(result, Transitioned):
        return AppointmentStatusSchema(appointment_id=result.appointment.id, status=result.appointment.status)
    if isinstance(result, NotFound):
        return error_response(404, "not_found")
    return error_response(503, "store_unavailable")
