from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends
from fastapi.responses import JSONResponse

from booking_service.api.v1.errors import error_response
from booking_service.api.v1.schemas import (
    SelectDateSchema,
    SelectServiceSchema,
    SelectSlotSchema,
    SessionSchema,
    StartSessionSchema,
    SubmitContactSchema,
)
from booking_service.application.exceptions import InvalidSessionState, ValidationError
from booking_service.application.ports.session_store import SessionStorePort
from booking_service.application.use_cases.booking_session import BookingSessionUseCase, SessionResult
from booking_service.domain.entities.booking_session import BookingSession, SessionStep
from booking_service.wiring.dependencies import get_booking_session_use_case, get_clock, get_session_store

router = APIRouter()
logger = logging.getLogger(__name__)

Operation = Callable[[BookingSession], SessionResult]


@router.post("/sessions", status_code=201, response_model=SessionSchema)
def start_session(
    req: StartSessionSchema | None = None,
    uc: BookingSessionUseCase = Depends(get_booking_session_use_case),
    sessions: SessionStorePort = Depends(get_session_store),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    sessions.purge_expired(clock())
    result = uc.start(source=req.source if req else "widget")
    sessions.save(result.session)
    logger.info("Booking session started", extra={"session_id": result.session.session_id})
    return SessionSchema.from_session(result.session, result.action)


@router.get("/sessions/{session_id}", response_model=SessionSchema)
def get_session(
    session_id: str,
    sessions: SessionStorePort = Depends(get_session_store),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    session = sessions.get(session_id, clock())
    if session is None:
        return error_response(404, "session_not_found")
    return SessionSchema.from_session(session, "resume")


@router.post("/sessions/{session_id}/service", response_model=SessionSchema)
def select_service(
    session_id: str,
    req: SelectServiceSchema,
    uc: BookingSessionUseCase = Depends(get_booking_session_use_case),
    sessions: SessionStorePort = Depends(get_session_store),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    return _apply(session_id, sessions, clock, lambda s: uc.select_service(s, req.service_id))


@router.post("/sessions/{session_id}/date", response_model=SessionSchema)
def select_date(
    session_id: str,
    req: SelectDateSchema,
    uc: BookingSessionUseCase = Depends(get_booking_session_use_case),
    sessions: SessionStorePort = Depends(get_session_store),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    def operation(session: BookingSession) -> SessionResult:
        if req.service_id is not None:
            session = uc.select_service(session, req.service_id).session
        return uc.select_date(session, req.day)

    return _apply(session_id, sessions, clock, operation)


@router.post("/sessions/{session_id}/slot", response_model=SessionSchema)
def select_slot(
    session_id: str,
    req: SelectSlotSchema,
    uc: BookingSessionUseCase = Depends(get_booking_session_use_case),
    sessions: SessionStorePort = Depends(get_session_store),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    return _apply(session_id, sessions, clock, lambda s: uc.select_slot(s, req.start_instant))


@router.post("/sessions/{session_id}/contact", response_model=SessionSchema)
def submit_contact(
    session_id: str,
    req: SubmitContactSchema,
    background_tasks: BackgroundTasks,
    uc: BookingSessionUseCase = Depends(get_booking_session_use_case),
    sessions: SessionStorePort = Depends(get_session_store),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    contact = req.contact.to_entity()
    return _apply(session_id, sessions, clock, lambda s: uc.submit_contact(s, contact, defer=background_tasks.add_task))


@router.post("/sessions/{session_id}/back", response_model=SessionSchema)
def go_back(
    session_id: str,
    uc: BookingSessionUseCase = Depends(get_booking_session_use_case),
    sessions: SessionStorePort = Depends(get_session_store),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    return _apply(session_id, sessions, clock, uc.back)


def _apply(
    session_id: str,
    sessions: SessionStorePort,
    clock: Callable[[], datetime],
    operation: Operation,
):
    session = sessions.get(session_id, clock())
    if session is None:
        return error_response(404, "session_not_found")

    try:
        result = operation(session)
    except ValidationError as e:
        return error_response(422, "validation_error", fields=e.fields, detail=str(e))
    except InvalidSessionState as e:
        return error_response(409, "invalid_session_state", detail=str(e))

    if result.action == "slot_no_longer_available":
        sessions.save(result.session)
        view = SessionSchema.from_session(result.session, result.action)
        return JSONResponse(
            status_code=409,
            content={"reason": "slot_taken", "session": view.model_dump(mode="json", by_alias=True)},
        )
    if result.action == "store_unavailable":
        sessions.save(result.session)
        return error_response(503, "store_unavailable", detail="Please try again")

    if result.session.step == SessionStep.confirmation:
        sessions.delete(session_id)
    else:
        sessions.save(result.session)
    return SessionSchema.from_session(result.session, result.action)
