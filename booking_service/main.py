import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from booking_service.api.v1.appointments import router as appointments_router
from booking_service.api.v1.availability import router as availability_router
from booking_service.api.v1.embed import router as embed_router
from booking_service.api.v1.errors import error_response
from booking_service.api.v1.sessions import router as sessions_router
from booking_service.application.exceptions import StoreUnavailableError
from booking_service.core.config import settings
from booking_service.wiring.dependencies import get_business_hours, get_embed_config_emitter, get_service_catalog


class ContextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        extras = []
        for key in ("appointment_id", "service_id", "start_instant", "session_id", "status", "reason"):
            value = getattr(record, key, None)
            if value not in (None, ""):
                extras.append(f"{key}={value}")
        base = super().format(record)
        if extras:
            return f"{base} | " + " ".join(extras)
        return base


handler = logging.StreamHandler()
handler.setFormatter(ContextFormatter("%(levelname)s:%(name)s:%(message)s"))

root = logging.getLogger()
root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
root.handlers.clear()
root.addHandler(handler)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Refuse to serve availability or embeds against a broken configuration.
    hours = get_business_hours()
    catalog = get_service_catalog()
    embedded = get_embed_config_emitter().validate()
    logger.info(
        "Business calendar loaded: %s %s-%s (%s), %d services, %d embedded",
        hours.time_zone,
        hours.day_start.strftime("%H:%M"),
        hours.day_end.strftime("%H:%M"),
        ",".join(hours.working_day_names),
        len(catalog.list_services()),
        len(embedded),
    )
    yield


app = FastAPI(title="Appointment Booking", version="1.0.0", lifespan=lifespan)

app.include_router(availability_router, tags=["availability"])
app.include_router(appointments_router, tags=["appointments"])
app.include_router(sessions_router, tags=["sessions"])
app.include_router(embed_router, tags=["embed"])


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    fields = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        fields.append(".".join(loc) or "body")
    return error_response(422, "validation_error", fields=fields)


@app.exception_handler(StoreUnavailableError)
async def store_unavailable_handler(request: Request, exc: StoreUnavailableError):
    logger.warning("Booking store unavailable", extra={"reason": str(exc)})
    return error_response(503, "store_unavailable")


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
