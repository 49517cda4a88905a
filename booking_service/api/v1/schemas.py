from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from booking_service.domain.entities.appointment import Appointment, AppointmentStatus, Contact
from booking_service.domain.entities.booking_session import BookingSession, SessionStep
from booking_service.domain.entities.service import Service
from booking_service.domain.entities.slot import Slot


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ServiceSchema(CamelModel):
    id: str
    name: str
    duration_minutes: int
    description: str

    @classmethod
    def from_entity(cls, service: Service) -> "ServiceSchema":
        return cls(
            id=service.id,
            name=service.name,
            duration_minutes=service.duration_minutes,
            description=service.description,
        )


class SlotSchema(CamelModel):
    start_instant: datetime
    duration_minutes: int

    @classmethod
    def from_entity(cls, slot: Slot) -> "SlotSchema":
        return cls(start_instant=slot.start_instant, duration_minutes=slot.duration_minutes)


class ContactSchema(CamelModel):
    # Lenient on purpose: field rules live in contact_rules so errors share one shape.
    name: str = ""
    email: str = ""
    phone: str = ""
    company: str | None = None
    website: str | None = None
    message: str | None = None

    def to_entity(self) -> Contact:
        return Contact(
            name=self.name,
            email=self.email,
            phone=self.phone,
            company=self.company,
            website=self.website,
            message=self.message,
        )


class CreateAppointmentSchema(CamelModel):
    service_id: str
    start_instant: datetime
    contact: ContactSchema
    source: str = "widget"
    hold: bool = False


class AppointmentStatusSchema(CamelModel):
    appointment_id: str
    status: AppointmentStatus


class AppointmentSchema(CamelModel):
    appointment_id: str
    service_id: str
    start_instant: datetime
    duration_minutes: int
    status: AppointmentStatus
    source: str
    version: int
    created_at: datetime
    hold_expires_at: datetime | None = None
    contact: ContactSchema

    @classmethod
    def from_entity(cls, appointment: Appointment) -> "AppointmentSchema":
        c = appointment.contact
        return cls(
            appointment_id=appointment.id,
            service_id=appointment.service_id,
            start_instant=appointment.start_instant,
            duration_minutes=appointment.duration_minutes,
            status=appointment.status,
            source=appointment.source,
            version=appointment.version,
            created_at=appointment.created_at,
            hold_expires_at=appointment.hold_expires_at,
            contact=ContactSchema(
                name=c.name,
                email=c.email,
                phone=c.phone,
                company=c.company,
                website=c.website,
                message=c.message,
            ),
        )


class StartSessionSchema(CamelModel):
    source: str = "widget"


class SelectServiceSchema(CamelModel):
    service_id: str


class SelectDateSchema(CamelModel):
    day: date = Field(alias="date")
    service_id: str | None = None


class SelectSlotSchema(CamelModel):
    start_instant: datetime


class SubmitContactSchema(CamelModel):
    contact: ContactSchema


class SessionSchema(CamelModel):
    session_id: str
    step: SessionStep
    action: str
    selected_service_id: str | None = None
    selected_date: date | None = None
    selected_slot: SlotSchema | None = None
    slots: list[SlotSchema] = Field(default_factory=list)
    appointment_id: str | None = None

    @classmethod
    def from_session(cls, session: BookingSession, action: str) -> "SessionSchema":
        return cls(
            session_id=session.session_id,
            step=session.step,
            action=action,
            selected_service_id=session.selected_service_id,
            selected_date=session.selected_date,
            selected_slot=SlotSchema.from_entity(session.selected_slot) if session.selected_slot else None,
            slots=[SlotSchema.from_entity(s) for s in session.offered_slots],
            appointment_id=session.appointment_id,
        )
