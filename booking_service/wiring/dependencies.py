from collections.abc import Callable
from datetime import datetime
from functools import lru_cache
import logging

from booking_service.core.config import settings
from booking_service.application.ports.booking_store import BookingStorePort
from booking_service.application.ports.event_publisher import EventPublisherPort
from booking_service.application.ports.service_catalog import ServiceCatalogPort
from booking_service.application.ports.session_store import SessionStorePort
from booking_service.application.use_cases.booking_session import BookingSessionUseCase
from booking_service.application.use_cases.embed_config import EmbedConfigEmitter, Theming
from booking_service.application.use_cases.reservation import ReservationCoordinator
from booking_service.application.utils.instants import utc_now
from booking_service.domain.entities.business_hours import BusinessHoursConfig
from booking_service.infrastructure.catalog.service_catalog_store import ServiceCatalogStore
from booking_service.infrastructure.events.logging_publisher import LoggingEventPublisher
from booking_service.infrastructure.events.webhook_publisher import WebhookEventPublisher
from booking_service.infrastructure.store.json_store import JsonBookingStore
from booking_service.infrastructure.store.memory_store import MemoryBookingStore
from booking_service.infrastructure.store.session_store import MemorySessionStore


logger = logging.getLogger(__name__)


def get_clock() -> Callable[[], datetime]:
    return utc_now


@lru_cache
def get_business_hours() -> BusinessHoursConfig:
    """Validated once; raises ConfigurationError on a broken configuration."""
    return BusinessHoursConfig.from_strings(
        time_zone=settings.BUSINESS_TIMEZONE,
        working_days=settings.BUSINESS_WORKING_DAYS,
        day_start=settings.BUSINESS_DAY_START,
        day_end=settings.BUSINESS_DAY_END,
        min_lead_minutes=settings.MIN_LEAD_MINUTES,
        slot_granularity_minutes=settings.SLOT_GRANULARITY_MINUTES,
    )


@lru_cache
def get_service_catalog() -> ServiceCatalogPort:
    if settings.SERVICE_CATALOG_FILE:
        logger.info("Loading service catalog from %s", settings.SERVICE_CATALOG_FILE)
        return ServiceCatalogStore.from_json_file(settings.SERVICE_CATALOG_FILE)
    return ServiceCatalogStore()


@lru_cache
def get_booking_store() -> BookingStorePort:
    if settings.STORE_PROVIDER.lower() == "json":
        logger.info("Using JsonBookingStore at %s", settings.DATA_DIR)
        return JsonBookingStore(data_dir=settings.DATA_DIR)
    return MemoryBookingStore()


@lru_cache
def get_session_store() -> SessionStorePort:
    return MemorySessionStore(idle_minutes=settings.SESSION_IDLE_MINUTES)


@lru_cache
def get_event_publisher() -> EventPublisherPort:
    if settings.EVENT_WEBHOOK_URL:
        return WebhookEventPublisher(
            endpoint=settings.EVENT_WEBHOOK_URL,
            timeout=settings.EVENT_WEBHOOK_TIMEOUT_SECONDS,
        )
    if settings.ENV.lower() not in {"dev", "local"}:
        logger.warning("EVENT_WEBHOOK_URL not set; appointment events will only be logged")
    return LoggingEventPublisher()


@lru_cache
def get_reservation_coordinator() -> ReservationCoordinator:
    return ReservationCoordinator(
        store=get_booking_store(),
        catalog=get_service_catalog(),
        business_hours=get_business_hours(),
        publisher=get_event_publisher(),
        reserve_timeout_seconds=settings.RESERVE_TIMEOUT_SECONDS,
        pending_hold_minutes=settings.PENDING_HOLD_MINUTES,
        clock=get_clock(),
    )


def get_booking_session_use_case() -> BookingSessionUseCase:
    return BookingSessionUseCase(
        catalog=get_service_catalog(),
        store=get_booking_store(),
        coordinator=get_reservation_coordinator(),
        business_hours=get_business_hours(),
        clock=get_clock(),
    )


def get_embed_config_emitter() -> EmbedConfigEmitter:
    return EmbedConfigEmitter(
        catalog=get_service_catalog(),
        business_hours=get_business_hours(),
        api_base_url=settings.API_BASE_URL,
        theming=Theming(
            primary_color=settings.EMBED_PRIMARY_COLOR,
            company_name=settings.BUSINESS_NAME,
            logo_url=settings.EMBED_LOGO_URL,
        ),
        service_ids=_split_csv(settings.EMBED_SERVICE_IDS),
        allowed_domains=_split_csv(settings.EMBED_ALLOWED_DOMAINS),
    )


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]
