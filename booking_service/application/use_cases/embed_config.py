from __future__ import annotations

import html
import re
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote, urlparse

from booking_service.application.exceptions import ConfigurationError, ValidationError
from booking_service.application.ports.service_catalog import ServiceCatalogPort
from booking_service.domain.entities.business_hours import BusinessHoursConfig
from booking_service.domain.entities.service import Service


EMBED_SCHEMA_VERSION = 1
HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")


@dataclass(frozen=True)
class Theming:
    primary_color: str = "#e45c2b"
    company_name: str = "Your Business"
    logo_url: str | None = None


@dataclass(frozen=True)
class EmbedConfig:
    domain: str
    api_base_url: str
    services: list[Service]
    business_hours: BusinessHoursConfig
    theming: Theming
    embed_code: str
    schema_version: int = EMBED_SCHEMA_VERSION

    def to_payload(self) -> dict[str, Any]:
        hours = self.business_hours
        return {
            "schemaVersion": self.schema_version,
            "domain": self.domain,
            "apiBaseUrl": self.api_base_url,
            "serviceCatalog": [
                {
                    "id": s.id,
                    "name": s.name,
                    "durationMinutes": s.duration_minutes,
                    "description": s.description,
                }
                for s in self.services
            ],
            "businessHours": {
                "timeZone": hours.time_zone,
                "workingDays": hours.working_day_names,
                "dayStart": hours.day_start.strftime("%H:%M"),
                "dayEnd": hours.day_end.strftime("%H:%M"),
                "minLeadMinutes": hours.min_lead_minutes,
                "slotGranularityMinutes": hours.slot_granularity_minutes,
            },
            "theming": {
                "primaryColor": self.theming.primary_color,
                "companyName": self.theming.company_name,
                "logoUrl": self.theming.logo_url,
            },
            "embedCode": self.embed_code,
        }


class EmbedConfigEmitter:
    """
    Publishes the portable configuration an external site renders the booking widget
    against. Structural problems are configuration errors raised at publish time.
    """

    def __init__(
        self,
        catalog: ServiceCatalogPort,
        business_hours: BusinessHoursConfig,
        api_base_url: str,
        theming: Theming,
        service_ids: list[str] | None = None,
        allowed_domains: list[str] | None = None,
    ) -> None:
        self._catalog = catalog
        self._business_hours = business_hours
        self._api_base_url = api_base_url.rstrip("/")
        self._theming = theming
        self._service_ids = list(service_ids or [])
        self._allowed_domains = [d.strip().lower() for d in allowed_domains or [] if d.strip()]

    def emit(self, domain: str) -> EmbedConfig:
        domain = self._check_domain(domain)
        services = self.validate()

        return EmbedConfig(
            domain=domain,
            api_base_url=self._api_base_url,
            services=services,
            business_hours=self._business_hours,
            theming=self._theming,
            embed_code=self._embed_code(domain),
        )

    def validate(self) -> list[Service]:
        """Check everything that does not depend on the requesting domain; return the published services."""
        services = self._published_services()
        self._check_api_base_url()
        if not HEX_COLOR.match(self._theming.primary_color):
            raise ConfigurationError(f"primaryColor must be #rrggbb, got {self._theming.primary_color!r}")
        return services

    def _published_services(self) -> list[Service]:
        catalog = self._catalog.list_services()
        ids = [s.id for s in catalog]
        if len(ids) != len(set(ids)):
            raise ConfigurationError("Service catalog contains duplicate ids")
        if not catalog:
            raise ConfigurationError("Service catalog is empty")
        if not self._service_ids:
            return catalog

        by_id = {s.id: s for s in catalog}
        missing = [sid for sid in self._service_ids if sid not in by_id]
        if missing:
            raise ConfigurationError(f"Embed references unknown services: {', '.join(missing)}")
        return [by_id[sid] for sid in self._service_ids]

    def _check_api_base_url(self) -> None:
        parsed = urlparse(self._api_base_url)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ConfigurationError(f"apiBaseUrl must be an http(s) URL, got {self._api_base_url!r}")

    def _check_domain(self, domain: str) -> str:
        normalized = (domain or "").strip().lower()
        if not normalized:
            raise ValidationError("domain is required", fields=["domain"])
        if self._allowed_domains and normalized not in self._allowed_domains:
            raise ValidationError(f"Domain {normalized} is not allowed to embed the widget", fields=["domain"])
        return normalized

    def _embed_code(self, domain: str) -> str:
        config_url = f"{self._api_base_url}/embed-config?domain={quote(domain)}"
        return (
            f'<div id="booking-widget" data-domain="{html.escape(domain)}"></div>\n'
            f'<script src="{html.escape(self._api_base_url)}/widget.js" '
            f'data-config-url="{html.escape(config_url)}" async></script>'
        )
