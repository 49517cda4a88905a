from __future__ import annotations

import json
from pathlib import Path

from booking_service.application.exceptions import ConfigurationError
from booking_service.application.ports.service_catalog import ServiceCatalogPort
from booking_service.domain.entities.service import Service
from booking_service.infrastructure.catalog.service_catalog_data import DEFAULT_SERVICES


class ServiceCatalogStore(ServiceCatalogPort):
    def __init__(self, services: list[Service] | None = None) -> None:
        services = DEFAULT_SERVICES if services is None else services
        self._catalog: dict[str, Service] = {}
        for service in services:
            if service.id in self._catalog:
                raise ConfigurationError(f"Duplicate service id: {service.id!r}")
            if service.duration_minutes <= 0:
                raise ConfigurationError(f"Service {service.id!r} must have a positive duration")
            self._catalog[service.id] = service

    @classmethod
    def from_json_file(cls, path: str) -> ServiceCatalogStore:
        """Load `[{"id", "name", "durationMinutes", "description"}, ...]` from a file."""
        try:
            with open(Path(path), "r", encoding="utf-8") as f:
                items = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot load service catalog from {path}: {e}") from e

        services: list[Service] = []
        for item in items:
            try:
                services.append(
                    Service(
                        id=str(item["id"]),
                        name=str(item["name"]),
                        duration_minutes=int(item["durationMinutes"]),
                        description=str(item.get("description", "")),
                    )
                )
            except (KeyError, TypeError, ValueError) as e:
                raise ConfigurationError(f"Invalid service entry in {path}: {item!r}") from e
        return cls(services)

    def get_service(self, service_id: str) -> Service | None:
        return self._catalog.get(service_id.strip())

    def list_services(self) -> list[Service]:
        return list(self._catalog.values())
