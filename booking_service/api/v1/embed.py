import logging

from fastapi import APIRouter, Depends, Query

from booking_service.api.v1.errors import error_response
from booking_service.application.exceptions import ConfigurationError, ValidationError
from booking_service.application.use_cases.embed_config import EmbedConfigEmitter
from booking_service.wiring.dependencies import get_embed_config_emitter

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/embed-config")
def embed_config(
    domain: str = Query(""),
    emitter: EmbedConfigEmitter = Depends(get_embed_config_emitter),
):
    try:
        config = emitter.emit(domain)
    except ValidationError as e:
        return error_response(422, "validation_error", fields=e.fields, detail=str(e))
    except ConfigurationError as e:
        logger.error("Embed configuration invalid", extra={"reason": str(e)})
        return error_response(500, "configuration_error", detail=str(e))
    return config.to_payload()
