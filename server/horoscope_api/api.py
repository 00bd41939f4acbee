# server/horoscope_api/api.py
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
import logging
import time

from .schemas import HoroscopeRequest, HoroscopeResponse, ErrorOut
from .errors import HoroscopeError
from .obs.logging import StructuredLogger
from .obs.metrics import metrics

# Structured logger for business operations
business_logger = StructuredLogger(__name__)
logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/horoscope",
    response_model=HoroscopeResponse,
    responses={
        400: {"model": ErrorOut},
        500: {"model": ErrorOut}
    }
)
def horoscope(req: HoroscopeRequest, request: Request):
    """
    Compute sidereal (Lahiri) planetary positions for a date, UTC time and Indian city.
    """
    service = request.app.state.service
    start_time = time.perf_counter()

    try:
        result = service.handle(req)
    except HoroscopeError as e:
        duration_ms = (time.perf_counter() - start_time) * 1000
        business_logger.horoscope_error(
            error_code=e.code,
            error_message=e.message,
            location=req.location,
            duration_ms=duration_ms
        )
        raise

    duration_ms = (time.perf_counter() - start_time) * 1000
    names = [p.planet for p in result.sidereal_positions]
    skipped = [b.name for b in service.bodies if b.name not in names]

    metrics.record_horoscope(req.location.lower(), duration_ms / 1000)
    business_logger.horoscope_computed(
        location=req.location,
        julian_day=result.julian_day,
        body_count=len(names),
        skipped=skipped,
        duration_ms=duration_ms
    )

    return JSONResponse(result.model_dump(by_alias=True))
