"""HTTP route definitions for the service."""

from __future__ import annotations

import json
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from app.schemas import ErrorResponse, InsertedReading, Reading
from app.security import require_api_key
from datastore.reading_store import DEFAULT_LIMIT, StoreUnavailable, clamp_limit
from services.ingestion import (
    IngestionService,
    ValidationFailed,
    build_default_ingestion,
    parse_timestamp,
)

router = APIRouter()


def get_ingestion() -> IngestionService:
    try:
        return build_default_ingestion()
    except StoreUnavailable as exc:
        raise _store_unavailable(exc) from exc


def _parse_limit(raw: Optional[str]) -> int:
    if raw is None:
        return DEFAULT_LIMIT
    try:
        return clamp_limit(int(raw.strip()))
    except ValueError:
        return DEFAULT_LIMIT


def _parse_since(raw: Optional[str]) -> Optional[datetime]:
    if raw is None or not raw.strip():
        return None
    try:
        return parse_timestamp(raw)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="since must be an ISO-8601 timestamp",
        ) from exc


def _store_unavailable(exc: StoreUnavailable) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=str(exc),
    )


@router.post(
    "/api/sensors",
    status_code=status.HTTP_201_CREATED,
    response_model=InsertedReading,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
    },
    dependencies=[Depends(require_api_key)],
    summary="Store one reading posted by a sensor device.",
)
async def create_reading(
    request: Request,
    ingestion: IngestionService = Depends(get_ingestion),
) -> InsertedReading:
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Request body must be valid JSON",
        ) from exc

    try:
        return ingestion.ingest(payload)
    except ValidationFailed as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except StoreUnavailable as exc:
        raise _store_unavailable(exc) from exc


@router.get(
    "/api/sensors",
    response_model=List[Reading],
    summary="List readings newest first, optionally since an instant.",
)
async def list_readings(
    limit: Optional[str] = Query(default=None, description="Row cap, defaults to 100, max 1000."),
    since: Optional[str] = Query(default=None, description="ISO-8601 lower bound, inclusive."),
    device_id: Optional[str] = Query(default=None),
    ingestion: IngestionService = Depends(get_ingestion),
) -> List[Reading]:
    try:
        return ingestion.readings(
            since=_parse_since(since),
            device_id=device_id or None,
            limit=_parse_limit(limit),
        )
    except StoreUnavailable as exc:
        raise _store_unavailable(exc) from exc


@router.get(
    "/api/sensors/latest",
    response_model=Reading,
    responses={404: {"model": ErrorResponse}},
    summary="Fetch the most recent reading.",
)
async def latest_reading(
    device_id: Optional[str] = Query(default=None),
    ingestion: IngestionService = Depends(get_ingestion),
) -> Reading:
    try:
        reading = ingestion.latest(device_id=device_id or None)
    except StoreUnavailable as exc:
        raise _store_unavailable(exc) from exc
    if reading is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No readings found",
        )
    return reading


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
