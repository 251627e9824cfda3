from __future__ import annotations

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from app.api.v1.schemas.runs import RunCreate, RunOut, RunUpdate
from app.core.deps import get_db
from app.core.errors import ConflictError, NotFoundError, TransientStoreError, ValidationError
from app.services import runs as runs_service

router = APIRouter(prefix="/v1/runs", tags=["runs"])


def _http_error(e: Exception) -> HTTPException:
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, ConflictError):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, ValidationError):
        return HTTPException(status_code=400, detail=str(e))
    return HTTPException(status_code=503, detail="Run store unavailable, retry later")


_HANDLED = (NotFoundError, ConflictError, ValidationError, TransientStoreError)


@router.post("", response_model=RunOut, status_code=201)
def create_run(body: RunCreate, db: Session = Depends(get_db)):
    try:
        return runs_service.create_run(db, body.model_dump())
    except _HANDLED as e:
        raise _http_error(e)


@router.get("", response_model=list[RunOut])
def list_runs(db: Session = Depends(get_db)):
    try:
        return runs_service.list_runs(db)
    except _HANDLED as e:
        raise _http_error(e)


# Declared before /{run_id} so "search" is not parsed as an id.
@router.get("/search", response_model=list[RunOut])
def search_runs(
    source: Optional[str] = Query(None, min_length=1),
    destination: Optional[str] = Query(None, min_length=1),
    departure_date: Optional[date] = Query(None, description="YYYY-MM-DD"),
    run_number: Optional[int] = Query(None, ge=0),
    db: Session = Depends(get_db),
):
    try:
        return runs_service.search_runs(
            db,
            source=source,
            destination=destination,
            departure_date=departure_date,
            run_number=run_number,
        )
    except _HANDLED as e:
        raise _http_error(e)


@router.get("/{run_id}", response_model=RunOut)
def get_run(run_id: uuid.UUID, db: Session = Depends(get_db)):
    try:
        return runs_service.get_run(db, run_id)
    except _HANDLED as e:
        raise _http_error(e)


@router.put("/{run_id}", response_model=RunOut)
def update_run(run_id: uuid.UUID, body: RunUpdate, db: Session = Depends(get_db)):
    try:
        return runs_service.update_run(db, run_id, body.model_dump(exclude_unset=True, exclude_none=True))
    except _HANDLED as e:
        raise _http_error(e)


@router.delete("/{run_id}", status_code=204)
def delete_run(run_id: uuid.UUID, db: Session = Depends(get_db)):
    try:
        runs_service.delete_run(db, run_id)
    except _HANDLED as e:
        raise _http_error(e)
    return Response(status_code=204)
