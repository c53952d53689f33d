from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, Response

from trajet_api.db.models import Driver
from trajet_api.routers.deps import current_driver
from trajet_api.schemas import trajet_from_payload, trajet_to_dict
from trajet_api.services.trajet_service import TrajetService

router = APIRouter(prefix="/api/trajets", tags=["trajets"])
trajet_service = TrajetService()


@router.get("")
def list_trajets():
    return [trajet_to_dict(t) for t in trajet_service.list_all()]


@router.get("/recent")
def recent_trajets():
    return [trajet_to_dict(t) for t in trajet_service.list_recent()]


@router.get("/search")
def search_trajets(
    from_: Optional[str] = Query(None, alias="from"),
    to: Optional[str] = None,
    date: Optional[str] = None,
    type_: Optional[str] = Query(None, alias="type"),
    range_: Optional[str] = Query(None, alias="range"),
):
    found = trajet_service.search(from_, to, date, type_, range_)
    return [trajet_to_dict(t) for t in found]


@router.get("/upcoming")
def my_upcoming_trajets(driver: Driver = Depends(current_driver)):
    return [trajet_to_dict(t) for t in trajet_service.list_upcoming_for_driver(driver.id)]


@router.get("/driver/{driver_id}")
def driver_upcoming_trajets(driver_id: str):
    return [trajet_to_dict(t) for t in trajet_service.list_upcoming_for_driver(driver_id)]


@router.get("/{trajet_id}")
def get_trajet(trajet_id: str):
    return trajet_to_dict(trajet_service.get(trajet_id))


@router.post("", status_code=201)
def create_trajet(payload: dict[str, Any] = Body(...)):
    return trajet_to_dict(trajet_service.create(trajet_from_payload(payload)))


@router.put("/{trajet_id}")
def update_trajet(trajet_id: str, payload: dict[str, Any] = Body(...)):
    return trajet_to_dict(trajet_service.update(trajet_id, trajet_from_payload(payload)))


@router.delete("/{trajet_id}", status_code=204)
def delete_trajet(trajet_id: str):
    trajet_service.delete(trajet_id)
    return Response(status_code=204)
