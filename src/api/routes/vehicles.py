"""
Vehicle endpoints
=================

GET    /api/v1/vehicles              -- list (public)
GET    /api/v1/vehicles/{vehicle_id} -- detail (public)
POST   /api/v1/vehicles              -- create (admin)
PUT    /api/v1/vehicles/{vehicle_id} -- partial update (admin)
DELETE /api/v1/vehicles/{vehicle_id} -- delete unless actively booked (admin)
"""

from fastapi import APIRouter, Depends, Request

from src.api.dependencies import get_current_identity, get_vehicle_registry
from src.api.middleware import DEFAULT_LIMIT, limiter
from src.api.responses import envelope
from src.api.schemas import VehicleCreateRequest, VehicleResponse, VehicleUpdateRequest
from src.domain.entities import Identity
from src.services.vehicles import VehicleRegistry

router = APIRouter(prefix="/vehicles", tags=["vehicles"])


@router.get("", summary="List all vehicles")
@limiter.limit(DEFAULT_LIMIT)
async def list_vehicles(
    request: Request,
    registry: VehicleRegistry = Depends(get_vehicle_registry),
):
    vehicles = await registry.list_vehicles()
    return envelope(
        "Vehicles retrieved successfully",
        [VehicleResponse.model_validate(v) for v in vehicles],
    )


@router.get("/{vehicle_id}", summary="Get one vehicle")
@limiter.limit(DEFAULT_LIMIT)
async def get_vehicle(
    request: Request,
    vehicle_id: int,
    registry: VehicleRegistry = Depends(get_vehicle_registry),
):
    vehicle = await registry.get_vehicle(vehicle_id)
    return envelope("Vehicle retrieved successfully", VehicleResponse.model_validate(vehicle))


@router.post("", status_code=201, summary="Create a vehicle")
@limiter.limit(DEFAULT_LIMIT)
async def create_vehicle(
    request: Request,
    body: VehicleCreateRequest,
    identity: Identity = Depends(get_current_identity),
    registry: VehicleRegistry = Depends(get_vehicle_registry),
):
    vehicle = await registry.create_vehicle(identity, **body.model_dump())
    return envelope("Vehicle created successfully", VehicleResponse.model_validate(vehicle))


@router.put("/{vehicle_id}", summary="Update a vehicle")
@limiter.limit(DEFAULT_LIMIT)
async def update_vehicle(
    request: Request,
    vehicle_id: int,
    body: VehicleUpdateRequest,
    identity: Identity = Depends(get_current_identity),
    registry: VehicleRegistry = Depends(get_vehicle_registry),
):
    vehicle = await registry.update_vehicle(
        identity, vehicle_id, body.model_dump(exclude_unset=True)
    )
    return envelope("Vehicle updated successfully", VehicleResponse.model_validate(vehicle))


@router.delete("/{vehicle_id}", summary="Delete a vehicle")
@limiter.limit(DEFAULT_LIMIT)
async def delete_vehicle(
    request: Request,
    vehicle_id: int,
    identity: Identity = Depends(get_current_identity),
    registry: VehicleRegistry = Depends(get_vehicle_registry),
):
    await registry.delete_vehicle(identity, vehicle_id)
    return envelope("Vehicle deleted successfully")
