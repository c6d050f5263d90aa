# api/routes_user.py
from fastapi import APIRouter, Depends, HTTPException

from core.response import ok
from core.singleton import get_registry, get_scheduler
from models.schemas import RegisterDeviceRequest
from services.device_registry import DeviceRegistry
from services.scheduler import DisruptionScheduler

router = APIRouter()


@router.get("/disruptions")
async def current_disruptions(scheduler: DisruptionScheduler = Depends(get_scheduler)):
    """The last committed snapshot, in display order."""
    snapshot = scheduler.store.current()
    return ok({
        "taken_at": snapshot.taken_at.isoformat() if scheduler.store.is_seeded else None,
        "disruptions": [d.model_dump(mode="json") for d in snapshot.ordered()],
    })


@router.post("/triggers/foreground")
async def app_foreground(scheduler: DisruptionScheduler = Depends(get_scheduler)):
    """App-foreground trigger: run a cycle now unless one is already in flight."""
    report = await scheduler.run_cycle(trigger="foreground")
    return ok(report.summary())


@router.post("/devices/register")
async def register_device(req: RegisterDeviceRequest, registry: DeviceRegistry = Depends(get_registry)):
    """Register a device push token and subscribe it to its topics (all topics by default)."""
    if not req.token:
        raise HTTPException(status_code=400, detail="Device token is required")
    device = registry.register(req.token, device=req.device, app_version=req.app_version, topics=req.topics)
    return ok({"message": "Device registered successfully", "topics": device.topics})


@router.delete("/devices/{token}")
async def unregister_device(token: str, registry: DeviceRegistry = Depends(get_registry)):
    if not registry.unregister(token):
        raise HTTPException(status_code=404, detail="Device not found")
    return ok({"message": "Device unregistered"})
