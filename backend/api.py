"""
API endpoints for controller status, settings and cycle failures.

"""

from dataclasses import asdict

from api_dataclasses import APICycleFailure, APICycleStatus, APISettings
from fastapi import APIRouter, HTTPException
from loguru import logger

router = APIRouter()


@router.get("/api/status")
async def get_status():
    """Get the outcome of the most recent decision cycle."""
    from app import grid_charge_app

    last_cycle = grid_charge_app.charge_controller.last_cycle
    if last_cycle is None:
        return {"status": "pending", "message": "No cycle has run yet"}

    return asdict(APICycleStatus.from_internal(last_cycle))


@router.get("/api/settings")
async def get_settings():
    """Get the settings the last cycle ran with."""
    from app import grid_charge_app

    return asdict(APISettings.from_internal(grid_charge_app.charge_controller.settings))


@router.get("/api/runtime-failures")
async def get_runtime_failures():
    """Get all cycle failures that have not been dismissed."""
    from app import grid_charge_app

    failures = grid_charge_app.charge_controller.failure_tracker.get_active_failures()
    return [asdict(APICycleFailure.from_internal(failure)) for failure in failures]


@router.post("/api/runtime-failures/dismiss-all")
async def dismiss_all_runtime_failures():
    """Dismiss every active cycle failure."""
    from app import grid_charge_app

    count = grid_charge_app.charge_controller.failure_tracker.dismiss_all()
    return {"dismissed": count}


@router.post("/api/runtime-failures/{failure_id}/dismiss")
async def dismiss_runtime_failure(failure_id: str):
    """Dismiss a single cycle failure."""
    from app import grid_charge_app

    try:
        grid_charge_app.charge_controller.failure_tracker.dismiss_failure(failure_id)
    except ValueError as e:
        logger.warning(f"Dismiss failed: {e}")
        raise HTTPException(status_code=404, detail=str(e)) from e

    return {"message": f"Failure {failure_id} dismissed"}
