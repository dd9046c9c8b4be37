from datetime import datetime, timezone as dt_timezone

from fastapi import APIRouter, Depends, HTTPException

from moodfeed.api.v1.deps import get_orchestrator
from moodfeed.schemas.state import NewsCategoriesUpdate, StateResponse, TemperatureUnitUpdate
from moodfeed.schemas.weather import Location
from moodfeed.services.state.orchestrator import AppOrchestrator


router = APIRouter()


def _snapshot(orchestrator: AppOrchestrator) -> StateResponse:
    return StateResponse(
        state=orchestrator.state,
        mood=orchestrator.current_mood(),
        generated_at=datetime.now(dt_timezone.utc),
    )


@router.get("", response_model=StateResponse)
async def get_state(orchestrator: AppOrchestrator = Depends(get_orchestrator)):
    return _snapshot(orchestrator)


@router.post("/refresh", response_model=StateResponse)
async def refresh_state(orchestrator: AppOrchestrator = Depends(get_orchestrator)):
    await orchestrator.refresh()
    await orchestrator.settle()
    return _snapshot(orchestrator)


@router.post("/clear", response_model=StateResponse)
async def clear_state(orchestrator: AppOrchestrator = Depends(get_orchestrator)):
    orchestrator.clear()
    return _snapshot(orchestrator)


@router.put("/location", response_model=StateResponse)
async def update_location(payload: Location, orchestrator: AppOrchestrator = Depends(get_orchestrator)):
    orchestrator.set_location(payload)
    await orchestrator.settle()
    return _snapshot(orchestrator)


@router.put("/units", response_model=StateResponse)
async def update_units(payload: TemperatureUnitUpdate, orchestrator: AppOrchestrator = Depends(get_orchestrator)):
    orchestrator.set_temperature_unit(payload.unit)
    await orchestrator.settle()
    return _snapshot(orchestrator)


@router.put("/categories", response_model=StateResponse)
async def update_categories(
    payload: NewsCategoriesUpdate, orchestrator: AppOrchestrator = Depends(get_orchestrator)
):
    try:
        orchestrator.set_news_categories(payload.categories)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    await orchestrator.settle()
    return _snapshot(orchestrator)
