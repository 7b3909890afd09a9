from dishka import FromDishka
from dishka.integrations.fastapi import DishkaRoute
from fastapi import APIRouter
from pydantic import BaseModel

from vidacure.config import Config

router = APIRouter(tags=["Health"], route_class=DishkaRoute)


class HealthResponse(BaseModel):
    status: str
    version: str


@router.get("/health", response_model=HealthResponse)
async def health(config: FromDishka[Config]) -> HealthResponse:
    """Liveness probe."""
    return HealthResponse(status="ok", version=config.server.version)
