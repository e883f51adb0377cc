from typing import Annotated

from fastapi import APIRouter, Depends

from timeharbor.api.dependencies import get_health_service
from timeharbor.models.schemas.health import HealthResponse
from timeharbor.services.health_service import HealthService

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
def health(
    health_service: Annotated[HealthService, Depends(get_health_service)],
) -> HealthResponse:
    return health_service.get_health()
