from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from timeharbor.api.dependencies import CurrentUser, get_team_service
from timeharbor.models.schemas.team import (
    TeamCreateRequest,
    TeamDataResponse,
    TeamJoinRequest,
    TeamListResponse,
    TeamNameAvailability,
)
from timeharbor.services.team_service import TeamService

router = APIRouter(prefix="/teams")


@router.get("", response_model=TeamListResponse)
def list_teams(
    user_id: CurrentUser,
    team_service: Annotated[TeamService, Depends(get_team_service)],
) -> TeamListResponse:
    return TeamListResponse(data=team_service.list_teams(user_id))


@router.post("", response_model=TeamDataResponse, status_code=status.HTTP_201_CREATED)
def create_team(
    payload: TeamCreateRequest,
    user_id: CurrentUser,
    team_service: Annotated[TeamService, Depends(get_team_service)],
) -> TeamDataResponse:
    return TeamDataResponse(data=team_service.create_team(user_id, payload))


@router.get("/name-availability", response_model=TeamNameAvailability)
def check_team_name(
    user_id: CurrentUser,
    team_service: Annotated[TeamService, Depends(get_team_service)],
    name: Annotated[str, Query()],
) -> TeamNameAvailability:
    return team_service.check_team_name(name)


@router.post("/join", response_model=TeamDataResponse)
def join_team(
    payload: TeamJoinRequest,
    user_id: CurrentUser,
    team_service: Annotated[TeamService, Depends(get_team_service)],
) -> TeamDataResponse:
    return TeamDataResponse(data=team_service.join_team(user_id, payload))


@router.get("/{team_id}", response_model=TeamDataResponse)
def get_team(
    team_id: int,
    user_id: CurrentUser,
    team_service: Annotated[TeamService, Depends(get_team_service)],
) -> TeamDataResponse:
    return TeamDataResponse(data=team_service.get_team(user_id, team_id))
