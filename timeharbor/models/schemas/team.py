from datetime import datetime

from pydantic import BaseModel


class TeamCreateRequest(BaseModel):
    name: str


class TeamJoinRequest(BaseModel):
    code: str


class TeamRead(BaseModel):
    id: int
    name: str
    code: str
    leader_id: str
    member_ids: list[str]
    admin_ids: list[str]
    created_at: datetime


class TeamDataResponse(BaseModel):
    data: TeamRead


class TeamListResponse(BaseModel):
    data: list[TeamRead]


class TeamNameAvailability(BaseModel):
    available: bool
    message: str
