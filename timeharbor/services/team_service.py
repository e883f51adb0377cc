import logging
import secrets
import string
from collections.abc import Iterator
from contextlib import contextmanager

from psycopg import Connection
from psycopg.errors import UniqueViolation

from timeharbor.core.database import get_connection
from timeharbor.core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
)
from timeharbor.models.entities import TeamEntity
from timeharbor.models.schemas.team import (
    TeamCreateRequest,
    TeamJoinRequest,
    TeamNameAvailability,
    TeamRead,
)
from timeharbor.repositories.team_repository import TeamRepository

logger = logging.getLogger(__name__)

TEAM_CODE_ALPHABET = string.ascii_uppercase + string.digits
TEAM_CODE_LENGTH = 8
MAX_CODE_ATTEMPTS = 5


def generate_team_code() -> str:
    return "".join(secrets.choice(TEAM_CODE_ALPHABET) for _ in range(TEAM_CODE_LENGTH))


class TeamService:
    """Teams are the authorization boundary for every time-tracking mutation."""

    def __init__(
        self,
        team_repository: TeamRepository,
        database_url: str | None = None,
    ) -> None:
        self.team_repository = team_repository
        self.database_url = database_url

    @contextmanager
    def _use_connection(self, connection: Connection | None) -> Iterator[Connection]:
        if connection is not None:
            yield connection
            return
        with get_connection(self.database_url) as managed:
            yield managed

    def create_team(self, user_id: str, payload: TeamCreateRequest) -> TeamRead:
        name = self._validate_name(payload.name)

        with get_connection(self.database_url) as connection:
            if self.team_repository.get_by_name(name, connection=connection) is not None:
                self._raise_name_taken(name)

            code = self._unused_code(connection)
            try:
                team = self.team_repository.create(
                    name=name,
                    code=code,
                    leader_id=user_id,
                    connection=connection,
                )
            except UniqueViolation as exc:
                self._raise_name_taken(name, exc=exc)

        logger.info("User %s created team %s (%s)", user_id, team.id, team.name)
        return self._to_team_read(team)

    def check_team_name(self, name: str) -> TeamNameAvailability:
        normalized = name.strip()
        if not normalized:
            return TeamNameAvailability(available=False, message="Enter a project name")

        if self.team_repository.get_by_name(normalized) is not None:
            return TeamNameAvailability(available=False, message="Project name is taken")
        return TeamNameAvailability(available=True, message="Project name is available")

    def join_team(self, user_id: str, payload: TeamJoinRequest) -> TeamRead:
        code = payload.code.strip().upper()

        with get_connection(self.database_url) as connection:
            team = self.team_repository.get_by_code(code, connection=connection)
            if team is None:
                raise NotFoundError(
                    code="TEAM_NOT_FOUND",
                    message="Team not found.",
                    details={"code": code},
                )
            if user_id in team.member_ids:
                raise ConflictError(
                    code="ALREADY_MEMBER",
                    message="You are already a member of this team.",
                    details={"team_id": team.id},
                )

            self.team_repository.add_member(
                team_id=team.id,
                user_id=user_id,
                connection=connection,
            )
            joined = self.team_repository.get_by_id(team.id, connection=connection)

        logger.info("User %s joined team %s", user_id, team.id)
        return self._to_team_read(joined or team)

    def list_teams(self, user_id: str) -> list[TeamRead]:
        teams = self.team_repository.list_for_member(user_id)
        return [self._to_team_read(team) for team in teams]

    def get_team(self, user_id: str, team_id: int) -> TeamRead:
        return self._to_team_read(self.require_member(team_id, user_id))

    def require_member(
        self,
        team_id: int,
        user_id: str,
        connection: Connection | None = None,
    ) -> TeamEntity:
        team = self._get_team(team_id, connection)
        if user_id not in team.member_ids:
            self._raise_forbidden(
                "NOT_A_TEAM_MEMBER",
                "You are not a member of this team.",
                team_id,
            )
        return team

    def require_admin(
        self,
        team_id: int,
        user_id: str,
        connection: Connection | None = None,
    ) -> TeamEntity:
        team = self.require_member(team_id, user_id, connection)
        if user_id not in team.admin_ids:
            self._raise_forbidden("NOT_A_TEAM_ADMIN", "Only team admins can do this.", team_id)
        return team

    def require_leader(
        self,
        team_id: int,
        user_id: str,
        connection: Connection | None = None,
    ) -> TeamEntity:
        team = self.require_member(team_id, user_id, connection)
        if team.leader_id != user_id:
            self._raise_forbidden("NOT_A_TEAM_LEADER", "Only the team leader can do this.", team_id)
        return team

    def _get_team(self, team_id: int, connection: Connection | None) -> TeamEntity:
        with self._use_connection(connection) as active_connection:
            team = self.team_repository.get_by_id(team_id, connection=active_connection)
        if team is None:
            raise NotFoundError(
                code="TEAM_NOT_FOUND",
                message="Team not found.",
                details={"team_id": team_id},
            )
        return team

    def _unused_code(self, connection: Connection) -> str:
        for _ in range(MAX_CODE_ATTEMPTS):
            code = generate_team_code()
            if self.team_repository.get_by_code(code, connection=connection) is None:
                return code
        raise RuntimeError("Could not allocate a unique team code.")

    def _to_team_read(self, team: TeamEntity) -> TeamRead:
        return TeamRead(
            id=team.id,
            name=team.name,
            code=team.code,
            leader_id=team.leader_id,
            member_ids=list(team.member_ids),
            admin_ids=list(team.admin_ids),
            created_at=team.created_at,
        )

    def _validate_name(self, name: str) -> str:
        normalized = name.strip()
        if not 1 <= len(normalized) <= 100:
            raise InvalidInputError(
                code="INVALID_TEAM_NAME",
                message="Team name length must be between 1 and 100 characters.",
            )
        return normalized

    def _raise_name_taken(self, name: str, exc: UniqueViolation | None = None) -> None:
        raise ConflictError(
            code="TEAM_NAME_TAKEN",
            message="Project name is taken.",
            details={"name": name},
        ) from exc

    def _raise_forbidden(self, code: str, message: str, team_id: int) -> None:
        raise ForbiddenError(
            code=code,
            message=message,
            details={"team_id": team_id},
        )
