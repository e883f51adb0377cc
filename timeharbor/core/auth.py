from typing import Annotated

from fastapi import Header

from timeharbor.core.errors import NotAuthenticatedError


def get_current_user_id(
    x_user_id: Annotated[str | None, Header()] = None,
) -> str:
    """Resolve the caller identity forwarded by the session layer."""
    user_id = x_user_id.strip() if x_user_id else ""
    if not user_id:
        raise NotAuthenticatedError(
            code="NOT_AUTHENTICATED",
            message="Sign in before tracking time.",
        )
    return user_id
