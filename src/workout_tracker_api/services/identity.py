"""Helpers for resolving the signed-in user through the identity port."""
from workout_tracker_api.errors import UserNotAuthenticatedError
from workout_tracker_api.repositories.ports import IdentityProvider


async def require_user_id(identity: IdentityProvider) -> str:
    """Current user id, or UserNotAuthenticatedError when nobody is signed in."""
    user = await identity.get_current_user()
    if user is None:
        raise UserNotAuthenticatedError()
    return user.id
