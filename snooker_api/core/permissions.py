from snooker_api.core.errors import ForbiddenError


def owns(user, resource) -> bool:
    """True when ``resource`` belongs to ``user``."""
    return resource is not None and str(resource.owner_id) == str(user.id)


def ensure_owner(user, resource, message: str = "Access denied") -> None:
    if not owns(user, resource):
        raise ForbiddenError(message)
