from sqlalchemy.orm import Session

from classroom.core.errors import Forbidden, NotFound
from classroom.crud.users import get_user_by_username
from classroom.models.user import RoleType
from classroom.schemas.user import Identity


def resolve(username: str, db: Session) -> Identity:
    """Map an authenticated username to its numeric identity and role."""
    user = get_user_by_username(username, db)
    if user is None:
        raise NotFound(f'User with username "{username}" not found')
    return Identity(id=user.id, username=user.username, role=user.role.role)


def require_role(identity: Identity, role: RoleType, message: str) -> None:
    if identity.role != role:
        raise Forbidden(message)
