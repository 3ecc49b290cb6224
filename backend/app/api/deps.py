from collections.abc import Callable, Generator, Iterable

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from app.core.security import Actor, UserRole, decode_token
from app.db.session import SessionLocal
from app.services.scope import SchedulingScope, resolve_scope

security = HTTPBearer()


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_actor(credentials: HTTPAuthorizationCredentials = Depends(security)) -> Actor:
    token = credentials.credentials
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_token(token)
        actor_id = payload.get("sub")
        role = UserRole(payload.get("role"))
    except (JWTError, ValueError) as exc:
        raise credentials_exception from exc
    if actor_id is None:
        raise credentials_exception
    return Actor(id=str(actor_id), role=role, school_id=payload.get("school_id"))


def require_roles(*roles: UserRole) -> Callable[[Actor], Actor]:
    allowed_roles: Iterable[UserRole] = set(roles)

    def role_checker(current_actor: Actor = Depends(get_current_actor)) -> Actor:
        if current_actor.role not in allowed_roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return current_actor

    return role_checker


def get_scope(
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> SchedulingScope:
    if not current_actor.school_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Token is not bound to a school")
    return resolve_scope(db, current_actor.school_id)


ADMIN_ONLY = (UserRole.admin,)
SCHEDULERS = (UserRole.admin, UserRole.scheduler)
ANY_ROLE = (UserRole.admin, UserRole.scheduler, UserRole.staff)
