from fastapi import Request, Depends
from sqlalchemy.orm import Session
from jose import JWTError
from portal.db.session import SessionLocal
from portal.db.gateway import PortalGateway
from portal.errors import InvalidCredential, PendingApproval
from portal.models.enums import Role
from portal.models.user import User
from portal.utils.security import decode_token

COOKIE_NAME = "portal_jwt"


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_gateway(db: Session = Depends(get_db)) -> PortalGateway:
    return PortalGateway(db)

def _get_token(request: Request) -> str | None:
    auth = request.headers.get("Authorization")
    if auth and auth.lower().startswith("bearer "):
        return auth.split(" ", 1)[1].strip()
    return request.cookies.get(COOKIE_NAME)

def get_current_user(request: Request, gw: PortalGateway = Depends(get_gateway)) -> User:
    token = _get_token(request)
    if not token:
        raise InvalidCredential("Not authenticated")

    try:
        payload = decode_token(token)
    except JWTError:
        raise InvalidCredential("Invalid token")
    user_id = payload.get("sub")
    if user_id is None:
        raise InvalidCredential("Invalid token")

    user = gw.get_user(user_id)
    if user is None:
        raise InvalidCredential("User not found")
    if user.role == Role.manager and not user.is_approved:
        raise PendingApproval()
    return user
