from fastapi import APIRouter, Depends, status
from portal.auth.deps import get_gateway, get_current_user
from portal.auth.service import approve_manager, register_user, reject_manager, update_profile
from portal.db.gateway import PortalGateway
from portal.errors import Forbidden, NotFound
from portal.models.enums import Role
from portal.models.user import User
from portal.schemas.auth import RegisterIn
from portal.schemas.user import ProfileUpdate, UserOut
from portal.visibility.resolver import (
    assignable_users, find_visible, pending_managers, visible_users,
)

router = APIRouter(prefix="/users", tags=["users"])

@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register(body: RegisterIn, gw: PortalGateway = Depends(get_gateway)):
    return register_user(gw, body.email, body.password, body.role, body.name)

@router.get("", response_model=list[UserOut])
def list_users(gw: PortalGateway = Depends(get_gateway), user: User = Depends(get_current_user)):
    return visible_users(gw.snapshot(), user)

@router.get("/me", response_model=UserOut)
def me(user: User = Depends(get_current_user)):
    return user

@router.put("/me", response_model=UserOut)
def edit_profile(body: ProfileUpdate, gw: PortalGateway = Depends(get_gateway),
                 user: User = Depends(get_current_user)):
    return update_profile(gw, user, name=body.name, email=body.email, password=body.password)

@router.get("/assignable", response_model=list[UserOut])
def list_assignable(gw: PortalGateway = Depends(get_gateway), user: User = Depends(get_current_user)):
    if user.role == Role.user:
        raise Forbidden("Only admins and managers assign tasks")
    return assignable_users(gw.snapshot(), user)

@router.get("/pending", response_model=list[UserOut])
def list_pending(gw: PortalGateway = Depends(get_gateway), user: User = Depends(get_current_user)):
    if user.role != Role.admin:
        raise Forbidden("Admin access required")
    return pending_managers(gw.snapshot(), user)

@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: str, gw: PortalGateway = Depends(get_gateway), user: User = Depends(get_current_user)):
    found = find_visible(visible_users(gw.snapshot(), user), user_id)
    if found is None:
        raise NotFound("User not found")
    return found

@router.put("/{user_id}/approve", response_model=UserOut)
def approve(user_id: str, gw: PortalGateway = Depends(get_gateway), user: User = Depends(get_current_user)):
    return approve_manager(gw, user, user_id)

@router.delete("/{user_id}/reject")
def reject(user_id: str, gw: PortalGateway = Depends(get_gateway), user: User = Depends(get_current_user)):
    reject_manager(gw, user, user_id)
    return {"ok": True, "id": user_id}
