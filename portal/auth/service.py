import logging
from sqlalchemy.exc import IntegrityError

from portal.db.gateway import PortalGateway
from portal.errors import (
    Conflict, DuplicateEmail, Forbidden, InvalidCredential, NotFound,
    PendingApproval, RequiresPasswordLinkage,
)
from portal.models.enums import Role
from portal.models.user import User, new_id
from portal.utils.security import hash_password, verify_password, create_access_token

logger = logging.getLogger(__name__)

def normalize_email(email: str) -> str:
    return email.strip().lower()

def _insert_user(gw: PortalGateway, user: User) -> User:
    try:
        return gw.add(user)
    except IntegrityError:
        # lost a race with a concurrent registration
        raise DuplicateEmail()

def register_user(gw: PortalGateway, email: str, password: str, role: Role, name: str) -> User:
    email = normalize_email(email)
    if gw.find_user_by_email(email):
        raise DuplicateEmail()
    user = User(
        id=new_id(),
        email=email,
        password_hash=hash_password(password),
        role=role,
        name=name,
        is_approved=role != Role.manager,
        sso_linked=False,
    )
    user = _insert_user(gw, user)
    logger.info(f"Registered {role.value} account {user.id}")
    return user

def authenticate(gw: PortalGateway, email: str, password: str) -> User:
    user = gw.find_user_by_email(normalize_email(email))
    if not user or not verify_password(password, user.password_hash):
        logger.warning("Failed login attempt")
        raise InvalidCredential()
    if user.role == Role.manager and not user.is_approved:
        raise PendingApproval()
    return user

def issue_token(user: User) -> str:
    return create_access_token(user.id, user.role.value)

def _require_admin(actor: User):
    if actor.role != Role.admin:
        raise Forbidden("Admin access required")

def approve_manager(gw: PortalGateway, admin: User, user_id: str) -> User:
    _require_admin(admin)
    pending = {"role": Role.manager, "is_approved": False}
    if not gw.conditional_update(User, user_id, {"is_approved": True}, expected=pending):
        raise NotFound("No pending manager with this id")
    logger.info(f"Manager {user_id} approved by {admin.id}")
    return gw.get_user(user_id)

def reject_manager(gw: PortalGateway, admin: User, user_id: str) -> None:
    _require_admin(admin)
    pending = {"role": Role.manager, "is_approved": False}
    if not gw.conditional_delete(User, user_id, expected=pending):
        raise NotFound("No pending manager with this id")
    logger.info(f"Manager request {user_id} rejected by {admin.id}")

def sso_provision(gw: PortalGateway, email: str, name: str, provider: str, provider_id: str) -> User:
    existing = gw.find_user_by_provider(provider, provider_id)
    if existing:
        return existing

    email = normalize_email(email)
    by_email = gw.find_user_by_email(email)
    if by_email:
        if not by_email.sso_linked:
            raise RequiresPasswordLinkage()
        # already linked to a different identity of some provider
        raise Conflict("This email is linked to another sign-in identity")

    user = User(
        id=new_id(),
        email=email,
        password_hash=None,
        role=Role.user,
        name=name or email.split("@")[0],
        is_approved=True,
        sso_linked=True,
        provider=provider,
        provider_id=provider_id,
    )
    user = _insert_user(gw, user)
    logger.info(f"Provisioned SSO account {user.id} via {provider}")
    return user

def link_sso(gw: PortalGateway, actor: User, provider: str, provider_id: str) -> User:
    owner = gw.find_user_by_provider(provider, provider_id)
    if owner and owner.id != actor.id:
        raise Conflict("This sign-in identity is linked to another account")
    values = {"sso_linked": True, "provider": provider, "provider_id": provider_id}
    try:
        applied = gw.conditional_update(User, actor.id, values)
    except IntegrityError:
        raise Conflict("This sign-in identity is linked to another account")
    if not applied:
        raise NotFound("User not found")
    logger.info(f"Linked {provider} identity to {actor.id}")
    return gw.get_user(actor.id)

def update_profile(gw: PortalGateway, actor: User, name: str | None = None,
                   email: str | None = None, password: str | None = None) -> User:
    values = {}
    if name is not None:
        values["name"] = name
    if email is not None:
        email = normalize_email(email)
        if email != actor.email:
            if gw.find_user_by_email(email):
                raise DuplicateEmail()
            values["email"] = email
    if password is not None:
        values["password_hash"] = hash_password(password)
    if not values:
        return actor
    try:
        applied = gw.conditional_update(User, actor.id, values)
    except IntegrityError:
        raise DuplicateEmail()
    if not applied:
        raise NotFound("User not found")
    return gw.get_user(actor.id)
