from fastapi import APIRouter, Depends, Response
from portal.auth.deps import COOKIE_NAME, get_gateway, get_current_user
from portal.auth.service import authenticate, issue_token, link_sso, sso_provision
from portal.auth.sso import PROVIDERS, get_identity_provider, provider_enabled
from portal.config import settings
from portal.db.gateway import PortalGateway
from portal.models.user import User
from portal.schemas.auth import LoginIn, LoginOut, SSOCodeIn, SSOProviderOut
from portal.schemas.user import UserOut

router = APIRouter(tags=["auth"])

def set_auth_cookie(response: Response, token: str):
    response.set_cookie(
        key=COOKIE_NAME,
        value=token,
        httponly=True,
        samesite="Lax",
        secure=settings.app_env != "dev",
        path="/",
        max_age=settings.access_token_expire_minutes * 60,
    )

def _login_response(user: User, response: Response) -> LoginOut:
    token = issue_token(user)
    set_auth_cookie(response, token)
    return LoginOut(user=UserOut.model_validate(user), access_token=token)

@router.post("/login", response_model=LoginOut)
def login(body: LoginIn, response: Response, gw: PortalGateway = Depends(get_gateway)):
    user = authenticate(gw, body.email, body.password)
    return _login_response(user, response)

@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(COOKIE_NAME, path="/")
    return {"ok": True}

@router.get("/sso/providers", response_model=list[SSOProviderOut])
def sso_providers():
    return [
        SSOProviderOut(id=key, name=label, enabled=provider_enabled(key))
        for key, (label, _) in PROVIDERS.items()
    ]

@router.post("/sso/{provider}/callback", response_model=LoginOut)
async def sso_callback(provider: str, body: SSOCodeIn, response: Response,
                       gw: PortalGateway = Depends(get_gateway)):
    profile = await get_identity_provider(provider).exchange_code(body.code)
    user = sso_provision(gw, profile.email, profile.name, profile.provider, profile.provider_id)
    return _login_response(user, response)

@router.post("/sso/{provider}/link", response_model=UserOut)
async def sso_link(provider: str, body: SSOCodeIn, gw: PortalGateway = Depends(get_gateway),
                   user: User = Depends(get_current_user)):
    profile = await get_identity_provider(provider).exchange_code(body.code)
    return link_sso(gw, user, profile.provider, profile.provider_id)
