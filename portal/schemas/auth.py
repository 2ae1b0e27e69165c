from pydantic import EmailStr, Field
from portal.models.enums import Role
from portal.schemas.base import CamelModel
from portal.schemas.user import UserOut

class RegisterIn(CamelModel):
    email: EmailStr
    password: str = Field(min_length=6, max_length=256)
    role: Role = Role.user
    name: str = Field(min_length=1, max_length=120)

class LoginIn(CamelModel):
    email: EmailStr
    password: str

class LoginOut(CamelModel):
    user: UserOut
    access_token: str
    token_type: str = "bearer"

class SSOCodeIn(CamelModel):
    code: str = Field(min_length=1, max_length=2048)

class SSOProviderOut(CamelModel):
    id: str
    name: str
    enabled: bool
