from datetime import datetime
from pydantic import EmailStr, Field
from portal.models.enums import Role
from portal.schemas.base import CamelModel

class UserOut(CamelModel):
    id: str
    email: str
    name: str
    role: Role
    is_approved: bool
    sso_linked: bool
    provider: str | None = None
    provider_id: str | None = None
    created_at: datetime | None = None

class ProfileUpdate(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=120)
    email: EmailStr | None = None
    password: str | None = Field(default=None, min_length=6, max_length=256)
