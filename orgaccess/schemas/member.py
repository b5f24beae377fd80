from pydantic import BaseModel
from uuid import UUID

from orgaccess.core.roles import Role


class RoleUpdateRequest(BaseModel):
    new_role: Role


class RoleChange(BaseModel):
    user_id: UUID
    old_role: Role
    new_role: Role


class Removal(BaseModel):
    user_id: UUID
    email: str
