from pydantic import BaseModel
from classroom.models.user import RoleType

class Identity(BaseModel):
    id: int
    username: str
    role: RoleType

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: RoleType
