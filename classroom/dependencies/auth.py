from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer

from classroom.core.config.settings import get_settings
from classroom.core.security.auth import resolve_token

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{get_settings().API_V1_PREFIX}/login", auto_error=False)

def get_current_username(token: Optional[str] = Depends(oauth2_scheme)) -> str:
    return resolve_token(token)
