from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from classroom.core.errors import Unauthorized
from classroom.core.security.auth import generate_token, verify_password
from classroom.crud.users import get_user_by_username
from classroom.db.session import get_db
from classroom.schemas.user import TokenResponse

router = APIRouter(tags=["authentication"])

@router.post("/login", response_model=TokenResponse)
def login(request: Annotated[OAuth2PasswordRequestForm, Depends()], db: Session = Depends(get_db)):
    user = get_user_by_username(request.username, db)

    # Verify credentials
    if not user or not verify_password(request.password, user.hashed_password):
        raise Unauthorized("Invalid username or password")

    token = generate_token({"sub": user.username})

    return TokenResponse(access_token=token, role=user.role.role)
