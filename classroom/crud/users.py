from typing import List
from sqlalchemy.orm import Session
from classroom.models.user import User

def get_user_by_username(username: str, db: Session):
    return db.query(User).filter(User.username == username).first()

def get_users_by_ids(user_ids: List[int], db: Session) -> List[User]:
    if not user_ids:
        return []
    return db.query(User).filter(User.id.in_(user_ids)).all()
