from sqlalchemy.orm import Session
from classroom.models.user import Role, RoleType

def init_db(db: Session) -> None:
    """Seed one Role row per RoleType; existing rows are left alone"""
    existing = {role.role for role in db.query(Role).all()}
    missing = [Role(role=role_type) for role_type in RoleType if role_type not in existing]
    if not missing:
        return

    db.add_all(missing)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
