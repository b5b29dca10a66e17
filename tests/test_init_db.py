from classroom.db.init_db import init_db
from classroom.models import Role, RoleType


def test_seeds_every_role_once(db):
    init_db(db)
    init_db(db)

    assert sorted(role.role.value for role in db.query(Role).all()) == sorted(r.value for r in RoleType)


def test_restores_a_missing_role(db):
    db.query(Role).filter(Role.role == RoleType.STUDENT).delete()
    db.commit()

    init_db(db)

    assert db.query(Role).filter(Role.role == RoleType.STUDENT).count() == 1
