from sqlalchemy import Column, Integer, String, ForeignKey, Enum, DateTime
from sqlalchemy.orm import relationship
import enum
from classroom.db.base import Base
from classroom.utils.helpers import utc_now

class RoleType(enum.Enum):
    TUTOR = "tutor"
    STUDENT = "student"

class Role(Base):
    __tablename__ = "roles"
    id = Column(Integer, primary_key=True)
    role = Column(Enum(RoleType), nullable=False, unique=True)
    users = relationship("User", back_populates="role")

class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True)
    username = Column(String(100), nullable=False, unique=True)
    email = Column(String(100), nullable=False, unique=True)
    role_id = Column(Integer, ForeignKey("roles.id"), nullable=False)
    hashed_password = Column(String, nullable=False)
    created_at = Column(DateTime, default=utc_now)

    role = relationship("Role", back_populates="users", lazy="joined")
    assignments = relationship("Assignment", back_populates="tutor")
    student_assignments = relationship("StudentAssignment", back_populates="student")
    submissions = relationship("Submission", back_populates="student")
