from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, Enum, UniqueConstraint
from sqlalchemy.orm import relationship
import enum
from classroom.db.base import Base
from classroom.utils.helpers import utc_now

class SubmissionStatus(enum.Enum):
    PENDING = "pending"
    SUBMITTED = "submitted"

class Assignment(Base):
    __tablename__ = "assignments"

    id = Column(Integer, primary_key=True)
    tutor_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    published_at = Column(DateTime, nullable=False, default=utc_now)
    deadline = Column(DateTime, nullable=False, index=True)
    file_url = Column(Text, nullable=False)  # URL of the blob holding the assignment file
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    tutor = relationship("User", back_populates="assignments")
    student_assignments = relationship(
        "StudentAssignment",
        back_populates="assignment",
        cascade="all, delete-orphan",
    )
    submissions = relationship(
        "Submission",
        back_populates="assignment",
        cascade="all, delete-orphan",
    )

class StudentAssignment(Base):
    __tablename__ = "student_assignments"
    __table_args__ = (
        UniqueConstraint("assignment_id", "student_id", name="uq_student_assignment"),
    )

    id = Column(Integer, primary_key=True)
    assignment_id = Column(Integer, ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(Enum(SubmissionStatus), nullable=False, default=SubmissionStatus.PENDING)

    assignment = relationship("Assignment", back_populates="student_assignments")
    student = relationship("User", back_populates="student_assignments")
