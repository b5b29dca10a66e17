from datetime import datetime
from typing import List, Optional, Set, Tuple

from sqlalchemy import update
from sqlalchemy.orm import Session

from classroom.models.assignment import Assignment, StudentAssignment, SubmissionStatus
from classroom.schemas.assignment import PublishedFilter, StatusFilter

# Columns a partial update may touch, keyed by the name used in requests
UPDATABLE_COLUMNS = {
    "title": "title",
    "description": "description",
    "due_date": "deadline",
    "published_at": "published_at",
    "file_url": "file_url",
}

def create_assignment(
    tutor_id: int,
    title: str,
    description: Optional[str],
    published_at: datetime,
    deadline: datetime,
    file_url: str,
    db: Session,
) -> Assignment:
    assignment = Assignment(
        tutor_id=tutor_id,
        title=title,
        description=description,
        published_at=published_at,
        deadline=deadline,
        file_url=file_url,
    )
    db.add(assignment)
    db.flush()
    return assignment

def get_assignment(assignment_id: int, db: Session) -> Optional[Assignment]:
    return db.query(Assignment).filter(Assignment.id == assignment_id).first()

def update_assignment(assignment: Assignment, fields: dict, db: Session) -> Assignment:
    for key, value in fields.items():
        setattr(assignment, UPDATABLE_COLUMNS[key], value)
    db.commit()
    db.refresh(assignment)
    return assignment

def delete_assignment(assignment: Assignment, db: Session) -> None:
    db.delete(assignment)
    db.commit()

def get_existing_student_ids(assignment_id: int, db: Session) -> Set[int]:
    rows = (
        db.query(StudentAssignment.student_id)
        .filter(StudentAssignment.assignment_id == assignment_id)
        .all()
    )
    return {row.student_id for row in rows}

def add_student_assignment(assignment_id: int, student_id: int, db: Session) -> StudentAssignment:
    student_assignment = StudentAssignment(
        assignment_id=assignment_id,
        student_id=student_id,
        status=SubmissionStatus.PENDING,
    )
    db.add(student_assignment)
    db.flush()
    return student_assignment

def get_student_assignment(assignment_id: int, student_id: int, db: Session) -> Optional[StudentAssignment]:
    return db.query(StudentAssignment).filter(
        StudentAssignment.assignment_id == assignment_id,
        StudentAssignment.student_id == student_id,
    ).first()

def set_student_assignment_status(
    assignment_id: int,
    student_id: int,
    from_status: SubmissionStatus,
    to_status: SubmissionStatus,
    db: Session,
) -> int:
    """Compare-and-set the status of one mapping; returns the number of rows changed."""
    result = db.execute(
        update(StudentAssignment)
        .where(
            StudentAssignment.assignment_id == assignment_id,
            StudentAssignment.student_id == student_id,
            StudentAssignment.status == from_status,
        )
        .values(status=to_status)
        .execution_options(synchronize_session="fetch")
    )
    return result.rowcount

def _apply_published_filter(query, published: Optional[PublishedFilter], now: datetime):
    if published == PublishedFilter.SCHEDULED:
        query = query.filter(Assignment.published_at > now)
    elif published == PublishedFilter.ONGOING:
        query = query.filter(Assignment.published_at <= now)
    return query

def get_tutor_assignments(
    tutor_id: int,
    published: Optional[PublishedFilter],
    now: datetime,
    db: Session,
) -> List[Assignment]:
    query = db.query(Assignment).filter(Assignment.tutor_id == tutor_id)
    query = _apply_published_filter(query, published, now)
    return query.order_by(Assignment.deadline, Assignment.id).all()

def get_student_assignments(
    student_id: int,
    published: Optional[PublishedFilter],
    status: Optional[StatusFilter],
    now: datetime,
    db: Session,
) -> List[Tuple[Assignment, SubmissionStatus]]:
    query = (
        db.query(Assignment, StudentAssignment.status)
        .join(StudentAssignment, StudentAssignment.assignment_id == Assignment.id)
        .filter(StudentAssignment.student_id == student_id)
    )
    query = _apply_published_filter(query, published, now)

    if status == StatusFilter.PENDING:
        query = query.filter(StudentAssignment.status == SubmissionStatus.PENDING)
    elif status == StatusFilter.SUBMITTED:
        query = query.filter(StudentAssignment.status == SubmissionStatus.SUBMITTED)
    elif status == StatusFilter.OVERDUE:
        query = query.filter(
            StudentAssignment.status == SubmissionStatus.PENDING,
            Assignment.deadline < now,
        )

    return [(assignment, row_status) for assignment, row_status in query.order_by(Assignment.deadline, Assignment.id).all()]
