from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from classroom.models.assignment import Assignment, StudentAssignment, SubmissionStatus
from classroom.models.submission import Submission
from classroom.models.user import User
from classroom.schemas.assignment import UpcomingDeadline

def create_submission(assignment_id: int, student_id: int, file_url: str, db: Session) -> Submission:
    submission = Submission(
        assignment_id=assignment_id,
        student_id=student_id,
        file_url=file_url,
    )
    db.add(submission)
    db.flush()
    return submission

def get_submissions_for_assignment(assignment_id: int, db: Session) -> List[Tuple[Submission, str]]:
    rows = (
        db.query(Submission, User.username)
        .join(User, Submission.student_id == User.id)
        .filter(Submission.assignment_id == assignment_id)
        .order_by(Submission.submitted_at, Submission.id)
        .all()
    )
    return [(submission, username) for submission, username in rows]

def get_submission_for_student(assignment_id: int, student_id: int, db: Session) -> Optional[Submission]:
    return db.query(Submission).filter(
        Submission.assignment_id == assignment_id,
        Submission.student_id == student_id,
    ).first()


def get_upcoming_deadlines(window_start: datetime, window_end: datetime, db: Session) -> List[UpcomingDeadline]:
    """Pending mappings whose assignment deadline falls in [window_start, window_end]."""
    rows = (
        db.query(
            StudentAssignment.assignment_id,
            Assignment.title,
            Assignment.deadline,
            User.email,
        )
        .join(Assignment, StudentAssignment.assignment_id == Assignment.id)
        .join(User, StudentAssignment.student_id == User.id)
        .filter(
            Assignment.deadline >= window_start,
            Assignment.deadline <= window_end,
            StudentAssignment.status == SubmissionStatus.PENDING,
        )
        .order_by(Assignment.deadline, StudentAssignment.id)
        .all()
    )
    return [
        UpcomingDeadline(
            assignment_id=assignment_id,
            assignment_title=title,
            deadline=deadline,
            student_email=email,
        )
        for assignment_id, title, deadline, email in rows
    ]
