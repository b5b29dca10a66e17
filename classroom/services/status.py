import enum

from sqlalchemy.orm import Session

from classroom.core.errors import Conflict
from classroom.crud.assignments import set_student_assignment_status
from classroom.models.assignment import SubmissionStatus


class SubmissionEvent(enum.Enum):
    SUBMIT = "submit"


# PENDING is assigned when the student is mapped; SUBMITTED is terminal.
TRANSITIONS = {
    (SubmissionStatus.PENDING, SubmissionEvent.SUBMIT): SubmissionStatus.SUBMITTED,
}


def next_status(current: SubmissionStatus, event: SubmissionEvent) -> SubmissionStatus:
    try:
        return TRANSITIONS[(current, event)]
    except KeyError:
        if current == SubmissionStatus.SUBMITTED:
            raise Conflict("Assignment has already been submitted")
        raise Conflict(f"Cannot {event.value} an assignment in status {current.value}")


def mark_submitted(assignment_id: int, student_id: int, db: Session) -> SubmissionStatus:
    """
    Move one student's mapping from PENDING to SUBMITTED.

    Must run inside the transaction that inserts the submission row. The
    update only matches a PENDING row, so of two racing callers exactly one
    sees a changed row and the other gets Conflict.
    """
    target = next_status(SubmissionStatus.PENDING, SubmissionEvent.SUBMIT)
    changed = set_student_assignment_status(
        assignment_id, student_id, SubmissionStatus.PENDING, target, db
    )
    if changed != 1:
        raise Conflict("Assignment has already been submitted")
    return target
