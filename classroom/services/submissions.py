import logging
from typing import List, Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from classroom.core.errors import Conflict, DatabaseError, Forbidden, InvalidInput, NotFound
from classroom.crud import submissions as submission_crud
from classroom.crud.assignments import get_assignment, get_student_assignment
from classroom.db.transaction import transaction
from classroom.models.submission import Submission
from classroom.models.user import RoleType
from classroom.schemas.submission import SubmissionOut, TutorSubmissionOut
from classroom.services import status
from classroom.services.file_storage import FileStorage, FileUpload, get_file_storage
from classroom.services.identity import require_role, resolve

logger = logging.getLogger(__name__)


def add_submission(
    username: str,
    assignment_id: int,
    file: Optional[FileUpload],
    *,
    db: Session,
    storage: Optional[FileStorage] = None,
) -> Submission:
    """
    Record a student's submission and mark their mapping SUBMITTED.

    Authorization is checked before the upload. The submission insert and the
    status change share one transaction, so either both are visible or
    neither is.
    """
    logger.info(f"Adding submission for assignment {assignment_id} by {username}")
    storage = storage or get_file_storage()

    identity = resolve(username, db)
    require_role(identity, RoleType.STUDENT, "Only students can submit assignments")

    student_assignment = get_student_assignment(assignment_id, identity.id, db)
    if student_assignment is None:
        raise Forbidden("Student has not been assigned this assignment")
    status.next_status(student_assignment.status, status.SubmissionEvent.SUBMIT)

    if file is None or not file.filename:
        raise InvalidInput("File is required")
    storage.validate(file)

    file_url = storage.upload(file)

    try:
        with transaction(db):
            submission = submission_crud.create_submission(assignment_id, identity.id, file_url, db)
            status.mark_submitted(assignment_id, identity.id, db)
    except IntegrityError as e:
        logger.warning(f"Submission rolled back, blob {file_url} left in place")
        if submission_crud.get_submission_for_student(assignment_id, identity.id, db) is not None:
            raise Conflict("Assignment has already been submitted") from e
        raise DatabaseError("Could not save submission") from e
    except Exception:
        logger.warning(f"Submission rolled back, blob {file_url} left in place")
        raise

    db.refresh(submission)
    logger.info(f"Submission {submission.id} recorded for assignment {assignment_id}")
    return submission


def get_assignment_details(
    username: str,
    assignment_id: int,
    *,
    db: Session,
) -> Union[List[TutorSubmissionOut], Optional[SubmissionOut]]:
    """
    Tutors get every submission for the assignment, each with the student's
    username. Students get their own submission, or None if they have not
    submitted yet.
    """
    identity = resolve(username, db)

    if get_assignment(assignment_id, db) is None:
        raise NotFound("Assignment not found")

    if identity.role == RoleType.TUTOR:
        return [
            TutorSubmissionOut(**SubmissionOut.model_validate(submission).model_dump(), username=student_username)
            for submission, student_username in submission_crud.get_submissions_for_assignment(assignment_id, db)
        ]

    if identity.role == RoleType.STUDENT:
        submission = submission_crud.get_submission_for_student(assignment_id, identity.id, db)
        return SubmissionOut.model_validate(submission) if submission else None

    raise Forbidden("Invalid role")
