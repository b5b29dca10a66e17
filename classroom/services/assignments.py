import logging
from datetime import datetime
from typing import List, Optional, Union

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from classroom.core.errors import DatabaseError, Forbidden, InvalidInput, NotFound, StorageError
from classroom.crud import assignments as assignment_crud
from classroom.crud.users import get_users_by_ids
from classroom.db.transaction import transaction
from classroom.models.assignment import Assignment, SubmissionStatus
from classroom.models.user import RoleType
from classroom.schemas.assignment import (
    AssignmentFilters,
    AssignmentOut,
    AssignmentUpdate,
    StudentAssignmentOut,
)
from classroom.schemas.user import Identity
from classroom.services.file_storage import FileStorage, FileUpload, get_file_storage
from classroom.services.identity import require_role, resolve
from classroom.utils.helpers import as_naive_utc, utc_now

logger = logging.getLogger(__name__)


def _validate_students(student_ids: List[int], db: Session) -> None:
    if not student_ids:
        return
    users = {user.id: user for user in get_users_by_ids(student_ids, db)}
    unknown = [student_id for student_id in student_ids if student_id not in users]
    if unknown:
        raise InvalidInput(f"Unknown student ids: {unknown}")
    not_students = [
        student_id for student_id in student_ids
        if users[student_id].role.role != RoleType.STUDENT
    ]
    if not_students:
        raise InvalidInput(f"Users are not students: {not_students}")


def create_assignment(
    username: str,
    *,
    title: Optional[str],
    due_date: Optional[datetime],
    file: Optional[FileUpload],
    description: Optional[str] = None,
    published_at: Optional[datetime] = None,
    student_ids: Optional[List[int]] = None,
    db: Session,
    storage: Optional[FileStorage] = None,
) -> Assignment:
    """
    Create an assignment and map it to the given students.

    The file is uploaded before the database is touched. The assignment row
    and every student mapping are then written in one transaction; if that
    fails nothing is persisted and the uploaded blob stays behind.
    """
    logger.info(f"Creating assignment {title!r} for {username}")
    storage = storage or get_file_storage()

    identity = resolve(username, db)
    require_role(identity, RoleType.TUTOR, "Only tutors can create assignments")

    if title is None or not title.strip():
        raise InvalidInput("Title is required")
    if due_date is None:
        raise InvalidInput("Due date is required")
    if file is None or not file.filename:
        raise InvalidInput("File is required")
    storage.validate(file)

    student_ids = list(dict.fromkeys(student_ids or []))
    _validate_students(student_ids, db)

    published_at = as_naive_utc(published_at) or utc_now()
    deadline = as_naive_utc(due_date)

    file_url = storage.upload(file)

    try:
        with transaction(db):
            assignment = assignment_crud.create_assignment(
                tutor_id=identity.id,
                title=title.strip(),
                description=description,
                published_at=published_at,
                deadline=deadline,
                file_url=file_url,
                db=db,
            )
            mapped = assignment_crud.get_existing_student_ids(assignment.id, db)
            for student_id in student_ids:
                if student_id in mapped:
                    continue
                assignment_crud.add_student_assignment(assignment.id, student_id, db)
                mapped.add(student_id)
    except IntegrityError as e:
        logger.warning(f"Assignment creation rolled back, blob {file_url} left in place")
        raise DatabaseError("Could not save assignment") from e
    except Exception:
        logger.warning(f"Assignment creation rolled back, blob {file_url} left in place")
        raise

    db.refresh(assignment)
    logger.info(f"Created assignment {assignment.id} with {len(student_ids)} students")
    return assignment


def _load_owned_assignment(identity: Identity, assignment_id: int, db: Session) -> Assignment:
    assignment = assignment_crud.get_assignment(assignment_id, db)
    if assignment is None:
        raise NotFound("Assignment not found")
    if assignment.tutor_id != identity.id:
        raise Forbidden("You are not authorized to modify this assignment")
    return assignment


def update_assignment(
    username: str,
    assignment_id: int,
    changes: AssignmentUpdate,
    file: Optional[FileUpload] = None,
    *,
    db: Session,
    storage: Optional[FileStorage] = None,
) -> Assignment:
    """Apply the fields present in `changes`; a new file replaces file_url."""
    logger.info(f"Updating assignment {assignment_id} for {username}")
    storage = storage or get_file_storage()

    identity = resolve(username, db)
    require_role(identity, RoleType.TUTOR, "Only tutors can update assignments")
    assignment = _load_owned_assignment(identity, assignment_id, db)

    fields = changes.present_fields()
    if not fields and file is None:
        raise InvalidInput("No fields provided to update")

    if "title" in fields:
        if fields["title"] is None or not fields["title"].strip():
            raise InvalidInput("Title cannot be empty")
        fields["title"] = fields["title"].strip()
    for key in ("due_date", "published_at"):
        if key in fields:
            if fields[key] is None:
                raise InvalidInput(f"{key} cannot be empty")
            fields[key] = as_naive_utc(fields[key])

    if file is not None:
        storage.validate(file)
        # the previous blob is not removed
        fields["file_url"] = storage.upload(file)

    try:
        updated = assignment_crud.update_assignment(assignment, fields, db)
    except SQLAlchemyError as e:
        db.rollback()
        raise DatabaseError("Could not update assignment") from e

    logger.info(f"Updated assignment {assignment_id}: {sorted(fields)}")
    return updated


def delete_assignment(
    username: str,
    assignment_id: int,
    *,
    db: Session,
    storage: Optional[FileStorage] = None,
) -> None:
    logger.info(f"Deleting assignment {assignment_id} for {username}")
    storage = storage or get_file_storage()

    identity = resolve(username, db)
    require_role(identity, RoleType.TUTOR, "Only tutors can delete assignments")
    assignment = _load_owned_assignment(identity, assignment_id, db)

    if assignment.file_url:
        try:
            storage.delete(assignment.file_url)
        except StorageError as e:
            logger.warning(f"Could not delete blob for assignment {assignment_id}: {e.message}")

    try:
        assignment_crud.delete_assignment(assignment, db)
    except SQLAlchemyError as e:
        db.rollback()
        raise DatabaseError("Could not delete assignment") from e

    logger.info(f"Deleted assignment {assignment_id}")


def get_assignments(
    username: str,
    filters: Optional[AssignmentFilters] = None,
    *,
    db: Session,
    now: Optional[datetime] = None,
) -> List[Union[AssignmentOut, StudentAssignmentOut]]:
    """
    List the assignments visible to the requester.

    Tutors see the assignments they created. Students see the ones they are
    mapped to, each with its status; OVERDUE means still pending after the
    deadline and is computed against `now`.
    """
    filters = filters or AssignmentFilters()
    now = as_naive_utc(now) or utc_now()
    identity = resolve(username, db)

    if identity.role == RoleType.TUTOR:
        assignments = assignment_crud.get_tutor_assignments(identity.id, filters.published_at, now, db)
        return [AssignmentOut.model_validate(assignment) for assignment in assignments]

    if identity.role == RoleType.STUDENT:
        rows = assignment_crud.get_student_assignments(
            identity.id, filters.published_at, filters.status, now, db
        )
        return [
            StudentAssignmentOut(
                **AssignmentOut.model_validate(assignment).model_dump(),
                status=status,
                overdue=status == SubmissionStatus.PENDING and assignment.deadline < now,
            )
            for assignment, status in rows
        ]

    raise Forbidden("Invalid role")
