import enum
import json
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict

from classroom.core.errors import InvalidInput
from classroom.models.assignment import SubmissionStatus


class PublishedFilter(str, enum.Enum):
    ALL = "ALL"
    SCHEDULED = "SCHEDULED"  # published_at in the future
    ONGOING = "ONGOING"  # published_at <= now


class StatusFilter(str, enum.Enum):
    ALL = "ALL"
    PENDING = "PENDING"
    SUBMITTED = "SUBMITTED"
    OVERDUE = "OVERDUE"  # pending and past the deadline


class AssignmentFilters(BaseModel):
    published_at: Optional[PublishedFilter] = None
    status: Optional[StatusFilter] = None


class AssignmentUpdate(BaseModel):
    """
    Partial update of an assignment.

    Only the fields that were explicitly set take part in the update, so an
    omitted field is never confused with one set to None. The replacement
    file travels separately and becomes file_url once uploaded.
    """
    title: Optional[str] = None
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    published_at: Optional[datetime] = None

    def present_fields(self) -> dict:
        return self.model_dump(exclude_unset=True)


class AssignmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tutor_id: int
    title: str
    description: Optional[str] = None
    published_at: datetime
    deadline: datetime
    file_url: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class StudentAssignmentOut(AssignmentOut):
    status: SubmissionStatus
    overdue: bool = False


class UpcomingDeadline(BaseModel):
    assignment_id: int
    assignment_title: str
    deadline: datetime
    student_email: str


def parse_student_ids(raw: Any) -> List[int]:
    """
    Coerce the student list of a create request into integers.

    Accepts a list (repeated form fields), a JSON array string or a comma
    separated string. Order is kept and duplicates are dropped.
    """
    if raw is None or raw == "":
        return []
    if isinstance(raw, str):
        text = raw.strip()
        if text.startswith("["):
            try:
                raw = json.loads(text)
            except ValueError:
                raise InvalidInput("studentIds must be a JSON array of integers")
        else:
            raw = [part for part in text.split(",") if part.strip()]
    if not isinstance(raw, (list, tuple)):
        raw = [raw]

    # a single form field may itself hold a JSON array
    if len(raw) == 1 and isinstance(raw[0], str) and raw[0].strip().startswith("["):
        return parse_student_ids(raw[0])

    student_ids = []
    for value in raw:
        if isinstance(value, bool):
            raise InvalidInput(f"Invalid student id: {value!r}")
        try:
            student_id = int(str(value).strip())
        except (TypeError, ValueError):
            raise InvalidInput(f"Invalid student id: {value!r}")
        if student_id not in student_ids:
            student_ids.append(student_id)
    return student_ids
