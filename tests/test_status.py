import pytest

from classroom.core.errors import Conflict
from classroom.models import SubmissionStatus
from classroom.services.status import SubmissionEvent, next_status


def test_pending_moves_to_submitted():
    assert next_status(SubmissionStatus.PENDING, SubmissionEvent.SUBMIT) == SubmissionStatus.SUBMITTED


def test_submitted_is_terminal():
    with pytest.raises(Conflict, match="already been submitted"):
        next_status(SubmissionStatus.SUBMITTED, SubmissionEvent.SUBMIT)
