from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.orm import Session

from classroom.db.session import get_db
from classroom.dependencies.auth import get_current_username
from classroom.routers.assignments import read_upload
from classroom.schemas.submission import SubmissionOut
from classroom.services import submissions as submission_service
from classroom.services.file_storage import FileStorage, get_file_storage

router = APIRouter(prefix="/assignments/submissions", tags=["submissions"])


@router.post("", status_code=status.HTTP_201_CREATED)
def add_submission(
    assignment_id: int = Form(...),
    file: Optional[UploadFile] = File(None),
    username: str = Depends(get_current_username),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_file_storage),
):
    submission = submission_service.add_submission(
        username, assignment_id, read_upload(file), db=db, storage=storage
    )
    return {
        "message": "Submission added successfully",
        "submission": SubmissionOut.model_validate(submission),
    }


@router.get("/{assignment_id}")
def get_assignment_details(
    assignment_id: int,
    username: str = Depends(get_current_username),
    db: Session = Depends(get_db),
):
    details = submission_service.get_assignment_details(username, assignment_id, db=db)
    if isinstance(details, list):
        return {"submissions": details}
    return {"submission": details}
