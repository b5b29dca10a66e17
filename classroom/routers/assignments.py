from datetime import datetime
from typing import List, Optional, Set

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from sqlalchemy.orm import Session

from classroom.db.session import get_db
from classroom.dependencies.auth import get_current_username
from classroom.schemas.assignment import (
    AssignmentFilters,
    AssignmentOut,
    AssignmentUpdate,
    PublishedFilter,
    StatusFilter,
    parse_student_ids,
)
from classroom.services import assignments as assignment_service
from classroom.services.file_storage import FileStorage, FileUpload, get_file_storage

router = APIRouter(prefix="/assignments", tags=["assignments"])


def read_upload(file: Optional[UploadFile]) -> Optional[FileUpload]:
    if file is None or not file.filename:
        return None
    return FileUpload(
        filename=file.filename,
        content=file.file.read(),
        content_type=file.content_type or "application/octet-stream",
    )


async def sent_form_fields(request: Request) -> Set[str]:
    """Names of the form fields present in the request, including blank ones"""
    form = await request.form()
    return set(form.keys())


@router.post("", status_code=status.HTTP_201_CREATED)
def create_assignment(
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    published_at: Optional[datetime] = Form(None),
    due_date: Optional[datetime] = Form(None),
    student_ids: Optional[List[str]] = Form(None),
    file: Optional[UploadFile] = File(None),
    username: str = Depends(get_current_username),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_file_storage),
):
    assignment = assignment_service.create_assignment(
        username,
        title=title,
        description=description,
        published_at=published_at,
        due_date=due_date,
        file=read_upload(file),
        student_ids=parse_student_ids(student_ids),
        db=db,
        storage=storage,
    )
    return {
        "message": "Assignment created successfully",
        "assignment": AssignmentOut.model_validate(assignment),
    }


@router.get("")
def get_assignments(
    published_at: Optional[PublishedFilter] = None,
    status: Optional[StatusFilter] = None,
    username: str = Depends(get_current_username),
    db: Session = Depends(get_db),
):
    filters = AssignmentFilters(published_at=published_at, status=status)
    assignments = assignment_service.get_assignments(username, filters, db=db)
    return {"assignments": assignments}


@router.patch("/{assignment_id}")
def update_assignment(
    assignment_id: int,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    published_at: Optional[datetime] = Form(None),
    due_date: Optional[datetime] = Form(None),
    file: Optional[UploadFile] = File(None),
    sent: Set[str] = Depends(sent_form_fields),
    username: str = Depends(get_current_username),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_file_storage),
):
    # A field sent blank is present with value None, which clears description
    provided = {
        "title": title,
        "description": description,
        "published_at": published_at,
        "due_date": due_date,
    }
    changes = AssignmentUpdate(**{
        key: (None if value == "" else value) for key, value in provided.items() if key in sent
    })

    assignment = assignment_service.update_assignment(
        username,
        assignment_id,
        changes,
        read_upload(file),
        db=db,
        storage=storage,
    )
    return {
        "message": "Assignment updated successfully",
        "assignment": AssignmentOut.model_validate(assignment),
    }


@router.delete("/{assignment_id}")
def delete_assignment(
    assignment_id: int,
    username: str = Depends(get_current_username),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_file_storage),
):
    assignment_service.delete_assignment(username, assignment_id, db=db, storage=storage)
    return {"message": "Assignment deleted successfully"}
