from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

class SubmissionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    assignment_id: int
    student_id: int
    file_url: str
    submitted_at: Optional[datetime] = None

class TutorSubmissionOut(SubmissionOut):
    username: str
