from classroom.models.user import Role, RoleType, User
from classroom.models.assignment import Assignment, StudentAssignment, SubmissionStatus
from classroom.models.submission import Submission
