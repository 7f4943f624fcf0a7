from gradeflow.db.base_class import Base

# import models so Base.metadata sees every table
from gradeflow.models import (  # noqa: F401
    ai_grading_log,
    assignment,
    course,
    enrollment,
    submission,
    user,
)
