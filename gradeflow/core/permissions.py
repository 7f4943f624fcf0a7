from fastapi import Depends, HTTPException, status

from gradeflow.core.current_user import get_current_user
from gradeflow.models.user import User


def require_lecturer(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_lecturer:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Lecturer role required",
        )
    return current_user
