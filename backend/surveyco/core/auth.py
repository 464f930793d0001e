from fastapi import Header

from surveyco.core.errors import AppError, ErrorKind

def get_current_user_id(x_user_id: str = Header(default="")) -> str:
    # identity is resolved upstream; we only receive the verified user id
    user_id = x_user_id.strip()
    if not user_id:
        raise AppError(ErrorKind.UNAUTHORIZED, "Unauthorized access.")
    return user_id
