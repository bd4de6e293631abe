from fastapi import APIRouter, Depends

from clinic_backend.auth.dependencies import get_current_user
from clinic_backend.models.user import User

router = APIRouter(tags=['auth'])


@router.get("/profile")
def profile(current_user: User = Depends(get_current_user)):
    return {
        "success": True,
        "data": {
            "id": current_user.id,
            "name": current_user.name,
            "mobile": current_user.mobile,
            "email": current_user.email,
            "role": current_user.role,
        },
    }
