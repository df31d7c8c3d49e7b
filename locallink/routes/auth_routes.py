from fastapi import APIRouter, Depends

from locallink.auth.dependencies import get_current_user
from locallink.models.user import User

router = APIRouter(tags=["auth"])


@router.get("/me")
def me(current_user: User = Depends(get_current_user)):
    return {"uid": current_user.uid, "email": current_user.email, "role": current_user.role}
