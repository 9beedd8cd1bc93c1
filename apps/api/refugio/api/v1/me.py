from fastapi import APIRouter
from pydantic import BaseModel

from refugio.auth.deps import CurrentIdentity
from refugio.schemas import UserRole

router = APIRouter(prefix="/me", tags=["me"])


class MeOut(BaseModel):
    user_id: str
    email: str | None
    name: str
    role: UserRole


@router.get("", response_model=MeOut)
def me(identity: CurrentIdentity):
    return MeOut(user_id=identity.id, email=identity.email, name=identity.label, role=identity.role)
