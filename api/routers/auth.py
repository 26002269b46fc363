"""Account endpoints: sign up, sign in, sign out, current user."""
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from api.deps import get_auth, get_current_user, get_token

router = APIRouter(prefix="/auth", tags=["auth"])


class SignUpRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str
    password: str
    full_name: Optional[str] = Field(default=None, alias="fullName")


class SignInRequest(BaseModel):
    email: str
    password: str


@router.post("/signup", status_code=201)
async def sign_up(body: SignUpRequest, auth=Depends(get_auth)):
    user, token = auth.sign_up(body.email, body.password, body.full_name)
    return {"user": user.model_dump(mode="json"), "token": token}


@router.post("/signin")
async def sign_in(body: SignInRequest, auth=Depends(get_auth)):
    user, token = auth.sign_in(body.email, body.password)
    return {"user": user.model_dump(mode="json"), "token": token}


@router.post("/signout")
async def sign_out(token=Depends(get_token), user=Depends(get_current_user), auth=Depends(get_auth)):
    auth.sign_out(token)
    return {"success": True}


@router.get("/me")
async def me(user=Depends(get_current_user)):
    return {"user": user.model_dump(mode="json")}
