import secrets
import time
from urllib.parse import quote_plus

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from orbitcloud.api.deps import get_store
from orbitcloud.api.responses import ok
from orbitcloud.core.errors import InvalidInput, Unauthorized
from orbitcloud.core.security import hash_password, verify_password
from orbitcloud.db.store import JsonStore
from orbitcloud.models.user import User
from orbitcloud.repositories import user_repo

router = APIRouter(prefix="/auth", tags=["auth"])

AVATAR_URL = "https://ui-avatars.com/api/?name={name}&background=0D8ABC&color=fff"


class RegisterPayload(BaseModel):
    name: str
    email: str
    password: str


class LoginPayload(BaseModel):
    email: str
    password: str


@router.post("/register")
def register(payload: RegisterPayload, store: JsonStore = Depends(get_store)):
    email = payload.email.strip().lower()
    if not email or not payload.password:
        raise InvalidInput("Email and password are required")
    if user_repo.get_by_email(store, email):
        raise InvalidInput("Email is already registered")

    user = User(
        id=f"user_{int(time.time() * 1000)}_{secrets.token_hex(2)}",
        name=payload.name.strip() or email,
        email=email,
        password_hash=hash_password(payload.password),
        balance=0,
        picture=AVATAR_URL.format(name=quote_plus(payload.name.strip())),
    )
    user_repo.save(store, user)
    return ok(user.public(), message="Registration successful")


@router.post("/login")
def login(payload: LoginPayload, request: Request, store: JsonStore = Depends(get_store)):
    user = user_repo.get_by_email(store, payload.email.strip().lower())
    if user is None or not verify_password(payload.password, user.password_hash):
        raise Unauthorized("Wrong email or password")
    request.session.update({"user_id": user.id})
    return ok(user.public())


@router.get("/me")
def me(request: Request, store: JsonStore = Depends(get_store)):
    user_id = request.session.get("user_id")
    user = user_repo.get_by_id(store, user_id) if user_id else None
    if user is None:
        raise Unauthorized("Not logged in")
    return ok(user.public())


@router.post("/logout")
def logout(request: Request):
    request.session.clear()
    return ok(message="Logged out")
