import jwt
from fastapi import APIRouter, Depends, HTTPException, Header
from sqlalchemy.orm import Session
from ..db.session import get_db
from ..models import User
from ..schemas.auth import LoginRequest, RegisterRequest, TokenResponse, UsernameRequest
from ..core.security import decode_token
from ..services import identity
from ..services.screens import screen_for

router = APIRouter()


def parse_token(authorization: str | None) -> str:
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing Authorization header")
    if not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Invalid Authorization header")
    return authorization.split(" ", 1)[1]


def get_current_user(token: str, db: Session) -> User:
    try:
        payload = decode_token(token)
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="Invalid token")
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token")
    try:
        user = db.get(User, identity.parse_user_id(user_id))
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid token")
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return user


def current_user(authorization: str | None = Header(default=None), db: Session = Depends(get_db)) -> User:
    return get_current_user(parse_token(authorization), db)


def current_username(user: User = Depends(current_user)) -> str:
    # chat features need the username picked at the prompt
    if not user.username:
        raise HTTPException(status_code=403, detail="Username required")
    return user.username


def _token_response(user: User) -> TokenResponse:
    return TokenResponse(access_token=identity.issue_token(user), screen=screen_for(user.username).value)


@router.post("/register", response_model=TokenResponse)
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    user = identity.register(db, payload.email, payload.password)
    return _token_response(user)


@router.post("/login", response_model=TokenResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    user = identity.sign_in_with_password(db, payload.email, payload.password)
    return _token_response(user)


@router.post("/username", response_model=TokenResponse)
def choose_username(payload: UsernameRequest, user: User = Depends(current_user), db: Session = Depends(get_db)):
    user = identity.set_username(db, user, payload.username)
    return _token_response(user)
