import logging
import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.errors import ConflictError, InvalidCredentials, UsernameTaken, ValidationError
from ..core.security import create_access_token, hash_password, verify_password
from ..models import User

logger = logging.getLogger(__name__)


def parse_user_id(value: str) -> uuid.UUID:
    return uuid.UUID(value)


def issue_token(user: User) -> str:
    extra = {"username": user.username} if user.username else None
    return create_access_token(str(user.id), extra=extra)


def register(db: Session, email: str, password: str) -> User:
    if not password:
        raise ValidationError("Password is required")
    email = email.strip().lower()
    if db.query(User).filter(User.email == email).first():
        raise ConflictError("Email already registered")
    user = User(email=email, password_hash=hash_password(password))
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("auth.registered user_id=%s", user.id)
    return user


def sign_in_with_password(db: Session, email: str, password: str) -> User:
    user = db.query(User).filter(User.email == email.strip().lower()).first()
    if not user or not verify_password(password, user.password_hash):
        raise InvalidCredentials()
    return user


def set_username(db: Session, user: User, username: str) -> User:
    username = (username or "").strip()
    if not username:
        raise ValidationError("Username is required")
    taken = db.query(User).filter(User.username == username, User.id != user.id).first()
    if taken:
        raise UsernameTaken()
    user.username = username
    user.display_name = username
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise UsernameTaken() from exc
    db.refresh(user)
    logger.info("auth.username_set user_id=%s username=%s", user.id, username)
    return user


def update_display_name(db: Session, user: User, display_name: str) -> User:
    display_name = (display_name or "").strip()
    if not display_name:
        raise ValidationError("Display name is required")
    user.display_name = display_name
    db.commit()
    db.refresh(user)
    return user
