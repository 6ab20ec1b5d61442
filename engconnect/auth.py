import logging
from datetime import timedelta

from fastapi import APIRouter, Depends
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from engconnect.config import get_settings
from engconnect.db import fetch_first, get_session
from engconnect.errors import ApiError, ErrorKind
from engconnect.guard import AUTHENTICATED, get_token_service, require
from engconnect.models import User
from engconnect.schemas import AuthOut, IdentityOut, LoginIn, RegisterIn, Role
from engconnect.tokens import TokenService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password):
    return pwd_context.hash(password)


def get_user_by_username(session: Session, username: str):
    return fetch_first(session, select(User).where(User.username == username))


def authenticate_user(session: Session, username: str, password: str):
    user = get_user_by_username(session, username)
    if not user:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


def create_access_token(tokens: TokenService, user: User) -> str:
    ttl = timedelta(hours=get_settings().token_ttl_hours)
    return tokens.issue(user.id, Role(user.role), ttl)


def init_admin(session: Session):
    """Seed the admin account named by ENGCONNECT_ADMIN_USERNAME, if any.

    Admins cannot register themselves, so this is the only way one is created.
    """
    settings = get_settings()
    username, password = settings.admin_username, settings.admin_password
    if not username or not password:
        return None
    existing = get_user_by_username(session, username)
    if existing:
        return existing
    admin = User(username=username, password_hash=get_password_hash(password), role=Role.admin.value)
    session.add(admin)
    session.commit()
    session.refresh(admin)
    logger.info("Seeded admin account %s", username)
    return admin


@router.post("/register", status_code=201, response_model=AuthOut)
def register(
    payload: RegisterIn,
    session: Session = Depends(get_session),
    tokens: TokenService = Depends(get_token_service),
):
    if get_user_by_username(session, payload.username):
        raise ApiError(ErrorKind.USERNAME_TAKEN)

    user = User(
        username=payload.username,
        password_hash=get_password_hash(payload.password),
        role=payload.role.value,
        university=payload.university if payload.role == Role.student else None,
        company_name=payload.company_name if payload.role == Role.company else None,
    )
    session.add(user)
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise ApiError(ErrorKind.USERNAME_TAKEN) from exc
    session.refresh(user)
    logger.info("Registered %s %s (id %s)", user.role, user.username, user.id)

    return AuthOut(
        id=user.id,
        username=user.username,
        role=user.role,
        university=user.university,
        token=create_access_token(tokens, user),
        message="User registered successfully",
    )


@router.post("/login", response_model=AuthOut)
def login(
    payload: LoginIn,
    session: Session = Depends(get_session),
    tokens: TokenService = Depends(get_token_service),
):
    user = authenticate_user(session, payload.username, payload.password)
    if not user:
        logger.info("Failed login for %s", payload.username)
        raise ApiError(ErrorKind.INVALID_LOGIN)

    return AuthOut(
        id=user.id,
        username=user.username,
        role=user.role,
        university=user.university,
        token=create_access_token(tokens, user),
        message="Login successful",
    )


@router.get("/profile", response_model=IdentityOut)
def profile(current_user: IdentityOut = Depends(require(AUTHENTICATED))):
    return current_user
