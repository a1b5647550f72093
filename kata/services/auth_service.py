"""Registration, login and token resolution."""

import logging

import jwt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from kata.auth import jwt_handler, passwords
from kata.core.errors import AuthenticationError, ConflictError
from kata.models.user import User
from kata.schemas import AuthResponse, LoginRequest, RegisterRequest, UserResponse, normalize_email

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = 'Invalid email or password'


def issue_token(user: User) -> str:
    return jwt_handler.create_access_token(
        {
            'sub': str(user.id),
            'id': user.id,
            'email': user.email,
            'role': user.role.value,
        }
    )


def build_auth_response(user: User) -> AuthResponse:
    return AuthResponse(user=UserResponse.model_validate(user), token=issue_token(user))


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == normalize_email(email)).first()


def get_user_by_id(db: Session, user_id: int) -> User | None:
    return db.get(User, user_id)


def register(db: Session, data: RegisterRequest) -> AuthResponse:
    email = normalize_email(data.email)
    if get_user_by_email(db, email) is not None:
        raise ConflictError('Email already registered')

    user = User(
        name=data.name,
        email=email,
        hashed_password=passwords.hash_password(data.password),
        role=data.role,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError('Email already registered') from exc
    db.refresh(user)

    logger.info('Registered user %s with role %s', user.id, user.role.value)
    return build_auth_response(user)


def login(db: Session, data: LoginRequest) -> AuthResponse:
    user = get_user_by_email(db, data.email)
    if user is None or not passwords.verify_password(data.password, user.hashed_password):
        logger.warning('Failed login attempt for %s', normalize_email(data.email))
        raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

    return build_auth_response(user)


def resolve_identity(db: Session, token: str) -> User:
    try:
        payload = jwt_handler.decode_access_token(token)
    except jwt.ExpiredSignatureError as exc:
        raise AuthenticationError('Token expired') from exc
    except jwt.InvalidTokenError as exc:
        raise AuthenticationError('Invalid token') from exc

    try:
        user_id = int(payload['sub'])
    except (KeyError, TypeError, ValueError) as exc:
        raise AuthenticationError('Invalid token subject') from exc

    user = get_user_by_id(db, user_id)
    if user is None:
        raise AuthenticationError('User not found')
    return user
