from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from kata.auth.dependencies import get_current_user
from kata.database import get_db
from kata.models.user import User
from kata.schemas import LoginRequest, RegisterRequest, UserResponse, success_response
from kata.services import auth_service

router = APIRouter(tags=["auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(data: RegisterRequest, db: Session = Depends(get_db)):
    result = auth_service.register(db, data)
    return success_response(result, message="User registered successfully")


@router.post("/login")
def login(data: LoginRequest, db: Session = Depends(get_db)):
    result = auth_service.login(db, data)
    return success_response(result, message="Login successful")


@router.get("/me")
def me(current_user: User = Depends(get_current_user)):
    return success_response(UserResponse.model_validate(current_user))
