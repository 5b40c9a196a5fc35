from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from src.database import get_db
from src.auth.schemas import UserCreate, LoginRequest, AuthResponse, UnifiedUser
from src.auth.service import UserService
from src.auth.utils import create_access_token
from src.auth.dependencies import get_current_user

router = APIRouter()

def _auth_response(db: Session, user, message: str) -> AuthResponse:
    unified_user = UserService.to_unified(db, user)
    access_token = create_access_token(
        data={"sub": str(user.id), "is_admin": unified_user.is_admin}
    )
    return AuthResponse(message=message, access_token=access_token, user=unified_user)

@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register_user(user: UserCreate, db: Session = Depends(get_db)):
    """Register a new user and log them in"""
    try:
        db_user = UserService.create_user(db=db, user=user)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    return _auth_response(db, db_user, "User created successfully")

@router.post("/login", response_model=AuthResponse)
def login(login_data: LoginRequest, db: Session = Depends(get_db)):
    """Exchange email and password for a bearer token"""
    user = UserService.authenticate_user(db, login_data.email, login_data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return _auth_response(db, user, "Login successful")

@router.get("/me", response_model=UnifiedUser)
def read_users_me(current_user = Depends(get_current_user), db: Session = Depends(get_db)):
    """Get current user profile"""
    return UserService.to_unified(db, current_user)
