from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from src.models import User, Role, UserHasRole
from src.auth.schemas import UserCreate, UnifiedUser
from src.auth.utils import get_password_hash, verify_password
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)

ADMIN_ROLES = {"admin", "super_admin"}

class UserService:
    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        """Get user by email"""
        return db.query(User).filter(User.email == email.lower()).first()

    @staticmethod
    def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
        """Get user by ID"""
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def create_user(db: Session, user: UserCreate) -> User:
        """Create a new user with the default 'user' role"""
        if UserService.get_user_by_email(db, user.email):
            raise ValueError("User already exists with this email")

        db_user = User(
            name=user.name.strip(),
            email=user.email.lower(),
            password=get_password_hash(user.password)
        )

        try:
            db.add(db_user)
            db.flush()

            user_role = db.query(Role).filter(Role.name == "user").first()
            if user_role:
                db.add(UserHasRole(user_id=db_user.id, role_id=user_role.id))

            db.commit()
            db.refresh(db_user)
        except IntegrityError:
            db.rollback()
            raise ValueError("User already exists with this email")

        logger.info(f"Registered user {db_user.id}")
        return db_user

    @staticmethod
    def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
        """Authenticate user with email and password"""
        user = UserService.get_user_by_email(db, email)
        if not user:
            return None
        if not verify_password(password, user.password):
            return None
        return user

    @staticmethod
    def get_user_roles(db: Session, user_id: int) -> List[str]:
        """Get user's role names"""
        rows = db.query(Role.name).join(UserHasRole, UserHasRole.role_id == Role.id).filter(
            UserHasRole.user_id == user_id
        ).all()
        return [name for (name,) in rows]

    @staticmethod
    def assign_role(db: Session, user_id: int, role_name: str) -> None:
        """Grant a role, creating it on first use"""
        role = db.query(Role).filter(Role.name == role_name).first()
        if not role:
            role = Role(name=role_name)
            db.add(role)
            db.flush()
        exists = db.query(UserHasRole).filter(
            UserHasRole.user_id == user_id, UserHasRole.role_id == role.id
        ).first()
        if not exists:
            db.add(UserHasRole(user_id=user_id, role_id=role.id))
        db.commit()

    @staticmethod
    def to_unified(db: Session, user: User) -> UnifiedUser:
        roles = UserService.get_user_roles(db, user.id)
        return UnifiedUser(
            id=user.id,
            name=user.name,
            email=user.email,
            created_at=user.created_at,
            is_admin=bool(ADMIN_ROLES.intersection(roles)),
            roles=roles,
        )
