import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import LoginTaken, NotPermitted, StudentNotFound, UserNotFound
from app.core.roles import Actor, build_actor
from app.core.security import hash_password, verify_password
from app.models.student import Student
from app.models.user import User
from app.services.registry import StudentRegistry, validate_external_id

logger = logging.getLogger(__name__)


def authenticate(db: Session, login: str, password: str) -> User | None:
    user = db.scalar(select(User).where(User.login == login))
    if user is None or not user.is_active or not verify_password(password, user.password_hash):
        return None
    return user


def actor_for(db: Session, user: User) -> Actor:
    child = None
    if user.role == "parent":
        child = db.scalar(select(Student).where(Student.parent_id == user.id).order_by(Student.name).limit(1))
    return build_actor(user, child)


def ensure_admin(db: Session, login: str, password: str, *, reset_password: bool = False) -> tuple[User, bool]:
    existing = db.scalar(select(User).where(User.login == login))
    if existing is not None:
        if reset_password:
            existing.password_hash = hash_password(password)
            db.add(existing)
            db.commit()
        return existing, False

    admin = User(login=login, name="Administrator", password_hash=hash_password(password), role="admin")
    db.add(admin)
    db.commit()
    db.refresh(admin)
    return admin, True


class AccountService:
    """Provisioning of teacher and parent accounts by an administrator."""

    def __init__(self, db: Session, registry: StudentRegistry | None = None) -> None:
        self.db = db
        self.registry = registry or StudentRegistry(db)

    def get(self, user_id: str) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            raise UserNotFound(user_id)
        return user

    def list_users(self, role: str | None = None) -> list[User]:
        stmt = select(User).order_by(User.role, User.name)
        if role:
            stmt = stmt.where(User.role == role)
        return list(self.db.scalars(stmt).all())

    def create(
        self,
        login: str,
        name: str,
        password: str,
        role: str,
        class_label: str | None = None,
        nisn: str | None = None,
    ) -> User:
        if self.db.scalar(select(User.id).where(User.login == login)):
            raise LoginTaken(login)
        if role == "teacher" and not class_label:
            raise NotPermitted("A teacher account needs a class")

        child = None
        if role == "parent" and nisn:
            child = self.registry.get_by_external_id(validate_external_id(nisn))
            if child is None:
                raise StudentNotFound(nisn)

        user = User(
            login=login,
            name=name,
            password_hash=hash_password(password),
            role=role,
            class_label=class_label if role == "teacher" else None,
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        logger.info("Account %s created with role %s", user.login, user.role)

        if child is not None:
            self.registry.link_parent(child.external_id, user.id)
        return user

    def set_password(self, user_id: str, password: str) -> User:
        user = self.get(user_id)
        user.password_hash = hash_password(password)
        self.db.add(user)
        self.db.commit()
        return user

    def delete(self, user_id: str, acting_user_id: str) -> None:
        user = self.get(user_id)
        if user.id == acting_user_id:
            raise NotPermitted("Administrators cannot delete their own account")
        login = user.login
        unlinked = [child.id for child in user.children]
        self.db.delete(user)
        self.db.commit()
        logger.info("Account %s deleted", login)
        self.registry.notify_updated(unlinked)
