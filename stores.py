"""
Relational stores for accounts, avatars and CMAS test progress.

Every method runs in its own short transaction and hands back detached
pydantic views, never live ORM rows.
"""
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from db_model import User, Avatar, TestProgress
from errors import AvatarExistsError, DuplicateUsernameError, StoreFailure
from schemas import AccountView, AvatarView, ProgressView
from user_db import session_scope

logger = logging.getLogger(__name__)


class _Store:
    def __init__(self, session_factory):
        self.session_factory = session_factory

    @contextmanager
    def _transaction(self, action: str):
        try:
            with session_scope(self.session_factory) as db:
                yield db
        except SQLAlchemyError as e:
            logger.error("Failed to %s: %s", action, e)
            raise StoreFailure(f"Could not {action}") from e


class AccountStore(_Store):

    def insert(self, username: str, hashed_password: str, role: str) -> AccountView:
        with self._transaction("create user") as db:
            db_user = User(username=username, hashed_password=hashed_password, role=role)
            db.add(db_user)
            try:
                db.flush()
            except IntegrityError as e:
                raise DuplicateUsernameError(username) from e
            return AccountView.model_validate(db_user)

    def find_by_username(self, username: str) -> Optional[AccountView]:
        with self._transaction("look up user") as db:
            user = db.query(User).filter(User.username == username).first()
            return AccountView.model_validate(user) if user else None

    def find_by_id(self, user_id: int) -> Optional[AccountView]:
        with self._transaction("look up user") as db:
            user = db.get(User, user_id)
            return AccountView.model_validate(user) if user else None

    def delete_by_username(self, username: str) -> bool:
        with self._transaction("delete user") as db:
            user = db.query(User).filter(User.username == username).first()
            if not user:
                return False
            db.delete(user)
            return True

    def delete_by_id(self, user_id: int) -> bool:
        with self._transaction("delete user") as db:
            user = db.get(User, user_id)
            if not user:
                return False
            db.delete(user)
            return True

    def list_all(self) -> List[AccountView]:
        with self._transaction("list users") as db:
            return [AccountView.model_validate(u) for u in db.query(User).order_by(User.id).all()]


class AvatarStore(_Store):

    def insert(self, user_id: int, name: str, color: str, accessory: str,
               level: int = 1, total_experience: int = 0) -> AvatarView:
        with self._transaction("create avatar") as db:
            db_avatar = Avatar(
                user_id=user_id,
                name=name,
                color=color,
                accessory=accessory,
                level=level,
                total_experience=total_experience
            )
            db.add(db_avatar)
            try:
                db.flush()
            except IntegrityError as e:
                raise AvatarExistsError(user_id) from e
            return AvatarView.model_validate(db_avatar)

    def find_by_user_id(self, user_id: int) -> Optional[AvatarView]:
        with self._transaction("look up avatar") as db:
            avatar = db.query(Avatar).filter(Avatar.user_id == user_id).first()
            return AvatarView.model_validate(avatar) if avatar else None

    def update(self, avatar: AvatarView) -> bool:
        """Overwrite the whole avatar row that belongs to ``avatar.user_id``."""
        with self._transaction("update avatar") as db:
            updated = db.query(Avatar).filter(Avatar.user_id == avatar.user_id).update({
                Avatar.name: avatar.name,
                Avatar.color: avatar.color,
                Avatar.accessory: avatar.accessory,
                Avatar.level: avatar.level,
                Avatar.total_experience: avatar.total_experience,
            })
            return updated > 0

    def update_appearance(self, user_id: int, name: str, color: str, accessory: str) -> bool:
        with self._transaction("customize avatar") as db:
            updated = db.query(Avatar).filter(Avatar.user_id == user_id).update({
                Avatar.name: name,
                Avatar.color: color,
                Avatar.accessory: accessory,
            })
            return updated > 0

    def list_all(self) -> List[AvatarView]:
        with self._transaction("list avatars") as db:
            return [AvatarView.model_validate(a) for a in db.query(Avatar).order_by(Avatar.id).all()]


class ProgressStore(_Store):

    def insert(self, user_id: int, test_timestamp: datetime, cmas_score: int) -> ProgressView:
        with self._transaction("record test progress") as db:
            record = TestProgress(user_id=user_id, test_timestamp=test_timestamp, cmas_score=cmas_score)
            db.add(record)
            db.flush()
            return ProgressView.model_validate(record)

    def find_by_user_id(self, user_id: int) -> List[ProgressView]:
        with self._transaction("load progress history") as db:
            records = (
                db.query(TestProgress)
                .filter(TestProgress.user_id == user_id)
                .order_by(TestProgress.test_timestamp.desc(), TestProgress.id.desc())
                .all()
            )
            return [ProgressView.model_validate(r) for r in records]

    def find_latest_by_user_id(self, user_id: int) -> Optional[ProgressView]:
        with self._transaction("load latest progress") as db:
            record = (
                db.query(TestProgress)
                .filter(TestProgress.user_id == user_id)
                .order_by(TestProgress.test_timestamp.desc(), TestProgress.id.desc())
                .first()
            )
            return ProgressView.model_validate(record) if record else None

    def find_all(self) -> List[ProgressView]:
        with self._transaction("load progress records") as db:
            records = (
                db.query(TestProgress)
                .order_by(TestProgress.test_timestamp.desc(), TestProgress.id.desc())
                .all()
            )
            return [ProgressView.model_validate(r) for r in records]
