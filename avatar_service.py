import logging
from pathlib import Path
from typing import List, Optional

import pydantic

from config import get_settings
from errors import AvatarExistsError, StoreFailure, ValidationError
from schemas import (
    DEFAULT_COLOR,
    NO_ACCESSORY,
    AccountView,
    AvatarCustomization,
    AvatarView,
)
from stores import AvatarStore

logger = logging.getLogger(__name__)

ART_BASE_NAMES = {
    "warrior": "avatar1",
    "mage": "avatar2",
    "archer": "avatar3",
}

ANSI_COLORS = {
    "red": "\u001b[31m",
    "green": "\u001b[32m",
    "yellow": "\u001b[33m",
    "blue": "\u001b[34m",
    "purple": "\u001b[35m",
    "cyan": "\u001b[36m",
    "white": "\u001b[37m",
}
ANSI_RESET = "\u001b[0m"

ART_NOT_FOUND = "ASCII art not found!"


def ascii_art_filename(name: str, level: int, accessory: str = NO_ACCESSORY) -> str:
    """
    Derive the art asset for an avatar from its name, level and accessory.

    Level 5 unlocks the first evolution and level 10 the second.
    """
    file_name = ART_BASE_NAMES.get((name or "").strip().lower(), "avatar1")
    if level >= 10:
        file_name += "_evolved2"
    elif level >= 5:
        file_name += "_evolved1"
    else:
        file_name += "_default"

    accessory = (accessory or "").strip().lower()
    if accessory and accessory != NO_ACCESSORY:
        file_name += f"_{accessory}"
    return file_name + ".txt"


def ascii_art_path(avatar: AvatarView, art_dir=None) -> Path:
    art_dir = Path(art_dir or get_settings().ascii_art_dir)
    return art_dir / ascii_art_filename(avatar.name, avatar.level, avatar.accessory)


def load_ascii_art(path: Path) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as e:
        logger.warning("Could not load ASCII art from %s: %s", path, e)
        return ART_NOT_FOUND


class AvatarService:
    """Creates avatars and changes how they look."""

    def __init__(self, avatar_store: AvatarStore, art_dir=None):
        self.avatar_store = avatar_store
        self.art_dir = art_dir

    def get(self, user_id: int) -> Optional[AvatarView]:
        return self.avatar_store.find_by_user_id(user_id)

    def list_avatars(self) -> List[AvatarView]:
        return self.avatar_store.list_all()

    def create_default_avatar(self, account: AccountView, chosen_name: str) -> AvatarView:
        try:
            look = AvatarCustomization(name=chosen_name, color=DEFAULT_COLOR, accessory=NO_ACCESSORY)
        except pydantic.ValidationError as e:
            raise ValidationError.from_pydantic(e) from e

        if self.avatar_store.find_by_user_id(account.id):
            raise AvatarExistsError(account.id)

        avatar = self.avatar_store.insert(
            account.id, look.name, look.color, look.accessory, level=1, total_experience=0
        )
        logger.info("Created default avatar %r for user id %s", avatar.name, account.id)
        return avatar

    def customize(self, user_id: int, name: str, color: str, accessory: str) -> bool:
        """Change name, color and accessory. Level and experience are left alone."""
        try:
            look = AvatarCustomization(name=name, color=color, accessory=accessory)
        except pydantic.ValidationError as e:
            logger.info("Rejected customization for user id %s: %s", user_id, e)
            return False

        try:
            updated = self.avatar_store.update_appearance(user_id, look.name, look.color, look.accessory)
        except StoreFailure:
            return False
        if not updated:
            logger.warning("Cannot customize: no avatar for user id %s", user_id)
        return updated

    def update_stats(self, avatar: AvatarView) -> bool:
        try:
            return self.avatar_store.update(avatar)
        except StoreFailure:
            return False

    def art_path(self, avatar: AvatarView) -> Path:
        return ascii_art_path(avatar, self.art_dir)

    def render(self, avatar: AvatarView) -> str:
        art = load_ascii_art(self.art_path(avatar))
        color = ANSI_COLORS.get(avatar.color.lower())
        if color is None:
            return art
        return f"{color}{art}{ANSI_RESET}"
