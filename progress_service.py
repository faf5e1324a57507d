"""Recording of CMAS test results and the avatar leveling that follows them."""

import logging
from datetime import datetime
from typing import Callable, List, Optional

from anomalies import scan_history
from avatar_service import AvatarService
from errors import StoreFailure, ValidationError
from schemas import LevelUpResult, ProgressView
from stores import ProgressStore

logger = logging.getLogger(__name__)

POINTS_PER_LEVEL = 50
NO_AVATAR_LEVEL = -1


def level_for_experience(total_experience: int) -> int:
    """Level reached with ``total_experience`` points, counting from level 1."""
    return 1 + total_experience // POINTS_PER_LEVEL


def experience_to_next_level(total_experience: int) -> int:
    return POINTS_PER_LEVEL - total_experience % POINTS_PER_LEVEL


class ProgressService:

    def __init__(
        self,
        progress_store: ProgressStore,
        avatar_service: AvatarService,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.progress_store = progress_store
        self.avatar_service = avatar_service
        self.clock = clock

    def record_test_result(self, user_id: int, cmas_score: int) -> LevelUpResult:
        """
        Store a CMAS score and grant it to the user's avatar as experience.

        The progress record is committed first and is kept even when the
        avatar update fails afterwards; in that case the result reports
        the level the avatar still has. Users whose avatar is missing or cannot be
        loaded get ``new_level == NO_AVATAR_LEVEL``.
        """
        if isinstance(cmas_score, bool) or not isinstance(cmas_score, int):
            raise ValidationError("CMAS score must be a whole number")
        if cmas_score < 0:
            logger.warning("Rejected negative score %s for user id %s", cmas_score, user_id)
            raise ValidationError("Cannot record a negative score")

        progress = self.progress_store.insert(user_id, self.clock(), cmas_score)

        try:
            avatar = self.avatar_service.get(user_id)
        except StoreFailure as e:
            logger.error("Progress recorded for user id %s, but the avatar could not be loaded: %s", user_id, e)
            avatar = None
        else:
            if avatar is None:
                logger.warning("No avatar for user id %s; progress recorded without leveling", user_id)
        if avatar is None:
            return LevelUpResult(
                progress=progress, leveled_up=False,
                new_level=NO_AVATAR_LEVEL, gained_experience=cmas_score
            )

        current_level = avatar.level
        new_total = avatar.total_experience + cmas_score
        expected_level = level_for_experience(new_total)

        leveled_up = False
        final_level = current_level
        if expected_level > current_level:
            updated = avatar.model_copy(update={"level": expected_level, "total_experience": new_total})
            if self.avatar_service.update_stats(updated):
                leveled_up = True
                final_level = expected_level
                logger.info("User id %s leveled up to %s with %s total XP", user_id, final_level, new_total)
            else:
                logger.error("Progress recorded for user id %s, but the level up could not be saved", user_id)
        else:
            updated = avatar.model_copy(update={"total_experience": new_total})
            if not self.avatar_service.update_stats(updated):
                logger.error("Progress recorded for user id %s, but the experience could not be saved", user_id)

        return LevelUpResult(
            progress=progress, leveled_up=leveled_up,
            new_level=final_level, gained_experience=cmas_score
        )

    def get_progress_history(self, user_id: int) -> List[ProgressView]:
        """Newest first."""
        return self.progress_store.find_by_user_id(user_id)

    def get_latest_progress(self, user_id: int) -> Optional[ProgressView]:
        return self.progress_store.find_latest_by_user_id(user_id)

    def get_all_progress_records(self) -> List[ProgressView]:
        return self.progress_store.find_all()

    def detect_anomalies(self, user_id: int) -> List[str]:
        return scan_history(self.get_progress_history(user_id))
