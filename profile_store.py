from __future__ import annotations
import logging
from typing import Callable, Optional

from db import AsyncProfileRepository
from models import LEVELS, UserProfile

logger = logging.getLogger(__name__)


class ProfileStore:
    """Hold the single user profile, optionally persisted per user id."""

    def __init__(
        self,
        user_id: str | None = None,
        repo: AsyncProfileRepository | None = None,
    ) -> None:
        self.user_id = user_id
        self.repo = repo
        self._profile = UserProfile()
        self._listeners: list[Callable[[UserProfile], None]] = []
        self.is_loading = False

    @property
    def profile(self) -> UserProfile:
        return self._profile

    def subscribe(self, listener: Callable[[UserProfile], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._profile)

    async def load(
        self,
        fallback_name: Optional[str] = None,
        fallback_photo: Optional[str] = None,
    ) -> UserProfile:
        """Return the stored profile or one seeded from the fallbacks.

        A failed read is logged and leaves the current profile in place.
        """
        if self.repo is None or self.user_id is None:
            return self._profile
        self.is_loading = True
        try:
            row = await self.repo.fetch(self.user_id)
        except Exception:
            logger.exception("Failed to load profile for user %s", self.user_id)
            return self._profile
        finally:
            self.is_loading = False
        if row is not None:
            name, weight, level, photo = row
            if level not in LEVELS:
                logger.warning("Unknown level %r for user %s", level, self.user_id)
                level = UserProfile.model_fields["level"].default
            self._profile = UserProfile(name=name, weight=weight, level=level, photo=photo)
        elif fallback_name:
            self._profile = self._profile.model_copy(
                update={
                    "name": fallback_name,
                    "photo": fallback_photo or self._profile.photo,
                }
            )
        self._notify()
        return self._profile

    async def update(self, profile: UserProfile) -> UserProfile:
        if self.repo is not None and self.user_id is not None:
            try:
                await self.repo.save(
                    self.user_id, profile.name, profile.weight, profile.level, profile.photo
                )
            except Exception:
                logger.exception("Failed to update profile for user %s", self.user_id)
                raise
        self._profile = profile
        self._notify()
        return profile
