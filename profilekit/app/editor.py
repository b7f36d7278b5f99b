"""Per-session profile editing state.

A ProfileEditor is created when the editor is opened and closed when it is
left. It owns the profile as last returned by the API plus one auto-saving
SectionEditor per profile section. Network calls go through a blocking
ProfileApiClient and are moved off the event loop with asyncio.to_thread.
"""
import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

from .autosave import DEFAULT_DELAY_MS, AutoSaveScheduler, SaveFailure, SaveResult
from .clients.profile_client import ProfileApiClient, ProfileApiError
from .sections import ALLOWED_SECTIONS

logger = logging.getLogger("profilekit.editor")


def _error_message(error: Exception, fallback: str) -> str:
    if isinstance(error, ProfileApiError):
        if error.errors:
            return error.errors if isinstance(error.errors, str) else json.dumps(error.errors)
        if error.message:
            return error.message
    return fallback


class SectionEditor:
    """Edit buffer of a single profile section, saved in the background."""

    def __init__(self, editor: "ProfileEditor", section: str, initial: Any, delay_ms: int):
        self.editor = editor
        self.section = section
        self.scheduler = AutoSaveScheduler(
            self._save,
            delay_ms=delay_ms,
            on_error=self._report_error,
            name=section,
        )
        # Hydrated value becomes the baseline, it is never saved back.
        self.scheduler.notify_changed(initial)

    @property
    def value(self) -> Any:
        return self.scheduler.latest_snapshot

    @property
    def is_dirty(self) -> bool:
        return self.scheduler.is_dirty

    def edit(self, value: Any) -> bool:
        return self.scheduler.notify_changed(value)

    async def save_now(self) -> SaveResult:
        return await self.scheduler.flush()

    def close(self) -> None:
        self.scheduler.close()

    async def _save(self, value: Any) -> None:
        await self.editor._update_section(self.section, value)

    def _report_error(self, failure: SaveFailure, snapshot: Any) -> None:
        logger.warning(f"Auto-save of section '{self.section}' failed: {failure}")


class ProfileEditor:
    def __init__(self, client: ProfileApiClient, delay_ms: int = DEFAULT_DELAY_MS):
        self.client = client
        self.delay_ms = delay_ms
        self._sections: Dict[str, SectionEditor] = {}
        self._saving = 0
        self.reset()

    @classmethod
    def from_config(cls, config, user_id: str, **client_kwargs):
        get = config.get if hasattr(config, "get") else lambda key, default=None: getattr(config, key, default)
        client = ProfileApiClient.from_config(config, user_id, **client_kwargs)
        return cls(client, delay_ms=get("AUTOSAVE_DELAY_MS", DEFAULT_DELAY_MS))

    # -- state ---------------------------------------------------------

    @property
    def is_saving(self) -> bool:
        return self._saving > 0

    def set_profile(self, profile: Optional[dict]) -> None:
        self.profile = profile

    def set_error(self, error: Optional[str]) -> None:
        self.error = error

    def reset(self) -> None:
        """Back to the initial state. Open section editors are closed."""
        for section_editor in self._sections.values():
            section_editor.close()
        self._sections = {}
        self.profile: Optional[dict] = None
        self.is_loading = False
        self.error: Optional[str] = None
        self.completion_percentage = 0
        self.missing_sections: List[str] = []

    def _apply_profile(self, profile: Optional[dict]) -> None:
        self.profile = profile
        self.completion_percentage = (profile or {}).get("completionPercentage") or 0

    # -- API operations ------------------------------------------------

    async def fetch_profile(self) -> Optional[dict]:
        self.is_loading = True
        self.error = None
        try:
            profile = await asyncio.to_thread(self.client.get_profile)
        except (ProfileApiError, ConnectionError) as e:
            self.error = _error_message(e, "Failed to fetch profile")
            return None
        finally:
            self.is_loading = False
        self._apply_profile(profile)
        return profile

    async def create_profile(self, data: Optional[dict] = None) -> dict:
        self.error = None
        self._saving += 1
        try:
            profile = await asyncio.to_thread(self.client.create_profile, data or {})
        except (ProfileApiError, ConnectionError) as e:
            self.error = _error_message(e, "Failed to create profile")
            raise
        finally:
            self._saving -= 1
        self._apply_profile(profile)
        return profile

    async def update_profile(self, data: dict) -> Optional[dict]:
        self.error = None
        self._saving += 1
        try:
            profile = await asyncio.to_thread(self.client.update_profile, data)
        except (ProfileApiError, ConnectionError) as e:
            self.error = _error_message(e, "Failed to update profile")
            return None
        finally:
            self._saving -= 1
        self._apply_profile(profile)
        return profile

    async def update_section(self, section: str, value: Any) -> Optional[dict]:
        """Save one section. Errors are recorded on ``error`` only."""
        try:
            return await self._update_section(section, value)
        except (ProfileApiError, ConnectionError):
            return None

    async def _update_section(self, section: str, value: Any) -> dict:
        self.error = None
        self._saving += 1
        try:
            profile = await asyncio.to_thread(self.client.update_section, section, value)
        except (ProfileApiError, ConnectionError) as e:
            self.error = _error_message(e, "Failed to update section")
            raise
        finally:
            self._saving -= 1
        self._apply_profile(profile)
        return profile

    async def fetch_completion(self) -> dict:
        completion = await asyncio.to_thread(self.client.get_completion)
        self.completion_percentage = completion.get("completionPercentage", 0)
        self.missing_sections = completion.get("missingSections", [])
        return completion

    # -- section editors -----------------------------------------------

    def section(self, name: str, delay_ms: Optional[int] = None) -> SectionEditor:
        if name not in ALLOWED_SECTIONS:
            raise ValueError(f"Invalid section: {name}")
        if name not in self._sections:
            initial = (self.profile or {}).get(name)
            self._sections[name] = SectionEditor(
                self, name, initial, self.delay_ms if delay_ms is None else delay_ms
            )
        return self._sections[name]

    @property
    def has_unsaved_changes(self) -> bool:
        return any(s.is_dirty for s in self._sections.values())

    def close(self) -> None:
        for section_editor in self._sections.values():
            section_editor.close()

    async def aclose(self) -> None:
        self.close()
        await asyncio.gather(
            *(s.scheduler.wait_idle() for s in self._sections.values())
        )
