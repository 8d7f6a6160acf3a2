"""
dreams.py — Client-side dream list with optimistic submission.

DreamStore keeps the list of dreams shown on the map and in the feed.
Submitting a dream walks a small state machine:

    IDLE ──submit()──▶ OPTIMISTIC ──POST ok──▶ RECONCILED
                           │
                           └──POST failed──▶ ROLLED_BACK

  OPTIMISTIC   a `temp-<epoch ms>` dream is prepended synchronously,
               before the first await, so the map shows it immediately
  RECONCILED   the list is refetched and the temp entry is gone; if the
               refetch fails the server's dream replaces the temp entry
  ROLLED_BACK  the temp entry is removed and `submit_error` is set

When the draft opts into a pyjama party, a successful submission is
followed by POST /api/pyjama-parties; its outcome is reported in
SubmissionResult.signup_id / signup_error and never undoes the dream.

Submissions are never retried. Subscribers (e.g. MapLayerManager.bind_store) are
called after every change to the visible list.
"""

import asyncio
import logging
import time
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Optional

from pydantic import BaseModel

from pajama_party.client.api import ApiClient, api_client
from pajama_party.client.errors import ApiError, ValidationError, user_message
from pajama_party.core.config import settings
from pajama_party.models.dream import Dream, DreamDraft
from pajama_party.services.dream_validation import EMAIL_PATTERN

logger = logging.getLogger(__name__)

TEMP_PREFIX = "temp-"
_MAX_PAGE = 1000


class SubmissionState(str, Enum):
    IDLE = "idle"
    OPTIMISTIC = "optimistic"
    RECONCILED = "reconciled"
    ROLLED_BACK = "rolled_back"


class SubmissionResult(BaseModel):
    success: bool
    dream: Optional[Dream] = None
    community_message: Optional[str] = None
    error: Optional[str] = None
    field_errors: dict[str, str] = {}
    signup_id: Optional[str] = None        # set when join_pyjama_party succeeded
    signup_error: Optional[str] = None


def is_optimistic(dream: Dream) -> bool:
    return dream.id.startswith(TEMP_PREFIX)


def validate_draft(draft: DreamDraft, require_privacy_consent: bool = False) -> dict[str, str]:
    """Field → message for every problem the form should show. Empty when valid."""
    errors: dict[str, str] = {}
    if not draft.dreamer_name.strip():
        errors["dreamer_name"] = "Please enter your name"
    if not draft.origin_station.strip():
        errors["origin_station"] = "Please choose the station you'd leave from"
    if not draft.destination_city.strip():
        errors["destination_city"] = "Please enter your dream destination"

    email = draft.email.strip()
    if draft.join_pyjama_party and not email:
        errors["email"] = "Email is required to join a pyjama party"
    elif email and not EMAIL_PATTERN.match(email):
        errors["email"] = "Please enter a valid email address"

    if draft.join_pyjama_party and not draft.privacy_consent:
        errors["privacy_consent"] = "Please accept the privacy policy to join a pyjama party"
    elif require_privacy_consent and not draft.privacy_consent:
        errors["privacy_consent"] = "Please accept the privacy policy to continue"
    return errors


class DreamStore:
    def __init__(
        self,
        api: Optional[ApiClient] = None,
        *,
        page_size: int = 100,
        require_privacy_consent: bool = False,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.api = api or api_client
        self.page_size = page_size
        self.require_privacy_consent = require_privacy_consent
        self._clock = clock

        self.dreams: list[Dream] = []
        self.total = 0
        self.has_more = False
        self.is_loading = False
        self.is_submitting = False
        self.error: Optional[str] = None
        self.submit_error: Optional[str] = None
        self.state = SubmissionState.IDLE

        self._community_message: Optional[str] = None
        self._subscribers: list[Callable[[list[Dream]], None]] = []

    # ── Subscriptions ─────────────────────────────────────────────────────────

    def subscribe(self, callback: Callable[[list[Dream]], None]) -> Callable[[], None]:
        """Call `callback(dreams)` on every change. Returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        for callback in list(self._subscribers):
            try:
                callback(self.dreams)
            except Exception as exc:
                logger.error("Dream subscriber %r failed: %s", callback, exc)

    # ── Loading ───────────────────────────────────────────────────────────────

    async def load(self) -> None:
        """Replace the list with the first page of non-expired dreams."""
        await self._fetch(offset=0, append=False)

    async def refresh(self) -> None:
        await self._fetch(offset=0, append=False, limit=max(self.page_size, self._loaded_count()))

    async def load_more(self) -> None:
        if not self.has_more or self.is_loading:
            return
        await self._fetch(offset=self._loaded_count(), append=True)

    def _loaded_count(self) -> int:
        return sum(1 for d in self.dreams if not is_optimistic(d))

    async def _fetch(self, offset: int, append: bool, limit: Optional[int] = None) -> None:
        self.is_loading = True
        try:
            page = await self.api.list_dreams(limit=min(limit or self.page_size, _MAX_PAGE), offset=offset)
        except ApiError as exc:
            self.error = user_message(exc)
            return
        except Exception as exc:
            logger.error("Loading dreams failed: %s", exc)
            self.error = "Failed to load dreams"
            return
        finally:
            self.is_loading = False

        pending = [d for d in self.dreams if is_optimistic(d)]
        if append:
            known = {d.id for d in self.dreams}
            self.dreams = self.dreams + [d for d in page.dreams if d.id not in known]
        else:
            self.dreams = pending + page.dreams
        self.total = page.total
        self.has_more = page.has_more
        self.error = None
        self._notify()

    # ── Submission ────────────────────────────────────────────────────────────

    def validate(self, draft: DreamDraft) -> dict[str, str]:
        return validate_draft(draft, self.require_privacy_consent)

    def _temp_id(self) -> str:
        candidate = f"{TEMP_PREFIX}{int(self._clock() * 1000)}"
        existing = {d.id for d in self.dreams}
        suffix = 1
        unique = candidate
        while unique in existing:
            unique = f"{candidate}-{suffix}"
            suffix += 1
        return unique

    def _optimistic_dream(self, draft: DreamDraft) -> Dream:
        now = datetime.fromtimestamp(self._clock(), tz=timezone.utc)
        return Dream(
            id=self._temp_id(),
            dreamer_name=draft.dreamer_name.strip(),
            origin_station=draft.origin_station.strip(),
            origin_country=draft.origin_country,
            origin_lat=draft.origin_lat,
            origin_lng=draft.origin_lng,
            destination_city=draft.destination_city.strip(),
            destination_country=draft.destination_country,
            destination_lat=draft.destination_lat,
            destination_lng=draft.destination_lng,
            created_at=now,
            expires_at=now + timedelta(days=settings.dream_ttl_days),
        )

    def _without(self, dream_id: str) -> list[Dream]:
        return [d for d in self.dreams if d.id != dream_id]

    async def submit(self, draft: DreamDraft) -> SubmissionResult:
        field_errors = self.validate(draft)
        if field_errors:
            self.submit_error = "Please fix the highlighted fields"
            return SubmissionResult(success=False, error=self.submit_error, field_errors=field_errors)

        temp = self._optimistic_dream(draft)
        self.dreams = [temp, *self.dreams]
        self.state = SubmissionState.OPTIMISTIC
        self.is_submitting = True
        self.submit_error = None
        self._notify()

        try:
            response = await self.api.submit_dream(draft.to_payload())
        except asyncio.CancelledError:
            self._roll_back(temp, "Submission was interrupted")
            raise
        except ApiError as exc:
            self._roll_back(temp, user_message(exc))
            details = exc.details if isinstance(exc, ValidationError) else None
            return SubmissionResult(
                success=False,
                error=self.submit_error,
                field_errors={"form": "; ".join(map(str, details))} if isinstance(details, list) else {},
            )
        except Exception as exc:
            logger.error("Dream submission failed: %s", exc)
            self._roll_back(temp, "Failed to submit dream. Please try again.")
            return SubmissionResult(success=False, error=self.submit_error)

        await self._reconcile(temp, response.dream)
        self._community_message = response.community_message

        signup_id = signup_error = None
        if draft.join_pyjama_party:
            signup_id, signup_error = await self._sign_up(draft)
        return SubmissionResult(
            success=True,
            dream=response.dream,
            community_message=response.community_message,
            signup_id=signup_id,
            signup_error=signup_error,
        )

    async def _sign_up(self, draft: DreamDraft) -> tuple[Optional[str], Optional[str]]:
        """The dream is already stored: a failed signup is reported, never rolled back."""
        try:
            response = await self.api.sign_up_for_party(draft.to_signup_payload())
        except ApiError as exc:
            return None, user_message(exc)
        except Exception as exc:
            logger.error("Pyjama party signup failed: %s", exc)
            return None, "Your dream was saved, but joining the pyjama party failed. Please try again."
        logger.info("Joined the pyjama party at %s", draft.origin_station.strip())
        return response.signup_id, None

    async def _reconcile(self, temp: Dream, created: Dream) -> None:
        try:
            page = await self.api.list_dreams(
                limit=min(max(self.page_size, self._loaded_count() + 1), _MAX_PAGE), offset=0
            )
        except asyncio.CancelledError:
            # The dream exists on the server; settle before propagating
            self._use_server_copy(temp, created)
            self._mark_reconciled()
            raise
        except Exception as exc:
            logger.warning("Refetch after submit failed, using server response: %s", exc)
            self._use_server_copy(temp, created)
        else:
            others = [d for d in self._without(temp.id) if is_optimistic(d)]
            self.dreams = others + page.dreams
            self.total = page.total
            self.has_more = page.has_more
        self._mark_reconciled()

    def _use_server_copy(self, temp: Dream, created: Dream) -> None:
        rest = [d for d in self._without(temp.id) if d.id != created.id]
        self.dreams = [created, *rest]
        self.total += 1

    def _mark_reconciled(self) -> None:
        self.state = SubmissionState.RECONCILED
        self.is_submitting = False
        self._notify()

    def _roll_back(self, temp: Dream, message: str) -> None:
        self.dreams = self._without(temp.id)
        self.state = SubmissionState.ROLLED_BACK
        self.is_submitting = False
        self.submit_error = message
        self.error = message
        self._notify()

    def take_community_message(self) -> Optional[str]:
        """Return the last community message once; later calls return None."""
        message, self._community_message = self._community_message, None
        return message
