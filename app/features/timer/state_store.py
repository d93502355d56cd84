"""Timer State Store - owns the TimerState and persists every mutation"""
import logging
from typing import Any

from pydantic import ValidationError

from app.features.timer.domain import TimerState
from app.features.timer.duration import format_duration
from app.features.timer.ports import LocalStore

logger = logging.getLogger(__name__)

DEFAULT_STATE_KEY = "timerState"


class TimerStateStore:
    """
    Single entry point for reading and mutating the timer state.

    Every patch recomputes display_time and writes the whole state to the
    local store. If the local store fails, the in-memory state stays
    authoritative and the failure is only logged.
    """

    def __init__(self, local_store: LocalStore, key: str = DEFAULT_STATE_KEY):
        self._local_store = local_store
        self._key = key
        self._state = self._load()

    @property
    def key(self) -> str:
        return self._key

    def get(self) -> TimerState:
        return self._state

    def patch(self, **fields: Any) -> TimerState:
        """
        Merge fields into the current state, recompute display_time, persist.

        Raises:
            ValueError: For unknown fields, a hand-set display_time, or a merged
                state that breaks the TimerState invariants
        """
        if "display_time" in fields:
            raise ValueError("display_time is derived and cannot be patched")

        unknown = set(fields) - set(TimerState.model_fields)
        if unknown:
            raise ValueError(f"Unknown timer state fields: {', '.join(sorted(unknown))}")

        merged = self._state.model_dump()
        merged.update(fields)
        self._state = self._with_display_time(merged)
        self._persist()
        return self._state

    def reset(self) -> TimerState:
        """Return to the idle default and persist it"""
        self._state = TimerState()
        self._persist()
        return self._state

    def clear_storage(self) -> None:
        """Remove the persisted copy; the in-memory state is left alone"""
        try:
            self._local_store.remove(self._key)
        except Exception as e:
            logger.warning(f"Failed to clear persisted timer state: {e}")

    @staticmethod
    def _with_display_time(data: dict) -> TimerState:
        total = int(data.get("previously_elapsed") or 0) + int(data.get("elapsed_time") or 0)
        data["display_time"] = format_duration(total)
        return TimerState.model_validate(data)

    def _load(self) -> TimerState:
        try:
            raw = self._local_store.load(self._key)
        except Exception as e:
            logger.warning(f"Local timer store unavailable, starting idle: {e}")
            return TimerState()

        if not raw:
            return TimerState()

        try:
            state = TimerState.model_validate_json(raw)
        except (ValidationError, ValueError) as e:
            logger.warning(f"Discarding unreadable persisted timer state: {e}")
            return TimerState()

        # display_time is never trusted from storage
        state = self._with_display_time(state.model_dump())
        logger.info(f"Loaded timer state: status={state.status.value} task={state.task_id}")
        return state

    def _persist(self) -> None:
        try:
            self._local_store.save(self._key, self._state.model_dump_json().encode("utf-8"))
        except Exception as e:
            logger.warning(f"Failed to persist timer state, keeping it in memory: {e}")
