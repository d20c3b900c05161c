"""
ExperimentRunner: top-level session orchestrator.

State machine:
    IDLE -> RUNNING -> FINISHING -> {COMPLETED, FAILED}

Responsibilities:
- Build the timeline and hand it to the rendering engine
- Route every data event through the incremental-save protocol
- Route the collected data through the final-save protocol
- Move the participant to the exit notice and completion redirect

Persistence failures never stop the participant: a failed final save takes
the same exit path as a successful one and only differs in the logs.
"""

import logging
import threading
from concurrent.futures import Future
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import pyglet

from config.session import SessionConfig
from .debrief import DebriefSummary, summarize
from .display import SAVING_MESSAGE, Display, exit_message
from .errors import FinalSaveError, IncrementalSaveError
from .execution.engine import Engine
from .execution.timeline import Timeline
from .execution.trial_data import DataCollection, TrialDataEvent
from .persistence.adapter import PersistenceAdapter

logger = logging.getLogger(__name__)

# schedule(callback, delay_seconds); callback receives the elapsed time (pyglet convention).
# Called from the persistence adapter's worker thread, so it must be thread-safe.
Scheduler = Callable[[Callable[[float], None], float], None]


class SessionState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    FINISHING = "finishing"
    COMPLETED = "completed"
    FAILED = "failed"


class SessionOutcome(Enum):
    """Result of the final save; decides the terminal state."""
    SAVED = "saved"
    SAVE_FAILED = "save_failed"


TERMINAL_STATES = (SessionState.COMPLETED, SessionState.FAILED)


class ExperimentRunner:
    """
    Drives one participant session.

    Lifecycle:
    1. __init__: Wire timeline, engine, store, config and display
    2. start: Build timeline (ConstructionError raised here), run engine
    3. on_data_update / on_finish: Called by the engine
    4. wait: Block until the final save has resolved

    Example:
        runner = ExperimentRunner(timeline, ScriptedEngine(), MockStore(), config, ConsoleDisplay())
        runner.start()
        runner.wait(timeout=10)
    """

    def __init__(self, timeline: Timeline, engine: Engine, store: PersistenceAdapter,
                 config: SessionConfig, display: Display,
                 update_debug_panel: Optional[Callable[[], None]] = None,
                 schedule: Optional[Scheduler] = None):
        """
        Args:
            timeline: Timeline to build and run
            engine: Rendering engine
            store: Persistence adapter for partial and complete saves
            config: Session configuration (debug / mock flags, completion info)
            display: Participant-facing display
            update_debug_panel: Called after each successful incremental save
                                when both debug and mock_store are on
            schedule: Delayed-call scheduler (default: pyglet.clock.schedule_once).
                      Invoked from a save worker thread; pyglet.clock is not
                      thread-safe, so the default is only valid while nothing
                      ticks the clock before wait() returns (see launch_session.py)
        """
        self.timeline = timeline
        self.engine = engine
        self.store = store
        self.config = config
        self.display = display
        self.update_debug_panel = update_debug_panel
        self.schedule: Scheduler = schedule or pyglet.clock.schedule_once

        # Runtime state
        self._state = SessionState.IDLE
        self._state_lock = threading.Lock()
        self._terminal = threading.Event()
        self.outcome: Optional[SessionOutcome] = None
        self.planned_units: int = 0
        self.events_seen: int = 0
        self.pending_saves: List[Future] = []
        self.collected: Optional[DataCollection] = None
        self.summary: Optional[DebriefSummary] = None
        self.redirect_scheduled: bool = False
        self.redirected: bool = False

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def exit_notice(self) -> str:
        return exit_message(self.config.completion_code, self.config.completion_url, self.config.debug)

    def start(self) -> DataCollection:
        """
        Build the timeline and run it through the engine.

        Returns when the engine has presented the last unit; the final save
        may still be in flight (see wait()).

        Raises:
            ConstructionError: if the timeline is malformed (no unit has run)
            RuntimeError: if the runner was already started
        """
        if self._state is not SessionState.IDLE:
            raise RuntimeError(f"Session already started (state: {self._state.value})")

        if self.config.debug:
            logger.debug(f"UserInfo :: {self.config.user.to_dict()}")

        units = self.timeline.build()
        self.planned_units = len(units)

        self._set_state(SessionState.RUNNING)
        logger.info(f"[Runner] Starting session '{self.timeline.name}' ({self.planned_units} units)")

        return self.engine.run(units, on_data_update=self.on_data_update, on_finish=self.on_finish)

    # ==================== INCREMENTAL SAVE ====================

    def on_data_update(self, event: TrialDataEvent):
        """
        Engine callback, once per completed unit.

        Dispatches a save_partial for events flagged save_incrementally and
        returns immediately; the outcome is only logged.
        """
        if self._state is not SessionState.RUNNING:
            logger.warning(f"Data event for trial {event.trial_index} ignored in state {self._state.value}")
            return

        self.events_seen += 1
        if self.config.debug:
            logger.debug(f"data-update :: trial data :: {event.to_record()}")

        if not event.save_incrementally:
            return

        try:
            future = self.store.save_partial(event.to_record())
        except Exception as e:
            self._log_incremental_failure(event.trial_index, e)
            return

        self.pending_saves.append(future)
        future.add_done_callback(lambda f, index=event.trial_index: self._on_partial_saved(f, index))

    def _on_partial_saved(self, future: Future, trial_index: int):
        if future.cancelled():
            return

        error = future.exception()
        if error is not None:
            self._log_incremental_failure(trial_index, error)
            return

        if self.config.debug:
            logger.debug(f"save_partial: Success (trial {trial_index})")
            if self.config.mock_store and self.update_debug_panel:
                try:
                    self.update_debug_panel()
                except Exception:
                    logger.exception("Debug panel refresh failed")

    def _log_incremental_failure(self, trial_index: int, error: BaseException):
        wrapped = IncrementalSaveError(f"Incremental save failed for trial {trial_index}: {error}")
        wrapped.__cause__ = error
        logger.error(str(wrapped), exc_info=wrapped)

    # ==================== FINAL SAVE ====================

    def on_finish(self, collection: DataCollection):
        """
        Engine callback, once the timeline is exhausted.

        Shows the saving notice and dispatches a single save_complete.
        Incremental saves still in flight are not waited for.
        """
        self.collected = collection
        self._set_state(SessionState.FINISHING)
        try:
            self.display.show_content(SAVING_MESSAGE)
        except Exception:
            logger.exception("Saving notice could not be rendered")

        if len(collection) != self.planned_units:
            logger.warning(f"Collected {len(collection)} events for {self.planned_units} planned units")

        self.summary = summarize(collection)
        records = collection.values()

        try:
            future = self.store.save_complete(records)
        except Exception as e:
            self._on_final_save_failed(e)
            return

        future.add_done_callback(self._on_final_saved)

    def _on_final_saved(self, future: Future):
        error = future.exception() if not future.cancelled() else RuntimeError("save_complete cancelled")
        if error is not None:
            self._on_final_save_failed(error)
            return

        try:
            if self.config.debug:
                logger.info("save_complete: Success")
                logger.debug(f"session-finish :: data :: {self.collected!r}")
                self._exit_experiment_debugging()
                records = self.collected.values()
                self.schedule(lambda dt: self.display.display_data(records), self.config.display_data_delay)
            else:
                self._exit_experiment()
        except Exception:
            logger.exception("Exit UI failed after a successful final save")
            if not self.redirect_scheduled:
                self._try_exit_experiment()
        finally:
            self._finish(SessionState.COMPLETED, SessionOutcome.SAVED)

    def _on_final_save_failed(self, error: BaseException):
        wrapped = FinalSaveError(f"Final save failed: {error}")
        wrapped.__cause__ = error
        logger.error(str(wrapped), exc_info=wrapped)

        try:
            self._try_exit_experiment()
        finally:
            self._finish(SessionState.FAILED, SessionOutcome.SAVE_FAILED)

    # ==================== TERMINAL UI ====================

    def _exit_experiment(self):
        """Replace the page with the exit notice and schedule the redirect."""
        try:
            self.display.replace_page(self.exit_notice)
        finally:
            self.schedule(lambda dt: self._redirect(), self.config.exit_delay)
            self.redirect_scheduled = True

    def _try_exit_experiment(self):
        try:
            self._exit_experiment()
        except Exception:
            logger.exception("Exit notice could not be rendered")

    def _exit_experiment_debugging(self):
        """Debug mode: exit notice inside the content area, no redirect."""
        summary_html = self.summary.to_html() if self.summary else ''
        self.display.show_content(summary_html + self.exit_notice)

    def _redirect(self):
        self.redirected = True
        self.display.redirect(self.config.completion_url)

    # ==================== STATE ====================

    def _set_state(self, state: SessionState):
        with self._state_lock:
            if self._state in TERMINAL_STATES:
                raise RuntimeError(f"Session already ended ({self._state.value})")
            logger.debug(f"[Runner] {self._state.value} -> {state.value}")
            self._state = state

    def _finish(self, state: SessionState, outcome: SessionOutcome):
        self._set_state(state)
        self.outcome = outcome
        logger.info(f"[Runner] Session ended: {state.value} ({outcome.value})")
        self._terminal.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the session reaches a terminal state.

        Args:
            timeout: Maximum seconds to wait (None = forever)

        Returns:
            True if terminal, False on timeout
        """
        return self._terminal.wait(timeout)

    def get_progress(self) -> Dict[str, Any]:
        """
        Current session progress.

        Returns:
            Dictionary with progress information
        """
        return {
            'state': self._state.value,
            'events_seen': self.events_seen,
            'planned_units': self.planned_units,
            'pending_saves': sum(1 for f in self.pending_saves if not f.done()),
            'outcome': self.outcome.value if self.outcome else None,
        }

    def __repr__(self):
        return (f"ExperimentRunner(timeline='{self.timeline.name}', "
                f"state={self._state.value}, events={self.events_seen})")
