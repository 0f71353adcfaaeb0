"""Application state machine.

State model:
    IDLE -> ANALYZING -> RESULTS | ERROR
    RESULTS <-> FAVORITES
    ERROR -> IDLE (reset clears error and result)
    FAVORITES -> RESULTS if a result is held, else IDLE (go home)

AppSnapshot is immutable and transition() is a pure function of
(snapshot, intent). AppStateMachine is the outer driver: it runs the side effects
(analysis request, favorites persistence) and feeds their outcomes back in as
intents.

While a request is in flight, snapshot.pending_request holds its id. A second
analysis is rejected until that outcome lands, even if the user navigated away
from the ANALYZING screen in the meantime. The outcome then moves the app to
RESULTS or ERROR from whichever screen is showing. A cancelled request (for
example by a caller timeout) lands as a failure.
"""

import asyncio
import uuid
from dataclasses import dataclass
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, model_validator

from fridge_chef.models.models import AnalysisResult, AppState, FilterOptions, Recipe
from fridge_chef.services.errors import AnalysisError, FailureKind
from fridge_chef.services.orchestrator import AnalysisOrchestrator
from fridge_chef.storage.favorites import FavoritesStore
from fridge_chef.utils.logger import analysis_context, logger


# Single user-facing message for every failure kind
ANALYSIS_ERROR_MESSAGE = "Something went wrong while analyzing the photo. Please try again."


class AppSnapshot(BaseModel):
    """Current UI state plus the data that state is allowed to carry."""

    model_config = ConfigDict(frozen=True)

    state: AppState = AppState.IDLE
    result: Optional[AnalysisResult] = None
    error: Optional[str] = None
    pending_request: Optional[str] = None

    @model_validator(mode="after")
    def check_consistency(self) -> "AppSnapshot":
        """Reject state/result/error combinations outside the state table."""
        if self.error is not None and self.state != AppState.ERROR:
            raise ValueError(f"error message only allowed in ERROR state, got {self.state.value}")
        if self.state == AppState.ERROR and (self.error is None or self.result is not None):
            raise ValueError("ERROR state requires an error message and no result")
        if self.state == AppState.RESULTS and self.result is None:
            raise ValueError("RESULTS state requires an analysis result")
        if self.state in (AppState.IDLE, AppState.ANALYZING) and self.result is not None:
            raise ValueError(f"{self.state.value} state cannot hold an analysis result")
        if self.state == AppState.ANALYZING and self.pending_request is None:
            raise ValueError("ANALYZING state requires a pending request")
        return self


# ============================================================================
# Intents
# ============================================================================


@dataclass(frozen=True)
class StartAnalysis:
    request_id: str


@dataclass(frozen=True)
class AnalysisSucceeded:
    request_id: str
    result: AnalysisResult


@dataclass(frozen=True)
class AnalysisFailed:
    request_id: str
    kind: FailureKind


@dataclass(frozen=True)
class GoHome:
    pass


@dataclass(frozen=True)
class ShowFavorites:
    pass


@dataclass(frozen=True)
class Reset:
    pass


Intent = Union[StartAnalysis, AnalysisSucceeded, AnalysisFailed, GoHome, ShowFavorites, Reset]


def transition(snapshot: AppSnapshot, intent: Intent) -> AppSnapshot:
    """Apply one intent. Intents not valid in the current state return the snapshot unchanged."""
    state = snapshot.state

    if isinstance(intent, StartAnalysis):
        if state != AppState.IDLE or snapshot.pending_request is not None:
            return snapshot
        return AppSnapshot(state=AppState.ANALYZING, pending_request=intent.request_id)

    if isinstance(intent, (AnalysisSucceeded, AnalysisFailed)):
        if intent.request_id != snapshot.pending_request:
            return snapshot
        # The outcome replaces whatever screen is showing
        if isinstance(intent, AnalysisSucceeded):
            return AppSnapshot(state=AppState.RESULTS, result=intent.result)
        return AppSnapshot(state=AppState.ERROR, error=ANALYSIS_ERROR_MESSAGE)

    if isinstance(intent, GoHome):
        if state == AppState.FAVORITES and snapshot.result is not None:
            return AppSnapshot(state=AppState.RESULTS, result=snapshot.result,
                               pending_request=snapshot.pending_request)
        # Leaving any other state discards the result and error
        return AppSnapshot(state=AppState.IDLE, pending_request=snapshot.pending_request)

    if isinstance(intent, ShowFavorites):
        # ERROR carries no result, so nothing is lost by leaving it
        return AppSnapshot(state=AppState.FAVORITES, result=snapshot.result,
                           pending_request=snapshot.pending_request)

    if isinstance(intent, Reset):
        if state not in (AppState.ERROR, AppState.RESULTS):
            return snapshot
        return AppSnapshot(state=AppState.IDLE, pending_request=snapshot.pending_request)

    raise TypeError(f"Unknown intent: {intent!r}")


class AppStateMachine:
    """Top-level controller driven by user intents.

    Holds the current AppSnapshot, runs analysis requests through the injected
    AnalysisOrchestrator, and delegates favorites to the injected FavoritesStore.
    """

    def __init__(self, orchestrator: AnalysisOrchestrator, favorites: FavoritesStore) -> None:
        self.orchestrator = orchestrator
        self.favorites = favorites
        self._snapshot = AppSnapshot()

    # --- observable outputs -------------------------------------------------

    @property
    def snapshot(self) -> AppSnapshot:
        return self._snapshot

    @property
    def state(self) -> AppState:
        return self._snapshot.state

    @property
    def result(self) -> Optional[AnalysisResult]:
        return self._snapshot.result

    @property
    def error(self) -> Optional[str]:
        return self._snapshot.error

    @property
    def is_analyzing(self) -> bool:
        return self._snapshot.pending_request is not None

    @property
    def favorites_count(self) -> int:
        return len(self.favorites)

    @property
    def favorite_recipes(self) -> List[Recipe]:
        return self.favorites.recipes

    def is_favorite(self, recipe: Recipe) -> bool:
        return self.favorites.is_favorite(recipe)

    # --- intents ------------------------------------------------------------

    def dispatch(self, intent: Intent) -> AppSnapshot:
        """Apply an intent to the current snapshot and log the resulting transition."""
        before = self._snapshot
        after = transition(before, intent)
        name = type(intent).__name__
        if after is before:
            logger.debug(f"Intent {name} ignored in state {before.state.value}")
        else:
            logger.info(f"State transition: {before.state.value} -> {after.state.value} ({name})")
        self._snapshot = after
        return after

    async def start_analysis(self, image: bytes | str, filters: Optional[FilterOptions] = None) -> AppSnapshot:
        """Run one analysis. Only valid from IDLE with no request in flight.

        A call while another analysis is in flight, or from any state other than
        IDLE, is a no-op and returns the unchanged snapshot.
        """
        if self._snapshot.state != AppState.IDLE or self.is_analyzing:
            logger.warning(
                f"start_analysis rejected: state={self._snapshot.state.value}, in_flight={self.is_analyzing}"
            )
            return self._snapshot

        request_id = uuid.uuid4().hex
        # Transition happens before the first await, so a concurrent call sees the pending request
        self.dispatch(StartAnalysis(request_id=request_id))
        logger.debug("Analysis request issued", extra=analysis_context(request_id))

        try:
            result = await self.orchestrator.analyze(image, filters or FilterOptions())
        except AnalysisError as e:
            logger.warning(
                f"Analysis failed ({e.kind.value}): {e.message}",
                extra=analysis_context(request_id, e.kind),
            )
            return self.dispatch(AnalysisFailed(request_id=request_id, kind=e.kind))
        except asyncio.CancelledError:
            # Caller gave up (timeout or task cancel): release the pending request
            logger.warning("Analysis cancelled", extra=analysis_context(request_id, FailureKind.SERVICE_UNAVAILABLE))
            self.dispatch(AnalysisFailed(request_id=request_id, kind=FailureKind.SERVICE_UNAVAILABLE))
            raise
        except Exception:
            # Unclassified bug: release the pending request, then let it surface
            logger.exception("Analysis crashed", extra=analysis_context(request_id))
            self.dispatch(AnalysisFailed(request_id=request_id, kind=FailureKind.SERVICE_UNAVAILABLE))
            raise

        return self.dispatch(AnalysisSucceeded(request_id=request_id, result=result))

    async def select_image(self, image: bytes | str, filters: Optional[FilterOptions] = None) -> AppSnapshot:
        """User-facing name for start_analysis."""
        return await self.start_analysis(image, filters)

    def go_home(self) -> AppSnapshot:
        return self.dispatch(GoHome())

    def show_favorites(self) -> AppSnapshot:
        return self.dispatch(ShowFavorites())

    def reset(self) -> AppSnapshot:
        return self.dispatch(Reset())

    def toggle_favorite(self, recipe: Recipe) -> bool:
        """Toggle favorite membership by id. Never changes the UI state."""
        return self.favorites.toggle(recipe)
