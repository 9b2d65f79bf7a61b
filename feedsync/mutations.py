import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from feedsync import intents
from feedsync.errors import MutationFailed, TransportError
from feedsync.intents import MutationIntent
from feedsync.settings import MUTATION_TIMEOUT_SECONDS
from feedsync.store import EntityStore
from feedsync.transport import Transport

log = logging.getLogger(__name__)


class MutationState(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"        # remote accepted, local state already right
    ROLLED_BACK = "rolled_back"    # remote failed, fields restored
    SUPERSEDED = "superseded"      # a newer intent owns every field; outcome ignored
    DISCARDED = "discarded"        # target entity no longer in the store


@dataclass(eq=False)
class PendingMutation:
    intent: MutationIntent
    pre_state: Dict[str, Any]
    generations: Dict[str, int]
    state: MutationState = MutationState.PENDING
    error: Optional[MutationFailed] = None
    task: Optional["asyncio.Task"] = field(default=None, repr=False)

    @property
    def settled(self) -> bool:
        return self.state is not MutationState.PENDING

    async def wait(self) -> MutationState:
        """Wait for the remote call to settle and return the final state."""
        if self.task is not None:
            await self.task
        return self.state


class MutationController:
    """
    Applies user intents to a store immediately, then reconciles with the
    remote result in the background.

    Every field an intent touches gets a new generation number. When the
    remote call settles, only fields whose generation is still the latest
    are considered: a stale success does nothing, a stale failure is
    discarded, a current failure restores the snapshot taken before the
    change and is reported once through `on_failure`.

    Must be used from inside a running event loop.
    """

    def __init__(
        self,
        transport: Transport,
        timeout: float = MUTATION_TIMEOUT_SECONDS,
        on_failure: Optional[Callable[[MutationFailed], None]] = None,
    ):
        self.transport = transport
        self.timeout = timeout
        self.on_failure = on_failure
        self._generations: Dict[Tuple[str, str], int] = {}
        self._pending: List[PendingMutation] = []

    def latest_generation(self, entity_id: str, field_name: str) -> int:
        return self._generations.get((entity_id, field_name), 0)

    def pending(self) -> List[PendingMutation]:
        return [p for p in self._pending if not p.settled]

    async def drain(self) -> None:
        """Wait for every in-flight mutation to settle."""
        tasks = [p.task for p in self._pending if p.task is not None]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # --------------------------------------------------------------------
    # Entry point
    # --------------------------------------------------------------------
    def begin_mutation(self, intent: MutationIntent, store: EntityStore) -> PendingMutation:
        loop = asyncio.get_running_loop()
        if not intent.changes:
            raise ValueError("mutation intent has no changes")

        target = store.get(intent.entity_id)
        if target is None:
            log.info("mutation %s skipped: %s not in store", intent.operation, intent.entity_id)
            return PendingMutation(intent, {}, {}, state=MutationState.DISCARDED)

        unknown = [f for f in intent.fields if f not in type(target).model_fields]
        if unknown:
            raise ValueError(f"unknown field(s) for {type(target).__name__}: {', '.join(unknown)}")
        # reject bad values before a generation is spent on them
        type(target).model_validate({**target.model_dump(), **intent.changes})

        # 1) snapshot
        pre_state = store._read_fields(intent.entity_id, intent.fields)

        # 2) new generation per (entity, field)
        generations = {}
        for f in intent.fields:
            key = (intent.entity_id, f)
            generations[f] = self._generations.get(key, 0) + 1
            self._generations[key] = generations[f]

        # 3) local write, visible immediately
        store._write_fields(intent.entity_id, intent.changes)

        # 4) remote call in the background
        pm = PendingMutation(intent, pre_state, generations)
        self._pending.append(pm)
        pm.task = loop.create_task(self._reconcile(pm, store))
        log.debug("mutation %s on %s started, generations=%s",
                  intent.operation, intent.entity_id, generations)
        return pm

    def toggle_like(self, store: EntityStore, post_id: str) -> PendingMutation:
        return self.begin_mutation(intents.toggle_like(store, post_id), store)

    def toggle_preference(self, store: EntityStore, profile_id: str, key: str) -> PendingMutation:
        return self.begin_mutation(intents.toggle_preference(store, profile_id, key), store)

    def edit_profile(self, store: EntityStore, profile_id: str, **changes: Any) -> PendingMutation:
        return self.begin_mutation(intents.edit_profile(store, profile_id, **changes), store)

    # --------------------------------------------------------------------
    # Settlement
    # --------------------------------------------------------------------
    async def _call_remote(self, intent: MutationIntent) -> Optional[BaseException]:
        """Run the remote operation; returns the failure cause, or None on success."""
        try:
            ok = await asyncio.wait_for(
                self.transport.mutate(intent.operation, intent.entity_id, intent.payload),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            return TransportError(f"{intent.operation} timed out after {self.timeout}s")
        except Exception as e:
            # any transport failure is a reconciliation failure
            return e
        if not ok:
            return TransportError(f"{intent.operation} rejected by remote")
        return None

    async def _reconcile(self, pm: PendingMutation, store: EntityStore) -> None:
        try:
            cause = await self._call_remote(pm.intent)
            self._settle(pm, store, cause)
        finally:
            self._pending.remove(pm)

    def _settle(self, pm: PendingMutation, store: EntityStore, cause: Optional[BaseException]) -> None:
        eid = pm.intent.entity_id
        current = [f for f, g in pm.generations.items() if self.latest_generation(eid, f) == g]

        if cause is None:
            pm.state = MutationState.CONFIRMED if current else MutationState.SUPERSEDED
            log.debug("mutation %s on %s confirmed (%s)", pm.intent.operation, eid, pm.state.value)
            return

        if not current:
            pm.state = MutationState.SUPERSEDED
            log.debug("stale failure for %s on %s discarded: %s", pm.intent.operation, eid, cause)
            return

        if not store._write_fields(eid, {f: pm.pre_state[f] for f in current}):
            pm.state = MutationState.DISCARDED
            log.info("mutation %s failed but %s left the store; nothing to roll back",
                     pm.intent.operation, eid)
            return

        pm.state = MutationState.ROLLED_BACK
        pm.error = MutationFailed(pm.intent, cause)
        log.warning("mutation %s on %s rolled back fields %s: %s",
                    pm.intent.operation, eid, current, cause)
        if self.on_failure is not None:
            try:
                self.on_failure(pm.error)
            except Exception:
                log.exception("on_failure handler raised for %s on %s", pm.intent.operation, eid)
