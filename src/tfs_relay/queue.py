import itertools
import threading
import time
from collections import deque
from typing import Callable, Sequence

from pydantic import BaseModel
from sanic.log import logger

from tfs_relay import metrics
from tfs_relay.actions import Action, CauseAction, ParametersAction
from tfs_relay.jobs.models import Job

# items that already left the queue, still reachable through their URL
LEFT_ITEMS_KEPT = 100


class QueueItem(BaseModel):
    id: int
    job_name: str
    actions: list[Action]
    in_queue_since: float
    due: float

    @property
    def url(self) -> str:
        return f"queue/item/{self.id}/"

    @property
    def parameters(self) -> ParametersAction | None:
        for action in self.actions:
            if isinstance(action, ParametersAction):
                return action
        return None

    @property
    def build_actions(self) -> list[Action]:
        """Actions that decide which build runs; causes are not among them."""
        return [
            action for action in self.actions if not isinstance(action, CauseAction)
        ]

    def summary(self) -> dict:
        return {
            "id": self.id,
            "job": self.job_name,
            "url": self.url,
            "inQueueSince": self.in_queue_since,
            "due": self.due,
            "actions": [
                {"_class": type(action).__name__, **action.model_dump(mode="json")}
                for action in self.actions
            ],
        }


class ScheduleResult(BaseModel):
    item: QueueItem | None = None
    created: bool = False

    @classmethod
    def refused(cls) -> "ScheduleResult":
        return cls()


class BuildQueue:
    """
    Builds waiting for their quiet period to end, kept in memory only.

    An item waits until its due time. Scheduling the same job with the same
    actions while an item is still waiting returns that item instead of
    queueing a second one. Items past their due time leave the queue and only
    the most recent ones are remembered for lookups.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock
        self.items: list[QueueItem] = []
        self.left: deque[QueueItem] = deque(maxlen=LEFT_ITEMS_KEPT)
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def _release_due_items(self, now: float) -> None:
        waiting = []
        for item in self.items:
            if item.due <= now:
                logger.debug("Item %d for %s left the queue", item.id, item.job_name)
                self.left.append(item)
            else:
                waiting.append(item)
        self.items = waiting
        metrics.queue_length.set(len(self.items))

    def schedule(
        self, job: Job, delay: float, actions: Sequence[Action]
    ) -> ScheduleResult:
        if job.disabled:
            logger.info("Job %s is disabled, not scheduling", job.name)
            return ScheduleResult.refused()

        now = self.clock()
        item = QueueItem(
            id=0,
            job_name=job.name,
            actions=list(actions),
            in_queue_since=now,
            due=now + delay,
        )

        with self._lock:
            self._release_due_items(now)

            for waiting in self.items:
                if (
                    waiting.job_name == job.name
                    and waiting.build_actions == item.build_actions
                ):
                    logger.debug(
                        "Job %s already waiting as item %d", job.name, waiting.id
                    )
                    return ScheduleResult(item=waiting, created=False)

            item.id = next(self._ids)
            self.items.append(item)
            metrics.queue_length.set(len(self.items))

        logger.debug("Queued %s as item %d with delay %ss", job.name, item.id, delay)
        return ScheduleResult(item=item, created=True)

    def get(self, item_id: int) -> QueueItem | None:
        for item in itertools.chain(self.items, self.left):
            if item.id == item_id:
                return item
        return None

    def __len__(self) -> int:
        return len(self.items)
