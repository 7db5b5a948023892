"""Daily-reset counters.

A counter keeps a lifetime total and a count for the current local day.
The day boundary is checked lazily on every load and write, never by a
background timer.
"""
import logging
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from workout_tracker_api.config import Settings, settings as default_settings
from workout_tracker_api.errors import NotFoundError, QuotaExceededError, WorkoutValidationError
from workout_tracker_api.models import Counter, CounterEntry, CounterStats
from workout_tracker_api.repositories.ports import BillingProvider, CounterStore, IdentityProvider
from workout_tracker_api.services.identity import require_user_id
from workout_tracker_api.utils import date_string

logger = logging.getLogger(__name__)

# (name, lifetime total, today) seeded on first use
EXAMPLE_COUNTERS: List[Tuple[str, int, int]] = [
    ("Pull-ups", 132, 0),
    ("Push-ups", 89, 12),
    ("Squats", 300, 50),
]


def apply_daily_reset(counter: Counter, today: str) -> Counter:
    """Zero today's count on a new day. Untouched if nothing was counted."""
    if counter.last_reset_date != today and counter.today_count > 0:
        return counter.model_copy(update={"today_count": 0, "last_reset_date": today})
    return counter


def apply_increment(counter: Counter, amount: int, today: str) -> Counter:
    if counter.last_reset_date != today:
        today_count = amount
    else:
        today_count = counter.today_count + amount
    return counter.model_copy(update={
        "current_count": counter.current_count + amount,
        "today_count": today_count,
        "last_reset_date": today,
    })


def apply_decrement(counter: Counter, amount: int, today: str) -> Counter:
    base_today = counter.today_count if counter.last_reset_date == today else 0
    return counter.model_copy(update={
        "current_count": max(0, counter.current_count - amount),
        "today_count": max(0, base_today - amount),
        "last_reset_date": today,
    })


def compute_stats(counter: Counter) -> CounterStats:
    """Approximate rollup derived from today's count.

    Only ``today`` and ``all_time`` are exact; the other periods are a
    multiply-and-cap heuristic until dated entries are aggregated.
    """
    today = counter.today_count
    total = counter.current_count
    return CounterStats(
        yesterday=max(0, today - 5),
        today=today,
        this_week=min(total, today * 7),
        this_month=min(total, today * 30),
        this_year=min(total, today * 365),
        all_time=total,
    )


def visible_counters(counters: List[Counter], is_premium: bool, free_limit: int = 1) -> Tuple[List[Counter], int]:
    """Counters a user may see, and how many are hidden behind the paywall."""
    if is_premium:
        return list(counters), 0
    visible = list(counters[:free_limit])
    return visible, len(counters) - len(visible)


class CounterService:
    """Counter operations for the signed-in user."""

    def __init__(
        self,
        store: CounterStore,
        identity: IdentityProvider,
        billing: BillingProvider,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.identity = identity
        self.billing = billing
        self.settings = settings or default_settings
        self.clock = clock

    def _today(self) -> str:
        return date_string(self.clock())

    async def _require_counter(self, counter_id: str) -> Counter:
        """The caller's counter. Other users' counters are reported as missing."""
        user_id = await require_user_id(self.identity)
        counter = await self.store.get_counter(counter_id)
        if counter is None or counter.user_id != user_id:
            raise NotFoundError("Counter", counter_id)
        return counter

    async def load_counters(self) -> List[Counter]:
        """All counters, seeding examples on first use and applying the daily reset."""
        user_id = await require_user_id(self.identity)
        counters = await self.store.get_counters(user_id)

        if not counters and not await self.store.has_saved_state(user_id):
            counters = await self._seed_examples(user_id)

        today = self._today()
        result = []
        for counter in counters:
            reset = apply_daily_reset(counter, today)
            if reset is not counter:
                logger.debug(f"Daily reset for counter {counter.id} ({counter.last_reset_date} -> {today})")
                await self.store.save_counter(reset)
            result.append(reset)
        return result

    async def _seed_examples(self, user_id: str) -> List[Counter]:
        today = self._today()
        now = self.clock()
        seeded = [
            Counter(
                name=name,
                user_id=user_id,
                current_count=total,
                today_count=today_count,
                created_at=now,
                last_reset_date=today,
            )
            for name, total, today_count in EXAMPLE_COUNTERS
        ]
        for counter in seeded:
            await self.store.save_counter(counter)
        await self.store.mark_saved_state(user_id)
        logger.info(f"Seeded {len(seeded)} example counters for user {user_id}")
        return seeded

    async def load_visible_counters(self) -> Tuple[List[Counter], int]:
        counters = await self.load_counters()
        subscription = await self.billing.get_user_subscription()
        return visible_counters(counters, subscription.is_premium, self.settings.FREE_COUNTER_LIMIT)

    async def can_create_counter(self) -> bool:
        subscription = await self.billing.get_user_subscription()
        if subscription.is_premium:
            return True
        user_id = await require_user_id(self.identity)
        return len(await self.store.get_counters(user_id)) < self.settings.FREE_COUNTER_LIMIT

    async def create_counter(self, name: str) -> Counter:
        name = name.strip()
        if not name:
            raise WorkoutValidationError("Please enter a counter name")
        user_id = await require_user_id(self.identity)

        subscription = await self.billing.get_user_subscription()
        if not subscription.is_premium:
            current = len(await self.store.get_counters(user_id))
            if current >= self.settings.FREE_COUNTER_LIMIT:
                raise QuotaExceededError("counters", self.settings.FREE_COUNTER_LIMIT, current)

        counter = Counter(
            name=name,
            user_id=user_id,
            created_at=self.clock(),
            last_reset_date=self._today(),
        )
        await self.store.save_counter(counter)
        await self.store.mark_saved_state(user_id)
        logger.info(f"Created counter '{name}' ({counter.id})")
        return counter

    async def rename_counter(self, counter_id: str, name: str) -> Counter:
        name = name.strip()
        if not name:
            raise WorkoutValidationError("Please enter a counter name")
        counter = (await self._require_counter(counter_id)).model_copy(update={"name": name})
        await self.store.save_counter(counter)
        return counter

    async def delete_counter(self, counter_id: str) -> None:
        counter = await self._require_counter(counter_id)
        await self.store.delete_counter(counter.id)
        # Deleting everything must not bring the examples back
        await self.store.mark_saved_state(counter.user_id)
        logger.info(f"Deleted counter {counter_id}")

    async def increment(self, counter_id: str, amount: int = 1) -> Counter:
        counter = apply_increment(await self._require_counter(counter_id), amount, self._today())
        await self.store.save_counter(counter)
        return counter

    async def decrement(self, counter_id: str, amount: int = 1) -> Counter:
        counter = apply_decrement(await self._require_counter(counter_id), amount, self._today())
        await self.store.save_counter(counter)
        return counter

    async def set_today_count(self, counter_id: str, new_today_count: int) -> Counter:
        """Overwrite today's count directly, adjusting the lifetime total by the difference."""
        today = self._today()
        counter = apply_daily_reset(await self._require_counter(counter_id), today)
        new_today_count = max(0, new_today_count)
        difference = new_today_count - counter.today_count
        counter = counter.model_copy(update={
            "today_count": new_today_count,
            "current_count": max(0, counter.current_count + difference),
            "last_reset_date": today,
        })
        await self.store.save_counter(counter)
        await self.store.add_entry(CounterEntry(
            counter_id=counter.id,
            count=new_today_count,
            date=today,
            timestamp=self.clock(),
        ))
        return counter

    async def get_stats(self, counter_id: str) -> CounterStats:
        counter = apply_daily_reset(await self._require_counter(counter_id), self._today())
        return compute_stats(counter)
