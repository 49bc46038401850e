from __future__ import annotations

from statemachine import State, StateMachine

from chronicle.api.models import ScheduledEvent


class ScheduledEventFSM(StateMachine):
    """Lifecycle of a scheduled event.

    - one-shot events: pending -> triggered (terminal)
    - recurring events: pending -> pending; the caller moves trigger_time forward
    """

    pending = State("pending", value="pending", initial=True)
    triggered = State("triggered", value="triggered", final=True)

    fired = pending.to(triggered)
    rescheduled = pending.to.itself()

    def __init__(self, event: ScheduledEvent):
        self.scheduled = event
        super().__init__(start_value="triggered" if event.triggered else "pending")

    def apply_firing(self) -> None:
        """Apply the transition for a firing: reschedule if recurring, else finish."""

        if self.scheduled.recurring is None:
            self.fired()
        else:
            self.rescheduled()
        self.sync_triggered_to_model()

    def sync_triggered_to_model(self) -> None:
        self.scheduled.triggered = self.current_state.value == self.triggered.value
