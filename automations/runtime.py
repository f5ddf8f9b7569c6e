"""
Process-wide automation object graph.

Everything is built explicitly and passed by reference:

    channels -> ActionExecutor -> RuleOrchestrator
    IdempotencyLedger + RuleStore -> TriggerDispatcher -> DispatchQueue
    DispatchQueue -> ActionExecutor (cascades) and AutomationScheduler
"""

import logging
import threading
from dataclasses import dataclass

from django.conf import settings

from .actions import ActionExecutor
from .channels import DjangoDeliveryChannels
from .engine import RuleOrchestrator, RuleStore, TriggerDispatcher
from .ledger import IdempotencyLedger
from .queue import DispatchQueue
from .scheduler import AutomationScheduler

logger = logging.getLogger(__name__)

_runtime = None
_runtime_lock = threading.Lock()


@dataclass
class AutomationRuntime:
    channels: DjangoDeliveryChannels
    executor: ActionExecutor
    orchestrator: RuleOrchestrator
    ledger: IdempotencyLedger
    dispatcher: TriggerDispatcher
    queue: DispatchQueue
    scheduler: AutomationScheduler

    def shutdown(self):
        self.scheduler.stop()
        self.queue.shutdown()


def build_runtime(mode=None, channels=None, queue_executor=None, http=None) -> AutomationRuntime:
    """
    Build a fresh object graph.

    Args:
        mode: Queue mode, defaults to ``AUTOMATION_QUEUE_MODE``.
        channels: Delivery channels, defaults to the Django-backed ones.
        queue_executor: Pool for inline dispatch (tests pass a synchronous one).
        http: Session used by webhook actions, defaults to ``requests``.
    """
    mode = mode or getattr(settings, 'AUTOMATION_QUEUE_MODE', DispatchQueue.MODE_DURABLE)
    channels = channels or DjangoDeliveryChannels()
    executor = ActionExecutor(channels, http=http)
    orchestrator = RuleOrchestrator(executor)
    ledger = IdempotencyLedger()
    dispatcher = TriggerDispatcher(orchestrator, ledger, RuleStore())
    queue = DispatchQueue(dispatcher, mode=mode, executor=queue_executor)
    executor.bind_queue(queue)
    scheduler = AutomationScheduler(queue)

    if mode == DispatchQueue.MODE_DURABLE:
        queue.probe()
    logger.info(f"Automation runtime ready (mode={mode}, degraded={queue.is_degraded})")

    return AutomationRuntime(
        channels=channels,
        executor=executor,
        orchestrator=orchestrator,
        ledger=ledger,
        dispatcher=dispatcher,
        queue=queue,
        scheduler=scheduler,
    )


def get_runtime() -> AutomationRuntime:
    """Return the process runtime, building it on first use."""
    global _runtime
    if _runtime is None:
        with _runtime_lock:
            if _runtime is None:
                _runtime = build_runtime()
    return _runtime


def set_runtime(runtime):
    """Install a prebuilt runtime (tests)."""
    global _runtime
    with _runtime_lock:
        previous, _runtime = _runtime, runtime
    if previous is not None and previous is not runtime:
        previous.shutdown()
    return runtime


def reset_runtime():
    """Drop the process runtime; the next ``get_runtime()`` builds a new one."""
    set_runtime(None)
