"""
Shared fixtures for automation tests.

- ``ImmediateExecutor`` runs inline-queue work synchronously so cascades
  can be asserted without threads.
- ``RecordingQueue`` captures enqueued triggers instead of running them.
"""

import uuid
from unittest.mock import MagicMock

import pytest

from automations.actions import ActionExecutor
from automations.channels import DjangoDeliveryChannels
from automations.engine import TriggerContext
from automations.queue import EnqueueAck
from automations.runtime import build_runtime, set_runtime


class ImmediateExecutor:
    """Executor-compatible object that runs submitted work in the caller's thread."""

    def __init__(self):
        self.submitted = 0

    def submit(self, fn, *args, **kwargs):
        self.submitted += 1
        fn(*args, **kwargs)

    def shutdown(self, wait=True):
        pass


class RecordingQueue:
    """Stands in for DispatchQueue and remembers every enqueue call."""

    def __init__(self, fail_with=None):
        self.calls = []
        self.fail_with = fail_with

    def enqueue(self, event_type, payload, tenant_id, context=None):
        if self.fail_with:
            raise self.fail_with
        context = TriggerContext.from_value(context)
        self.calls.append({
            'event_type': str(event_type),
            'payload': payload,
            'tenant_id': tenant_id,
            'context': context,
        })
        return EnqueueAck(event_id=context.event_id, durable=False)


@pytest.fixture
def immediate_executor():
    return ImmediateExecutor()


@pytest.fixture
def recording_queue():
    return RecordingQueue()


@pytest.fixture
def failing_queue():
    return RecordingQueue(fail_with=RuntimeError('broker gone'))


@pytest.fixture
def email_service():
    return MagicMock(name='email_service')


@pytest.fixture
def sms_service():
    service = MagicMock(name='sms_service')
    service.send.return_value = MagicMock(external_id='sms-1')
    return service


@pytest.fixture
def channels(db, email_service, sms_service):
    """Django channels with email and SMS delivery mocked out."""
    return DjangoDeliveryChannels(sms_service=sms_service, email_service=email_service)


@pytest.fixture
def action_executor(channels, recording_queue):
    return ActionExecutor(channels, queue=recording_queue)


@pytest.fixture
def runtime(db, channels, immediate_executor):
    """Inline runtime whose queue dispatches synchronously."""
    return set_runtime(build_runtime(
        mode='inline',
        channels=channels,
        queue_executor=immediate_executor,
    ))


@pytest.fixture
def trigger_context():
    return TriggerContext(event_id=str(uuid.uuid4()))
