"""
Automation Exceptions

Exception classes raised inside the automation engine:
- AutomationError: Base class
- ActionConfigurationError: A rule action is misconfigured
- UnsafeURLError: A webhook target failed the SSRF guard
- ActionTargetNotFound: The record an action operates on does not exist
- RuleNotFound: No rule with the requested id for the tenant
- TriggerDispatchError: Infrastructure failure worth retrying

Action handlers raise these; the executor turns every exception into a
failed ActionOutcome, so none of them escape a dispatch. Only the Celery
trigger task raises TriggerDispatchError, to drive its retries.
"""


class AutomationError(Exception):
    """Base class for automation engine errors."""

    def __init__(self, message: str = None):
        self.message = message or self.__class__.__doc__.strip()
        super().__init__(self.message)

    def __str__(self):
        return self.message


class ActionConfigurationError(AutomationError):
    """
    Raised when an action's configuration cannot be executed.

    Unknown action types, missing recipients and fields outside the
    update allow-list all land here. These are tenant mistakes, not
    engine faults, and are reported in the rule's execution history.
    """


class UnsafeURLError(ActionConfigurationError):
    """
    Raised when a webhook URL is rejected by the SSRF guard.

    Attributes:
        url: The rejected URL.
        reason: Why it was rejected.
    """

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Webhook URL blocked: {reason}")


class ActionTargetNotFound(AutomationError):
    """
    Raised when the record an action operates on does not exist.

    Attributes:
        model_name: Name of the missing model.
        object_id: Identifier that was looked up.
    """

    def __init__(self, model_name: str, object_id=None):
        self.model_name = model_name
        self.object_id = object_id
        super().__init__(f"{model_name} not found (id={object_id})")


class RuleNotFound(AutomationError):
    """Raised when a rule id does not resolve for the tenant."""

    def __init__(self, rule_id=None):
        self.rule_id = rule_id
        super().__init__(f"Automation rule not found (id={rule_id})")


class TriggerDispatchError(AutomationError):
    """
    Raised by the trigger task when a dispatch failed on infrastructure.

    The task retries on it; after the last retry the job is stored as a
    FailedTrigger for inspection.
    """
