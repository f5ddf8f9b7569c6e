"""
Automations App for TalentFlow.

Publisher-defined rules that react to ATS events:

    event -> DispatchQueue -> TriggerDispatcher -> RuleOrchestrator -> ActionExecutor

Usage:
    from automations.integrations import trigger

    trigger('APPLICATION_SUBMITTED', {'entityId': str(app.pk), ...}, tenant_id)
"""
