"""
Automations API URLs

Routes for rules, templates, rule testing, logs, statistics and queue health.
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .viewsets import (
    AutomationRuleViewSet,
    AutomationTemplateViewSet,
    RuleTestView,
    ExecutionLogView,
    StatisticsView,
    QueueHealthView,
)

app_name = 'automations'

router = DefaultRouter()

# Rule endpoints
router.register(r'rules', AutomationRuleViewSet, basename='rule')

# System templates
router.register(r'templates', AutomationTemplateViewSet, basename='template')

urlpatterns = [
    path('test/', RuleTestView.as_view(), name='rule-test'),
    path('logs/', ExecutionLogView.as_view(), name='logs'),
    path('statistics/', StatisticsView.as_view(), name='statistics'),
    path('health/', QueueHealthView.as_view(), name='health'),
    path('', include(router.urls)),
]
