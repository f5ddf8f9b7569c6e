"""
Template rendering for action content.

Placeholders use ``{{ key }}`` with optional whitespace and dotted keys
into nested values. Placeholders that do not resolve are removed from
the output.
"""

import re
from typing import Any, Mapping

from django.utils import timezone

from .conditions import MISSING, get_field_value

PLACEHOLDER_RE = re.compile(r'\{\{\s*([\w.-]+)\s*\}\}')
LEFTOVER_RE = re.compile(r'\{\{[^{}]*\}\}')


def prepare_variables(custom: Mapping = None, payload: Mapping = None) -> dict:
    """
    Build the variable set for rendering.

    Custom data first, then the well-known payload fields with their
    fallbacks, then the payload itself; later layers win.
    """
    payload = payload or {}

    variables = dict(custom or {})
    variables.update({
        'applicantName': payload.get('applicantName') or 'Candidate',
        'jobTitle': payload.get('jobTitle') or 'Job',
        'companyName': payload.get('companyName') or 'Company',
        'status': payload.get('status') or payload.get('newStatus') or '',
        'oldStatus': payload.get('oldStatus') or '',
        'newStatus': payload.get('newStatus') or '',
        'applicationDate': payload.get('applicationDate') or timezone.now().date().isoformat(),
    })
    variables.update({k: v for k, v in payload.items() if v is not None})
    return variables


def _stringify(value) -> str:
    if value is None or value is MISSING:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


def render(template: Any, variables: Mapping) -> str:
    """Interpolate ``{{ key }}`` placeholders and strip the unresolved ones."""
    if template is None:
        return ''
    text = str(template)

    def substitute(match):
        return _stringify(get_field_value(variables, match.group(1)))

    text = PLACEHOLDER_RE.sub(substitute, text)
    return LEFTOVER_RE.sub('', text)


def render_structure(value: Any, variables: Mapping) -> Any:
    """Render every string inside a JSON-like structure; keys are left alone."""
    if isinstance(value, str):
        return render(value, variables)
    if isinstance(value, Mapping):
        return {key: render_structure(item, variables) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [render_structure(item, variables) for item in value]
    return value
