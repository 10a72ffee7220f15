"""Vetted anonymous-script templates with escaped parameters.

Privileged commands (create an environment, set a password, delete
environments) are never assembled from raw strings. Callers pick a template
by ID and pass values; every value is rendered as an escaped Apex literal of
the declared kind before substitution.

This module:
  1. Defines ScriptTemplate with declared, typed parameters.
  2. Provides a registry of allowed templates.
  3. Escapes string values for Apex and SOQL literals.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from string import Template
from typing import Any, Literal

from .errors import ScriptTemplateError

logger = logging.getLogger(__name__)

TEMPLATE_ID_PATTERN = re.compile(r'^[a-z][a-z0-9_]{0,63}$')

ParamKind = Literal['string', 'optional_string', 'integer', 'string_list']

_ESCAPES = (
    ('\\', '\\\\'),
    ("'", "\\'"),
    ('"', '\\"'),
    ('\n', '\\n'),
    ('\r', '\\r'),
    ('\t', '\\t'),
)


def escape_literal(value: str) -> str:
    """Escape ``value`` for use inside a single-quoted Apex/SOQL literal."""
    for raw, escaped in _ESCAPES:
        value = value.replace(raw, escaped)
    return value


def quote_literal(value: str) -> str:
    return f"'{escape_literal(value)}'"


def soql_literal(value: str) -> str:
    """Quoted SOQL string literal for a WHERE clause."""
    return quote_literal(str(value))


@dataclass(frozen=True, slots=True)
class ScriptParam:
    name: str
    kind: ParamKind = 'string'


@dataclass(frozen=True)
class ScriptTemplate:
    """An immutable anonymous-script template.

    ``body`` uses ``$name`` placeholders; each must be declared in
    ``params``. Placeholders are replaced by complete literals (quotes
    included), so templates never wrap them in quotes themselves.
    """
    id: str
    description: str
    body: str
    params: tuple[ScriptParam, ...] = ()

    def render(self, **values: Any) -> str:
        declared = {p.name: p for p in self.params}
        missing = sorted(set(declared) - set(values))
        unexpected = sorted(set(values) - set(declared))
        if missing:
            raise ScriptTemplateError(f'{self.id}: missing parameters {missing}')
        if unexpected:
            raise ScriptTemplateError(f'{self.id}: unexpected parameters {unexpected}')

        rendered = {
            name: _render_value(self.id, param, values[name])
            for name, param in declared.items()
        }
        return Template(self.body).substitute(rendered)


def _render_value(template_id: str, param: ScriptParam, value: Any) -> str:
    if param.kind == 'integer':
        if isinstance(value, bool) or not isinstance(value, int):
            raise ScriptTemplateError(
                f'{template_id}: {param.name} must be an integer, got {value!r}'
            )
        return str(value)

    if param.kind == 'string_list':
        if isinstance(value, str) or not isinstance(value, (list, tuple)):
            raise ScriptTemplateError(
                f'{template_id}: {param.name} must be a list of strings'
            )
        if not value:
            raise ScriptTemplateError(f'{template_id}: {param.name} must not be empty')
        return ','.join(quote_literal(str(v)) for v in value)

    if value is None:
        if param.kind == 'optional_string':
            return 'null'
        raise ScriptTemplateError(f'{template_id}: {param.name} must not be None')
    return quote_literal(str(value))


def validate_template(template: ScriptTemplate) -> list[str]:
    """Validate a template's fields. Returns list of issues (empty if valid)."""
    issues: list[str] = []

    if not TEMPLATE_ID_PATTERN.match(template.id):
        issues.append(
            f'Template ID {template.id!r} does not match '
            f'{TEMPLATE_ID_PATTERN.pattern}'
        )
    if not template.body.strip():
        issues.append(f'Template {template.id!r} has empty body')

    placeholders = set(Template(template.body).get_identifiers())
    declared = {p.name for p in template.params}
    if not Template(template.body).is_valid():
        issues.append(f'Template {template.id!r} has malformed placeholders')
    if placeholders - declared:
        issues.append(
            f'Template {template.id!r} uses undeclared parameters '
            f'{sorted(placeholders - declared)}'
        )
    if declared - placeholders:
        issues.append(
            f'Template {template.id!r} declares unused parameters '
            f'{sorted(declared - placeholders)}'
        )
    return issues


class ScriptTemplateRegistry:
    """Registry of allowed script templates, frozen after startup."""

    def __init__(self) -> None:
        self._templates: dict[str, ScriptTemplate] = {}
        self._frozen = False

    def register(self, template: ScriptTemplate) -> None:
        if self._frozen:
            raise ScriptTemplateError('Cannot register templates after registry is frozen')

        issues = validate_template(template)
        if issues:
            raise ScriptTemplateError(f'Invalid template {template.id!r}: {"; ".join(issues)}')

        if template.id in self._templates:
            raise ScriptTemplateError(f'Template {template.id!r} is already registered')

        self._templates[template.id] = template
        logger.debug('Registered script template: %s', template.id)

    def freeze(self) -> None:
        self._frozen = True

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def get(self, template_id: str) -> ScriptTemplate:
        template = self._templates.get(template_id)
        if template is None:
            raise ScriptTemplateError(
                f'Unknown template {template_id!r}. '
                f'Available: {sorted(self._templates)}'
            )
        return template

    def render(self, template_id: str, **values: Any) -> str:
        return self.get(template_id).render(**values)

    def list_ids(self) -> list[str]:
        return sorted(self._templates)

    def __len__(self) -> int:
        return len(self._templates)


INSERT_SCRATCH_ORG = ScriptTemplate(
    id='insert_scratch_org',
    description='Request a new scratch environment from the dev hub',
    body="""
ScratchOrgInfo newScratch = new ScratchOrgInfo(
  OrgName = $name,
  Edition = $edition,
  Username = $username,
  AdminEmail = $admin_email,
  ConnectedAppConsumerKey = $client_id,
  ConnectedAppCallbackUrl = $redirect_uri,
  DurationDays = $duration_days,
  Features = $features,
  Description = $description,
  Namespace = $namespace,
  Release = $release,
  Language = $language,
  Country = $country_code
);
insert newScratch;
""",
    params=(
        ScriptParam('name'),
        ScriptParam('edition'),
        ScriptParam('username'),
        ScriptParam('admin_email'),
        ScriptParam('client_id'),
        ScriptParam('redirect_uri'),
        ScriptParam('duration_days', 'integer'),
        ScriptParam('features'),
        ScriptParam('description'),
        ScriptParam('namespace', 'optional_string'),
        ScriptParam('release', 'optional_string'),
        ScriptParam('language'),
        ScriptParam('country_code'),
    ),
)

SET_PASSWORD = ScriptTemplate(
    id='set_password',
    description="Set the running user's password",
    body='System.setPassword(UserInfo.getUserId(), $password);',
    params=(ScriptParam('password'),),
)

UPDATE_USER_PROFILE = ScriptTemplate(
    id='update_user_profile',
    description="Set the running user's country, mobile phone and language",
    body="""
String userId = UserInfo.getUserId();
User user = [SELECT Id, Name, MobilePhone FROM User WHERE Id = :userId LIMIT 1];
user.Country = $country_name;
user.MobilePhone = $phone;
user.LanguageLocaleKey = $language;
update user;
""",
    params=(
        ScriptParam('country_name'),
        ScriptParam('phone'),
        ScriptParam('language'),
    ),
)

DELETE_SCRATCH_ORGS = ScriptTemplate(
    id='delete_scratch_orgs',
    description='Delete scratch environments by record Id',
    body='delete [SELECT Id FROM ScratchOrgInfo WHERE Id IN ($ids)];',
    params=(ScriptParam('ids', 'string_list'),),
)


def create_default_registry() -> ScriptTemplateRegistry:
    """Registry with the templates used by the provisioning workflow."""
    registry = ScriptTemplateRegistry()
    for template in (INSERT_SCRATCH_ORG, SET_PASSWORD, UPDATE_USER_PROFILE, DELETE_SCRATCH_ORGS):
        registry.register(template)
    registry.freeze()
    return registry
