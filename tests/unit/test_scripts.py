"""Script template rendering and registry tests."""

from __future__ import annotations

import pytest

from scratchforce.errors import ScriptTemplateError
from scratchforce.scripts import (
    ScriptParam,
    ScriptTemplate,
    ScriptTemplateRegistry,
    create_default_registry,
    escape_literal,
    soql_literal,
    validate_template,
)


def _insert_values(**overrides):
    values = dict(
        name='ci-42',
        edition='Developer',
        username='ci-42@example.com',
        admin_email='admin@example.com',
        client_id='3MVG9-client',
        redirect_uri='https://login.salesforce.com/services/oauth2/success',
        duration_days=7,
        features='API;AuthorApex',
        description='nightly',
        namespace=None,
        release=None,
        language='en_US',
        country_code='US',
    )
    values.update(overrides)
    return values


class TestEscaping:
    def test_escapes_quotes_and_control_characters(self):
        assert escape_literal("O'Brien") == "O\\'Brien"
        assert escape_literal('a\\b') == 'a\\\\b'
        assert escape_literal('line1\nline2\ttab\r') == 'line1\\nline2\\ttab\\r'
        assert escape_literal('say "hi"') == 'say \\"hi\\"'

    def test_soql_literal_is_quoted(self):
        assert soql_literal("x' OR Name != '") == "'x\\' OR Name != \\''"


class TestRender:
    def test_insert_renders_escaped_literals(self):
        registry = create_default_registry()
        body = registry.render('insert_scratch_org', **_insert_values(name="O'Brien"))

        assert "OrgName = 'O\\'Brien'" in body
        assert 'DurationDays = 7' in body
        assert 'Namespace = null' in body
        assert 'Release = null' in body
        assert body.strip().endswith('insert newScratch;')

    def test_optional_string_renders_value_when_given(self):
        registry = create_default_registry()
        body = registry.render(
            'insert_scratch_org', **_insert_values(namespace='acme', release='Preview'),
        )
        assert "Namespace = 'acme'" in body
        assert "Release = 'Preview'" in body

    def test_injection_attempt_stays_inside_literal(self):
        registry = create_default_registry()
        body = registry.render('set_password', password="x'); delete [SELECT Id FROM User]; ('")
        assert body == (
            "System.setPassword(UserInfo.getUserId(), "
            "'x\\'); delete [SELECT Id FROM User]; (\\'');"
        )

    def test_missing_parameter(self):
        registry = create_default_registry()
        values = _insert_values()
        del values['username']
        with pytest.raises(ScriptTemplateError, match='missing parameters'):
            registry.render('insert_scratch_org', **values)

    def test_unexpected_parameter(self):
        registry = create_default_registry()
        with pytest.raises(ScriptTemplateError, match='unexpected parameters'):
            registry.render('set_password', password='pw', user='someone')

    def test_integer_rejects_strings_and_bools(self):
        registry = create_default_registry()
        with pytest.raises(ScriptTemplateError, match='must be an integer'):
            registry.render('insert_scratch_org', **_insert_values(duration_days='7'))
        with pytest.raises(ScriptTemplateError, match='must be an integer'):
            registry.render('insert_scratch_org', **_insert_values(duration_days=True))

    def test_required_string_rejects_none(self):
        registry = create_default_registry()
        with pytest.raises(ScriptTemplateError, match='must not be None'):
            registry.render('set_password', password=None)

    def test_string_list(self):
        registry = create_default_registry()
        body = registry.render('delete_scratch_orgs', ids=['2SR1', '2SR2'])
        assert body == "delete [SELECT Id FROM ScratchOrgInfo WHERE Id IN ('2SR1','2SR2')];"

        with pytest.raises(ScriptTemplateError, match='must not be empty'):
            registry.render('delete_scratch_orgs', ids=[])
        with pytest.raises(ScriptTemplateError, match='list of strings'):
            registry.render('delete_scratch_orgs', ids='2SR1')


class TestRegistry:
    def test_default_registry_is_frozen(self):
        registry = create_default_registry()
        assert registry.is_frozen
        assert registry.list_ids() == [
            'delete_scratch_orgs',
            'insert_scratch_org',
            'set_password',
            'update_user_profile',
        ]
        assert len(registry) == 4
        with pytest.raises(ScriptTemplateError, match='frozen'):
            registry.register(ScriptTemplate('noop', 'noop', 'System.debug(1);'))

    def test_unknown_template(self):
        with pytest.raises(ScriptTemplateError, match='Unknown template'):
            create_default_registry().get('drop_everything')

    def test_duplicate_registration(self):
        registry = ScriptTemplateRegistry()
        template = ScriptTemplate('noop', 'noop', 'System.debug(1);')
        registry.register(template)
        with pytest.raises(ScriptTemplateError, match='already registered'):
            registry.register(template)

    def test_invalid_template_rejected(self):
        registry = ScriptTemplateRegistry()
        template = ScriptTemplate('Bad-ID', 'bad', 'System.debug($msg);')
        with pytest.raises(ScriptTemplateError, match='Invalid template'):
            registry.register(template)


class TestValidateTemplate:
    def test_valid(self):
        template = ScriptTemplate('debug', 'debug', 'System.debug($msg);', (ScriptParam('msg'),))
        assert validate_template(template) == []

    def test_undeclared_and_unused(self):
        template = ScriptTemplate(
            'debug', 'debug', 'System.debug($msg);', (ScriptParam('other'),),
        )
        issues = validate_template(template)
        assert any('undeclared' in i for i in issues)
        assert any('unused' in i for i in issues)

    def test_empty_body(self):
        issues = validate_template(ScriptTemplate('empty', 'empty', '   '))
        assert any('empty body' in i for i in issues)
