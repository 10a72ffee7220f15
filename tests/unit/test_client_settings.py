from __future__ import annotations

from scratchforce.settings import DEFAULT_API_VERSION, ClientSettings


def test_defaults_are_valid():
    settings = ClientSettings()
    assert settings.validate() == []
    assert settings.api_version == DEFAULT_API_VERSION
    assert settings.deploy_max_attempts == 120
    assert settings.provision_poll_interval_seconds == 10.0
    assert settings.provision_timeout_seconds == 360.0


def test_provisioning_requires_client_id():
    assert ClientSettings().validate_for_provisioning() == [
        'client_id is required for provisioning',
    ]
    assert ClientSettings(client_id='3MVG9-client').validate_for_provisioning() == []


def test_password_minimums_must_fit():
    errors = ClientSettings(password_length=4).validate()
    assert any('exceed password_length' in e for e in errors)


def test_bad_poll_settings():
    errors = ClientSettings(deploy_max_attempts=0, provision_timeout_seconds=0).validate()
    assert 'deploy_max_attempts must be >= 1' in errors
    assert 'provision_timeout_seconds must be > 0' in errors


def test_from_env_overrides():
    settings = ClientSettings.from_env({
        'SCRATCHFORCE_API_VERSION': '58.0',
        'SCRATCHFORCE_CLIENT_ID': '3MVG9-client',
        'SCRATCHFORCE_DEPLOY_MAX_ATTEMPTS': '30',
        'SCRATCHFORCE_PROVISION_TIMEOUT_SECONDS': '600',
        'SCRATCHFORCE_DEFAULT_EDITION': '  ',
        'UNRELATED': 'x',
    })

    assert settings.api_version == '58.0'
    assert settings.client_id == '3MVG9-client'
    assert settings.deploy_max_attempts == 30
    assert settings.provision_timeout_seconds == 600.0
    assert settings.default_edition == 'Developer'


def test_non_positive_timeouts_are_rejected():
    errors = ClientSettings(deploy_timeout_seconds=0, http_timeout_seconds=-1).validate()
    assert 'deploy_timeout_seconds must be > 0 or unset' in errors
    assert 'http_timeout_seconds must be > 0' in errors


def test_unset_deploy_timeout_is_valid():
    assert ClientSettings(deploy_timeout_seconds=None).validate() == []


def test_negative_password_minimums_are_rejected():
    errors = ClientSettings(password_min_special=-1).validate()
    assert errors == ['password_min_special must be >= 0']


def test_from_env_zero_deploy_timeout_is_invalid():
    settings = ClientSettings.from_env({'SCRATCHFORCE_DEPLOY_TIMEOUT_SECONDS': '0'})
    assert settings.deploy_timeout_seconds == 0.0
    assert settings.validate() == ['deploy_timeout_seconds must be > 0 or unset']
