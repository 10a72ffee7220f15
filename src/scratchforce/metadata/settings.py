"""Org settings applied to every new scratch environment.

Two settings artifacts are deployed: Quote (enable quotes) and Security
(network access ranges, password and session policy). The security
descriptor carries the login IP ranges so the environment can be used
without identity verification prompts.
"""

from __future__ import annotations

from dataclasses import dataclass
from xml.sax.saxutils import escape

from .archive import METADATA_XMLNS, MetadataArtifact, PackageManifest, build_archive


@dataclass(frozen=True, slots=True)
class IpRange:
    description: str
    start: str
    end: str


def default_ip_ranges() -> tuple[IpRange, ...]:
    """Allow-all login ranges: ``allipsN`` spans N.0.0.0 - (N+1).255.255.255."""
    return tuple(
        IpRange(description=f'allips{n}', start=f'{n}.0.0.0', end=f'{n + 1}.255.255.255')
        for n in range(254, -1, -1)
    )


QUOTE_SETTINGS_XML = f"""<?xml version="1.0" encoding="UTF-8"?>
<QuoteSettings xmlns="{METADATA_XMLNS}">
    <enableQuote>true</enableQuote>
</QuoteSettings>"""

_PASSWORD_POLICIES = (
    ('complexity', 'AlphaNumeric'),
    ('expiration', 'Never'),
    ('historyRestriction', '3'),
    ('lockoutInterval', 'FifteenMinutes'),
    ('maxLoginAttempts', 'TenAttempts'),
    ('minimumPasswordLength', '8'),
    ('minimumPasswordLifetime', 'false'),
    ('obscureSecretAnswer', 'false'),
    ('questionRestriction', 'DoesNotContainPassword'),
)

_SESSION_SETTINGS = (
    ('allowUserAuthenticationByCertificate', 'false'),
    ('canConfirmEmailChangeInLightningCommunities', 'true'),
    ('canConfirmIdentityBySmsOnly', 'true'),
    ('disableTimeoutWarning', 'false'),
    ('enableBuiltInAuthenticator', 'false'),
    ('enableCSPOnEmail', 'true'),
    ('enableCSRFOnGet', 'true'),
    ('enableCSRFOnPost', 'true'),
    ('enableCacheAndAutocomplete', 'true'),
    ('enableClickjackNonsetupSFDC', 'true'),
    ('enableClickjackNonsetupUser', 'false'),
    ('enableClickjackNonsetupUserHeaderless', 'false'),
    ('enableClickjackSetup', 'true'),
    ('enableContentSniffingProtection', 'true'),
    ('enableLightningLogin', 'true'),
    ('enableLightningLoginOnlyWithUserPerm', 'false'),
    ('enableOauthCorsPolicy', 'false'),
    ('enablePostForSessions', 'false'),
    ('enableSMSIdentity', 'true'),
    ('enableU2F', 'false'),
    ('enableXssProtection', 'true'),
    ('enforceIpRangesEveryRequest', 'false'),
    ('enforceUserDeviceRevoked', 'false'),
    ('forceLogoutOnSessionTimeout', 'true'),
    ('forceRelogin', 'true'),
    ('hasRetainedLoginHints', 'false'),
    ('hasUserSwitching', 'true'),
    ('identityConfirmationOnEmailChange', 'false'),
    ('identityConfirmationOnTwoFactorRegistrationEnabled', 'true'),
    ('lockSessionsToDomain', 'true'),
    ('lockSessionsToIp', 'false'),
    ('sessionTimeout', 'TwelveHours'),
    ('lockerServiceCSP', 'true'),
    ('lockerServiceNext', 'false'),
    ('lockerServiceNextControl', 'false'),
    ('redirectionWarning', 'true'),
    ('referrerPolicy', 'true'),
    ('requireHttpOnly', 'false'),
    ('useLocalStorageForLogoutUrl', 'false'),
)

_SINGLE_SIGN_ON_SETTINGS = (
    ('enableCaseInsensitiveFederationID', 'false'),
    ('enableMultipleSamlConfigs', 'true'),
    ('enableSamlJitProvisioning', 'false'),
    ('enableSamlLogin', 'false'),
    ('isLoginWithSalesforceCredentialsDisabled', 'false'),
)


def _elements(pairs: tuple[tuple[str, str], ...], indent: str) -> list[str]:
    return [f'{indent}<{tag}>{escape(value)}</{tag}>' for tag, value in pairs]


def security_settings_xml(
    *,
    enable_audit_fields_inactive_owner: bool = False,
    ip_ranges: tuple[IpRange, ...] | list[IpRange] | None = None,
) -> str:
    """Render the SecuritySettings descriptor."""
    ranges = default_ip_ranges() if ip_ranges is None else tuple(ip_ranges)
    audit_flag = 'true' if enable_audit_fields_inactive_owner else 'false'

    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        f'<SecuritySettings xmlns="{METADATA_XMLNS}">',
        '    <canUsersGrantLoginAccess>true</canUsersGrantLoginAccess>',
        '    <enableAdminLoginAsAnyUser>false</enableAdminLoginAsAnyUser>',
        f'    <enableAuditFieldsInactiveOwner>{audit_flag}</enableAuditFieldsInactiveOwner>',
        '    <enableAuraSecureEvalPref>true</enableAuraSecureEvalPref>',
        '    <enableRequireHttpsConnection>true</enableRequireHttpsConnection>',
    ]
    if ranges:
        lines.append('    <networkAccess>')
        for r in ranges:
            lines += [
                '        <ipRanges>',
                f'            <description>{escape(r.description)}</description>',
                f'            <end>{escape(r.end)}</end>',
                f'            <start>{escape(r.start)}</start>',
                '        </ipRanges>',
            ]
        lines.append('    </networkAccess>')

    lines.append('    <passwordPolicies>')
    lines += _elements(_PASSWORD_POLICIES, '        ')
    lines.append('    </passwordPolicies>')
    lines.append('    <sessionSettings>')
    lines += _elements(_SESSION_SETTINGS, '        ')
    lines.append('    </sessionSettings>')
    lines.append('    <singleSignOnSettings>')
    lines += _elements(_SINGLE_SIGN_ON_SETTINGS, '        ')
    lines.append('    </singleSignOnSettings>')
    lines.append('</SecuritySettings>')
    return '\n'.join(lines)


def settings_manifest(api_version: str) -> PackageManifest:
    return PackageManifest(
        version=api_version,
        types=(('Settings', ('Security', 'Quote')),),
    )


def build_settings_archive(
    *,
    api_version: str,
    enable_audit_fields_inactive_owner: bool = False,
    ip_ranges: tuple[IpRange, ...] | list[IpRange] | None = None,
) -> bytes:
    """Archive layout: package.xml, settings/Quote.settings, settings/Security.settings."""
    return build_archive(
        settings_manifest(api_version),
        [
            MetadataArtifact('settings/Quote.settings', QUOTE_SETTINGS_XML),
            MetadataArtifact(
                'settings/Security.settings',
                security_settings_xml(
                    enable_audit_fields_inactive_owner=enable_audit_fields_inactive_owner,
                    ip_ranges=ip_ranges,
                ),
            ),
        ],
    )
