"""Metadata archives, org settings descriptors and deployment."""

from .archive import MetadataArtifact, PackageManifest, build_archive
from .deploy import (
    DeployOptions,
    DeploymentResult,
    MetadataDeployer,
    component_problems,
    parse_deploy_status,
)
from .settings import (
    IpRange,
    build_settings_archive,
    default_ip_ranges,
    security_settings_xml,
)

__all__ = [
    'DeployOptions',
    'DeploymentResult',
    'IpRange',
    'MetadataArtifact',
    'MetadataDeployer',
    'PackageManifest',
    'build_archive',
    'build_settings_archive',
    'component_problems',
    'default_ip_ranges',
    'parse_deploy_status',
    'security_settings_xml',
]
