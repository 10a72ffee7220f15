"""Scratch environment lifecycle: create, inspect, tear down."""

from .models import (
    CreateScratchParams,
    EnvironmentStatus,
    ProvisionedEnvironment,
    ProvisioningResult,
    RemoveScratchResult,
    ScratchSettings,
)
from .state_machine import InvalidStateTransition, ProvisioningState
from .workflow import ScratchProvisioner, provisioning_poll_policy

__all__ = [
    'CreateScratchParams',
    'EnvironmentStatus',
    'InvalidStateTransition',
    'ProvisionedEnvironment',
    'ProvisioningResult',
    'ProvisioningState',
    'RemoveScratchResult',
    'ScratchProvisioner',
    'ScratchSettings',
    'provisioning_poll_policy',
]
