"""
Domain models — Pydantic types for hostprep.

All models are re-exported here for convenient access:

    from hostprep.core.models import Step, ExecutionResult, InstallSession
"""

from hostprep.core.models.profile import (
    DockerSettings,
    NodeSettings,
    ProvisionProfile,
    UserSettings,
)
from hostprep.core.models.repo import (
    GitHubOrg,
    GitHubRepo,
    InstallSession,
    PreviousRepo,
    RepoSelection,
)
from hostprep.core.models.step import (
    ExecutionResult,
    ProvisionReport,
    Step,
    StepOutcome,
    VerificationOutcome,
)

__all__ = [
    "DockerSettings",
    "ExecutionResult",
    "GitHubOrg",
    "GitHubRepo",
    "InstallSession",
    "NodeSettings",
    "PreviousRepo",
    "ProvisionProfile",
    "ProvisionReport",
    "RepoSelection",
    "Step",
    "StepOutcome",
    "UserSettings",
    "VerificationOutcome",
]
