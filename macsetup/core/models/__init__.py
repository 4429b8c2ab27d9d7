"""
Domain models — declarations, outcomes, reports and the profile.

All models are re-exported here for convenient access:

    from macsetup.core.models import ResourceDeclaration, ResourceKind, RunReport
"""

from macsetup.core.models.declaration import (
    ApplyOutcome,
    ApplyStatus,
    ConfigKeySpec,
    DirectorySpec,
    ExtensionSpec,
    ExternalCliSpec,
    FileBlockSpec,
    GitCloneSpec,
    InstallerScriptSpec,
    LineEditSpec,
    ManagerSpec,
    PackageSpec,
    PlatformSpec,
    ProbeResult,
    ResourceDeclaration,
    ResourceKind,
    RosettaSpec,
    ServiceSpec,
    ShellSpec,
    SshKeySpec,
)
from macsetup.core.models.profile import Profile
from macsetup.core.models.report import ReportEntry, RunReport, RunStatus

__all__ = [
    # declaration.py
    "ApplyOutcome",
    "ApplyStatus",
    "ConfigKeySpec",
    "DirectorySpec",
    "ExtensionSpec",
    "ExternalCliSpec",
    "FileBlockSpec",
    "GitCloneSpec",
    "InstallerScriptSpec",
    "LineEditSpec",
    "ManagerSpec",
    "PackageSpec",
    "PlatformSpec",
    "ProbeResult",
    # profile.py
    "Profile",
    # report.py
    "ReportEntry",
    "ResourceDeclaration",
    "ResourceKind",
    "RosettaSpec",
    "RunReport",
    "RunStatus",
    "ServiceSpec",
    "ShellSpec",
    "SshKeySpec",
]
