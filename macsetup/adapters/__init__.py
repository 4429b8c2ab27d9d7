"""Adapters — facades over Homebrew, the OS, git and the terminal.

Public re-exports for convenient access.
"""

from macsetup.adapters.base import (
    EditorCli,
    PackageManager,
    PreferenceStore,
    Prompt,
    ServiceManager,
    SshKeys,
    SystemFacade,
    TextBlockEditor,
    VcsConfig,
)
from macsetup.adapters.registry import Toolbox, build_mock_toolbox, build_toolbox

__all__ = [
    "EditorCli",
    "PackageManager",
    "PreferenceStore",
    "Prompt",
    "ServiceManager",
    "SshKeys",
    "SystemFacade",
    "TextBlockEditor",
    "Toolbox",
    "VcsConfig",
    "build_mock_toolbox",
    "build_toolbox",
]
