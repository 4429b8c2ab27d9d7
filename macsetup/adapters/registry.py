"""
Toolbox — the set of facades one run talks to.

Handlers never construct adapters themselves; they receive a Toolbox.
``build_toolbox()`` wires the real adapters around one shared
``CommandRunner``; ``build_mock_toolbox()`` wires the in-memory fakes
around one ``MockMachine``.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

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
from macsetup.core.models.profile import Profile

logger = logging.getLogger(__name__)

# What the oh-my-zsh installer leaves in ~/.zshrc, reduced to the lines we edit
OH_MY_ZSH_RC_TEMPLATE = (
    'export ZSH="$HOME/.oh-my-zsh"\n'
    'ZSH_THEME="robbyrussell"\n'
    "plugins=(git)\n"
    "source $ZSH/oh-my-zsh.sh\n"
)


@dataclass
class Toolbox:
    """Facades available to handlers during a run."""

    packages: PackageManager
    services: ServiceManager
    files: TextBlockEditor
    preferences: dict[str, PreferenceStore]
    vcs: VcsConfig
    prompt: Prompt
    system: SystemFacade
    ssh: SshKeys
    editor: EditorCli
    sleep: Callable[[float], None] = field(default=time.sleep)

    def preference_store(self, name: str) -> PreferenceStore:
        """Look up a preference store by name (``defaults``, ``homebrew``)."""
        try:
            return self.preferences[name]
        except KeyError:
            raise KeyError(f"No preference store named '{name}'") from None


def build_toolbox(*, interactive: bool = True, editor_command: str = "code") -> Toolbox:
    """Real adapters for the current host."""
    from macsetup.adapters.editor.vscode import VsCodeCli
    from macsetup.adapters.packages.homebrew import HomebrewAdapter, HomebrewSettingsStore
    from macsetup.adapters.prompt import ClickPrompt, NonInteractivePrompt
    from macsetup.adapters.shell.command import CommandRunner
    from macsetup.adapters.shell.filesystem import MarkedBlockEditor
    from macsetup.adapters.system.defaults import DefaultsStore
    from macsetup.adapters.system.macos import MacSystem
    from macsetup.adapters.system.services import BrewServicesAdapter
    from macsetup.adapters.system.ssh import SshKeyAdapter
    from macsetup.adapters.vcs.git import GitConfigAdapter

    runner = CommandRunner()
    return Toolbox(
        packages=HomebrewAdapter(runner),
        services=BrewServicesAdapter(runner),
        files=MarkedBlockEditor(),
        preferences={
            "defaults": DefaultsStore(runner),
            "homebrew": HomebrewSettingsStore(runner),
        },
        vcs=GitConfigAdapter(runner),
        prompt=ClickPrompt() if interactive else NonInteractivePrompt(),
        system=MacSystem(runner),
        ssh=SshKeyAdapter(runner),
        editor=VsCodeCli(runner, command=editor_command),
    )


def build_mock_toolbox(
    profile: Profile | None = None,
    machine=None,
    prompt: Prompt | None = None,
) -> Toolbox:
    """In-memory fakes. Nothing on the host is read or written.

    With a profile, the fake machine learns what each install provides
    (npm package → command, app → shim, service → process) so a full run
    converges the same way a real one would.
    """
    from macsetup.adapters.mock import (
        MockEditorCli,
        MockMachine,
        MockPackageManager,
        MockPreferenceStore,
        MockServiceManager,
        MockSshKeys,
        MockSystem,
        MockTextBlockEditor,
        MockVcsConfig,
        ScriptedPrompt,
    )

    machine = machine or MockMachine()
    editor_command = "code"
    if profile is not None:
        editor_command = profile.editor.command
        machine.provides.setdefault(profile.editor.app, profile.editor.command)
        machine.provides.setdefault(
            profile.shell.oh_my_zsh_url,
            str(Path(profile.shell.oh_my_zsh_dir).expanduser()),
        )
        machine.installer_files.setdefault(
            profile.shell.oh_my_zsh_url,
            {str(Path(profile.shell.rc_file).expanduser()): OH_MY_ZSH_RC_TEMPLATE},
        )
        for cli in profile.clis:
            machine.provides.setdefault(cli.package, cli.command)
        for service in profile.services:
            machine.provides.setdefault(service.name, service.process_name)

    return Toolbox(
        packages=MockPackageManager(machine),
        services=MockServiceManager(machine),
        files=MockTextBlockEditor(machine),
        preferences={
            "defaults": MockPreferenceStore(machine, "defaults"),
            "homebrew": MockPreferenceStore(machine, "homebrew"),
        },
        vcs=MockVcsConfig(machine),
        prompt=prompt or ScriptedPrompt(),
        system=MockSystem(machine),
        ssh=MockSshKeys(machine),
        editor=MockEditorCli(machine, command=editor_command),
        sleep=lambda _seconds: None,
    )
