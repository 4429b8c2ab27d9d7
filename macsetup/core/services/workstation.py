"""
Workstation builder — turns a Profile into the ordered declaration list.

Order encodes dependencies: the platform check and the package manager
come first, shell files are edited after oh-my-zsh has written its own
``~/.zshrc``, the SSH key is generated after the git email is known,
and cleanup runs last. Nothing is reordered afterwards.

The builder reads the machine in two places only: the CPU architecture
(Rosetta and the Homebrew shellenv line are Apple Silicon only) and the
iTerm2 custom-preferences folder, which decides where iTerm settings
are written.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from macsetup.adapters.registry import Toolbox
from macsetup.core.engine.handlers import coerce_value
from macsetup.core.engine.registry import ResourceRegistry
from macsetup.core.models.declaration import (
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
    ResourceDeclaration,
    ResourceKind,
    RosettaSpec,
    ServiceSpec,
    ShellSpec,
    SshKeySpec,
)
from macsetup.core.models.profile import PreferenceEntry, Profile

logger = logging.getLogger(__name__)

APPLE_SILICON = "arm64"
HOMEBREW_SHELLENV = 'eval "$(/opt/homebrew/bin/brew shellenv)"'

GIT_NAME_ID = "git:user.name"
GIT_EMAIL_ID = "git:user.email"


def expand(path: str) -> str:
    return str(Path(path).expanduser())


def build_declarations(profile: Profile, toolbox: Toolbox) -> ResourceRegistry:
    """Build the full provisioning sequence for ``profile``.

    Args:
        profile: What the workstation should look like.
        toolbox: Used for the two read-only lookups described above.

    Returns:
        A registry holding every declaration in execution order.
    """
    registry = ResourceRegistry()
    arm64 = toolbox.system.machine() == APPLE_SILICON

    _add_system(registry, profile, arm64)
    _add_homebrew(registry, profile, arm64)
    _add_packages(registry, profile)
    _add_iterm(registry, profile, toolbox)
    _add_clis(registry, profile)
    _add_shell(registry, profile)
    _add_preferences(registry, profile)
    _add_git(registry, profile)
    _add_ssh(registry, profile)
    _add_editor(registry, profile)

    if profile.homebrew.cleanup:
        registry.register(ResourceDeclaration(
            id="homebrew:cleanup",
            kind=ResourceKind.PACKAGES_CLEAN,
            description="Clean Homebrew caches and orphaned dependencies",
        ))

    logger.info("Built %d declarations for profile '%s'", len(registry), profile.name)
    return registry


# ── Sections ────────────────────────────────────────────────────


def _add_system(registry: ResourceRegistry, profile: Profile, arm64: bool) -> None:
    registry.register(ResourceDeclaration(
        id="platform",
        kind=ResourceKind.PLATFORM,
        desired=PlatformSpec(system=profile.platform),
        critical=True,
        description=f"Running on {profile.platform}",
    ))
    if arm64:
        registry.register(ResourceDeclaration(
            id="rosetta",
            kind=ResourceKind.ROSETTA,
            desired=RosettaSpec(),
            description="Rosetta 2",
        ))


def _add_homebrew(registry: ResourceRegistry, profile: Profile, arm64: bool) -> None:
    settings = profile.homebrew
    registry.register(ResourceDeclaration(
        id="homebrew",
        kind=ResourceKind.PACKAGE_MANAGER,
        desired=ManagerSpec(),
        critical=True,
        description="Homebrew",
    ))
    if arm64:
        registry.register(ResourceDeclaration(
            id="homebrew:shellenv",
            kind=ResourceKind.FILE_BLOCK,
            desired=FileBlockSpec(
                path=expand(settings.shellenv_file),
                marker=profile.marker,
                content=HOMEBREW_SHELLENV,
            ),
            description=f"Homebrew on PATH in {settings.shellenv_file}",
        ))
    registry.register(ResourceDeclaration(
        id="homebrew:analytics",
        kind=ResourceKind.CONFIG_KEY,
        desired=ConfigKeySpec(
            store="homebrew",
            key="analytics",
            value=settings.analytics,
            value_type="bool",
        ),
        description=f"Homebrew analytics {'on' if settings.analytics else 'off'}",
    ))
    if settings.upgrade:
        registry.register(ResourceDeclaration(
            id="homebrew:upgrade",
            kind=ResourceKind.PACKAGES_CURRENT,
            description="Homebrew packages up to date",
        ))


def _add_packages(registry: ResourceRegistry, profile: Profile) -> None:
    for name in profile.formulas:
        registry.register(ResourceDeclaration(
            id=f"formula:{name}",
            kind=ResourceKind.FORMULA,
            desired=PackageSpec(name=name),
            retries=profile.homebrew.install_retries,
        ))

    for service in profile.services:
        requires = (f"formula:{service.name}",) if service.name in profile.formulas else ()
        registry.register(ResourceDeclaration(
            id=f"service:{service.name}",
            kind=ResourceKind.SERVICE_RUNNING,
            desired=ServiceSpec(name=service.name, process=service.process_name),
            requires=requires,
            description=f"{service.name} running",
        ))

    for name in profile.casks:
        registry.register(ResourceDeclaration(
            id=f"cask:{name}",
            kind=ResourceKind.CASK,
            desired=PackageSpec(name=name),
            retries=profile.homebrew.install_retries,
        ))


def iterm_target(domain: str, toolbox: Toolbox) -> str:
    """Where iTerm2 settings go: a custom prefs plist when one is in use."""
    store = toolbox.preference_store("defaults")
    if not coerce_value(store.read(domain, "LoadPrefsFromCustomFolder"), "bool"):
        return domain

    folder = store.read(domain, "PrefsCustomFolder")
    if folder and toolbox.system.is_directory(expand(str(folder))):
        target = f"{expand(str(folder))}/{domain}.plist"
        logger.info("Using iTerm2 custom prefs at %s", target)
        return target
    return domain


def _add_iterm(registry: ResourceRegistry, profile: Profile, toolbox: Toolbox) -> None:
    if not profile.iterm.settings:
        return
    target = iterm_target(profile.iterm.domain, toolbox)
    for entry in profile.iterm.settings:
        registry.register(_preference(entry, domain=target, resource_id=f"iterm:{entry.key}"))


def _add_clis(registry: ResourceRegistry, profile: Profile) -> None:
    for cli in profile.clis:
        registry.register(ResourceDeclaration(
            id=f"cli:{cli.command}",
            kind=ResourceKind.EXTERNAL_CLI,
            desired=ExternalCliSpec(command=cli.command, installer="npm", package=cli.package),
            requires=tuple(cli.requires),
            retries=profile.homebrew.install_retries,
            description=f"{cli.command} CLI",
        ))


def _add_shell(registry: ResourceRegistry, profile: Profile) -> None:
    shell = profile.shell
    omz_dir = expand(shell.oh_my_zsh_dir)
    rc_file = expand(shell.rc_file)
    custom = os.environ.get("ZSH_CUSTOM") or f"{omz_dir}/custom"

    registry.register(ResourceDeclaration(
        id="oh-my-zsh",
        kind=ResourceKind.INSTALLER_SCRIPT,
        desired=InstallerScriptSpec(url=shell.oh_my_zsh_url, creates=omz_dir, args=("--unattended",)),
        description="oh-my-zsh",
    ))

    plugin_ids = []
    for repo in shell.plugins:
        name = repo.rsplit("/", 1)[-1]
        plugin_ids.append(f"zsh-plugin:{name}")
        registry.register(ResourceDeclaration(
            id=f"zsh-plugin:{name}",
            kind=ResourceKind.GIT_CLONE,
            desired=GitCloneSpec(repo=f"https://github.com/{repo}.git", dest=f"{custom}/plugins/{name}"),
            requires=("oh-my-zsh",),
        ))

    if shell.plugins and shell.plugins_line:
        first = shell.plugins[0].rsplit("/", 1)[-1]
        registry.register(ResourceDeclaration(
            id="zshrc:plugins",
            kind=ResourceKind.LINE_EDIT,
            desired=LineEditSpec(
                path=rc_file,
                contains=first,
                pattern=r"plugins=\(",
                replacement="plugins=(" + shell.plugins_line,
            ),
            requires=("oh-my-zsh",),
            description="zsh plugins enabled",
        ))

    if shell.rc_block:
        registry.register(ResourceDeclaration(
            id="zshrc:block",
            kind=ResourceKind.FILE_BLOCK,
            desired=FileBlockSpec(path=rc_file, marker=profile.marker, content=shell.rc_block),
            description=f"Setup block in {shell.rc_file}",
        ))

    registry.register(ResourceDeclaration(
        id="login-shell",
        kind=ResourceKind.SHELL_DEFAULT_CHANGE,
        desired=ShellSpec(shell=shell.login_shell),
        description=f"Login shell {shell.login_shell}",
    ))


def _preference(
    entry: PreferenceEntry,
    domain: str | None = None,
    resource_id: str | None = None,
    requires: tuple[str, ...] = (),
) -> ResourceDeclaration:
    domain = domain or entry.domain
    return ResourceDeclaration(
        id=resource_id or f"defaults:{domain}:{entry.key}",
        kind=ResourceKind.CONFIG_KEY,
        desired=ConfigKeySpec(
            store="defaults",
            domain=domain,
            key=entry.key,
            value=entry.value,
            value_type=entry.type,
            restart=entry.restart,
        ),
        requires=requires,
        description=f"{domain} {entry.key} = {entry.value}",
    )


def _add_preferences(registry: ResourceRegistry, profile: Profile) -> None:
    if profile.screenshots_dir:
        path = expand(profile.screenshots_dir)
        registry.register(ResourceDeclaration(
            id="directory:screenshots",
            kind=ResourceKind.DIRECTORY,
            desired=DirectorySpec(path=path),
            description=f"{profile.screenshots_dir} exists",
        ))
        registry.register(_preference(
            PreferenceEntry(
                domain="com.apple.screencapture",
                key="location",
                value=path,
                restart="SystemUIServer",
            ),
            requires=("directory:screenshots",),
        ))

    for entry in profile.preferences:
        registry.register(_preference(entry))


def _add_git(registry: ResourceRegistry, profile: Profile) -> None:
    git = profile.git
    for resource_id, key, prompt, default in (
        (GIT_NAME_ID, "user.name", "Git user name", git.name),
        (GIT_EMAIL_ID, "user.email", "Git email", git.email),
    ):
        registry.register(ResourceDeclaration(
            id=resource_id,
            kind=ResourceKind.CONFIG_KEY,
            desired=ConfigKeySpec(store="git", key=key, value=default or None, prompt=prompt),
            description=f"git {key}",
        ))

    identity = (GIT_NAME_ID, GIT_EMAIL_ID)
    settings = dict(git.settings)
    settings.update({f"alias.{name}": command for name, command in git.aliases.items()})
    for key, value in settings.items():
        registry.register(ResourceDeclaration(
            id=f"git:{key}",
            kind=ResourceKind.CONFIG_KEY,
            desired=ConfigKeySpec(store="git", key=key, value=str(value)),
            requires=identity,
        ))


def _add_ssh(registry: ResourceRegistry, profile: Profile) -> None:
    ssh = profile.ssh
    key_path = expand(ssh.key_path)

    registry.register(ResourceDeclaration(
        id="directory:ssh",
        kind=ResourceKind.DIRECTORY,
        desired=DirectorySpec(path=str(Path(key_path).parent), mode=0o700),
        description="~/.ssh with mode 0700",
    ))
    registry.register(ResourceDeclaration(
        id="ssh-key",
        kind=ResourceKind.SSH_KEY,
        desired=SshKeySpec(
            path=key_path,
            key_type=ssh.key_type,
            comment_from=GIT_EMAIL_ID,
            default_comment=ssh.default_comment,
        ),
        requires=("directory:ssh",),
        description=f"SSH key {ssh.key_path}",
    ))
    if ssh.config_block:
        registry.register(ResourceDeclaration(
            id="ssh-config",
            kind=ResourceKind.FILE_BLOCK,
            desired=FileBlockSpec(path=expand(ssh.config_path), marker=profile.marker, content=ssh.config_block),
            requires=("directory:ssh",),
            description=f"Setup block in {ssh.config_path}",
        ))


def _add_editor(registry: ResourceRegistry, profile: Profile) -> None:
    editor = profile.editor
    if not editor.extensions:
        return

    cli_id = f"cli:{editor.command}"
    registry.register(ResourceDeclaration(
        id=cli_id,
        kind=ResourceKind.EXTERNAL_CLI,
        desired=ExternalCliSpec(
            command=editor.command,
            installer="app",
            app=editor.app,
            attempts=editor.attempts,
            delay=editor.delay,
        ),
        description=f"{editor.app} '{editor.command}' command",
    ))
    for extension in editor.extensions:
        registry.register(ResourceDeclaration(
            id=f"extension:{extension}",
            kind=ResourceKind.EDITOR_EXTENSION,
            desired=ExtensionSpec(id=extension),
            requires=(cli_id,),
        ))
