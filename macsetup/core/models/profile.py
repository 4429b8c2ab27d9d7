"""
Profile model — what a workstation should look like.

Loaded from profile.yml, this is the static configuration data the
declaration builder turns into an ordered resource sequence. Nothing
here touches the system.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

ValueType = Literal["bool", "int", "float", "string"]


class ServiceEntry(BaseModel):
    """A background service started through the package manager."""

    name: str
    process: str = ""           # defaults to the service name

    @property
    def process_name(self) -> str:
        return self.process or self.name.split("@", 1)[0]


class CliEntry(BaseModel):
    """A global CLI installed through npm."""

    command: str
    package: str
    requires: list[str] = Field(default_factory=list)


class PreferenceEntry(BaseModel):
    """One OS preference written with ``defaults write``."""

    domain: str = ""
    key: str
    type: ValueType = "string"
    value: Any
    restart: str | None = None


class ItermSettings(BaseModel):
    domain: str = "com.googlecode.iterm2"
    settings: list[PreferenceEntry] = Field(default_factory=list)


class HomebrewSettings(BaseModel):
    analytics: bool = False
    upgrade: bool = True
    cleanup: bool = True
    shellenv_file: str = "~/.zprofile"
    install_retries: int = Field(default=0, ge=0)   # extra attempts per install


class GitSettings(BaseModel):
    name: str = ""              # proposed default when nothing is configured
    email: str = ""
    settings: dict[str, str] = Field(default_factory=dict)
    aliases: dict[str, str] = Field(default_factory=dict)


class ShellSettings(BaseModel):
    login_shell: str = "/bin/zsh"
    rc_file: str = "~/.zshrc"
    oh_my_zsh_url: str = "https://raw.githubusercontent.com/ohmyzsh/ohmyzsh/master/tools/install.sh"
    oh_my_zsh_dir: str = "~/.oh-my-zsh"
    plugins: list[str] = Field(default_factory=list)    # GitHub "owner/repo"
    plugins_line: str = ""
    rc_block: str = ""


class SshSettings(BaseModel):
    key_path: str = "~/.ssh/id_ed25519"
    key_type: str = "ed25519"
    default_comment: str = "user@example.com"
    config_path: str = "~/.ssh/config"
    config_block: str = ""


class EditorSettings(BaseModel):
    app: str = "Visual Studio Code"
    command: str = "code"
    extensions: list[str] = Field(default_factory=list)
    attempts: int = Field(default=15, ge=1)
    delay: float = Field(default=2.0, ge=0)


class Profile(BaseModel):
    """Root profile — loaded from profile.yml.

    Package lists are plain data; ordering between sections is decided
    by the declaration builder, not by the profile.
    """

    version: int = 1
    name: str = "default"
    marker: str = "macbook-setup"
    platform: str = "Darwin"

    homebrew: HomebrewSettings = Field(default_factory=HomebrewSettings)
    formulas: list[str] = Field(default_factory=list)
    casks: list[str] = Field(default_factory=list)
    services: list[ServiceEntry] = Field(default_factory=list)
    clis: list[CliEntry] = Field(default_factory=list)

    iterm: ItermSettings = Field(default_factory=ItermSettings)
    preferences: list[PreferenceEntry] = Field(default_factory=list)
    screenshots_dir: str | None = "~/Screenshots"

    shell: ShellSettings = Field(default_factory=ShellSettings)
    git: GitSettings = Field(default_factory=GitSettings)
    ssh: SshSettings = Field(default_factory=SshSettings)
    editor: EditorSettings = Field(default_factory=EditorSettings)

    notes: list[str] = Field(default_factory=list)
