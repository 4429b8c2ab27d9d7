"""
Mock adapters — an in-memory machine behind every facade.

Used in mock mode (``macsetup apply --mock``) and by the tests to run
whole provisioning sequences without touching the host. All fakes share
one ``MockMachine`` so that installing ``node`` makes ``which("node")``
resolve, starting a service makes its process visible, and so on.

Failure injection:
    machine.fail("install:htop")     → the action raises
    machine.ignore("start:redis")    → the action silently does nothing
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from macsetup.adapters.base import (
    EditorCli,
    PackageKind,
    PackageManager,
    PreferenceStore,
    Prompt,
    ServiceManager,
    SshKeys,
    SystemFacade,
    TextBlockEditor,
    VcsConfig,
)
from macsetup.adapters.shell.filesystem import append_text, begin_marker, render_block
from macsetup.core.errors import (
    BlockWriteError,
    InstallError,
    PreferenceError,
    ServiceError,
    VcsError,
)


@dataclass
class MockMachine:
    """Shared state of the simulated workstation."""

    platform: str = "Darwin"
    arch: str = "arm64"
    login_shell: str = "/bin/bash"

    manager_present: bool = False
    formulas: set[str] = field(default_factory=set)
    casks: set[str] = field(default_factory=set)
    outdated: set[str] = field(default_factory=set)
    cleanup_pending: bool = False
    npm_packages: set[str] = field(default_factory=set)

    processes: set[str] = field(default_factory=set)
    commands: set[str] = field(default_factory=set)
    files: dict[str, str] = field(default_factory=dict)
    dirs: dict[str, int | None] = field(default_factory=dict)
    prefs: dict[tuple[str, str], Any] = field(default_factory=dict)
    git: dict[str, str] = field(default_factory=dict)
    extensions: set[str] = field(default_factory=set)

    # What an install makes visible: package/service/app/url → command, process or path
    provides: dict[str, str] = field(default_factory=dict)
    # Files an installer script writes: url → {path: content}
    installer_files: dict[str, dict[str, str]] = field(default_factory=dict)

    failures: set[str] = field(default_factory=set)
    ignored: set[str] = field(default_factory=set)
    calls: list[str] = field(default_factory=list)
    killed: list[str] = field(default_factory=list)
    clipboard: str = ""

    def fail(self, key: str) -> None:
        self.failures.add(key)

    def ignore(self, key: str) -> None:
        self.ignored.add(key)

    def act(self, key: str, error: type[Exception] = InstallError) -> bool:
        """Record a mutating call. False means "pretend it worked, change nothing"."""
        self.calls.append(key)
        if key in self.failures:
            raise error(f"[mock] {key} failed")
        return key not in self.ignored

    def called(self, prefix: str) -> list[str]:
        return [c for c in self.calls if c.startswith(prefix)]


class MockPackageManager(PackageManager):
    def __init__(self, machine: MockMachine):
        self.machine = machine

    def is_manager_present(self) -> bool:
        return self.machine.manager_present

    def install_manager(self) -> None:
        if self.machine.act("manager"):
            self.machine.manager_present = True
            self.machine.commands.add("brew")

    def is_installed(self, name: str, kind: PackageKind) -> bool:
        installed = self.machine.casks if kind == "cask" else self.machine.formulas
        return name in installed

    def install(self, name: str, kind: PackageKind) -> None:
        if not self.machine.act(f"install:{name}"):
            return
        if kind == "cask":
            self.machine.casks.add(name)
        else:
            self.machine.formulas.add(name)
            self.machine.commands.add(self.machine.provides.get(name, name.split("@", 1)[0]))

    def outdated(self) -> list[str]:
        return sorted(self.machine.outdated)

    def upgrade(self) -> None:
        if self.machine.act("upgrade"):
            self.machine.outdated.clear()

    def cleanup_pending(self) -> bool:
        return self.machine.cleanup_pending

    def cleanup(self) -> None:
        if self.machine.act("cleanup"):
            self.machine.cleanup_pending = False

    def install_global(self, package: str, via: str) -> None:
        if not self.machine.act(f"global:{package}"):
            return
        self.machine.npm_packages.add(package)
        self.machine.commands.add(self.machine.provides.get(package, package.rsplit("/", 1)[-1]))


class MockServiceManager(ServiceManager):
    def __init__(self, machine: MockMachine):
        self.machine = machine

    def is_running(self, process: str) -> bool:
        return process in self.machine.processes

    def start(self, service: str) -> None:
        if self.machine.act(f"start:{service}", ServiceError):
            self.machine.processes.add(self.machine.provides.get(service, service.split("@", 1)[0]))

    def kill_all(self, process: str) -> bool:
        self.machine.killed.append(process)
        return True


class MockTextBlockEditor(TextBlockEditor):
    def __init__(self, machine: MockMachine):
        self.machine = machine

    def contains(self, path: str, text: str) -> bool:
        return text in self.machine.files.get(path, "")

    def contains_marker(self, path: str, marker: str) -> bool:
        return self.contains(path, begin_marker(marker))

    def append_marked_block(self, path: str, marker: str, content: str) -> None:
        if not self.machine.act(f"block:{path}", BlockWriteError):
            return
        existing = self.machine.files.get(path, "")
        if begin_marker(marker) in existing:
            return
        self.machine.files[path] = existing + append_text(existing, render_block(marker, content))

    def substitute_once(self, path: str, pattern: str, replacement: str) -> None:
        if not self.machine.act(f"edit:{path}", BlockWriteError):
            return
        updated, count = re.subn(pattern, replacement, self.machine.files.get(path, ""), count=1)
        if count == 0:
            raise BlockWriteError(f"Pattern {pattern!r} not found in {path}")
        self.machine.files[path] = updated


class MockPreferenceStore(PreferenceStore):
    def __init__(self, machine: MockMachine, name: str = "defaults"):
        self.machine = machine
        self.name = name

    def read(self, domain: str, key: str) -> Any | None:
        return self.machine.prefs.get((f"{self.name}:{domain}", key))

    def write(self, domain: str, key: str, value: Any, value_type: str = "string") -> None:
        if self.machine.act(f"write:{domain}:{key}", PreferenceError):
            self.machine.prefs[(f"{self.name}:{domain}", key)] = value


class MockVcsConfig(VcsConfig):
    def __init__(self, machine: MockMachine):
        self.machine = machine

    def get_global(self, key: str) -> str | None:
        return self.machine.git.get(key) or None

    def set_global(self, key: str, value: str) -> None:
        if self.machine.act(f"git:{key}", VcsError):
            self.machine.git[key] = value

    def clone(self, repo: str, dest: str) -> None:
        if self.machine.act(f"clone:{repo}", VcsError):
            self.machine.dirs[dest] = None


class ScriptedPrompt(Prompt):
    """Answers from a mapping of prompt text → answer; unknown prompts get ''."""

    def __init__(self, answers: dict[str, str] | None = None):
        self.answers = dict(answers or {})
        self.asked: list[tuple[str, str]] = []

    def ask(self, text: str, default: str = "") -> str:
        self.asked.append((text, default))
        return self.answers.get(text, "").strip() or default


class MockSystem(SystemFacade):
    def __init__(self, machine: MockMachine):
        self.host = machine

    def platform(self) -> str:
        return self.host.platform

    def machine(self) -> str:
        return self.host.arch

    def which(self, command: str) -> str | None:
        if command in self.host.commands:
            return f"/opt/homebrew/bin/{command}"
        return None

    def login_shell(self) -> str:
        return self.host.login_shell

    def change_login_shell(self, shell: str) -> None:
        if self.host.act(f"chsh:{shell}"):
            self.host.login_shell = shell

    def is_directory(self, path: str, mode: int | None = None) -> bool:
        if path not in self.host.dirs:
            return False
        return mode is None or self.host.dirs[path] == mode

    def ensure_directory(self, path: str, mode: int | None = None) -> None:
        if self.host.act(f"mkdir:{path}", BlockWriteError):
            self.host.dirs[path] = mode

    def path_exists(self, path: str) -> bool:
        return path in self.host.dirs or path in self.host.files

    def run_installer(self, url: str, args: tuple[str, ...] = ()) -> None:
        if not self.host.act(f"installer:{url}"):
            return
        if url in self.host.provides:
            self.host.dirs[self.host.provides[url]] = None
        for path, content in self.host.installer_files.get(url, {}).items():
            self.host.files.setdefault(path, content)

    def launch_app(self, name: str) -> bool:
        if self.host.act(f"open:{name}") and name in self.host.provides:
            self.host.commands.add(self.host.provides[name])
        return True

    def install_rosetta(self) -> None:
        if self.host.act("rosetta"):
            self.host.processes.add("oahd")


class MockSshKeys(SshKeys):
    def __init__(self, machine: MockMachine):
        self.machine = machine
        self.comments: dict[str, str] = {}

    def exists(self, path: str) -> bool:
        return path in self.machine.files

    def generate(self, path: str, key_type: str, comment: str) -> None:
        if not self.machine.act(f"keygen:{path}"):
            return
        self.comments[path] = comment
        self.machine.files[path] = f"[mock {key_type} private key]"
        self.machine.files[f"{path}.pub"] = f"ssh-{key_type} AAAAmock {comment}\n"

    def add_to_agent(self, path: str) -> bool:
        self.machine.calls.append(f"ssh-add:{path}")
        return True

    def copy_public_key(self, path: str) -> bool:
        self.machine.clipboard = self.machine.files.get(f"{path}.pub", "")
        return bool(self.machine.clipboard)


class MockEditorCli(EditorCli):
    def __init__(self, machine: MockMachine, command: str = "code"):
        self.machine = machine
        self.command = command

    def list_extensions(self) -> list[str]:
        if self.command not in self.machine.commands:
            raise InstallError(f"'{self.command}' CLI not found on PATH")
        return sorted(self.machine.extensions)

    def install_extension(self, extension_id: str) -> None:
        if self.machine.act(f"extension:{extension_id}"):
            self.machine.extensions.add(extension_id)
