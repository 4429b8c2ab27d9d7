"""
Facade base classes — the contract between handlers and the machine.

Handlers only talk to the system through these interfaces, never
directly to subprocess or the filesystem. Each facade has a real
implementation (shelling out through ``CommandRunner``) and an
in-memory fake in ``macsetup.adapters.mock``.

Read methods must be side-effect free. Write methods raise the typed
errors from ``macsetup.core.errors`` on failure.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Literal

PackageKind = Literal["formula", "cask"]


class PackageManager(ABC):
    """Homebrew-style package manager."""

    @abstractmethod
    def is_manager_present(self) -> bool:
        """Whether the manager binary resolves."""

    @abstractmethod
    def install_manager(self) -> None:
        """Install the manager itself. Raises InstallError."""

    @abstractmethod
    def is_installed(self, name: str, kind: PackageKind) -> bool:
        """Whether a formula or cask is installed."""

    @abstractmethod
    def install(self, name: str, kind: PackageKind) -> None:
        """Install a formula or cask. Raises InstallError."""

    @abstractmethod
    def outdated(self) -> list[str]:
        """Names of installed packages with newer versions available."""

    @abstractmethod
    def upgrade(self) -> None:
        """Refresh metadata and upgrade everything outdated."""

    @abstractmethod
    def cleanup_pending(self) -> bool:
        """Whether stale downloads or orphaned dependencies remain."""

    @abstractmethod
    def cleanup(self) -> None:
        """Remove stale downloads and orphaned dependencies."""

    @abstractmethod
    def install_global(self, package: str, via: str) -> None:
        """Install a global CLI package through a language manager (npm)."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"


class ServiceManager(ABC):
    """Background services and processes."""

    @abstractmethod
    def is_running(self, process: str) -> bool:
        """Whether a process with this name is alive."""

    @abstractmethod
    def start(self, service: str) -> None:
        """Start a managed service. Raises ServiceError."""

    @abstractmethod
    def kill_all(self, process: str) -> bool:
        """Kill every process with this name so it relaunches. Best-effort."""


class TextBlockEditor(ABC):
    """Marker-delimited edits to text files."""

    @abstractmethod
    def contains_marker(self, path: str, marker: str) -> bool:
        """Whether the file contains the block's begin marker line."""

    @abstractmethod
    def append_marked_block(self, path: str, marker: str, content: str) -> None:
        """Append a marked block once, creating the file and parents if absent."""

    @abstractmethod
    def contains(self, path: str, text: str) -> bool:
        """Plain substring check. False when the file does not exist."""

    @abstractmethod
    def substitute_once(self, path: str, pattern: str, replacement: str) -> None:
        """Replace the first regex match. Raises BlockWriteError if none."""


class PreferenceStore(ABC):
    """Key-value preference store (macOS ``defaults`` and friends)."""

    @abstractmethod
    def read(self, domain: str, key: str) -> Any | None:
        """Current value, or None when the key is unset."""

    @abstractmethod
    def write(self, domain: str, key: str, value: Any, value_type: str = "string") -> None:
        """Write a typed value. Raises PreferenceError."""


class VcsConfig(ABC):
    """Global version-control configuration."""

    @abstractmethod
    def get_global(self, key: str) -> str | None:
        """Configured value, or None when unset."""

    @abstractmethod
    def set_global(self, key: str, value: str) -> None:
        """Set a global key. Raises VcsError."""

    @abstractmethod
    def clone(self, repo: str, dest: str) -> None:
        """Clone a repository into ``dest``. Raises VcsError."""


class Prompt(ABC):
    """Interactive input."""

    @abstractmethod
    def ask(self, text: str, default: str = "") -> str:
        """Ask for a value; empty input returns ``default``."""


class SystemFacade(ABC):
    """Host OS queries and one-off system actions."""

    @abstractmethod
    def platform(self) -> str:
        """Kernel name, e.g. ``Darwin``."""

    @abstractmethod
    def machine(self) -> str:
        """CPU architecture, e.g. ``arm64``."""

    @abstractmethod
    def which(self, command: str) -> str | None:
        """Resolve a command on PATH."""

    @abstractmethod
    def login_shell(self) -> str:
        """The current user's login shell."""

    @abstractmethod
    def change_login_shell(self, shell: str) -> None:
        """Change the login shell. Raises InstallError."""

    @abstractmethod
    def is_directory(self, path: str, mode: int | None = None) -> bool:
        """Whether ``path`` is a directory (with exactly ``mode``, if given)."""

    @abstractmethod
    def ensure_directory(self, path: str, mode: int | None = None) -> None:
        """Create a directory with parents and apply ``mode``."""

    @abstractmethod
    def path_exists(self, path: str) -> bool:
        """Whether anything exists at ``path``."""

    @abstractmethod
    def run_installer(self, url: str, args: tuple[str, ...] = ()) -> None:
        """Download and run an installer script. Raises InstallError."""

    @abstractmethod
    def launch_app(self, name: str) -> bool:
        """Open a GUI application in the background. Best-effort."""

    @abstractmethod
    def install_rosetta(self) -> None:
        """Install Rosetta 2. Raises InstallError."""


class SshKeys(ABC):
    """SSH key material."""

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Whether a private key exists at ``path``."""

    @abstractmethod
    def generate(self, path: str, key_type: str, comment: str) -> None:
        """Generate a passphrase-less key pair. Raises InstallError."""

    @abstractmethod
    def add_to_agent(self, path: str) -> bool:
        """Load the key into the agent and keychain. Best-effort."""

    @abstractmethod
    def copy_public_key(self, path: str) -> bool:
        """Copy ``path.pub`` to the clipboard. Best-effort."""


class EditorCli(ABC):
    """Editor command-line shim (VS Code ``code``)."""

    @abstractmethod
    def list_extensions(self) -> list[str]:
        """Installed extension ids."""

    @abstractmethod
    def install_extension(self, extension_id: str) -> None:
        """Install one extension. Raises InstallError."""
