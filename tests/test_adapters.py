"""
Tests for the real adapters — filesystem edits and CLI argument building.

Adapters that shell out are exercised through a scripted runner, so
nothing here calls brew, git or defaults.
"""

from pathlib import Path

import pytest

from macsetup.adapters.editor.vscode import VsCodeCli
from macsetup.adapters.packages.homebrew import HomebrewAdapter, HomebrewSettingsStore
from macsetup.adapters.prompt import NonInteractivePrompt
from macsetup.adapters.shell.command import CommandResult, CommandRunner, format_argv
from macsetup.adapters.shell.filesystem import MarkedBlockEditor, render_block
from macsetup.adapters.system.defaults import DefaultsStore, format_value
from macsetup.adapters.system.services import BrewServicesAdapter
from macsetup.adapters.system.ssh import SshKeyAdapter
from macsetup.adapters.vcs.git import GitConfigAdapter
from macsetup.core.errors import BlockWriteError, InstallError, PreferenceError, ServiceError, VcsError


class ScriptedRunner(CommandRunner):
    """Records argv and answers from a prefix → result table."""

    def __init__(self, responses: dict[str, tuple[int, str]] | None = None, commands: set[str] | None = None):
        super().__init__(extra_paths=())
        self.responses = responses or {}
        self.commands = commands if commands is not None else {"brew", "git", "npm", "code"}
        self.calls: list[list[str]] = []
        self.inputs: list[str | None] = []

    def which(self, command: str) -> str | None:
        return f"/usr/local/bin/{command}" if command in self.commands else None

    def run(self, argv, *, timeout=None, input_text=None, env=None, cwd=None) -> CommandResult:
        argv = [a.rsplit("/", 1)[-1] if i == 0 else a for i, a in enumerate(argv)]
        self.calls.append(argv)
        self.inputs.append(input_text)
        line = " ".join(argv)
        for prefix, (code, out) in self.responses.items():
            if line.startswith(prefix):
                return CommandResult(argv=argv, returncode=code, stdout=out if code == 0 else "", stderr="" if code == 0 else out)
        return CommandResult(argv=argv, returncode=0)


# ── Command runner ───────────────────────────────────────────────────


class TestCommandRunner:
    def test_result_error_text(self):
        failed = CommandResult(argv=["brew", "install", "x"], returncode=1)
        assert failed.error == "brew exited with code 1"
        assert not failed.ok

    def test_missing_binary_is_127(self):
        result = CommandRunner(extra_paths=()).run(["definitely-not-a-real-binary-xyz"])
        assert result.returncode == 127
        assert "command not found" in result.error

    def test_format_argv_quotes(self):
        assert format_argv(["git", "config", "alias.last", "log -1 HEAD"]) == "git config alias.last 'log -1 HEAD'"


# ── Marker blocks on disk ────────────────────────────────────────────


class TestMarkedBlockEditor:
    def test_creates_file_and_parents(self, tmp_path: Path):
        target = tmp_path / "a" / "b" / ".zshrc"
        MarkedBlockEditor().append_marked_block(str(target), "macbook-setup", "alias ll='ls -la'")

        assert target.read_text() == "# >>> macbook-setup >>>\nalias ll='ls -la'\n# <<< macbook-setup <<<\n"

    def test_preserves_existing_content(self, tmp_path: Path):
        target = tmp_path / ".zshrc"
        target.write_text("export EDITOR=vi")
        editor = MarkedBlockEditor()

        editor.append_marked_block(str(target), "macbook-setup", "alias ll='ls -la'\n")
        assert target.read_text().startswith("export EDITOR=vi\n# >>> macbook-setup >>>\n")

    def test_appends_exactly_once(self, tmp_path: Path):
        target = tmp_path / ".zshrc"
        editor = MarkedBlockEditor()
        for _ in range(3):
            editor.append_marked_block(str(target), "macbook-setup", "x=1")

        assert target.read_text().count("# >>> macbook-setup >>>") == 1
        assert editor.contains_marker(str(target), "macbook-setup")

    def test_marker_dedupe_is_exact(self, tmp_path: Path):
        target = tmp_path / "config"
        target.write_text("# >>> macbook-setup-old >>>\n")
        assert not MarkedBlockEditor().contains_marker(str(target), "macbook-setup")

    def test_missing_file_has_no_marker(self, tmp_path: Path):
        assert not MarkedBlockEditor().contains_marker(str(tmp_path / "nope"), "macbook-setup")

    def test_substitute_once(self, tmp_path: Path):
        target = tmp_path / ".zshrc"
        target.write_text("plugins=(git)\nplugins=(other)\n")
        MarkedBlockEditor().substitute_once(str(target), r"plugins=\(", "plugins=(zsh-autosuggestions ")
        assert target.read_text() == "plugins=(zsh-autosuggestions git)\nplugins=(other)\n"

    def test_substitute_without_match(self, tmp_path: Path):
        target = tmp_path / ".zshrc"
        target.write_text("nothing here\n")
        with pytest.raises(BlockWriteError):
            MarkedBlockEditor().substitute_once(str(target), r"plugins=\(", "x")

    def test_block_write_error_is_os_error(self):
        assert issubclass(BlockWriteError, OSError)

    def test_render_empty_content(self):
        assert render_block("m", "") == "# >>> m >>>\n# <<< m <<<\n"


# ── Homebrew ─────────────────────────────────────────────────────────


class TestHomebrewAdapter:
    def test_is_installed_parses_list(self):
        runner = ScriptedRunner({"brew list --formula": (0, "git\nhtop\npython@3.12\n")})
        brew = HomebrewAdapter(runner)
        assert brew.is_installed("python@3.12", "formula")
        assert not brew.is_installed("python", "formula")
        assert runner.calls[0] == ["brew", "list", "--formula", "-1"]

    def test_install_cask(self):
        runner = ScriptedRunner()
        HomebrewAdapter(runner).install("iterm2", "cask")
        assert runner.calls == [["brew", "install", "--cask", "iterm2"]]

    def test_install_failure_raises(self):
        runner = ScriptedRunner({"brew install htop": (1, "Error: no bottle")})
        with pytest.raises(InstallError, match="no bottle"):
            HomebrewAdapter(runner).install("htop", "formula")

    def test_manager_absent(self):
        brew = HomebrewAdapter(ScriptedRunner(commands=set()))
        assert not brew.is_manager_present()
        with pytest.raises(InstallError):
            brew.install("htop", "formula")

    def test_install_manager_runs_script_noninteractive(self):
        runner = ScriptedRunner({"curl": (0, "echo installing")})
        HomebrewAdapter(runner).install_manager()
        assert runner.calls[1] == ["bash", "-c", "echo installing"]

    def test_upgrade_updates_first(self):
        runner = ScriptedRunner()
        HomebrewAdapter(runner).upgrade()
        assert runner.calls == [["brew", "update"], ["brew", "upgrade"]]

    def test_cleanup_pending(self):
        runner = ScriptedRunner({"brew autoremove --dry-run": (0, "==> Would autoremove 2 unneeded formulae\n")})
        assert HomebrewAdapter(runner).cleanup_pending()

    def test_outdated(self):
        runner = ScriptedRunner({"brew outdated": (0, "git\nnode\n")})
        assert HomebrewAdapter(runner).outdated() == ["git", "node"]

    def test_install_global_npm(self):
        runner = ScriptedRunner()
        HomebrewAdapter(runner).install_global("@anthropic-ai/claude-code", via="npm")
        assert runner.calls == [["npm", "install", "-g", "@anthropic-ai/claude-code"]]

    def test_install_global_without_npm(self):
        runner = ScriptedRunner(commands={"brew"})
        with pytest.raises(InstallError, match="npm"):
            HomebrewAdapter(runner).install_global("x", via="npm")


class TestHomebrewSettingsStore:
    def test_analytics_state(self):
        runner = ScriptedRunner({"brew analytics state": (0, "InfluxDB analytics are disabled.\n")})
        assert HomebrewSettingsStore(runner).read("", "analytics") is False

    def test_analytics_off(self):
        runner = ScriptedRunner()
        HomebrewSettingsStore(runner).write("", "analytics", False, "bool")
        assert runner.calls == [["brew", "analytics", "off"]]

    def test_unknown_key(self):
        with pytest.raises(PreferenceError):
            HomebrewSettingsStore(ScriptedRunner()).write("", "colour", "x")


# ── OS preferences, services, git, ssh, editor ───────────────────────


class TestDefaultsStore:
    def test_write_bool(self):
        runner = ScriptedRunner()
        DefaultsStore(runner).write("com.apple.finder", "ShowPathbar", True, "bool")
        assert runner.calls == [["defaults", "write", "com.apple.finder", "ShowPathbar", "-bool", "true"]]

    def test_read_missing_key_is_none(self):
        runner = ScriptedRunner({"defaults read": (1, "does not exist")})
        assert DefaultsStore(runner).read("com.apple.finder", "Nope") is None

    def test_read_strips(self):
        runner = ScriptedRunner({"defaults read": (0, "1\n")})
        assert DefaultsStore(runner).read("com.apple.finder", "ShowPathbar") == "1"

    def test_write_failure(self):
        runner = ScriptedRunner({"defaults write": (1, "Could not write domain")})
        with pytest.raises(PreferenceError):
            DefaultsStore(runner).write("d", "k", 1, "int")

    def test_format_value(self):
        assert format_value(False, "bool") == "false"
        assert format_value(0, "int") == "0"


class TestBrewServicesAdapter:
    def test_is_running_uses_pgrep(self):
        runner = ScriptedRunner({"pgrep redis-server": (1, "")})
        assert not BrewServicesAdapter(runner).is_running("redis-server")

    def test_start(self):
        runner = ScriptedRunner()
        BrewServicesAdapter(runner).start("postgresql@16")
        assert runner.calls == [["brew", "services", "start", "postgresql@16"]]

    def test_start_failure(self):
        runner = ScriptedRunner({"brew services start": (1, "Error: unknown service")})
        with pytest.raises(ServiceError):
            BrewServicesAdapter(runner).start("nope")

    def test_kill_all_is_best_effort(self):
        runner = ScriptedRunner({"killall": (1, "No matching processes")})
        assert BrewServicesAdapter(runner).kill_all("Finder") is False


class TestGitConfigAdapter:
    def test_unset_key_is_none(self):
        runner = ScriptedRunner({"git config --global --get": (1, "")})
        assert GitConfigAdapter(runner).get_global("user.email") is None

    def test_set(self):
        runner = ScriptedRunner()
        GitConfigAdapter(runner).set_global("alias.st", "status")
        assert runner.calls == [["git", "config", "--global", "alias.st", "status"]]

    def test_missing_git(self):
        with pytest.raises(VcsError):
            GitConfigAdapter(ScriptedRunner(commands=set())).get_global("user.name")

    def test_clone_creates_parent(self, tmp_path: Path):
        runner = ScriptedRunner()
        dest = tmp_path / "custom" / "plugins" / "zsh-completions"
        GitConfigAdapter(runner).clone("https://github.com/zsh-users/zsh-completions.git", str(dest))
        assert dest.parent.is_dir()
        assert runner.calls[0][:4] == ["git", "clone", "--depth", "1"]


class TestSshKeyAdapter:
    def test_generate_passphrase_less(self):
        runner = ScriptedRunner()
        SshKeyAdapter(runner).generate("/k", "ed25519", "ada@example.com")
        assert runner.calls == [["ssh-keygen", "-t", "ed25519", "-C", "ada@example.com", "-f", "/k", "-N", ""]]

    def test_copy_public_key(self, tmp_path: Path):
        key = tmp_path / "id_ed25519"
        Path(f"{key}.pub").write_text("ssh-ed25519 AAAA ada@example.com\n")
        runner = ScriptedRunner()

        assert SshKeyAdapter(runner).copy_public_key(str(key))
        assert runner.calls == [["pbcopy"]]
        assert runner.inputs == ["ssh-ed25519 AAAA ada@example.com\n"]

    def test_copy_missing_public_key(self, tmp_path: Path):
        assert not SshKeyAdapter(ScriptedRunner()).copy_public_key(str(tmp_path / "none"))


class TestVsCodeCli:
    def test_list_extensions(self):
        runner = ScriptedRunner({"code --list-extensions": (0, "ms-python.python\ncharliermarsh.ruff\n")})
        assert VsCodeCli(runner).list_extensions() == ["ms-python.python", "charliermarsh.ruff"]

    def test_missing_shim(self):
        with pytest.raises(InstallError, match="'code' CLI not found"):
            VsCodeCli(ScriptedRunner(commands=set())).list_extensions()


class TestPrompts:
    def test_non_interactive_returns_default(self):
        assert NonInteractivePrompt().ask("Git email", default="a@b.c") == "a@b.c"
        assert NonInteractivePrompt().ask("Git email") == ""
