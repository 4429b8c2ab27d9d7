"""
Tests for the workstation builder and whole-profile runs on the mock machine.
"""

from pathlib import Path

import pytest

from macsetup.adapters.mock import MockMachine, ScriptedPrompt
from macsetup.adapters.registry import build_mock_toolbox
from macsetup.core.config.loader import load_profile
from macsetup.core.engine.reconciler import Reconciler
from macsetup.core.errors import CriticalResourceFailure
from macsetup.core.models.declaration import ApplyStatus, ResourceKind
from macsetup.core.models.report import RunStatus
from macsetup.core.services.workstation import build_declarations, iterm_target


def _ids(registry) -> list[str]:
    return [d.id for d in registry.declarations()]


# ── Declaration order ────────────────────────────────────────────────


class TestBuildDeclarations:
    def test_platform_and_manager_first_and_critical(self, small_profile, profile_toolbox):
        registry = build_declarations(small_profile, profile_toolbox)
        declarations = registry.declarations()

        assert declarations[0].id == "platform"
        assert declarations[0].critical is True
        assert registry.get("homebrew").critical is True
        critical = [d.id for d in declarations if d.critical]
        assert critical == ["platform", "homebrew"]

    def test_section_order(self, small_profile, profile_toolbox):
        ids = _ids(build_declarations(small_profile, profile_toolbox))

        order = [
            "platform",
            "rosetta",
            "homebrew",
            "homebrew:shellenv",
            "homebrew:analytics",
            "homebrew:upgrade",
            "formula:git",
            "service:redis",
            "cask:iterm2",
            "iterm:PromptOnQuit",
            "cli:claude",
            "oh-my-zsh",
            "zsh-plugin:zsh-autosuggestions",
            "zshrc:plugins",
            "zshrc:block",
            "login-shell",
            "directory:screenshots",
            "defaults:com.apple.screencapture:location",
            "defaults:com.apple.finder:ShowPathbar",
            "git:user.name",
            "git:user.email",
            "git:init.defaultBranch",
            "git:alias.st",
            "directory:ssh",
            "ssh-key",
            "ssh-config",
            "cli:code",
            "extension:charliermarsh.ruff",
            "homebrew:cleanup",
        ]
        assert [i for i in ids if i in order] == order
        assert ids[-1] == "homebrew:cleanup"

    def test_intel_skips_rosetta_and_shellenv(self, small_profile):
        toolbox = build_mock_toolbox(small_profile, machine=MockMachine(arch="x86_64"))
        ids = _ids(build_declarations(small_profile, toolbox))
        assert "rosetta" not in ids
        assert "homebrew:shellenv" not in ids

    def test_paths_are_expanded(self, small_profile, profile_toolbox, tmp_path):
        registry = build_declarations(small_profile, profile_toolbox)
        home = str(tmp_path / "home")

        assert registry.get("zshrc:block").desired.path == f"{home}/.zshrc"
        assert registry.get("ssh-key").desired.path == f"{home}/.ssh/id_ed25519"
        assert registry.get("directory:ssh").desired.path == f"{home}/.ssh"
        assert registry.get("directory:ssh").desired.mode == 0o700

    def test_plugin_clone_targets_zsh_custom(self, small_profile, profile_toolbox, monkeypatch):
        monkeypatch.setenv("ZSH_CUSTOM", "/opt/zsh-custom")
        registry = build_declarations(small_profile, profile_toolbox)

        clone = registry.get("zsh-plugin:zsh-autosuggestions").desired
        assert clone.repo == "https://github.com/zsh-users/zsh-autosuggestions.git"
        assert clone.dest == "/opt/zsh-custom/plugins/zsh-autosuggestions"

    def test_dependencies(self, small_profile, profile_toolbox):
        registry = build_declarations(small_profile, profile_toolbox)

        assert registry.get("cli:claude").requires == ("formula:node",)
        assert registry.get("service:redis").requires == ("formula:redis",)
        assert registry.get("git:alias.st").requires == ("git:user.name", "git:user.email")
        assert registry.get("extension:charliermarsh.ruff").requires == ("cli:code",)
        assert registry.get("ssh-key").desired.comment_from == "git:user.email"

    def test_install_retries_from_profile(self, small_profile, profile_toolbox):
        profile = small_profile.model_copy(
            update={"homebrew": small_profile.homebrew.model_copy(update={"install_retries": 2})}
        )
        registry = build_declarations(profile, profile_toolbox)

        assert registry.get("formula:git").retries == 2
        assert registry.get("cask:iterm2").retries == 2
        assert registry.get("cli:claude").retries == 2
        assert registry.get("service:redis").retries == 0
        assert registry.get("homebrew").retries == 0

    def test_git_identity_is_prompt_backed(self, small_profile, profile_toolbox):
        registry = build_declarations(small_profile, profile_toolbox)
        spec = registry.get("git:user.email").desired
        assert spec.store == "git"
        assert spec.prompt == "Git email"

    def test_requires_only_point_backwards(self, small_profile, profile_toolbox):
        registry = build_declarations(small_profile, profile_toolbox)
        seen: set[str] = set()
        for decl in registry.declarations():
            assert set(decl.requires) <= seen, decl.id
            seen.add(decl.id)

    def test_optional_sections_can_be_disabled(self, profile_toolbox):
        from macsetup.core.models.profile import Profile

        profile = Profile.model_validate({
            "homebrew": {"upgrade": False, "cleanup": False},
            "screenshots_dir": None,
            "shell": {"rc_block": ""},
        })
        ids = _ids(build_declarations(profile, profile_toolbox))
        assert "homebrew:upgrade" not in ids
        assert "homebrew:cleanup" not in ids
        assert "directory:screenshots" not in ids
        assert "zshrc:block" not in ids
        assert "cli:code" not in ids

    def test_default_profile_builds(self, profile_toolbox):
        profile = load_profile()
        registry = build_declarations(profile, profile_toolbox)
        kinds = {d.kind for d in registry.declarations()}
        assert kinds == set(ResourceKind)
        assert "formula:postgresql@16" in registry
        assert registry.get("service:postgresql@16").desired.process == "postgres"


class TestItermTarget:
    def test_default_domain(self, toolbox):
        assert iterm_target("com.googlecode.iterm2", toolbox) == "com.googlecode.iterm2"

    def test_custom_folder(self, toolbox, machine):
        domain = "com.googlecode.iterm2"
        machine.prefs[(f"defaults:{domain}", "LoadPrefsFromCustomFolder")] = "1"
        machine.prefs[(f"defaults:{domain}", "PrefsCustomFolder")] = "/Users/ada/dotfiles/iterm"
        machine.dirs["/Users/ada/dotfiles/iterm"] = None

        assert iterm_target(domain, toolbox) == f"/Users/ada/dotfiles/iterm/{domain}.plist"

    def test_custom_folder_missing_falls_back(self, toolbox, machine):
        domain = "com.googlecode.iterm2"
        machine.prefs[(f"defaults:{domain}", "LoadPrefsFromCustomFolder")] = "1"
        machine.prefs[(f"defaults:{domain}", "PrefsCustomFolder")] = "/nowhere"

        assert iterm_target(domain, toolbox) == domain


# ── Whole-profile scenarios ──────────────────────────────────────────


class TestScenarios:
    def _run(self, profile, toolbox):
        return Reconciler(toolbox).run(build_declarations(profile, toolbox))

    def test_fresh_install(self, small_profile, profile_toolbox, machine):
        report = self._run(small_profile, profile_toolbox)

        assert report.status == RunStatus.SUCCESS
        assert report.count(ApplyStatus.FAILED) == 0
        assert report.outcome_for("homebrew").status == ApplyStatus.APPLIED
        assert report.outcome_for("formula:git").status == ApplyStatus.APPLIED
        assert report.outcome_for("service:redis").status == ApplyStatus.APPLIED
        assert report.outcome_for("login-shell").status == ApplyStatus.APPLIED
        assert machine.login_shell == "/bin/zsh"
        assert "redis-server" in machine.processes

    def test_fresh_install_edits_zshrc(self, small_profile, profile_toolbox, machine, tmp_path):
        self._run(small_profile, profile_toolbox)

        zshrc = machine.files[str(tmp_path / "home" / ".zshrc")]
        assert "plugins=(git zsh-autosuggestions git)" in zshrc
        assert zshrc.count("# >>> macbook-setup >>>") == 1
        assert "alias ll='ls -la'" in zshrc

    def test_ssh_comment_comes_from_git_email(self, small_profile, profile_toolbox, tmp_path):
        self._run(small_profile, profile_toolbox)
        key = str(tmp_path / "home" / ".ssh" / "id_ed25519")
        assert profile_toolbox.ssh.comments[key] == "ada@example.com"

    def test_already_configured(self, small_profile, profile_toolbox, machine):
        self._run(small_profile, profile_toolbox)
        calls = list(machine.calls)

        second = self._run(small_profile, profile_toolbox)

        assert set(second.statuses) == {ApplyStatus.ALREADY_SATISFIED}
        assert second.status == RunStatus.SUCCESS
        assert machine.calls == calls

    def test_second_run_does_not_prompt(self, small_profile, profile_toolbox, prompt):
        self._run(small_profile, profile_toolbox)
        asked = len(prompt.asked)
        self._run(small_profile, profile_toolbox)
        assert len(prompt.asked) == asked == 2

    def test_missing_optional_input(self, small_profile, machine, tmp_path):
        toolbox = build_mock_toolbox(small_profile, machine=machine, prompt=ScriptedPrompt())
        report = self._run(small_profile, toolbox)

        assert report.outcome_for("git:user.name").status == ApplyStatus.SKIPPED
        assert report.outcome_for("git:user.email").status == ApplyStatus.SKIPPED
        assert report.outcome_for("git:alias.st").status == ApplyStatus.SKIPPED
        assert report.outcome_for("ssh-key").status == ApplyStatus.APPLIED
        assert report.status == RunStatus.PARTIAL_SUCCESS
        assert report.failed_ids == []

        key = str(tmp_path / "home" / ".ssh" / "id_ed25519")
        assert toolbox.ssh.comments[key] == small_profile.ssh.default_comment

    def test_unsupported_platform_aborts(self, small_profile):
        machine = MockMachine(platform="Linux")
        toolbox = build_mock_toolbox(small_profile, machine=machine)

        with pytest.raises(CriticalResourceFailure) as exc_info:
            self._run(small_profile, toolbox)

        report = exc_info.value.report
        assert [e.declaration.id for e in report.entries] == ["platform"]
        assert report.status == RunStatus.ABORTED
        assert machine.calls == []

    def test_best_effort_cask_failure(self, small_profile, profile_toolbox, machine):
        machine.fail("install:iterm2")
        report = self._run(small_profile, profile_toolbox)

        assert report.failed_ids == ["cask:iterm2"]
        assert report.outcome_for("cli:claude").status == ApplyStatus.APPLIED
        assert report.status == RunStatus.PARTIAL_SUCCESS

    def test_failing_cask_is_retried(self, small_profile, machine, prompt):
        profile = small_profile.model_copy(
            update={"homebrew": small_profile.homebrew.model_copy(update={"install_retries": 2})}
        )
        toolbox = build_mock_toolbox(profile, machine=machine, prompt=prompt)
        machine.fail("install:iterm2")

        report = self._run(profile, toolbox)

        assert report.failed_ids == ["cask:iterm2"]
        assert machine.called("install:iterm2") == ["install:iterm2"] * 3

    def test_editor_shim_never_appears(self, small_profile, profile_toolbox, machine):
        machine.ignore("open:Visual Studio Code")
        report = self._run(small_profile, profile_toolbox)

        assert report.outcome_for("cli:code").status == ApplyStatus.FAILED
        assert report.outcome_for("extension:charliermarsh.ruff").status == ApplyStatus.SKIPPED

    def test_default_profile_fresh_install(self, machine):
        profile = load_profile()
        prompt = ScriptedPrompt({"Git user name": "Ada", "Git email": "ada@example.com"})
        toolbox = build_mock_toolbox(profile, machine=machine, prompt=prompt)

        report = self._run(profile, toolbox)
        assert report.status == RunStatus.SUCCESS, report.summary()
        assert Path(report.outcome_for("directory:screenshots").value).name == "Screenshots"
