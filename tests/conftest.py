"""
Shared test fixtures and configuration.
"""

import logging
from pathlib import Path

import pytest

from macsetup.adapters.mock import MockMachine, ScriptedPrompt
from macsetup.adapters.registry import Toolbox, build_mock_toolbox
from macsetup.core.engine.registry import ResourceRegistry
from macsetup.core.models.declaration import (
    FileBlockSpec,
    ManagerSpec,
    PackageSpec,
    ResourceDeclaration,
    ResourceKind,
)
from macsetup.core.models.profile import Profile


@pytest.fixture(autouse=True)
def isolated_state(tmp_path: Path, monkeypatch) -> Path:
    """Keep the run ledger and profile discovery out of the real home dir."""
    state_dir = tmp_path / "state"
    monkeypatch.setenv("MACSETUP_STATE_DIR", str(state_dir))
    monkeypatch.delenv("MACSETUP_CONFIG", raising=False)
    monkeypatch.delenv("MACSETUP_LOG_LEVEL", raising=False)
    monkeypatch.delenv("MACSETUP_LOG_FILE", raising=False)
    monkeypatch.delenv("MACSETUP_LOG_FILE_LEVEL", raising=False)
    monkeypatch.delenv("ZSH_CUSTOM", raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    return state_dir


@pytest.fixture(autouse=True)
def restore_root_logger():
    """setup_logging() replaces root handlers; put them back after each test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def machine() -> MockMachine:
    """A fresh Apple Silicon Mac with nothing installed."""
    return MockMachine()


@pytest.fixture
def prompt() -> ScriptedPrompt:
    return ScriptedPrompt({"Git user name": "Ada Lovelace", "Git email": "ada@example.com"})


@pytest.fixture
def toolbox(machine: MockMachine, prompt: ScriptedPrompt) -> Toolbox:
    return build_mock_toolbox(machine=machine, prompt=prompt)


@pytest.fixture
def small_profile() -> Profile:
    """A profile touching every section, with short lists."""
    return Profile.model_validate({
        "name": "small",
        "formulas": ["git", "node", "redis"],
        "casks": ["iterm2"],
        "services": [{"name": "redis", "process": "redis-server"}],
        "clis": [{"command": "claude", "package": "@anthropic-ai/claude-code", "requires": ["formula:node"]}],
        "iterm": {"settings": [{"key": "PromptOnQuit", "type": "bool", "value": False}]},
        "preferences": [
            {"domain": "com.apple.finder", "key": "ShowPathbar", "type": "bool", "value": True, "restart": "Finder"},
        ],
        "shell": {
            "plugins": ["zsh-users/zsh-autosuggestions"],
            "plugins_line": "git zsh-autosuggestions ",
            "rc_block": "alias ll='ls -la'\n",
        },
        "git": {"settings": {"init.defaultBranch": "main"}, "aliases": {"st": "status"}},
        "ssh": {"config_block": "Host *\n  AddKeysToAgent yes\n"},
        "editor": {"extensions": ["charliermarsh.ruff"], "attempts": 3, "delay": 0.0},
    })


@pytest.fixture
def profile_toolbox(small_profile: Profile, machine: MockMachine, prompt: ScriptedPrompt) -> Toolbox:
    """Mock toolbox that knows what the small profile's installs provide."""
    return build_mock_toolbox(small_profile, machine=machine, prompt=prompt)


@pytest.fixture
def simple_registry(tmp_path: Path) -> ResourceRegistry:
    """Manager (critical), two formulas and a marker block."""
    return ResourceRegistry([
        ResourceDeclaration(
            id="homebrew",
            kind=ResourceKind.PACKAGE_MANAGER,
            desired=ManagerSpec(),
            critical=True,
        ),
        ResourceDeclaration(id="formula:htop", kind=ResourceKind.FORMULA, desired=PackageSpec(name="htop")),
        ResourceDeclaration(id="formula:jq", kind=ResourceKind.FORMULA, desired=PackageSpec(name="jq")),
        ResourceDeclaration(
            id="zshrc:block",
            kind=ResourceKind.FILE_BLOCK,
            desired=FileBlockSpec(path="/home/u/.zshrc", marker="macbook-setup", content="alias ll='ls -la'"),
        ),
    ])
