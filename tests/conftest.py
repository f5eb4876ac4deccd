"""Pytest configuration and shared fixtures."""

import pytest

from backup_vault.config import JsonSettingsStore
from backup_vault.core.retry import RetryPolicy
from backup_vault.core.selection import SelectionModel
from backup_vault.core.tree import NodeArena
from backup_vault.transaction import set_transaction_log


class MemoryStore:
    """In-memory settings store."""

    def __init__(self, data=None):
        self.data = dict(data or {})
        self.writes = 0

    def get(self, key, default=None):
        return self.data.get(key, default)

    def set(self, key, value):
        self.data[key] = value
        self.writes += 1


@pytest.fixture(autouse=True)
def no_transaction_log():
    """Keep the module-level transaction log disabled between tests."""
    set_transaction_log(None)
    yield
    set_transaction_log(None)


@pytest.fixture
def workspace(tmp_path):
    """Create a small workspace tree.

    ws/
      docs/
        guide.md
        notes.txt
        deep/
          inner/
            secret.txt
            keep.txt
          sibling.txt
      src/
        main.py
        util.py
      README.md
      .bashrc
    """
    root = tmp_path / "ws"
    (root / "docs" / "deep" / "inner").mkdir(parents=True)
    (root / "src").mkdir()
    (root / "docs" / "guide.md").write_text("# Guide\n")
    (root / "docs" / "notes.txt").write_text("some notes\n")
    (root / "docs" / "deep" / "sibling.txt").write_text("sibling\n")
    (root / "docs" / "deep" / "inner" / "secret.txt").write_text("secret\n")
    (root / "docs" / "deep" / "inner" / "keep.txt").write_text("keep\n")
    (root / "src" / "main.py").write_text("print('hello')\n")
    (root / "src" / "util.py").write_text("X = 1\n")
    (root / "README.md").write_text("readme\n")
    (root / ".bashrc").write_text("export A=1\n")
    return root


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def model(workspace, memory_store):
    """Selection model over the sample workspace with an in-memory store."""
    return SelectionModel(NodeArena(workspace), memory_store)


@pytest.fixture
def json_store(tmp_path):
    return JsonSettingsStore(tmp_path / "state" / "settings.json")


@pytest.fixture
def fast_policy():
    """Retry policy that never actually sleeps."""
    sleeps = []
    policy = RetryPolicy(max_retries=3, base_delay=1.0, max_jitter=0.0, sleep=sleeps.append)
    policy.sleeps = sleeps
    return policy


@pytest.fixture
def tmp_config_dir(tmp_path):
    """Create a temporary config directory."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def sample_config_toml():
    """Return a sample valid TOML configuration string."""
    return """
[global]
state_dir = "/var/lib/backup-vault"
transaction_log = "/var/log/backup-vault/transactions.log"
log_file = "/var/log/backup-vault/backup-vault.log"
chunk_size = 65536

[global.retry]
max_retries = 5
base_delay = 0.5
max_jitter = 0.25
"""


@pytest.fixture
def config_file(tmp_config_dir, sample_config_toml):
    """Create a temporary config file with sample content."""
    config_path = tmp_config_dir / "config.toml"
    config_path.write_text(sample_config_toml)
    return config_path


@pytest.fixture
def make_store():
    """Factory for fresh in-memory stores."""
    return MemoryStore
