"""Configuration schema definitions using dataclasses.

Two kinds of configuration exist:

- ``Config``: the optional TOML file controlling logging, state location,
  chunk size and the retry policy.
- ``VaultSettings``: the per-workspace settings record that the selection
  model reads at startup and writes back after every change.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from .. import encode_path_for_dir

DEFAULT_STATE_DIR = "~/.local/share/backup-vault"
DEFAULT_CHUNK_SIZE = 1024 * 1024
DEFAULT_SUFFIX = "v"


@dataclass
class RetryConfig:
    """Retry policy for transient filesystem errors.

    Attributes:
        max_retries: Additional attempts after the first failure
        base_delay: Delay in seconds before the first retry, doubled each time
        max_jitter: Upper bound in seconds of the random delay added to each wait
    """

    max_retries: int = 3
    base_delay: float = 1.0
    max_jitter: float = 1.0


@dataclass
class GlobalConfig:
    """Global configuration settings.

    Attributes:
        log_file: Optional rotating log file
        state_dir: Directory holding per-workspace settings records
        transaction_log: Job history file (defaults to state_dir/transactions.log)
        chunk_size: Read/write chunk size for copies and hashing
        retry: Retry policy for transient errors
    """

    log_file: Optional[str] = None
    state_dir: str = DEFAULT_STATE_DIR
    transaction_log: Optional[str] = None
    chunk_size: int = DEFAULT_CHUNK_SIZE
    retry: RetryConfig = field(default_factory=RetryConfig)


@dataclass
class Config:
    """Root configuration object."""

    global_config: GlobalConfig = field(default_factory=GlobalConfig)

    def get_state_dir(self) -> Path:
        return Path(self.global_config.state_dir).expanduser()

    def get_state_file(self, workspace: Path | str) -> Path:
        """Settings file used for the given workspace root."""
        return self.get_state_dir() / "workspaces" / f"{encode_path_for_dir(workspace)}.json"

    def get_transaction_log(self) -> Path:
        if self.global_config.transaction_log:
            return Path(self.global_config.transaction_log).expanduser()
        return self.get_state_dir() / "transactions.log"


@dataclass
class VaultSettings:
    """Persisted settings record for one workspace.

    Attributes:
        sources: Explicitly included paths
        deselected_sources: Paths carved out of an included ancestor
        output_dir: Where versioned backups are written
        sending_dir: Where ``send`` copies the selection
        pack_files: Force packing even for a single source
        folder_name: Name of the packed backup folder
        suffix: Text inserted before the version label
    """

    sources: list[str] = field(default_factory=list)
    deselected_sources: list[str] = field(default_factory=list)
    output_dir: str = ""
    sending_dir: str = ""
    pack_files: bool = False
    folder_name: str = ""
    suffix: str = DEFAULT_SUFFIX

    @classmethod
    def from_record(cls, data: dict[str, Any] | None) -> "VaultSettings":
        """Build settings from a stored record, tolerating missing keys."""
        data = data or {}
        suffix = data.get("suffix")
        return cls(
            sources=[str(p) for p in data.get("sources") or []],
            deselected_sources=[str(p) for p in data.get("deselectedSources") or []],
            output_dir=data.get("outputDir") or "",
            sending_dir=data.get("sendingDir") or "",
            pack_files=bool(data.get("packFiles", False)),
            folder_name=data.get("folderName") or "",
            suffix=DEFAULT_SUFFIX if suffix is None else str(suffix),
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "sources": list(self.sources),
            "deselectedSources": list(self.deselected_sources),
            "outputDir": self.output_dir,
            "sendingDir": self.sending_dir,
            "packFiles": self.pack_files,
            "folderName": self.folder_name,
            "suffix": self.suffix,
        }
