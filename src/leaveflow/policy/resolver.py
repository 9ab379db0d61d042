"""Policy resolver — loads leave_policy.json and exposes every runtime
decision as a typed method call.

No magic. If a value is missing from the config, it fails loud.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from leaveflow.models.leave import LeaveType

POLICY_FILENAME = "leave_policy.json"


class PolicyResolver:
    """Loads and resolves leave policy.

    Usage:
        resolver = PolicyResolver.from_config_dir(Path("config"))
        allowance = resolver.starting_allowance()
        if resolver.enforce_transitions(): ...
    """

    def __init__(self, policy: dict[str, Any]) -> None:
        self._policy = policy
        self._validate()

    @classmethod
    def from_config_dir(cls, config_dir: Path) -> PolicyResolver:
        """Load from the canonical config directory."""
        return cls(_load_json(config_dir / POLICY_FILENAME))

    @classmethod
    def from_dict(cls, policy: dict[str, Any]) -> PolicyResolver:
        return cls(dict(policy))

    def _validate(self) -> None:
        if "version" not in self._policy:
            raise ValueError(f"{POLICY_FILENAME} missing version")
        for section in ("balance", "lifecycle", "repository", "storage", "session"):
            if section not in self._policy:
                raise ValueError(f"{POLICY_FILENAME} missing section: {section}")
        allowance = self._policy["balance"]["starting_allowance"]
        if not isinstance(allowance, int) or allowance < 0:
            raise ValueError(
                f"starting_allowance must be a non-negative integer, got {allowance!r}"
            )
        latency = self._policy["repository"]["latency_seconds"]
        if latency < 0:
            raise ValueError(f"latency_seconds must be >= 0, got {latency}")

    @property
    def version(self) -> str:
        return str(self._policy["version"])

    # ------------------------------------------------------------------
    # Balance
    # ------------------------------------------------------------------

    def starting_allowance(self) -> int:
        """Days each applicant starts a period with."""
        return self._policy["balance"]["starting_allowance"]

    # ------------------------------------------------------------------
    # Lifecycle and repository behaviour
    # ------------------------------------------------------------------

    def enforce_transitions(self) -> bool:
        """Whether only PENDING → APPROVED/REJECTED is permitted."""
        return bool(self._policy["lifecycle"]["enforce_transitions"])

    def validate_submissions(self) -> bool:
        """Whether the repository rejects malformed submissions."""
        return bool(self._policy["repository"]["validate_submissions"])

    def seed_on_empty(self) -> bool:
        """Whether the first read of an empty store writes demo data."""
        return bool(self._policy["repository"]["seed_on_empty"])

    def latency_seconds(self) -> float:
        """Simulated delay awaited by each repository operation."""
        return float(self._policy["repository"]["latency_seconds"])

    def leave_types(self) -> list[LeaveType]:
        """Leave types offered to applicants, in display order."""
        return [LeaveType(t) for t in self._policy["repository"]["leave_types"]]

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    def storage_keys(self) -> tuple[str, str]:
        """Return (leave_key, users_key)."""
        storage = self._policy["storage"]
        return storage["leave_key"], storage["users_key"]

    def storage_path(self) -> str:
        """Relative path of the JSON blob file for file-backed stores."""
        return self._policy["storage"]["path"]

    # ------------------------------------------------------------------
    # Session stub
    # ------------------------------------------------------------------

    def admin_marker(self) -> str:
        """Username substring that grants the reviewer role."""
        return self._policy["session"]["admin_marker"]


def _load_json(path: Path) -> dict[str, Any]:
    """Load a JSON file or raise with clear path."""
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)
