from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

import yaml
from dotenv import load_dotenv

from .errors import ConfigError


load_dotenv(override=False)


@dataclass
class Profile:
    """A named import target with its fixed context and options.

    Attributes:
        name: Profile key.
        display_name: Human readable name.
        program_id: Assessment program every imported standard belongs to.
        organization_id: Evaluating organization every imported standard belongs to.
        import_options: ``config_file`` / ``max_workers`` overrides.
        store: Store options (``path``).
        meta: Arbitrary metadata.
    """

    name: str
    display_name: str
    program_id: str
    organization_id: str
    import_options: Dict[str, Any] = field(default_factory=dict)
    store: Dict[str, Any] = field(default_factory=dict)
    meta: Dict[str, Any] | None = None

    def get(self, dotted: str, default: Any | None = None) -> Any:
        target: Any = self
        for part in dotted.split('.'):
            if isinstance(target, Profile):
                target = getattr(target, part, default)
            elif isinstance(target, dict):
                target = target.get(part, default)
            else:
                return default
        return target


def _project_root() -> Path:
    env = os.getenv("EVIDFLOW_ROOT")
    if env:
        return Path(env)
    # In source layout, this file is under <root>/evidflow/core
    return Path(__file__).resolve().parents[2]


def _config_dir() -> Path:
    return _project_root() / "evidflow" / "config"


def _work_dir() -> Path:
    env = os.getenv("EVIDFLOW_WORK_DIR")
    if env:
        return Path(env)
    return _project_root() / "evidflow" / "work"


WORK_SUBDIRS = ("inbox", "out", "logs", "store")


def ensure_work_dirs() -> dict[str, Path]:
    """Create the work sub-directories and return them by name."""
    base = _work_dir()
    dirs = {name: base / name for name in WORK_SUBDIRS}
    for directory in dirs.values():
        directory.mkdir(parents=True, exist_ok=True)
    return dirs


def _profile_from_mapping(key: str, raw: Dict[str, Any]) -> Profile:
    try:
        return Profile(
            name=key,
            display_name=raw.get("display_name", key),
            program_id=str(raw["program_id"]),
            organization_id=str(raw["organization_id"]),
            import_options=dict(raw.get("import") or {}),
            store=dict(raw.get("store") or {}),
            meta=raw.get("meta") or {},
        )
    except (KeyError, TypeError, AttributeError, ValueError) as exc:
        raise ConfigError(f"invalid profile {key}: missing or malformed {exc}") from exc


def load_profiles(path: str | Path | None = None) -> dict[str, Profile]:
    """Read named import profiles (default: evidflow/config/profiles.yaml)."""
    source = Path(path) if path else _config_dir() / "profiles.yaml"
    if not source.exists():
        raise ConfigError(f"profiles file not found: {source}")
    with source.open("r", encoding="utf-8") as fh:
        document = yaml.safe_load(fh) or {}
    entries = document.get("profiles") if isinstance(document, dict) else None
    if not entries:
        raise ConfigError(f"no profiles defined in {source}")
    return {key: _profile_from_mapping(key, raw) for key, raw in entries.items()}


def resolve_config_path(path: str | Path) -> Path:
    p = Path(path)
    if p.is_absolute():
        return p
    # Support paths with or without leading 'evidflow/'
    parts = p.parts
    if parts and parts[0] == "evidflow":
        return _project_root() / p
    return _project_root() / "evidflow" / "config" / p


def resolve_work_path(path: str | Path) -> Path:
    """Resolve a relative store/output path against the work directory."""
    p = Path(path).expanduser()
    if p.is_absolute():
        return p
    return _work_dir() / p
