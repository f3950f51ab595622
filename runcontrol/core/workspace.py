"""
Workspace file loading.

A workspace is a YAML file bundling settings overrides, target environments
and the feature library for the command line:

    settings:
      execution_mode: real
      backend_url: http://localhost:3001
    environments:
      - id: qa
        name: QA Portal
        url: https://qa.example.com
        active: true
        variables:
          TEST_USER: tester@example.com
    features:
      - file: features/login.feature
        steps_file: features/login.steps.ts
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError as PydanticValidationError

from .exceptions import WorkspaceError
from .logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class Workspace:
    """Parsed contents of a workspace file."""

    path: Optional[Path] = None
    settings: Dict[str, Any] = field(default_factory=dict)
    environments: List[Any] = field(default_factory=list)
    features: List[Any] = field(default_factory=list)


def _read_text(base: Path, relative: str, file_path: Path) -> str:
    target = (base / relative).resolve()
    try:
        return target.read_text(encoding="utf-8")
    except OSError as e:
        raise WorkspaceError(f"Cannot read {target}: {e}", file_path=str(file_path))


def _parse_variables(raw: Any) -> List[Dict[str, str]]:
    if raw is None:
        return []
    if isinstance(raw, dict):
        return [{"key": str(k), "value": str(v)} for k, v in raw.items()]
    return [{"key": str(item["key"]), "value": str(item.get("value", ""))} for item in raw]


def _mapping_entries(data: Dict[str, Any], key: str, file_path: Path) -> List[Dict[str, Any]]:
    """Entries of a top-level list, each of which must be a mapping."""
    entries = data.get(key) or []
    if not isinstance(entries, list):
        raise WorkspaceError(f"'{key}' must be a list", file_path=str(file_path))
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise WorkspaceError(
                f"Invalid workspace entry: {key}[{index}] must be a mapping, got {entry!r}",
                file_path=str(file_path),
            )
    return entries


def load_feature_file(feature_path: Path, steps_path: Optional[Path] = None):
    """
    Build a feature from a ``.feature`` file.

    A sibling ``<stem>.steps.ts`` is picked up when no steps file is given.
    """
    from ..execution.models import Feature

    content = feature_path.read_text(encoding="utf-8")
    if steps_path is None:
        candidate = feature_path.with_name(f"{feature_path.stem}.steps.ts")
        steps_path = candidate if candidate.exists() else None
    steps_code = steps_path.read_text(encoding="utf-8") if steps_path else ""
    return Feature.from_gherkin(content, steps_code, feature_id=feature_path.stem)


def load_workspace(path: Path) -> Workspace:
    """
    Load a workspace YAML file.

    Raises:
        WorkspaceError: If the file is missing, malformed or references bad data
    """
    from ..execution.models import Environment, Feature

    path = Path(path)
    if not path.exists():
        raise WorkspaceError(f"Workspace file not found: {path}", file_path=str(path))

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise WorkspaceError(f"Invalid workspace YAML: {e}", file_path=str(path))

    if not isinstance(data, dict):
        raise WorkspaceError("Workspace root must be a mapping", file_path=str(path))

    base = path.parent
    settings = data.get("settings") or {}
    if not isinstance(settings, dict):
        raise WorkspaceError("'settings' must be a mapping", file_path=str(path))
    workspace = Workspace(path=path, settings=dict(settings))
    environments = _mapping_entries(data, "environments", path)
    features = _mapping_entries(data, "features", path)

    try:
        for index, raw in enumerate(environments):
            workspace.environments.append(
                Environment(
                    id=str(raw.get("id", f"env-{index + 1}")),
                    name=raw["name"],
                    url=raw["url"],
                    active=bool(raw.get("active", False)),
                    variables=_parse_variables(raw.get("variables")),
                )
            )

        for index, raw in enumerate(features):
            if "file" in raw:
                content = _read_text(base, raw["file"], path)
                default_id = Path(raw["file"]).stem
            else:
                content = raw["content"]
                default_id = f"feature-{index + 1}"
            steps_code = raw.get("steps_code", "")
            if "steps_file" in raw:
                steps_code = _read_text(base, raw["steps_file"], path)
            feature = Feature.from_gherkin(
                content, steps_code, feature_id=str(raw.get("id", default_id))
            )
            if raw.get("title"):
                feature = feature.model_copy(update={"title": raw["title"]})
            workspace.features.append(feature)
    except (KeyError, TypeError, PydanticValidationError) as e:
        raise WorkspaceError(f"Invalid workspace entry: {e}", file_path=str(path))

    logger.info(
        f"Workspace loaded: {path}",
        extra={
            "metadata": {
                "features": len(workspace.features),
                "environments": len(workspace.environments),
            }
        },
    )
    return workspace
