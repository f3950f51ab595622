"""
Environment store.

Owns the set of target environments and keeps the single-active invariant:
whenever activation changes, every other environment is deactivated.
"""

import time
from typing import Iterable, List, Optional

from ..core.exceptions import ValidationError
from ..core.logging_config import get_logger
from ..execution.models import EnvVariable, Environment

logger = get_logger(__name__)


class EnvironmentStore:
    """Ordered set of environments, at most one of them active."""

    def __init__(self, environments: Optional[Iterable[Environment]] = None):
        self._environments: List[Environment] = list(environments or [])
        active = [e for e in self._environments if e.active]
        if len(active) > 1:
            # Keep the first one flagged active
            self.set_active(active[0].id)

    def _require(self, env_id: str) -> Environment:
        env = self.get(env_id)
        if env is None:
            raise ValidationError(
                f"Unknown environment: {env_id}",
                validation_type="environment",
                violations=[f"unknown id {env_id}"],
            )
        return env

    def _replace(self, updated: Environment) -> None:
        self._environments = [
            updated if e.id == updated.id else e for e in self._environments
        ]

    def get(self, env_id: str) -> Optional[Environment]:
        for env in self._environments:
            if env.id == env_id:
                return env
        return None

    @property
    def active(self) -> Optional[Environment]:
        for env in self._environments:
            if env.active:
                return env
        return None

    def list(self) -> List[Environment]:
        return list(self._environments)

    def add(
        self,
        name: str,
        url: str,
        variables: Optional[Iterable[EnvVariable]] = None,
        env_id: Optional[str] = None,
    ) -> Environment:
        """Add an environment; the first one added becomes active."""
        env_id = env_id or str(int(time.time() * 1000))
        if self.get(env_id) is not None:
            raise ValidationError(
                f"Environment id already exists: {env_id}",
                validation_type="environment",
                violations=[f"duplicate id {env_id}"],
            )
        env = Environment(
            id=env_id,
            name=name,
            url=url,
            active=not self._environments,
            variables=list(variables or []),
        )
        self._environments.append(env)
        logger.info(f"Environment added: {name}", extra={"metadata": {"env_id": env_id}})
        return env

    def set_active(self, env_id: str) -> Environment:
        self._require(env_id)
        self._environments = [
            e.model_copy(update={"active": e.id == env_id}) for e in self._environments
        ]
        logger.info(f"Active environment set: {env_id}")
        return self.get(env_id)

    def remove(self, env_id: str) -> None:
        """Remove an environment, promoting the first remaining one if it was active."""
        env = self._require(env_id)
        self._environments = [e for e in self._environments if e.id != env_id]
        if env.active and self._environments:
            self.set_active(self._environments[0].id)

    def add_variable(self, env_id: str, key: str, value: str) -> Environment:
        if not key or not value:
            raise ValidationError(
                "Variable key and value are required",
                validation_type="environment",
                violations=["empty key or value"],
            )
        env = self._require(env_id)
        updated = env.model_copy(
            update={"variables": [*env.variables, EnvVariable(key=key, value=value)]}
        )
        self._replace(updated)
        return updated

    def update_variable(
        self, env_id: str, key: str, new_key: str, new_value: str
    ) -> Environment:
        env = self._require(env_id)
        updated = env.model_copy(
            update={
                "variables": [
                    EnvVariable(key=new_key, value=new_value) if v.key == key else v
                    for v in env.variables
                ]
            }
        )
        self._replace(updated)
        return updated

    def remove_variable(self, env_id: str, key: str) -> Environment:
        env = self._require(env_id)
        updated = env.model_copy(
            update={"variables": [v for v in env.variables if v.key != key]}
        )
        self._replace(updated)
        return updated

    def __len__(self) -> int:
        return len(self._environments)
