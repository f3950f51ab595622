"""
Scripted playback for simulated runs.

A simulated run is a table of ``(delay, line)`` steps: the delay is the
offset in seconds from the start of the script at which the line is
emitted. The driver plays the table with an async sleep loop.
"""

from dataclasses import dataclass
from typing import List, Optional

from .models import Environment, Feature

DEFAULT_ENV_NAME = "Local Dev"
DEFAULT_ENV_URL = "http://localhost:3000"

# Pause between the last scripted line and the terminal record
COMPLETION_DELAY = 0.5


@dataclass(frozen=True)
class ScriptStep:
    """One scripted log line and its offset from the start of the run."""

    delay: float
    line: str


@dataclass(frozen=True)
class SimulationScript:
    """Ordered steps plus the duration reported in the run record."""

    steps: List[ScriptStep]
    duration: str

    @property
    def total_delay(self) -> float:
        last = self.steps[-1].delay if self.steps else 0.0
        return last + COMPLETION_DELAY


def is_login_feature(feature: Feature) -> bool:
    return "login" in feature.title.lower()


def _tag_argument(feature: Feature, tags: List[str]) -> str:
    if tags:
        return " or ".join(tags)
    return f"@{feature.id}"


def build_preamble(feature: Feature, environment: Optional[Environment]) -> List[str]:
    """Lines emitted immediately when a simulated run starts."""
    env_name = environment.name if environment else DEFAULT_ENV_NAME
    env_url = environment.url if environment else DEFAULT_ENV_URL

    lines = [
        f"> Initializing Playwright runner for: {feature.title}...",
        f"> Target Environment: {env_name} ({env_url})",
    ]

    if environment and environment.variables:
        lines.append("> Injecting Environment Variables:")
        for variable in environment.variables:
            lines.append(f"  - {variable.key}: {variable.display_value()}")

    return lines


def build_script(
    feature: Feature,
    environment: Optional[Environment],
    tags: Optional[List[str]] = None,
) -> SimulationScript:
    """Build the scripted narrative for a feature."""
    env_url = environment.url if environment else DEFAULT_ENV_URL
    command = (
        f'> docker-compose exec playwright cucumber-js --tags "{_tag_argument(feature, tags or [])}"'
    )

    if is_login_feature(feature):
        table = [
            (0.8, command),
            (1.5, "Found 1 feature(s)..."),
            (2.0, f"Running: {feature.title}"),
            (2.5, "> Given I verify the browser is open and loaded"),
            (2.8, f"  🚀 Launching browser and navigating to: {env_url}"),
            (3.5, "  📸 Screenshot saved: 1-landing-page.png"),
            (3.8, f"  ✅ Browser Validated | URL: {env_url}/login"),
            (3.8, "  📑 Page Title: Sign in to your account"),
            (4.2, "> When I perform the secure login sequence"),
            (4.5, "  ⌨️ Filling credentials..."),
            (5.5, "  📸 Screenshot saved: 2-dashboard-signed-in.png"),
            (5.8, "> Then I should be fully authenticated"),
            (6.0, "  ✅ Dashboard loaded successfully"),
            (6.2, "1 scenario (1 passed)"),
            (6.5, "Done in 4.2s."),
        ]
        duration = "4.2s"
    else:
        table = [
            (0.8, command),
            (1.5, "Found 1 feature(s)..."),
            (2.0, f"Running: {feature.title}"),
            (2.5, "> Given precondition steps are met"),
            (2.8, "  🌐 Navigate and setup state"),
            (3.5, "> When actions are performed"),
            (3.8, "  ⚡ Executing steps..."),
            (4.5, "> Then assertions should pass"),
            (4.8, "  ✅ All checks passed"),
            (5.0, "1 scenario (1 passed)"),
            (5.2, "Done in 2.5s."),
        ]
        duration = "2.5s"

    return SimulationScript(
        steps=[ScriptStep(delay, line) for delay, line in table],
        duration=duration,
    )


def dry_run_line(feature: Feature, tags: Optional[List[str]] = None) -> str:
    """The single line a dry run produces."""
    suffix = f" [tags: {', '.join(tags)}]" if tags else ""
    return f"> Dry run: execution plan validated for {feature.title}{suffix}"
