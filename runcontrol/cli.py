"""
Main CLI interface for Run Control.

Provides commands to run features through the coordinator, probe the
execution backend, generate features from user stories, and drive runs
with natural-language commands.
"""

import argparse
import asyncio
import base64
import mimetypes
import re
import sys
import os
from typing import Optional, List
from pathlib import Path

from . import __version__
from .assistant.commands import CommandAdapter
from .assistant.generator import GherkinGenerator
from .assistant.llm import LLMClient
from .core.config import Config
from .core.exceptions import RunControlError
from .core.logging_config import setup_logging
from .core.workspace import Workspace, load_feature_file, load_workspace
from .execution.coordinator import RunCoordinator
from .execution.health import BackendHealthProbe
from .execution.models import RunRequest, RunStatus
from .library.environments import EnvironmentStore
from .library.features import FeatureLibrary


def _load_workspace(args: argparse.Namespace) -> Workspace:
    if getattr(args, "workspace", None):
        return load_workspace(Path(args.workspace))
    return Workspace()


def _build_config(args: argparse.Namespace, workspace: Workspace) -> Config:
    """Environment defaults, then workspace settings, then command-line flags."""
    config = Config.from_env()
    config.apply_overrides(workspace.settings)
    config.apply_overrides(
        {
            "execution_mode": getattr(args, "mode", None),
            "execution_method": getattr(args, "method", None),
            "backend_url": getattr(args, "backend_url", None),
            "container_name": getattr(args, "container", None),
            "artifacts_dir": getattr(args, "artifacts_dir", None),
            "time_scale": getattr(args, "time_scale", None),
        }
    )
    if getattr(args, "verbose", False):
        config.log_level = "DEBUG"
    config.validate()
    return config


def _build_environments(workspace: Workspace, env_id: Optional[str]) -> EnvironmentStore:
    store = EnvironmentStore(workspace.environments)
    if env_id:
        store.set_active(env_id)
    return store


def _print_history(coordinator: RunCoordinator) -> None:
    print()
    print("📊 Run History")
    print("=" * 40)
    for record in coordinator.history:
        icon = "✅" if record.is_success else "❌"
        print(f"{icon} {record.feature_title:30} {record.status.value:7} {record.duration:>6}  {record.id}")
    stats = coordinator.ledger.stats()
    print(f"   {stats['passed']} passed, {stats['failed']} failed")


async def _run_features(
    config: Config,
    environments: EnvironmentStore,
    requests: List[RunRequest],
    download_artifacts: bool,
) -> int:
    coordinator = RunCoordinator(config, environments)
    unsubscribe = coordinator.log_sink.subscribe(print)
    try:
        coordinator.enqueue(requests)
        await coordinator.wait_until_idle()
    finally:
        unsubscribe()

    if coordinator.history:
        _print_history(coordinator)

    if download_artifacts:
        for record in coordinator.history:
            path = await coordinator.download_artifacts(record.id)
            print(f"📦 Artifacts for {record.feature_title}: {path}")

    failed = [r for r in coordinator.history if r.status == RunStatus.FAILED]
    return 1 if failed else 0


def cmd_run(args: argparse.Namespace) -> int:
    """Run features through the execution queue."""
    try:
        workspace = _load_workspace(args)
        config = _build_config(args, workspace)
        setup_logging(config, f"cli-{os.getpid()}")

        if args.feature_files:
            features = [load_feature_file(Path(p)) for p in args.feature_files]
        else:
            features = list(workspace.features)

        library = FeatureLibrary(features)
        selected = library.filter_by_tag(args.tag)
        if not selected:
            print("❌ No features to run")
            return 1

        environments = _build_environments(workspace, args.env)
        requests = [
            RunRequest(feature=f, tags=args.grep or [], dry_run=args.dry_run)
            for f in selected
        ]

        print(f"🚀 Queuing {len(requests)} feature(s) in {config.execution_mode} mode...")
        return asyncio.run(
            _run_features(config, environments, requests, args.download_artifacts)
        )

    except RunControlError as e:
        print(f"❌ Run Control error: {e.message}")
        return 1
    except OSError as e:
        print(f"❌ Cannot read feature file: {e}")
        return 1


def cmd_health(args: argparse.Namespace) -> int:
    """Backend health check command."""
    try:
        workspace = _load_workspace(args)
        config = _build_config(args, workspace)
    except RunControlError as e:
        print(f"❌ Run Control error: {e.message}")
        return 1

    print("🏥 Backend Health Check")
    print("=" * 40)
    health = asyncio.run(BackendHealthProbe(config.backend_url).check())

    if not health.is_ok:
        print(f"❌ Backend unreachable at {config.backend_url}")
        return 1

    print(f"✅ Backend reachable at {config.backend_url}")
    if health.engine:
        print(f"   Engine: {health.engine}")
    if health.inside_container:
        print("   🐳 Running inside a container")
    else:
        print(f"   🖥️  Mode: {health.mode or 'unknown'}")
    return 0


async def _ask(config: Config, workspace: Workspace, env_id: Optional[str], text: str) -> int:
    coordinator = RunCoordinator(config, _build_environments(workspace, env_id))
    adapter = CommandAdapter(LLMClient(config), FeatureLibrary(workspace.features), coordinator)

    unsubscribe = coordinator.log_sink.subscribe(print)
    try:
        result = await adapter.handle(text)
        print(f"🤖 {result.message}")
        await coordinator.wait_until_idle()
    finally:
        unsubscribe()

    if coordinator.history:
        _print_history(coordinator)
    return 0


def cmd_ask(args: argparse.Namespace) -> int:
    """Drive a run with a natural-language command."""
    try:
        workspace = _load_workspace(args)
        config = _build_config(args, workspace)
        setup_logging(config, f"cli-{os.getpid()}")
        return asyncio.run(_ask(config, workspace, args.env, " ".join(args.text)))
    except RunControlError as e:
        print(f"❌ Run Control error: {e.message}")
        return 1


def _slugify(title: str) -> str:
    return re.sub(r"[^a-z0-9]", "_", title.lower()) or "feature"


def cmd_generate(args: argparse.Namespace) -> int:
    """Generate a feature file and step definitions from a user story."""
    try:
        workspace = _load_workspace(args)
        config = _build_config(args, workspace)
        setup_logging(config, f"cli-{os.getpid()}")

        image_base64 = mime_type = None
        if args.image:
            image_path = Path(args.image)
            image_base64 = base64.b64encode(image_path.read_bytes()).decode("ascii")
            mime_type = mimetypes.guess_type(image_path.name)[0] or "image/png"

        print("✨ Generating feature...")
        assets = asyncio.run(
            GherkinGenerator(config).generate(
                args.story,
                context=args.context,
                image_base64=image_base64,
                mime_type=mime_type,
                fast=args.fast,
            )
        )
        feature = assets.to_feature()

        output_dir = Path(args.output)
        output_dir.mkdir(parents=True, exist_ok=True)
        slug = _slugify(feature.title)
        feature_path = output_dir / f"{slug}.feature"
        steps_path = output_dir / f"{slug}.steps.ts"
        feature_path.write_text(assets.feature + "\n", encoding="utf-8")
        steps_path.write_text(assets.steps + "\n", encoding="utf-8")

        print(f"✅ Generated '{feature.title}'")
        print(f"   {feature_path}")
        print(f"   {steps_path}")
        return 0

    except RunControlError as e:
        print(f"❌ Run Control error: {e.message}")
        return 1
    except OSError as e:
        print(f"❌ File error: {e}")
        return 1


def cmd_version(args: argparse.Namespace) -> int:
    """Show version information."""
    print(f"Run Control {__version__}")
    if args.verbose:
        print()
        print("System Information:")
        print(f"  Python: {sys.version}")
        print(f"  Platform: {sys.platform}")
        print(f"  Working Directory: {os.getcwd()}")
    return 0


def _add_execution_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--workspace", help="Path to a workspace YAML file")
    parser.add_argument("--mode", choices=["simulated", "real"], help="Execution mode")
    parser.add_argument("--method", choices=["host", "docker"], help="Backend execution method")
    parser.add_argument("--backend-url", help="Base URL of the run-execution backend")
    parser.add_argument("--container", help="Container name for docker execution")
    parser.add_argument("--env", help="Id of the environment to activate")
    parser.add_argument(
        "--time-scale", type=float,
        help="Multiplier for simulated delays (0 plays back instantly)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")


def create_main_parser() -> argparse.ArgumentParser:
    """Create main CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="runcontrol",
        description="Run Control - Gherkin/Playwright test run coordinator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  runcontrol run features/login.feature --mode simulated
  runcontrol run --workspace runcontrol.yaml --tag @smoke --download-artifacts
  runcontrol health --backend-url http://localhost:3001
  runcontrol ask --workspace runcontrol.yaml "dry run the login scenario"
  runcontrol generate --story "As a user I can reset my password"
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser("run", help="Queue and execute features")
    run_parser.add_argument("feature_files", nargs="*", help=".feature files to run")
    run_parser.add_argument("--tag", help="Only run features containing this tag")
    run_parser.add_argument(
        "--grep", action="append", metavar="TAG",
        help="Tag filter passed to the runner (repeatable)",
    )
    run_parser.add_argument("--dry-run", action="store_true", help="Validate plans only")
    run_parser.add_argument("--artifacts-dir", help="Directory for downloaded artifacts")
    run_parser.add_argument(
        "--download-artifacts", action="store_true",
        help="Save artifacts of every completed run",
    )
    _add_execution_arguments(run_parser)
    run_parser.set_defaults(func=cmd_run)

    health_parser = subparsers.add_parser("health", help="Probe the execution backend")
    _add_execution_arguments(health_parser)
    health_parser.set_defaults(func=cmd_health)

    ask_parser = subparsers.add_parser("ask", help="Run a test with a natural-language command")
    ask_parser.add_argument("text", nargs="+", help="The command, e.g. 'run the login test'")
    _add_execution_arguments(ask_parser)
    ask_parser.set_defaults(func=cmd_ask)

    generate_parser = subparsers.add_parser("generate", help="Generate a feature from a user story")
    generate_parser.add_argument("--story", required=True, help="User story / acceptance criteria")
    generate_parser.add_argument("--context", help="Additional technical context")
    generate_parser.add_argument("--image", help="UI mockup image to analyse")
    generate_parser.add_argument("--fast", action="store_true", help="Use the fast model")
    generate_parser.add_argument("--output", default="features", help="Output directory")
    _add_execution_arguments(generate_parser)
    generate_parser.set_defaults(func=cmd_generate)

    version_parser = subparsers.add_parser("version", help="Show version information")
    version_parser.add_argument(
        "--verbose", "-v", action="store_true", help="Show detailed version information"
    )
    version_parser.set_defaults(func=cmd_version)

    return parser


def main(args: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_main_parser()

    if args is None:
        args = sys.argv[1:]

    parsed_args = parser.parse_args(args)

    if not hasattr(parsed_args, "func"):
        parser.print_help()
        return 1

    return parsed_args.func(parsed_args)


if __name__ == "__main__":
    sys.exit(main())
