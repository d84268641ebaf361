"""Command-line interface for Engage feature access policies."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, NoReturn

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from engage_feature_access import __version__
from engage_feature_access.access.client import HttpFeatureAccessClient
from engage_feature_access.access.confirm import ConfirmationGate
from engage_feature_access.access.dependency import DEFAULT_MIN_VERSION, DependencyGatekeeper
from engage_feature_access.access.models import (
    AccessMode,
    ExecutionMode,
    PolicyScope,
    PolicySummary,
)
from engage_feature_access.access.orchestrator import (
    DEFAULT_POLICY_PREFIX,
    AccessRequest,
    DependencyOptions,
    FeatureAccessOrchestrator,
)
from engage_feature_access.access.session import SessionManager
from engage_feature_access.config import ServiceConfig
from engage_feature_access.config_validation import parse_optional_bool
from engage_feature_access.errors import FeatureAccessError, InvalidArgumentError
from engage_feature_access.logging_utils import configure_logging

app = typer.Typer(add_completion=False, no_args_is_help=True)
console = Console()


def _version_callback(value: bool) -> None:
    """Print package version and exit when requested."""
    if value:
        console.print(__version__)
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show the version and exit.",
        ),
    ] = False,
) -> None:
    """Manage Copilot and AI summarization access policies for an Engage tenant."""


def _load_config() -> ServiceConfig:
    """Load service configuration, reporting bad values as CLI errors."""
    try:
        return ServiceConfig.from_env()
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _confirm(prompt: str) -> bool:
    """Ask on the terminal, defaulting to no."""
    return typer.confirm(prompt, default=False)


def _create_orchestrator(
    *,
    config: ServiceConfig,
    execution_mode: ExecutionMode,
    gate: ConfirmationGate,
) -> FeatureAccessOrchestrator:
    """Wire the HTTP client, session and dependency check from configuration."""
    sessions = SessionManager(config)
    return FeatureAccessOrchestrator(
        gatekeeper=DependencyGatekeeper(),
        sessions=sessions,
        client=HttpFeatureAccessClient(sessions),
        execution_mode=execution_mode,
        gate=gate,
    )


def _fail(exc: FeatureAccessError) -> NoReturn:
    """Render a categorized error and stop the command."""
    if isinstance(exc, InvalidArgumentError):
        raise typer.BadParameter(str(exc)) from exc
    console.print(f"[red]{exc.category}[/red]: {escape(str(exc))}")
    raise typer.Exit(code=1) from exc


def _render(summaries: list[PolicySummary], *, title: str, as_json: bool) -> None:
    """Print summaries as a table or as a JSON list."""
    if as_json:
        console.print_json(json.dumps([summary.to_dict() for summary in summaries]))
        return
    if not summaries:
        console.print("No policies to report.")
        return
    table = Table(title=title)
    for column in ("Name", "Feature", "Enabled", "Opt-in default", "Access", "Policy ID", "Action"):
        table.add_column(column)
    for summary in summaries:
        opt_in = summary.user_opt_in_by_default
        table.add_row(
            escape(summary.name),
            summary.feature_id,
            "yes" if summary.is_enabled else "no",
            "-" if opt_in is None else ("yes" if opt_in else "no"),
            escape(summary.access),
            summary.policy_id or "-",
            summary.action,
        )
    console.print(table)


@app.command("set")
def set_access(
    mode: Annotated[
        AccessMode,
        typer.Option(case_sensitive=False, help="Enable or Disable the selected features."),
    ] = AccessMode.DISABLE,
    assistant: Annotated[
        bool,
        typer.Option("--assistant", help="Target the Copilot assistant feature."),
    ] = False,
    summarization: Annotated[
        bool,
        typer.Option("--summarization", help="Target the AI summarization feature."),
    ] = False,
    everyone: Annotated[
        bool,
        typer.Option("--everyone", help="Apply tenant-wide."),
    ] = False,
    group_ids: Annotated[
        list[str] | None,
        typer.Option("--group-id", help="Group GUID or email; repeat for multiple."),
    ] = None,
    user_ids: Annotated[
        list[str] | None,
        typer.Option("--user-id", help="User principal name; repeat for multiple."),
    ] = None,
    prefix: Annotated[
        str,
        typer.Option("--prefix", help="Policy name prefix."),
    ] = DEFAULT_POLICY_PREFIX,
    opt_in_by_default: Annotated[
        str | None,
        typer.Option(
            "--opt-in-by-default",
            help="true or false; whether users start opted in. Only used with Enable.",
        ),
    ] = None,
    auto_install: Annotated[
        bool,
        typer.Option("--auto-install", help="Install the client library when missing."),
    ] = False,
    auto_update: Annotated[
        bool,
        typer.Option("--auto-update", help="Update the client library when outdated."),
    ] = False,
    min_version: Annotated[
        str,
        typer.Option("--min-version", help="Minimum client library version."),
    ] = DEFAULT_MIN_VERSION,
    repository: Annotated[
        str | None,
        typer.Option("--repository", help="Package index URL (default from environment)."),
    ] = None,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Do not ask for confirmation."),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Report planned changes without applying them."),
    ] = False,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print summaries as JSON."),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging."),
    ] = False,
    log_file: Annotated[
        Path | None,
        typer.Option("--log-file", help="Also write logs to this file."),
    ] = None,
) -> None:
    """Create or update feature access policies.

    Examples:
        engage-access set --mode Enable --assistant --group-id sales@contoso.com
        engage-access set --summarization --everyone --yes
    """
    configure_logging(log_file=log_file, verbose=verbose)
    try:
        opt_in = parse_optional_bool(opt_in_by_default, "--opt-in-by-default")
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    config = _load_config()

    try:
        scope = PolicyScope.from_options(everyone=everyone, group_ids=group_ids, user_ids=user_ids)
        request = AccessRequest(
            mode=mode,
            assistant=assistant,
            summarization=summarization,
            scope=scope,
            policy_name_prefix=prefix,
            user_opt_in_by_default=opt_in,
            dependency=DependencyOptions(
                auto_install=auto_install,
                auto_update=auto_update,
                min_version=min_version,
                repository=repository or config.package_index,
            ),
        )
        orchestrator = _create_orchestrator(
            config=config,
            execution_mode=ExecutionMode.DRY_RUN if dry_run else ExecutionMode.APPLY,
            gate=ConfirmationGate(_confirm, assume_yes=yes),
        )
        summaries = orchestrator.run(request)
    except FeatureAccessError as exc:
        _fail(exc)
    title = "Planned Policies" if dry_run else "Feature Access Policies"
    _render(summaries, title=title, as_json=as_json)


@app.command("policies")
def list_policies(
    assistant: Annotated[
        bool,
        typer.Option("--assistant", help="Include the Copilot assistant feature."),
    ] = False,
    summarization: Annotated[
        bool,
        typer.Option("--summarization", help="Include the AI summarization feature."),
    ] = False,
    auto_install: Annotated[
        bool,
        typer.Option("--auto-install", help="Install the client library when missing."),
    ] = False,
    auto_update: Annotated[
        bool,
        typer.Option("--auto-update", help="Update the client library when outdated."),
    ] = False,
    min_version: Annotated[
        str,
        typer.Option("--min-version", help="Minimum client library version."),
    ] = DEFAULT_MIN_VERSION,
    repository: Annotated[
        str | None,
        typer.Option("--repository", help="Package index URL (default from environment)."),
    ] = None,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print policies as JSON."),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging."),
    ] = False,
    log_file: Annotated[
        Path | None,
        typer.Option("--log-file", help="Also write logs to this file."),
    ] = None,
) -> None:
    """List existing policies for the selected features."""
    configure_logging(log_file=log_file, verbose=verbose)
    config = _load_config()
    try:
        orchestrator = _create_orchestrator(
            config=config,
            execution_mode=ExecutionMode.APPLY,
            gate=ConfirmationGate(assume_yes=True),
        )
        summaries = orchestrator.inspect(
            assistant=assistant,
            summarization=summarization,
            dependency=DependencyOptions(
                auto_install=auto_install,
                auto_update=auto_update,
                min_version=min_version,
                repository=repository or config.package_index,
            ),
        )
    except FeatureAccessError as exc:
        _fail(exc)
    _render(summaries, title="Existing Policies", as_json=as_json)


if __name__ == "__main__":
    app()
