"""Space Operator CLI (spacectl).

Thin host around the reconciler: loads the desired spec and the last observed
state, runs one lifecycle operation, and persists whatever state comes back.

Usage:
    spacectl plan space.yaml --state space.state.json
    spacectl apply space.yaml --state space.state.json
    spacectl refresh --state space.state.json
    spacectl destroy --state space.state.json
    spacectl import alice/demo --state space.state.json
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import click

from .client import HubClient
from .config import Config, ConfigurationError
from .errors import APIError, SpaceOperationError
from .main import setup_logging
from .models import ObservedState
from .reconciler import SpaceReconciler
from .spec_loader import SpecLoadError, load_spec
from .state_store import StateFileError, load_state, remove_state, save_state

DEFAULT_STATE_FILE = "space.state.json"

state_option = click.option(
    "--state",
    "state_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_STATE_FILE,
    show_default=True,
    help="Observed state file.",
)


@contextmanager
def _reconciler(config: Config) -> Iterator[SpaceReconciler]:
    with HubClient(config) as client:
        yield SpaceReconciler(client)


def _load_tracked(state_path: Path) -> ObservedState:
    try:
        state = load_state(state_path)
    except StateFileError as e:
        raise click.ClickException(str(e)) from e
    if state is None:
        raise click.ClickException(f"No space tracked in {state_path}")
    return state


def _save(state_path: Path, state: ObservedState) -> None:
    try:
        save_state(state_path, state)
    except StateFileError as e:
        raise click.ClickException(str(e)) from e


def _remove(state_path: Path) -> None:
    try:
        remove_state(state_path)
    except StateFileError as e:
        raise click.ClickException(str(e)) from e


def _echo_plan(steps: list[str]) -> None:
    if not steps:
        click.echo("No changes. Space is up to date.")
        return
    click.echo("Planned changes, in order:")
    for step in steps:
        click.echo(f"  ~ {step}")


# =============================================================================
# Main CLI Group
# =============================================================================


@click.group()
@click.version_option(version="0.1.0", prog_name="spacectl")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Space Operator CLI (spacectl).

    Converges a Hub space to the configuration declared in a YAML spec.

    \b
    Environment:
        HF_TOKEN          Hub access token
        HF_ENDPOINT       Hub base URL
        REQUEST_TIMEOUT   Per-request timeout in seconds
    """
    try:
        config = Config.from_env()
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e

    setup_logging(config.log_level_number, json_output=config.enable_json_logging)
    ctx.obj = config


@cli.command()
@click.argument("spec_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@state_option
@click.pass_obj
def plan(config: Config, spec_file: Path, state_path: Path) -> None:
    """Show which changes apply would make."""
    try:
        desired = load_spec(spec_file)
        observed = load_state(state_path)
    except (SpecLoadError, StateFileError) as e:
        raise click.ClickException(str(e)) from e

    if observed is None:
        click.echo(f"Space '{desired.name}' will be created.")
        return

    with _reconciler(config) as reconciler:
        _echo_plan(reconciler.plan(desired, observed))


@cli.command()
@click.argument("spec_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@state_option
@click.option("--dry-run", is_flag=True, default=False, help="Plan only, apply nothing.")
@click.pass_obj
def apply(config: Config, spec_file: Path, state_path: Path, dry_run: bool) -> None:
    """Create the space, or converge it to the spec."""
    try:
        desired = load_spec(spec_file)
        observed = load_state(state_path)
    except (SpecLoadError, StateFileError) as e:
        raise click.ClickException(str(e)) from e

    dry_run = dry_run or config.dry_run

    with _reconciler(config) as reconciler:
        if observed is None:
            if dry_run:
                click.echo(f"Space '{desired.name}' would be created.")
                return
            try:
                state = reconciler.create(desired)
            except SpaceOperationError as e:
                raise click.ClickException(str(e)) from e
            _save(state_path, state)
            click.secho(f"Created space {state.id}", fg="green")
            return

        if dry_run:
            _echo_plan(reconciler.plan(desired, observed))
            return

        try:
            state = reconciler.update(desired, observed)
        except SpaceOperationError as e:
            if e.partial_state is not None:
                _save(state_path, e.partial_state)
            raise click.ClickException(str(e)) from e

    _save(state_path, state)
    click.secho(f"Space {state.id} is up to date", fg="green")


@cli.command()
@state_option
@click.pass_obj
def refresh(config: Config, state_path: Path) -> None:
    """Refresh tracked state from the Hub."""
    observed = _load_tracked(state_path)

    with _reconciler(config) as reconciler:
        try:
            state = reconciler.read(observed.id, prior=observed)
        except APIError as e:
            if not e.not_found:
                raise click.ClickException(str(e)) from e
            _remove(state_path)
            click.echo(f"Space {observed.id} no longer exists, stopped tracking it.")
            return
        except SpaceOperationError as e:
            raise click.ClickException(str(e)) from e

    _save(state_path, state)
    click.echo(f"Refreshed space {state.id}")


@cli.command()
@state_option
@click.confirmation_option(prompt="Delete the space? This cannot be undone.")
@click.pass_obj
def destroy(config: Config, state_path: Path) -> None:
    """Delete the tracked space."""
    observed = _load_tracked(state_path)

    with _reconciler(config) as reconciler:
        try:
            reconciler.delete(observed)
        except SpaceOperationError as e:
            raise click.ClickException(str(e)) from e

    _remove(state_path)
    click.secho(f"Deleted space {observed.id}", fg="yellow")


@cli.command("import")
@click.argument("space_id")
@state_option
@click.pass_obj
def import_space(config: Config, space_id: str, state_path: Path) -> None:
    """Start tracking an existing space."""
    try:
        if load_state(state_path) is not None:
            raise click.ClickException(f"{state_path} already tracks a space")
        imported = SpaceReconciler.import_state(space_id)
    except StateFileError as e:
        raise click.ClickException(str(e)) from e
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="SPACE_ID") from e

    with _reconciler(config) as reconciler:
        try:
            state = reconciler.read(imported.id, prior=imported)
        except SpaceOperationError as e:
            raise click.ClickException(str(e)) from e

    _save(state_path, state)
    click.echo(f"Imported space {state.id}")
