"""CLI entry point for Gatehouse."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated, Optional

import typer
import yaml
from rich import print as rprint
from rich.syntax import Syntax
from rich.table import Table

from gatehouse.acl import Acl
from gatehouse.config import GatehouseConfig, load_config
from gatehouse.config.loader import DEFAULT_CONFIG_TEMPLATE
from gatehouse.interfaces import BucketStore
from gatehouse.log import configure_logging
from gatehouse.plugins import create_store

app = typer.Typer(
    name="gatehouse",
    help="Role-based access control over a pluggable bucket store.",
)

config_app = typer.Typer(help="Manage Gatehouse configuration.")
app.add_typer(config_app, name="config")

# Global state
_config: GatehouseConfig | None = None


def _get_config() -> GatehouseConfig:
    if _config is None:
        return load_config()
    return _config


@contextmanager
def _open_store() -> Iterator[BucketStore]:
    """Configured store, closed on exit when the backend holds a connection."""
    store = create_store(_get_config())
    try:
        yield store
    finally:
        close = getattr(store, "close", None)
        if callable(close):
            close()


@contextmanager
def _open_acl() -> Iterator[Acl]:
    with _open_store() as store:
        yield Acl.from_config(store, _get_config())


def _fmt(values: set[str]) -> str:
    return ", ".join(sorted(values)) if values else "-"


@app.callback()
def main(
    config: Annotated[
        Optional[str], typer.Option("--config", "-c", help="Path to gatehouse.yaml")
    ] = None,
) -> None:
    """Global options."""
    global _config
    _config = load_config(config)
    configure_logging(_config)


# ---------------------------------------------------------------------------
# Grants
# ---------------------------------------------------------------------------


@app.command()
def allow(
    role: str = typer.Argument(..., help="Role receiving the grant"),
    resource: str = typer.Argument(..., help="Resource the grant applies to"),
    permissions: list[str] = typer.Argument(..., help="Permissions to grant ('*' for all)"),
) -> None:
    """Grant permissions to a role over a resource."""
    with _open_acl() as acl:
        acl.allow(role, resource, permissions)
    rprint(f"[green]Allowed[/green] {_fmt(set(permissions))} on [cyan]{resource}[/cyan] for {role}")


@app.command()
def revoke(
    role: str = typer.Argument(..., help="Role losing the grant"),
    resource: str = typer.Argument(..., help="Resource the grant applies to"),
    permissions: Optional[list[str]] = typer.Argument(
        None, help="Permissions to revoke (all when omitted)"
    ),
) -> None:
    """Revoke some or all permissions of a role over a resource."""
    with _open_acl() as acl:
        acl.remove_allow(role, resource, permissions or None)
    what = _fmt(set(permissions)) if permissions else "all permissions"
    rprint(f"[green]Revoked[/green] {what} on [cyan]{resource}[/cyan] from {role}")


# ---------------------------------------------------------------------------
# Membership and hierarchy
# ---------------------------------------------------------------------------


@app.command("grant-role")
def grant_role(
    user: str = typer.Argument(..., help="User id"),
    roles: list[str] = typer.Argument(..., help="Roles to assign"),
) -> None:
    """Assign roles to a user."""
    with _open_acl() as acl:
        acl.add_user_roles(user, roles)
    rprint(f"[green]Assigned[/green] {_fmt(set(roles))} to {user}")


@app.command("revoke-role")
def revoke_role(
    user: str = typer.Argument(..., help="User id"),
    roles: list[str] = typer.Argument(..., help="Roles to take away"),
) -> None:
    """Take roles away from a user."""
    with _open_acl() as acl:
        acl.remove_user_roles(user, roles)
    rprint(f"[green]Removed[/green] {_fmt(set(roles))} from {user}")


@app.command("add-parents")
def add_parents(
    role: str = typer.Argument(..., help="Child role"),
    parents: list[str] = typer.Argument(..., help="Parent roles to inherit from"),
) -> None:
    """Make a role inherit the grants of its parents."""
    with _open_acl() as acl:
        acl.add_role_parents(role, parents)
    rprint(f"[green]{role}[/green] now inherits from {_fmt(set(parents))}")


@app.command("remove-parents")
def remove_parents(
    role: str = typer.Argument(..., help="Child role"),
    parents: Optional[list[str]] = typer.Argument(None, help="Parents to drop (all when omitted)"),
) -> None:
    """Stop a role inheriting from some or all of its parents."""
    with _open_acl() as acl:
        acl.remove_role_parents(role, parents or None)
    rprint(f"[green]Updated[/green] parents of {role}")


@app.command("remove-role")
def remove_role(role: str = typer.Argument(..., help="Role to remove")) -> None:
    """Remove a role and its grants. User assignments are kept."""
    with _open_acl() as acl:
        acl.remove_role(role)
    rprint(f"[green]Removed[/green] role {role}")


@app.command("remove-resource")
def remove_resource(resource: str = typer.Argument(..., help="Resource to remove")) -> None:
    """Remove every grant on a resource."""
    with _open_acl() as acl:
        acl.remove_resource(resource)
    rprint(f"[green]Removed[/green] resource {resource}")


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


@app.command()
def check(
    user: str = typer.Argument(..., help="User id"),
    resource: str = typer.Argument(..., help="Resource to check"),
    permissions: list[str] = typer.Argument(..., help="Permissions that must all be held"),
) -> None:
    """Exit 0 if the user holds every permission on the resource, 1 otherwise."""
    with _open_acl() as acl:
        allowed = acl.is_allowed(user, resource, permissions)
    if allowed:
        rprint(f"[green]allowed[/green] {user} {_fmt(set(permissions))} on {resource}")
        return
    rprint(f"[red]denied[/red] {user} {_fmt(set(permissions))} on {resource}")
    raise typer.Exit(1)


@app.command()
def roles(user: str = typer.Argument(..., help="User id")) -> None:
    """List the roles assigned directly to a user."""
    with _open_acl() as acl:
        assigned = acl.user_roles(user)
    if not assigned:
        rprint(f"[yellow]No roles for '{user}'.[/yellow]")
        raise typer.Exit(0)
    for role in sorted(assigned):
        rprint(role)


@app.command()
def users(role: str = typer.Argument(..., help="Role name")) -> None:
    """List the users assigned directly to a role."""
    with _open_acl() as acl:
        members = acl.role_users(role)
    if not members:
        rprint(f"[yellow]No users for '{role}'.[/yellow]")
        raise typer.Exit(0)
    for user in sorted(members):
        rprint(user)


@app.command()
def resources(
    roles: list[str] = typer.Argument(..., help="Roles to inspect"),
    permission: Optional[list[str]] = typer.Option(
        None, "--permission", "-p", help="Only resources granting any of these"
    ),
) -> None:
    """Show the resources a set of roles can reach, with inherited permissions."""
    with _open_acl() as acl:
        found = acl.what_resources(roles, permission or None)

    if permission:
        for resource in sorted(found):
            rprint(resource)
        return

    if not found:
        rprint(f"[yellow]No resources for {_fmt(set(roles))}.[/yellow]")
        raise typer.Exit(0)

    table = Table(title=f"Resources ({len(found)})")
    table.add_column("resource", style="cyan")
    table.add_column("permissions", style="green")
    for resource, perms in sorted(found.items()):
        table.add_row(resource, _fmt(perms))
    rprint(table)


@app.command()
def permissions(
    user: str = typer.Argument(..., help="User id"),
    resources: list[str] = typer.Argument(..., help="Resources to inspect"),
) -> None:
    """Show every permission a user holds on the given resources."""
    with _open_acl() as acl:
        allowed = acl.allowed_permissions(user, resources)

    table = Table(title=f"Permissions: {user}")
    table.add_column("resource", style="cyan")
    table.add_column("permissions", style="green")
    for resource, perms in sorted(allowed.items()):
        table.add_row(resource, _fmt(perms))
    rprint(table)


@app.command()
def status() -> None:
    """Show key counts per bucket."""
    with _open_store() as store:
        stats = store.stats() if hasattr(store, "stats") else {}

    table = Table(title="Store Stats")
    table.add_column("bucket", style="cyan")
    table.add_column("keys", justify="right", style="green")
    for bucket, count in stats.items():
        table.add_row(bucket, str(count))
    rprint(table)


@app.command()
def reset(
    yes: bool = typer.Option(False, "--yes", help="Confirm wiping the store"),
) -> None:
    """Delete everything in the configured store."""
    if not yes:
        rprint("[yellow]Refusing to wipe the store without --yes.[/yellow]")
        raise typer.Exit(1)
    with _open_store() as store:
        store.clean()
    rprint("[green]Store cleared.[/green]")


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show() -> None:
    """Show current resolved configuration."""
    cfg = _get_config()
    rprint(Syntax(yaml.dump(cfg.model_dump(), default_flow_style=False), "yaml"))


@config_app.command("init")
def config_init(
    force: bool = typer.Option(False, "--force", help="Overwrite existing config"),
) -> None:
    """Create default gatehouse.yaml in current directory."""
    target = Path("gatehouse.yaml")
    if target.exists() and not force:
        rprint("[yellow]gatehouse.yaml already exists.[/yellow] Use --force to overwrite.")
        raise typer.Exit(1)
    target.write_text(DEFAULT_CONFIG_TEMPLATE)
    rprint(f"[green]Created[/green] {target}")
