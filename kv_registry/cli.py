"""Command-line explorer for registered service instances.

Lists or watches the live instances of a service straight from the
registry store, without registering anything itself.
"""

from __future__ import annotations

import asyncio
from datetime import datetime

import click
from pydantic import BaseModel, ValidationError
from rich.console import Console
from rich.table import Table

from .application.change_detection import ChangeWatcher, SnapshotDiff
from .domain.exceptions import ContextError, RegistryError
from .domain.models import ServiceInstance
from .infrastructure.config import RedisConnectionConfig, RegistryConfig
from .infrastructure.factories import create_redis_registry
from .infrastructure.kv_service_registry import KVServiceRegistry


def build_instance_table(service_name: str, instances: list[ServiceInstance]) -> Table:
    """Render a snapshot as a rich table."""
    table = Table(
        title=f"{service_name} ({len(instances)} instances)",
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("Instance ID", style="cyan")
    table.add_column("Version", style="green")
    table.add_column("Endpoints")
    table.add_column("Metadata", style="dim")

    for instance in sorted(instances, key=lambda i: i.id):
        metadata = ", ".join(f"{k}={v}" for k, v in sorted(instance.metadata.items()))
        table.add_row(
            instance.id,
            instance.version or "-",
            "\n".join(instance.endpoints) or "-",
            metadata or "-",
        )
    return table


def describe_diff(diff: SnapshotDiff) -> list[str]:
    """One line per change in a diff."""
    lines = [f"[green]+ {i.id}[/green]" for i in diff.added]
    lines += [f"[red]- {i.id}[/red]" for i in diff.removed]
    lines += [f"[yellow]~ {i.id}[/yellow]" for i in diff.updated]
    return lines


def _validated(model: type[BaseModel], field: str):
    """Click callback checking an option against a config model field."""

    def callback(ctx: click.Context, param: click.Parameter, value: str) -> str:
        try:
            model(**{field: value})
        except ValidationError as e:
            message = e.errors()[0]["msg"]
            raise click.BadParameter(message) from e
        return value

    return callback


def _make_registry(
    redis_url: str, namespace: str, interval: float | None = None
) -> KVServiceRegistry:
    registry_config = RegistryConfig(namespace=namespace)
    if interval is not None:
        registry_config.watcher_ttl = interval
    return create_redis_registry(RedisConnectionConfig(url=redis_url), registry_config)


async def _list(console: Console, registry: KVServiceRegistry, service_name: str) -> None:
    try:
        instances = await registry.get_service(service_name)
    finally:
        await registry.kv_store.close()
    console.print(build_instance_table(service_name, instances))


async def _watch(
    console: Console,
    registry: KVServiceRegistry,
    service_name: str,
    count: int | None,
    timeout: float | None,
) -> None:
    watcher = ChangeWatcher(await registry.watch(service_name, timeout=timeout))
    shown = 0
    try:
        while count is None or shown < count:
            snapshot, diff = await watcher.next()
            timestamp = datetime.now().strftime("%H:%M:%S")
            console.print(f"\n[dim]{timestamp}[/dim] Changes detected:")
            for line in describe_diff(diff):
                console.print(f"  {line}")
            console.print(build_instance_table(service_name, snapshot))
            shown += 1
    except ContextError:
        console.print("\n[yellow]Watch ended[/yellow]")
    finally:
        await watcher.stop()
        await registry.kv_store.close()


@click.group()
@click.option(
    "--redis-url",
    envvar="KV_REGISTRY_REDIS_URL",
    default="redis://localhost:6379/0",
    show_default=True,
    callback=_validated(RedisConnectionConfig, "url"),
    help="Redis connection URL",
)
@click.option(
    "--namespace",
    envvar="KV_REGISTRY_NAMESPACE",
    default="/microservices",
    show_default=True,
    callback=_validated(RegistryConfig, "namespace"),
    help="Registry key namespace",
)
@click.pass_context
def main(ctx: click.Context, redis_url: str, namespace: str) -> None:
    """Explore service instances registered in a KV store."""
    ctx.ensure_object(dict)
    ctx.obj["redis_url"] = redis_url
    ctx.obj["namespace"] = namespace
    ctx.obj["console"] = Console()


@main.command("list")
@click.argument("service_name")
@click.pass_context
def list_command(ctx: click.Context, service_name: str) -> None:
    """List the live instances of SERVICE_NAME."""
    console: Console = ctx.obj["console"]
    registry = _make_registry(ctx.obj["redis_url"], ctx.obj["namespace"])
    try:
        asyncio.run(_list(console, registry, service_name))
    except RegistryError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise SystemExit(1) from e


@main.command("watch")
@click.argument("service_name")
@click.option(
    "--interval",
    type=click.FloatRange(min=0, min_open=True),
    default=5.0,
    show_default=True,
    help="Poll period in seconds",
)
@click.option(
    "--count", type=click.IntRange(min=1), default=None, help="Stop after this many changes"
)
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Stop watching after this many seconds",
)
@click.pass_context
def watch_command(
    ctx: click.Context,
    service_name: str,
    interval: float,
    count: int | None,
    timeout: float | None,
) -> None:
    """Print SERVICE_NAME's instances every time they change."""
    console: Console = ctx.obj["console"]
    registry = _make_registry(ctx.obj["redis_url"], ctx.obj["namespace"], interval)
    console.print("[yellow]Watching service (Ctrl+C to stop)...[/yellow]")
    try:
        asyncio.run(_watch(console, registry, service_name, count, timeout))
    except KeyboardInterrupt:
        console.print("\n[yellow]Watch mode stopped[/yellow]")
    except RegistryError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise SystemExit(1) from e


if __name__ == "__main__":
    main()
