"""Command-line interface for the AI feature circuit breaker."""

import json
from pathlib import Path
from typing import Optional
import typer
from rich.console import Console
from rich.table import Table

from .circuit_breaker import CircuitBreakerRegistry
from .config import GuardConfig, configure_logging
from .config import load_config as read_config
from .guard import format_time_remaining
from .models import CircuitState
from .storage import create_storage

app = typer.Typer(
    name="feature-breaker",
    help="Circuit breaker state for AI-backed CRM features"
)
console = Console()

STATE_STYLES = {
    CircuitState.CLOSED: "green",
    CircuitState.HALF_OPEN: "yellow",
    CircuitState.OPEN: "red",
}


def load_config(config_path: str) -> GuardConfig:
    """Load configuration from JSON file."""
    if not Path(config_path).exists():
        console.print(f"[red]Error: Config file not found: {config_path}[/red]")
        raise typer.Exit(1)
    return read_config(config_path)


def open_registry(config_path: str) -> tuple[GuardConfig, CircuitBreakerRegistry]:
    """Load config and the persisted registry it points at."""
    cfg = load_config(config_path)
    configure_logging(cfg.logging)
    if cfg.storage.backend == "memory":
        console.print("[yellow]⚠ Storage backend is 'memory'; nothing persists between runs.[/yellow]")
    try:
        storage = create_storage(cfg.storage)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    registry = CircuitBreakerRegistry(config=cfg.breaker, storage=storage)
    registry.init()
    return cfg, registry


def print_feature(registry: CircuitBreakerRegistry, feature: str) -> None:
    status = registry.feature_status(feature)
    style = STATE_STYLES[status.status.state]
    console.print(f"[bold]{feature}[/bold]: [{style}]{status.status.state.value}[/{style}]"
                  f" (failures: {status.status.failures})")


@app.command()
def init(
    output: str = typer.Option("breaker.json", help="Output configuration file path")
):
    """Initialize a new configuration file with example values."""
    example_config = GuardConfig.model_config["json_schema_extra"]["example"]

    output_path = Path(output)
    with open(output_path, 'w') as f:
        json.dump(example_config, f, indent=2)

    console.print(f"[green]✓[/green] Configuration file created: {output}")


@app.command()
def validate(
    config: str = typer.Option("breaker.json", help="Configuration file path"),
):
    """Validate configuration file."""
    try:
        cfg = load_config(config)
        console.print("[green]✓[/green] Configuration is valid!")
        console.print(f"\n[bold]Storage:[/bold] {cfg.storage.backend} {cfg.storage.path or ''}")
        console.print(f"[bold]Failure threshold:[/bold] {cfg.breaker.failure_threshold}")
        console.print(f"[bold]Cooldown:[/bold] {cfg.breaker.cooldown_period_ms} ms")
        console.print(f"[bold]Features:[/bold] {', '.join(cfg.features) or '-'}")
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[red]✗ Configuration error:[/red] {str(e)}")
        raise typer.Exit(1)


@app.command()
def status(
    feature: Optional[str] = typer.Argument(None, help="Show a single feature"),
    config: str = typer.Option("breaker.json", help="Configuration file path"),
):
    """Show circuit state for all known features."""
    cfg, registry = open_registry(config)
    names = [feature] if feature else list(dict.fromkeys(cfg.features + sorted(registry.features())))

    table = Table(title="AI Feature Circuits")
    table.add_column("Feature", style="cyan")
    table.add_column("State")
    table.add_column("Failures", justify="right", style="magenta")
    table.add_column("Retry in", justify="right")
    table.add_column("Available", justify="center")

    for name in names:
        current = registry.feature_status(name)
        style = STATE_STYLES[current.status.state]
        remaining = current.time_until_retry
        table.add_row(
            name,
            f"[{style}]{current.status.state.value}[/{style}]",
            str(current.status.failures),
            format_time_remaining(remaining) if remaining else "-",
            "[red]no[/red]" if current.is_disabled else "[green]yes[/green]",
        )

    console.print(table)


@app.command()
def reset(
    feature: str = typer.Argument(..., help="Feature name"),
    config: str = typer.Option("breaker.json", help="Configuration file path"),
):
    """Close a feature's circuit, as if a call had succeeded."""
    _, registry = open_registry(config)
    registry.record_success(feature)
    console.print("[green]✓[/green] Circuit reset")
    print_feature(registry, feature)


@app.command()
def fail(
    feature: str = typer.Argument(..., help="Feature name"),
    config: str = typer.Option("breaker.json", help="Configuration file path"),
):
    """Record a failure for a feature."""
    _, registry = open_registry(config)
    registry.record_failure(feature)
    print_feature(registry, feature)


@app.command()
def sweep(
    config: str = typer.Option("breaker.json", help="Configuration file path"),
):
    """Move open circuits whose cooldown has elapsed to half-open."""
    _, registry = open_registry(config)
    promoted = registry.sweep()
    if not promoted:
        console.print("No circuits ready for a probe.")
        return
    for name in promoted:
        print_feature(registry, name)


@app.command()
def serve(
    config: str = typer.Option("breaker.json", help="Configuration file path"),
    host: str = typer.Option("0.0.0.0", help="Host to bind to"),
    port: int = typer.Option(8000, help="Port to bind to"),
):
    """Start the circuit status server."""
    from .server import create_app
    import uvicorn

    cfg = load_config(config)
    configure_logging(cfg.logging)
    status_app = create_app(cfg)

    console.print(f"[green]Starting circuit status server on {host}:{port}[/green]")
    console.print(f"[blue]Status endpoint: http://{host}:{port}/circuits[/blue]")

    uvicorn.run(status_app, host=host, port=port)


if __name__ == "__main__":
    app()
