"""Command-line interface for commitclock."""

import asyncio
import json
from typing import Optional, Tuple, Type, TypeVar

import typer
from pydantic import ValidationError
from pydantic_settings import BaseSettings
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from commitclock.analysis import AnalysisService
from commitclock.errors import (
    AuthenticationMissingError,
    ClassificationError,
    CommitClockError,
    ConfigurationError,
    PredictionError,
    RemoteApiError,
    RemoteNotFoundError,
    SyncError,
)
from commitclock.incremental import SyncController, get_status
from commitclock.llm import OpenAIProvider
from commitclock.logging_config import configure_logging
from commitclock.models import AttributionConfig, LLMConfig, Settings, SyncConfig, SyncMode, SyncPlan
from commitclock.remote import GitHubClient
from commitclock.storage import CommitStore, StoreConfig

app = typer.Typer(
    name="commitclock",
    help="Mirror GitHub commit history and estimate the work time behind each feature",
    add_completion=False,
)
console = Console()

EXIT_UNEXPECTED = 1
EXIT_CONFIG = 2
EXIT_AUTH = 3
EXIT_REMOTE = 4
EXIT_ANALYSIS = 5
EXIT_PARTIAL = 6

ConfigT = TypeVar("ConfigT", bound=BaseSettings)


def _exit_code(error: Exception) -> int:
    if isinstance(error, ConfigurationError):
        return EXIT_CONFIG
    if isinstance(error, AuthenticationMissingError):
        return EXIT_AUTH
    if isinstance(error, (RemoteNotFoundError, RemoteApiError, SyncError)):
        return EXIT_REMOTE
    if isinstance(error, (ClassificationError, PredictionError)):
        return EXIT_ANALYSIS
    return EXIT_UNEXPECTED


def _fail(error: Exception) -> None:
    console.print(f"[bold red]Error:[/bold red] {escape(str(error))}")
    raise typer.Exit(_exit_code(error))


def _load(config_cls: Type[ConfigT]) -> ConfigT:
    try:
        return config_cls()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid {config_cls.__name__}: {e}") from e


def _split_project(project: str) -> Tuple[str, str]:
    owner, _, repo = project.strip().partition("/")
    if not owner or not repo or "/" in repo:
        raise ConfigurationError(f"Expected OWNER/REPO, got {project!r}")
    return owner, repo


def _build_client(settings: Settings, sync_config: SyncConfig) -> GitHubClient:
    if not settings.github_token:
        raise AuthenticationMissingError("GITHUB_TOKEN is not set")
    return GitHubClient(settings.github_token, timeout_seconds=sync_config.request_timeout_seconds)


def _build_provider(settings: Settings, llm_config: LLMConfig) -> OpenAIProvider:
    if not settings.openai_api_key:
        raise ConfigurationError("OPENAI_API_KEY is not set")
    return OpenAIProvider(api_key=settings.openai_api_key, model=llm_config.model)


@app.callback()
def main_callback(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Log level (defaults to LOG_LEVEL or INFO)"),
) -> None:
    """Configure logging before any command runs."""
    level = log_level
    if level is None:
        try:
            level = Settings().log_level
        except ValidationError:
            level = "INFO"
    configure_logging(level)


@app.command()
def repos() -> None:
    """List repositories the token owner can access."""
    try:
        settings = _load(Settings)
        client = _build_client(settings, _load(SyncConfig))

        repositories = client.list_user_repositories()
        if not repositories:
            console.print("[yellow]No repositories found[/yellow]")
            return

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Repository", style="cyan")
        table.add_column("Language", style="green")
        table.add_column("Private", justify="center")
        table.add_column("Updated", style="blue")

        for repository in repositories:
            table.add_row(
                repository.full_name,
                repository.language or "-",
                "yes" if repository.private else "no",
                repository.updated_at.strftime("%Y-%m-%d") if repository.updated_at else "-",
            )

        console.print(table)

    except CommitClockError as e:
        _fail(e)
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(EXIT_UNEXPECTED)


@app.command()
def sync(
    project: str = typer.Argument(..., help="Repository as OWNER/REPO"),
    full: bool = typer.Option(False, "--full", help="Walk the whole history without a lower bound"),
    strict: bool = typer.Option(False, "--strict", help="Exit non-zero when the pass was partial"),
) -> None:
    """Mirror new commits of a repository into the local store."""
    try:
        owner, repo = _split_project(project)
        settings = _load(Settings)
        sync_config = _load(SyncConfig)
        client = _build_client(settings, sync_config)
        store_config = _load(StoreConfig)
        mode = SyncMode.FULL if full else SyncMode.INCREMENTAL

        async def sync_async():
            async with await CommitStore.open(store_config) as store:
                controller = SyncController(client, store, sync_config)
                return await controller.sync_project(owner, repo, mode=mode)

        console.print(f"[bold green]Syncing:[/bold green] {owner}/{repo} ({mode.value})")
        stats = asyncio.run(sync_async())

        if stats.plan == SyncPlan.NOOP:
            console.print("[green]✓ Up to date - synced within the freshness window[/green]")
            return

        console.print(f"[cyan]Plan:[/cyan] {stats.plan.value}")
        console.print(f"[cyan]Pages fetched:[/cyan] {stats.pages_fetched}")
        console.print(f"[cyan]Commits fetched:[/cyan] {stats.total_fetched}")
        console.print(f"[cyan]Saved:[/cyan] {stats.saved}")
        console.print(f"[cyan]Already stored:[/cyan] {stats.skipped}")
        if stats.watermark:
            console.print(f"[cyan]Watermark:[/cyan] {stats.watermark.isoformat()}")

        if stats.duplicates:
            console.print(f"[cyan]Listed twice:[/cyan] {stats.duplicates}")

        if stats.partial:
            if stats.failed:
                console.print(f"\n[yellow]⚠ Partial sync: {stats.failed} commit(s) failed[/yellow]")
                for sha in stats.failed_shas:
                    console.print(f"  [dim]{sha[:8]}[/dim]")
                if stats.error:
                    console.print(f"[yellow]{escape(stats.error)}[/yellow]")
            else:
                console.print(f"\n[yellow]⚠ Partial sync: {escape(stats.error or 'listing stopped early')}[/yellow]")
        else:
            console.print("\n[bold green]✓ Sync complete![/bold green]")

        if stats.needs_full_sync:
            console.print(f"[dim]History not yet complete. Run 'commitclock sync {owner}/{repo} --full'.[/dim]")

        if strict and stats.partial:
            raise typer.Exit(EXIT_PARTIAL)

    except CommitClockError as e:
        _fail(e)
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(EXIT_UNEXPECTED)


@app.command()
def commits(
    project: str = typer.Argument(..., help="Repository as OWNER/REPO"),
    limit: int = typer.Option(50, "--limit", "-n", help="Number of newest commits to show"),
) -> None:
    """Sync if stale, then list the newest stored commits."""
    try:
        owner, repo = _split_project(project)
        settings = _load(Settings)
        sync_config = _load(SyncConfig)
        client = _build_client(settings, sync_config)
        store_config = _load(StoreConfig)

        async def list_async():
            async with await CommitStore.open(store_config) as store:
                controller = SyncController(client, store, sync_config)
                stats = await controller.sync_project(owner, repo)
                project_record = await store.get_project_by_name(f"{owner}/{repo}")
                if project_record is None:
                    return stats, []
                return stats, await store.list_by_project(project_record.id, order="desc", limit=limit)

        stats, stored = asyncio.run(list_async())

        if stats.partial:
            console.print("[yellow]⚠ Sync was partial; showing stored commits[/yellow]")

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("SHA", style="cyan", width=10)
        table.add_column("Date", style="blue")
        table.add_column("Message", style="white")
        table.add_column("+/-", justify="right", style="yellow")
        table.add_column("Files", justify="right", style="yellow")

        for commit in stored:
            table.add_row(
                commit.sha[:8],
                commit.authored_at.strftime("%Y-%m-%d %H:%M"),
                escape(commit.summary[:70]),
                f"+{commit.additions}/-{commit.deletions}",
                str(commit.files_changed),
            )

        console.print(table)
        console.print(f"\n[dim]{len(stored)} commit(s)[/dim]")

    except CommitClockError as e:
        _fail(e)
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(EXIT_UNEXPECTED)


@app.command()
def analyze(
    project: str = typer.Argument(..., help="Repository as OWNER/REPO"),
    as_json: bool = typer.Option(False, "--json", help="Print features as JSON"),
) -> None:
    """Group stored commits into features and estimate their work time."""
    try:
        owner, repo = _split_project(project)
        settings = _load(Settings)
        llm_config = _load(LLMConfig)
        attribution_config = _load(AttributionConfig)
        store_config = _load(StoreConfig)
        provider = _build_provider(settings, llm_config)

        async def analyze_async():
            async with await CommitStore.open(store_config) as store:
                service = AnalysisService(store, provider, attribution_config, llm_config)
                return await service.analyze_project(owner, repo)

        analysis = asyncio.run(analyze_async())

        if as_json:
            features = [
                {
                    "featureName": feature.name,
                    "commits": [commit.sha for commit in feature.commits],
                    "actualWorkHours": round(feature.actual_work_hours, 2),
                    "totalElapsedHours": round(feature.total_elapsed_hours, 2),
                }
                for feature in analysis.features
            ]
            typer.echo(json.dumps(features, indent=2))
            return

        if not analysis.features:
            console.print("[yellow]No commits to analyze. Run 'commitclock sync' first.[/yellow]")
            return

        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("Feature", overflow="fold")
        table.add_column("Commits", justify="right")
        table.add_column("Work (h)", justify="right", style="green")
        table.add_column("Elapsed (h)", justify="right", style="blue")

        for feature in analysis.features:
            table.add_row(
                escape(feature.name),
                str(len(feature.commits)),
                f"{feature.actual_work_hours:.2f}",
                f"{feature.total_elapsed_hours:.2f}",
            )

        console.print(table)
        total = sum(feature.actual_work_hours for feature in analysis.features)
        console.print(f"\n[bold]Total work:[/bold] {total:.2f} h over {len(analysis.commits)} commit(s)")

    except CommitClockError as e:
        _fail(e)
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(EXIT_UNEXPECTED)


@app.command()
def predict(
    project: str = typer.Argument(..., help="Repository as OWNER/REPO"),
    description: str = typer.Argument(..., help="Description of the new feature"),
) -> None:
    """Predict the work time of a new feature from the project's history."""
    try:
        owner, repo = _split_project(project)
        settings = _load(Settings)
        llm_config = _load(LLMConfig)
        attribution_config = _load(AttributionConfig)
        store_config = _load(StoreConfig)
        provider = _build_provider(settings, llm_config)

        async def predict_async():
            async with await CommitStore.open(store_config) as store:
                service = AnalysisService(store, provider, attribution_config, llm_config)
                return await service.predict_effort(owner, repo, description)

        prediction = asyncio.run(predict_async())

        console.print(f"[bold green]Predicted work time:[/bold green] {prediction.predicted_hours:.1f} h")
        console.print(f"[cyan]Reason:[/cyan] {escape(prediction.reason)}")

    except CommitClockError as e:
        _fail(e)
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(EXIT_UNEXPECTED)


@app.command()
def status(
    project: str = typer.Argument(..., help="Repository as OWNER/REPO"),
) -> None:
    """Show the local sync state of a repository."""
    try:
        owner, repo = _split_project(project)
        sync_config = _load(SyncConfig)
        store_config = _load(StoreConfig)

        async def status_async():
            async with await CommitStore.open(store_config) as store:
                return await get_status(store, owner, repo, sync_config)

        status_info = asyncio.run(status_async())

        console.print("\n[bold]Repository Sync Status[/bold]")
        console.print(f"[cyan]Repository:[/cyan] {owner}/{repo}")

        if status_info is None:
            console.print("\n[yellow]This repository has not been synced yet.[/yellow]")
            console.print(f"\n[dim]Run 'commitclock sync {owner}/{repo}' to sync it.[/dim]")
            return

        watermark = status_info.project.last_sync_watermark
        console.print(f"[cyan]State:[/cyan] {status_info.state.value}")
        console.print(f"[cyan]Commits stored:[/cyan] {status_info.commits_stored}")
        console.print(f"[cyan]Watermark:[/cyan] {watermark.isoformat() if watermark else 'none'}")

        if status_info.needs_full_sync:
            console.print("\n[yellow]⚠ History not yet known complete[/yellow]")
            console.print(f"[dim]Run 'commitclock sync {owner}/{repo} --full'.[/dim]")

    except CommitClockError as e:
        _fail(e)
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(EXIT_UNEXPECTED)


@app.command()
def version() -> None:
    """Show version information."""
    from commitclock import __version__

    console.print(f"[bold]commitclock[/bold] version {__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
