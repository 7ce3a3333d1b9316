import asyncio
from typing import List, Optional

import typer
from dotenv import load_dotenv
from rich import print
from rich.table import Table

from linkgraph.models.filters import LinkFilters
from linkgraph.services.builtin_providers import register_builtin_providers
from linkgraph.services.config import configure_logging, get_config
from linkgraph.services.database import DatabaseService
from linkgraph.services.enrichment import EnrichmentRegistry
from linkgraph.services.link_graph import LinkGraphService

APP_HELP = """
linkgraph: explore the link graph of an indexed org/markdown corpus.

Reads the SQLite link index (files, headings, links) and answers
"show me what is connected to this file" queries, filtered by tags,
TODO state, deadlines and modification time.

Configuration comes from the environment (or a .env file):
LINKGRAPH_DB_PATH, GRAPH_DEFAULT_DEPTH, GRAPH_MAX_NODES, ...
"""

app = typer.Typer(name="linkgraph", help=APP_HELP, no_args_is_help=True)


def _service() -> LinkGraphService:
    config = get_config()
    registry = EnrichmentRegistry()
    if config.enable_builtin_providers:
        register_builtin_providers(registry)
    return LinkGraphService(registry=registry, config=config)


@app.callback()
def main():
    load_dotenv()
    configure_logging()


@app.command("init-db")
def init_db():
    """
    Create the link index schema if it does not exist.
    """
    path = DatabaseService(get_config().database_path).initialize()
    print(f"[green]Link index ready at {path}[/green]")


@app.command()
def graph(
    file: str = typer.Argument(..., help="Center file (path as stored in the index)"),
    depth: Optional[int] = typer.Option(None, "--depth", "-d", min=0, max=10, help="Hops from the center"),
    direction: Optional[str] = typer.Option(None, "--direction", help="both | outgoing | incoming"),
    max_nodes: Optional[int] = typer.Option(None, "--max-nodes", "-n", min=1),
    tag: Optional[List[str]] = typer.Option(None, "--tag", "-t", help="Keep headings with ANY of these tags"),
    exclude_tag: Optional[List[str]] = typer.Option(None, "--exclude-tag", help="Drop headings with these tags"),
    todo: Optional[List[str]] = typer.Option(None, "--todo", help="TODO states to keep"),
    priority: Optional[List[str]] = typer.Option(None, "--priority", help="Priorities to keep (A, B, C)"),
    file_type: Optional[List[str]] = typer.Option(None, "--file-type", help="org | md"),
    link_type: Optional[List[str]] = typer.Option(None, "--link-type", help="Link types to follow (default: file)"),
    exclude_done: bool = typer.Option(False, "--exclude-done", help="Skip DONE/CANCELLED headings"),
    has_deadline: bool = typer.Option(False, "--has-deadline"),
    has_scheduled: bool = typer.Option(False, "--has-scheduled"),
    deadline_within: Optional[int] = typer.Option(None, "--deadline-within", min=0, help="Deadline within N days"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Build the link graph around FILE.

    Examples:
        linkgraph graph ~/notes/project.org --depth 2 --exclude-done
        linkgraph graph ~/notes/project.org --direction incoming --tag work --json
    """
    if direction is not None and direction not in ("both", "outgoing", "incoming"):
        print(f"[red]Invalid direction: {direction}[/red]")
        raise typer.Exit(code=2)

    filters = LinkFilters(
        tags=tag or None,
        exclude_tags=exclude_tag or None,
        todo_states=todo or None,
        priorities=priority or None,
        file_types=file_type or None,
        link_types=link_type or None,
        exclude_done=exclude_done,
        has_deadline=has_deadline,
        has_scheduled=has_scheduled,
        deadline_within_days=deadline_within,
    )
    result = asyncio.run(
        _service().build_graph(
            file, depth=depth, direction=direction, filters=filters, max_nodes=max_nodes
        )
    )

    if json_output:
        typer.echo(result.model_dump_json(by_alias=True, indent=2))
        return

    nodes = Table(title=f"Link graph: {file}")
    nodes.add_column("Level", style="cyan", justify="right")
    nodes.add_column("File", style="magenta")
    nodes.add_column("Headings", justify="right")
    nodes.add_column("TODOs", justify="right")
    nodes.add_column("Links", justify="right")
    nodes.add_column("Tags")
    for node in result.nodes:
        name = f"[bold]{node.label}[/bold]" if node.is_center else node.label
        if node.has_upcoming_deadline:
            name += " [yellow](deadline soon)[/yellow]"
        nodes.add_row(
            str(node.level),
            name,
            str(node.heading_count),
            str(node.todo_count),
            str(node.link_count),
            " ".join(f":{t}:" for t in node.top_tags),
        )
    print(nodes)

    print(f"{len(result.edges)} edges shown ({result.total_edges} before truncation)")
    if result.truncated:
        print("[yellow]Graph truncated; raise --max-nodes to see more.[/yellow]")


@app.command()
def stats(file: str = typer.Argument(..., help="File path as stored in the index")):
    """
    Show outgoing and incoming link counts for FILE.
    """
    result = _service().get_link_stats(file)
    print(f"[bold]Link statistics for {file}[/bold]")
    print(f"Outgoing links: {result.outgoing}")
    for link_type, count in result.outgoing_by_type.items():
        print(f"  {link_type}: {count}")
    print(f"Incoming links (backlinks): {result.incoming}")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(8000, "--port", "-p"),
    reload: bool = typer.Option(False, "--reload"),
):
    """
    Run the HTTP API with uvicorn.
    """
    import uvicorn

    uvicorn.run("linkgraph.api.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
