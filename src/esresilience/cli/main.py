"""
Main CLI entry point.
"""

import typer

from esresilience import __version__
from esresilience.cli import cluster


def version_callback(value: bool):
    """Callback to display version and exit."""
    if value:
        typer.echo(f"esresilience version {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="esresilience",
    help="esresilience - resilient access to Elasticsearch clusters",
    add_completion=False,
)

app.command(name="count")(cluster.count)
app.command(name="nodes")(cluster.nodes)


@app.callback(invoke_without_command=True)
def entrypoint(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
):
    """
    esresilience - resilient access to Elasticsearch clusters.

    Run 'esresilience <command> --help' for help on a specific command.
    """
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def main():
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
