"""Main CLI application."""

import typer

from scribe.cli.commands import chat, serve

app = typer.Typer(
    name="scribe",
    help="Scribe - streaming writing assistant",
    no_args_is_help=True,
)

serve.register(app)
chat.register(app)


if __name__ == "__main__":
    app()
