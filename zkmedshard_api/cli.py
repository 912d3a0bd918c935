"""
CLI entry point for ZKMedShard API.
"""

from typing import Optional

import typer

from .signature import build_challenge_message, sign_challenge

app = typer.Typer(
    name="zkmedshard",
    help="ZKMedShard login and claim registry API",
    add_completion=False,
)


@app.command()
def serve(
    host: Optional[str] = typer.Option(
        None,
        "--host",
        help="Bind address (defaults to HOST from the environment)",
    ),
    port: Optional[int] = typer.Option(
        None,
        "--port",
        "-p",
        help="Port (defaults to PORT from the environment)",
    ),
) -> None:
    """
    Run the API server. Requires DATABASE_URL (memory:// for a throwaway store).
    """
    from .main import run

    run(host=host, port=port)


@app.command()
def sign(
    nonce: str = typer.Argument(..., help="Nonce returned by POST /auth/nonce"),
    private_key: str = typer.Option(
        ...,
        "--private-key",
        "-k",
        envvar="ZKMEDSHARD_PRIVATE_KEY",
        help="Hex private key to sign with (development wallets only)",
    ),
) -> None:
    """
    Sign the login message for a nonce, as a wallet's personal_sign would.
    """
    try:
        address, signature = sign_challenge(private_key, nonce)
    except Exception as e:
        typer.echo(f"Invalid private key: {e}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"Message:   {build_challenge_message(nonce)}")
    typer.echo(f"Address:   {address}")
    typer.echo(f"Signature: {signature}")


@app.command()
def version() -> None:
    """Show the API version."""
    from zkmedshard_api import __version__
    typer.echo(f"zkmedshard-api v{__version__}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
