"""CLI entry point for tvlink."""

from pathlib import Path

import click

from tvlink import __version__
from tvlink.config import Config, load_config
from tvlink.errors import ConfigError, InvalidPayloadError, StorageError
from tvlink.logging import setup_logging
from tvlink.token_store import TokenStore


def _token_store(config: Config) -> TokenStore:
    return TokenStore(Path(config.token_file).expanduser())


def _codec(config: Config):
    from tvlink.pairing.codec import SessionCodec

    return SessionCodec(
        scheme=config.pairing.scheme,
        host=config.pairing.host,
        qr_size=config.pairing.qr_size,
    )


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help="Path to config file.",
)
@click.pass_context
def main(ctx: click.Context, config: Path | None) -> None:
    """tvlink - Sign in on a TV by scanning a QR code with your phone."""
    ctx.ensure_object(dict)
    try:
        ctx.obj["config"] = load_config(config)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    ctx.obj["logger"] = setup_logging(ctx.obj["config"])


@main.command()
def version() -> None:
    """Show version."""
    click.echo(f"tvlink version {__version__}")


@main.command()
@click.option(
    "--browser",
    "-b",
    is_flag=True,
    help="Open QR code in browser.",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    default=None,
    help="Save QR code to file.",
)
@click.option(
    "--force",
    "-f",
    is_flag=True,
    help="Pair again even if a credential is stored.",
)
@click.pass_context
def pair(
    ctx: click.Context, browser: bool, output: str | None, force: bool
) -> None:
    """Show a QR code and wait for a phone to link this device."""
    import asyncio

    from tvlink.pairing.client import PairingSessionClient
    from tvlink.pairing.tv_pairing import (
        TvPairingSnapshot,
        TvPairingState,
        TvPairingStateMachine,
    )

    config = ctx.obj["config"]
    store = _token_store(config)

    existing = store.load()
    if existing is not None and not force:
        click.echo(f"Already paired as {existing.user_id} (use --force to pair again)")
        return

    def show_code(snapshot: TvPairingSnapshot) -> None:
        if snapshot.state != TvPairingState.SHOWING_CODE or snapshot.attempts:
            return

        qr = snapshot.qr
        if browser:
            import tempfile
            import webbrowser

            with tempfile.NamedTemporaryFile(
                suffix=".html", delete=False, mode="w"
            ) as f:
                f.write(qr.to_html())
            webbrowser.open(f"file://{f.name}")
            click.echo("QR code opened in browser")
        elif output:
            qr.to_png(output)
            click.echo(f"QR code saved to: {output}")
        else:
            click.echo(qr.to_terminal())
            click.echo("Scan this QR code with the app on your signed-in phone")

        timeout = config.pairing.poll_interval * config.pairing.max_attempts
        click.echo(f"\nWaiting for phone... (expires in {int(timeout)} seconds)")

    async def _pair() -> TvPairingSnapshot:
        async with PairingSessionClient(
            config.api.base_url, request_timeout=config.api.request_timeout
        ) as client:
            machine = TvPairingStateMachine(
                client,
                store,
                codec=_codec(config),
                poll_interval=config.pairing.poll_interval,
                max_attempts=config.pairing.max_attempts,
            )
            machine.subscribe(show_code)
            try:
                await machine.start()
                await machine.wait()
            finally:
                if machine.state not in (
                    TvPairingState.AUTHENTICATED,
                    TvPairingState.FAILED,
                ):
                    machine.stop()
            return machine.snapshot

    try:
        result = asyncio.run(_pair())
    except KeyboardInterrupt:
        click.echo("\nCancelled")
        raise SystemExit(1)

    if result.state == TvPairingState.AUTHENTICATED:
        click.echo(f"\nPairing successful! Signed in as {result.user_id}")
        return

    message = result.failure.message if result.failure else "Pairing cancelled"
    click.echo(f"\nError: {message}", err=True)
    raise SystemExit(1)


@main.command()
@click.argument("payload")
@click.option(
    "--token",
    envvar="TVLINK_TOKEN",
    default=None,
    help="Bearer token of the signed-in user.",
)
@click.option("--user-id", default=None, help="Signed-in user id.")
@click.option("--email", default="", help="Signed-in user email.")
@click.pass_context
def link(
    ctx: click.Context,
    payload: str,
    token: str | None,
    user_id: str | None,
    email: str,
) -> None:
    """Link a TV by the text of its scanned QR code."""
    import asyncio

    from tvlink.pairing.client import PairingSessionClient
    from tvlink.pairing.mobile_link import (
        Identity,
        MobileLinkState,
        MobileLinkStateMachine,
        StaticIdentityProvider,
    )

    config = ctx.obj["config"]
    codec = _codec(config)

    try:
        codec.parse(payload)
    except InvalidPayloadError as e:
        click.echo(f"Error: Not a pairing QR code ({e})", err=True)
        raise SystemExit(1)

    user = Identity(user_id=user_id, email=email) if user_id else None
    identity = StaticIdentityProvider(user, token)

    async def _link():
        async with PairingSessionClient(
            config.api.base_url, request_timeout=config.api.request_timeout
        ) as client:
            machine = MobileLinkStateMachine(client, identity, codec=codec)
            machine.start_scanning()
            await machine.on_scan(payload)
            return machine.snapshot

    result = asyncio.run(_link())

    if result.state == MobileLinkState.SUCCESS:
        click.echo("TV linked.")
        return

    message = result.failure.message if result.failure else "Link failed"
    click.echo(f"Error: {message}", err=True)
    raise SystemExit(1)


@main.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show whether this device holds a credential."""
    credential = _token_store(ctx.obj["config"]).load()
    if credential is None:
        click.echo("Not paired")
        return
    click.echo(f"Paired as {credential.user_id}")


@main.command()
@click.pass_context
def logout(ctx: click.Context) -> None:
    """Forget the stored credential."""
    try:
        _token_store(ctx.obj["config"]).clear()
    except StorageError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    click.echo("Signed out.")
