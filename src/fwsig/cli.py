"""Command-line interface for the fwsig firmware signing tool."""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from Crypto.Random import get_random_bytes
from rich.console import Console
from rich.table import Table
from rich.progress import Progress, SpinnerColumn, TextColumn

from . import __version__
from .builder import ManifestBuilder
from .config import FwsigConfig, generate_default_config, load_config
from .errors import ManifestError
from .keys import PrivateKey, PublicKey
from .manifest import MANIFEST_LEN, Manifest, MetadataFormat
from .package import read_combined, read_detached, write_combined, write_detached
from .verify import ManifestVerifier, VerificationResult

console = Console()
log = logging.getLogger(__name__)

META_FORMATS = ["bin", "json", "cbor", "other"]


def _parse_private_key(ctx: click.Context, param: click.Parameter, value: Optional[str]) -> Optional[PrivateKey]:
    if value is None:
        return None
    try:
        return PrivateKey.from_hex(value)
    except ManifestError as e:
        raise click.BadParameter(str(e)) from e


def _parse_public_keys(ctx: click.Context, param: click.Parameter, value: tuple[str, ...]) -> list[PublicKey]:
    try:
        return [PublicKey.from_hex(v) for v in value]
    except ManifestError as e:
        raise click.BadParameter(str(e)) from e


def _manifest_table(manifest: Manifest) -> Table:
    table = Table(title="Manifest")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Version", str(manifest.version))
    table.add_row("Transient Key", "yes" if manifest.transient_key else "no")
    table.add_row("App Name", manifest.app_name.text())
    table.add_row("App Version", manifest.app_version.text())
    table.add_row("App Length", f"{manifest.app_len} bytes")
    table.add_row("App Checksum", manifest.app_csum.hex())
    table.add_row("Meta Kind", manifest.meta_kind.name.lower())
    table.add_row("Meta Length", f"{manifest.meta_len} bytes")
    table.add_row("Meta Checksum", manifest.meta_csum.hex())
    table.add_row("Public Key", manifest.key.hex())
    table.add_row("Signature", manifest.sig.hex()[:32] + "...")
    return table


def _report(result: VerificationResult, config: FwsigConfig, strict: bool) -> None:
    table = Table(title="Verification Results")
    table.add_column("Check", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Details")

    def status(ok: bool, warn: bool = False) -> str:
        if ok:
            return "✓ PASS"
        return "⚠ WARN" if warn else "✗ FAIL"

    table.add_row("Manifest Structure", status(result.structure_valid), result.structure_details)
    table.add_row("Manifest Version", status(result.version_valid, warn=True), result.version_details)
    table.add_row("Signature", status(result.signature_valid), result.signature_details)
    table.add_row("Application", status(result.app_valid), result.app_details)
    table.add_row("Metadata", status(result.meta_valid), result.meta_details)
    table.add_row("Signing Key", status(result.persistent_key, warn=True), result.key_details)
    table.add_row("Trusted Signer", status(result.trust_valid), result.trust_details)

    console.print(table)

    strict_version = strict or config.verification.strict_version
    require_persistent = strict or config.verification.require_persistent_key

    failed = not result.is_valid()
    if strict_version and not result.version_valid:
        failed = True
    if require_persistent and not result.persistent_key:
        failed = True

    if failed:
        console.print("[bold red]✗[/bold red] Verification failed")
        sys.exit(1)
    elif result.has_warnings():
        console.print("[bold yellow]⚠[/bold yellow] Verification passed with warnings")
    else:
        console.print("[bold green]✓[/bold green] Verification successful")


def _allowed_keys(config: FwsigConfig, keys: list[PublicKey]) -> list[PublicKey]:
    try:
        return keys + config.verification.trusted_keys()
    except ManifestError as e:
        console.print(f"[bold red]Error:[/bold red] Invalid key in configuration: {e}")
        sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="fwsig")
@click.option("--config", "-c", type=click.Path(exists=True), help="Configuration file path")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Log level (overrides configuration)",
)
@click.pass_context
def main(ctx: click.Context, config: Optional[str], log_level: Optional[str]) -> None:
    """fwsig firmware signing / packaging / verification utility."""
    ctx.ensure_object(dict)

    if config:
        ctx.obj["config"] = load_config(Path(config))
    else:
        ctx.obj["config"] = FwsigConfig()

    level = (log_level or ctx.obj["config"].log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


@main.command()
@click.option("--output", "-o", type=click.Path(), help="Write the private key to this file")
def keygen(output: Optional[str]) -> None:
    """Generate a new Ed25519 signing key."""
    private_key = PrivateKey.generate(get_random_bytes)
    public_key = private_key.public_key()

    if output:
        output_path = Path(output)
        output_path.write_text(private_key.hex() + "\n")
        output_path.chmod(0o600)
        console.print(f"[bold green]✓[/bold green] Private key saved to {output_path}")
    else:
        console.print(f"Private key: {private_key.hex()}")

    console.print(f"Public key:  {public_key.hex()}")


@main.command()
@click.argument("key", callback=_parse_private_key)
def pubkey(key: PrivateKey) -> None:
    """Print the public key for a hex private KEY."""
    console.print(key.public_key().hex())


@main.command()
@click.argument("app", type=click.Path(exists=True, dir_okay=False))
@click.argument("meta", type=click.Path(exists=True, dir_okay=False))
@click.argument("key", required=False, callback=_parse_private_key)
@click.option("--meta-format", "-f", type=click.Choice(META_FORMATS), default=None, help="Metadata format")
@click.option("--output", "-o", type=click.Path(), required=True, help="Output file")
@click.option("--detached", is_flag=True, help="Write only the manifest (detached mode)")
@click.option("--name", "app_name", default=None, help="Application name (max 16 bytes)")
@click.option("--app-version", default=None, help="Application version (max 24 bytes)")
@click.pass_context
def sign(
    ctx: click.Context,
    app: str,
    meta: str,
    key: Optional[PrivateKey],
    meta_format: Optional[str],
    output: str,
    detached: bool,
    app_name: Optional[str],
    app_version: Optional[str],
) -> None:
    """Sign APP and META, generating a manifest.

    If KEY is not given (here or in the configuration) a transient
    per-operation key is used.
    """
    config: FwsigConfig = ctx.obj["config"]
    signing = config.signing

    if key is None:
        try:
            key = signing.signing_key()
        except ManifestError as e:
            console.print(f"[bold red]Error:[/bold red] Invalid private key in configuration: {e}")
            sys.exit(1)

    kind = MetadataFormat.from_string(meta_format or signing.meta_format)
    detached = detached or signing.detached
    app_name = app_name if app_name is not None else signing.app_name
    app_version = app_version if app_version is not None else signing.app_version

    output_path = Path(output)
    log.info("Signing manifest for app: %s", app)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Reading application and metadata...", total=1)
        app_data = Path(app).read_bytes()
        meta_data = Path(meta).read_bytes()
        progress.update(task, completed=1)

        task = progress.add_task("Building manifest...", total=1)
        try:
            manifest = (
                ManifestBuilder()
                .name(app_name)
                .version(app_version)
                .app_bin(app_data)
                .meta_bin(kind, meta_data)
                .build(key, randfunc=get_random_bytes)
            )
        except ValueError as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            sys.exit(1)
        progress.update(task, completed=1)

        task = progress.add_task("Writing output...", total=1)
        if detached:
            write_detached(output_path, manifest)
        else:
            write_combined(output_path, app_data, meta_data, manifest)
        progress.update(task, completed=1)

    mode = "Detached manifest" if detached else "Signed image"
    console.print(f"[bold green]✓[/bold green] {mode} saved to {output_path}")

    if manifest.transient_key:
        console.print("[bold yellow]⚠[/bold yellow] Signed with a transient key")

    console.print(_manifest_table(manifest))


@main.command("verify-attached")
@click.argument("image", type=click.Path(exists=True, dir_okay=False))
@click.argument("keys", nargs=-1, callback=_parse_public_keys)
@click.option("--strict", is_flag=True, help="Fail on any warning")
@click.pass_context
def verify_attached(ctx: click.Context, image: str, keys: list[PublicKey], strict: bool) -> None:
    """Verify a combined IMAGE (app + metadata + manifest) against allowed KEYS."""
    config: FwsigConfig = ctx.obj["config"]
    verifier = ManifestVerifier(_allowed_keys(config, keys))

    console.print(f"[bold blue]Verifying {Path(image).name}[/bold blue]")
    result = verifier.verify_combined(Path(image).read_bytes())

    _report(result, config, strict)


@main.command("verify-detached")
@click.argument("manifest", type=click.Path(exists=True, dir_okay=False))
@click.argument("app", type=click.Path(exists=True, dir_okay=False))
@click.argument("meta", type=click.Path(exists=True, dir_okay=False))
@click.argument("keys", nargs=-1, callback=_parse_public_keys)
@click.option("--strict", is_flag=True, help="Fail on any warning")
@click.pass_context
def verify_detached(
    ctx: click.Context,
    manifest: str,
    app: str,
    meta: str,
    keys: list[PublicKey],
    strict: bool,
) -> None:
    """Verify APP and META against a detached MANIFEST and allowed KEYS."""
    config: FwsigConfig = ctx.obj["config"]
    verifier = ManifestVerifier(_allowed_keys(config, keys))

    console.print(f"[bold blue]Verifying {Path(app).name}[/bold blue]")
    result = verifier.verify_detached(
        Path(manifest).read_bytes(),
        Path(app).read_bytes(),
        Path(meta).read_bytes(),
    )

    _report(result, config, strict)


@main.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--detached", is_flag=True, help="PATH is a detached manifest")
def show(path: str, detached: bool) -> None:
    """Display the manifest in a combined image or detached manifest."""
    try:
        if detached:
            manifest = read_detached(path)
        else:
            manifest = read_combined(path).manifest
    except ManifestError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(1)

    console.print(_manifest_table(manifest))
    console.print(f"Encoded length: {MANIFEST_LEN} bytes")


@main.command()
@click.option("--output", "-o", type=click.Path(), required=True, help="Output file path")
@click.option("--format", "fmt", type=click.Choice(["yaml", "json"]), default="yaml", help="Output format")
def init_config(output: str, fmt: str) -> None:
    """Generate a default configuration file."""
    output_path = Path(output)
    output_path.write_text(generate_default_config(fmt))

    console.print(f"[bold green]✓[/bold green] Configuration file created at {output_path}")


if __name__ == "__main__":
    main()
