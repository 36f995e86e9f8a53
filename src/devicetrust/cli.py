"""
DeviceTrust CLI
Entry point for bootstrapping device credentials and pairing.
"""

import sys
from typing import NoReturn

import click

from .config import get_settings
from .credentials import CredentialStore
from .errors import ConfigMissingError, DeviceTrustError
from .logging import configure_logging, get_logger
from .pairing import PairingClient

logger = get_logger(__name__)


def _fail(error: DeviceTrustError) -> NoReturn:
    click.echo(f"Error: {error}", err=True)
    sys.exit(1)


@click.group()
@click.option("--credentials-dir", envvar="DT_CREDENTIALS_DIR", default=None,
              help="Directory holding the device key and CSR")
@click.option("--log-level", default=None, help="Logging level")
@click.pass_context
def cli(ctx, credentials_dir, log_level):
    """DeviceTrust credential bootstrap and pairing CLI."""
    settings = get_settings(CREDENTIALS_DIR=credentials_dir, LOG_LEVEL=log_level)
    configure_logging(level=settings.LOG_LEVEL, json_format=settings.is_production())
    ctx.obj = settings


@cli.command()
@click.option("--hw-id", required=True, help="Encoded hardware id of this device")
@click.pass_obj
def bootstrap(settings, hw_id):
    """Create the device key and CSR if they are missing."""
    store = CredentialStore.from_settings(settings)
    try:
        state = store.bootstrap(hw_id)
    except DeviceTrustError as e:
        _fail(e)
    click.echo(state.value)


@cli.command()
@click.pass_obj
def status(settings):
    """Show whether the key and CSR are present."""
    store = CredentialStore.from_settings(settings)
    click.echo(store.state().value)


@cli.command()
@click.pass_obj
def csr(settings):
    """Print the persisted CSR."""
    store = CredentialStore.from_settings(settings)
    try:
        click.echo(store.read_csr_pem(), nl=False)
    except DeviceTrustError as e:
        _fail(e)


@cli.command()
@click.option("--hw-id", required=True, help="Encoded hardware id of this device")
@click.option("--jwt", required=True, envvar="DT_PAIRING_JWT", help="Pairing JWT")
@click.option("--realm", default=None, help="Realm (defaults to DT_REALM)")
@click.option("--base-url", default=None, help="Pairing API base URL (defaults to DT_PAIRING_BASE_URL)")
@click.pass_obj
def register(settings, hw_id, jwt, realm, base_url):
    """Register the device and print the credentials secret."""
    realm = realm or settings.REALM
    base_url = base_url or settings.PAIRING_BASE_URL
    try:
        if not realm:
            raise ConfigMissingError("realm", env_var="DT_REALM")
        if not base_url:
            raise ConfigMissingError("base_url", env_var="DT_PAIRING_BASE_URL")

        with PairingClient(timeout=settings.HTTP_TIMEOUT, verify_ssl=settings.VERIFY_SSL) as client:
            secret = client.register(base_url, jwt, realm, hw_id)
    except DeviceTrustError as e:
        _fail(e)
    click.echo(secret)


def main():
    cli()


if __name__ == "__main__":
    main()
