import json
import logging
from functools import wraps
from pathlib import Path

import click
import pyperclip

from picksafe.constants import DEFAULT_PASSWORD_LENGTH, SAFE_ENV_VAR, SAFE_FILE
from picksafe.core import vault
from picksafe.core.errors import DuplicateAliasError, SafeError
from picksafe.core.session import Session


class PickContext:
    """Per-invocation state: the safe path and the passphrase session."""

    def __init__(self, safe_path: Path):
        self.safe_path = safe_path
        self._session = None

    @property
    def session(self) -> Session:
        if self._session is None:
            if vault.exists(self.safe_path):
                provider = lambda: click.prompt("Enter a master password to unlock your safe", hide_input=True)
            else:
                provider = lambda: click.prompt("Enter a master password to lock your safe",
                                                hide_input=True, confirmation_prompt=True)
            self._session = Session(provider)
        return self._session

    def load(self):
        return vault.load(self.safe_path, self.session)

    def save(self, safe):
        vault.save(safe, self.safe_path, self.session)


pass_pick = click.make_pass_decorator(PickContext)


def handle_errors(f):
    """Decorator turning safe errors into a clean command failure."""
    @wraps(f)
    def wrapped(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except SafeError as e:
            logging.debug(f"Command failed: {e!r}")
            raise click.ClickException(str(e)) from e
    return wrapped


@click.group()
@click.option('--safe', 'safe_path', type=click.Path(dir_okay=False, path_type=Path),
              envvar=SAFE_ENV_VAR, default=SAFE_FILE, show_default=True,
              help='Path of the encrypted safe file.')
@click.option('-v', '--verbose', is_flag=True, help='Log debug output to stderr.')
@click.pass_context
def cli(ctx, safe_path, verbose):
    """pick: a minimal password manager.

    Credentials live in a single file encrypted with one master password.
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format='%(asctime)s - %(levelname)s - %(message)s')
    ctx.obj = PickContext(safe_path)


@cli.command()
@click.argument('alias', required=False)
@click.argument('username', required=False)
@click.argument('password', required=False)
@pass_pick
@handle_errors
def add(pick, alias, username, password):
    """Add a credential to the safe, creating the safe if needed."""
    if vault.exists(pick.safe_path):
        safe = pick.load()
    elif click.confirm("Unable to find an existing safe, create new", default=True):
        safe = vault.create()
    else:
        raise click.ClickException("You must create or provide a safe")

    if not alias:
        alias = click.prompt("Enter an alias")
    if alias in safe.credentials:
        raise DuplicateAliasError(alias)
    if not username:
        username = click.prompt(f"Enter a username for {alias}", default="", show_default=False)
    if not password:
        if click.confirm("Generate password", default=True):
            password = vault.generate_password(DEFAULT_PASSWORD_LENGTH)
        else:
            password = click.prompt(f"Enter your password for {alias}", hide_input=True)

    vault.add_credential(safe, alias, username, password)
    pick.save(safe)
    click.echo("Credential saved")


@cli.command()
@click.argument('alias')
@pass_pick
@handle_errors
def cat(pick, alias):
    """Show a credential."""
    credential = vault.get_credential(pick.load(), alias)
    click.echo(json.dumps(credential.to_dict(), indent=2))


@cli.command()
@click.argument('alias')
@pass_pick
@handle_errors
def cp(pick, alias):
    """Copy a credential's password to the clipboard."""
    credential = vault.get_credential(pick.load(), alias)
    try:
        pyperclip.copy(credential.password)
    except pyperclip.PyperclipException as e:
        raise click.ClickException(f"Unable to access the clipboard: {e}") from e
    click.echo(f"Password for {alias} copied to clipboard")


@cli.command()
@pass_pick
@handle_errors
def ls(pick):
    """List the aliases stored in the safe."""
    aliases = vault.list_aliases(pick.load())
    if not aliases:
        raise click.ClickException("No credentials in safe")
    for alias in aliases:
        click.echo(alias)


@cli.command()
@click.argument('alias')
@pass_pick
@handle_errors
def rm(pick, alias):
    """Remove a credential from the safe."""
    safe = pick.load()
    vault.remove_credential(safe, alias)
    pick.save(safe)
    click.echo("Credential removed")


@cli.command()
@click.option('--length', default=DEFAULT_PASSWORD_LENGTH, show_default=True, type=click.IntRange(min=1),
              help='Number of characters to generate.')
@handle_errors
def gen(length):
    """Print a newly generated password."""
    click.echo(vault.generate_password(length))


def main():
    cli()


if __name__ == '__main__':
    main()
