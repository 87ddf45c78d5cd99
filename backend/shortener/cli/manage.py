import click
import sqlalchemy as sa

from shortener.core.config import settings
from shortener.core.errors import UrlError
from shortener.models.db import SessionLocal, engine, get_session, init_db
from shortener.services.links import resolve, shorten
from shortener.services.store import SqlMappingStore, count_mappings
from shortener.utils.canonical import normalize_url
from shortener.utils.fingerprint import fingerprint
from shortener.utils.policies import get_policy, list_policies


def _fail(error: UrlError):
    raise click.ClickException(f"{error.kind.value}: {error.message}")


@click.group(help="URL shortener management commands")
def cli():
    pass


@cli.command("init-db", help="Create the url_mappings table if it does not exist")
def init_db_command():
    init_db(engine)
    click.echo("Tables created.")


@cli.command(help="Print the canonical form and fingerprint of URL")
@click.argument("url")
@click.option("--policy", default=None, help="Normalization policy (defaults to NORMALIZATION_POLICY)")
def normalize(url: str, policy):
    selected = get_policy(policy or settings.normalization_policy)
    if isinstance(selected, UrlError):
        _fail(selected)
    canonical = normalize_url(url, selected)
    if isinstance(canonical, UrlError):
        _fail(canonical)
    click.echo(canonical.value)
    click.echo(fingerprint(canonical))


@cli.command("shorten", help="Shorten URL, reusing the existing code for equivalent URLs")
@click.argument("url")
@click.option("--policy", default=None, help="Normalization policy (defaults to NORMALIZATION_POLICY)")
def shorten_command(url: str, policy):
    result = shorten(SqlMappingStore(SessionLocal), url, policy)
    if isinstance(result, UrlError):
        _fail(result)
    state = "created" if result.created else "existing"
    click.echo(f"{result.short_code}\t{result.canonical_url}\t({state})")


@cli.command("resolve", help="Print the URL stored for CODE")
@click.argument("code")
def resolve_command(code: str):
    original = resolve(SqlMappingStore(SessionLocal), code)
    if isinstance(original, UrlError):
        _fail(original)
    click.echo(original)


@cli.command(help="List the available normalization policies")
def policies():
    for p in list_policies():
        marker = "*" if p.name.value == settings.normalization_policy.upper() else " "
        click.echo(f"{marker} {p.name.value:<17} {p.description}")


@cli.command("clear-db", help="Delete every row from url_mappings")
@click.option("--yes", is_flag=True, help="Skip confirmation prompt")
def clear_db(yes: bool):
    with get_session() as session:
        total = count_mappings(session)
    if not yes:
        click.confirm(
            f"This will delete all {total} rows from url_mappings. Continue?",
            abort=True,
        )
    with engine.begin() as conn:
        conn.execute(sa.text("DELETE FROM url_mappings"))
    click.echo("Tables cleared.")


if __name__ == "__main__":
    cli()
