from certdesigner.app import create_app, db
import os

from flask_migrate import Migrate
from flask.cli import FlaskGroup
import click
from io import BytesIO
from PyPDF2 import PdfReader
from certdesigner.services import repository, rendering
from certdesigner.shared.fields import out_of_bounds_fields
from certdesigner.shared.fonts import list_fonts as list_font_files
from certdesigner.shared.storage import get_asset_store, write_atomic
from certdesigner.models import Settings


migrate = Migrate()


def create_designer_app():
    app = create_app()
    migrate.init_app(app, db)
    return app


cli = FlaskGroup(create_app=create_designer_app)


@cli.command("render_cert")
@click.option("--certificate", "certificate_id", required=True)
@click.option(
    "--format", "fmt", type=click.Choice(["pdf", "jpeg"]), default="pdf", show_default=True
)
@click.option("--out", "out_path", required=True, type=click.Path(dir_okay=False))
def render_cert(certificate_id: str, fmt: str, out_path: str):
    """Render an issued certificate to a file."""
    if fmt == "pdf":
        result = rendering.render_certificate_pdf(certificate_id)
        pages = len(PdfReader(BytesIO(result.content)).pages)
        if pages != 1:
            raise click.ClickException(f"Expected a single page, got {pages}")
    else:
        result = rendering.render_certificate_jpeg(certificate_id)
    write_atomic(os.path.abspath(out_path), result.content)
    for warning in result.warnings:
        click.echo(f"warning: {warning}", err=True)
    click.echo(out_path)


@cli.command("list_fonts")
def list_fonts():
    """List uploaded custom fonts."""
    names = list_font_files(get_asset_store())
    if not names:
        click.echo("No custom fonts")
        return
    for name in names:
        click.echo(name)


@cli.command("check_template")
@click.option("--template", "template_id", required=True)
def check_template(template_id: str):
    """Print ids of fields placed outside the template page."""
    template = repository.get_template(template_id)
    bad = out_of_bounds_fields(template.fields or [], template.width, template.height)
    if not bad:
        click.echo("All fields within bounds")
        return
    for field_id in bad:
        click.echo(field_id)
    raise SystemExit(1)


@cli.command("init_settings")
def init_settings():
    """Create the settings row if it is missing."""
    settings = Settings.get_or_create()
    click.echo(
        f"normal_move={settings.normal_move_amount} shift_move={settings.shift_move_amount} "
        f"background_visible={settings.default_background_visible}"
    )


if __name__ == "__main__":
    cli()
