# client/cli.py
# Command-line client: session management, uploads, history and verification artifacts.

import json
import logging
import os

import click

from authenledger.client import workflows
from authenledger.client.api import ApiClient, ApiError
from authenledger.client.config import ClientConfig
from authenledger.client.forms import FormValidationError, format_file_size
from authenledger.client.session import AppContext, SessionStore
from authenledger.services import qr_service, stats_service
from authenledger.services.certificate_service import (
    CertificateGenerationError,
    build_verification_file,
    certificate_filename,
    generate_secure_certificate,
)
from authenledger.services.status_service import VERIFIED, REVIEW, classify_status

BADGE_COLORS = {VERIFIED.label: "green", REVIEW.label: "yellow"}


class ClientState:
    def __init__(self, api_url, session_file):
        self.ctx = AppContext(SessionStore(session_file)).init()
        self.api = ApiClient(api_url, access_token=self.ctx.access_token)


pass_state = click.make_pass_decorator(ClientState)


def _badge(validation, short=False):
    badge = classify_status(validation.get("authenticity"), validation.get("confidenceScore"))
    text = badge.short_label if short else badge.label
    return click.style(text, fg=BADGE_COLORS.get(badge.label, "red"), bold=True)


def _echo_validation(validation, short=False):
    if validation.get("error"):
        click.echo(f"  ✗ {validation.get('fileName') or validation.get('fileId')}: {validation['error']}")
        return
    metadata = validation.get("metadata") or {}
    click.echo(f"  {_badge(validation, short)}  {validation.get('fileName')} "
               f"({format_file_size(validation.get('fileSize') or 0)}) "
               f"score {validation.get('confidenceScore')}%  id {validation.get('id')}")
    click.echo(f"      {metadata.get('studentName', '')} · {metadata.get('degree', '')} · {metadata.get('institution', '')}")
    for issue in validation.get("issues") or []:
        click.echo(f"      ! {issue}")


def _fail(message):
    raise click.ClickException(message)


@click.group()
@click.option("--api-url", default=ClientConfig.API_URL, show_default=True, help="Base URL of the AuthenLedger API.")
@click.option("--session-file", default=ClientConfig.SESSION_FILE, help="Where the session is stored.")
@click.option("-v", "--verbose", is_flag=True, help="Log requests and fallbacks.")
@click.pass_context
def cli(click_ctx, api_url, session_file, verbose):
    """AuthenLedger certificate validation client."""
    logging.basicConfig(level=logging.INFO if verbose else logging.WARNING,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    click_ctx.obj = ClientState(api_url, session_file)


@cli.command()
@click.option("--email", prompt=True)
@click.option("--password", prompt=True, hide_input=True)
@pass_state
def login(state, email, password):
    """Sign in (falls back to demo mode when the server is unreachable)."""
    try:
        user = workflows.login(state.ctx, state.api, email, password)
    except (FormValidationError, ApiError) as e:
        _fail(str(e))
    mode = " (demo mode)" if state.ctx.is_demo else ""
    click.echo(f"Signed in as {user.get('email')}{mode}")


@cli.command()
@click.option("--name", prompt=True)
@click.option("--email", prompt=True)
@click.option("--password", prompt=True, hide_input=True)
@click.option("--confirm-password", prompt=True, hide_input=True)
@click.option("--role", type=click.Choice(["user", "administrator"]), default="user", show_default=True)
@click.option("--institution", default="")
@click.option("--department", default="")
@pass_state
def signup(state, name, email, password, confirm_password, role, institution, department):
    """Create an account and sign in."""
    form = {
        "name": name, "email": email, "password": password, "confirm_password": confirm_password,
        "role": role, "institution": institution, "department": department,
    }
    try:
        user = workflows.signup(state.ctx, state.api, form)
    except (FormValidationError, ApiError) as e:
        _fail(str(e))
    click.echo(f"Account created for {user.get('email')}")


@cli.command()
@pass_state
def logout(state):
    """Sign out and forget the stored session."""
    workflows.logout(state.ctx, state.api)
    click.echo("Signed out")


@cli.command()
@pass_state
def whoami(state):
    """Show the current session."""
    if not state.ctx.refresh():
        _fail("Not signed in")
    metadata = state.ctx.user.get("user_metadata") or {}
    click.echo(f"{metadata.get('name', '')} <{state.ctx.user.get('email')}> role={state.ctx.role}"
               f"{' (demo mode)' if state.ctx.is_demo else ''}")


@cli.command()
@click.argument("paths", nargs=-1, required=True, type=click.Path())
@pass_state
def upload(state, paths):
    """Upload and validate one or more certificate files."""
    try:
        results = workflows.process_files(state.ctx, state.api, list(paths))
    except (FormValidationError, ApiError) as e:
        _fail(str(e))
    click.echo(f"Processed {len(results)} file(s):")
    for result in results:
        _echo_validation(result)


@cli.command()
@click.option("--search", default=None, help="Match file name, student or institution.")
@click.option("--status", type=click.Choice(["all", "authentic", "suspicious", "forged"]), default="all")
@pass_state
def history(state, search, status):
    """List past validations, newest first."""
    try:
        validations = workflows.fetch_validations(state.ctx, state.api)
    except ApiError as e:
        _fail(str(e))
    filtered = stats_service.filter_validations(validations, search, status)
    if not filtered:
        click.echo("No validations found.")
    for validation in filtered:
        _echo_validation(validation, short=True)


@cli.command()
@pass_state
def dashboard(state):
    """Summary statistics and the five most recent validations."""
    try:
        validations = workflows.fetch_validations(state.ctx, state.api)
    except ApiError as e:
        _fail(str(e))
    stats = stats_service.compute_stats(validations)
    click.echo(f"Total validations:   {stats['totalValidations']}")
    click.echo(f"Authentic rate:      {stats['authenticRate']:.1f}%")
    click.echo(f"Flagged documents:   {stats['flaggedDocuments']}")
    click.echo(f"Avg processing time: {stats['avgProcessingTime'] / 1000:.1f}s")
    click.echo("Recent:")
    for validation in validations[:5]:
        _echo_validation(validation, short=True)


@cli.command("admin-stats")
@pass_state
def admin_stats(state):
    """Platform-wide statistics (administrators only)."""
    if not state.ctx.refresh() or state.ctx.is_demo:
        _fail("Admin statistics need a signed-in server session")
    if state.ctx.role != "admin":
        _fail("Insufficient permissions")
    try:
        stats = state.api.admin_stats()
    except ApiError as e:
        _fail(str(e))
    for key, value in stats.items():
        click.echo(f"{key}: {value}")


@cli.command()
@click.argument("validation_id")
@click.option("--out", "out_dir", default=".", type=click.Path(file_okay=False), show_default=True)
@pass_state
def certificate(state, validation_id, out_dir):
    """Download the secure PDF and JSON verification file for a validation."""
    os.makedirs(out_dir, exist_ok=True)
    try:
        if state.ctx.is_demo:
            validation = workflows.find_validation(state.ctx, state.api, validation_id)
            pdf_bytes, _ = generate_secure_certificate(validation)
            verification = build_verification_file(validation)
        else:
            if not state.ctx.refresh():
                _fail("Please login to generate certificates")
            state.api.access_token = state.ctx.access_token
            pdf_bytes = state.api.certificate_pdf(validation_id)
            verification = state.api.verification_file(validation_id)
            validation = {"metadata": verification.get("metadata")}
    except (ApiError, CertificateGenerationError) as e:
        _fail(str(e))

    pdf_path = os.path.join(out_dir, certificate_filename(validation, "pdf").replace("/", "-"))
    json_path = os.path.join(out_dir, certificate_filename(validation, "json").replace("/", "-"))
    with open(pdf_path, "wb") as f:
        f.write(pdf_bytes)
    with open(json_path, "w", encoding="utf-8") as f:
        json.dump(verification, f, indent=2, ensure_ascii=False)
    click.echo(f"Wrote {pdf_path}")
    click.echo(f"Wrote {json_path}")


@cli.command("verify-qr")
@click.option("--data", "text", default=None, help="QR payload text (JSON).")
@click.option("--file", "path", default=None, type=click.Path(exists=True, dir_okay=False), help="File holding the QR payload.")
@click.option("--remote", is_flag=True, help="Ask the server to check the payload.")
@pass_state
def verify_qr(state, text, path, remote):
    """Check the structure of a decoded QR payload."""
    if path:
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
    if not text or not text.strip():
        _fail("Provide QR data with --data or --file")

    try:
        payload = qr_service.parse_qr_text(text)
    except qr_service.QRFormatError as e:
        _fail(str(e))

    if remote:
        try:
            result = state.api.verify_qr(payload)
        except ApiError as e:
            _fail(str(e))
    else:
        result = qr_service.verify_qr_data(payload).to_dict()

    if result.get("isValid"):
        click.echo(click.style("Verified Authentic", fg="green", bold=True)
                   + f"  certificate {payload.get('certificateId')}")
        click.echo("  Note: the QR hash travels with its own data; this confirms structure, not origin.")
    else:
        click.echo(click.style("Verification Failed", fg="red", bold=True) + f"  {result.get('error')}")
        raise click.exceptions.Exit(1)


def main():
    cli()


if __name__ == "__main__":
    main()
