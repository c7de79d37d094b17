"""mailctl command-line interface.

What:
  Provide a Typer-based entry point over :class:`~mailctl.core.operations.MailOperations`
  with the ``list-folders``, ``list-emails``, ``delete-emails`` and ``send``
  commands.

Why:
  Operators and scripts need a predictable shell surface: machine-readable
  JSON on stdout, diagnostics on stderr, and exit codes that separate usage
  or configuration mistakes from "nothing matched".

How:
  The root callback records the optional ``--config`` path and logging level.
  Each command loads settings, translates filter flags with
  :func:`~mailctl.filters.build_predicate`, calls one operation and renders
  the result with :mod:`mailctl.render`.

Interfaces:
  ``app`` (Typer application), ``main``.

Invariants & Safety:
  - Exit codes follow shell expectations (``0`` success, ``1`` failure).
  - ``delete-emails`` refuses to run without at least one filter.
  - Configuration errors and unsupported store ports exit ``1`` with the
    message on stderr.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from .config import ConfigError, load_settings
from .core.models import MessageDraft
from .core.operations import MailOperations, MissingFilterError
from .filters import FilterOptions, InvalidDateError, build_predicate
from .protocol import UnsupportedPortError
from .render import empty_text, render_folders, render_json, render_text


app = typer.Typer(help="Manage IMAP/POP3 mailboxes and send mail over SMTP")

LOGGER = logging.getLogger("mailctl.cli")

_FOLDER = typer.Argument("INBOX", help="Folder name (e.g. INBOX)")
_UNREAD = typer.Option(False, "--unread", help="Filter unread emails")
_READ = typer.Option(False, "--read", help="Filter read emails")
_FROM = typer.Option(None, "--from", help="Filter emails from sender (email address or name)")
_SUBJECT = typer.Option(None, "--subject", help="Filter emails with subject containing text")
_BODY = typer.Option(None, "--body", help="Filter emails with body containing text")
_TO = typer.Option(None, "--to", help="Filter emails sent to recipient")
_CC = typer.Option(None, "--cc", help="Filter emails CC'd to recipient")
_BCC = typer.Option(None, "--bcc", help="Filter emails BCC'd to recipient")
_RECEIVED_AFTER = typer.Option(
    None, "--received-after", help="Filter emails received after date (format: yyyy-MM-dd)"
)
_RECEIVED_BEFORE = typer.Option(
    None, "--received-before", help="Filter emails received before date (format: yyyy-MM-dd)"
)
_SENT_AFTER = typer.Option(None, "--sent-after", help="Filter emails sent after date (format: yyyy-MM-dd)")
_SENT_BEFORE = typer.Option(
    None, "--sent-before", help="Filter emails sent before date (format: yyyy-MM-dd)"
)


def _fail(message: str) -> typer.Exit:
    typer.echo(message, err=True)
    return typer.Exit(code=1)


def _operations(ctx: typer.Context) -> MailOperations:
    """Load settings for this invocation and build the operations facade."""

    config_path = (ctx.obj or {}).get("config")
    try:
        settings = load_settings(config_path)
    except ConfigError as exc:
        LOGGER.debug("settings_load_failed: %s", exc)
        raise _fail(f"Error: {exc}") from exc
    return MailOperations(settings)


@app.callback()
def _root(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        help="YAML settings file (defaults to MAILCTL_CONFIG_PATH, then .env/environment)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)
    ctx.obj = {"config": config}


@app.command("list-folders")
def list_folders(ctx: typer.Context) -> None:
    """List all folders in the mailbox."""

    operations = _operations(ctx)
    try:
        folders = operations.list_folders()
    except UnsupportedPortError as exc:
        raise _fail(f"Error listing folders: {exc}") from exc
    typer.echo(render_folders(folders))


@app.command("list-emails")
def list_emails(
    ctx: typer.Context,
    folder: str = _FOLDER,
    unread: bool = _UNREAD,
    read: bool = _READ,
    sender: Optional[str] = _FROM,
    subject: Optional[str] = _SUBJECT,
    body: Optional[str] = _BODY,
    to: Optional[str] = _TO,
    cc: Optional[str] = _CC,
    bcc: Optional[str] = _BCC,
    received_after: Optional[str] = _RECEIVED_AFTER,
    received_before: Optional[str] = _RECEIVED_BEFORE,
    sent_after: Optional[str] = _SENT_AFTER,
    sent_before: Optional[str] = _SENT_BEFORE,
    text: bool = typer.Option(False, "--text", help="Output plain text instead of JSON"),
) -> None:
    """List emails in a folder with optional filtering."""

    options = FilterOptions(
        unread=unread,
        read=read,
        sender=sender,
        subject=subject,
        body=body,
        to=to,
        cc=cc,
        bcc=bcc,
        received_after=received_after,
        received_before=received_before,
        sent_after=sent_after,
        sent_before=sent_before,
    )
    try:
        predicate = build_predicate(options)
    except InvalidDateError as exc:
        raise _fail(f"Error: {exc}") from exc

    operations = _operations(ctx)
    try:
        messages = operations.list_messages(folder, predicate)
    except UnsupportedPortError as exc:
        raise _fail(f"Error listing emails: {exc}") from exc

    if text:
        if not messages:
            typer.echo(empty_text(folder, filtered=predicate is not None))
        else:
            typer.echo(render_text(folder, messages))
        return
    typer.echo(render_json(folder, messages))


@app.command("delete-emails")
def delete_emails(
    ctx: typer.Context,
    folder: str = _FOLDER,
    unread: bool = _UNREAD,
    read: bool = _READ,
    sender: Optional[str] = _FROM,
    subject: Optional[str] = _SUBJECT,
    body: Optional[str] = _BODY,
    to: Optional[str] = _TO,
    cc: Optional[str] = _CC,
    bcc: Optional[str] = _BCC,
    received_after: Optional[str] = _RECEIVED_AFTER,
    received_before: Optional[str] = _RECEIVED_BEFORE,
    sent_after: Optional[str] = _SENT_AFTER,
    sent_before: Optional[str] = _SENT_BEFORE,
) -> None:
    """Delete emails in a folder matching the specified criteria."""

    options = FilterOptions(
        unread=unread,
        read=read,
        sender=sender,
        subject=subject,
        body=body,
        to=to,
        cc=cc,
        bcc=bcc,
        received_after=received_after,
        received_before=received_before,
        sent_after=sent_after,
        sent_before=sent_before,
    )
    try:
        predicate = build_predicate(options)
    except InvalidDateError as exc:
        raise _fail(f"Error: {exc}") from exc
    if predicate is None:
        typer.echo(
            "Error: At least one filter option must be specified to prevent "
            "accidental deletion of all emails.",
            err=True,
        )
        raise _fail("Use --help to see available filter options.")

    operations = _operations(ctx)
    try:
        deleted = operations.delete_messages(folder, predicate)
    except (MissingFilterError, UnsupportedPortError) as exc:
        raise _fail(f"Error: {exc}") from exc

    if deleted:
        typer.echo(f"Emails deleted successfully from folder: {folder}")
    else:
        typer.echo(f"No emails found matching the criteria in folder: {folder}")


@app.command("send")
def send(
    ctx: typer.Context,
    to: str = typer.Argument(..., help="Recipient address"),
    subject: str = typer.Option(..., "--subject", "-s", help="Message subject"),
    body: str = typer.Option(..., "--body", "-b", help="Plain-text message body"),
) -> None:
    """Send a plain-text email to one recipient."""

    operations = _operations(ctx)
    if not operations.send(MessageDraft(to=to, subject=subject, body=body)):
        raise _fail(f"Error: failed to send email to {to}")
    typer.echo(f"Email sent to {to}")


def main() -> None:
    """Execute the Typer application entry point."""

    app()


if __name__ == "__main__":  # pragma: no cover
    main()
