"""CLI argument parsing and dispatch for paper-extractor."""

import argparse
import asyncio
import logging
import sys
from dataclasses import asdict

import requests

from common.display import console, notice, show_settings
from common.url_utils import extract_arxiv_id
from .errors import NoteError
from .note import inject_url
from .orchestrator import Orchestrator, RunOutcome
from .settings import default_settings_path, load_settings, save_settings, update_setting
from .vault import Vault, join_path


def _add_run_parser(subparsers):
    """Add the 'run' subcommand parser."""
    p = subparsers.add_parser("run", help="Rename, fetch and summarize an existing note")
    p.add_argument("note", type=str, help="Vault-relative path of the note (must contain a '###### url_01:' line)")


def _add_new_parser(subparsers):
    """Add the 'new' subcommand parser."""
    p = subparsers.add_parser("new", help="Create a note from the template for an arXiv URL, then run on it")
    p.add_argument("url", type=str, help="arXiv URL (abs, pdf or html)")
    p.add_argument("--folder", type=str, default="", help="Vault-relative folder for the new note (default: vault root)")


def _add_settings_parser(subparsers):
    """Add the 'settings' subcommand parser."""
    p = subparsers.add_parser("settings", help="Show or update settings")
    p.add_argument("--set", dest="assignments", action="append", default=[], metavar="KEY=VALUE",
                   help="Set a value (repeatable), e.g. --set log_dir=logs")


def build_parser() -> argparse.ArgumentParser:
    """Build and return the main argument parser."""
    parser = argparse.ArgumentParser(
        description="Paper extractor: title, HTML/PDF and AI summary for arXiv notes in a Markdown vault"
    )
    parser.add_argument("--vault", type=str, default=".", help="Vault root directory (default: current directory)")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="-v for info diagnostics, -vv for debug")
    subparsers = parser.add_subparsers(dest="command")

    _add_run_parser(subparsers)
    _add_new_parser(subparsers)
    _add_settings_parser(subparsers)

    return parser


def _exit_code(outcome: RunOutcome) -> int:
    return 0 if outcome in (RunOutcome.SUCCESS, RunOutcome.SKIPPED) else 1


async def _run_note(vault: Vault, settings, note_path: str, url: str | None = None) -> RunOutcome:
    with requests.Session() as session:
        orchestrator = Orchestrator(vault, settings, session=session)
        return await orchestrator.run(note_path, url=url)


def create_note_from_template(vault: Vault, template_path: str, url: str, folder: str = "") -> str:
    """Write a new note for the URL and return its vault-relative path.

    Raises:
        NoteError: For a bad URL, a missing template or an existing note
    """
    try:
        arxiv_id = extract_arxiv_id(url)
    except ValueError as e:
        raise NoteError("ARXIV_URL_INVALID", str(e), user_message=str(e)) from e

    if not template_path:
        raise NoteError("TEMPLATE_PATH_MISSING", "template_path is empty", user_message="template_path is required (settings).")
    if not vault.is_file(template_path):
        raise NoteError("TEMPLATE_READ_FAILED", f"not found: {template_path}", user_message="Template note not found.")

    note_path = join_path(folder, f"{arxiv_id}.md")
    if vault.exists(note_path):
        raise NoteError("NOTE_CONFLICT", f"already exists: {note_path}", user_message=f"Note already exists: {note_path}")

    vault.write_text(note_path, inject_url(vault.read_text(template_path), url))
    return note_path


def dispatch(args) -> int:
    """Route parsed args to the appropriate command.

    Returns:
        Exit code (0 = success or skip, 1 = error or busy)
    """
    vault = Vault(args.vault)
    settings_path = default_settings_path(vault.root)
    settings = load_settings(settings_path)

    if args.command == "settings":
        try:
            for assignment in args.assignments:
                key, sep, value = assignment.partition("=")
                if not sep:
                    raise ValueError(f"Expected KEY=VALUE, got: {assignment}")
                update_setting(settings, key.strip(), value)
        except ValueError as e:
            notice(str(e), "error")
            return 1
        if args.assignments:
            save_settings(settings, settings_path)
            notice(f"Saved {settings_path}", "ok")
        show_settings(asdict(settings))
        return 0

    console.print(f"[bold]paper-extractor[/bold] {args.command}\n")

    if args.command == "run":
        return _exit_code(asyncio.run(_run_note(vault, settings, args.note)))
    elif args.command == "new":
        try:
            note_path = create_note_from_template(vault, settings.template_path.strip(), args.url.strip(), args.folder)
        except NoteError as e:
            notice(e.user_message, "error")
            return 1
        notice(f"Created {note_path}", "ok")
        return _exit_code(asyncio.run(_run_note(vault, settings, note_path, url=args.url.strip())))
    return 1


def main():
    """Entry point for the paper-extractor CLI."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    level = logging.DEBUG if args.verbose > 1 else logging.INFO if args.verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    exit_code = dispatch(args)
    sys.exit(exit_code)
