import json
import logging
import sys

import click

from resume_assistant.app.ats.scorer import score_resume
from resume_assistant.app.chat.amendment import amend_document
from resume_assistant.app.database.database import init_db
from resume_assistant.app.resume.modification import ValidationError


log = logging.getLogger(__name__)


def _load_document(path: str) -> dict:
    with open(path, encoding="utf-8") as f:
        document = json.load(f)
    if not isinstance(document, dict):
        raise ValueError("The resume file must contain a JSON object.")
    return document


@click.group()
def cli():
    """Management script for the Resume Assistant application."""
    pass


@cli.command("init-db")
def init_db_command():
    """
    Create the database tables.

    Args:
        None

    Returns:
        None

    Notes:
        1. Creates every table registered on the declarative base.
        2. Existing tables are left alone; migrations are not managed here.
        3. On failure, prints an error message and exits with status 1.

    """
    _msg = "init_db_command starting"
    log.debug(_msg)
    click.echo("Creating database tables...")
    try:
        init_db()
    except Exception as e:
        _error_msg = f"An error occurred while creating tables: {e}"
        click.echo(_error_msg, err=True)
        log.exception(_error_msg)
        sys.exit(1)
    _success_msg = "Database tables created."
    click.echo(_success_msg)
    log.info(_success_msg)


@cli.command("score")
@click.argument("resume_json", type=click.Path(exists=True, dir_okay=False))
@click.argument("job_txt", type=click.Path(exists=True, dir_okay=False))
def score(resume_json: str, job_txt: str):
    """
    Score a resume JSON file against a job description text file.

    Args:
        resume_json (str): Path to the resume document.
        job_txt (str): Path to the job description.

    Returns:
        None

    Notes:
        1. Prints the ATS report as JSON.
        2. Scoring itself never fails; unreadable input exits with status 1.

    """
    _msg = "score starting"
    log.debug(_msg)
    try:
        document = _load_document(resume_json)
        with open(job_txt, encoding="utf-8") as f:
            job_text = f.read()
    except (OSError, ValueError) as e:
        _error_msg = f"Could not read input: {e}"
        click.echo(_error_msg, err=True)
        log.exception(_error_msg)
        sys.exit(1)

    report = score_resume(document, job_text)
    click.echo(report.model_dump_json(indent=2))
    _msg = "score returning"
    log.debug(_msg)


@cli.command("amend")
@click.argument("resume_json", type=click.Path(exists=True, dir_okay=False))
@click.argument("message")
@click.option(
    "--in-place",
    is_flag=True,
    default=False,
    help="Write the amended document back to RESUME_JSON.",
)
def amend(resume_json: str, message: str, in_place: bool):
    """
    Apply a chat instruction to a resume JSON file.

    Args:
        resume_json (str): Path to the resume document.
        message (str): The chat instruction, e.g. "change email to a@b.com".
        in_place (bool): Whether to overwrite the input file with the result.

    Returns:
        None

    Notes:
        1. Prints the amended document, or the clarification question when the
           instruction is ambiguous.
        2. Warnings are printed to stderr.
        3. Invalid input or an edit that cannot be applied exits with status 1.

    """
    _msg = "amend starting"
    log.debug(_msg)
    try:
        document = _load_document(resume_json)
        result = amend_document(document, message)
    except (OSError, ValueError) as e:
        # ValidationError is a ValueError
        _error_msg = (
            f"Could not apply change to {e.field_path}: {e}"
            if isinstance(e, ValidationError)
            else f"Could not amend resume: {e}"
        )
        click.echo(_error_msg, err=True)
        log.exception(_error_msg)
        sys.exit(1)

    for warning in result.warnings:
        click.echo(f"Warning: {warning}", err=True)

    if result.clarification_question and not result.applied:
        click.echo(result.clarification_question)
        return

    output = json.dumps(result.document, indent=2, ensure_ascii=False)
    if in_place and result.applied:
        with open(resume_json, "w", encoding="utf-8") as f:
            f.write(output + "\n")
        click.echo(f"Updated {resume_json}")
    else:
        click.echo(output)
    _msg = "amend returning"
    log.debug(_msg)


def main():
    """Run the command line interface."""
    cli()


if __name__ == "__main__":
    main()
