#!/usr/bin/env python3
"""
Role Identity CLI

Commands:
    fingerprint   Print the fingerprint of an identity document
    retrieve      Assume the role and print temporary credentials
    is-expired    Report whether a freshly loaded identity is expired

Identity documents are JSON or YAML files using the persisted field names:

    roleARN: arn:aws:iam::123456789012:role/demo
    sessionName: ci
    durationSeconds: 3600
    externalID: shared-secret
    tags: {team: platform}
    transitiveTags: [team]

Usage:
    aws-role-identity fingerprint identity.yaml
    aws-role-identity retrieve identity.json --show-secrets
"""

import json
import sys
from pathlib import Path
from typing import Any

import click
import yaml
from pydantic import ValidationError

from .config import get_config
from .identity import AWSRoleIdentity
from .logging_config import configure_logging
from .sts import sts_source_factory


def format_json(data: Any, pretty: bool = True) -> str:
    """Format data as JSON string"""
    if pretty:
        return json.dumps(data, indent=2, ensure_ascii=False)
    return json.dumps(data, ensure_ascii=False)


def handle_error(error: Exception, verbose: bool = False) -> None:
    """Handle and format errors"""
    if verbose:
        click.echo(f"Error: {type(error).__name__}: {error}", err=True)
        import traceback

        traceback.print_exc()
    else:
        click.echo(f"Error: {error}", err=True)
    sys.exit(1)


def load_identity(path: Path) -> AWSRoleIdentity:
    """Load an identity document from a JSON or YAML file.

    Raises:
        ValueError: If the document is not a mapping or fails validation
    """
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        data = json.loads(text)
    else:
        data = yaml.safe_load(text)

    if not isinstance(data, dict):
        raise ValueError(f"Identity document must be a mapping: {path}")

    try:
        return AWSRoleIdentity.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid identity document {path}:\n{e}") from e


@click.group()
@click.option("--env-file", type=click.Path(dir_okay=False), default=None, help="Load environment from this file")
@click.pass_context
def cli(ctx: click.Context, env_file):
    """Assume AWS roles from declarative identity documents."""
    config = get_config(env_file)
    configure_logging(config.log_level, config.json_logs)
    ctx.obj = config


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--verbose", "-v", is_flag=True, help="Verbose error output")
def fingerprint(path: Path, verbose: bool):
    """
    Print the hex fingerprint of an identity document

    Two documents with the same fingerprint describe the same identity.
    """
    try:
        identity = load_identity(path)
        click.echo(identity.fingerprint_hex())
    except Exception as e:
        handle_error(e, verbose)


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--show-secrets", is_flag=True, help="Print the secret key and session token")
@click.option("--pretty/--compact", default=True, help="Pretty-print JSON output", show_default=True)
@click.option("--verbose", "-v", is_flag=True, help="Verbose error output")
@click.pass_obj
def retrieve(config, path: Path, show_secrets: bool, pretty: bool, verbose: bool):
    """
    Assume the role described by an identity document and print the credentials
    """
    try:
        identity = load_identity(path).with_source_factory(sts_source_factory(config))
        credentials = identity.retrieve()
        click.echo(format_json(credentials.to_dict(redact=not show_secrets), pretty=pretty))
    except Exception as e:
        handle_error(e, verbose)


@cli.command("is-expired")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--verbose", "-v", is_flag=True, help="Verbose error output")
def is_expired(path: Path, verbose: bool):
    """
    Report whether an identity has usable credentials

    A freshly loaded identity has not retrieved anything yet, so this prints
    "true"; the exit code is 0 either way.
    """
    try:
        identity = load_identity(path)
        click.echo("true" if identity.is_expired() else "false")
    except Exception as e:
        handle_error(e, verbose)


if __name__ == "__main__":
    cli()
