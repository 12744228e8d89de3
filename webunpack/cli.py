"""Command line entrypoint for webunpack."""

import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import click
from pydantic import ValidationError

from .config import get_settings
from .context import DeploymentContext, ExtractionPolicy, HostInfo
from .errors import WebUnpackError
from .lifecycle import DeploymentLifecycle
from .naming import NamingStrategy, TempDirectoryNamer, classic_name
from .workdir import WorkDirectoryResolver


def _json_output(data: Dict[str, Any]) -> None:
    """Output data as JSON."""
    print(json.dumps(data, indent=None))


def _build_context(war: str, context_path: str, vhost: Optional[str], host: Optional[str],
                   port: Optional[int], home: Optional[str], temp_dir: Optional[str],
                   base_temp_dir: Optional[str], copy_dir: bool, copy_web_inf: Optional[bool],
                   extract: Optional[bool]) -> DeploymentContext:
    settings = get_settings()
    context = DeploymentContext(
        war=war,
        context_path=context_path,
        virtual_hosts=[vhost] if vhost else [],
        temp_directory=Path(temp_dir) if temp_dir else None,
        host=HostInfo(host=host, port=port, root=Path(home) if home else settings.home),
        policy=ExtractionPolicy(
            copy_source_dir=copy_dir,
            extract_archive=settings.extract_archive if extract is None else extract,
            copy_web_inf=settings.copy_web_inf if copy_web_inf is None else copy_web_inf,
        ),
    )
    context.attributes.base_temp_dir = base_temp_dir
    return context


def _context_options(f):
    options = [
        click.option('--war', required=True, help='Archive or exploded directory to deploy'),
        click.option('--context-path', default='/', help='Context path of the web application'),
        click.option('--vhost', help='First virtual host'),
        click.option('--host', help='Connector host'),
        click.option('--port', type=int, help='Configured connector port'),
        click.option('--home', help='Host root; {home}/work is preferred as work directory'),
        click.option('--temp-dir', help='Explicit temp directory for this deployment'),
        click.option('--base-temp-dir', help='Work directory override'),
        click.option('--copy-dir', is_flag=True, help='Copy an exploded directory into the temp directory'),
        click.option('--copy-web-inf/--no-copy-web-inf', default=None, help='Synthesize a WEB-INF copy'),
        click.option('--extract/--no-extract', default=None, help='Extract packaged archives'),
        click.option('--strategy', type=click.Choice([s.value for s in NamingStrategy]),
                      help='Temp directory naming strategy'),
    ]
    for option in reversed(options):
        f = option(f)
    return f


def _strategy(name: Optional[str]) -> NamingStrategy:
    return NamingStrategy.from_name(name or get_settings().strategy)


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
@click.option('--json', 'output_json', is_flag=True, help='Output machine-readable JSON')
@click.pass_context
def main(ctx, verbose, output_json):
    """Webunpack - per-deployment work directories and artifact unpacking."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj['json'] = output_json


@main.command()
@click.option('--home', help='Host root; {home}/work is preferred')
@click.option('--base-temp-dir', help='Work directory override')
@click.pass_context
def workdir(ctx, home, base_temp_dir):
    """Print the work directory that would be used."""
    context = DeploymentContext()
    context.attributes.base_temp_dir = base_temp_dir
    try:
        work = WorkDirectoryResolver(home or get_settings().home).find_work_directory(context)
    except (WebUnpackError, ValidationError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    if ctx.obj['json']:
        _json_output({'work_dir': str(work)})
    else:
        click.echo(str(work))


@main.command()
@_context_options
@click.pass_context
def name(ctx, war, context_path, vhost, host, port, home, temp_dir, base_temp_dir,
         copy_dir, copy_web_inf, extract, strategy):
    """Print the temp directory a deployment would get."""
    try:
        context = _build_context(war, context_path, vhost, host, port, home, temp_dir,
                                 base_temp_dir, copy_dir, copy_web_inf, extract)
        directory = TempDirectoryNamer(_strategy(strategy)).get_dir(context)
    except (WebUnpackError, ValidationError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    if ctx.obj['json']:
        _json_output({
            'classic_name': classic_name(context),
            'temp_dir': str(directory),
            'owned': not context.attributes.temp_dir_configured,
        })
    else:
        click.echo(str(directory))


@main.command()
@_context_options
@click.pass_context
def prepare(ctx, war, context_path, vhost, host, port, home, temp_dir, base_temp_dir,
            copy_dir, copy_web_inf, extract, strategy):
    """Resolve the temp directory and unpack the artifact into it."""
    try:
        context = _build_context(war, context_path, vhost, host, port, home, temp_dir,
                                 base_temp_dir, copy_dir, copy_web_inf, extract)
        lifecycle = DeploymentLifecycle(_strategy(strategy))
        lifecycle.preconfigure(context)
        lifecycle.configure(context)
    except (WebUnpackError, ValidationError, OSError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    result = {
        'temp_dir': str(context.temp_directory) if context.temp_directory else None,
        'base_resource': repr(context.base_resource),
        'classpath': [r.uri for r in context.classpath],
        'web_inf_jars': [j.uri for j in context.web_inf_jars],
    }
    if ctx.obj['json']:
        _json_output(result)
    else:
        click.echo(f"Temp directory: {result['temp_dir']}")
        click.echo(f"Base resource:  {result['base_resource']}")
        for entry in result['classpath']:
            click.echo(f"  classpath: {entry}")


@main.command()
@click.argument('temp_dir', type=click.Path(exists=True, file_okay=False))
@click.option('--user-supplied', is_flag=True, help='Directory was supplied by the user; keep it')
@click.pass_context
def teardown(ctx, temp_dir, user_supplied):
    """Delete a deployment's temp directory unless it is protected."""
    context = DeploymentContext(temp_directory=Path(temp_dir))
    context.attributes.temp_dir_configured = user_supplied
    DeploymentLifecycle().deconfigure(context)
    deleted = context.temp_directory is None
    if ctx.obj['json']:
        _json_output({'temp_dir': temp_dir, 'deleted': deleted})
    else:
        click.echo(f"{'Deleted' if deleted else 'Kept'} {temp_dir}")


if __name__ == '__main__':
    main()
