"""
helmpush.cli - CLI entry point.

Two calling conventions share one executable:

  helm push <chart> <repo-or-url> [flags]          - package and upload
  helmpush certFile keyFile caFile cm://host/file  - Helm downloader for cm://
"""

import logging
import sys

import click

from helmpush.cli.download_cmd import download
from helmpush.cli.push_cmd import push
from helmpush.errors import HelmPushError
from helmpush.helm.repo import CM_SCHEME
from helmpush.settings import ProcessEnviron, Settings, parse_bool, resolve_settings


GLOBAL_USAGE = """Helm plugin to push chart package to ChartMuseum

\b
Examples:
  $ helm push mychart-0.1.0.tgz chartmuseum       # push .tgz from "helm package"
  $ helm push . chartmuseum                       # package and push chart directory
  $ helm push . --version="7c4d121" chartmuseum   # override version in Chart.yaml
  $ helm push . https://my.chart.repo.com         # push directly to chart repo URL
"""

USAGE_ERROR = (
    "This command needs 2 arguments: name of chart, "
    "name of chart repository (or repo URL)"
)


class PushCommand(click.Command):
    """Reports bad flags like any other failure: ``Error: ...`` and exit 1."""

    def parse_args(self, ctx, args):
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as e:
            click.echo(f"Error: {e.format_message()}", err=True)
            ctx.exit(1)


@click.command("push", cls=PushCommand, help=GLOBAL_USAGE)
@click.argument("args", nargs=-1)
@click.option("--version", "-v", "chart_version", default="",
              help="Override chart version pre-push")
@click.option("--username", "-u", default="",
              help="Override HTTP basic auth username [$HELM_REPO_USERNAME]")
@click.option("--password", "-p", default="",
              help="Override HTTP basic auth password [$HELM_REPO_PASSWORD]")
@click.option("--access-token", default="",
              help="Send token in Authorization header [$HELM_REPO_ACCESS_TOKEN]")
@click.option("--auth-header", default="",
              help="Alternative header to use for token auth [$HELM_REPO_AUTH_HEADER]")
@click.option("--context-path", default="",
              help="ChartMuseum context path [$HELM_REPO_CONTEXT_PATH]")
@click.option("--ca-file", default="",
              help="Verify certificates of HTTPS-enabled servers using this CA bundle [$HELM_REPO_CA_FILE]")
@click.option("--cert-file", default="",
              help="Identify HTTPS client using this SSL certificate file [$HELM_REPO_CERT_FILE]")
@click.option("--key-file", default="",
              help="Identify HTTPS client using this SSL key file [$HELM_REPO_KEY_FILE]")
@click.option("--insecure", is_flag=True,
              help="Connect to server with an insecure way by skipping certificate verification [$HELM_REPO_INSECURE]")
@click.option("--force", "-f", is_flag=True,
              help="Force upload even if chart version exists")
@click.option("--debug", is_flag=True, help="Enable debug logging [$HELM_DEBUG]")
@click.pass_context
def main(ctx, args, chart_version, username, password, access_token,
         auth_header, context_path, ca_file, cert_file, key_file,
         insecure, force, debug):
    environ = ctx.obj or ProcessEnviron()
    _configure_logging(debug or parse_bool(environ.get("HELM_DEBUG") or ""))

    settings = Settings(
        chart_version=chart_version,
        username=username,
        password=password,
        access_token=access_token,
        auth_header=auth_header,
        context_path=context_path,
        force_upload=force,
        ca_file=ca_file,
        cert_file=cert_file,
        key_file=key_file,
        insecure_skip_verify=insecure,
    )

    try:
        # Helm downloader protocol: certFile keyFile caFile cm://...
        if len(args) == 4 and args[3].startswith(CM_SCHEME):
            resolve_settings(settings, environ)
            download(args[3], settings)
            return

        if len(args) != 2:
            click.echo(f"Error: {USAGE_ERROR}", err=True)
            sys.exit(1)

        settings.chart_name, settings.repo_name = args
        resolve_settings(settings, environ)
        push(settings, environ)

    except HelmPushError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _configure_logging(debug: bool) -> None:
    if debug:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr)
