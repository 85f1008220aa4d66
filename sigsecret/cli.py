"""Command-line interface for signature synchronisation."""

import json
import sys

import click

from . import __version__
from .action import run_action
from .collector import collect_signatures
from .config import ActionConfig, ConfigError, load_config, load_default_config
from .log import configure_logging, get_logger
from .outputs import write_outputs
from .payload import PayloadMode
from .reconciler import UpdateStrategy
from .selection import NoMainSignatureError, select_main_signature

logger = get_logger("cli")


def _load_settings(config_path, **overrides) -> ActionConfig:
    """Layer config file, action inputs and CLI options (highest wins)."""
    if config_path:
        action_config = load_config(config_path)
        logger.info(f"Loaded config: {config_path}")
    else:
        action_config = load_default_config()
        if action_config:
            logger.info("Loaded default config: .tauri-sig/config.yaml")
        else:
            action_config = ActionConfig({})

    action_config = action_config.apply_environment_overrides()
    return action_config.merge_with_cli_args(**overrides)


@click.group()
@click.version_option(version=__version__)
def main():
    """Store Tauri update signatures in Kubernetes secrets."""
    pass


@main.command()
@click.option(
    "--config",
    type=click.Path(exists=True),
    help="Configuration file (YAML). Defaults to .tauri-sig/config.yaml if present.",
)
@click.option("--bundle-path", help="Tauri bundle directory")
@click.option(
    "--kubernetes-config",
    envvar="KUBECONFIG_CONTENT",
    help=(
        "Complete kubeconfig content (YAML). Prefer setting KUBECONFIG_CONTENT "
        "or the kubernetes-config action input: command-line values are "
        "visible to other processes."
    ),
)
@click.option("--namespace", help="Namespace of the secret")
@click.option("--secret-name", help="Name of the secret")
@click.option("--key-prefix", help="Secret key, or key prefix in full-metadata mode")
@click.option("--platforms", help="Comma-separated platforms to process")
@click.option(
    "--mode",
    type=click.Choice([m.value for m in PayloadMode]),
    help="Store the main signature only, or every signature with metadata",
)
@click.option(
    "--strategy",
    type=click.Choice([s.value for s in UpdateStrategy]),
    help="How to update an existing secret",
)
@click.option("--timeout", type=float, help="Seconds allowed per kubectl call")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def run(
    config,
    bundle_path,
    kubernetes_config,
    namespace,
    secret_name,
    key_prefix,
    platforms,
    mode,
    strategy,
    timeout,
    verbose,
):
    """Extract signatures and write them into a Kubernetes secret."""
    configure_logging(verbose=verbose)

    try:
        settings = _load_settings(
            config,
            bundle_path=bundle_path,
            kube_config=kubernetes_config,
            namespace=namespace,
            secret_name=secret_name,
            key_prefix=key_prefix,
            platforms=platforms,
            mode=mode,
            update_strategy=strategy,
            kubectl_timeout=timeout,
        )
        result = run_action(settings)
        write_outputs(result.outputs())

    except Exception as e:
        logger.error(f"Action failed: {e}")
        logger.debug("Stack trace:", exc_info=True)
        sys.exit(1)

    if result.secret_updated:
        click.echo(
            f"✅ Stored {result.signatures_found} signature(s) in secret "
            f"{settings.secret_name} ({result.outcome.value})"
        )
    else:
        click.echo("⚠️  No signatures found, secret not updated")


@main.command()
@click.option(
    "--config",
    type=click.Path(exists=True),
    help="Configuration file (YAML). Defaults to .tauri-sig/config.yaml if present.",
)
@click.option("--bundle-path", help="Tauri bundle directory")
@click.option("--platforms", help="Comma-separated platforms to process")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def collect(config, bundle_path, platforms, verbose):
    """Print the signature catalog without touching the cluster."""
    configure_logging(verbose=verbose)

    try:
        settings = _load_settings(config, bundle_path=bundle_path, platforms=platforms)
        signature_set = collect_signatures(
            settings.bundle_path,
            settings.platforms,
            category_map=settings.get_category_map(),
        )
    except (FileNotFoundError, ConfigError) as e:
        click.echo(f"❌ Config error: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        logger.error(f"Collection failed: {e}")
        logger.debug("Stack trace:", exc_info=True)
        sys.exit(1)

    click.echo(json.dumps(signature_set.to_dict(), indent=2))
    click.echo(f"Signatures: {signature_set.total_count}", err=True)

    try:
        platform, record = select_main_signature(signature_set)
        click.echo(f"Main signature: {platform}/{record.source_file}", err=True)
    except NoMainSignatureError:
        click.echo("Main signature: none", err=True)


if __name__ == "__main__":
    main()
