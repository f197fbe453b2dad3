"""Command line entry point for serving and acceptance checks."""

import logging

import click

from . import __version__
from .config import LOG_LEVELS, Settings
from .manifests import DEFAULT_MANIFEST_DIR, ManifestError, image_repository, load_manifests
from .registry import RegistryError, image_exists
from .rollout import DEFAULT_TIMEOUT, RolloutError, wait_for_rollout
from .smoke import DEFAULT_PATHS, wait_until_serving


@click.group()
@click.version_option(version=__version__)
@click.option("--log-level", envvar="LOG_LEVEL", type=click.Choice(LOG_LEVELS, case_sensitive=False),
              default="INFO", show_default=True)
def main(log_level):
    """frontend-ctl - run the front-end and check its deployment."""
    logging.basicConfig(level=log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")


@main.command()
def serve():
    """Run the development server on HOST:PORT."""
    try:
        settings = Settings.from_env()
    except ValueError as e:
        raise click.ClickException(str(e))

    from .app import create_app
    create_app(settings).run(host=settings.host, port=settings.port, debug=settings.debug)


@main.command("check-manifests")
@click.option("--dir", "directory", type=click.Path(file_okay=False), default=str(DEFAULT_MANIFEST_DIR),
              show_default=True)
@click.option("--image-repo", default=None, help="Repository the deployment image must come from.")
def check_manifests(directory, image_repo):
    """Validate k8s/deployment.yaml and k8s/service.yaml."""
    try:
        deployment, service = load_manifests(directory)
    except ManifestError as e:
        for problem in e.problems:
            click.echo(f"  - {problem}", err=True)
        raise click.ClickException(f"{len(e.problems)} manifest problem(s)")
    if image_repo and image_repository(deployment.image) != image_repo:
        raise click.ClickException(f"deployment image {deployment.image} is not from {image_repo}")
    click.echo(f"ok: deployment {deployment.name} ({deployment.replicas} replicas, {deployment.image}), "
               f"service {service.name}:{service.port}")


@main.command()
@click.argument("base_url")
@click.option("--path", "paths", multiple=True, help="Path to check; repeatable.")
@click.option("--deadline", type=float, default=60, show_default=True)
def smoke(base_url, paths, deadline):
    """Check that BASE_URL serves the page and probe paths."""
    results = wait_until_serving(base_url, paths or DEFAULT_PATHS, deadline=deadline)
    for result in results:
        click.echo(f"{'ok' if result.ok else 'FAIL'} {result.path} {result.status_code or result.error}")
    if not all(result.ok for result in results):
        raise click.ClickException("smoke check failed")


@main.command("rollout-status")
@click.option("--name", default=None, help="Deployment name; defaults to the manifest's.")
@click.option("--namespace", default="default", show_default=True)
@click.option("--replicas", type=int, default=None, help="Expected replicas; defaults to the manifest's.")
@click.option("--timeout", type=float, default=DEFAULT_TIMEOUT, show_default=True)
@click.option("--dir", "directory", type=click.Path(file_okay=False), default=str(DEFAULT_MANIFEST_DIR),
              show_default=True)
def rollout_status(name, namespace, replicas, timeout, directory):
    """Wait until the deployment reaches its declared replica count."""
    if name is None or replicas is None:
        try:
            deployment, _ = load_manifests(directory)
        except ManifestError as e:
            raise click.ClickException(str(e))
        name = name or deployment.name
        replicas = deployment.replicas if replicas is None else replicas
    try:
        wait_for_rollout(name, namespace=namespace, replicas=replicas, timeout=timeout)
    except RolloutError as e:
        raise click.ClickException(str(e))
    click.echo(f"deployment {namespace}/{name} rolled out ({replicas} replicas)")


@main.command("image-exists")
@click.argument("image", required=False)
@click.option("--dir", "directory", type=click.Path(file_okay=False), default=str(DEFAULT_MANIFEST_DIR),
              show_default=True)
def image_exists_command(image, directory):
    """Check that IMAGE (with tag) is reachable in its registry.

    Without IMAGE, checks the image the deployment manifest declares.
    """
    if image is None:
        try:
            deployment, _ = load_manifests(directory)
        except ManifestError as e:
            raise click.ClickException(str(e))
        image = deployment.image
    try:
        found = image_exists(image)
    except RegistryError as e:
        raise click.ClickException(str(e))
    if not found:
        raise click.ClickException(f"{image} not found")
    click.echo(f"ok: {image}")


if __name__ == "__main__":
    main()
