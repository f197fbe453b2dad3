import logging
import time

from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException

logger = logging.getLogger(__name__)

# Matches the Deployment controller's default progressDeadlineSeconds
DEFAULT_TIMEOUT = 600
POLL_INTERVAL = 2


class RolloutError(RuntimeError):
    """Raised when the cluster cannot be reached or the deployment cannot be read."""


class RolloutTimeout(RolloutError):
    pass


def load_apps_api():
    """Returns an AppsV1Api, preferring in-cluster config over kubeconfig."""
    try:
        config.load_incluster_config()
        logger.info("Loaded in-cluster K8s config.")
    except ConfigException:
        try:
            config.load_kube_config()
        except ConfigException as e:
            raise RolloutError(f"no cluster config available: {e}") from e
        logger.info("Loaded K8s config from kubeconfig.")
    return client.AppsV1Api()


def is_rolled_out(deployment, replicas=None):
    """True once the controller has observed the latest spec and every replica is updated and available."""
    spec_replicas = deployment.spec.replicas if replicas is None else replicas
    status = deployment.status
    if (status.observed_generation or 0) < (deployment.metadata.generation or 0):
        return False
    return (
        (status.updated_replicas or 0) == spec_replicas
        and (status.ready_replicas or 0) == spec_replicas
        and (status.available_replicas or 0) == spec_replicas
        and (status.replicas or 0) == spec_replicas
    )


def wait_for_rollout(name, namespace="default", replicas=None, timeout=DEFAULT_TIMEOUT,
                     interval=POLL_INTERVAL, api=None, clock=time.monotonic, sleep=time.sleep):
    """Polls a Deployment until it reaches its declared replica count.

    Returns the final deployment object. Raises RolloutTimeout when the
    deadline passes first, RolloutError when the API refuses the read.
    """
    api = api or load_apps_api()
    deadline = clock() + timeout

    while True:
        try:
            deployment = api.read_namespaced_deployment_status(name=name, namespace=namespace)
        except ApiException as e:
            raise RolloutError(f"cannot read deployment {namespace}/{name}: {e.status} {e.reason}") from e
        status = deployment.status
        logger.info(f"{namespace}/{name}: {status.ready_replicas or 0}/"
                    f"{deployment.spec.replicas if replicas is None else replicas} ready, "
                    f"{status.updated_replicas or 0} updated")
        if is_rolled_out(deployment, replicas):
            return deployment
        if clock() >= deadline:
            raise RolloutTimeout(f"deployment {namespace}/{name} not rolled out after {timeout}s")
        sleep(interval)
