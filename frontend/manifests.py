"""Loading and consistency checks for the Deployment and Service manifests."""

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from kubernetes.utils import parse_quantity

logger = logging.getLogger(__name__)

DEFAULT_MANIFEST_DIR = Path("k8s")


class ManifestError(ValueError):
    """Raised when a manifest is missing or inconsistent."""

    def __init__(self, problems):
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))


@dataclass
class Probe:
    path: str
    port: object


@dataclass
class DeploymentSpec:
    name: str
    replicas: int
    pod_labels: dict
    image: str
    container_port: int
    port_name: str = None
    requests: dict = field(default_factory=dict)
    limits: dict = field(default_factory=dict)
    readiness: Probe = None
    liveness: Probe = None
    env: dict = field(default_factory=dict)
    malformed: list = field(default_factory=list)


@dataclass
class ServiceSpec:
    name: str
    selector: dict
    port: int
    target_port: object
    type: str = "ClusterIP"
    malformed: list = field(default_factory=list)


def load_documents(path):
    """Returns every non-empty YAML document in a manifest file."""
    path = Path(path)
    if not path.is_file():
        raise ManifestError([f"{path}: file not found"])
    with path.open(encoding="utf-8") as fh:
        try:
            docs = [doc for doc in yaml.safe_load_all(fh) if doc]
        except yaml.YAMLError as e:
            raise ManifestError([f"{path}: invalid YAML: {e}"]) from e
    return docs


def _find_kind(docs, kind, path):
    for doc in docs:
        if isinstance(doc, dict) and doc.get("kind") == kind:
            return doc
    raise ManifestError([f"{path}: no {kind} document"])


def _mapping(value, where, malformed):
    """Returns value when it is a mapping; otherwise records the problem and returns {}."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        malformed.append(f"{where} must be a mapping, got {type(value).__name__}")
        return {}
    return value


def _first(value, where, malformed):
    """Returns the first mapping of a list field, or {}."""
    if value is None:
        return {}
    if not isinstance(value, list):
        malformed.append(f"{where} must be a list, got {type(value).__name__}")
        return {}
    if not value:
        return {}
    return _mapping(value[0], f"{where}[0]", malformed)


def _probe(raw, where, malformed):
    if not raw:
        return None
    http_get = _mapping(_mapping(raw, where, malformed).get("httpGet"), f"{where}.httpGet", malformed)
    return Probe(path=http_get.get("path"), port=http_get.get("port"))


def _env(raw, where, malformed):
    if raw is None:
        return {}
    if not isinstance(raw, list):
        malformed.append(f"{where} must be a list, got {type(raw).__name__}")
        return {}
    env = {}
    for index, item in enumerate(raw):
        item = _mapping(item, f"{where}[{index}]", malformed)
        if not item.get("name"):
            malformed.append(f"{where}[{index}] has no name")
            continue
        env[item["name"]] = item.get("value")
    return env


def parse_deployment(doc) -> DeploymentSpec:
    malformed = []
    spec = _mapping(doc.get("spec"), "deployment: spec", malformed)
    template = _mapping(spec.get("template"), "deployment: spec.template", malformed)
    pod_spec = _mapping(template.get("spec"), "deployment: spec.template.spec", malformed)
    container = _first(pod_spec.get("containers"), "deployment: containers", malformed)
    port = _first(container.get("ports"), "deployment: containers[0].ports", malformed)
    resources = _mapping(container.get("resources"), "deployment: containers[0].resources", malformed)
    metadata = _mapping(doc.get("metadata"), "deployment: metadata", malformed)
    pod_metadata = _mapping(template.get("metadata"), "deployment: spec.template.metadata", malformed)

    return DeploymentSpec(
        name=metadata.get("name"),
        # Kubernetes defaults an omitted replica count to 1
        replicas=spec.get("replicas", 1),
        pod_labels=_mapping(pod_metadata.get("labels"), "deployment: pod labels", malformed),
        image=container.get("image"),
        container_port=port.get("containerPort"),
        port_name=port.get("name"),
        requests=_mapping(resources.get("requests"), "deployment: resources.requests", malformed),
        limits=_mapping(resources.get("limits"), "deployment: resources.limits", malformed),
        readiness=_probe(container.get("readinessProbe"), "deployment: readinessProbe", malformed),
        liveness=_probe(container.get("livenessProbe"), "deployment: livenessProbe", malformed),
        env=_env(container.get("env"), "deployment: env", malformed),
        malformed=malformed,
    )


def parse_service(doc) -> ServiceSpec:
    malformed = []
    spec = _mapping(doc.get("spec"), "service: spec", malformed)
    ports = _first(spec.get("ports"), "service: ports", malformed)
    port = ports.get("port")
    return ServiceSpec(
        name=_mapping(doc.get("metadata"), "service: metadata", malformed).get("name"),
        selector=_mapping(spec.get("selector"), "service: selector", malformed),
        port=port,
        # targetPort defaults to the service port
        target_port=ports.get("targetPort", port),
        type=spec.get("type", "ClusterIP"),
        malformed=malformed,
    )


def image_repository(image):
    """Strips the tag or digest from an image reference."""
    name = image.split("@", 1)[0]
    head, _, last = name.rpartition("/")
    last = last.split(":", 1)[0]
    return f"{head}/{last}" if head else last


def _valid_port(value):
    return isinstance(value, int) and not isinstance(value, bool) and 1 <= value <= 65535


def _resolves_to_container(port, deployment):
    if isinstance(port, str) and not port.isdigit():
        return port == deployment.port_name
    try:
        return int(port) == deployment.container_port
    except (TypeError, ValueError):
        return False


def check_deployment(deployment: DeploymentSpec):
    """Returns a list of problems found in a Deployment."""
    problems = list(deployment.malformed)
    if not deployment.name:
        problems.append("deployment: metadata.name is missing")
    if not isinstance(deployment.replicas, int) or isinstance(deployment.replicas, bool) \
            or deployment.replicas < 0:
        problems.append(f"deployment: replicas must be a non-negative integer, got {deployment.replicas!r}")
    if not deployment.image:
        problems.append("deployment: container image is missing")
    if not _valid_port(deployment.container_port):
        problems.append(f"deployment: invalid containerPort {deployment.container_port!r}")

    for resource, limit in deployment.limits.items():
        request = deployment.requests.get(resource)
        if request is None:
            continue
        try:
            if parse_quantity(request) > parse_quantity(limit):
                problems.append(f"deployment: {resource} request {request} exceeds limit {limit}")
        except (TypeError, ValueError) as e:
            problems.append(f"deployment: bad {resource} quantity: {e}")

    for kind, probe in (("readiness", deployment.readiness), ("liveness", deployment.liveness)):
        if probe is None:
            problems.append(f"deployment: {kind} probe is missing")
            continue
        if not probe.path or not str(probe.path).startswith("/"):
            problems.append(f"deployment: {kind} probe path {probe.path!r} is not absolute")
        if not _resolves_to_container(probe.port, deployment):
            problems.append(f"deployment: {kind} probe port {probe.port!r} does not match the container port")
    return problems


def check_service(service: ServiceSpec, deployment: DeploymentSpec):
    """Returns a list of problems in a Service relative to its Deployment."""
    problems = list(service.malformed)
    if not service.name:
        problems.append("service: metadata.name is missing")
    if not _valid_port(service.port):
        problems.append(f"service: invalid port {service.port!r}")
    if not service.selector:
        problems.append("service: selector is empty")
    else:
        unmatched = {k: v for k, v in service.selector.items() if deployment.pod_labels.get(k) != v}
        if unmatched:
            problems.append(f"service: selector {unmatched} does not match the pod labels")
    if not _resolves_to_container(service.target_port, deployment):
        problems.append(f"service: targetPort {service.target_port!r} does not match the container port")
    return problems


def load_manifests(directory=DEFAULT_MANIFEST_DIR):
    """Loads and checks both manifests, returning (deployment, service)."""
    directory = Path(directory)
    deployment_path = directory / "deployment.yaml"
    service_path = directory / "service.yaml"

    deployment = parse_deployment(_find_kind(load_documents(deployment_path), "Deployment", deployment_path))
    service = parse_service(_find_kind(load_documents(service_path), "Service", service_path))

    problems = check_deployment(deployment) + check_service(service, deployment)
    if problems:
        raise ManifestError(problems)

    logger.info(f"Manifests OK: {deployment.name} x{deployment.replicas} ({deployment.image}), "
                f"service {service.name}:{service.port} -> {service.target_port}")
    return deployment, service
