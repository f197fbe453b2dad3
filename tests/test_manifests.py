from pathlib import Path

import pytest
import yaml

from frontend.manifests import ManifestError, image_repository, load_documents, load_manifests, parse_deployment

from .conftest import MANIFEST_DIR


def _edit(path: Path, mutate) -> None:
    doc = yaml.safe_load(path.read_text(encoding="utf-8"))
    mutate(doc)
    path.write_text(yaml.safe_dump(doc), encoding="utf-8")


def _container(doc):
    return doc["spec"]["template"]["spec"]["containers"][0]


def test_repository_manifests_are_consistent():
    deployment, service = load_manifests(MANIFEST_DIR)

    assert deployment.name == "frontend"
    assert deployment.replicas == 2
    assert deployment.container_port == 8080
    assert deployment.readiness.path == "/readyz"
    assert deployment.liveness.path == "/healthz"
    assert deployment.env == {"APP_ENV": "production", "PORT": "8080", "HOST": "0.0.0.0"}
    assert service.port == 80
    assert service.target_port == "http"


def test_probe_paths_match_application_routes(client):
    deployment, _ = load_manifests(MANIFEST_DIR)

    for probe in (deployment.readiness, deployment.liveness):
        assert client.get(probe.path).status_code == 200


def test_request_above_limit_is_reported(manifest_dir):
    _edit(manifest_dir / "deployment.yaml",
          lambda doc: _container(doc)["resources"]["requests"].update(memory="1Gi"))

    with pytest.raises(ManifestError) as excinfo:
        load_manifests(manifest_dir)

    assert excinfo.value.problems == ["deployment: memory request 1Gi exceeds limit 256Mi"]


def test_selector_and_target_port_mismatch_are_both_reported(manifest_dir):
    def mutate(doc):
        doc["spec"]["selector"] = {"app": "backend"}
        doc["spec"]["ports"][0]["targetPort"] = 9000

    _edit(manifest_dir / "service.yaml", mutate)

    with pytest.raises(ManifestError) as excinfo:
        load_manifests(manifest_dir)

    assert len(excinfo.value.problems) == 2
    assert "selector" in excinfo.value.problems[0]
    assert "targetPort 9000" in excinfo.value.problems[1]


def test_numeric_target_port_matching_container_port_is_accepted(manifest_dir):
    _edit(manifest_dir / "service.yaml", lambda doc: doc["spec"]["ports"][0].update(targetPort=8080))

    _, service = load_manifests(manifest_dir)

    assert service.target_port == 8080


def test_missing_probe_and_bad_probe_port(manifest_dir):
    def mutate(doc):
        container = _container(doc)
        del container["livenessProbe"]
        container["readinessProbe"]["httpGet"]["port"] = 9999

    _edit(manifest_dir / "deployment.yaml", mutate)

    with pytest.raises(ManifestError) as excinfo:
        load_manifests(manifest_dir)

    assert "readiness probe port 9999" in str(excinfo.value)
    assert "liveness probe is missing" in str(excinfo.value)


def test_negative_replicas_rejected(manifest_dir):
    _edit(manifest_dir / "deployment.yaml", lambda doc: doc["spec"].update(replicas=-1))

    with pytest.raises(ManifestError, match="replicas"):
        load_manifests(manifest_dir)


def test_omitted_replicas_default_to_one():
    doc = yaml.safe_load((MANIFEST_DIR / "deployment.yaml").read_text(encoding="utf-8"))
    del doc["spec"]["replicas"]

    assert parse_deployment(doc).replicas == 1


def test_missing_file(tmp_path):
    with pytest.raises(ManifestError, match="file not found"):
        load_manifests(tmp_path)


def test_file_without_expected_kind(manifest_dir):
    (manifest_dir / "service.yaml").write_text("apiVersion: v1\nkind: ConfigMap\n", encoding="utf-8")

    with pytest.raises(ManifestError, match="no Service document"):
        load_manifests(manifest_dir)


def test_invalid_yaml(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("kind: [unclosed\n", encoding="utf-8")

    with pytest.raises(ManifestError, match="invalid YAML"):
        load_documents(path)


def test_nameless_env_entry_is_reported(manifest_dir):
    _edit(manifest_dir / "deployment.yaml", lambda doc: _container(doc)["env"].append({"value": "x"}))

    with pytest.raises(ManifestError) as excinfo:
        load_manifests(manifest_dir)

    assert excinfo.value.problems == ["deployment: env[3] has no name"]


@pytest.mark.parametrize("mutate, expected", [
    (lambda doc: doc.update(spec=["replicas"]), "deployment: spec must be a mapping, got list"),
    (lambda doc: doc["spec"]["template"]["spec"].update(containers={"name": "frontend"}),
     "deployment: containers must be a list, got dict"),
    (lambda doc: _container(doc).update(ports=["8080"]), "deployment: containers[0].ports[0] must be a mapping"),
    (lambda doc: _container(doc).update(env="APP_ENV=production"), "deployment: env must be a list, got str"),
])
def test_wrong_shapes_are_reported_not_raised(manifest_dir, mutate, expected):
    _edit(manifest_dir / "deployment.yaml", mutate)

    with pytest.raises(ManifestError) as excinfo:
        load_manifests(manifest_dir)

    assert any(problem.startswith(expected) for problem in excinfo.value.problems)


def test_service_ports_of_wrong_shape(manifest_dir):
    _edit(manifest_dir / "service.yaml", lambda doc: doc["spec"].update(ports="80:8080"))

    with pytest.raises(ManifestError) as excinfo:
        load_manifests(manifest_dir)

    assert "service: ports must be a list, got str" in excinfo.value.problems


@pytest.mark.parametrize("image, expected", [
    ("ghcr.io/acme/web/frontend:latest", "ghcr.io/acme/web/frontend"),
    ("localhost:5000/frontend:1.2", "localhost:5000/frontend"),
    ("localhost:5000/frontend", "localhost:5000/frontend"),
    ("frontend@sha256:abc", "frontend"),
    ("frontend", "frontend"),
])
def test_image_repository(image, expected):
    assert image_repository(image) == expected
