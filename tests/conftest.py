from pathlib import Path

import pytest

from frontend.app import create_app
from frontend.config import Settings

REPO_ROOT = Path(__file__).resolve().parent.parent
MANIFEST_DIR = REPO_ROOT / "k8s"


@pytest.fixture
def settings() -> Settings:
    return Settings(env="development", host="127.0.0.1", port=5050, app_name="Test Front")


@pytest.fixture
def client(settings):
    app = create_app(settings)
    app.config["TESTING"] = True
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture
def manifest_dir(tmp_path: Path) -> Path:
    """A writable copy of the repository manifests."""
    target = tmp_path / "k8s"
    target.mkdir()
    for name in ("deployment.yaml", "service.yaml"):
        (target / name).write_text((MANIFEST_DIR / name).read_text(encoding="utf-8"), encoding="utf-8")
    return target
