"""Checks that a pushed image tag is reachable in its registry."""

import subprocess

INSPECT_TIMEOUT = 60


class RegistryError(RuntimeError):
    pass


def image_exists(image, docker="docker", timeout=INSPECT_TIMEOUT):
    """Returns True when `docker manifest inspect` resolves the reference."""
    if not image or (":" not in image.rsplit("/", 1)[-1] and "@" not in image):
        raise RegistryError(f"image reference must carry a tag or digest: {image!r}")

    try:
        result = subprocess.run(
            [docker, "manifest", "inspect", image],
            text=True,
            capture_output=True,
            check=False,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        raise RegistryError(f"{docker} not found on PATH") from e
    except subprocess.TimeoutExpired as e:
        raise RegistryError(f"docker manifest inspect timed out after {timeout}s") from e

    if result.returncode == 0:
        return True
    stderr = result.stderr.strip()
    if "no such manifest" in stderr or "manifest unknown" in stderr:
        return False
    raise RegistryError(stderr or "docker manifest inspect failed")
