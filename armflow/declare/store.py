"""
Declare Model Store.

Hand-off of a Declare model to persistence, fire-and-forget:
- DeclareModelStore: last-write-wins JSON file (``temp/declareModel.json``)
- publish_declare_model: POST to a Declare modeler's
  ``/api/save-declare-model`` endpoint

Neither raises on I/O failure; both log a warning and return False.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import httpx

from armflow.declare.model import DeclareModel

logger = logging.getLogger(__name__)

STORE_SUBDIR = "temp"
STORE_FILENAME = "declareModel.json"
SAVE_ENDPOINT = "/api/save-declare-model"


class DeclareModelStore:
    """Single-slot file store; each save overwrites the previous model."""

    def __init__(self, base_path: Path | str):
        self.base_path = Path(base_path)

    @property
    def path(self) -> Path:
        return self.base_path / STORE_SUBDIR / STORE_FILENAME

    def save(self, model: DeclareModel) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(model.to_json(), encoding="utf-8")
        except OSError as e:
            logger.warning(f"Failed to save Declare model to {self.path}: {e}")
            return False
        logger.info(f"Declare model saved at {self.path}")
        return True

    def load(self) -> DeclareModel | None:
        """Load the last saved model, or None if nothing was saved."""
        if not self.path.exists():
            return None
        with open(self.path, "r", encoding="utf-8") as f:
            return DeclareModel.from_dict(json.load(f))


def publish_declare_model(
    model: DeclareModel,
    base_url: str,
    client: httpx.Client | None = None,
    timeout: float = 10.0,
) -> bool:
    """
    POST a Declare model to a modeler's save endpoint.

    Args:
        model: Model to publish
        base_url: Modeler server, e.g. ``http://localhost:5174``
        client: Optional preconfigured client (tests inject a mock transport)
        timeout: Request timeout in seconds

    Returns:
        True if the server accepted the model
    """
    url = base_url.rstrip("/") + SAVE_ENDPOINT
    owns_client = client is None
    if client is None:
        client = httpx.Client(timeout=timeout)

    try:
        resp = client.post(url, json=model.to_dict())
        resp.raise_for_status()
        logger.info(f"Declare model published to {url}")
        return True
    except httpx.HTTPStatusError as e:
        logger.warning(f"Declare store HTTP error: {e.response.status_code}")
        return False
    except httpx.RequestError as e:
        logger.warning(f"Declare store request error: {e}")
        return False
    finally:
        if owns_client:
            client.close()
