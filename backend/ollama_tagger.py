"""Ollama HTTP client that turns an image into a list of descriptive tags.

Pure stdlib HTTP plus Pillow for downscaling; runs on the daemon's client threads.
"""

import base64
import io
import json
import logging
import urllib.request
import urllib.error
from pathlib import Path
from typing import List

from PIL import Image, ImageOps, UnidentifiedImageError

from core.errors import BackendError

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "http://localhost:11434/api/generate"
DEFAULT_MODEL = "moondream"
DEFAULT_PROMPT = (
    "List 5-10 descriptive tags for this image. Output only the tags separated by commas, "
    "nothing else. Example: nature, sunset, mountain, peaceful, orange sky"
)
MAX_TAG_LENGTH = 50


def parse_tags(text: str) -> List[str]:
    """Split the model's comma separated answer into clean, lower-case tags."""
    tags = []
    for part in text.split(","):
        tag = part.strip().lower()
        if tag and len(tag) < MAX_TAG_LENGTH:
            tags.append(tag)
    return tags


class OllamaTagger:
    """Talks to Ollama's /api/generate endpoint with a vision-language model."""

    def __init__(self, endpoint: str = DEFAULT_ENDPOINT, model: str = DEFAULT_MODEL,
                 prompt: str = DEFAULT_PROMPT, timeout: int = 120, max_image_edge: int = 1024):
        self.endpoint = endpoint
        self.model = model
        self.prompt = prompt
        self.timeout = timeout
        self.max_image_edge = max_image_edge

    @classmethod
    def from_config(cls, config_manager) -> "OllamaTagger":
        return cls(
            endpoint=config_manager.get("inference.endpoint", DEFAULT_ENDPOINT),
            model=config_manager.get("inference.model", DEFAULT_MODEL),
            prompt=config_manager.get("inference.prompt", DEFAULT_PROMPT),
            timeout=config_manager.get("inference.timeout", 120),
            max_image_edge=config_manager.get("inference.max_image_edge", 1024),
        )

    # ── Public API ───────────────────────────────────────────────

    def generate_tags(self, image_path: str) -> List[str]:
        """Return tags for *image_path*. Raises BackendError with a user-facing message."""
        image_base64 = self._encode_image(image_path)
        payload = json.dumps({
            "model": self.model,
            "prompt": self.prompt,
            "images": [image_base64],
            "stream": False,
        }).encode()
        req = urllib.request.Request(self.endpoint, data=payload, method="POST")
        req.add_header("Content-Type", "application/json")

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                body = resp.read()
        except urllib.error.HTTPError as e:
            raise BackendError(f"Ollama returned error: {e.code} {e.reason}") from e
        except (urllib.error.URLError, OSError) as e:
            raise BackendError(f"Failed to call Ollama: {e}. Is Ollama running?") from e

        try:
            result = json.loads(body)
            text = result["response"]
        except (ValueError, KeyError, TypeError) as e:
            raise BackendError(f"Failed to parse Ollama response: {e}") from e

        tags = parse_tags(text)
        logger.info("Ollama returned %d tags for %s", len(tags), image_path)
        return tags

    def check_connection(self) -> bool:
        """True if the Ollama server answers on /api/tags."""
        base_url = self.endpoint.split("/api/")[0]
        try:
            with urllib.request.urlopen(f"{base_url}/api/tags", timeout=3) as resp:
                return resp.status == 200
        except (urllib.error.URLError, OSError):
            return False

    # ── Internals ────────────────────────────────────────────────

    def _encode_image(self, image_path: str) -> str:
        """Base64 JPEG of the image, downscaled so its longest edge fits max_image_edge.

        Formats Pillow cannot decode (e.g. SVG) are sent as the raw file bytes.
        """
        try:
            with Image.open(image_path) as img:
                img = ImageOps.exif_transpose(img)
                if img.mode != "RGB":
                    img = img.convert("RGB")
                img.thumbnail((self.max_image_edge, self.max_image_edge), Image.Resampling.LANCZOS)
                buffer = io.BytesIO()
                img.save(buffer, "JPEG", quality=90)
                data = buffer.getvalue()
        except UnidentifiedImageError:
            logger.debug("Pillow cannot decode %s; sending raw bytes", image_path)
            data = self._read_bytes(image_path)
        except (OSError, ValueError) as e:
            raise BackendError(f"Failed to read image: {e}") from e
        return base64.b64encode(data).decode("ascii")

    @staticmethod
    def _read_bytes(image_path: str) -> bytes:
        try:
            return Path(image_path).read_bytes()
        except OSError as e:
            raise BackendError(f"Failed to read image: {e}") from e
