import os
import logging
from typing import List, Set

from core.errors import BackendError
from network import protocol

DEFAULT_IMAGE_EXTENSIONS = ["jpg", "jpeg", "png", "gif", "webp", "bmp", "tiff", "tif", "svg"]


class FolderScanner:
    """Lists the images directly inside a folder (no recursion)."""

    def __init__(self, config_manager=None):
        extensions = (
            config_manager.get("scan.image_extensions", DEFAULT_IMAGE_EXTENSIONS)
            if config_manager else DEFAULT_IMAGE_EXTENSIONS
        )
        self.image_extensions: Set[str] = {ext.lower().lstrip(".") for ext in extensions}

    def is_image_file(self, file_path: str) -> bool:
        _, ext = os.path.splitext(file_path)
        return ext.lower().lstrip(".") in self.image_extensions

    def scan_folder(self, folder_path: str) -> List[protocol.ImageInfo]:
        """Return the folder's images sorted case-insensitively by name.

        Ids are ``img_<n>`` where ``n`` is the entry's position in the directory
        listing, so they are unique within one scan only.
        """
        if not os.path.exists(folder_path):
            raise BackendError("Folder does not exist")
        if not os.path.isdir(folder_path):
            raise BackendError("Path is not a directory")

        images: List[protocol.ImageInfo] = []
        try:
            with os.scandir(folder_path) as entries:
                for index, entry in enumerate(entries):
                    try:
                        if not entry.is_file():
                            continue
                    except OSError as e:
                        logging.debug(f"Skipping unreadable entry {entry.path}: {e}")
                        continue
                    if not self.is_image_file(entry.name):
                        continue
                    images.append(protocol.ImageInfo(
                        id=f"img_{index}",
                        path=entry.path,
                        name=entry.name,
                    ))
        except OSError as e:
            raise BackendError(f"Failed to read directory: {e}") from e

        images.sort(key=lambda info: info.name.lower())
        logging.info(f"Scanned {folder_path}: {len(images)} images")
        return images
