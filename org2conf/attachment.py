"""
Publish Org-mode files to Confluence wiki.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import logging
from dataclasses import dataclass
from pathlib import Path

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImageData:
    """
    An image file to upload as a page attachment.

    :param path: Absolute path to the image file.
    :param filename: Attachment name the page content refers to.
    """

    path: Path
    filename: str


class AttachmentCatalog:
    "Maintains an ordered list of files to be uploaded to Confluence as attachments."

    images: list[ImageData]
    _by_filename: dict[str, ImageData]

    def __init__(self) -> None:
        self.images = []
        self._by_filename = {}

    def add_image(self, data: ImageData) -> None:
        """
        Records an image, unless an image with the same attachment name has already been recorded.

        Attachment names are unique within a page; a different file with a name already taken is skipped, and
        references to that name show the file recorded first.
        """

        existing = self._by_filename.get(data.filename)
        if existing is None:
            self._by_filename[data.filename] = data
            self.images.append(data)
        elif existing.path != data.path:
            LOGGER.warning("Attachment name %s already used by %s; skipping %s", data.filename, existing.path, data.path)

    def __len__(self) -> int:
        return len(self.images)
