"""Holder of the cover picture of the song being played."""

from __future__ import annotations

from PIL import Image

from .events import Signal


def _fit_size(size: tuple[int, int], box: tuple[int, int]) -> tuple[int, int]:
    width, height = size
    box_width, box_height = box
    scaled_width = box_height * width // height
    if scaled_width <= box_width:
        return max(1, scaled_width), box_height
    return box_width, max(1, box_width * height // width)


class AlbumPictureProvider:
    """Serves the current cover image to whoever asks for it by id.

    Signal: ``current_image_changed(image)``.
    """

    def __init__(self) -> None:
        self._image: Image.Image | None = None
        self._image_id = ""
        self.current_image_changed = Signal()

    @property
    def image_id(self) -> str:
        return self._image_id

    @property
    def current_image(self) -> Image.Image | None:
        return self._image

    def set_current_image(self, image: Image.Image | None, image_id: str) -> None:
        self._image_id = image_id
        self._image = image
        self.current_image_changed.emit(image)

    def request_image(
        self, image_id: str, requested_size: tuple[int, int] | None = None
    ) -> Image.Image | None:
        """Return the current image scaled to fit ``requested_size``, keeping its aspect ratio.

        Returns None when ``image_id`` is not the current id, when there is no
        image, or when the requested size is empty. Without a size, an
        unscaled copy is returned.
        """
        if image_id != self._image_id or self._image is None:
            return None
        if requested_size is None:
            return self._image.copy()
        box_width, box_height = requested_size
        if box_width <= 0 or box_height <= 0 or 0 in self._image.size:
            return None
        return self._image.resize(_fit_size(self._image.size, (box_width, box_height)))