from PySide6.QtWidgets import QListWidget, QListWidgetItem, QListView, QAbstractItemView
from PySide6.QtCore import Qt, Signal, QSize
from PySide6.QtGui import QColor, QIcon, QImage, QPixmap

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Tuple

from core.filter_view import filtered_images
from core.load_tracker import is_loaded
from core.session_state import SessionState


def load_thumbnail(path: str, size: int) -> QImage:
    """Decode and downscale on a worker thread; QImage is safe off the GUI thread."""
    image = QImage(path)
    if image.isNull():
        return image
    return image.scaled(size, size, Qt.KeepAspectRatio, Qt.SmoothTransformation)


class ThumbnailGrid(QListWidget):
    """Grid of the filtered images with a placeholder until each one has loaded."""

    imageActivated = Signal(str)
    # (image_id, scan_generation, image) marshalled from the loader pool
    _thumbnail_ready = Signal(str, int, QImage)

    def __init__(self, controller, config_manager=None, parent=None):
        super().__init__(parent)
        self.controller = controller
        self.thumbnail_size = config_manager.get("gui.thumbnail_size", 256) if config_manager else 256
        background = config_manager.get("gui.background_color", "#09090b") if config_manager else "#09090b"

        self.setViewMode(QListView.IconMode)
        self.setResizeMode(QListView.Adjust)
        self.setMovement(QListView.Static)
        self.setUniformItemSizes(True)
        self.setSelectionMode(QAbstractItemView.NoSelection)
        self.setIconSize(QSize(self.thumbnail_size, self.thumbnail_size))
        self.setGridSize(QSize(self.thumbnail_size + 16, self.thumbnail_size + 32))
        self.setSpacing(8)
        self.setStyleSheet(f"QListWidget {{ background-color: {background}; border: none; }}")

        self._placeholder = self._make_placeholder()
        self._items: Dict[str, QListWidgetItem] = {}
        self._pixmaps: Dict[Tuple[str, int], QPixmap] = {}
        self._requested = set()
        self._shown_key = None
        self._loader = ThreadPoolExecutor(max_workers=4, thread_name_prefix="thumbnail")

        self._thumbnail_ready.connect(self._on_thumbnail_ready, Qt.QueuedConnection)
        self.itemClicked.connect(self._on_item_clicked)

    def _make_placeholder(self) -> QIcon:
        pixmap = QPixmap(self.thumbnail_size, self.thumbnail_size)
        pixmap.fill(QColor("#27272a"))
        return QIcon(pixmap)

    def show_state(self, state: SessionState):
        """Bring the items in line with *state*'s filtered view and load markers."""
        images = filtered_images(state)
        key = (state.scan_generation, tuple(record.id for record in images))
        if key != self._shown_key:
            self._rebuild(state, images)
            self._shown_key = key
        for record in images:
            item = self._items.get(record.id)
            if item is None:
                continue
            item.setToolTip(self._tooltip(record))
            pixmap = self._pixmaps.get((record.id, state.scan_generation))
            if pixmap is not None and is_loaded(state, record.id):
                item.setIcon(QIcon(pixmap))
            else:
                item.setIcon(self._placeholder)

    @staticmethod
    def _tooltip(record) -> str:
        return ", ".join(record.tags) if record.tags else record.name

    def _rebuild(self, state: SessionState, images):
        generation = state.scan_generation
        # Pixmaps from an older scan never match an id in this one.
        self._pixmaps = {k: v for k, v in self._pixmaps.items() if k[1] == generation}
        self._requested = {k for k in self._requested if k[1] == generation}
        self.clear()
        self._items.clear()
        for record in images:
            item = QListWidgetItem(self._placeholder, record.name)
            item.setData(Qt.UserRole, record.id)
            item.setToolTip(self._tooltip(record))
            item.setSizeHint(self.gridSize())
            self.addItem(item)
            self._items[record.id] = item
            self._request_thumbnail(record.id, record.source_path, generation)

    def _request_thumbnail(self, image_id: str, path: str, generation: int):
        key = (image_id, generation)
        if key in self._requested:
            return
        self._requested.add(key)
        future = self._loader.submit(load_thumbnail, path, self.thumbnail_size)
        future.add_done_callback(lambda f, i=image_id, g=generation, p=path: self._on_loader_done(i, g, p, f))

    def _on_loader_done(self, image_id, generation, path, future):
        """Runs on a loader thread."""
        if future.cancelled():
            return
        try:
            image = future.result()
        except Exception as e:
            # why: a decoder crash must only leave this one tile on its placeholder
            logging.error(f"Failed to load thumbnail for {path}: {e}", exc_info=True)
            return
        if image.isNull():
            logging.warning(f"Could not decode thumbnail for {path}")
            return
        self._thumbnail_ready.emit(image_id, generation, image)

    def _on_thumbnail_ready(self, image_id: str, generation: int, image: QImage):
        if generation == self.controller.state.scan_generation:
            self._pixmaps[(image_id, generation)] = QPixmap.fromImage(image)
        # Stale generations are dropped by the load tracker.
        self.controller.mark_loaded(image_id, generation)

    def _on_item_clicked(self, item: QListWidgetItem):
        image_id = item.data(Qt.UserRole)
        if image_id:
            self.imageActivated.emit(image_id)

    def shutdown(self):
        self._loader.shutdown(wait=False, cancel_futures=True)
