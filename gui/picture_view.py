from PySide6.QtWidgets import QWidget, QLabel, QPushButton, QVBoxLayout, QHBoxLayout
from PySide6.QtCore import Qt, QSize
from PySide6.QtGui import QMouseEvent, QPixmap, QResizeEvent

import logging
from typing import Optional

from core.navigation import can_go_next, can_go_previous, position_label, selected_image
from core.session_state import SessionState

_OVERLAY_STYLE = """
QLabel { color: #e4e4e7; background: transparent; }
QPushButton {
    color: #fafafa; background-color: rgba(24, 24, 27, 200);
    border: 1px solid #3f3f46; border-radius: 6px; padding: 6px 12px;
}
QPushButton:disabled { color: #71717a; }
QWidget#infoPanel { background-color: rgba(9, 9, 11, 210); border-radius: 8px; }
"""


class PictureView(QWidget):
    """Fullscreen view of the selected image with an auto-hiding control overlay.

    The view is a pure function of the session state: ``show_state`` is called
    on every transition and every control forwards straight to the controller.
    A single click on the picture toggles the overlay, a double click closes
    the view.
    """

    def __init__(self, controller, config_manager=None, parent=None):
        super().__init__(parent)
        self.controller = controller
        self.setFocusPolicy(Qt.StrongFocus)
        background = config_manager.get("gui.background_color", "#09090b") if config_manager else "#09090b"
        self.setAutoFillBackground(True)
        self.setStyleSheet(f"PictureView {{ background-color: {background}; }}" + _OVERLAY_STYLE)

        self._current_path: Optional[str] = None
        self._pixmap: Optional[QPixmap] = None

        self.image_label = QLabel(self)
        self.image_label.setAlignment(Qt.AlignCenter)
        # Clicks land on the view itself so they can toggle the overlay.
        self.image_label.setAttribute(Qt.WA_TransparentForMouseEvents)

        self.counter_label = QLabel(self)
        self.close_button = QPushButton("✕", self)
        self.close_button.setToolTip("Close (Esc)")
        self.close_button.clicked.connect(self.controller.clear_selection)

        self.previous_button = QPushButton("‹", self)
        self.previous_button.setToolTip("Previous (Left)")
        self.previous_button.clicked.connect(self.controller.go_to_previous)
        self.next_button = QPushButton("›", self)
        self.next_button.setToolTip("Next (Right)")
        self.next_button.clicked.connect(self.controller.go_to_next)
        for button in (self.previous_button, self.next_button):
            button.setFixedSize(QSize(48, 64))

        self.info_panel = QWidget(self)
        self.info_panel.setObjectName("infoPanel")
        info_layout = QVBoxLayout(self.info_panel)
        self.name_label = QLabel(self.info_panel)
        self.name_label.setStyleSheet("font-weight: bold;")
        self.tags_label = QLabel(self.info_panel)
        self.tags_label.setWordWrap(True)
        self.description_label = QLabel(self.info_panel)
        self.description_label.setWordWrap(True)
        self.generate_button = QPushButton("Generate AI Tags", self.info_panel)
        self.generate_button.clicked.connect(self._on_generate_clicked)
        button_row = QHBoxLayout()
        button_row.addWidget(self.generate_button)
        button_row.addStretch()
        info_layout.addWidget(self.name_label)
        info_layout.addWidget(self.tags_label)
        info_layout.addWidget(self.description_label)
        info_layout.addLayout(button_row)

        self._overlay_widgets = (
            self.counter_label, self.close_button, self.previous_button, self.next_button, self.info_panel,
        )

    def show_state(self, state: SessionState):
        record = selected_image(state)
        if record is None:
            self._set_image(None)
            return

        self._set_image(record.source_path)
        self.counter_label.setText(position_label(state))
        self.name_label.setText(record.name)
        self.tags_label.setText(", ".join(record.tags) if record.tags else "No tags")
        self.description_label.setText(record.description)
        self.description_label.setVisible(bool(record.description))
        self.generate_button.setText("Generating..." if state.generating_tags else "Generate AI Tags")
        self.generate_button.setEnabled(state.inference_available and not state.generating_tags)
        self.generate_button.setToolTip("" if state.inference_available else "Ollama is not reachable")

        visible = state.overlay_visible
        self.counter_label.setVisible(visible)
        self.close_button.setVisible(visible)
        self.info_panel.setVisible(visible)
        self.previous_button.setVisible(visible and can_go_previous(state))
        self.next_button.setVisible(visible and can_go_next(state))
        self._layout_overlay()

    def _set_image(self, path: Optional[str]):
        if path == self._current_path:
            return
        self._current_path = path
        if path is None:
            self._pixmap = None
            self.image_label.clear()
            return
        pixmap = QPixmap(path)
        if pixmap.isNull():
            logging.warning(f"Could not load image for fullscreen view: {path}")
            self._pixmap = None
            self.image_label.setText("Could not load image")
            return
        self._pixmap = pixmap
        self._update_scaled_pixmap()

    def _update_scaled_pixmap(self):
        if self._pixmap is None:
            return
        self.image_label.setPixmap(
            self._pixmap.scaled(self.size(), Qt.KeepAspectRatio, Qt.SmoothTransformation)
        )

    def _layout_overlay(self):
        w, h = self.width(), self.height()
        margin = 16
        self.image_label.setGeometry(0, 0, w, h)
        self.counter_label.adjustSize()
        self.counter_label.move(margin, margin)
        self.close_button.adjustSize()
        self.close_button.move(w - self.close_button.width() - margin, margin)
        self.previous_button.move(margin, (h - self.previous_button.height()) // 2)
        self.next_button.move(w - self.next_button.width() - margin, (h - self.next_button.height()) // 2)
        panel_width = min(640, max(0, w - 2 * margin))
        self.info_panel.setFixedWidth(panel_width)
        self.info_panel.adjustSize()
        self.info_panel.move((w - panel_width) // 2, h - self.info_panel.height() - margin)
        for widget in self._overlay_widgets:
            widget.raise_()

    def _on_generate_clicked(self):
        if not self.controller.generate_tags():
            logging.debug("Tag generation not started; a request is already in flight.")

    def resizeEvent(self, event: QResizeEvent) -> None:
        super().resizeEvent(event)
        self._update_scaled_pixmap()
        self._layout_overlay()

    def mousePressEvent(self, event: QMouseEvent) -> None:
        if event.button() == Qt.LeftButton:
            self.controller.toggle_overlay()
            event.accept()
            return
        super().mousePressEvent(event)

    def mouseDoubleClickEvent(self, event: QMouseEvent) -> None:
        if event.button() == Qt.LeftButton:
            self.controller.clear_selection()
            event.accept()
            return
        super().mouseDoubleClickEvent(event)
