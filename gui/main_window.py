from PySide6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QLineEdit, QPushButton, QLabel,
    QStackedWidget, QFileDialog, QApplication,
)
from PySide6.QtCore import Qt, QSettings
import logging
from typing import Optional

from core.event_system import event_system, EventSystem, EventType, StateChangedEventData
from core.filter_view import filtered_images
from core.navigation import selected_image
from core.session_state import SessionState
from .hotkey_manager import HotkeyManager
from .picture_view import PictureView
from .thumbnail_grid import ThumbnailGrid

_PAGE_EMPTY, _PAGE_GRID, _PAGE_PICTURE = range(3)


class MainWindow(QMainWindow):
    def __init__(self, config_manager, controller, initial_directory: Optional[str] = None, bus: Optional[EventSystem] = None):
        super().__init__()
        self.bus = bus or event_system
        self.config_manager = config_manager
        self.controller = controller
        self.setWindowTitle(self.config_manager.get("gui.window_title", "Gallery"))
        background = self.config_manager.get("gui.background_color", "#09090b")
        self.setStyleSheet(f"QMainWindow, QWidget#central {{ background-color: {background}; color: #e4e4e7; }}")

        central = QWidget()
        central.setObjectName("central")
        layout = QVBoxLayout(central)
        layout.setContentsMargins(8, 8, 8, 8)

        toolbar = QHBoxLayout()
        self.search_input = QLineEdit()
        self.search_input.setPlaceholderText("Search by name or tag...")
        self.search_input.setClearButtonEnabled(True)
        self.search_input.textChanged.connect(self.controller.set_search_query)
        self.scan_button = QPushButton("Scan Folder")
        self.scan_button.clicked.connect(self.choose_folder)
        toolbar.addWidget(self.search_input, 1)
        toolbar.addWidget(self.scan_button)
        layout.addLayout(toolbar)

        self.stack = QStackedWidget()
        self.empty_label = QLabel("Select a folder to get started")
        self.empty_label.setAlignment(Qt.AlignCenter)
        self.empty_label.setStyleSheet("color: #71717a; font-size: 16px;")
        self.thumbnail_grid = ThumbnailGrid(self.controller, self.config_manager)
        self.thumbnail_grid.imageActivated.connect(self.controller.select)
        self.picture_view = PictureView(self.controller, self.config_manager)
        self.stack.addWidget(self.empty_label)
        self.stack.addWidget(self.thumbnail_grid)
        self.stack.addWidget(self.picture_view)
        layout.addWidget(self.stack, 1)
        self.setCentralWidget(central)

        self.hotkey_manager = HotkeyManager(self, self.config_manager.get("hotkeys", {}), self.controller)

        settings = QSettings("Gallery", "MainWindow")
        geometry = settings.value("geometry")
        if geometry:
            self.restoreGeometry(geometry)
        else:
            self.resize(1200, 800)

        self.bus.subscribe(EventType.STATE_CHANGED, self._on_state_changed)
        self.render_state(self.controller.state)

        if initial_directory:
            self.controller.request_scan(initial_directory)

    def choose_folder(self):
        """Prompt for a folder and re-check the tagger; a cancelled dialog starts no scan."""
        folder = QFileDialog.getExistingDirectory(self, "Select Folder")
        self.controller.check_inference()
        self.controller.request_scan(folder or None)

    def _on_state_changed(self, event_data: StateChangedEventData):
        self.render_state(event_data.state)

    def render_state(self, state: SessionState):
        self.scan_button.setEnabled(not state.scanning)
        self.scan_button.setText("Scanning..." if state.scanning else "Scan Folder")
        # why: avoid re-emitting textChanged when the store echoes our own query back
        if self.search_input.text() != state.search_query:
            self.search_input.setText(state.search_query)

        # A rescan may leave selected_id pointing at an id that no longer exists.
        if selected_image(state) is not None:
            self.picture_view.show_state(state)
            if self.stack.currentIndex() != _PAGE_PICTURE:
                self.stack.setCurrentIndex(_PAGE_PICTURE)
                # Only on entry, so typing in the search box keeps its focus.
                self.picture_view.setFocus()
            return

        self.picture_view.show_state(state)
        if not state.images:
            self.empty_label.setText("Select a folder to get started")
            self.stack.setCurrentIndex(_PAGE_EMPTY)
        elif not filtered_images(state):
            self.empty_label.setText("No images match your search")
            self.stack.setCurrentIndex(_PAGE_EMPTY)
        else:
            self.stack.setCurrentIndex(_PAGE_GRID)
        self.thumbnail_grid.show_state(state)

    def closeEvent(self, event):
        """Handles the window close event."""
        logging.info("GUI close requested.")
        self.bus.unsubscribe(EventType.STATE_CHANGED, self._on_state_changed)
        self.thumbnail_grid.shutdown()
        self.controller.shutdown()
        settings = QSettings("Gallery", "MainWindow")
        settings.setValue("geometry", self.saveGeometry())
        settings.sync()
        event.accept()
        QApplication.instance().quit()
