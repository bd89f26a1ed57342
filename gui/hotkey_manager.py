from PySide6.QtGui import QKeySequence, QShortcut
import logging
from PySide6.QtWidgets import QApplication, QLineEdit, QTextEdit, QPlainTextEdit, QComboBox, QSpinBox
from PySide6.QtCore import Qt, QObject
from config.hotkeys import HotkeyDefinition
from core.navigation import NavigationKey
from typing import Dict, List, Callable

_TEXT_INPUT_TYPES = (QLineEdit, QTextEdit, QPlainTextEdit, QComboBox, QSpinBox)

# Config action name -> navigation key routed to the session controller.
_NAVIGATION_ACTIONS = {
	"previous_image": NavigationKey.LEFT,
	"next_image": NavigationKey.RIGHT,
	"close_image": NavigationKey.ESCAPE,
}


class HotkeyManager(QObject):
	"""Binds configured key sequences to actions.

	Navigation actions call the controller with a key; the controller reads the
	live session state on every press, so shortcuts never need rebinding when
	the filtered list or the selection changes.
	"""

	def __init__(self, parent_widget, hotkeys_config: dict, controller):
		super().__init__()
		self.setParent(parent_widget)
		self.parent_widget = parent_widget
		self.controller = controller
		self.shortcuts: Dict[str, List[QShortcut]] = {}
		self.definitions: Dict[str, HotkeyDefinition] = {}
		self.actions: Dict[str, Callable] = {}

		self._shortcuts_suppressed = False
		for action_name, key in _NAVIGATION_ACTIONS.items():
			self.add_action(action_name, lambda k=key: self.controller.handle_key(k))
		self.load_config(hotkeys_config)
		app = QApplication.instance()
		if app:
			app.focusChanged.connect(self._on_focus_changed)

	def _on_focus_changed(self, old, new):
		"""Suppress shortcuts while a text-input widget has focus so arrow keys move the caret."""
		should_suppress = isinstance(new, _TEXT_INPUT_TYPES)
		if should_suppress == self._shortcuts_suppressed:
			return
		self._shortcuts_suppressed = should_suppress
		for shortcut_list in self.shortcuts.values():
			for shortcut in shortcut_list:
				shortcut.setEnabled(not should_suppress)
		logging.debug(f"HotkeyManager: shortcuts {'suppressed' if should_suppress else 'restored'} (focus → {type(new).__name__})")

	def load_config(self, config: dict):
		for action_name, action_config in config.items():
			try:
				definition = HotkeyDefinition.from_config(action_name, action_config)
				self.add_hotkey_shortcut(definition)
			except (TypeError, ValueError) as e:
				# why: skip malformed config entries without aborting the whole load
				logging.error(f"Error loading hotkey config for {action_name}: {e}")

	def add_hotkey_shortcut(self, definition: HotkeyDefinition):
		if not definition.sequences:
			return

		logging.debug(f"Setting up hotkey: {definition.action_name} ({definition.sequences})")

		self.definitions[definition.action_name] = definition
		self.shortcuts[definition.action_name] = []

		for sequence in definition.sequences:
			shortcut = QShortcut(QKeySequence(sequence), self.parent_widget)
			shortcut.setContext(Qt.ApplicationShortcut)
			shortcut.activated.connect(
				lambda an=definition.action_name: self.on_shortcut_triggered(an)
			)
			self.shortcuts[definition.action_name].append(shortcut)

	def add_action(self, action_name: str, callback: Callable):
		self.actions[action_name] = callback

	def on_shortcut_triggered(self, action_name: str):
		logging.debug(f"HotkeyManager.on_shortcut_triggered: '{action_name}'")
		handler = self.actions.get(action_name)
		if handler:
			try:
				handler()
			except Exception as e:
				# why: isolate handler crashes so one broken action can't break other shortcuts
				logging.error(f"Error executing action {action_name}: {e}", exc_info=True)
		else:
			logging.error(f"No handler found for action: {action_name}")
