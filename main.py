import logging
import sys
import os
import argparse
import subprocess
import tempfile
import time
from PySide6.QtWidgets import QApplication
from config.config_manager import ConfigManager
from core.session_controller import SessionController
from core.session_store import SessionStore
from gui.main_window import MainWindow
from gui.qt_bridge import MainThreadBridge, QtDebounceTimer
from network.socket_client import GalleryBackendClient

def setup_logging(log_level):
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)
    log_dir = os.path.expanduser("~/.gallery")
    os.makedirs(log_dir, exist_ok=True)
    log_path = os.path.join(log_dir, "gallery.log")
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        handlers=[
            logging.FileHandler(log_path, mode="a"),
            logging.StreamHandler(sys.stdout)
        ]
    )


def _wait_for_socket(client, timeout: float = 10.0) -> bool:
    # why: socket file presence is a proxy; a stale file from a crashed daemon
    # resolves when the new daemon binds the same path
    deadline = time.time() + timeout
    while not client.is_socket_file_present():
        if time.time() > deadline:
            return False
        time.sleep(0.2)
    return True


def _launch_daemon() -> str:
    """Start gallery_daemon in its own session; returns the path capturing its stderr."""
    log_file = tempfile.NamedTemporaryFile(delete=False, suffix='.log')
    subprocess.Popen(
        [sys.executable, "-m", "gallery_daemon"],
        cwd=os.path.dirname(os.path.abspath(__file__)),
        stdout=subprocess.DEVNULL,
        stderr=log_file,
        start_new_session=True,
    )
    log_file.close()
    return log_file.name


def main():
    parser = argparse.ArgumentParser(description="Gallery: browse a folder of images and tag them with a local vision model.")
    parser.add_argument('directory', nargs='?', default=None, help='The folder to scan on startup.')
    parser.add_argument(
        '--restart-daemon',
        action='store_true',
        default=False,
        help='Shut down any running daemon and start a fresh one before launching.'
    )
    args = parser.parse_args()
    target_dir = args.directory

    config_manager = ConfigManager()
    setup_logging(config_manager.logging_level)
    logging.info("Starting Gallery GUI")

    socket_path = os.path.expanduser(config_manager.get("system.socket_path"))
    backend = GalleryBackendClient(socket_path, timeout=config_manager.get("system.request_timeout", 180.0))

    if args.restart_daemon and backend.is_socket_file_present():
        logging.info("--restart-daemon: sending shutdown via socket...")
        backend.shutdown_daemon()
        deadline = time.time() + 10.0
        while backend.is_socket_file_present() and time.time() < deadline:
            time.sleep(0.2)

    daemon_log_path = None
    if not backend.is_socket_file_present():
        logging.info("Daemon not running, launching it...")
        daemon_log_path = _launch_daemon()

    if not _wait_for_socket(backend):
        msg = "Daemon not available after 10 seconds."
        if daemon_log_path:
            msg += f" See daemon log: {daemon_log_path}"
        logging.error(msg)
        return 1

    if target_dir:
        target_dir = os.path.abspath(target_dir)
        if not os.path.isdir(target_dir):
            logging.error(f"Invalid directory provided: {target_dir}")
            return 1

    app = QApplication(sys.argv)
    app.setApplicationName(config_manager.get("gui.window_title", "Gallery"))

    bridge = MainThreadBridge()
    controller = SessionController(
        SessionStore(),
        backend,
        post=bridge.post,
        overlay_timer=QtDebounceTimer(),
    )
    window = MainWindow(config_manager, controller, initial_directory=target_dir)
    controller.check_inference()
    app.aboutToQuit.connect(backend.shutdown)

    window.show()
    exit_code = app.exec()

    logging.info(f"Application exiting with code {exit_code}.")
    return exit_code

if __name__ == "__main__":
    sys.exit(main())
