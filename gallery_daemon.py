import os
import sys
import logging
import signal
import threading
from network.socket_server import GallerySocketServer
from backend.folder_scanner import FolderScanner
from backend.ollama_tagger import OllamaTagger
from config.config_manager import ConfigManager


def setup_logging(log_level):
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)
    log_dir = os.path.expanduser("~/.gallery")
    os.makedirs(log_dir, exist_ok=True)
    log_path = os.path.join(log_dir, "daemon.log")
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        handlers=[
            logging.FileHandler(log_path, mode="a"),
            logging.StreamHandler(sys.stderr)
        ]
    )


def main():
    config_manager = ConfigManager()
    logging_level = config_manager.logging_level
    setup_logging(logging_level)
    logging.info(f"Logging level set to: {logging_level.upper()}")

    socket_path = os.path.expanduser(config_manager.get("system.socket_path"))
    logging.info("Starting Gallery Daemon...")

    scanner = FolderScanner(config_manager)
    tagger = OllamaTagger.from_config(config_manager)
    stop_requested = threading.Event()

    server = None
    try:
        # Binding creates the socket file, which is what the GUI launcher waits for.
        server = GallerySocketServer(socket_path, scanner, tagger, on_shutdown=stop_requested.set)
        server_thread = threading.Thread(target=server.run_forever, daemon=True)
        server_thread.start()
        logging.info("Socket server thread started.")

        if tagger.check_connection():
            logging.info(f"Ollama reachable at {tagger.endpoint} (model {tagger.model})")
        else:
            logging.warning(f"Ollama not reachable at {tagger.endpoint}; tag generation will fail until it is running.")

        signal.signal(signal.SIGINT, lambda signum, frame: stop_requested.set())
        signal.signal(signal.SIGTERM, lambda signum, frame: stop_requested.set())

        # why: Event.wait with a timeout keeps the main thread responsive to signals
        while not stop_requested.wait(1.0):
            pass
    except Exception as e:  # why: startup failure must be logged before process dies; no narrower type covers all init failures
        logging.error(f"Daemon failed to start: {e}", exc_info=True)
        return 1
    finally:
        logging.info("Shutting down Gallery Daemon...")
        if server:
            server.shutdown()
        logging.info("Daemon shutdown complete.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
