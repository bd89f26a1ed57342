import os
import socket
import logging
import threading
from typing import Callable, Dict, Optional

from core.errors import BackendError
from . import protocol
from ._framing import recv_frame, send_frame


class GallerySocketServer:
    """Daemon side of the gallery protocol: folder scans and AI tagging over a Unix socket."""

    def __init__(self, socket_path: str, scanner, tagger, on_shutdown: Optional[Callable[[], None]] = None):
        """
        Args:
            socket_path: Where to bind. A stale socket file is removed first.
            scanner: FolderScanner-like object with ``scan_folder(path)``.
            tagger: OllamaTagger-like object with ``generate_tags(path)`` and ``check_connection()``.
            on_shutdown: Called after a client sends the ``shutdown`` command.
        """
        self.socket_path = socket_path
        self.scanner = scanner
        self.tagger = tagger
        self.on_shutdown = on_shutdown
        self.running = True
        self._handlers: Dict[str, Callable[[dict], protocol.Response]] = {
            "scan_folder": self._handle_scan_folder,
            "generate_tags": self._handle_generate_tags,
            "check_inference": self._handle_check_inference,
        }

        # why: crash leaves socket file bound; bind() raises EADDRINUSE without removal
        if os.path.exists(self.socket_path):
            os.remove(self.socket_path)
        self.server_socket = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        self.server_socket.bind(self.socket_path)
        self.server_socket.listen(5)
        logging.info(f"Socket bound at {self.socket_path}")

    def run_forever(self):
        """Accept and handle connections until shutdown()."""
        self.server_socket.settimeout(1.0)
        logging.info(f"Gallery daemon accepting connections on {self.socket_path}")
        while self.running:
            try:
                conn, _ = self.server_socket.accept()
            except socket.timeout:
                continue
            except OSError as e:  # why: EBADF once shutdown() closed the listening socket
                if self.running:
                    logging.error(f"Error accepting connection: {e}")
                break
            threading.Thread(target=self.handle_client, args=(conn,), daemon=True).start()

    def handle_client(self, conn: socket.socket):
        """Serve framed requests on one connection until the client goes away."""
        try:
            # Tagging can take minutes; clients keep connections open between calls.
            conn.settimeout(None)
            while self.running:
                try:
                    request_data = recv_frame(conn)
                except (ConnectionError, ValueError) as e:
                    logging.error(f"Error reading client request: {e}")
                    break
                if request_data is None:
                    break

                command = request_data.get("command", "unknown")
                logging.debug(f"Server received command: '{command}'")
                response = self.handle_request(request_data)
                send_frame(conn, response)

                if command == "shutdown":
                    self._request_shutdown()
                    break
        except OSError as e:
            logging.debug(f"Client connection ended: {e}")
        finally:
            conn.close()

    def handle_request(self, request_data: dict) -> str:
        """Dispatch one request dict and return the JSON response body."""
        command = request_data.get("command", "")
        if command == "shutdown":
            return protocol.Response(message="Shutting down").model_dump_json()
        handler = self._handlers.get(command)
        if handler is None:
            return protocol.ErrorResponse(message=f"Unknown command: {command}").model_dump_json()
        try:
            return handler(request_data).model_dump_json()
        except BackendError as e:
            logging.error(f"Command '{command}' failed: {e}")
            return protocol.ErrorResponse(message=str(e)).model_dump_json()
        except (ValueError, TypeError, KeyError) as e:
            logging.error(f"Invalid request for '{command}': {e}")
            return protocol.ErrorResponse(message=f"Invalid request: {e}").model_dump_json()

    def _handle_scan_folder(self, request_data: dict) -> protocol.Response:
        req = protocol.ScanFolderRequest.model_validate(request_data)
        images = self.scanner.scan_folder(req.folder_path)
        return protocol.ScanFolderResponse(images=images)

    def _handle_generate_tags(self, request_data: dict) -> protocol.Response:
        req = protocol.GenerateTagsRequest.model_validate(request_data)
        return protocol.GenerateTagsResponse(tags=self.tagger.generate_tags(req.image_path))

    def _handle_check_inference(self, request_data: dict) -> protocol.Response:
        return protocol.CheckInferenceResponse(available=self.tagger.check_connection())

    def _request_shutdown(self):
        if self.on_shutdown:
            self.on_shutdown()
        else:
            self.shutdown()

    def shutdown(self):
        if not self.running:
            return
        self.running = False
        try:
            self.server_socket.close()
        except OSError:
            pass
        try:
            os.remove(self.socket_path)
        except FileNotFoundError:
            pass
        logging.info("Gallery socket server stopped.")
