from __future__ import annotations
import socket
import logging
import os
import threading
import queue
import time
import uuid
from typing import List, Optional
from . import protocol
from ._framing import recv_frame, send_frame

_ValidationErrors = (ValueError, TypeError, KeyError)


class SocketConnection:
    """Represents a single socket connection with retry logic"""
    def __init__(self, socket_path: str, timeout: float = 20.0):
        self.socket_path = socket_path
        self.timeout = timeout
        self.sock: Optional[socket.socket] = None
        self.lock = threading.Lock()
        self.connected = False

    def ensure_connected(self) -> bool:
        with self.lock:
            if self.connected and self.sock:
                return True
            return self._connect()

    def _connect(self) -> bool:
        try:
            if self.sock:
                self.sock.close()

            self.sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
            self.sock.settimeout(self.timeout)
            self.sock.connect(self.socket_path)
            self.connected = True
            return True
        except OSError as e:  # why: ConnectionRefusedError / FileNotFoundError are expected while the daemon is down
            logging.debug(f"Connection failed: {e}")
            self.connected = False
            return False

    def send_receive(self, data: dict, max_retries: int = 2) -> Optional[dict]:
        retries = 0
        while retries <= max_retries:
            try:
                if not self.ensure_connected():
                    retries += 1
                    time.sleep(0.1 * (2 ** retries))  # Exponential backoff: 0.2s, 0.4s
                    continue

                with self.lock:
                    send_frame(self.sock, data)
                    response = recv_frame(self.sock)
                    if response is None:
                        raise ConnectionError("Connection closed before a response arrived")
                    return response

            except (ConnectionError, socket.error) as e:
                logging.debug(f"Communication error (attempt {retries + 1}): {e}")
                with self.lock:
                    self.connected = False
                retries += 1
                if retries <= max_retries:
                    time.sleep(0.1 * (2 ** retries))

        logging.error("Failed to communicate with the gallery daemon after retries")
        return None

    def close(self):
        with self.lock:
            if self.sock:
                try:
                    self.sock.close()
                except OSError:
                    pass
                self.sock = None
            self.connected = False


class ConnectionPool:
    """Fixed set of connections so a long tagging call never blocks a scan."""
    def __init__(self, socket_path: str, pool_size: int = 2, timeout: float = 20.0):
        self.socket_path = socket_path
        self.pool_size = pool_size
        self.connections: List[SocketConnection] = []
        self.available = queue.Queue()
        self.lock = threading.Lock()
        with self.lock:
            for _ in range(self.pool_size):
                conn = SocketConnection(self.socket_path, timeout=timeout)
                self.connections.append(conn)
                self.available.put(conn)

    def get_connection(self, timeout: float = 1.0) -> Optional[SocketConnection]:
        try:
            return self.available.get(timeout=timeout)
        except queue.Empty:
            return None

    def return_connection(self, conn: SocketConnection):
        self.available.put(conn)

    def close_all(self):
        with self.lock:
            for conn in self.connections:
                conn.close()
            self.connections.clear()
            while not self.available.empty():
                try:
                    self.available.get_nowait()
                except queue.Empty:
                    break


class GalleryBackendClient:
    """Client for the gallery daemon's scan and tagging commands.

    Every method returns the typed response, an ErrorResponse when the daemon
    reported a failure, or None when the daemon could not be reached.
    """
    def __init__(self, socket_path: str, timeout: float = 180.0, pool_size: int = 2):
        self.socket_path = socket_path
        self.connection_pool = ConnectionPool(socket_path, pool_size=pool_size, timeout=timeout)
        self.session_id = str(uuid.uuid4())

    def _send_request(self, request: protocol.Request, response_model: type[protocol.Response]) -> Optional[protocol.Response]:
        """Send a request using a connection from the pool and validate the response."""
        conn = self.connection_pool.get_connection()
        if not conn:
            logging.error(f"No free daemon connection for command '{request.command}'")
            return None

        try:
            request.session_id = self.session_id
            response_dict = conn.send_receive(request.model_dump())
            if response_dict is None:
                return None

            if response_dict.get("status") == "error":
                return protocol.ErrorResponse.model_validate(response_dict)
            return response_model.model_validate(response_dict)

        except _ValidationErrors as e:
            logging.error(f"Client-side validation error for command '{request.command}': {e}")
            return protocol.ErrorResponse(message=f"Malformed response: {e}")
        finally:
            self.connection_pool.return_connection(conn)

    def scan_folder(self, folder_path: str) -> Optional[protocol.ScanFolderResponse]:
        """Ask the daemon for the images directly inside *folder_path*."""
        request = protocol.ScanFolderRequest(folder_path=folder_path)
        return self._send_request(request, protocol.ScanFolderResponse)

    def generate_tags(self, image_path: str) -> Optional[protocol.GenerateTagsResponse]:
        """Ask the daemon to run the vision model on *image_path*. Slow; call off the GUI thread."""
        logging.debug(f"SocketClient: requesting tags for {os.path.basename(image_path)}")
        request = protocol.GenerateTagsRequest(image_path=image_path)
        return self._send_request(request, protocol.GenerateTagsResponse)

    def check_inference(self) -> bool:
        response = self._send_request(protocol.CheckInferenceRequest(), protocol.CheckInferenceResponse)
        return bool(response is not None and response.status == "success" and response.available)

    # --- Daemon Control Methods ---
    def is_socket_file_present(self) -> bool:
        return os.path.exists(self.socket_path)

    def shutdown_daemon(self) -> bool:
        """Send a command to shut down the daemon."""
        response = self._send_request(protocol.Request(command="shutdown"), protocol.Response)
        return response is not None and response.status == "success"

    def shutdown(self):
        """Clean up resources"""
        self.connection_pool.close_all()
