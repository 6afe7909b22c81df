import socket
import logging
from typing import Optional, Tuple

from rangedl.core.entities import FetchResult
from rangedl.core.errors import ConnectError, TransferIOError, ProtocolError
from rangedl.core.interfaces import RangeTransport, ProgressCallback

logger = logging.getLogger("rangedl.net")

HEADER_DELIMITER = b"\r\n\r\n"
EOF_MARKER = "400 Invalid range:"
READ_BUFFER_SIZE = 8192


def build_range_request(host: str, port: int, start: int, end: int) -> bytes:
    request = (
        "GET / HTTP/1.1\r\n"
        f"Host: {host}:{port}\r\n"
        f"Range: bytes={start}-{end}\r\n"
        "Connection: close\r\n"
        "\r\n"
    )
    return request.encode("ascii")


def split_response(response: bytes) -> Tuple[str, bytes]:
    """Splits a raw response into (header text, body) at the first blank line.

    Raises ProtocolError if there is no blank line.
    """
    headers_end = response.find(HEADER_DELIMITER)
    if headers_end < 0:
        raise ProtocolError(f"No header delimiter in {len(response)} byte response")
    headers_end += len(HEADER_DELIMITER)
    headers = response[:headers_end].decode("utf-8", errors="replace")
    return headers, response[headers_end:]


def parse_response(response: bytes) -> FetchResult:
    try:
        headers, body = split_response(response)
    except ProtocolError as e:
        # Treated as "no data", same as an empty body
        logger.debug(f"{e}; treating as empty body")
        headers, body = "", b""
    eof = EOF_MARKER in headers or not body
    return FetchResult(body=body, eof=eof, headers=headers)


class SocketRangeTransport(RangeTransport):
    """One request per connection; the server closes after each response."""

    def __init__(self, host: str, port: int, connect_timeout: float = 3.0,
                 read_timeout: float = 5.0, write_timeout: float = 2.0):
        self.host = host
        self.port = port
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout
        self.write_timeout = write_timeout

    @classmethod
    def from_config(cls, config) -> "SocketRangeTransport":
        return cls(
            config.host,
            config.port,
            connect_timeout=config.connect_timeout,
            read_timeout=config.read_timeout,
            write_timeout=config.write_timeout,
        )

    def _connect(self) -> socket.socket:
        try:
            return socket.create_connection((self.host, self.port), timeout=self.connect_timeout)
        except socket.timeout as e:
            raise ConnectError(f"Connection to {self.host}:{self.port} timed out") from e
        except OSError as e:
            raise ConnectError(f"Connection to {self.host}:{self.port} failed: {e}") from e

    def fetch(self, start: int, end: int, on_progress: Optional[ProgressCallback] = None) -> FetchResult:
        request = build_range_request(self.host, self.port, start, end)
        logger.debug(f"Requesting bytes={start}-{end} from {self.host}:{self.port}")

        with self._connect() as sock:
            try:
                sock.settimeout(self.write_timeout)
                sock.sendall(request)
            except OSError as e:
                raise TransferIOError(f"Failed to send request: {e}") from e

            response = self._read_all(sock, on_progress)

        return parse_response(bytes(response))

    def _read_all(self, sock: socket.socket, on_progress: Optional[ProgressCallback]) -> bytearray:
        response = bytearray()
        sock.settimeout(self.read_timeout)
        while True:
            try:
                data = sock.recv(READ_BUFFER_SIZE)
            except socket.timeout as e:
                if response:
                    # Peer went quiet after sending something: take what we have
                    logger.debug(f"Read timed out after {len(response)} bytes; ending response")
                    break
                raise TransferIOError("Read timed out before any data arrived") from e
            except OSError as e:
                raise TransferIOError(f"Read failed after {len(response)} bytes: {e}") from e

            if not data:
                break
            response.extend(data)
            if on_progress is not None:
                on_progress(len(response))
        return response
