"""pytest fixtures file for the pdns_exporter project."""

import shutil
import socket
import tempfile
import threading
from http.server import HTTPServer
from pathlib import Path

import pytest
from prometheus_client import CollectorRegistry

from pdns_exporter.config import Target
from pdns_exporter.exporter import PowerDNSExporter
from pdns_exporter.poller import PowerDNSPoller

SERVER_RESPONSE = (
    b"corrupt-packets=0,deferred-cache-inserts=2,deferred-cache-lookup=3,latency=12,packetcache-hit=40,"
    b"packetcache-miss=5,packetcache-size=17,qsize-q=1,query-cache-hit=7,query-cache-miss=8,"
    b"recursing-answers=0,recursing-questions=0,servfail-packets=0,tcp-answers=9,tcp-queries=10,"
    b"timedout-packets=0,udp-answers=100,udp-queries=101,udp4-answers=90,udp4-queries=91,"
    b"udp6-answers=10,udp6-queries=10,brand-new-statistic=5,\n"
)


class FakeServer:
    """Fake PowerDNS authoritative server listening on a unix stream socket."""

    def __init__(self, path: str, response: bytes) -> None:
        """Bind the listening socket and start serving in a thread."""
        self.path = path
        self.response = response
        self.requests: list[bytes] = []
        self.stop = threading.Event()
        self.sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        self.sock.bind(path)
        self.sock.listen(5)
        self.sock.settimeout(0.1)
        self.thread = threading.Thread(target=self.serve, daemon=True)
        self.thread.start()

    def serve(self) -> None:
        """Read a null terminated command and send the response in small pieces."""
        while not self.stop.is_set():
            try:
                conn, _ = self.sock.accept()
            except TimeoutError:
                continue
            with conn:
                conn.settimeout(5)
                data = b""
                while not data.endswith(b"\0"):
                    chunk = conn.recv(4096)
                    if not chunk:
                        break
                    data += chunk
                self.requests.append(data)
                for i in range(0, len(self.response), 1000):
                    conn.sendall(self.response[i : i + 1000])

    def close(self) -> None:
        """Stop serving."""
        self.stop.set()
        self.thread.join()
        self.sock.close()


class FakeRecursor:
    """Fake PowerDNS recursor listening on a unix datagram socket."""

    def __init__(self, path: str, values: dict[str, str] | None = None, reply: bytes | None = None) -> None:
        """Bind the socket and start answering in a thread.

        If reply is set it is sent as-is, otherwise the requested names are looked up in values.
        """
        self.path = path
        self.values = values or {}
        self.reply = reply
        self.silent = False
        self.requests: list[bytes] = []
        self.peers: list[str] = []
        self.stop = threading.Event()
        self.sock = socket.socket(socket.AF_UNIX, socket.SOCK_DGRAM)
        self.sock.bind(path)
        self.sock.settimeout(0.1)
        self.thread = threading.Thread(target=self.serve, daemon=True)
        self.thread.start()

    def serve(self) -> None:
        """Answer each datagram with the values in the requested order."""
        while not self.stop.is_set():
            try:
                data, peer = self.sock.recvfrom(65536)
            except TimeoutError:
                continue
            self.requests.append(data)
            self.peers.append(peer)
            if self.silent:
                continue
            if self.reply is not None:
                answer = self.reply
            else:
                names = data.decode().split()[1:]
                answer = ("\n".join(self.values.get(name, "0") for name in names) + "\n").encode()
            self.sock.sendto(answer, peer)

    def close(self) -> None:
        """Stop answering."""
        self.stop.set()
        self.thread.join()
        self.sock.close()


@pytest.fixture
def sockdir():
    """Return a short temporary directory for unix sockets (sun_path is limited to 107 bytes)."""
    path = tempfile.mkdtemp(prefix="pdns")
    yield Path(path)
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def local_socket(sockdir):
    """Return the path the datagram transport should bind to."""
    return str(sockdir / "local.sock")


@pytest.fixture
def fake_server(sockdir):
    """Run a fake authoritative server with the standard response."""
    server = FakeServer(path=str(sockdir / "pdns.sock"), response=SERVER_RESPONSE)
    yield server
    server.close()


@pytest.fixture
def fake_recursor(sockdir):
    """Run a fake recursor with a few values."""
    recursor = FakeRecursor(
        path=str(sockdir / "recursor.sock"),
        values={
            "cache-hits": "1000",
            "cache-misses": "250",
            "cache-entries": "4242",
            "qa-latency": "1532",
            "noerror-answers": "900",
            "sys-msec": "12",
            "user-msec": "34",
        },
    )
    yield recursor
    recursor.close()


@pytest.fixture
def server_target(fake_server):
    """Return a server Target pointing at the fake server."""
    return Target.create(dialect="server", instance="auth", socket=fake_server.path, timeout=5)


@pytest.fixture
def recursor_target(fake_recursor):
    """Return a recursor Target pointing at the fake recursor."""
    return Target.create(
        dialect="recursor",
        instance="rec",
        socket=fake_recursor.path,
        command="get cache-hits cache-misses cache-entries qa-latency",
        timeout=5,
    )


@pytest.fixture
def poller(local_socket):
    """Return an unconfigured poller using the temporary local socket."""
    p = PowerDNSPoller(local_socket=local_socket)
    yield p
    p.shutdown()


@pytest.fixture
def exporter():
    """Fixture to return a clean version of the PowerDNSExporter class."""

    class CleanTestExporter(PowerDNSExporter):
        """This is just here so tests can set a poller without changing the global PowerDNSExporter class."""

    CleanTestExporter.poller = None
    return CleanTestExporter


@pytest.fixture
def exporter_server(exporter, poller, fake_server, fake_recursor):
    """Run an HTTP server with a poller reading the fake server and recursor, return the base url."""
    poller.configure(
        declarations=[
            {"dialect": "server", "instance": "auth", "socket": fake_server.path, "timeout": 5},
            {
                "dialect": "recursor",
                "instance": "rec",
                "socket": fake_recursor.path,
                "command": "get cache-hits cache-misses qa-latency",
                "timeout": 5,
            },
        ]
    )
    exporter.configure(poller=poller, registry=CollectorRegistry())
    poller.read_tick()
    httpd = HTTPServer(("127.0.0.1", 0), exporter)
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{httpd.server_address[1]}"
    httpd.shutdown()
    httpd.server_close()
