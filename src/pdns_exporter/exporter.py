"""``pdns_exporter.exporter`` contains the PowerDNSExporter class.

The config.py module contains configuration related stuff, metrics.py contains the
internal metric definitions, collector.py has the Collector exposing the PowerDNS
statistics, poller.py reads the control sockets, and this exporter.py module serves
it all over HTTP.
"""

from __future__ import annotations

import json
import logging
import urllib.parse
from typing import TYPE_CHECKING

from prometheus_client import REGISTRY, CollectorRegistry, MetricsHandler, exposition

from pdns_exporter.metrics import pdns_exporter_http_requests_total, pdns_exporter_http_responses_total
from pdns_exporter.version import __version__

if TYPE_CHECKING:  # pragma: no cover
    from prometheus_client.registry import RestrictedRegistry

    from pdns_exporter.poller import PowerDNSPoller

logger = logging.getLogger(f"pdns_exporter.{__name__}")

INDEX = """<!DOCTYPE html>
<html lang="en">
<head><title>PowerDNS Exporter</title></head>
<body>
<h1>PowerDNS Exporter</h1>
<p>Visit <a href="/metrics">/metrics</a> to see the PowerDNS statistics and metrics for the pdns_exporter itself.</p>
<p>Visit <a href="/config">/config</a> to see the configured targets.</p>
</body>
</html>"""


class PowerDNSExporter(MetricsHandler):
    """Primary pdns_exporter class.

    MetricsHandler subclass for incoming scrape requests. Initiated on each
    request as a handler by http.server.HTTPServer().

    The configure() classmethod must be called to attach a poller before use.

    Attributes:
    -----------
        poller: The PowerDNSPoller whose targets and observations are served.

    """

    __version__ = __version__

    # the poller is set by configure() before the class is initialised
    poller: PowerDNSPoller | None = None

    registry: CollectorRegistry = REGISTRY

    @classmethod
    def configure(cls, poller: PowerDNSPoller, registry: CollectorRegistry = REGISTRY) -> None:
        """Attach the poller and register its observation collector in the registry served under /metrics."""
        cls.poller = poller
        cls.registry = registry
        registry.register(poller.sink)
        logger.debug(f"Serving {len(poller.registry)} target(s)")

    def parse_path(self) -> tuple[urllib.parse.SplitResult, dict[str, str]]:
        """Parse the incoming url and then the querystring."""
        url = urllib.parse.urlsplit(self.path)
        parsed_qs = urllib.parse.parse_qs(url.query)
        # only the first value of each querystring key is used
        qs: dict[str, str] = {k: v[0] for k, v in parsed_qs.items()}
        return url, qs

    def do_GET(self) -> None:  # noqa: N802
        """Handle incoming HTTP GET requests."""
        self.url, self.qs = self.parse_path()
        logger.debug(
            f"Got HTTP request for {self.url.geturl()} - parsed qs is {self.qs}",
        )
        # increase the persistent http request metric
        pdns_exporter_http_requests_total.labels(path=self.url.path).inc()

        # this endpoint exposes the PowerDNS statistics, metrics about the exporter itself and the python process
        if self.url.path == "/metrics":
            logger.debug("Returning metrics for request to /metrics")
            self.send_metric_response(registry=self.registry, query=self.qs)

        # the effective targets as json
        elif self.url.path == "/config":
            targets = [target.asdict() for target in self.poller.registry] if self.poller else []
            self.send_body(body=json.dumps(targets).encode("utf-8"), content_type="application/json")

        # the root just returns a bit of informational html
        elif self.url.path == "/":
            logger.debug("Returning index page for request to /")
            self.send_body(body=INDEX.encode("utf-8"), content_type="text/html")

        # unknown endpoint
        else:
            logger.debug(f"Unknown endpoint '{self.url.path}' returning 404")
            self.send_body(body=b"404 not found", response_code=404)

    def send_body(self, body: bytes, content_type: str = "text/plain", response_code: int = 200) -> None:
        """Send a plain response with the provided body."""
        self.send_response(response_code)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)
        pdns_exporter_http_responses_total.labels(path=self.url.path, response_code=response_code).inc()

    def send_metric_response(
        self,
        registry: CollectorRegistry | RestrictedRegistry,
        query: dict[str, str],
    ) -> None:
        """Bake and send output from the provided registry and querystring."""
        # Bake output
        status, headers, output = exposition._bake_output(  # type: ignore[no-untyped-call]  # noqa: SLF001
            registry=registry,
            accept_header=self.headers.get("Accept"),
            accept_encoding_header=self.headers.get("Accept-Encoding"),
            params=query,
            disable_compression=False,
        )
        headers.append(("Content-Length", str(len(output))))
        # Return output
        self.send_response(int(status.split(" ")[0]))
        for header in headers:
            self.send_header(*header)
        self.end_headers()
        self.wfile.write(output)
        pdns_exporter_http_responses_total.labels(path=self.url.path, response_code=200).inc()

    def log_message(self, format: str, *args: object) -> None:  # noqa: A002
        """Send the http.server access log to the logger instead of stderr."""
        logger.debug(f"{self.address_string()} - {format % args}")
