"""A minimal HTTP client for poking the cell representative's endpoints."""

from __future__ import annotations

import argparse
import http.client
import ssl
import sys
import time
import urllib.error
import urllib.request
from typing import Optional, Sequence

from cellrep.config import ConfigError, parse_duration

_SUPPORTED_METHODS = ("GET", "POST")


class CurlError(Exception):
    """Raised when a request cannot be built, sent or answered successfully."""


def parse_header(value: str) -> tuple[str, str]:
    """Split a ``Name=value`` header argument into its name and value."""
    parts = value.split("=")
    if len(parts) < 2:
        raise CurlError(f"invalid header {value!r}: expected the form Name=value")
    return parts[0], parts[1]


def build_ssl_context(ca_cert_path: str, cert_path: str, key_path: str) -> ssl.SSLContext:
    """Build a client TLS context with an identity and a trusted authority."""
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    context.minimum_version = ssl.TLSVersion.TLSv1_2
    try:
        context.load_cert_chain(cert_path, key_path)
        context.load_verify_locations(cafile=ca_cert_path)
    except (OSError, ValueError) as exc:
        raise CurlError(f"TLS config mismatch: {exc}") from exc
    return context


def _timeout_message(url: str) -> str:
    return f"Failed to contact {url}: timeout exceeded while awaiting response"


def fetch(
    url: str,
    method: str = "GET",
    header: Optional[str] = None,
    timeout: float = 0.0,
    ssl_context: Optional[ssl.SSLContext] = None,
) -> bytes:
    """Send a GET or POST request and return the body of a 2xx response.

    A ``timeout`` of zero or less means no timeout.
    """
    if method not in _SUPPORTED_METHODS:
        raise CurlError(
            "Failed to generate request: Currently only supports GET and POST methods"
        )
    data = b"" if method == "POST" else None
    try:
        request = urllib.request.Request(url, data=data, method=method)
    except ValueError as exc:
        raise CurlError(f"Failed to generate request: {exc}") from exc

    if header:
        name, value = parse_header(header)
        request.add_header(name, value)

    handlers = [urllib.request.HTTPSHandler(context=ssl_context)] if ssl_context else []
    opener = urllib.request.build_opener(*handlers)
    open_kwargs = {"timeout": timeout} if timeout and timeout > 0 else {}

    try:
        response = opener.open(request, **open_kwargs)
    except urllib.error.HTTPError as exc:
        exc.close()
        raise CurlError(f"Error talking to {url}: status code {exc.code}") from exc
    except urllib.error.URLError as exc:
        if isinstance(exc.reason, TimeoutError):
            raise CurlError(_timeout_message(url)) from exc
        raise CurlError(f"Failed to contact {url}: {exc.reason}") from exc
    except TimeoutError as exc:
        raise CurlError(_timeout_message(url)) from exc
    except (OSError, http.client.HTTPException) as exc:
        raise CurlError(f"Failed to contact {url}: {exc}") from exc

    with response:
        try:
            return response.read()
        except (OSError, http.client.HTTPException) as exc:
            raise CurlError(f"Failed to read body: {exc}") from exc


def _duration(value: str) -> float:
    try:
        return parse_duration(value)
    except ConfigError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gocurl", description="Contact an HTTP(S) endpoint.")
    parser.add_argument("-cacert", "--cacert", default="", help="CA certificate for API server")
    parser.add_argument("-cert", "--cert", default="", help="TLS certificate for API server")
    parser.add_argument("-key", "--key", default="", help="TLS private key for API server")
    parser.add_argument("-X", dest="method", default="GET", help="HTTP method")
    parser.add_argument(
        "-max-time",
        "--max-time",
        dest="max_time",
        type=_duration,
        default=0.0,
        help="Maximum time that you allow the whole operation to take.",
    )
    parser.add_argument("-H", dest="header", default="", help="Custom Header")
    parser.add_argument("urls", nargs="*", metavar="URL")
    return parser


def _log(message: str) -> None:
    stamp = time.strftime("%Y/%m/%d %H:%M:%S")
    print(f"{stamp} {message}", file=sys.stderr)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    if len(args.urls) != 1:
        _log("Must provide a URL to contact")
        return 1

    ssl_context = None
    if args.key or args.cert or args.cacert:
        try:
            ssl_context = build_ssl_context(args.cacert, args.cert, args.key)
        except CurlError as exc:
            _log(str(exc))
            return 1

    try:
        body = fetch(args.urls[0], args.method, args.header, args.max_time, ssl_context)
    except CurlError as exc:
        _log(str(exc))
        return 1

    sys.stdout.write(body.decode("utf-8", errors="replace"))
    sys.stdout.flush()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())