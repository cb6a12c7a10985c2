import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from cellrep.gocurl import CurlError, build_ssl_context, fetch, main, parse_header


class _Recorder:
    def __init__(self):
        self.requests = []
        self.status = 200
        self.delay = 0.0
        self.echo_header = None
        self.url = ""


@pytest.fixture
def server():
    recorder = _Recorder()

    class Handler(BaseHTTPRequestHandler):
        def _handle(self):
            length = int(self.headers.get("Content-Length") or 0)
            if length:
                self.rfile.read(length)
            recorder.requests.append((self.command, self.path, dict(self.headers)))
            if recorder.delay:
                time.sleep(recorder.delay)
            body = b""
            if recorder.echo_header:
                body = self.headers.get(recorder.echo_header, "").encode()
            try:
                self.send_response(recorder.status)
                self.send_header("Content-Length", str(len(body)))
                self.end_headers()
                self.wfile.write(body)
            except OSError:
                pass

        do_GET = _handle
        do_POST = _handle
        do_PUT = _handle

        def log_message(self, *args):
            pass

    httpd = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
    httpd.daemon_threads = True
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    recorder.url = f"http://127.0.0.1:{httpd.server_address[1]}"
    yield recorder
    httpd.shutdown()
    httpd.server_close()


def test_no_url_fails_with_non_zero_exit_code(capsys):
    assert main([]) == 1
    assert "Must provide a URL to contact" in capsys.readouterr().err


def test_hits_the_ping_endpoint_over_http(server):
    server.status = 202
    assert main([server.url + "/ping"]) == 0
    assert len(server.requests) == 1
    assert server.requests[0][:2] == ("GET", "/ping")


def test_random_2xx_status_code_succeeds(server):
    server.status = 299
    assert main([server.url + "/ping"]) == 0
    assert len(server.requests) == 1


def test_only_some_tls_flags_fails_without_contacting(server, tmp_path):
    key_path = tmp_path / "localhost.key"
    key_path.write_text("not a key")
    assert main(["--key", str(key_path), server.url + "/ping"]) == 1
    assert server.requests == []


def test_build_ssl_context_with_missing_files_raises():
    with pytest.raises(CurlError, match="TLS config mismatch"):
        build_ssl_context("", "", "")


def test_server_not_running_fails(server, capsys):
    assert main(["http:///ping"]) == 1
    assert server.requests == []
    assert "Failed to contact" in capsys.readouterr().err


def test_error_status_fails(server, capsys):
    server.status = 502
    assert main([server.url + "/ping"]) == 1
    assert len(server.requests) == 1
    assert "status code 502" in capsys.readouterr().err


def test_post_method(server):
    assert main(["-X", "POST", server.url + "/evacuate"]) == 0
    assert len(server.requests) == 1
    assert server.requests[0][:2] == ("POST", "/evacuate")


def test_unsupported_method_is_rejected(server, capsys):
    assert main(["-X", "PUT", server.url + "/ping"]) == 1
    assert server.requests == []
    assert "only supports GET and POST" in capsys.readouterr().err


def test_max_time_exceeded(server, capsys):
    server.delay = 1.0
    assert main(["-max-time", "0.1s", server.url + "/ping"]) == 1
    assert "timeout" in capsys.readouterr().err
    assert len(server.requests) == 1


def test_custom_header_is_sent(server, capsys):
    server.echo_header = "Custom"
    assert main(["-H", "Custom=something", server.url + "/ping"]) == 0
    assert capsys.readouterr().out == "something"
    assert len(server.requests) == 1


def test_fetch_returns_body(server):
    server.echo_header = "Custom"
    body = fetch(server.url + "/ping", "GET", "Custom=something", 0.0, None)
    assert body == b"something"


def test_fetch_raises_on_bad_status(server):
    server.status = 502
    with pytest.raises(CurlError, match="status code 502"):
        fetch(server.url + "/ping", "GET", None, 0.0, None)


def test_fetch_rejects_unknown_method():
    with pytest.raises(CurlError, match="only supports GET and POST"):
        fetch("http://localhost/ping", "DELETE", None, 0.0, None)


def test_parse_header_splits_on_equals():
    assert parse_header("Custom=something") == ("Custom", "something")


def test_parse_header_keeps_second_field_only():
    assert parse_header("a=b=c") == ("a", "b")


def test_parse_header_without_equals_raises():
    with pytest.raises(CurlError):
        parse_header("nope")