import http.server
import socketserver
import re
import json
import signal
import threading
import time
from typing import Dict, Optional
from urllib.parse import urlparse, parse_qs

from pdf_form import (
    FillRequest,
    PDFFormError,
    SourceFetchError,
    SourceValidationError,
    DocumentOpenError,
    inspect_fields,
    fill_fields,
)
from pdf_source import select_source, load_pdf
from config import HTTP_HOST, HTTP_PORT, MAX_FILE_SIZE, ERROR_MESSAGES
from logging_utils import get_logger, log_request

logger = get_logger('pdf_form_service')
get_logger('pdf_form')

_TRUE_WORDS = {'true', '1', 'yes', 'on'}
_FALSE_WORDS = {'false', '0', 'no', 'off'}


def parse_flatten(raw: Optional[str]) -> bool:
    """``flatten`` form value; absent or blank means True."""
    if raw is None or not raw.strip():
        return True
    lowered = raw.strip().lower()
    if lowered in _TRUE_WORDS:
        return True
    if lowered in _FALSE_WORDS:
        return False
    raise SourceValidationError('bad_flatten')


def parse_multipart(body: bytes, content_type: str) -> Optional[Dict[str, bytes]]:
    match = re.match(r'multipart/form-data; *boundary=(.+)', content_type, re.I)
    if not match:
        return None
    boundary = match.group(1).split(';')[0].strip().strip('"')
    parts = body.split(('--' + boundary).encode('utf-8'))
    form: Dict[str, bytes] = {}
    for part in parts:
        if not part or part in (b'--\r\n', b'--'):
            continue
        header, _, content = part.partition(b'\r\n\r\n')
        if b'Content-Disposition' not in header and b'content-disposition' not in header:
            continue
        name_match = re.search(br'[;\s]name="([^"]*)"', header)
        if not name_match:
            continue
        if content.endswith(b'\r\n'):
            content = content[:-2]
        form.setdefault(name_match.group(1).decode('utf-8', 'ignore'), content)
    return form


def _form_text(form: Dict[str, bytes], key: str) -> Optional[str]:
    raw = form.get(key)
    if raw is None:
        return None
    return raw.decode('utf-8', 'replace')


def status_for(error: PDFFormError) -> int:
    if isinstance(error, SourceValidationError):
        return 413 if error.code == 'file_too_large' else 400
    if isinstance(error, SourceFetchError):
        return 502
    if isinstance(error, DocumentOpenError):
        return 422
    return 500


def error_payload(error: PDFFormError) -> Dict:
    payload = {
        'ok': False,
        'error': error.code,
        'message': error.message or ERROR_MESSAGES.get(error.code, error.code),
    }
    if isinstance(error, SourceFetchError) and error.status is not None:
        payload['status'] = error.status
    return payload


class PDFFormHandler(http.server.BaseHTTPRequestHandler):
    """HTTP handler for the form endpoints.

    Endpoints:
      POST /fields  (multipart or urlencoded: pdf | pdfUrl, password)
      POST /fill    (multipart or urlencoded: pdf | pdfUrl, password, fields, flatten)
      GET  /health
    """

    server_version = 'PDFFormService/1.0'

    def log_message(self, format, *args):  # noqa: A002
        logger.info("%s - %s", self.address_string(), format % args)

    def _send_json(self, obj, status=200):
        data = json.dumps(obj).encode('utf-8')
        self.send_response(status)
        self.send_header('Content-Type', 'application/json; charset=utf-8')
        self.send_header('Content-Length', str(len(data)))
        try:
            self.end_headers()
            self.wfile.write(data)
        except (ConnectionAbortedError, BrokenPipeError):
            # Client went away mid-response
            pass

    def _send_pdf(self, data: bytes, filename: str = 'filled.pdf'):
        self.send_response(200)
        self.send_header('Content-Type', 'application/pdf')
        self.send_header('Content-Disposition', f'attachment; filename="{filename}"')
        self.send_header('Content-Length', str(len(data)))
        try:
            self.end_headers()
            self.wfile.write(data)
        except (ConnectionAbortedError, BrokenPipeError):
            pass

    # ---- Helpers ----
    def _read_form(self) -> Dict[str, bytes]:
        content_type = self.headers.get('Content-Type', '')
        length = int(self.headers.get('Content-Length', '0') or 0)
        if length > MAX_FILE_SIZE:
            raise SourceValidationError('file_too_large')
        body = self.rfile.read(length) if length else b''
        if content_type.lower().startswith('application/x-www-form-urlencoded'):
            pairs = parse_qs(body.decode('utf-8', 'replace'), keep_blank_values=True)
            return {k: v[0].encode('utf-8') for k, v in pairs.items()}
        form = parse_multipart(body, content_type)
        if form is None:
            raise SourceValidationError('bad_content_type')
        return form

    def _run(self, endpoint: str, action):
        started = time.time()
        client = self.client_address[0] if self.client_address else '-'
        try:
            meta = action()
            log_request(endpoint, client, 'ok', started, meta)
        except PDFFormError as e:
            logger.info("[%s] %s: %s", endpoint, e.code, e.message or '')
            self._send_json(error_payload(e), status_for(e))
            log_request(endpoint, client, 'error', started, {'error': e.code})
        except Exception as e:
            logger.exception("[%s] unexpected failure", endpoint)
            self._send_json({'ok': False, 'error': 'internal_error', 'message': str(e)}, 500)
            log_request(endpoint, client, 'internal_error', started, {'error': str(e)})

    # ---- Endpoint handlers ----
    def handle_fields(self):
        form = self._read_form()
        source = select_source(form.get('pdf') or None, _form_text(form, 'pdfUrl'))
        pdf_bytes = load_pdf(source)
        descriptors = inspect_fields(pdf_bytes, _form_text(form, 'password') or None)
        self._send_json([d.to_public() for d in descriptors])
        return {'source': source.describe(), 'field_count': len(descriptors)}

    def handle_fill(self):
        form = self._read_form()
        request = FillRequest.from_json(_form_text(form, 'fields'), parse_flatten(_form_text(form, 'flatten')))
        source = select_source(form.get('pdf') or None, _form_text(form, 'pdfUrl'))
        pdf_bytes = load_pdf(source)
        result = fill_fields(pdf_bytes, request, _form_text(form, 'password') or None)
        self._send_pdf(result.pdf_bytes)
        return {'source': source.describe(), 'flatten': request.flatten, **result.summary()}

    # ---- Dispatchers ----
    def do_POST(self):
        parsed = urlparse(self.path)
        if parsed.path == '/fields':
            return self._run('/fields', self.handle_fields)
        if parsed.path == '/fill':
            return self._run('/fill', self.handle_fill)
        self._send_json({'ok': False, 'error': 'not_found', 'message': ERROR_MESSAGES['not_found']}, 404)

    def do_GET(self):
        parsed = urlparse(self.path)
        if parsed.path == '/health':
            return self._send_json({'ok': True})
        self._send_json({'ok': False, 'error': 'not_found', 'message': ERROR_MESSAGES['not_found']}, 404)


class ThreadingHTTPServer(socketserver.ThreadingMixIn, socketserver.TCPServer):
    daemon_threads = True
    allow_reuse_address = True


def make_server(host: str = HTTP_HOST, port: int = HTTP_PORT) -> ThreadingHTTPServer:
    return ThreadingHTTPServer((host, port), PDFFormHandler)


def run(host: str = HTTP_HOST, port: int = HTTP_PORT):
    httpd = make_server(host, port)
    stop = threading.Event()

    def shutdown_handler(*_):  # noqa: ANN002
        logger.info("Shutdown signal received. Stopping server...")
        stop.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            signal.signal(sig, shutdown_handler)
        except (ValueError, OSError):  # not in main thread / unsupported
            pass

    http_thread = threading.Thread(target=httpd.serve_forever, name="http-server", daemon=True)
    http_thread.start()
    logger.info("HTTP server running on http://%s:%s", host, port)
    try:
        stop.wait()
    except KeyboardInterrupt:
        pass
    finally:
        httpd.shutdown()
        httpd.server_close()
        logger.info("Server stopped.")


if __name__ == "__main__":
    run()
