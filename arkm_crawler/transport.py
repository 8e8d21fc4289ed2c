"""
HTTP transport for the Arkham API.

Requests go out directly first. When a forwarding proxy is configured
(e.g. the Cloudflare worker that takes ``?url=<target>``), a network-level
failure of the direct call is retried once through the proxy, with the
``API-Key`` header renamed to ``X-API-Key`` on the way.

HTTP error statuses are never retried here; the response is handed back
and the caller decides what a 4xx/5xx means.

A request sent with a ``CancelSignal`` is streamed; the deadline or an
explicit ``cancel()`` shuts the socket mid-body and the caller gets
``RequestCancelled``.
"""

import socket
import threading
import time
from contextlib import contextmanager
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import requests
from requests.structures import CaseInsensitiveDict

from .errors import RequestCancelled

API_KEY_HEADER = "API-Key"
FORWARD_KEY_HEADER = "X-API-Key"

CHUNK_SIZE = 1024


class CancelSignal:
    """Cancellation handle for a single request, optionally with a deadline.

    While a request is in flight under ``watch()``, cancelling (or reaching
    the deadline) runs the registered callback, which cuts the connection.
    """

    def __init__(self, timeout=None):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks = []
        self._reason = None
        self._timeout = timeout
        self._deadline = None if timeout is None else time.monotonic() + timeout

    def cancel(self, reason="请求已取消"):
        with self._lock:
            if self._event.is_set():
                return
            self._reason = reason
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def expire(self):
        self.cancel(f"请求超时（{self._timeout:g}s）" if self._timeout is not None else "请求超时")

    @property
    def cancelled(self):
        if not self._event.is_set() and self._deadline is not None and time.monotonic() >= self._deadline:
            self.expire()
        return self._event.is_set()

    @property
    def reason(self):
        return self._reason if self.cancelled else None

    def remaining(self):
        """Seconds left before the deadline, or None without one."""
        if self.cancelled:
            raise RequestCancelled(self._reason)
        if self._deadline is None:
            return None
        return max(self._deadline - time.monotonic(), 0.001)

    @contextmanager
    def watch(self, on_cancel):
        """Run ``on_cancel`` if the signal fires before the block exits."""
        with self._lock:
            fired = self._event.is_set()
            if not fired:
                self._callbacks.append(on_cancel)
        if fired:
            on_cancel()
        timer = None
        if self._deadline is not None:
            timer = threading.Timer(max(self._deadline - time.monotonic(), 0), self.expire)
            timer.daemon = True
            timer.start()
        try:
            yield self
        finally:
            if timer is not None:
                timer.cancel()
            with self._lock:
                if on_cancel in self._callbacks:
                    self._callbacks.remove(on_cancel)


def abort_response(resp):
    """Shut the response's socket so a read blocked in another thread returns."""
    raw = resp.raw
    shutdown = getattr(raw, "shutdown", None)
    if shutdown is not None:
        shutdown()
        return
    sock = getattr(getattr(raw, "connection", None), "sock", None)
    if sock is not None:
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass


def read_body(resp, signal):
    """Read the whole body under ``signal``; RequestCancelled if it fires first."""
    chunks = []
    try:
        with signal.watch(lambda: abort_response(resp)):
            for chunk in resp.iter_content(CHUNK_SIZE):
                if signal.cancelled:
                    break
                chunks.append(chunk)
    except Exception:
        if not signal.cancelled:
            resp.close()
            raise
    if signal.cancelled:
        resp.close()
        raise RequestCancelled(signal.reason)
    resp._content = b"".join(chunks)
    resp._content_consumed = True
    return resp


class DirectTransport:
    """Plain GET. Each worker thread gets its own ``requests.Session``."""

    def __init__(self, session_factory=None):
        self.session_factory = session_factory or requests.Session
        self._local = threading.local()

    @property
    def session(self):
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._local.session = self.session_factory()
        return session

    def send(self, url, params=None, headers=None, signal=None):
        if signal is None:
            return self.session.get(url, params=params, headers=dict(headers or {}))
        try:
            resp = self.session.get(
                url, params=params, headers=dict(headers or {}), timeout=signal.remaining(), stream=True,
            )
        except requests.Timeout:
            signal.expire()
            raise RequestCancelled(signal.reason)
        except requests.RequestException:
            if signal.cancelled:
                raise RequestCancelled(signal.reason)
            raise
        return read_body(resp, signal)


def full_url(url, params=None):
    return requests.Request("GET", url, params=params).prepare().url


def build_forward_url(proxy_base, target):
    """Embed ``target`` as the ``url`` query parameter of ``proxy_base``."""
    try:
        parts = urlsplit(proxy_base.strip())
    except (AttributeError, ValueError):
        return None
    if not parts.scheme or not parts.netloc:
        return None
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != "url"]
    query.append(("url", target))
    return urlunsplit((parts.scheme, parts.netloc, parts.path or "/", urlencode(query), parts.fragment))


def forward_headers(headers):
    forwarded = CaseInsensitiveDict(headers or {})
    api_key = forwarded.pop(API_KEY_HEADER, None)
    if api_key:
        forwarded[FORWARD_KEY_HEADER] = api_key
    return dict(forwarded)


class ForwardingTransport:
    def __init__(self, proxy_base, transport=None):
        self.proxy_base = proxy_base
        self.transport = transport or DirectTransport()

    def forward_url(self, url, params=None):
        return build_forward_url(self.proxy_base, full_url(url, params))

    def send(self, url, params=None, headers=None, signal=None):
        proxied = self.forward_url(url, params)
        if proxied is None:
            raise ValueError(f"代理地址无效：{self.proxy_base!r}")
        return self.transport.send(proxied, headers=forward_headers(headers), signal=signal)


class FallbackTransport:
    """Direct first; on a connection failure, once more through the proxy."""

    def __init__(self, primary, forwarding):
        self.primary = primary
        self.forwarding = forwarding

    def send(self, url, params=None, headers=None, signal=None):
        try:
            return self.primary.send(url, params=params, headers=headers, signal=signal)
        except requests.ConnectionError:
            if self.forwarding.forward_url(url, params) is None:
                raise
            return self.forwarding.send(url, params=params, headers=headers, signal=signal)


def make_transport(proxy=None, session_factory=None):
    direct = DirectTransport(session_factory)
    if not proxy:
        return direct
    return FallbackTransport(direct, ForwardingTransport(proxy, direct))
