# SPDX-License-Identifier: MIT
# Authenticated session for UniFi-style controllers.
#
# Implements cookie-session auth with CSRF token replay, API generation
# detection against "/", path rewriting for modern controllers, optional
# certificate pinning, and structured logging of requests, responses, errors
# and timings.
#
# Notes on API generations:
# Controllers from 5.12.55 on UDM (Jan 2020) answer "/" with 200 and serve
# the API under /proxy/protect with login at /api/auth/login. Older
# controllers redirect "/" to /manage. The probe runs once per session.
#
# Notes on CSRF:
# Modern controllers send X-CSRF-Token on responses and expect it back on
# later requests. The latest token seen wins.

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from datetime import datetime
from time import perf_counter_ns  # monotonic timer for accurate durations (ns)
from typing import IO, Any, Dict, Iterable, List, Optional, Type, TypeVar, Union
from urllib.parse import urlencode

import requests
import urllib3
from pydantic import BaseModel

from .errors import (
    AuthenticationFailedError,
    InvalidStatusCodeError,
    NoParamsError,
    NoSiteProvidedError,
    RecordShapeError,
    UnifiRequestError,
)
from .paths import (
    API_CAMERAS,
    API_DEVICE_PATH,
    API_LOGIN_PATH,
    API_LOGOUT_PATH,
    API_ROGUE_AP,
    API_SITE_LIST,
    API_STATUS_PATH,
    API_VIDEO_DOWNLOAD,
    API_VIDEO_PREPARE,
    ApiGeneration,
    PathResolver,
    site_path,
)
from .pinning import Fingerprints, build_adapter
from .records import (
    AccessPoint,
    Camera,
    RogueAP,
    ServerStatus,
    Site,
    decode_dual_shape,
    decode_list,
    decode_record,
)

ModelT = TypeVar("ModelT", bound=BaseModel)

CSRF_HEADER = "X-CSRF-Token"

Param = Union[str, Dict[str, Any], List[Any]]


def _ms_since(t0: int) -> int:
    return int((perf_counter_ns() - t0) / 1_000_000)


class UnifiSession:
    """
    Session with one controller.

    Accepts the driver-style configuration:
    - config: {"url", "username", "timeout"?, "verify_ssl"?, "ssl_certs"?, "fingerprints"?}
    - secrets: {"password"}
    - logger: optional logging.Logger

    Notes:
    - If password is present in config and secrets is empty, it will be copied to secrets.
    - Construction probes the API generation and logs in unless probe=False.
    - The CSRF token and the API generation are the only state changed after
      construction; both are guarded by one lock so a session can be shared
      between threads.
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        secrets: Optional[Dict[str, str]] = None,
        logger: Optional[logging.Logger] = None,
        probe: bool = True,
    ):
        config = dict(config or {})
        secrets = dict(secrets or {})

        # If password got placed in config, lift it into secrets when missing
        if "password" in config and "password" not in secrets:
            secrets["password"] = config.pop("password")

        missing_config = [field for field in ("url", "username") if not config.get(field)]
        if missing_config:
            raise ValueError(f"Missing required configuration fields: {missing_config}")
        # empty password is allowed
        if "password" not in secrets:
            raise ValueError("Missing required secret fields: ['password']")

        self.config = config
        self.log = logger or self._default_logger()
        self.url: str = str(config["url"]).rstrip("/")
        self.username: str = config["username"]
        self._password: str = secrets.get("password") or ""
        self.timeout: Optional[float] = config.get("timeout") or None
        self.verify_ssl = bool(config.get("verify_ssl", True))
        self.fingerprints = Fingerprints.from_config(
            config.get("ssl_certs") or (), config.get("fingerprints") or ()
        )
        self.server_status: Optional[ServerStatus] = None

        self._lock = threading.Lock()
        self._csrf = ""
        self._resolver = PathResolver(ApiGeneration.LEGACY)
        self.session = self._build_transport()

        if probe:
            self.detect_api_generation()
            self.login()

    # --------------- Session state ---------------

    @property
    def csrf_token(self) -> str:
        with self._lock:
            return self._csrf

    @property
    def api_generation(self) -> ApiGeneration:
        with self._lock:
            return self._resolver.generation

    def path(self, path: str) -> str:
        """Resolve a logical API path for the detected controller generation."""
        with self._lock:
            return self._resolver.resolve(path)

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "UnifiSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # --------------- Transport ---------------

    def _build_transport(self) -> requests.Session:
        session = requests.Session()
        session.mount("https://", build_adapter(self.fingerprints))
        # Pinning replaces CA validation instead of adding to it.
        session.verify = False if self.fingerprints else self.verify_ssl
        # Suppress SSL warnings when CA verification is off
        if not session.verify:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
        return session

    def detect_api_generation(self) -> ApiGeneration:
        """
        GET "/" once, without following redirects and without session cookies.
        200 means a modern controller; anything else (usually 302 to /manage) legacy.
        """
        url = f"{self.url}/"
        t0 = perf_counter_ns()
        self.log.debug("phase=probe event=start url=%s", url)
        probe = self._build_transport()
        try:
            r = probe.get(url, allow_redirects=False, timeout=self.timeout)
        except requests.RequestException as e:
            latency_ms = _ms_since(t0)
            self.log.error("phase=probe event=error url=%s latency_ms=%d error=%s", url, latency_ms, repr(e))
            raise UnifiRequestError("api generation probe failed", url=url, method="GET",
                                    latency_ms=latency_ms, last_error=e) from e
        finally:
            probe.close()

        generation = ApiGeneration.MODERN if r.status_code == 200 else ApiGeneration.LEGACY
        with self._lock:
            self._resolver.generation = generation
        self.log.info("phase=probe event=success url=%s status=%d generation=%s latency_ms=%d",
                      url, r.status_code, generation.value, _ms_since(t0))
        return generation

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json; charset=utf-8",
        }
        with self._lock:
            if self._csrf:
                headers[CSRF_HEADER] = self._csrf
        return headers

    def _send(self, method: str, path: str, body: Optional[str] = None) -> requests.Response:
        url = self.url + self.path(path)
        t0 = perf_counter_ns()
        self.log.debug("phase=request event=start method=%s url=%s params=%s cookies=%d",
                       method, url, bool(body), len(self.session.cookies))
        try:
            r = self.session.request(method, url, data=body.encode("utf-8") if body else None,
                                     headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            latency_ms = _ms_since(t0)
            self.log.error("phase=request event=transport_error method=%s url=%s latency_ms=%d error=%s",
                           method, url, latency_ms, repr(e))
            raise UnifiRequestError("making request", url=url, method=method,
                                    latency_ms=latency_ms, last_error=e) from e

        # Save the returned CSRF header.
        csrf = r.headers.get(CSRF_HEADER)
        if csrf:
            with self._lock:
                self._csrf = csrf
        self.log.debug("phase=request event=done method=%s url=%s status=%d bytes=%d latency_ms=%d csrf=%s",
                       method, url, r.status_code, len(r.content), _ms_since(t0), bool(csrf))
        return r

    def _do(self, method: str, path: str, body: Optional[str] = None) -> bytes:
        r = self._send(method, path, body)
        if r.status_code != 200:
            url = self.url + self.path(path)
            self.log.error("phase=request event=bad_status method=%s url=%s status=%d", method, url, r.status_code)
            raise InvalidStatusCodeError(url, r.status_code, r.content)
        return r.content

    @staticmethod
    def _join_params(params: Iterable[Param]) -> str:
        return " ".join(p if isinstance(p, str) else json.dumps(p) for p in params)

    # --------------- Auth ---------------

    def login(self) -> None:
        """POST the credentials as JSON; anything but 200 raises AuthenticationFailedError."""
        payload = json.dumps({"username": self.username, "password": self._password})
        t0 = perf_counter_ns()
        self.log.info("phase=auth event=login start url=%s user=%s", self.url, self.username)
        r = self._send("POST", API_LOGIN_PATH, payload)
        if r.status_code != 200:
            url = self.url + self.path(API_LOGIN_PATH)
            self.log.error("phase=auth event=login error=status_%d url=%s user=%s", r.status_code, url, self.username)
            raise AuthenticationFailedError(self.username, url, r.status_code)
        self.log.info("phase=auth event=login success latency_ms=%d csrf=%s", _ms_since(t0), bool(self.csrf_token))

    def logout(self) -> None:
        t0 = perf_counter_ns()
        self.post_json(API_LOGOUT_PATH)
        self.log.info("phase=auth event=logout latency_ms=%d", _ms_since(t0))

    # --------------- Raw requests ---------------

    def get_json(self, path: str, *params: Param) -> bytes:
        """
        Raw body from a path. With params the controller expects them as a
        POST body (stat endpoints take filters that way), so a POST is sent.
        """
        body = self._join_params(params)
        return self._do("POST" if body else "GET", path, body or None)

    def put_json(self, path: str, *params: Param) -> bytes:
        body = self._join_params(params)
        if not body:
            raise NoParamsError()
        return self._do("PUT", path, body)

    def post_json(self, path: str, *params: Param) -> bytes:
        return self._do("POST", path, self._join_params(params))

    # --------------- Decoding ---------------

    @staticmethod
    def _parse(body: bytes, path: str) -> Any:
        try:
            return json.loads(body)
        except ValueError as e:
            raise RecordShapeError(f"response from {path} is not JSON: {e}") from e

    def get_data(self, path: str, model: Type[ModelT], *params: Param,
                 envelope_key: Optional[str] = None) -> ModelT:
        """Fetch a path and decode the body as ``model``.

        With envelope_key the body may be either {envelope_key: {...}} or flat.
        """
        t0 = perf_counter_ns()
        body = self.get_json(path, *params)
        parsed = self._parse(body, path)
        self.log.debug("phase=decode event=done path=%s model=%s bytes=%d latency_ms=%d",
                       path, model.__name__, len(body), _ms_since(t0))
        if envelope_key:
            return decode_dual_shape(model, parsed, envelope_key)
        return decode_record(model, parsed)

    def put_data(self, path: str, model: Type[ModelT], *params: Param) -> ModelT:
        body = self.put_json(path, *params)
        return decode_record(model, self._parse(body, path))

    def _get_items(self, path: str, *params: Param) -> List[Any]:
        # Network API replies are {"meta": {...}, "data": [...]}; protect replies are bare lists.
        parsed = self._parse(self.get_json(path, *params), path)
        if isinstance(parsed, dict):
            return parsed.get("data") or []
        return parsed

    # --------------- Controller data ---------------

    def get_server_data(self) -> ServerStatus:
        """Controller version and UUID from /status. Cached on server_status."""
        parsed = self._parse(self.get_json(API_STATUS_PATH), API_STATUS_PATH)
        meta = parsed.get("meta", parsed) if isinstance(parsed, dict) else parsed
        self.server_status = decode_record(ServerStatus, meta)
        self.log.info("phase=status event=success version=%s up=%s",
                      self.server_status.server_version, self.server_status.up.value)
        return self.server_status

    def get_sites(self) -> List[Site]:
        sites = decode_list(Site, self._get_items(API_SITE_LIST))
        for site in sites:
            site.source_name = self.url
            site.site_name = f"{site.desc} ({site.name})"
        self.log.debug("phase=sites event=success count=%d", len(sites))
        return sites

    @staticmethod
    def _site_name(site: Optional[Site]) -> str:
        if site is None or not site.name:
            raise NoSiteProvidedError()
        return site.name

    def get_access_points_site(self, site: Optional[Site]) -> List[AccessPoint]:
        name = self._site_name(site)
        self.log.debug("phase=devices event=poll site=%s desc=%s", name, site.desc)
        items = [d for d in self._get_items(site_path(API_DEVICE_PATH, name))
                 if isinstance(d, dict) and d.get("type") == "uap"]
        aps = decode_list(AccessPoint, items)
        for ap in aps:
            ap.source_name = self.url
            ap.site_name = site.site_name
        return aps

    def get_access_points(self, sites: Iterable[Site]) -> List[AccessPoint]:
        data: List[AccessPoint] = []
        for site in sites:
            data.extend(self.get_access_points_site(site))
        return data

    def get_rogue_aps_site(self, site: Optional[Site]) -> List[RogueAP]:
        name = self._site_name(site)
        self.log.debug("phase=rogueap event=poll site=%s desc=%s", name, site.desc)
        rogues = decode_list(RogueAP, self._get_items(site_path(API_ROGUE_AP, name)))
        for rogue in rogues:
            rogue.source_name = self.url
            rogue.site_name = site.site_name
        return rogues

    def get_rogue_aps(self, sites: Iterable[Site]) -> List[RogueAP]:
        data: List[RogueAP] = []
        for site in sites:
            data.extend(self.get_rogue_aps_site(site))
        return data

    def get_cameras(self) -> List[Camera]:
        t0 = perf_counter_ns()
        cameras = decode_list(Camera, self._get_items(API_CAMERAS))
        self.log.debug("phase=cameras event=success count=%d latency_ms=%d", len(cameras), _ms_since(t0))
        return cameras

    def get_camera_by_id(self, camera_id: str) -> Optional[Camera]:
        return next((c for c in self.get_cameras() if c.id == camera_id), None)

    def get_camera_by_name(self, name: str) -> Optional[Camera]:
        # name is sometimes null while displayName is always set; when both are set they match
        return next((c for c in self.get_cameras() if name in (c.display_name, c.name)), None)

    # --------------- Clips ---------------

    def get_raw(self, path: str, *params: Param) -> bytes:
        """Raw body from a path, for payloads that are not JSON records."""
        t0 = perf_counter_ns()
        body = self.get_json(path, *params)
        self.log.debug("phase=raw event=done url=%s bytes=%d latency_ms=%d",
                       self.url + self.path(path), len(body), _ms_since(t0))
        return body

    def get_clip_bytes(self, camera_id: str, start: datetime, end: datetime) -> bytes:
        """
        Prepare and download an MP4 clip for a time window.

        Notes:
        - The prepare call renders the clip server-side and can answer 500
          when overloaded or when the window is too close to now.
        - The returned clip can be somewhat shorter or longer than asked.
        """
        start_ms = str(int(start.timestamp() * 1000))
        end_ms = str(int(end.timestamp() * 1000))
        filename = f"{camera_id}_{start_ms}-{end_ms}.mp4"
        prepare = {
            "camera": camera_id,
            "start": start_ms,
            "end": end_ms,
            "channel": "0",
            "lens": "0",
            "type": "rotating",
            "filename": filename,
        }
        t0 = perf_counter_ns()
        prepare_path = f"{API_VIDEO_PREPARE}?{urlencode(sorted(prepare.items()))}"
        # the reply only needs to be JSON; its content is not used
        self._parse(self.get_json(prepare_path), API_VIDEO_PREPARE)
        self.log.info("phase=clip event=prepared camera=%s filename=%s latency_ms=%d",
                      camera_id, filename, _ms_since(t0))

        download_path = f"{API_VIDEO_DOWNLOAD}?{urlencode([('camera', camera_id), ('filename', filename)])}"
        clip = self.get_raw(download_path)
        self.log.info("phase=clip event=downloaded camera=%s bytes=%d latency_ms=%d",
                      camera_id, len(clip), _ms_since(t0))
        return clip

    def download_clip(self, camera_id: str, start: datetime, end: datetime) -> IO[bytes]:
        """Clip written to a named temporary file, returned open at offset 0.
        The caller closes it and removes f.name."""
        clip = self.get_clip_bytes(camera_id, start, end)
        f = tempfile.NamedTemporaryFile(prefix=camera_id, suffix=".mp4", delete=False)
        try:
            f.write(clip)
            f.flush()
            f.seek(0)
        except OSError:
            f.close()
            os.unlink(f.name)
            raise
        return f

    @staticmethod
    def _default_logger():
        logger = logging.getLogger("unifi_compat")
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
            handler.setFormatter(formatter)
            logger.addHandler(handler)
            logger.setLevel(logging.INFO)
        return logger
