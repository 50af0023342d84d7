# SPDX-License-Identifier: MIT
# Certificate pinning for controllers with self-signed certificates.
#
# When fingerprints are configured the TLS handshake skips CA validation and
# the peer chain is checked against the pinned SHA-256 digests instead. The
# two are mutually exclusive: an empty pin set means normal CA validation.

from __future__ import annotations

import hashlib
import logging
import ssl
from typing import Callable, Iterable, List, Optional, Sequence, Union

from requests.adapters import HTTPAdapter
from urllib3.connection import HTTPSConnection
from urllib3.connectionpool import HTTPConnectionPool, HTTPSConnectionPool

from .errors import InvalidSignatureError

_LOGGER = logging.getLogger(__name__)

Verifier = Callable[[Sequence[bytes]], None]


def fingerprint(der: bytes) -> str:
    """Lowercase hex SHA-256 of a DER certificate."""
    return hashlib.sha256(der).hexdigest()


def fingerprint_pem(pem: Union[str, bytes]) -> str:
    """Fingerprint of the first certificate block in a PEM document."""
    if isinstance(pem, bytes):
        pem = pem.decode("ascii")
    return fingerprint(ssl.PEM_cert_to_DER_cert(pem))


class Fingerprints:
    """Ordered set of pinned certificate digests."""

    def __init__(self, digests: Iterable[str] = ()):
        self._digests: List[str] = []
        for digest in digests:
            self.add(digest)

    @classmethod
    def from_config(cls, ssl_certs: Iterable[Union[str, bytes]] = (), fingerprints: Iterable[str] = ()) -> "Fingerprints":
        pins = cls(fingerprints)
        for pem in ssl_certs:
            pins.add(fingerprint_pem(pem))
        return pins

    def add(self, digest: str) -> None:
        # accept "AA:BB:..." as printed by openssl
        digest = digest.replace(":", "").strip().lower()
        if digest and digest not in self._digests:
            self._digests.append(digest)

    def __contains__(self, digest: str) -> bool:
        return digest in self._digests

    def __iter__(self):
        return iter(self._digests)

    def __len__(self) -> int:
        return len(self._digests)

    def __bool__(self) -> bool:
        return bool(self._digests)

    def __repr__(self) -> str:
        return f"Fingerprints({self._digests!r})"


def make_verifier(pins: Fingerprints) -> Verifier:
    """Build the handshake check for a pin set.

    The returned callable takes the DER certificates the peer offered and
    raises InvalidSignatureError unless one of them is pinned.
    """

    def verify(certs: Sequence[bytes]) -> None:
        if not pins:
            return
        for cert in certs:
            if fingerprint(cert) in pins:
                return
        raise InvalidSignatureError()

    return verify


def peer_certificates(sock) -> List[bytes]:
    """DER certificates presented by the peer of a connected TLS socket."""
    get_chain = getattr(sock, "get_unverified_chain", None)
    if get_chain is not None:
        chain = get_chain()
        if chain:
            return list(chain)
    leaf = sock.getpeercert(binary_form=True)
    return [leaf] if leaf else []


class PinnedAdapter(HTTPAdapter):
    """requests transport adapter that runs a verifier after each TLS handshake.

    The session mounting it must turn off CA verification (verify=False) so
    self-signed controller certificates reach the verifier at all.
    """

    def __init__(self, verifier: Verifier, **kwargs):
        self._pool_classes = {
            "http": HTTPConnectionPool,
            "https": _pinned_pool(verifier),
        }
        super().__init__(**kwargs)

    def init_poolmanager(self, connections, maxsize, block=False, **pool_kwargs):
        super().init_poolmanager(connections, maxsize, block=block, **pool_kwargs)
        self.poolmanager.pool_classes_by_scheme = self._pool_classes

    def proxy_manager_for(self, proxy, **proxy_kwargs):
        # HTTPS through a proxy is tunnelled, so the handshake is still with
        # the controller and is pinned like a direct one.
        manager = super().proxy_manager_for(proxy, **proxy_kwargs)
        manager.pool_classes_by_scheme = self._pool_classes
        return manager


def _pinned_pool(verifier: Verifier):
    class PinnedHTTPSConnection(HTTPSConnection):
        def connect(self):
            super().connect()
            try:
                verifier(peer_certificates(self.sock))
            except InvalidSignatureError:
                _LOGGER.error("phase=tls event=pin_mismatch host=%s", self.host)
                self.close()
                raise

    class PinnedHTTPSConnectionPool(HTTPSConnectionPool):
        ConnectionCls = PinnedHTTPSConnection

    return PinnedHTTPSConnectionPool


def build_adapter(pins: Optional[Fingerprints]) -> HTTPAdapter:
    """Plain adapter without pins, pinned adapter otherwise."""
    if not pins:
        return HTTPAdapter()
    return PinnedAdapter(make_verifier(pins))
