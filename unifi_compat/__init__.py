# SPDX-License-Identifier: MIT
"""Client for UniFi-style controller management APIs.

Decodes the controller's shape-shifting JSON into stable types, detects the
controller's API generation, pins self-signed certificates and keeps an
authenticated, CSRF-aware session.
"""

from .errors import (
    AuthenticationFailedError,
    DecodeError,
    InvalidSignatureError,
    InvalidStatusCodeError,
    NoParamsError,
    NoSiteProvidedError,
    RecordShapeError,
    UnifiError,
    UnifiRequestError,
    UnsupportedShapeError,
)
from .flex import FlexBool, FlexInt, FlexString, FlexTemp
from .paths import ApiGeneration, PathResolver
from .pinning import Fingerprints, PinnedAdapter, make_verifier
from .records import decode_dual_shape, decode_record
from .session import UnifiSession

__version__ = "0.4.0"

__all__ = [
    "ApiGeneration",
    "AuthenticationFailedError",
    "DecodeError",
    "Fingerprints",
    "FlexBool",
    "FlexInt",
    "FlexString",
    "FlexTemp",
    "InvalidSignatureError",
    "InvalidStatusCodeError",
    "NoParamsError",
    "NoSiteProvidedError",
    "PathResolver",
    "PinnedAdapter",
    "RecordShapeError",
    "UnifiError",
    "UnifiRequestError",
    "UnifiSession",
    "UnsupportedShapeError",
    "decode_dual_shape",
    "decode_record",
    "make_verifier",
]
