# SPDX-License-Identifier: MIT
# Controller endpoint paths and API-generation path rewriting.
#
# Controllers from the UDM generation onward answer 200 on "/" and mount the
# whole API tree under /proxy/protect, with login moved to /api/auth/login.
# Older controllers redirect "/" to /manage and serve the paths as-is.

from __future__ import annotations

import enum

from .errors import NoSiteProvidedError

# Site-scoped paths carry one %s for the site name.
API_STATUS_PATH = "/status"
API_SITE_LIST = "/api/stat/sites"
API_ROGUE_AP = "/api/s/%s/stat/rogueap"
API_DEVICE_PATH = "/api/s/%s/stat/device"
API_CAMERAS = "/api/cameras"
# Protect clip export: prepare renders the clip, download fetches it.
API_VIDEO_PREPARE = "/api/video/prepare"
API_VIDEO_DOWNLOAD = "/api/video/download"

API_LOGIN_PATH = "/api/login"
API_LOGIN_PATH_NEW = "/api/auth/login"
API_LOGOUT_PATH = "/api/logout"
# Prepended to every path on modern controllers, except login.
API_PREFIX_NEW = "/proxy/protect"


class ApiGeneration(str, enum.Enum):
    LEGACY = "legacy"
    MODERN = "modern"


def site_path(template: str, site_name: str) -> str:
    """Fill a site-scoped path template."""
    if not site_name:
        raise NoSiteProvidedError()
    return template % site_name


class PathResolver:
    """Maps logical API paths onto the paths the detected controller serves.

    Resolution is idempotent: feeding a resolved path back in returns it
    unchanged.
    """

    def __init__(self, generation: ApiGeneration = ApiGeneration.LEGACY):
        self.generation = generation

    def resolve(self, path: str) -> str:
        if self.generation is not ApiGeneration.MODERN:
            return path
        if path == API_LOGIN_PATH:
            return API_LOGIN_PATH_NEW
        if not path.startswith(API_PREFIX_NEW) and path != API_LOGIN_PATH_NEW:
            return API_PREFIX_NEW + path
        return path
