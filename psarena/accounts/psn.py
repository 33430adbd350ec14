# -*- coding: utf-8 -*-
"""
PlayStation Network client.

Implements the mobile-app OAuth flow used by PSN:

1. ``exchange_npsso``: the NPSSO cookie is traded for an authorization code,
   then the code for an access/refresh token pair.
2. ``refresh_access``: a stored refresh token is traded for a fresh access
   token.
3. ``get_profile`` / ``get_played_titles``: authenticated reads for the
   account that owns the access token.
"""
from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import parse_qs, urlparse

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

AUTH_BASE = "https://ca.account.sony.com/api/authz/v3/oauth"
PROFILE_URL = "https://us-prof.np.community.playstation.net/userProfile/v1/users/me/profile2"
TITLES_URL = "https://m.np.playstation.com/api/gamelist/v2/users/me/titles"

CLIENT_ID = "09515159-7237-4370-9b40-3806e67c0891"
# client_id:client_secret of the PlayStation mobile app, base64 encoded
CLIENT_BASIC_AUTH = "Basic MDk1MTUxNTktNzIzNy00MzcwLTliNDAtMzgwNmU2N2MwODkxOnVjUGprYTV0bnRCMktxc1A="
REDIRECT_URI = "com.scee.psxandroid.scecompcall://redirect"
SCOPE = "psn:mobile.v2.core psn:clientapp"


class PsnError(Exception):
    pass


def _timeout() -> int:
    return int(getattr(settings, "PSN_TIMEOUT", 15))


def _token_request(data: dict) -> dict:
    try:
        res = requests.post(
            f"{AUTH_BASE}/token",
            data={**data, "token_format": "jwt"},
            headers={"Authorization": CLIENT_BASIC_AUTH, "Content-Type": "application/x-www-form-urlencoded"},
            timeout=_timeout(),
        )
    except requests.RequestException as e:
        raise PsnError(f"PSN token request failed: {e}") from e

    if res.status_code != 200:
        raise PsnError(f"PSN token request rejected ({res.status_code})")
    tokens = res.json()
    if not tokens.get("access_token"):
        raise PsnError("PSN token response has no access_token")
    return tokens


def exchange_npsso(npsso: str) -> dict:
    """NPSSO → ``{access_token, refresh_token, expires_in, ...}``."""
    if not npsso:
        raise PsnError("Missing npsso")

    params = {
        "access_type": "offline",
        "client_id": CLIENT_ID,
        "redirect_uri": REDIRECT_URI,
        "response_type": "code",
        "scope": SCOPE,
    }
    try:
        res = requests.get(
            f"{AUTH_BASE}/authorize",
            params=params,
            headers={"Cookie": f"npsso={npsso}"},
            allow_redirects=False,
            timeout=_timeout(),
        )
    except requests.RequestException as e:
        raise PsnError(f"PSN authorize request failed: {e}") from e

    location = res.headers.get("Location", "")
    code = (parse_qs(urlparse(location).query).get("code") or [None])[0]
    if not code:
        # NPSSO منقضی یا نامعتبر
        raise PsnError("PSN did not return an authorization code; the npsso is invalid or expired")

    tokens = _token_request({
        "code": code,
        "redirect_uri": REDIRECT_URI,
        "grant_type": "authorization_code",
    })
    if not tokens.get("refresh_token"):
        raise PsnError("PSN token response has no refresh_token")
    return tokens


def refresh_access(refresh_token: str) -> dict:
    if not refresh_token:
        raise PsnError("Missing refresh token")
    return _token_request({
        "refresh_token": refresh_token,
        "grant_type": "refresh_token",
        "scope": SCOPE,
    })


def _authed_get(url: str, access_token: str, params: Optional[dict] = None) -> dict:
    try:
        res = requests.get(
            url,
            params=params,
            headers={"Authorization": f"Bearer {access_token}"},
            timeout=_timeout(),
        )
    except requests.RequestException as e:
        raise PsnError(f"PSN request failed: {e}") from e
    if res.status_code != 200:
        raise PsnError(f"PSN request to {urlparse(url).path} failed ({res.status_code})")
    return res.json()


def get_profile(access_token: str) -> dict:
    data = _authed_get(
        PROFILE_URL,
        access_token,
        params={"fields": "onlineId,accountId,avatarUrls,plus,aboutMe,trophySummary(@default)"},
    )
    return data.get("profile") or data


def get_played_titles(access_token: str, limit: int = 10) -> list:
    """
    Recently played titles, newest first:
    ``[{"name", "titleId", "playedAt", "playCount"}]``.
    """
    data = _authed_get(
        TITLES_URL,
        access_token,
        params={"categories": "ps4_game,ps5_native_game", "limit": int(limit), "offset": 0},
    )
    out = []
    for t in data.get("titles") or []:
        out.append({
            "name": t.get("name") or "",
            "titleId": t.get("titleId") or "",
            "playedAt": t.get("lastPlayedDateTime"),
            "playCount": t.get("playCount"),
        })
    return out


def extract_online_id(profile) -> Optional[str]:
    if not profile:
        return None
    return profile.get("onlineId") or profile.get("onlineid") or None


def get_profile_data(refresh_token: str, limit: int = 20) -> dict:
    """
    پروفایل و کتابخانه‌ی بازی‌ها با توکن refresh ذخیره‌شده.
    خطای کتابخانه کل درخواست را خراب نمی‌کند.
    """
    if not refresh_token:
        return {"success": False, "error": {"message": "Missing refreshToken"}}

    try:
        tokens = refresh_access(refresh_token)
        access = tokens["access_token"]
        profile = get_profile(access)
    except PsnError as e:
        logger.warning("psn.get_profile_data failed: %s", e)
        return {"success": False, "error": {"message": str(e)}}

    try:
        library = get_played_titles(access, limit=limit)
    except PsnError as e:
        logger.warning("psn: failed to fetch library: %s", e)
        library = None

    return {"success": True, "profile": profile, "library": library}
