import requests
from typing import Optional

from .config import BASE_URL, TIMEOUT


def _data(resp: requests.Response) -> Optional[dict]:
    if resp.status_code != 200:
        return None
    body = resp.json()
    if not body.get("success"):
        return None
    return body.get("data")


def api_login(employee_id: str, password: str) -> Optional[dict]:
    """
    Logs in and returns {access_token, refresh_token, user}, or None on failure.
    """
    url = f"{BASE_URL}/api/auth/login"
    data = {"employee_id": employee_id, "password": password}

    try:
        resp = requests.post(url, json=data, timeout=TIMEOUT)
        return _data(resp)
    except (requests.RequestException, ValueError):
        return None


def api_refresh(refresh_token: str) -> Optional[dict]:
    """
    Redeems a refresh token and returns the new {access_token, refresh_token} pair.
    """
    url = f"{BASE_URL}/api/auth/refresh"

    try:
        resp = requests.post(url, json={"refresh_token": refresh_token}, timeout=TIMEOUT)
        return _data(resp)
    except (requests.RequestException, ValueError):
        return None


def api_logout(refresh_token: str) -> bool:
    """
    Revokes the refresh token on the backend.
    """
    url = f"{BASE_URL}/api/auth/logout"

    try:
        resp = requests.post(url, json={"refresh_token": refresh_token}, timeout=TIMEOUT)
        return resp.status_code == 200
    except requests.RequestException:
        return False


def api_me(token: str) -> Optional[dict]:
    """
    Returns the claims of the current access token.
    """
    url = f"{BASE_URL}/api/auth/me"
    headers = {"Authorization": f"Bearer {token}"}

    try:
        resp = requests.get(url, headers=headers, timeout=TIMEOUT)
        return _data(resp)
    except (requests.RequestException, ValueError):
        return None
