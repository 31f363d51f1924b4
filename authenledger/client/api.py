# client/api.py
"""
HTTP client for the AuthenLedger API, built on requests.

Every failure surfaces as ApiError carrying a user-facing message; nothing is
retried.
"""
import logging
import mimetypes
import os
from typing import Any, Dict, List, Optional

import requests

from authenledger.client.config import ClientConfig

logger = logging.getLogger(__name__)


class ApiError(Exception):
    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status


class ApiClient:
    def __init__(self, base_url: str = ClientConfig.API_URL, access_token: Optional[str] = None,
                 timeout: float = ClientConfig.REQUEST_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        self.timeout = timeout
        self.http = requests.Session()

    def _headers(self) -> Dict[str, str]:
        if self.access_token:
            return {"Authorization": f"Bearer {self.access_token}"}
        return {}

    def _request(self, method: str, endpoint: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}{endpoint}"
        try:
            response = self.http.request(method, url, headers=self._headers(), timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            logger.error(f"{method} {url} failed: {e}")
            raise ApiError("Could not connect to the server. Please try again later.") from e

        if not response.ok:
            try:
                message = response.json().get("error") or f"Server error ({response.status_code})"
            except (ValueError, AttributeError):
                message = f"Server error ({response.status_code})"
            logger.warning(f"{method} {url} returned {response.status_code}: {message}")
            raise ApiError(message, response.status_code)
        return response

    def _json(self, method: str, endpoint: str, **kwargs) -> Dict[str, Any]:
        return self._request(method, endpoint, **kwargs).json()

    # --- service ---
    def is_available(self) -> bool:
        """Health check; any failure counts as unavailable."""
        try:
            self._request("GET", "/health")
            return True
        except ApiError:
            return False

    def init(self) -> Dict[str, Any]:
        return self._json("GET", "/init")

    # --- auth ---
    def signup(self, name: str, email: str, password: str, institution: str = "",
               role: str = "user", department: str = "") -> Dict[str, Any]:
        return self._json("POST", "/signup", json={
            "name": name, "email": email, "password": password,
            "institution": institution, "role": role, "department": department,
        })

    def signin(self, email: str, password: str) -> Dict[str, Any]:
        return self._json("POST", "/signin", json={"email": email, "password": password})

    def logout(self) -> Dict[str, Any]:
        return self._json("POST", "/logout")

    def profile(self) -> Dict[str, Any]:
        return self._json("GET", "/profile")

    # --- validation ---
    def upload(self, paths: List[str]) -> List[Dict[str, Any]]:
        handles = []
        try:
            files = []
            for path in paths:
                handle = open(path, "rb")
                handles.append(handle)
                content_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
                files.append(("files", (os.path.basename(path), handle, content_type)))
            return self._json("POST", "/upload", files=files)["results"]
        finally:
            for handle in handles:
                handle.close()

    def validate(self, file_ids: List[str]) -> List[Dict[str, Any]]:
        return self._json("POST", "/validate", json={"fileIds": file_ids})["results"]

    def validations(self) -> List[Dict[str, Any]]:
        return self._json("GET", "/validations")["validations"]

    def certificate_pdf(self, validation_id: str) -> bytes:
        return self._request("GET", f"/validations/{validation_id}/certificate.pdf").content

    def verification_file(self, validation_id: str) -> Dict[str, Any]:
        return self._json("GET", f"/validations/{validation_id}/verification.json")

    def verify_qr(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._json("POST", "/verify-qr", json=payload)

    def admin_stats(self) -> Dict[str, Any]:
        return self._json("GET", "/admin/stats")
