# client/workflows.py
"""
User-level flows: login, signup and batch validation.

When the server's health check fails, login and signup fall back to a
local demo session, and validation runs the simulated scorer locally.
"""
import logging
import os
import time
import uuid
from typing import Any, Dict, List, Optional

from authenledger.client.api import ApiClient, ApiError
from authenledger.client.config import ClientConfig
from authenledger.client.forms import FormValidationError, validate_login, validate_signup, validate_upload
from authenledger.client.session import AppContext
from authenledger.services import hash_service, stats_service
from authenledger.services.metadata_service import iso_timestamp
from authenledger.services.scoring_service import RandomScorer, Scorer

logger = logging.getLogger(__name__)

DEMO_HINT = (f"Server is not available. Please use demo credentials: "
             f"{ClientConfig.DEMO_EMAIL} / {ClientConfig.DEMO_PASSWORD}")


def demo_session(email: str, name: str = "Demo User", role: str = "user",
                 user_id: str = "demo-user", now: Optional[float] = None) -> Dict[str, Any]:
    now = time.time() if now is None else now
    return {
        "access_token": f"{ClientConfig.DEMO_TOKEN_PREFIX}{int(now * 1000)}",
        "user": {
            "id": user_id,
            "email": email,
            "user_metadata": {"name": name, "role": role},
        },
        "expires_at": int(now) + ClientConfig.SESSION_LIFETIME,
    }


def login(ctx: AppContext, api: ApiClient, email: str, password: str) -> Dict[str, Any]:
    """Signs in and stores the session. Returns the session's user."""
    validate_login(email, password)

    if not api.is_available():
        logger.info("Server not available, using demo mode")
        if email == ClientConfig.DEMO_EMAIL and password == ClientConfig.DEMO_PASSWORD:
            ctx.login(demo_session(email))
            return ctx.user
        raise ApiError(DEMO_HINT)

    data = api.signin(email, password)
    ctx.login(data["session"])
    api.access_token = ctx.access_token
    return ctx.user


def signup(ctx: AppContext, api: ApiClient, form: Dict[str, Any]) -> Dict[str, Any]:
    """Registers, then signs in with the new credentials."""
    validate_signup(form)

    if not api.is_available():
        logger.info("Server not available, creating a demo account")
        ctx.login(demo_session(form["email"], form["name"], form["role"],
                               user_id=f"demo-user-{int(time.time() * 1000)}"))
        return ctx.user

    api.signup(form["name"], form["email"], form["password"], form.get("institution") or "",
               form["role"], form.get("department") or "")
    return login(ctx, api, form["email"], form["password"])


def logout(ctx: AppContext, api: ApiClient) -> None:
    if ctx.is_logged_in and not ctx.is_demo:
        try:
            api.logout()
        except ApiError as e:
            # The local session goes regardless; the server copy expires on its own.
            logger.warning(f"Server logout failed: {e.message}")
    ctx.clear()


def _demo_validate(path: str, scorer: Scorer) -> Dict[str, Any]:
    size = os.path.getsize(path)
    file_record = {
        "id": f"demo-file:{uuid.uuid4().hex}",
        "fileName": os.path.basename(path),
        "fileSize": size,
        "fileHash": hash_service.sha256_of_file(path),
    }
    return {
        "id": f"demo-validation:{uuid.uuid4().hex}",
        "fileId": file_record["id"],
        "fileName": file_record["fileName"],
        "fileSize": size,
        "validatedAt": iso_timestamp(),
        **scorer.score(file_record),
    }


def process_files(ctx: AppContext, api: ApiClient, paths: List[str],
                  scorer: Optional[Scorer] = None) -> List[Dict[str, Any]]:
    """
    Validates a batch of files. Rejected files become error entries; if no
    file passes the local checks nothing is sent.
    """
    if not ctx.refresh():
        raise ApiError("Please login to upload files")

    accepted, results = [], []
    for path in paths:
        try:
            validate_upload(path)
            accepted.append(path)
        except FormValidationError as e:
            results.append({"fileName": os.path.basename(path), "error": str(e)})
    if not accepted:
        raise FormValidationError("No valid files to process")

    if ctx.is_demo:
        scorer = scorer or RandomScorer()
        validations = []
        for path in accepted:
            try:
                validations.append(_demo_validate(path, scorer))
            except OSError as e:
                logger.error(f"Demo validation failed for {path}: {e}")
                results.append({"fileName": os.path.basename(path), "error": "Validation failed"})
        ctx.store.append_demo_history(validations)
        return results + validations

    api.access_token = ctx.access_token
    uploads = api.upload(accepted)
    file_ids = [u["fileId"] for u in uploads if u.get("success")]
    results.extend(u for u in uploads if not u.get("success"))
    if file_ids:
        results.extend(api.validate(file_ids))
    return results


def fetch_validations(ctx: AppContext, api: ApiClient) -> List[Dict[str, Any]]:
    if not ctx.refresh():
        raise ApiError("Please login to view validations")
    if ctx.is_demo:
        history = ctx.store.load_demo_history()
        return stats_service.newest_first(history, 50)
    api.access_token = ctx.access_token
    return api.validations()


def find_validation(ctx: AppContext, api: ApiClient, validation_id: str) -> Dict[str, Any]:
    for validation in fetch_validations(ctx, api):
        if validation.get("id") == validation_id:
            return validation
    raise ApiError(f"Validation {validation_id} not found", 404)
