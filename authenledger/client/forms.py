# client/forms.py
"""Input checks run before any request is sent."""
import os
from typing import Any, Dict

from authenledger.client.config import ClientConfig

ACCEPTED_EXTENSIONS = {'.pdf', '.doc', '.docx', '.jpg', '.jpeg', '.png', '.txt'}


class FormValidationError(ValueError):
    pass


def validate_login(email: str, password: str) -> None:
    if not email or not password:
        raise FormValidationError("Please fill in all fields")


def validate_signup(form: Dict[str, Any]) -> None:
    if not all(form.get(field) for field in ("name", "email", "password", "role")):
        raise FormValidationError("Please fill in all required fields")
    if form["password"] != form.get("confirm_password"):
        raise FormValidationError("Passwords do not match")
    if len(form["password"]) < ClientConfig.MIN_PASSWORD_LENGTH:
        raise FormValidationError(f"Password must be at least {ClientConfig.MIN_PASSWORD_LENGTH} characters long")


def validate_upload(path: str) -> None:
    name = os.path.basename(path)
    if not os.path.isfile(path):
        raise FormValidationError(f"File {name} does not exist")
    extension = os.path.splitext(name)[1].lower()
    if extension not in ACCEPTED_EXTENSIONS:
        raise FormValidationError(f"File type {extension or 'unknown'} is not supported")
    if os.path.getsize(path) > ClientConfig.MAX_FILE_SIZE:
        raise FormValidationError(f"File {name} is too large. Maximum size is 10MB")


def format_file_size(size: int) -> str:
    if size == 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    index = 0
    value = float(size)
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    return f"{round(value, 2):g} {units[index]}"
