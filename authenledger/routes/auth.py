import secrets
import time
from datetime import datetime, timezone
from functools import wraps

from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import create_access_token, decode_token, jwt_required, get_jwt_identity, get_jwt
from werkzeug.security import generate_password_hash, check_password_hash

from authenledger.services import kv_store

auth_bp = Blueprint("auth", __name__)

DEMO_USER_ID = "demo_user_12345"


# --- Helpers ---
def user_key(user_id):
    return f"user:{user_id}"


def email_key(email):
    return f"user_email:{email.strip().lower()}"


def session_key(jti):
    return f"session:{jti}"


def _json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _text_field(data, name, strip=True):
    """Returns the field as a string, or None when it is absent or not a string."""
    value = data.get(name)
    if not isinstance(value, str):
        return None
    return value.strip() if strip else value


def public_user(user_data):
    return {
        "id": user_data["id"],
        "email": user_data["email"],
        "name": user_data.get("name", ""),
        "role": user_data.get("role", "user"),
    }


def current_user():
    """Returns the stored record for the authenticated user, or None."""
    return kv_store.get(user_key(get_jwt_identity()))


def is_session_active(jti):
    """
    True while `session:<jti>` exists and hasn't passed its expires_at.
    Expired records are removed on sight.
    """
    session = kv_store.get(session_key(jti))
    if not session:
        return False
    if session.get("expires_at") and session["expires_at"] < int(time.time()):
        kv_store.delete(session_key(jti))
        return False
    return True


def roles_required(*roles):
    """A custom decorator to verify user roles from JWT claims."""
    def wrapper(fn):
        @wraps(fn)
        @jwt_required()
        def decorator(*args, **kwargs):
            claims = get_jwt()
            if claims.get("role") not in roles:
                return jsonify(error=f"Insufficient permissions. Required role: {', '.join(roles)}"), 403
            return fn(*args, **kwargs)
        return decorator
    return wrapper


def create_session(user_data):
    """Issues a bearer token and records its session in the key-value store."""
    access_token = create_access_token(identity=user_data["id"], additional_claims={"role": user_data.get("role", "user")})
    claims = decode_token(access_token)
    session = {
        "access_token": access_token,
        "user": {
            "id": user_data["id"],
            "email": user_data["email"],
            "user_metadata": {
                "name": user_data.get("name", ""),
                "role": user_data.get("role", "user"),
            },
        },
        "expires_at": claims["exp"],
    }
    kv_store.set(session_key(claims["jti"]), session)
    return session


def ensure_demo_user():
    """Creates the demo account on first use. Returns True if it was created."""
    demo_email = current_app.config["DEMO_EMAIL"]
    if kv_store.get(email_key(demo_email)):
        return False
    kv_store.set(user_key(DEMO_USER_ID), {
        "id": DEMO_USER_ID,
        "email": demo_email,
        "name": "Demo User",
        "institution": "Demo University",
        "role": "user",
        "department": "Computer Science",
        "password_hash": generate_password_hash(current_app.config["DEMO_PASSWORD"]),
        "created_at": datetime.now(timezone.utc).isoformat(),
    })
    kv_store.set(email_key(demo_email), DEMO_USER_ID)
    current_app.logger.info("Demo user created")
    return True


# --- Routes ---
@auth_bp.route("/init", methods=["GET"])
def init():
    """Performs startup tasks: currently just seeding the demo user."""
    ensure_demo_user()
    current_app.logger.info("Certificate validation service initialized")
    return jsonify(message="Service initialized successfully")


@auth_bp.route("/signup", methods=["POST"])
def signup():
    """Registers a new user. Signing in is a separate step."""
    data = _json_body()
    name = _text_field(data, "name")
    email = _text_field(data, "email")
    password = _text_field(data, "password", strip=False)

    if not name or not email or not password:
        return jsonify(error="Missing required fields"), 400

    if kv_store.get(email_key(email)):
        current_app.logger.info(f"Signup rejected, email already registered: {email}")
        return jsonify(error="User with this email already exists"), 400

    user_id = f"user_{int(time.time() * 1000)}_{secrets.token_hex(5)}"
    user_data = {
        "id": user_id,
        "email": email,
        "name": name,
        "institution": _text_field(data, "institution") or "",
        "role": _text_field(data, "role") or "user",
        "department": _text_field(data, "department") or "",
        "password_hash": generate_password_hash(password),
        "created_at": datetime.now(timezone.utc).isoformat(),
    }
    kv_store.set(user_key(user_id), user_data)
    kv_store.set(email_key(email), user_id)
    current_app.logger.info(f"User created: {user_id}")

    return jsonify(message="User created successfully", user=public_user(user_data))


@auth_bp.route("/signin", methods=["POST"])
def signin():
    """Checks credentials and returns a session holding a bearer token."""
    data = _json_body()
    email = _text_field(data, "email")
    password = _text_field(data, "password", strip=False)

    if not email or not password:
        return jsonify(error="Email and password are required"), 400

    user_id = kv_store.get(email_key(email))
    user_data = kv_store.get(user_key(user_id)) if user_id else None
    if not user_data or not check_password_hash(user_data["password_hash"], password):
        current_app.logger.info(f"Failed signin for email: {email}")
        return jsonify(error="Invalid email or password"), 401

    session = create_session(user_data)
    return jsonify(message="Signed in successfully", session=session, user=public_user(user_data))


@auth_bp.route("/logout", methods=["POST"])
@jwt_required()
def logout():
    """Ends the current session; the token is rejected from then on."""
    kv_store.delete(session_key(get_jwt()["jti"]))
    return jsonify(message="Signed out successfully")


@auth_bp.route("/profile", methods=["GET"])
@jwt_required()
def profile():
    """Returns the profile information of the currently logged-in user."""
    user_data = current_user()
    if not user_data:
        return jsonify(error="User not found"), 404
    profile_data = public_user(user_data)
    profile_data.update({
        "institution": user_data.get("institution", ""),
        "department": user_data.get("department", ""),
    })
    return jsonify(profile_data)
