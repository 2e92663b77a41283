import logging
from functools import wraps

from flask import Blueprint, current_app, g, jsonify, request
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from sqlalchemy.exc import IntegrityError
from werkzeug.security import check_password_hash, generate_password_hash

from errors import AuthError, ConflictError, ValidationError, api_errors
from model import User, db

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")

TOKEN_SALT = "taskboard-session"
# Same text for unknown email and wrong password
LOGIN_FAILED = "Incorrect email or password"


def normalize_email(email):
    return str(email).strip().lower()


def _serializer():
    return URLSafeTimedSerializer(current_app.secret_key, salt=TOKEN_SALT)


def issue_token(user_id):
    return _serializer().dumps(user_id)


def verify_token(token):
    """Return the user id carried by ``token`` or raise AuthError."""
    try:
        return _serializer().loads(token, max_age=current_app.config["TOKEN_MAX_AGE"])
    except SignatureExpired:
        raise AuthError("Session expired, please log in again")
    except BadSignature:
        raise AuthError("Invalid session token")


def register(name, email, password):
    if not name or not email or not password:
        raise ValidationError("Name, email and password are required")
    if not str(name).strip() or not str(email).strip():
        raise ValidationError("Name, email and password are required")

    normalized = normalize_email(email)
    if User.query.filter_by(email=normalized).first():
        raise ConflictError("An account with this email already exists")

    user = User(
        name=str(name).strip(),
        email=normalized,
        password=generate_password_hash(str(password)),
    )
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        # Lost the check-then-insert race to a concurrent registration
        db.session.rollback()
        raise ConflictError("An account with this email already exists")
    logger.info("Registered account %s", normalized)
    return user.to_dict()


def login(email, password):
    if not email or not password:
        raise ValidationError("Email and password are required")

    user = User.query.filter_by(email=normalize_email(email)).first()
    if not user or not check_password_hash(user.password, str(password)):
        raise AuthError(LOGIN_FAILED)
    return user.to_dict()


def acting_user():
    """Resolve the caller's identity from a bearer token, if one was sent.

    Returns None when no token is present and tokens are optional.
    """
    if "acting_user" in g:
        return g.acting_user
    header = request.headers.get("Authorization", "").strip()
    user_id = None
    if header:
        scheme, _, token = header.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            raise AuthError("Invalid session token")
        user_id = verify_token(token.strip())
    elif current_app.config.get("AUTH_REQUIRED"):
        raise AuthError("Authentication required")
    g.acting_user = user_id
    return user_id


def resolve_owner(claimed):
    """Pick the owner for a request from the token and the claimed userId."""
    user_id = acting_user()
    if user_id is None:
        return claimed
    if claimed and str(claimed) != user_id:
        raise AuthError("userId does not match the signed-in account")
    return user_id


def request_body():
    """JSON body, or the form fields for urlencoded posts."""
    body = request.get_json(silent=True)
    if body is None:
        body = request.form.to_dict()
    return body if isinstance(body, dict) else {}


def with_token(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        payload, status = f(*args, **kwargs)
        payload = dict(payload, token=issue_token(payload["id"]))
        return jsonify(payload), status
    return decorated


@auth_bp.route("/register", methods=["POST"])
@api_errors("Failed to register")
@with_token
def register_route():
    body = request_body()
    return register(body.get("name"), body.get("email"), body.get("password")), 201


@auth_bp.route("/login", methods=["POST"])
@api_errors("Failed to login")
@with_token
def login_route():
    body = request_body()
    return login(body.get("email"), body.get("password")), 200
