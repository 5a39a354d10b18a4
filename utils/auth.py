from functools import wraps
from flask_jwt_extended import jwt_required, get_jwt_identity, get_jwt

ADMIN = "admin"
STAFF = "staff"


def role_required(*allowed_roles):
    """
    Decorator to require specific staff roles for endpoint access.
    The role travels as the ``role`` claim of the access token; accounts
    themselves live with the external identity provider.
    Usage: @role_required(ADMIN, STAFF)
    """
    def decorator(f):
        @wraps(f)
        @jwt_required()
        def decorated_function(*args, **kwargs):
            role = get_jwt().get("role")

            if role not in allowed_roles:
                return {
                    "error": "Insufficient permissions",
                    "required_roles": list(allowed_roles),
                    "current_role": role,
                }, 403

            kwargs["current_staff"] = get_jwt_identity()
            return f(*args, **kwargs)

        return decorated_function
    return decorator


def admin_required(f):
    """Decorator to require the admin role."""
    return role_required(ADMIN)(f)


def staff_required(f):
    """Decorator to require any back-office role (admin or kitchen/counter staff)."""
    return role_required(ADMIN, STAFF)(f)
