from enum import Enum
from functools import wraps
from flask import current_app, request
from cloudpipe.exceptions import AuthenticationError, AuthorizationError, ServiceException

import jwt

JWT_ALGORITHM = 'HS256'


class Role(Enum):
    ADMIN = "admin"
    DEV = "dev"
    VIEWER = "viewer"

ROLE_PRIORITY = {
    'admin': 3,
    'dev': 2,
    'viewer': 1
}


class AuthService:
    @staticmethod
    def verify_token(token: str) -> dict:
        try:
            payload = jwt.decode(token, current_app.config['JWT_SECRET_KEY'], algorithms=[JWT_ALGORITHM])
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token has expired", "TOKEN_EXPIRED")
        except jwt.InvalidTokenError:
            raise AuthenticationError("Invalid token", "INVALID_TOKEN")

        if 'organisation_id' not in payload:
            raise AuthenticationError("Token has no organisation", "INVALID_TOKEN")
        return payload

    @staticmethod
    def check_role_access(user_role: str, required_role: str) -> bool:
        """
        Check if the user's role has sufficient priority to access a resource
        that requires the specified role.
        """
        user_priority = ROLE_PRIORITY.get(user_role, 0)
        required_priority = ROLE_PRIORITY.get(required_role, 0)

        return user_priority >= required_priority

def requires_auth(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        token = None
        auth_header = request.headers.get('Authorization')

        if auth_header:
            try:
                token = auth_header.split(" ")[1]  # Bearer <token>
            except IndexError:
                raise AuthenticationError("Invalid token format", "INVALID_TOKEN_FORMAT")

        if not token:
            raise AuthenticationError("Token is missing", "TOKEN_MISSING")

        try:
            payload = AuthService.verify_token(token)
        except ServiceException as e:
            raise AuthenticationError(str(e), e.error_code)

        request.user = payload
        request.token = token  # forwarded to Drone
        return f(*args, **kwargs)

    return decorated


def requires_role(required_role: Role):
    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            if not hasattr(request, 'user'): # this is only used after the requires auth decorator.
                raise AuthenticationError("Authentication required", "AUTH_REQUIRED")

            user_role = request.user.get('role')
            if not user_role:
                raise AuthorizationError("User has no role assigned", "NO_ROLE_ASSIGNED")

            if not AuthService.check_role_access(user_role, required_role.value):
                raise AuthorizationError(
                    f"Access denied. Required role: {required_role.value}",
                    "INSUFFICIENT_ROLE"
                )

            return f(*args, **kwargs)
        return decorated
    return decorator
