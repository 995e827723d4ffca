from .gate import authorize
from .service import AuthService
from .tokens import TokenClaims

__all__ = ["AuthService", "TokenClaims", "authorize"]
