# Taskboard Services
from taskboard.services.auth import AuthService, TokenPair
from taskboard.services.auth_pipeline import AuthContext, AuthPipeline
from taskboard.services.blacklist_cleanup import BlacklistCleanupService
from taskboard.services.force_logout import ForceLogoutService
from taskboard.services.session_limiter import SessionLimiter
from taskboard.services.token_codec import TokenCodec
from taskboard.services.token_store import TokenStore

__all__ = [
    "AuthContext",
    "AuthPipeline",
    "AuthService",
    "BlacklistCleanupService",
    "ForceLogoutService",
    "SessionLimiter",
    "TokenCodec",
    "TokenPair",
    "TokenStore",
]
