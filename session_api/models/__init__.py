# Database models (User, RefreshToken)
# Import all models here so Base.metadata.create_all() can find them
from session_api.models.user import User
from session_api.models.token import RefreshToken

__all__ = ["User", "RefreshToken"]
