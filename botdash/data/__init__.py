from .api_client import ApiError, BotApiClient

__all__ = ["ApiError", "BotApiClient"]
