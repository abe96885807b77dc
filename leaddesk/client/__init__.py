from leaddesk.client.api_client import ApiClient
from leaddesk.client.errors import ApiError, NetworkError, RequestFailed

__all__ = ["ApiClient", "ApiError", "NetworkError", "RequestFailed"]
