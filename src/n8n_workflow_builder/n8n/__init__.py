from .client import N8nApiError, N8nClient, create_n8n_http_client

__all__ = ["N8nApiError", "N8nClient", "create_n8n_http_client"]
