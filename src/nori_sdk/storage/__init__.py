"""
Registry storage layer: references, credentials, endpoints and the HTTP client.
"""
